"""
Configuration for the Studio client session layer.

Uses Pydantic settings for environment-based configuration of the gateway
origin, the push channel endpoint and its reconnect policy, and list paging.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import SettingsConfigDict

from studio_service_libs.config import SecureServiceSettings


class Settings(SecureServiceSettings):
    """Configuration settings for the Studio client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STUDIO_CLIENT_",
        case_sensitive=False,
        extra="ignore",
    )

    SERVICE_NAME: str = "studio-client"
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Gateway (one-shot fetches)
    GATEWAY_URL: str = Field(
        default="http://localhost:3000",
        description="Base URL of the Studio gateway serving /api/*",
        validation_alias=AliasChoices("STUDIO_CLIENT_GATEWAY_URL", "GATEWAY_URL"),
    )
    HTTP_CLIENT_TIMEOUT_SECONDS: float = 30.0
    HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS: float = 10.0

    # Push channel
    WEBSOCKET_URL: str = Field(
        default="ws://localhost:8090/ws",
        description="Push channel websocket endpoint",
        validation_alias=AliasChoices("STUDIO_CLIENT_WEBSOCKET_URL", "WEBSOCKET_URL"),
    )
    RECONNECT_ATTEMPTS: int = Field(default=5, description="Reconnect attempts after a drop")
    RECONNECT_DELAY_SECONDS: float = Field(
        default=1.0, description="Delay before the first reconnect attempt"
    )
    RECONNECT_DELAY_MAX_SECONDS: float = Field(
        default=5.0, description="Upper bound for the doubling reconnect delay"
    )
    CONNECT_TIMEOUT_SECONDS: float = Field(default=20.0, description="Handshake timeout")
    HEARTBEAT_SECONDS: float = Field(default=20.0, description="Websocket ping interval")

    # Generation list paging
    GENERATIONS_PAGE_SIZE: int = Field(default=10, ge=1, le=100)
    GENERATIONS_INCLUDE_FAILED: bool = True


# Global settings instance
settings = Settings()
