"""
Configuration for the Studio Gateway Service.

Uses Pydantic settings for environment-based configuration of the backend
proxy, the download route and the browser-facing CORS policy.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import SettingsConfigDict

from studio_common.config_enums import Environment
from studio_service_libs.config import SecureServiceSettings


class Settings(SecureServiceSettings):
    """Configuration settings for the Studio Gateway Service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STUDIO_GATEWAY_",
        case_sensitive=False,
        extra="ignore",  # Allow extra environment variables to be ignored
    )

    # Service identity
    SERVICE_NAME: str = "studio-gateway-service"

    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        validation_alias="ENVIRONMENT",  # Read from global ENVIRONMENT var
        description="Runtime environment for the service",
    )

    # HTTP server configuration
    HTTP_HOST: str = Field(default="0.0.0.0", description="HTTP server host")
    HTTP_PORT: int = Field(default=3000, description="HTTP server port")

    # Logging configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # CORS configuration for the studio frontend
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins for the studio frontend",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=True, description="Allow credentials in CORS requests"
    )
    CORS_ALLOW_METHODS: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods for CORS",
    )
    CORS_ALLOW_HEADERS: list[str] = Field(
        default=["*"], description="Allowed headers for CORS requests"
    )

    # Backend
    BACKEND_API_URL: str = Field(
        default="http://localhost:8090",
        description="Backend API base URL; /api/<domain>/<path> is appended",
        validation_alias=AliasChoices("STUDIO_GATEWAY_BACKEND_API_URL", "BACKEND_API_URL"),
    )

    # HTTP Client Timeouts
    HTTP_CLIENT_TIMEOUT_SECONDS: float = 30.0
    HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS: float = 10.0
    BINARY_UPLOAD_TIMEOUT_SECONDS: float = Field(
        default=120.0, description="Read timeout for streamed multipart uploads"
    )

    # Download proxy
    ALLOWED_DOWNLOAD_HOSTS: list[str] = Field(
        default=["localhost", "127.0.0.1"],
        description="Hosts the download route may fetch from, besides *.r2.dev",
    )
    DOWNLOAD_HOST_SUFFIXES: list[str] = Field(
        default=[".r2.dev"], description="Host suffixes the download route may fetch from"
    )


# Global settings instance
settings = Settings()
