"""
Unit tests for logging_utils processors and configure_service_logging.

Focus is on side effects (handlers, environment defaults, bound context)
rather than rendered log content.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog
from structlog.contextvars import get_contextvars
from studio_common.events.channel_events import ChannelEvent
from studio_common.websocket_enums import ChannelEventName
from studio_service_libs.logging_utils import (
    add_service_context,
    configure_service_logging,
    create_service_logger,
    log_channel_event,
)


@pytest.fixture(autouse=True)
def clean_logging_config() -> Generator[None, None, None]:
    """Reset logging and structlog configuration after each test."""
    yield

    logging.root.handlers.clear()
    logging.root.setLevel(logging.WARNING)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestAddServiceContext:
    """Tests for the add_service_context processor."""

    def test_adds_service_name_and_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SERVICE_NAME", "studio-gateway-service")
        monkeypatch.setenv("ENVIRONMENT", "production")
        event_dict: dict[str, Any] = {"event": "hello", "correlation_id": "abc-123"}

        result = add_service_context(None, "", event_dict)

        assert result["service.name"] == "studio-gateway-service"
        assert result["deployment.environment"] == "production"
        assert result["correlation_id"] == "abc-123"

    def test_defaults_when_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SERVICE_NAME", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)

        result = add_service_context(None, "", {})

        assert result["service.name"] == "unknown"
        assert result["deployment.environment"] == "development"


class TestConfigureServiceLogging:
    """Tests for configure_service_logging handler setup."""

    def test_only_stdout_handler_by_default(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("LOG_TO_FILE", raising=False)

        configure_service_logging("test-service", log_level="INFO")

        assert len(logging.root.handlers) == 1
        assert isinstance(logging.root.handlers[0], logging.StreamHandler)
        assert not isinstance(logging.root.handlers[0], RotatingFileHandler)
        assert list(tmp_path.glob("*.log")) == []

    def test_file_handler_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        log_file_path = tmp_path / "nested" / "client.log"
        monkeypatch.setenv("LOG_TO_FILE", "true")
        monkeypatch.setenv("LOG_FILE_PATH", str(log_file_path))
        monkeypatch.setenv("LOG_MAX_BYTES", "2048")
        monkeypatch.setenv("LOG_BACKUP_COUNT", "2")

        configure_service_logging("test-service", log_level="DEBUG")

        file_handlers = [h for h in logging.root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 2048
        assert file_handlers[0].backupCount == 2
        assert log_file_path.parent.is_dir()
        assert logging.root.level == logging.DEBUG

    def test_explicit_args_override_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LOG_TO_FILE", "false")
        explicit_path = tmp_path / "explicit.log"

        configure_service_logging(
            "test-service", log_to_file=True, log_file_path=str(explicit_path)
        )

        file_handlers = [h for h in logging.root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename) == explicit_path

    def test_repeated_configuration_does_not_stack_handlers(self) -> None:
        configure_service_logging("test-service")
        configure_service_logging("test-service")

        assert len(logging.root.handlers) == 1


def test_create_service_logger_binds_name() -> None:
    logger = create_service_logger("client.event_channel")

    assert structlog.get_context(logger)["logger_name"] == "client.event_channel"


def test_log_channel_event_binds_event_context() -> None:
    logger = create_service_logger("test")
    event = ChannelEvent(
        event_name=ChannelEventName.GENERATION_PROGRESS,
        payload={"generationId": "gen-1", "progress": 40},
    )

    log_channel_event(logger, "Dispatching event", event)

    context = get_contextvars()
    assert context["event_name"] == "generation_progress"
    assert "received_at" in context
