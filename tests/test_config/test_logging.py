"""Testes abrangentes para config.logging.

Cobre: configure_logging, get_logger, redact_identifier,
LogContextFilter, create_json_formatter.
"""

from __future__ import annotations

import json
import logging

import pytest

from config.logging import (
    CONTEXT_FIELDS,
    FIELD_RENAME_MAP,
    REQUIRED_LOG_FIELDS,
    LogContextFilter,
    configure_logging,
    create_json_formatter,
    get_logger,
    redact_identifier,
)
from config.logging.config import DEFAULT_SERVICE_NAME, VALID_LOG_LEVELS


class TestConfigureLogging:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [
            ("INFO", logging.INFO),
            ("debug", logging.DEBUG),
            ("warning", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("CRITICAL", logging.CRITICAL),
        ],
    )
    def test_level_is_case_insensitive(self, level: str, expected: int) -> None:
        configure_logging(level=level)
        assert logging.getLogger().level == expected

    def test_invalid_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Nível de log inválido"):
            configure_logging(level="VERBOSE")
        assert "VERBOSE" not in VALID_LOG_LEVELS

    def test_single_handler_replaces_previous(self) -> None:
        root = logging.getLogger()
        root.handlers = [logging.NullHandler(), logging.NullHandler()]
        configure_logging(context_getter=lambda: {"correlation_id": "wh-1"})

        assert len(root.handlers) == 1
        assert any(isinstance(f, LogContextFilter) for f in root.handlers[0].filters)

    def test_default_service_name(self) -> None:
        assert DEFAULT_SERVICE_NAME == "telemed_integracao"

    def test_get_logger_is_module_logger(self) -> None:
        assert get_logger("app.services.sync_scheduler") is logging.getLogger(
            "app.services.sync_scheduler"
        )


class TestRedactIdentifier:
    """Testes para redact_identifier."""

    def test_redact_returns_hash_prefix(self) -> None:
        """Retorna prefixo sha256 com o tamanho pedido."""
        redacted = redact_identifier("partner-key-123")
        assert redacted is not None
        assert len(redacted) == 12
        assert "partner" not in redacted

    def test_redact_is_deterministic(self) -> None:
        """Mesmo valor gera mesmo prefixo (correlacionável nos logs)."""
        assert redact_identifier("10.0.0.1") == redact_identifier("10.0.0.1")
        assert redact_identifier("10.0.0.1") != redact_identifier("10.0.0.2")

    def test_redact_custom_length(self) -> None:
        assert len(redact_identifier("abc", length=6) or "") == 6

    def test_redact_empty_returns_none(self) -> None:
        assert redact_identifier(None) is None
        assert redact_identifier("") is None


class TestLogContextFilter:
    """Testes para LogContextFilter."""

    @staticmethod
    def _record() -> logging.LogRecord:
        return logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg="sync_job_transition",
            args=(),
            exc_info=None,
        )

    def test_filter_adds_context_service_and_environment(self) -> None:
        filter_ = LogContextFilter(
            "telemed_integracao",
            "production",
            lambda: {"correlation_id": "full-sync-abc", "sync_job_id": "full-sync-abc"},
        )
        record = self._record()

        assert filter_.filter(record) is True
        assert record.correlation_id == "full-sync-abc"
        assert record.sync_job_id == "full-sync-abc"
        assert record.service == "telemed_integracao"
        assert record.environment == "production"

    def test_filter_preserves_explicit_extra(self) -> None:
        filter_ = LogContextFilter("svc", context_getter=lambda: {"correlation_id": "from-context"})
        record = self._record()
        record.correlation_id = "explicit-id"

        filter_.filter(record)

        assert record.correlation_id == "explicit-id"

    def test_filter_replaces_explicit_none(self) -> None:
        """extra com None (ex.: métricas sem id) recebe o contexto."""
        filter_ = LogContextFilter("svc", context_getter=lambda: {"correlation_id": "wh-9"})
        record = self._record()
        record.correlation_id = None

        filter_.filter(record)

        assert record.correlation_id == "wh-9"

    def test_filter_without_getter_uses_empty_fields(self) -> None:
        filter_ = LogContextFilter("service_name")
        record = self._record()

        filter_.filter(record)

        assert all(getattr(record, name) == "" for name in CONTEXT_FIELDS)
        assert record.environment == "development"


class TestCreateJsonFormatter:
    """Testes para create_json_formatter e constantes."""

    def test_required_log_fields_include_context(self) -> None:
        assert set(CONTEXT_FIELDS) <= set(REQUIRED_LOG_FIELDS)
        assert {"service", "environment", "message"} <= set(REQUIRED_LOG_FIELDS)

    def test_field_rename_map_content(self) -> None:
        assert FIELD_RENAME_MAP == {"asctime": "timestamp", "levelname": "level", "name": "logger"}

    def test_create_json_formatter_returns_formatter(self) -> None:
        """create_json_formatter retorna JsonFormatter."""
        from pythonjsonlogger.json import JsonFormatter

        formatter = create_json_formatter()
        assert isinstance(formatter, JsonFormatter)

    def test_json_formatter_formats_record(self) -> None:
        """JsonFormatter formata record como JSON."""
        formatter = create_json_formatter()
        record = logging.LogRecord(
            name="test.logger",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg="Test message",
            args=(),
            exc_info=None,
        )
        record.correlation_id = "abc-123"
        record.sync_job_id = ""
        record.service = "test_service"
        record.environment = "staging"

        data = json.loads(formatter.format(record))

        assert data["message"] == "Test message"
        assert data["logger"] == "test.logger"
        assert data["level"] == "INFO"
        assert data["environment"] == "staging"
        assert "timestamp" in data


class TestEmittedLine:
    def test_sync_job_log_line_carries_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(
            level="INFO",
            service_name="telemed_integracao",
            environment="staging",
            context_getter=lambda: {
                "correlation_id": "full-sync-abc123",
                "sync_job_id": "full-sync-abc123",
            },
        )

        get_logger("app.services.sync_scheduler").info(
            "sync_job_transition", extra={"status": "completed"}
        )

        line = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert line["message"] == "sync_job_transition"
        assert line["sync_job_id"] == "full-sync-abc123"
        assert line["environment"] == "staging"
        assert line["status"] == "completed"
