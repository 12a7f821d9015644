"""Formatter JSON (python-json-logger) com os campos fixos do serviço.

Exemplo de linha:
    {"timestamp": "2026-02-02T10:30:00+0000", "level": "INFO",
     "logger": "app.services.sync_scheduler", "message": "sync_job_transition",
     "correlation_id": "incremental-sync-3f9a1c2b7d4e",
     "sync_job_id": "incremental-sync-3f9a1c2b7d4e",
     "service": "telemed_integracao", "environment": "production",
     "status": "completed"}
"""

from __future__ import annotations

from pythonjsonlogger.json import JsonFormatter

REQUIRED_LOG_FIELDS = (
    "asctime",
    "levelname",
    "name",
    "message",
    "correlation_id",
    "sync_job_id",
    "service",
    "environment",
)

FIELD_RENAME_MAP = {
    "asctime": "timestamp",
    "levelname": "level",
    "name": "logger",
}

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def create_json_formatter() -> JsonFormatter:
    """JsonFormatter com campos na ordem de REQUIRED_LOG_FIELDS."""
    return JsonFormatter(
        " ".join(f"%({field})s" for field in REQUIRED_LOG_FIELDS),
        rename_fields=FIELD_RENAME_MAP,
        datefmt=TIMESTAMP_FORMAT,
    )
