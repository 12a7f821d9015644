"""Logging estruturado do serviço de integração de telemedicina.

Uso:
    from config.logging import configure_logging, get_logger

    configure_logging(level="INFO", service_name="telemed_integracao")
    logger = get_logger(__name__)
    logger.info("sync_completed", extra={"provider_id": "p1"})

Todo log carrega timestamp, level, logger, message, service, environment,
correlation_id e sync_job_id (vazio fora de jobs).
Payloads clínicos nunca entram em log.
"""

from config.logging.config import configure_logging, get_logger, redact_identifier
from config.logging.filters import CONTEXT_FIELDS, LogContextFilter
from config.logging.formatters import (
    FIELD_RENAME_MAP,
    REQUIRED_LOG_FIELDS,
    create_json_formatter,
)

__all__ = [
    "FIELD_RENAME_MAP",
    "CONTEXT_FIELDS",
    "REQUIRED_LOG_FIELDS",
    "LogContextFilter",
    "configure_logging",
    "create_json_formatter",
    "get_logger",
    "redact_identifier",
]
