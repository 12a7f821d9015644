"""Configuração centralizada de logging JSON."""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING

from config.logging.filters import LogContextFilter
from config.logging.formatters import create_json_formatter

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

DEFAULT_SERVICE_NAME = "telemed_integracao"


def configure_logging(
    level: str = "INFO",
    service_name: str = DEFAULT_SERVICE_NAME,
    environment: str = "development",
    context_getter: Callable[[], Mapping[str, str]] | None = None,
) -> None:
    """Configura logging JSON estruturado para o serviço.

    Deve ser chamada uma vez na inicialização (app/bootstrap/).

    Args:
        level: Nível de log (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        service_name: Nome do serviço para identificação nos logs.
        environment: Ambiente anexado a cada log.
        context_getter: Retorna correlation_id e sync_job_id atuais.

    Raises:
        ValueError: Se o nível de log for inválido.
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Nível de log inválido: {level}. "
            f"Válidos: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    handler = logging.StreamHandler()
    handler.setLevel(level_upper)
    handler.setFormatter(create_json_formatter())
    handler.addFilter(LogContextFilter(service_name, environment, context_getter))

    root = logging.getLogger()
    root.setLevel(level_upper)
    # Substitui handlers existentes para evitar duplicação
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    """Retorna logger do módulo; o filter do handler injeta o contexto."""
    return logging.getLogger(name)


def redact_identifier(value: str | None, *, length: int = 12) -> str | None:
    """Reduz um identificador sensível (API key, IP) a um prefixo de hash.

    Args:
        value: Valor original.
        length: Quantidade de caracteres hex mantidos.

    Returns:
        Prefixo sha256 do valor, ou None se vazio.
    """
    if not value:
        return None
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:length]
