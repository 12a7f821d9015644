"""Filter que injeta contexto de rastreamento em cada record.

Campos: service, environment e os devolvidos pelo getter de contexto
(correlation_id, sync_job_id). Valores passados via `extra` vencem.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

CONTEXT_FIELDS = ("correlation_id", "sync_job_id")


class LogContextFilter(logging.Filter):
    """Enriquece records sem filtrar nenhum.

    Args:
        service_name: Nome do serviço nos logs.
        environment: Ambiente (development, staging, production).
        context_getter: Retorna os campos de contexto atuais; ausente = vazios.
    """

    def __init__(
        self,
        service_name: str,
        environment: str = "development",
        context_getter: Callable[[], Mapping[str, str]] | None = None,
    ) -> None:
        super().__init__()
        self._service_name = service_name
        self._environment = environment
        self._context_getter = context_getter

    def filter(self, record: logging.LogRecord) -> bool:
        context = self._context_getter() if self._context_getter else {}
        for name in CONTEXT_FIELDS:
            if not getattr(record, name, None):
                setattr(record, name, context.get(name, ""))
        record.service = self._service_name
        record.environment = self._environment
        return True
