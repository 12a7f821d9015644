"""Contexto de rastreamento injetado nos logs.

Duas origens de correlation_id:
- Webhook de parceiro: header X-Correlation-Id, ou um id `wh-...` gerado
- Execução de job do scheduler: o próprio id do job

ContextVar mantém o valor isolado por task asyncio; jobs disparados em
paralelo ao request não herdam o id do webhook.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_sync_job_id: ContextVar[str] = ContextVar("sync_job_id", default="")

WEBHOOK_ID_PREFIX = "wh-"


def get_correlation_id() -> str:
    """correlation_id atual ou string vazia."""
    return _correlation_id.get()


def get_sync_job_id() -> str:
    """Id do job de sync em execução ou string vazia."""
    return _sync_job_id.get()


def set_correlation_id(correlation_id: str | None = None) -> Token[str]:
    """Define o correlation_id do request de webhook.

    Args:
        correlation_id: Valor enviado pelo parceiro. Se vazio, gera `wh-<hex16>`.

    Returns:
        Token para reset_correlation_id().
    """
    value = correlation_id or f"{WEBHOOK_ID_PREFIX}{uuid.uuid4().hex[:16]}"
    return _correlation_id.set(value)


def reset_correlation_id(token: Token[str]) -> None:
    _correlation_id.reset(token)


@contextmanager
def sync_job_context(job_id: str) -> Iterator[None]:
    """Logs emitidos dentro do bloco carregam o job como correlation_id."""
    correlation_token = _correlation_id.set(job_id)
    job_token = _sync_job_id.set(job_id)
    try:
        yield
    finally:
        _sync_job_id.reset(job_token)
        _correlation_id.reset(correlation_token)


def current_log_context() -> dict[str, str]:
    """Campos de contexto para o filter de logging."""
    return {"correlation_id": _correlation_id.get(), "sync_job_id": _sync_job_id.get()}
