"""Captura explícita de respostas para replay idempotente."""

from __future__ import annotations

import functools
import logging
import time
from typing import TYPE_CHECKING, Any

from api.security.models import GatewayResponse
from app.protocols.security_store import IdempotencyEntry
from utils.errors import InfrastructureError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


def capture_idempotent_response(
    save: Callable[[str, IdempotencyEntry, int], Awaitable[None]],
    key: str,
    ttl_seconds: int,
    *,
    clock: Callable[[], float] = time.time,
) -> Callable[
    [Callable[[dict[str, Any]], Awaitable[GatewayResponse]]],
    Callable[[dict[str, Any]], Awaitable[GatewayResponse]],
]:
    """Decorator que grava a primeira resposta do handler sob `key`.

    Respostas 5xx e exceções do handler não são gravadas, para que o
    parceiro possa reenviar.

    Falha ao gravar (InfrastructureError) não desfaz o que o handler já
    persistiu: loga `idempotency_save_failed` e devolve a resposta.
    """

    def decorator(
        handler: Callable[[dict[str, Any]], Awaitable[GatewayResponse]],
    ) -> Callable[[dict[str, Any]], Awaitable[GatewayResponse]]:
        @functools.wraps(handler)
        async def wrapper(payload: dict[str, Any]) -> GatewayResponse:
            response = await handler(payload)
            if response.status_code < 500:
                entry = IdempotencyEntry(
                    response=response.body,
                    status_code=response.status_code,
                    timestamp=clock(),
                    headers=dict(response.headers),
                )
                try:
                    await save(key, entry, ttl_seconds)
                except InfrastructureError as exc:
                    logger.warning(
                        "idempotency_save_failed",
                        extra={"status_code": response.status_code, "error_type": type(exc).__name__},
                    )
                else:
                    logger.debug(
                        "idempotent_response_captured",
                        extra={"status_code": response.status_code},
                    )
            return response

        return wrapper

    return decorator


def replay_response(entry: IdempotencyEntry) -> GatewayResponse:
    """Reconstrói a resposta cacheada byte a byte."""
    return GatewayResponse(
        status_code=entry.status_code,
        body=entry.response,
        headers={**entry.headers, "x-idempotent-replay": "true"},
        replayed=True,
    )
