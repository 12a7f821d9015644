"""Combinador genérico de retry assíncrono com backoff progressivo.

Compartilhado pelo cliente dos parceiros e pelas chamadas de storage do
caminho de webhooks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BACKOFF_SCHEDULE: tuple[float, ...] = (1.0, 3.0, 5.0, 10.0)


def backoff_delay(attempt: int, schedule: Sequence[float]) -> float:
    """Espera antes da próxima tentativa; o último valor é o teto.

    Args:
        attempt: Índice da tentativa que falhou (0-based)
        schedule: Esperas progressivas em segundos

    Returns:
        Segundos de espera
    """
    if not schedule:
        return 0.0
    return schedule[min(attempt, len(schedule) - 1)]


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    backoff_schedule: Sequence[float] = DEFAULT_BACKOFF_SCHEDULE,
    is_retryable: Callable[[BaseException], bool] = lambda exc: False,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    operation_name: str = "operation",
) -> T:
    """Executa `operation` com até `max_attempts` tentativas.

    Exceções não-retentáveis propagam imediatamente. Retentáveis propagam
    após a última tentativa.

    Args:
        operation: Fábrica de awaitable (chamada a cada tentativa)
        max_attempts: Tentativas totais (inclui a primeira)
        backoff_schedule: Esperas entre tentativas
        is_retryable: Classificador da exceção
        sleep: Função de espera (injetável em testes)
        operation_name: Nome para logs

    Returns:
        Resultado da primeira tentativa bem-sucedida

    Raises:
        ValueError: Se max_attempts < 1
    """
    if max_attempts < 1:
        raise ValueError("max_attempts deve ser >= 1")

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            attempt += 1
            if not is_retryable(exc) or attempt >= max_attempts:
                raise
            delay = backoff_delay(attempt - 1, backoff_schedule)
            logger.info(
                "retry_backoff",
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "backoff_seconds": delay,
                    "error_type": type(exc).__name__,
                },
            )
            await sleep(delay)
