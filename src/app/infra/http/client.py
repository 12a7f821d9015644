"""Cliente HTTP base (httpx) com timeout independente e retry por classificação."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from app.infra.http.retry import DEFAULT_BACKOFF_SCHEDULE, retry_async
from utils.errors import ProviderAuthError, ProviderRequestError, TransientNetworkError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# 400/401/403/404 nunca são retentados
PERMANENT_STATUS_CODES = frozenset({400, 401, 403, 404})


@dataclass
class HttpClientConfig:
    """Configuração do cliente HTTP."""

    timeout_seconds: float = 30.0
    max_attempts: int = 3
    backoff_schedule: tuple[float, ...] = DEFAULT_BACKOFF_SCHEDULE
    default_headers: dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True


def classify_status(status_code: int) -> type[ProviderRequestError] | None:
    """Mapeia status HTTP para a classe de erro (None = sucesso)."""
    if status_code < 400:
        return None
    if status_code in PERMANENT_STATUS_CODES:
        return ProviderAuthError
    return TransientNetworkError


def is_retryable_error(exc: BaseException) -> bool:
    """Somente falhas transitórias são retentadas."""
    return isinstance(exc, TransientNetworkError)


class HttpClient:
    """Cliente HTTP para chamadas externas.

    Cada chamada tem timeout próprio. Timeouts, falhas de conexão, 429 e 5xx
    viram TransientNetworkError e são retentados até o limite.
    """

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._config = config or HttpClientConfig()
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self._config.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Fecha o pool de conexões."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """GET com retry; retorna apenas respostas 2xx/3xx.

        Raises:
            ProviderAuthError: 400/401/403/404
            TransientNetworkError: Demais falhas, após esgotar tentativas
        """
        merged_headers = {**self._config.default_headers, **(headers or {})}

        async def _attempt() -> httpx.Response:
            return await self._send_once("GET", url, params, merged_headers)

        return await retry_async(
            _attempt,
            max_attempts=self._config.max_attempts,
            backoff_schedule=self._config.backoff_schedule,
            is_retryable=is_retryable_error,
            sleep=self._sleep,
            operation_name=f"GET {httpx.URL(url).path}",
        )

    async def _send_once(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str],
    ) -> httpx.Response:
        try:
            response = await self._get_client().request(
                method,
                url,
                params=params,
                headers=headers,
                timeout=self._config.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise TransientNetworkError("http_timeout") from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError("http_connection_error") from exc

        error_class = classify_status(response.status_code)
        if error_class is not None:
            logger.warning(
                "http_error_status",
                extra={
                    "method": method,
                    "endpoint": httpx.URL(url).path,
                    "status_code": response.status_code,
                    "retryable": error_class is TransientNetworkError,
                },
            )
            raise error_class(
                f"http_status_{response.status_code}",
                status_code=response.status_code,
            )
        return response
