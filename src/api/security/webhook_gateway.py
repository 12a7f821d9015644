"""Gateway de segurança dos webhooks de parceiros.

Pipeline por request, nesta ordem, com curto-circuito na primeira falha:

1. Rate limit (janela fixa por identificador)
2. Lookup de idempotência (replay sem reinvocar o handler)
3. Buffer do corpo bruto
4. Janela de timestamp
5. Nonce de uso único
6. Assinatura HMAC-SHA256 sobre "{timestamp}.{body}"
7. Decode do JSON
8. Handler, com captura explícita da resposta quando há chave de idempotência

Toda rejeição é terminal e vira evento de segurança.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import weakref
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from api.security.events import log_security_event
from api.security.idempotency import capture_idempotent_response, replay_response
from api.security.models import GatewayResponse, WebhookRequest
from app.infra.crypto import is_timestamp_fresh, parse_timestamp, verify_signature
from app.infra.http import retry_async
from app.observability import record_security_rejection
from config.logging import redact_identifier
from utils.errors import InfrastructureError, SecurityViolationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from app.protocols.security_store import (
        IdempotencyEntry,
        IdempotencyStoreProtocol,
        NonceStoreProtocol,
        RateLimitStoreProtocol,
    )
    from config.settings import WebhookSecuritySettings

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("x-signature", "x-webhook-signature")
TIMESTAMP_HEADER = "x-timestamp"
NONCE_HEADER = "x-nonce"
IDEMPOTENCY_HEADER = "x-idempotency-key"
PROVIDER_KEY_HEADER = "x-provider-key"


def default_rate_limit_identifier(request: WebhookRequest) -> str:
    """X-Provider-Key, senão IP do cliente."""
    return request.header(PROVIDER_KEY_HEADER) or request.client_ip or "unknown"


@dataclass(frozen=True)
class WebhookSecurityConfig:
    """Configuração de uma instância do gateway."""

    secret: str
    require_signature: bool = True
    require_timestamp: bool = True
    require_nonce: bool = False
    enable_rate_limit: bool = True
    enable_idempotency: bool = True
    max_timestamp_age_seconds: int = 300
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 100
    nonce_expiry_seconds: int = 3600
    idempotency_ttl_seconds: int = 86400
    rate_limit_identifier: Callable[[WebhookRequest], str] = default_rate_limit_identifier
    store_attempts: int = 2

    @classmethod
    def from_settings(cls, settings: WebhookSecuritySettings, **overrides: Any) -> WebhookSecurityConfig:
        values: dict[str, Any] = {
            "secret": settings.hmac_secret,
            "require_nonce": settings.require_nonce,
            "max_timestamp_age_seconds": settings.max_timestamp_age_seconds,
            "rate_limit_window_seconds": settings.rate_limit_window_seconds,
            "rate_limit_max_requests": settings.rate_limit_max_requests,
            "nonce_expiry_seconds": settings.nonce_expiry_seconds,
            "idempotency_ttl_seconds": settings.idempotency_ttl_seconds,
        }
        values.update(overrides)
        return cls(**values)


def _is_infrastructure_error(exc: BaseException) -> bool:
    return isinstance(exc, InfrastructureError)


class WebhookSecurityGateway:
    """Pipeline de validação em frente aos handlers de webhook.

    Args:
        config: WebhookSecurityConfig
        rate_limit_store: Store de janelas de rate limit
        nonce_store: Store de nonces usados
        idempotency_store: Store de respostas cacheadas
        clock: Relógio em unix seconds (injetável em testes)
    """

    def __init__(
        self,
        config: WebhookSecurityConfig,
        rate_limit_store: RateLimitStoreProtocol,
        nonce_store: NonceStoreProtocol,
        idempotency_store: IdempotencyStoreProtocol,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._rate_limits = rate_limit_store
        self._nonces = nonce_store
        self._idempotency = idempotency_store
        self._clock = clock
        self._sleep = sleep
        self._key_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def config(self) -> WebhookSecurityConfig:
        return self._config

    async def process(
        self,
        request: WebhookRequest,
        handler: Callable[[dict[str, Any]], Awaitable[GatewayResponse]],
    ) -> GatewayResponse:
        """Valida o request e invoca o handler com o payload decodificado.

        Exceções do handler propagam (e não são cacheadas).

        Returns:
            Resposta do handler, replay cacheado ou rejeição.
        """
        identifier = self._config.rate_limit_identifier(request)
        context = {"identifier": redact_identifier(identifier), "endpoint": request.path}
        try:
            await self._check_rate_limit(identifier, context)

            idempotency_key = (
                request.header(IDEMPOTENCY_HEADER) if self._config.enable_idempotency else None
            )
            async with AsyncExitStack() as stack:
                if idempotency_key:
                    await stack.enter_async_context(self._lock_for(idempotency_key))
                    cached = await self._store_call(
                        lambda: self._idempotency.get(idempotency_key), "idempotency.get"
                    )
                    if cached is not None:
                        log_security_event(
                            "idempotent_replay", idempotency_key=idempotency_key, **context
                        )
                        return replay_response(cached)

                payload = await self._validate(request, context)

                wrapped = handler
                if idempotency_key:
                    wrapped = capture_idempotent_response(
                        self._save_idempotent_response,
                        idempotency_key,
                        self._config.idempotency_ttl_seconds,
                        clock=self._clock,
                    )(handler)

                log_security_event("webhook_validated", **context)
                return await self._run_handler(wrapped, payload)
        except SecurityViolationError as exc:
            return self._reject(exc, context)
        except _HandlerFailure as failure:
            raise failure.original from failure.original.__cause__
        except Exception as exc:
            logger.exception("webhook_validation_crashed", extra=context)
            log_security_event(
                "validation_error", reason=type(exc).__name__, **context
            )
            return GatewayResponse.json(500, {"error": "Internal validation error"})

    async def _run_handler(
        self,
        handler: Callable[[dict[str, Any]], Awaitable[GatewayResponse]],
        payload: dict[str, Any],
    ) -> GatewayResponse:
        try:
            return await handler(payload)
        except Exception as exc:
            raise _HandlerFailure(exc) from exc

    async def _save_idempotent_response(
        self, key: str, entry: IdempotencyEntry, ttl_seconds: int
    ) -> None:
        await self._store_call(
            lambda: self._idempotency.save(key, entry, ttl_seconds), "idempotency.save"
        )

    async def get_stats(self) -> dict[str, int]:
        """Quantidade de entradas ativas em cada store de segurança."""
        now = self._clock()
        return {
            "rate_limit_entries": await self._rate_limits.size(now),
            "nonce_entries": await self._nonces.size(now),
            "idempotency_entries": await self._idempotency.size(now),
        }

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[key] = lock
        return lock

    async def _store_call(self, factory: Callable[[], Awaitable[Any]], name: str) -> Any:
        return await retry_async(
            factory,
            max_attempts=self._config.store_attempts,
            backoff_schedule=(0.1, 0.3),
            is_retryable=_is_infrastructure_error,
            sleep=self._sleep,
            operation_name=name,
        )

    async def _check_rate_limit(self, identifier: str, context: dict[str, Any]) -> None:
        if not self._config.enable_rate_limit:
            return
        now = self._clock()
        entry = await self._store_call(
            lambda: self._rate_limits.hit(identifier, self._config.rate_limit_window_seconds, now),
            "rate_limit.hit",
        )
        if entry.count > self._config.rate_limit_max_requests:
            retry_after = entry.retry_after(now)
            raise SecurityViolationError(
                "Rate limit exceeded",
                status_code=429,
                reason="rate_limit_exceeded",
                retry_after=retry_after,
            )

    async def _validate(self, request: WebhookRequest, context: dict[str, Any]) -> dict[str, Any]:
        raw_body = request.raw_body
        now = self._clock()

        timestamp_header = request.header(TIMESTAMP_HEADER)
        timestamp = parse_timestamp(timestamp_header)
        if self._config.require_timestamp:
            if timestamp_header is None:
                raise SecurityViolationError(
                    "Missing timestamp", status_code=401, reason="missing_timestamp"
                )
            if timestamp is None or not is_timestamp_fresh(
                timestamp, now, self._config.max_timestamp_age_seconds
            ):
                raise SecurityViolationError(
                    "Invalid or expired timestamp", status_code=401, reason="invalid_timestamp"
                )

        nonce = request.header(NONCE_HEADER)
        if self._config.require_nonce and nonce is None:
            raise SecurityViolationError("Missing nonce", status_code=401, reason="missing_nonce")
        if nonce is not None and (self._config.require_nonce or self._config.require_timestamp):
            fresh = await self._store_call(
                lambda: self._nonces.consume(nonce, self._config.nonce_expiry_seconds, now),
                "nonce.consume",
            )
            if not fresh:
                raise SecurityViolationError(
                    "Nonce already used", status_code=403, reason="replay_attack_detected"
                )

        signature = next(
            (value for name in SIGNATURE_HEADERS if (value := request.header(name))),
            None,
        )
        if self._config.require_signature:
            if signature is None:
                raise SecurityViolationError(
                    "Missing signature", status_code=401, reason="missing_signature"
                )
            signed_timestamp = timestamp_header if timestamp_header is not None else str(int(now))
            if not verify_signature(signature, raw_body, signed_timestamp, self._config.secret):
                log_security_event("signature_mismatch", signature=signature, **context)
                raise SecurityViolationError(
                    "Invalid signature", status_code=401, reason="invalid_signature"
                )

        try:
            payload = json.loads(raw_body or b"{}")
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SecurityViolationError(
                "Invalid JSON payload", status_code=400, reason="invalid_json"
            ) from exc
        if not isinstance(payload, dict):
            raise SecurityViolationError(
                "JSON payload must be an object", status_code=400, reason="invalid_json"
            )
        return payload

    def _reject(self, exc: SecurityViolationError, context: dict[str, Any]) -> GatewayResponse:
        log_security_event(exc.reason, status_code=exc.status_code, **context)
        record_security_rejection(exc.reason, exc.status_code)
        content: dict[str, Any] = {"error": exc.message}
        headers: dict[str, str] = {}
        if exc.retry_after is not None:
            content["retry_after"] = exc.retry_after
            headers["retry-after"] = str(exc.retry_after)
        return GatewayResponse.json(exc.status_code, content, headers)


class _HandlerFailure(Exception):
    """Transporta exceções do handler para fora do pipeline de validação."""

    def __init__(self, original: Exception) -> None:
        super().__init__(str(original))
        self.original = original
