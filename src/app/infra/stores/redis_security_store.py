"""Stores de segurança em Redis (Upstash compatível).

- Rate limit: INCR + EXPIRE na primeira batida da janela
- Nonce: SET NX EX (atômico entre instâncias)
- Idempotência: JSON com SETEX

Contrato de Keys:
    Identificadores e nonces são opacos. Nunca passar PII como key.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import TYPE_CHECKING

from app.protocols.security_store import (
    IdempotencyEntry,
    IdempotencyStoreProtocol,
    NonceStoreProtocol,
    RateLimitEntry,
    RateLimitStoreProtocol,
)
from utils.errors import RedisConnectionError

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "webhook:"


def _mask(key: str) -> str:
    return key[:8] + "..." if len(key) > 8 else key


async def _count_keys(redis_client: AsyncRedis, pattern: str) -> int:
    """Conta chaves por padrão via SCAN (o TTL do Redis já expira as antigas)."""
    try:
        count = 0
        async for _ in redis_client.scan_iter(match=pattern, count=500):
            count += 1
    except Exception as exc:
        raise RedisConnectionError("Falha ao contar chaves no Redis") from exc
    return count


class RedisRateLimitStore(RateLimitStoreProtocol):
    """Janela fixa com INCR + EXPIRE.

    A janela começa no primeiro INCR da chave; o TTL da chave define
    `window_reset_time`.
    """

    def __init__(self, redis_client: AsyncRedis, prefix: str = DEFAULT_PREFIX) -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, identifier: str) -> str:
        return f"{self._prefix}ratelimit:{identifier}"

    async def hit(self, identifier: str, window_seconds: int, now: float) -> RateLimitEntry:
        key = self._key(identifier)
        try:
            pipeline = self._redis.pipeline()
            pipeline.incr(key)
            pipeline.ttl(key)
            count, ttl = await pipeline.execute()
            if int(ttl) < 0:
                await self._redis.expire(key, window_seconds)
                ttl = window_seconds
        except Exception as exc:
            raise RedisConnectionError("Falha ao consultar rate limit no Redis") from exc
        return RateLimitEntry(count=int(count), window_reset_time=now + int(ttl))

    async def size(self, now: float) -> int:
        return await _count_keys(self._redis, self._key("*"))


class RedisNonceStore(NonceStoreProtocol):
    """Nonces com SET NX EX."""

    def __init__(self, redis_client: AsyncRedis, prefix: str = DEFAULT_PREFIX) -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, nonce: str) -> str:
        return f"{self._prefix}nonce:{nonce}"

    async def consume(self, nonce: str, ttl_seconds: int, now: float) -> bool:
        try:
            was_set = await self._redis.set(self._key(nonce), str(int(now)), nx=True, ex=ttl_seconds)
        except Exception as exc:
            raise RedisConnectionError("Falha ao registrar nonce no Redis") from exc
        if not was_set:
            logger.debug("nonce_replay_detected", extra={"nonce": _mask(nonce)})
        return bool(was_set)

    async def size(self, now: float) -> int:
        return await _count_keys(self._redis, self._key("*"))


class RedisIdempotencyStore(IdempotencyStoreProtocol):
    """Respostas cacheadas como JSON (corpo em base64 para preservar bytes)."""

    def __init__(self, redis_client: AsyncRedis, prefix: str = DEFAULT_PREFIX) -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}idempotency:{key}"

    async def get(self, key: str) -> IdempotencyEntry | None:
        try:
            raw = await self._redis.get(self._key(key))
        except Exception as exc:
            raise RedisConnectionError("Falha ao ler idempotência no Redis") from exc
        if raw is None:
            return None
        data = json.loads(raw)
        return IdempotencyEntry(
            response=base64.b64decode(data["response"]),
            status_code=int(data["status_code"]),
            timestamp=float(data["timestamp"]),
            headers=dict(data.get("headers") or {}),
        )

    async def save(self, key: str, entry: IdempotencyEntry, ttl_seconds: int) -> None:
        payload = json.dumps(
            {
                "response": base64.b64encode(entry.response).decode("ascii"),
                "status_code": entry.status_code,
                "timestamp": entry.timestamp,
                "headers": entry.headers,
            }
        )
        try:
            await self._redis.setex(self._key(key), ttl_seconds, payload)
        except Exception as exc:
            raise RedisConnectionError("Falha ao gravar idempotência no Redis") from exc
        logger.debug("idempotency_saved", extra={"key": _mask(key), "ttl": ttl_seconds})

    async def size(self, now: float) -> int:
        return await _count_keys(self._redis, self._key("*"))
