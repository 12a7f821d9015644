"""Stores: implementações concretas de persistência.

Módulos disponíveis:
    - memory_stores: rate limit, nonce, idempotência e storage de telemedicina em memória
    - redis_security_store: rate limit, nonce e idempotência em Redis (Upstash)
"""

from __future__ import annotations

from app.infra.stores.memory_stores import (
    MemoryIdempotencyStore,
    MemoryNonceStore,
    MemoryRateLimitStore,
    MemoryTelemedicineStorage,
)
from app.infra.stores.redis_security_store import (
    RedisIdempotencyStore,
    RedisNonceStore,
    RedisRateLimitStore,
)

__all__ = [
    # Memory (dev/test)
    "MemoryIdempotencyStore",
    "MemoryNonceStore",
    "MemoryRateLimitStore",
    "MemoryTelemedicineStorage",
    # Redis (Upstash)
    "RedisIdempotencyStore",
    "RedisNonceStore",
    "RedisRateLimitStore",
]
