"""Factories de stores baseadas em configuração de ambiente."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from app.domain.telemedicine import Provider
from app.infra.stores import (
    MemoryIdempotencyStore,
    MemoryNonceStore,
    MemoryRateLimitStore,
    MemoryTelemedicineStorage,
    RedisIdempotencyStore,
    RedisNonceStore,
    RedisRateLimitStore,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

    from app.protocols.security_store import (
        IdempotencyStoreProtocol,
        NonceStoreProtocol,
        RateLimitStoreProtocol,
    )
    from config.settings import SecurityStoreSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecurityStores:
    """Trio de stores do gateway de webhooks."""

    rate_limit: RateLimitStoreProtocol
    nonce: NonceStoreProtocol
    idempotency: IdempotencyStoreProtocol


def create_security_stores(
    settings: SecurityStoreSettings,
    redis_client: AsyncRedis | None = None,
) -> SecurityStores:
    """Cria stores de rate limit, nonce e idempotência.

    Args:
        settings: SecurityStoreSettings (backend e prefixo)
        redis_client: Cliente obrigatório quando backend == "redis"

    Raises:
        ValueError: Backend redis sem cliente.
    """
    if settings.backend == "redis":
        if redis_client is None:
            msg = "SECURITY_STORE_BACKEND=redis requer REDIS_URL"
            raise ValueError(msg)
        prefix = settings.key_prefix
        stores = SecurityStores(
            rate_limit=RedisRateLimitStore(redis_client, prefix),
            nonce=RedisNonceStore(redis_client, prefix),
            idempotency=RedisIdempotencyStore(redis_client, prefix),
        )
    else:
        stores = SecurityStores(
            rate_limit=MemoryRateLimitStore(),
            nonce=MemoryNonceStore(),
            idempotency=MemoryIdempotencyStore(),
        )
    logger.info("security_stores_created", extra={"backend": settings.backend})
    return stores


def load_providers_from_file(path: str | os.PathLike[str]) -> list[Provider]:
    """Carrega providers de um arquivo JSON (lista de objetos).

    Raises:
        ValueError: Conteúdo não é lista.
    """
    content = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(content, list):
        msg = f"{path}: esperado lista de providers"
        raise ValueError(msg)
    return [Provider.model_validate(item) for item in content]


def create_telemedicine_storage() -> MemoryTelemedicineStorage:
    """Cria storage em memória, opcionalmente semeado por TELEMEDICINE_PROVIDERS_FILE."""
    providers_file = os.getenv("TELEMEDICINE_PROVIDERS_FILE", "")
    providers = load_providers_from_file(providers_file) if providers_file else []
    logger.info(
        "telemedicine_storage_created",
        extra={"backend": "memory", "provider_count": len(providers)},
    )
    return MemoryTelemedicineStorage(providers)
