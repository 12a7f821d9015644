"""Factory do cliente Redis assíncrono usado pelos stores de segurança."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)


def create_async_redis_client(redis_url: str) -> AsyncRedis:
    """Cria cliente Redis assíncrono.

    Args:
        redis_url: URL de conexão (REDIS_URL)

    Returns:
        Cliente Redis assíncrono

    Raises:
        ValueError: Se a URL estiver vazia
    """
    from redis.asyncio import Redis as AsyncRedis

    if not redis_url:
        msg = "REDIS_URL não configurado"
        raise ValueError(msg)

    client: AsyncRedis = AsyncRedis.from_url(
        redis_url,
        decode_responses=False,
        socket_timeout=5.0,
        socket_connect_timeout=5.0,
    )

    host = client.connection_pool.connection_kwargs.get("host", "unknown")
    logger.info("async_redis_client_created", extra={"host": host})
    return client
