"""Protocolos dos stores de segurança do gateway de webhooks.

Interfaces leves (ABCs) dependidas pelo gateway; backends memory e redis
ficam em app/infra/stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RateLimitEntry:
    """Estado da janela fixa de um identificador."""

    count: int
    window_reset_time: float

    def retry_after(self, now: float) -> int:
        """Segundos restantes da janela (mínimo 1)."""
        return max(1, int(self.window_reset_time - now + 0.999))


@dataclass(frozen=True)
class IdempotencyEntry:
    """Resposta capturada para replay byte a byte."""

    response: bytes
    status_code: int
    timestamp: float
    headers: dict[str, str] = field(default_factory=dict)


class RateLimitStoreProtocol(ABC):
    """Contador de janela fixa por identificador."""

    @abstractmethod
    async def hit(self, identifier: str, window_seconds: int, now: float) -> RateLimitEntry:
        """Conta um request e retorna o estado da janela.

        Cria a janela no primeiro request e reinicia quando
        `now > window_reset_time`. Sempre incrementa, mesmo acima do limite.
        """

    @abstractmethod
    async def size(self, now: float) -> int:
        """Quantidade de janelas ativas."""


class NonceStoreProtocol(ABC):
    """Registro de nonces usados."""

    @abstractmethod
    async def consume(self, nonce: str, ttl_seconds: int, now: float) -> bool:
        """Marca o nonce como usado de forma atômica.

        Returns:
            True se o nonce era inédito; False se é replay.
        """

    @abstractmethod
    async def size(self, now: float) -> int:
        """Quantidade de nonces ainda dentro do TTL."""


class IdempotencyStoreProtocol(ABC):
    """Cache de respostas por chave de idempotência."""

    @abstractmethod
    async def get(self, key: str) -> IdempotencyEntry | None:
        """Retorna a resposta cacheada ou None."""

    @abstractmethod
    async def save(self, key: str, entry: IdempotencyEntry, ttl_seconds: int) -> None:
        """Armazena a primeira resposta sob a chave."""

    @abstractmethod
    async def size(self, now: float) -> int:
        """Quantidade de respostas cacheadas ainda válidas."""
