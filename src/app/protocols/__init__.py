"""Protocolos e contratos do core da aplicação."""

from .provider_client import ProviderClientProtocol
from .security_store import (
    IdempotencyEntry,
    IdempotencyStoreProtocol,
    NonceStoreProtocol,
    RateLimitEntry,
    RateLimitStoreProtocol,
)
from .storage import TelemedicineStorageProtocol

__all__ = [
    "IdempotencyEntry",
    "IdempotencyStoreProtocol",
    "NonceStoreProtocol",
    "ProviderClientProtocol",
    "RateLimitEntry",
    "RateLimitStoreProtocol",
    "TelemedicineStorageProtocol",
]
