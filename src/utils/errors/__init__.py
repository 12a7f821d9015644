"""Exceções utilitárias compartilhadas."""

from .exceptions import (
    InfrastructureError,
    JobExhaustedError,
    LinkResolutionError,
    ProviderAuthError,
    ProviderRequestError,
    RedisConnectionError,
    SecurityViolationError,
    TransformError,
    TransientNetworkError,
)

__all__ = [
    "InfrastructureError",
    "JobExhaustedError",
    "LinkResolutionError",
    "ProviderAuthError",
    "ProviderRequestError",
    "RedisConnectionError",
    "SecurityViolationError",
    "TransformError",
    "TransientNetworkError",
]
