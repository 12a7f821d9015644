"""Infra HTTP: cliente httpx base e combinador de retry."""

from app.infra.http.client import (
    PERMANENT_STATUS_CODES,
    HttpClient,
    HttpClientConfig,
    classify_status,
    is_retryable_error,
)
from app.infra.http.retry import DEFAULT_BACKOFF_SCHEDULE, backoff_delay, retry_async

__all__ = [
    "DEFAULT_BACKOFF_SCHEDULE",
    "PERMANENT_STATUS_CODES",
    "HttpClient",
    "HttpClientConfig",
    "backoff_delay",
    "classify_status",
    "is_retryable_error",
    "retry_async",
]
