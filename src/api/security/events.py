"""Eventos de segurança estruturados (sem secrets, sem assinatura completa)."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("api.security")

ERROR_EVENTS = frozenset(
    {
        "invalid_signature",
        "invalid_timestamp",
        "missing_signature",
        "missing_timestamp",
        "missing_nonce",
        "replay_attack_detected",
        "rate_limit_exceeded",
        "invalid_api_key",
        "missing_api_key",
    }
)
WARNING_EVENTS = frozenset({"invalid_json", "validation_error"})

# Campos reduzidos a prefixo antes de logar
_MASKED_FIELDS = frozenset({"signature", "api_key", "nonce", "idempotency_key"})


def mask_value(value: str | None, visible: int = 8) -> str | None:
    """Mantém só o prefixo de um valor sensível."""
    if not value:
        return None
    return value[:visible] + "..." if len(value) > visible else value


def log_security_event(event: str, **details: Any) -> None:
    """Emite evento de segurança com nível por tipo.

    Args:
        event: Nome do evento (ex.: "invalid_signature")
        **details: identifier, endpoint, reason e afins
    """
    extra: dict[str, Any] = {"security_event": event}
    for key, value in details.items():
        extra[key] = mask_value(value) if key in _MASKED_FIELDS else value

    if event in ERROR_EVENTS:
        logger.error("security_event", extra=extra)
    elif event in WARNING_EVENTS:
        logger.warning("security_event", extra=extra)
    else:
        logger.info("security_event", extra=extra)
