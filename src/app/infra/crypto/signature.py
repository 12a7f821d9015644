"""Assinatura HMAC-SHA256 e janela de timestamp para webhooks de parceiros.

Formato do header de assinatura: ``sha256=<hex>``, calculado sobre
``"{timestamp}.{raw_body}"`` com o secret compartilhado.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def _signed_message(raw_body: bytes, timestamp: str | int) -> bytes:
    return f"{timestamp}.".encode() + raw_body


def sign_payload(raw_body: bytes, timestamp: str | int, secret: str) -> str:
    """Gera a assinatura de um payload.

    Args:
        raw_body: Corpo bruto da requisição
        timestamp: Unix seconds enviado em X-Timestamp
        secret: Secret compartilhado com o parceiro

    Returns:
        Assinatura no formato ``sha256=<hex>``
    """
    digest = hmac.new(
        secret.encode("utf-8"),
        _signed_message(raw_body, timestamp),
        hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(
    signature: str,
    raw_body: bytes,
    timestamp: str | int,
    secret: str,
) -> bool:
    """Valida assinatura em tempo constante.

    Aceita o hex com ou sem o prefixo ``sha256=``.

    Args:
        signature: Valor do header X-Signature / X-Webhook-Signature
        raw_body: Corpo bruto da requisição
        timestamp: Timestamp usado na assinatura
        secret: Secret compartilhado

    Returns:
        True se a assinatura confere
    """
    if not signature or not secret:
        return False
    provided = signature.strip()
    if provided.startswith(SIGNATURE_PREFIX):
        provided = provided[len(SIGNATURE_PREFIX):]
    expected = sign_payload(raw_body, timestamp, secret)[len(SIGNATURE_PREFIX):]
    return hmac.compare_digest(expected.encode(), provided.lower().encode())


def parse_timestamp(value: str | None) -> int | None:
    """Converte X-Timestamp em int; None se ausente ou não numérico."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def is_timestamp_fresh(timestamp: int, now: float, max_age_seconds: int) -> bool:
    """Verifica ``|now - timestamp| <= max_age`` (passado e futuro)."""
    return abs(now - timestamp) <= max_age_seconds


def constant_time_equals(left: str, right: str) -> bool:
    """Comparação de strings em tempo constante."""
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))
