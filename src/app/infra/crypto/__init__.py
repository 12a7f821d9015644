"""Primitivas criptográficas do gateway de webhooks.

Localizado em app/infra/ para que gateways e testes compartilhem o mesmo
cálculo de assinatura.
"""

from .signature import (
    SIGNATURE_PREFIX,
    constant_time_equals,
    is_timestamp_fresh,
    parse_timestamp,
    sign_payload,
    verify_signature,
)

__all__ = [
    "SIGNATURE_PREFIX",
    "constant_time_equals",
    "is_timestamp_fresh",
    "parse_timestamp",
    "sign_payload",
    "verify_signature",
]
