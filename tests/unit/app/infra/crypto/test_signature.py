"""Testes de assinatura HMAC e janela de timestamp."""

from __future__ import annotations

import hashlib
import hmac

from app.infra.crypto import (
    SIGNATURE_PREFIX,
    constant_time_equals,
    is_timestamp_fresh,
    parse_timestamp,
    sign_payload,
    verify_signature,
)

SECRET = "shared-secret"
BODY = b'{"id":"c-1","status":"completed"}'


def test_sign_payload_covers_timestamp_and_body() -> None:
    expected = hmac.new(SECRET.encode(), b"1700000000." + BODY, hashlib.sha256).hexdigest()
    assert sign_payload(BODY, 1700000000, SECRET) == f"{SIGNATURE_PREFIX}{expected}"


def test_verify_accepts_with_and_without_prefix() -> None:
    signature = sign_payload(BODY, "1700000000", SECRET)
    assert verify_signature(signature, BODY, "1700000000", SECRET)
    assert verify_signature(signature[len(SIGNATURE_PREFIX):], BODY, "1700000000", SECRET)


def test_verify_rejects_tampered_body() -> None:
    signature = sign_payload(BODY, 1700000000, SECRET)
    assert not verify_signature(signature, BODY + b" ", 1700000000, SECRET)


def test_verify_rejects_other_timestamp() -> None:
    signature = sign_payload(BODY, 1700000000, SECRET)
    assert not verify_signature(signature, BODY, 1700000001, SECRET)


def test_verify_rejects_wrong_secret_and_empty_values() -> None:
    signature = sign_payload(BODY, 1, SECRET)
    assert not verify_signature(signature, BODY, 1, "other")
    assert not verify_signature("", BODY, 1, SECRET)
    assert not verify_signature(signature, BODY, 1, "")


def test_parse_timestamp() -> None:
    assert parse_timestamp("1700000000") == 1700000000
    assert parse_timestamp(" 42 ") == 42
    assert parse_timestamp("abc") is None
    assert parse_timestamp(None) is None


def test_timestamp_window_is_symmetric() -> None:
    now = 1_000_000.0
    assert is_timestamp_fresh(int(now) - 300, now, 300)
    assert is_timestamp_fresh(int(now) + 300, now, 300)
    assert not is_timestamp_fresh(int(now) - 301, now, 300)
    assert not is_timestamp_fresh(int(now) + 301, now, 300)


def test_constant_time_equals() -> None:
    assert constant_time_equals("abc", "abc")
    assert not constant_time_equals("abc", "abd")
    assert not constant_time_equals("abc", "abcd")
