"""Testes do pipeline do WebhookSecurityGateway."""

from __future__ import annotations

import json
from typing import Any

import pytest

from api.security import GatewayResponse, WebhookSecurityConfig, WebhookSecurityGateway
from app.infra.stores import MemoryIdempotencyStore, MemoryNonceStore, MemoryRateLimitStore
from tests.fakes.webhooks import TEST_SECRET, make_webhook_request
from utils.errors import InfrastructureError

NOW = 1_717_243_200


async def _no_sleep(_delay: float) -> None:
    return None


class RecordingHandler:
    def __init__(self, status_code: int = 201) -> None:
        self.status_code = status_code
        self.payloads: list[dict[str, Any]] = []

    async def __call__(self, payload: dict[str, Any]) -> GatewayResponse:
        self.payloads.append(payload)
        return GatewayResponse.json(
            self.status_code, {"received": payload.get("id"), "call": len(self.payloads)}
        )


def _gateway(
    *,
    now: list[float] | None = None,
    idempotency_store: Any = None,
    **overrides: Any,
) -> WebhookSecurityGateway:
    clock = now if now is not None else [float(NOW)]
    return WebhookSecurityGateway(
        WebhookSecurityConfig(secret=TEST_SECRET, **overrides),
        MemoryRateLimitStore(),
        MemoryNonceStore(),
        idempotency_store or MemoryIdempotencyStore(),
        clock=lambda: clock[0],
        sleep=_no_sleep,
    )


def _body(response: GatewayResponse) -> dict[str, Any]:
    return json.loads(response.body)


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_valid_request_reaches_handler(self) -> None:
        handler = RecordingHandler()
        response = await _gateway().process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW), handler
        )

        assert response.status_code == 201
        assert handler.payloads == [{"id": "c-1"}]

    @pytest.mark.asyncio
    async def test_accepts_alternate_signature_header_without_prefix(self) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW)
        signature = request.headers.pop("x-signature").removeprefix("sha256=")
        request.headers["x-webhook-signature"] = signature

        response = await _gateway().process(request, RecordingHandler())

        assert response.status_code == 201


class TestTimestamp:
    @pytest.mark.asyncio
    async def test_missing_timestamp(self) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW, headers={"x-timestamp": ""})
        handler = RecordingHandler()

        response = await _gateway().process(request, handler)

        assert response.status_code == 401
        assert _body(response) == {"error": "Missing timestamp"}
        assert handler.payloads == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("skew", [-301, 301])
    async def test_stale_or_future_timestamp(self, skew: int) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW + skew)

        response = await _gateway().process(request, RecordingHandler())

        assert response.status_code == 401
        assert _body(response)["error"] == "Invalid or expired timestamp"

    @pytest.mark.asyncio
    async def test_non_numeric_timestamp(self) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW, headers={"x-timestamp": "ontem"})

        response = await _gateway().process(request, RecordingHandler())

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_boundary_age_is_accepted(self) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW - 300)

        response = await _gateway().process(request, RecordingHandler())

        assert response.status_code == 201


class TestSignature:
    @pytest.mark.asyncio
    async def test_missing_signature(self) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW, headers={"x-signature": ""})

        response = await _gateway().process(request, RecordingHandler())

        assert response.status_code == 401
        assert _body(response) == {"error": "Missing signature"}

    @pytest.mark.asyncio
    async def test_tampered_body(self) -> None:
        original = make_webhook_request({"id": "c-1"}, timestamp=NOW)
        tampered = make_webhook_request(
            {"id": "c-2"},
            timestamp=NOW,
            headers={"x-signature": original.headers["x-signature"]},
        )

        response = await _gateway().process(tampered, RecordingHandler())

        assert response.status_code == 401
        assert _body(response) == {"error": "Invalid signature"}

    @pytest.mark.asyncio
    async def test_wrong_secret(self) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW, secret="other")

        response = await _gateway().process(request, RecordingHandler())

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_signature_check_can_be_disabled(self) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW, headers={"x-signature": ""})

        response = await _gateway(require_signature=False).process(request, RecordingHandler())

        assert response.status_code == 201


class TestNonce:
    @pytest.mark.asyncio
    async def test_reused_nonce_is_replay_attack(self) -> None:
        gateway = _gateway()
        handler = RecordingHandler()

        first = await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, nonce="n-1"), handler
        )
        second = await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, nonce="n-1"), handler
        )

        assert first.status_code == 201
        assert second.status_code == 403
        assert _body(second) == {"error": "Nonce already used"}
        assert len(handler.payloads) == 1

    @pytest.mark.asyncio
    async def test_nonce_required(self) -> None:
        request = make_webhook_request({"id": "c-1"}, timestamp=NOW)

        response = await _gateway(require_nonce=True).process(request, RecordingHandler())

        assert response.status_code == 401
        assert _body(response) == {"error": "Missing nonce"}


class TestJson:
    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        request = make_webhook_request(None, timestamp=NOW, raw_body=b"{not json")

        response = await _gateway().process(request, RecordingHandler())

        assert response.status_code == 400
        assert _body(response) == {"error": "Invalid JSON payload"}

    @pytest.mark.asyncio
    async def test_json_array_is_rejected(self) -> None:
        request = make_webhook_request([1, 2], timestamp=NOW)

        response = await _gateway().process(request, RecordingHandler())

        assert response.status_code == 400


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_limit_per_provider_key(self) -> None:
        gateway = _gateway(rate_limit_max_requests=2)
        handler = RecordingHandler()

        statuses = []
        for _ in range(3):
            request = make_webhook_request(
                {"id": "c-1"}, timestamp=NOW, headers={"x-provider-key": "partner-a"}
            )
            statuses.append((await gateway.process(request, handler)).status_code)
        other = make_webhook_request(
            {"id": "c-1"}, timestamp=NOW, headers={"x-provider-key": "partner-b"}
        )

        assert statuses == [201, 201, 429]
        assert (await gateway.process(other, handler)).status_code == 201

    @pytest.mark.asyncio
    async def test_rejection_carries_retry_after(self) -> None:
        gateway = _gateway(rate_limit_max_requests=1, rate_limit_window_seconds=60)
        handler = RecordingHandler()
        await gateway.process(make_webhook_request({}, timestamp=NOW), handler)

        response = await gateway.process(make_webhook_request({}, timestamp=NOW), handler)

        assert response.status_code == 429
        body = _body(response)
        assert body["error"] == "Rate limit exceeded"
        assert 0 < body["retry_after"] <= 60
        assert response.headers["retry-after"] == str(body["retry_after"])

    @pytest.mark.asyncio
    async def test_rate_limit_runs_before_signature(self) -> None:
        gateway = _gateway(rate_limit_max_requests=0)
        request = make_webhook_request({}, timestamp=NOW, headers={"x-signature": "sha256=bad"})

        response = await gateway.process(request, RecordingHandler())

        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_window_reset_allows_requests_again(self) -> None:
        now = [float(NOW)]
        gateway = _gateway(now=now, rate_limit_max_requests=1, rate_limit_window_seconds=60)
        handler = RecordingHandler()

        first = await gateway.process(make_webhook_request({}, timestamp=NOW), handler)
        blocked = await gateway.process(make_webhook_request({}, timestamp=NOW), handler)
        now[0] += 61
        later = await gateway.process(make_webhook_request({}, timestamp=NOW + 61), handler)

        assert [first.status_code, blocked.status_code, later.status_code] == [201, 429, 201]


class TestIdempotency:
    @pytest.mark.asyncio
    async def test_second_delivery_replays_first_response(self) -> None:
        gateway = _gateway()
        handler = RecordingHandler()

        first = await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"), handler
        )
        second = await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"), handler
        )

        assert len(handler.payloads) == 1
        assert second.body == first.body
        assert second.status_code == first.status_code
        assert second.replayed is True
        assert second.headers["x-idempotent-replay"] == "true"

    @pytest.mark.asyncio
    async def test_replay_skips_validation(self) -> None:
        gateway = _gateway()
        handler = RecordingHandler()
        await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"), handler
        )

        stale = make_webhook_request(
            {"id": "c-1"}, timestamp=NOW - 10_000, idempotency_key="evt-1"
        )
        response = await gateway.process(stale, handler)

        assert response.status_code == 201
        assert response.replayed is True

    @pytest.mark.asyncio
    async def test_server_errors_are_not_cached(self) -> None:
        gateway = _gateway()
        failing = RecordingHandler(status_code=503)
        ok = RecordingHandler()

        await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"), failing
        )
        retried = await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"), ok
        )

        assert retried.status_code == 201
        assert retried.replayed is False

    @pytest.mark.asyncio
    async def test_handler_exception_propagates_and_is_not_cached(self) -> None:
        gateway = _gateway()

        async def broken(_payload: dict[str, Any]) -> GatewayResponse:
            raise LookupError("boom")

        with pytest.raises(LookupError):
            await gateway.process(
                make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"),
                broken,
            )

        ok = RecordingHandler()
        response = await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"), ok
        )
        assert response.status_code == 201
        assert len(ok.payloads) == 1


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_store_outage_becomes_internal_validation_error(self) -> None:
        class BrokenIdempotencyStore(MemoryIdempotencyStore):
            def __init__(self) -> None:
                super().__init__()
                self.calls = 0

            async def get(self, key: str):
                self.calls += 1
                raise InfrastructureError("redis down")

        store = BrokenIdempotencyStore()
        handler = RecordingHandler()
        response = await _gateway(idempotency_store=store).process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"),
            handler,
        )

        assert response.status_code == 500
        assert _body(response) == {"error": "Internal validation error"}
        assert store.calls == 2
        assert handler.payloads == []

    @pytest.mark.asyncio
    async def test_save_failure_still_returns_handler_response(self) -> None:
        class FailingSaveStore(MemoryIdempotencyStore):
            def __init__(self) -> None:
                super().__init__()
                self.save_calls = 0

            async def save(self, key: str, entry: Any, ttl_seconds: int) -> None:
                self.save_calls += 1
                raise InfrastructureError("redis down on save")

        store = FailingSaveStore()
        handler = RecordingHandler()
        gateway = _gateway(idempotency_store=store)

        response = await gateway.process(
            make_webhook_request({"id": "c-1"}, timestamp=NOW, idempotency_key="evt-1"),
            handler,
        )

        assert response.status_code == 201
        assert response.replayed is False
        assert store.save_calls == 2
        assert len(handler.payloads) == 1
        assert await store.get("evt-1") is None


def test_config_from_settings_applies_overrides() -> None:
    from config.settings import WebhookSecuritySettings

    settings = WebhookSecuritySettings(hmac_secret="s3cret", rate_limit_max_requests=5)

    config = WebhookSecurityConfig.from_settings(settings, require_nonce=True)

    assert config.secret == "s3cret"
    assert config.rate_limit_max_requests == 5
    assert config.require_nonce is True


@pytest.mark.asyncio
async def test_stats_count_active_entries() -> None:
    gateway = _gateway()
    handler = RecordingHandler()
    await gateway.process(
        make_webhook_request(
            {"id": "c-1"},
            timestamp=NOW,
            nonce="n-1",
            idempotency_key="evt-1",
            headers={"x-provider-key": "partner-a"},
        ),
        handler,
    )
    await gateway.process(
        make_webhook_request(
            {"id": "c-2"}, timestamp=NOW, nonce="n-2", headers={"x-provider-key": "partner-b"}
        ),
        handler,
    )

    assert await gateway.get_stats() == {
        "rate_limit_entries": 2,
        "nonce_entries": 2,
        "idempotency_entries": 1,
    }
