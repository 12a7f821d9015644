"""Testes dos endpoints de health e readiness."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.requests import Request

from api.routes.health.router import health_check, readiness_check


def _build_request_with_state(state: SimpleNamespace) -> Request:
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/ready",
        "raw_path": b"/ready",
        "query_string": b"",
        "headers": [],
        "app": SimpleNamespace(state=state),
    }

    async def _receive() -> dict[str, object]:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, _receive)


def _services(*, enabled: bool = True, running: bool = True) -> SimpleNamespace:
    return SimpleNamespace(
        sync_settings=SimpleNamespace(enabled=enabled),
        scheduler=SimpleNamespace(is_running=running),
    )


def _payload(response) -> dict:
    return json.loads(response.body.decode("utf-8"))


@pytest.mark.asyncio
async def test_health_reports_service_name() -> None:
    response = await health_check()

    assert response.status == "healthy"
    assert response.service == "telemed-integracao"


@pytest.mark.asyncio
async def test_readiness_returns_not_ready_without_services() -> None:
    request = _build_request_with_state(
        SimpleNamespace(redis_client=None, redis_required=True, services=None)
    )

    response = await readiness_check(request)
    payload = _payload(response)

    assert response.status_code == 503
    assert payload["status"] == "not_ready"
    assert payload["checks"]["redis"] == {
        "status": "failed",
        "latency_ms": None,
        "error": "not_configured",
    }
    assert payload["checks"]["sync_scheduler"]["error"] == "not_initialized"


@pytest.mark.asyncio
async def test_readiness_returns_ready_when_dependencies_are_ok() -> None:
    redis_client = MagicMock()
    redis_client.ping = AsyncMock(return_value=True)
    request = _build_request_with_state(
        SimpleNamespace(redis_client=redis_client, redis_required=True, services=_services())
    )

    response = await readiness_check(request)
    payload = _payload(response)

    assert response.status_code == 200
    assert payload["status"] == "ready"
    assert payload["checks"]["redis"]["status"] == "ok"
    assert payload["checks"]["sync_scheduler"]["status"] == "ok"


@pytest.mark.asyncio
async def test_optional_redis_and_disabled_scheduler_are_degraded() -> None:
    request = _build_request_with_state(
        SimpleNamespace(
            redis_client=None, redis_required=False, services=_services(enabled=False)
        )
    )

    response = await readiness_check(request)
    payload = _payload(response)

    assert response.status_code == 200
    assert payload["checks"]["redis"]["status"] == "degraded"
    assert payload["checks"]["sync_scheduler"] == {
        "status": "degraded",
        "latency_ms": None,
        "error": "disabled",
    }


@pytest.mark.asyncio
async def test_readiness_fails_when_redis_ping_errors() -> None:
    redis_client = MagicMock()
    redis_client.ping = AsyncMock(side_effect=ConnectionError("down"))
    request = _build_request_with_state(
        SimpleNamespace(redis_client=redis_client, redis_required=True, services=_services())
    )

    response = await readiness_check(request)

    assert response.status_code == 503
    assert _payload(response)["checks"]["redis"]["error"] == "ConnectionError"


@pytest.mark.asyncio
async def test_stopped_scheduler_is_not_ready() -> None:
    request = _build_request_with_state(
        SimpleNamespace(
            redis_client=None, redis_required=False, services=_services(running=False)
        )
    )

    response = await readiness_check(request)

    assert response.status_code == 503
    assert _payload(response)["checks"]["sync_scheduler"]["error"] == "not_running"
