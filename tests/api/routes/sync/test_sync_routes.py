"""Testes dos endpoints administrativos de sync."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from app.app import create_app
from app.bootstrap.container import AppServices
from tests.fakes.app_services import ADMIN_API_KEY, PARTNER_API_KEY, build_test_services

ADMIN_HEADERS = {"x-api-key": ADMIN_API_KEY}


@pytest.fixture
def services() -> AppServices:
    return build_test_services()


@pytest.fixture
def client(services: AppServices) -> Iterator[TestClient]:
    with TestClient(create_app(services=services)) as test_client:
        yield test_client


def test_requires_admin_key(client: TestClient) -> None:
    missing = client.get("/api/sync/status")
    partner = client.get("/api/sync/status", headers={"x-api-key": PARTNER_API_KEY})

    assert missing.status_code == 401
    assert missing.json() == {"error": "API key required"}
    assert partner.status_code == 401
    assert partner.json() == {"error": "Invalid API key"}


def test_status(client: TestClient) -> None:
    response = client.get("/api/sync/status", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["scheduler"]["is_running"] is False
    assert body["providers"][0]["provider_id"] == "prov-1"
    assert body["providers"][0]["client_active"] is False
    assert body["webhook_security"] == {
        "rate_limit_entries": 0,
        "nonce_entries": 0,
        "idempotency_entries": 0,
    }
    assert "timestamp" in body


def test_trigger_and_lookup_job(client: TestClient) -> None:
    triggered = client.post("/api/sync/trigger", json={"type": "full"}, headers=ADMIN_HEADERS)

    assert triggered.status_code == 200
    job_id = triggered.json()["job_id"]
    assert triggered.json()["message"] == "full sync triggered successfully"

    job = client.get(f"/api/sync/jobs/{job_id}", headers=ADMIN_HEADERS)
    assert job.status_code == 200
    assert job.json()["type"] == "full"

    jobs = client.get("/api/sync/jobs", headers=ADMIN_HEADERS)
    assert [item["id"] for item in jobs.json()] == [job_id]


def test_trigger_defaults_to_incremental(client: TestClient) -> None:
    response = client.post("/api/sync/trigger", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json()["job_id"].startswith("incremental-sync-")


def test_trigger_rejects_backfill(client: TestClient) -> None:
    response = client.post("/api/sync/trigger", json={"type": "backfill"}, headers=ADMIN_HEADERS)

    assert response.status_code == 400
    assert response.json() == {"message": "Invalid sync type. Use 'full' or 'incremental'"}


def test_unknown_job(client: TestClient) -> None:
    response = client.get("/api/sync/jobs/missing", headers=ADMIN_HEADERS)

    assert response.status_code == 404
    assert response.json() == {"message": "Job not found"}
