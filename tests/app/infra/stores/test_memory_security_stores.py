"""Testes dos stores de segurança e do storage de telemedicina em memória."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from app.domain.telemedicine import ConsultationRecord, Provider
from app.infra.stores import (
    MemoryIdempotencyStore,
    MemoryNonceStore,
    MemoryRateLimitStore,
    MemoryTelemedicineStorage,
)
from app.protocols.security_store import IdempotencyEntry


class TestMemoryRateLimitStore:
    @pytest.mark.asyncio
    async def test_counts_within_window(self) -> None:
        store = MemoryRateLimitStore()
        first = await store.hit("prov-a", 60, now=1000.0)
        second = await store.hit("prov-a", 60, now=1010.0)

        assert first.count == 1
        assert second.count == 2
        assert second.window_reset_time == 1060.0

    @pytest.mark.asyncio
    async def test_window_resets_after_expiry(self) -> None:
        store = MemoryRateLimitStore()
        await store.hit("prov-a", 60, now=1000.0)
        entry = await store.hit("prov-a", 60, now=1061.0)

        assert entry.count == 1
        assert entry.window_reset_time == 1121.0

    @pytest.mark.asyncio
    async def test_identifiers_are_isolated(self) -> None:
        store = MemoryRateLimitStore()
        await store.hit("prov-a", 60, now=1000.0)
        entry = await store.hit("prov-b", 60, now=1000.0)
        assert entry.count == 1

    def test_retry_after_is_at_least_one_second(self) -> None:
        from app.protocols.security_store import RateLimitEntry

        entry = RateLimitEntry(count=101, window_reset_time=1000.2)
        assert entry.retry_after(1000.0) == 1
        assert entry.retry_after(990.5) == 10


class TestMemoryNonceStore:
    @pytest.mark.asyncio
    async def test_nonce_is_single_use(self) -> None:
        store = MemoryNonceStore()
        assert await store.consume("n-1", 3600, now=1000.0) is True
        assert await store.consume("n-1", 3600, now=1001.0) is False

    @pytest.mark.asyncio
    async def test_nonce_reusable_after_expiry(self) -> None:
        store = MemoryNonceStore()
        await store.consume("n-1", 10, now=1000.0)
        assert await store.consume("n-1", 10, now=1011.0) is True


class TestMemoryIdempotencyStore:
    @pytest.mark.asyncio
    async def test_save_and_get(self) -> None:
        store = MemoryIdempotencyStore()
        entry = IdempotencyEntry(response=b'{"a":1}', status_code=201, timestamp=1.0)
        await store.save("key-1", entry, 60)

        assert await store.get("key-1") == entry
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_expired_entry_is_dropped(self) -> None:
        store = MemoryIdempotencyStore()
        entry = IdempotencyEntry(response=b"x", status_code=200, timestamp=1.0)
        await store.save("key-1", entry, -1)
        assert await store.get("key-1") is None

    @pytest.mark.asyncio
    async def test_expired_entries_are_swept_on_save(self) -> None:
        clock = [1000.0]
        store = MemoryIdempotencyStore(clock=lambda: clock[0])
        entry = IdempotencyEntry(response=b"x", status_code=200, timestamp=1000.0)
        for index in range(50):
            await store.save(f"old-{index}", entry, 10)

        clock[0] = 1011.0
        await store.save("fresh", entry, 10)

        assert await store.size(now=clock[0]) == 1
        assert await store.get("fresh") == entry
        assert await store.get("old-0") is None


class TestStoreSizes:
    @pytest.mark.asyncio
    async def test_rate_limit_counts_active_windows(self) -> None:
        store = MemoryRateLimitStore()
        await store.hit("prov-a", 60, now=1000.0)
        await store.hit("prov-b", 60, now=1030.0)

        assert await store.size(now=1030.0) == 2
        assert await store.size(now=1061.0) == 1

    @pytest.mark.asyncio
    async def test_nonce_counts_unexpired(self) -> None:
        store = MemoryNonceStore()
        await store.consume("n-1", 10, now=1000.0)
        await store.consume("n-2", 100, now=1000.0)

        assert await store.size(now=1005.0) == 2
        assert await store.size(now=1011.0) == 1


def _consultation(external_id: str = "ext-1", status: str = "scheduled") -> ConsultationRecord:
    return ConsultationRecord(
        provider_id="prov-1",
        external_consultation_id=external_id,
        consultation_type="video",
        scheduled_at=datetime(2024, 5, 1, 14, 0, tzinfo=UTC),
        status=status,
    )


class TestMemoryTelemedicineStorage:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_find_by_external_id(self) -> None:
        storage = MemoryTelemedicineStorage()
        created = await storage.create_consultation(_consultation())

        assert created.id
        found = await storage.get_consultation_by_external_id("prov-1", "ext-1")
        assert found is not None
        assert found.id == created.id
        assert await storage.get_consultation_by_external_id("prov-2", "ext-1") is None

    @pytest.mark.asyncio
    async def test_update_keeps_id(self) -> None:
        storage = MemoryTelemedicineStorage()
        created = await storage.create_consultation(_consultation())

        updated = await storage.update_consultation(created.id, {"status": "completed"})

        assert updated is not None
        assert updated.id == created.id
        assert updated.status == "completed"
        assert storage.count("consultations") == 1

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self) -> None:
        storage = MemoryTelemedicineStorage()
        created = await storage.create_consultation(_consultation())
        created.status = "tampered"

        found = await storage.get_consultation_by_external_id("prov-1", "ext-1")
        assert found is not None
        assert found.status == "scheduled"

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self) -> None:
        storage = MemoryTelemedicineStorage()
        assert await storage.update_consultation("nope", {"status": "x"}) is None

    @pytest.mark.asyncio
    async def test_providers(self) -> None:
        active = Provider(id="p1", name="Ativo", api_url="https://a.test")
        inactive = Provider(id="p2", name="Inativo", api_url="https://b.test", is_active=False)
        storage = MemoryTelemedicineStorage([active, inactive])

        assert [p.id for p in await storage.list_active_providers()] == ["p1"]
        updated = await storage.update_provider("p1", integration_status="active")
        assert updated is not None
        assert updated.integration_status == "active"
        assert await storage.update_provider("missing", integration_status="x") is None
