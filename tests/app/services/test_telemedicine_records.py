"""Testes do TelemedicineRecordService (upserts por chave externa)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from app.infra.stores import MemoryTelemedicineStorage
from app.services import TelemedicineRecordService
from tests.fakes.telemedicine import (
    consultation_payload,
    make_provider,
    medical_record_payload,
    prescription_payload,
)
from utils.errors import InfrastructureError, LinkResolutionError, TransformError


@pytest.fixture
def storage() -> MemoryTelemedicineStorage:
    return MemoryTelemedicineStorage([make_provider()])


@pytest.fixture
def service(storage: MemoryTelemedicineStorage) -> TelemedicineRecordService:
    return TelemedicineRecordService(storage)


class TestUpsertConsultation:
    @pytest.mark.asyncio
    async def test_create_then_update_same_external_id(
        self, service: TelemedicineRecordService, storage: MemoryTelemedicineStorage
    ) -> None:
        created, action = await service.upsert_consultation("prov-1", consultation_payload())
        updated, second_action = await service.upsert_consultation(
            "prov-1", consultation_payload(status="cancelled")
        )

        assert action == "created"
        assert second_action == "updated"
        assert updated.id == created.id
        assert updated.status == "cancelled"
        assert storage.count("consultations") == 1

    @pytest.mark.asyncio
    async def test_same_external_id_other_provider_is_distinct(
        self, service: TelemedicineRecordService, storage: MemoryTelemedicineStorage
    ) -> None:
        await service.upsert_consultation("prov-1", consultation_payload())
        _, action = await service.upsert_consultation("prov-2", consultation_payload())
        assert action == "created"
        assert storage.count("consultations") == 2

    @pytest.mark.asyncio
    async def test_invalid_payload_is_not_persisted(
        self, service: TelemedicineRecordService, storage: MemoryTelemedicineStorage
    ) -> None:
        with pytest.raises(TransformError):
            await service.upsert_consultation("prov-1", {"id": "c-9"})
        assert storage.count("consultations") == 0


class TestDependents:
    @pytest.mark.asyncio
    async def test_prescription_without_parent_is_rejected(
        self, service: TelemedicineRecordService, storage: MemoryTelemedicineStorage
    ) -> None:
        with pytest.raises(LinkResolutionError) as exc_info:
            await service.upsert_prescription("prov-1", prescription_payload(consultation_id="nope"))

        assert exc_info.value.external_consultation_id == "nope"
        assert storage.count("prescriptions") == 0

    @pytest.mark.asyncio
    async def test_prescription_links_parent(self, service: TelemedicineRecordService) -> None:
        consultation, _ = await service.upsert_consultation("prov-1", consultation_payload())
        prescription, action = await service.upsert_prescription("prov-1", prescription_payload())

        assert action == "created"
        assert prescription.telemedicine_consultation_id == consultation.id

    @pytest.mark.asyncio
    async def test_medical_record_without_consultation_is_allowed(
        self, service: TelemedicineRecordService
    ) -> None:
        record, action = await service.upsert_medical_record(
            "prov-1", medical_record_payload(consultation_id=None)
        )
        assert action == "created"
        assert record.telemedicine_consultation_id is None

    @pytest.mark.asyncio
    async def test_medical_record_with_unknown_consultation_is_rejected(
        self, service: TelemedicineRecordService, storage: MemoryTelemedicineStorage
    ) -> None:
        with pytest.raises(LinkResolutionError):
            await service.upsert_medical_record("prov-1", medical_record_payload())
        assert storage.count("medical_records") == 0


class TestStatusUpdate:
    @pytest.mark.asyncio
    async def test_updates_status_and_known_fields(self, service: TelemedicineRecordService) -> None:
        await service.upsert_consultation("prov-1", consultation_payload(status="scheduled"))

        updated = await service.update_consultation_status(
            "prov-1",
            "c-1",
            "completed",
            sync_status="pending",
            update_data={"diagnosis": "CID-10 G89", "unknown_field": 1},
        )

        assert updated is not None
        assert updated.status == "completed"
        assert updated.sync_status == "pending"
        assert updated.diagnosis == "CID-10 G89"

    @pytest.mark.asyncio
    async def test_missing_consultation_returns_none(self, service: TelemedicineRecordService) -> None:
        assert await service.update_consultation_status("prov-1", "nope", "completed") is None

    @pytest.mark.asyncio
    async def test_invalid_update_data_raises(self, service: TelemedicineRecordService) -> None:
        await service.upsert_consultation("prov-1", consultation_payload())
        with pytest.raises(ValidationError):
            await service.update_consultation_status(
                "prov-1", "c-1", "completed", update_data={"scheduled_at": "not-a-date"}
            )


class TestStorageRetry:
    @pytest.mark.asyncio
    async def test_infrastructure_errors_are_retried(self) -> None:
        storage = AsyncMock()
        storage.get_consultation_by_external_id.side_effect = [
            InfrastructureError("blip"),
            None,
        ]
        storage.create_consultation.side_effect = lambda record: record.model_copy(
            update={"id": "new"}
        )
        sleeps: list[float] = []

        async def sleep(delay: float) -> None:
            sleeps.append(delay)

        service = TelemedicineRecordService(
            storage, storage_attempts=2, backoff_schedule=(0.1,), sleep=sleep
        )
        record, action = await service.upsert_consultation("prov-1", consultation_payload())

        assert action == "created"
        assert record.id == "new"
        assert sleeps == [0.1]
