"""Stores em memória: apenas para desenvolvimento e testes.

ATENÇÃO: não usar em staging/production. Sem persistência entre reinícios
e sem compartilhamento entre instâncias.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from app.protocols.security_store import (
    IdempotencyEntry,
    IdempotencyStoreProtocol,
    NonceStoreProtocol,
    RateLimitEntry,
    RateLimitStoreProtocol,
)
from app.protocols.storage import TelemedicineStorageProtocol

if TYPE_CHECKING:
    from collections.abc import Callable

    from app.domain.telemedicine import (
        ConsultationRecord,
        MedicalRecord,
        PrescriptionRecord,
        Provider,
    )

RecordT = TypeVar("RecordT", bound=BaseModel)


class MemoryRateLimitStore(RateLimitStoreProtocol):
    """Janela fixa em memória: dev/test."""

    def __init__(self) -> None:
        self._store: dict[str, RateLimitEntry] = {}
        self._lock = asyncio.Lock()

    def _cleanup_expired(self, now: float) -> None:
        expired = [k for k, v in self._store.items() if v.window_reset_time < now]
        for k in expired:
            del self._store[k]

    async def hit(self, identifier: str, window_seconds: int, now: float) -> RateLimitEntry:
        async with self._lock:
            self._cleanup_expired(now)
            entry = self._store.get(identifier)
            if entry is None or now > entry.window_reset_time:
                entry = RateLimitEntry(count=1, window_reset_time=now + window_seconds)
            else:
                entry = RateLimitEntry(
                    count=entry.count + 1,
                    window_reset_time=entry.window_reset_time,
                )
            self._store[identifier] = entry
            return entry

    async def size(self, now: float) -> int:
        async with self._lock:
            self._cleanup_expired(now)
            return len(self._store)


class MemoryNonceStore(NonceStoreProtocol):
    """Nonces usados em memória: dev/test."""

    def __init__(self) -> None:
        self._store: dict[str, float] = {}  # nonce -> expires_at
        self._lock = asyncio.Lock()

    def _cleanup_expired(self, now: float) -> None:
        expired = [k for k, v in self._store.items() if v < now]
        for k in expired:
            del self._store[k]

    async def consume(self, nonce: str, ttl_seconds: int, now: float) -> bool:
        async with self._lock:
            self._cleanup_expired(now)
            if nonce in self._store:
                return False
            self._store[nonce] = now + ttl_seconds
            return True

    async def size(self, now: float) -> int:
        async with self._lock:
            self._cleanup_expired(now)
            return len(self._store)


class MemoryIdempotencyStore(IdempotencyStoreProtocol):
    """Respostas cacheadas em memória: dev/test.

    Args:
        clock: Relógio em unix seconds; o gateway injeta o mesmo relógio.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._store: dict[str, tuple[IdempotencyEntry, float]] = {}  # key -> (entry, expires_at)
        self._lock = asyncio.Lock()
        self._clock = clock

    def _cleanup_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._store.items() if expires_at < now]
        for k in expired:
            del self._store[k]

    async def get(self, key: str) -> IdempotencyEntry | None:
        async with self._lock:
            self._cleanup_expired(self._clock())
            item = self._store.get(key)
            return item[0] if item is not None else None

    async def save(self, key: str, entry: IdempotencyEntry, ttl_seconds: int) -> None:
        async with self._lock:
            now = self._clock()
            self._cleanup_expired(now)
            self._store[key] = (entry, now + ttl_seconds)

    async def size(self, now: float) -> int:
        async with self._lock:
            self._cleanup_expired(now)
            return len(self._store)

class MemoryTelemedicineStorage(TelemedicineStorageProtocol):
    """Storage de telemedicina em memória: dev/test.

    Registros são copiados na entrada e na saída para que chamadores não
    alterem o estado interno por referência.
    """

    def __init__(self, providers: list[Provider] | None = None) -> None:
        self._providers: dict[str, Provider] = {p.id: p.model_copy(deep=True) for p in providers or []}
        self._consultations: dict[str, ConsultationRecord] = {}
        self._prescriptions: dict[str, PrescriptionRecord] = {}
        self._medical_records: dict[str, MedicalRecord] = {}

    # Helpers

    @staticmethod
    def _find(
        table: dict[str, RecordT], provider_id: str, external_field: str, external_id: str
    ) -> RecordT | None:
        for record in table.values():
            if (
                getattr(record, "provider_id") == provider_id
                and getattr(record, external_field) == external_id
            ):
                return record.model_copy(deep=True)
        return None

    @staticmethod
    def _create(table: dict[str, RecordT], record: RecordT) -> RecordT:
        record_id = str(uuid.uuid4())
        stored = record.model_copy(update={"id": record_id}, deep=True)
        table[record_id] = stored
        return stored.model_copy(deep=True)

    @staticmethod
    def _update(
        table: dict[str, RecordT], record_id: str, changes: dict[str, Any]
    ) -> RecordT | None:
        current = table.get(record_id)
        if current is None:
            return None
        updated = current.model_copy(update={**changes, "id": record_id}, deep=True)
        table[record_id] = updated
        return updated.model_copy(deep=True)

    # Providers

    def add_provider(self, provider: Provider) -> None:
        """Registra provider (apenas dev/test)."""
        self._providers[provider.id] = provider.model_copy(deep=True)

    async def list_active_providers(self) -> list[Provider]:
        return [p.model_copy(deep=True) for p in self._providers.values() if p.is_active]

    async def get_provider(self, provider_id: str) -> Provider | None:
        provider = self._providers.get(provider_id)
        return provider.model_copy(deep=True) if provider else None

    async def update_provider(self, provider_id: str, **changes: Any) -> Provider | None:
        provider = self._providers.get(provider_id)
        if provider is None:
            return None
        updated = provider.model_copy(update=changes, deep=True)
        self._providers[provider_id] = updated
        return updated.model_copy(deep=True)

    # Consultations

    async def get_consultation_by_external_id(
        self, provider_id: str, external_id: str
    ) -> ConsultationRecord | None:
        return self._find(
            self._consultations, provider_id, "external_consultation_id", external_id
        )

    async def create_consultation(self, record: ConsultationRecord) -> ConsultationRecord:
        return self._create(self._consultations, record)

    async def update_consultation(
        self, record_id: str, changes: dict[str, Any]
    ) -> ConsultationRecord | None:
        return self._update(self._consultations, record_id, changes)

    # Prescriptions

    async def get_prescription_by_external_id(
        self, provider_id: str, external_id: str
    ) -> PrescriptionRecord | None:
        return self._find(
            self._prescriptions, provider_id, "external_prescription_id", external_id
        )

    async def create_prescription(self, record: PrescriptionRecord) -> PrescriptionRecord:
        return self._create(self._prescriptions, record)

    async def update_prescription(
        self, record_id: str, changes: dict[str, Any]
    ) -> PrescriptionRecord | None:
        return self._update(self._prescriptions, record_id, changes)

    # Medical records

    async def get_medical_record_by_external_id(
        self, provider_id: str, external_id: str
    ) -> MedicalRecord | None:
        return self._find(self._medical_records, provider_id, "external_record_id", external_id)

    async def create_medical_record(self, record: MedicalRecord) -> MedicalRecord:
        return self._create(self._medical_records, record)

    async def update_medical_record(
        self, record_id: str, changes: dict[str, Any]
    ) -> MedicalRecord | None:
        return self._update(self._medical_records, record_id, changes)

    # Inspeção (apenas testes)

    def count(self, table: str) -> int:
        """Quantidade de registros em `consultations|prescriptions|medical_records`."""
        return len(
            {
                "consultations": self._consultations,
                "prescriptions": self._prescriptions,
                "medical_records": self._medical_records,
            }[table]
        )
