"""Protocolo do colaborador de persistência de telemedicina.

O storage real pertence à plataforma; esta camada só depende do contrato
get/create/update por (provider_id, external_id).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.domain.telemedicine import (
        ConsultationRecord,
        MedicalRecord,
        PrescriptionRecord,
        Provider,
    )


class TelemedicineStorageProtocol(ABC):
    """Contrato assíncrono do storage de telemedicina."""

    # Providers

    @abstractmethod
    async def list_active_providers(self) -> list[Provider]:
        """Providers com is_active=True."""

    @abstractmethod
    async def get_provider(self, provider_id: str) -> Provider | None:
        """Provider por id."""

    @abstractmethod
    async def update_provider(self, provider_id: str, **changes: Any) -> Provider | None:
        """Atualiza campos do provider (ex.: last_sync_at, integration_status)."""

    # Consultations

    @abstractmethod
    async def get_consultation_by_external_id(
        self, provider_id: str, external_id: str
    ) -> ConsultationRecord | None:
        """Consulta local pela chave externa."""

    @abstractmethod
    async def create_consultation(self, record: ConsultationRecord) -> ConsultationRecord:
        """Cria consulta e retorna com id local."""

    @abstractmethod
    async def update_consultation(
        self, record_id: str, changes: dict[str, Any]
    ) -> ConsultationRecord | None:
        """Atualiza consulta pelo id local."""

    # Prescriptions

    @abstractmethod
    async def get_prescription_by_external_id(
        self, provider_id: str, external_id: str
    ) -> PrescriptionRecord | None:
        """Receita local pela chave externa."""

    @abstractmethod
    async def create_prescription(self, record: PrescriptionRecord) -> PrescriptionRecord:
        """Cria receita."""

    @abstractmethod
    async def update_prescription(
        self, record_id: str, changes: dict[str, Any]
    ) -> PrescriptionRecord | None:
        """Atualiza receita."""

    # Medical records

    @abstractmethod
    async def get_medical_record_by_external_id(
        self, provider_id: str, external_id: str
    ) -> MedicalRecord | None:
        """Prontuário local pela chave externa."""

    @abstractmethod
    async def create_medical_record(self, record: MedicalRecord) -> MedicalRecord:
        """Cria prontuário."""

    @abstractmethod
    async def update_medical_record(
        self, record_id: str, changes: dict[str, Any]
    ) -> MedicalRecord | None:
        """Atualiza prontuário."""
