"""Upserts idempotentes de registros de telemedicina.

Compartilhado pelo motor de sync e pelos webhooks: toda escrita passa
pela chave (provider_id, external_id). Dependentes sem consulta-pai
resolvível não são persistidos.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal

from app.domain.telemedicine import ConsultationRecord
from app.domain.telemedicine_transform import (
    decode_consultation,
    decode_medical_record,
    decode_prescription,
    record_changes,
    to_consultation_record,
    to_medical_record,
    to_prescription_record,
)
from app.infra.http import retry_async
from utils.errors import InfrastructureError, LinkResolutionError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from app.domain.telemedicine import MedicalRecord, PrescriptionRecord
    from app.protocols.storage import TelemedicineStorageProtocol

logger = logging.getLogger(__name__)

UpsertAction = Literal["created", "updated"]

# Campos de consulta que um status-update pode alterar
_MUTABLE_CONSULTATION_FIELDS = frozenset(ConsultationRecord.model_fields) - {
    "id",
    "provider_id",
    "external_consultation_id",
}


def _is_infrastructure_error(exc: BaseException) -> bool:
    return isinstance(exc, InfrastructureError)


class TelemedicineRecordService:
    """Upserts por chave externa sobre o storage.

    Args:
        storage: Colaborador de persistência
        storage_attempts: Tentativas por chamada ao storage (falhas de infra)
        backoff_schedule: Esperas entre tentativas
        sleep: Função de espera (injetável em testes)
    """

    def __init__(
        self,
        storage: TelemedicineStorageProtocol,
        *,
        storage_attempts: int = 1,
        backoff_schedule: tuple[float, ...] = (0.2, 0.5, 1.0),
        sleep: Callable[[float], Awaitable[object]] | None = None,
    ) -> None:
        self._storage = storage
        self._attempts = storage_attempts
        self._backoff = backoff_schedule
        self._sleep = sleep

    @property
    def storage(self) -> TelemedicineStorageProtocol:
        return self._storage

    async def _call(self, factory: Callable[[], Awaitable[Any]], name: str) -> Any:
        if self._attempts <= 1:
            return await factory()
        kwargs: dict[str, Any] = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return await retry_async(
            factory,
            max_attempts=self._attempts,
            backoff_schedule=self._backoff,
            is_retryable=_is_infrastructure_error,
            operation_name=name,
            **kwargs,
        )

    async def resolve_consultation_id(self, provider_id: str, external_consultation_id: str) -> str:
        """Resolve o id local da consulta-pai.

        Raises:
            LinkResolutionError: Se a consulta não existe localmente.
        """
        parent = await self._call(
            lambda: self._storage.get_consultation_by_external_id(
                provider_id, external_consultation_id
            ),
            "storage.get_consultation",
        )
        if parent is None or parent.id is None:
            raise LinkResolutionError(provider_id, external_consultation_id)
        return parent.id

    async def upsert_consultation(
        self, provider_id: str, raw: Any
    ) -> tuple[ConsultationRecord, UpsertAction]:
        """Decodifica e cria/atualiza consulta.

        Raises:
            TransformError: Payload inválido.
        """
        external = decode_consultation(raw)
        record = to_consultation_record(provider_id, external)
        existing = await self._call(
            lambda: self._storage.get_consultation_by_external_id(provider_id, external.id),
            "storage.get_consultation",
        )
        if existing is not None and existing.id is not None:
            updated = await self._call(
                lambda: self._storage.update_consultation(existing.id, record_changes(record)),
                "storage.update_consultation",
            )
            return updated or existing, "updated"
        created = await self._call(
            lambda: self._storage.create_consultation(record),
            "storage.create_consultation",
        )
        return created, "created"

    async def upsert_prescription(
        self, provider_id: str, raw: Any
    ) -> tuple[PrescriptionRecord, UpsertAction]:
        """Decodifica, resolve a consulta-pai e cria/atualiza receita.

        Raises:
            TransformError: Payload inválido.
            LinkResolutionError: Consulta-pai inexistente (nada é persistido).
        """
        external = decode_prescription(raw)
        consultation_id = await self.resolve_consultation_id(
            provider_id, external.consultation_id
        )
        record = to_prescription_record(provider_id, external, consultation_id)
        existing = await self._call(
            lambda: self._storage.get_prescription_by_external_id(provider_id, external.id),
            "storage.get_prescription",
        )
        if existing is not None and existing.id is not None:
            updated = await self._call(
                lambda: self._storage.update_prescription(existing.id, record_changes(record)),
                "storage.update_prescription",
            )
            return updated or existing, "updated"
        created = await self._call(
            lambda: self._storage.create_prescription(record),
            "storage.create_prescription",
        )
        return created, "created"

    async def upsert_medical_record(
        self, provider_id: str, raw: Any
    ) -> tuple[MedicalRecord, UpsertAction]:
        """Decodifica e cria/atualiza prontuário.

        A ligação com a consulta só é exigida quando `consultationId` vem
        no payload.

        Raises:
            TransformError: Payload inválido.
            LinkResolutionError: consultationId informado e não resolvido.
        """
        external = decode_medical_record(raw)
        consultation_id = None
        if external.consultation_id:
            consultation_id = await self.resolve_consultation_id(
                provider_id, external.consultation_id
            )
        record = to_medical_record(provider_id, external, consultation_id)
        existing = await self._call(
            lambda: self._storage.get_medical_record_by_external_id(provider_id, external.id),
            "storage.get_medical_record",
        )
        if existing is not None and existing.id is not None:
            updated = await self._call(
                lambda: self._storage.update_medical_record(existing.id, record_changes(record)),
                "storage.update_medical_record",
            )
            return updated or existing, "updated"
        created = await self._call(
            lambda: self._storage.create_medical_record(record),
            "storage.create_medical_record",
        )
        return created, "created"

    async def update_consultation_status(
        self,
        provider_id: str,
        external_consultation_id: str,
        status: str,
        sync_status: str | None = None,
        update_data: dict[str, Any] | None = None,
    ) -> ConsultationRecord | None:
        """Atualiza status de uma consulta existente.

        Campos desconhecidos em `update_data` são ignorados.

        Returns:
            Consulta atualizada, ou None se não existe.
        """
        consultation = await self._call(
            lambda: self._storage.get_consultation_by_external_id(
                provider_id, external_consultation_id
            ),
            "storage.get_consultation",
        )
        if consultation is None or consultation.id is None:
            return None

        changes: dict[str, Any] = {
            k: v for k, v in (update_data or {}).items() if k in _MUTABLE_CONSULTATION_FIELDS
        }
        ignored = sorted(set(update_data or {}) - set(changes))
        if ignored:
            logger.info(
                "status_update_fields_ignored",
                extra={"provider_id": provider_id, "fields": ignored},
            )
        changes["status"] = status
        if sync_status is not None:
            changes["sync_status"] = sync_status
        # Revalida o registro final antes de persistir
        merged = ConsultationRecord.model_validate(
            {**consultation.model_dump(), **changes}
        )
        validated = {k: getattr(merged, k) for k in changes}
        return await self._call(
            lambda: self._storage.update_consultation(consultation.id, validated),
            "storage.update_consultation",
        )
