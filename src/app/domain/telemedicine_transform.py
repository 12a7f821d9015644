"""Decodificação de payloads externos e conversão para registros locais.

Todo payload passa por um modelo pydantic; falha de validação vira
TransformError e nunca chega ao storage.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from app.domain.telemedicine import (
    TRACKED_RECORD_SECTIONS,
    ConsultationRecord,
    ExternalConsultation,
    ExternalMedicalRecord,
    ExternalPrescription,
    MedicalRecord,
    PrescriptionRecord,
)
from utils.errors import TransformError


def _decode(model: type[BaseModel], raw: Any) -> Any:
    if not isinstance(raw, dict):
        raise TransformError(f"{model.__name__}: payload não é objeto")
    external_id = raw.get("id")
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise TransformError(
            f"{model.__name__}: campos inválidos: {', '.join(fields)}",
            external_id=str(external_id) if external_id is not None else None,
            fields=tuple(fields),
        ) from exc


def decode_consultation(raw: Any) -> ExternalConsultation:
    """Valida payload de consulta."""
    return _decode(ExternalConsultation, raw)


def decode_prescription(raw: Any) -> ExternalPrescription:
    """Valida payload de receita."""
    return _decode(ExternalPrescription, raw)


def decode_medical_record(raw: Any) -> ExternalMedicalRecord:
    """Valida payload de prontuário."""
    return _decode(ExternalMedicalRecord, raw)


def _is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (dict, list, tuple, set, str)):
        return len(value) > 0
    return True


def completeness_score(record: ExternalMedicalRecord) -> float:
    """Fração das seções rastreadas que estão preenchidas (2 casas)."""
    populated = sum(
        1 for section in TRACKED_RECORD_SECTIONS if _is_populated(getattr(record, section))
    )
    return round(populated / len(TRACKED_RECORD_SECTIONS), 2)


def data_quality_flags(record: ExternalMedicalRecord) -> list[str]:
    """Nomeia as seções rastreadas vazias como ``missing_<seção>``."""
    return [
        f"missing_{section}"
        for section in TRACKED_RECORD_SECTIONS
        if not _is_populated(getattr(record, section))
    ]


def to_consultation_record(provider_id: str, external: ExternalConsultation) -> ConsultationRecord:
    """Converte consulta externa para o registro local."""
    return ConsultationRecord(
        provider_id=provider_id,
        external_consultation_id=external.id,
        external_patient_data=external.patient_data,
        external_doctor_data=external.doctor_data,
        consultation_type=external.consultation_type,
        scheduled_at=external.scheduled_at,
        started_at=external.started_at,
        ended_at=external.ended_at,
        duration=external.duration,
        status=external.status,
        consultation_notes=external.notes,
        diagnosis=external.diagnosis,
        treatment_plan=external.treatment_plan,
        meeting_room_data=external.meeting_room_data,
        quality_metrics=external.quality_metrics,
        sync_status="synced",
        raw_data=external.model_dump(mode="json", by_alias=True),
    )


def to_prescription_record(
    provider_id: str,
    external: ExternalPrescription,
    consultation_id: str,
) -> PrescriptionRecord:
    """Converte receita externa; `consultation_id` é o id local da consulta-pai."""
    return PrescriptionRecord(
        provider_id=provider_id,
        external_prescription_id=external.id,
        telemedicine_consultation_id=consultation_id,
        prescribed_medications=[
            med.model_dump(mode="json", exclude_none=True) for med in external.medications
        ],
        prescribing_doctor=external.prescribing_doctor,
        valid_until=external.valid_until,
        raw_data=external.model_dump(mode="json", by_alias=True),
    )


def to_medical_record(
    provider_id: str,
    external: ExternalMedicalRecord,
    consultation_id: str | None,
) -> MedicalRecord:
    """Converte prontuário externo, com score e flags de qualidade."""
    return MedicalRecord(
        provider_id=provider_id,
        external_record_id=external.id,
        telemedicine_consultation_id=consultation_id,
        patient_id=external.patient_id,
        anamnesis=external.anamnesis,
        vital_signs=external.vital_signs,
        physical_exam=external.physical_exam,
        medical_history=external.medical_history,
        family_history=external.family_history,
        social_history=external.social_history,
        current_medications=external.current_medications,
        allergies=external.allergies,
        lab_results=external.lab_results,
        imaging_results=external.imaging_results,
        attachments=external.attachments,
        completeness_score=completeness_score(external),
        data_quality_flags=data_quality_flags(external),
        raw_data=external.model_dump(mode="json", by_alias=True),
    )


def record_changes(record: BaseModel) -> dict[str, Any]:
    """Campos para update (sem id local)."""
    return record.model_dump(exclude={"id"})
