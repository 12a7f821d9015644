"""Modelos de domínio de telemedicina.

Dois grupos:
- Payloads externos (camelCase dos parceiros), validados antes de qualquer uso
- Registros locais persistidos pelo storage, únicos por (provider_id, external_id)
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - usado em runtime pelo schema do Pydantic
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

AuthType = Literal["api_key", "bearer", "basic", "oauth"]
IntegrationStatus = Literal["inactive", "testing", "active", "error"]

# Seções rastreadas no score de completude do prontuário
TRACKED_RECORD_SECTIONS: tuple[str, ...] = (
    "anamnesis",
    "vital_signs",
    "physical_exam",
    "medical_history",
    "family_history",
    "social_history",
    "current_medications",
    "allergies",
)


class ProviderAuthConfig(BaseModel):
    """Esquema de autenticação declarado pelo parceiro."""

    model_config = ConfigDict(extra="allow")

    type: str | None = Field(default=None, description="api_key|bearer|basic|oauth")


class Provider(BaseModel):
    """Parceiro de telemedicina configurado localmente."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    api_url: str | None = None
    auth_config: ProviderAuthConfig = Field(default_factory=ProviderAuthConfig)
    credentials_config: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    integration_status: IntegrationStatus = "testing"
    last_sync_at: datetime | None = Field(
        default=None,
        description="None = nunca sincronizado (elegível a backfill).",
    )


# ──────────────────────────────────────────────────────────────────────────────
# Payloads externos
# ──────────────────────────────────────────────────────────────────────────────


class _ExternalModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ExternalConsultation(_ExternalModel):
    """Consulta como enviada pelo parceiro."""

    id: str = Field(..., min_length=1)
    patient_data: dict[str, Any] = Field(default_factory=dict, alias="patientData")
    doctor_data: dict[str, Any] = Field(default_factory=dict, alias="doctorData")
    consultation_type: str = Field(..., alias="consultationType")
    scheduled_at: datetime = Field(..., alias="scheduledAt")
    started_at: datetime | None = Field(default=None, alias="startedAt")
    ended_at: datetime | None = Field(default=None, alias="endedAt")
    duration: int | None = None
    status: str
    notes: str | None = None
    diagnosis: str | None = None
    treatment_plan: str | None = Field(default=None, alias="treatmentPlan")
    meeting_room_data: dict[str, Any] | None = Field(default=None, alias="meetingRoomData")
    quality_metrics: dict[str, Any] | None = Field(default=None, alias="qualityMetrics")


class ExternalMedication(_ExternalModel):
    """Item de receita."""

    name: str
    active_substance: str | None = Field(default=None, alias="activeSubstance")
    dosage: str
    frequency: str
    duration: str | None = None
    instructions: str | None = None


class ExternalPrescription(_ExternalModel):
    """Receita como enviada pelo parceiro."""

    id: str = Field(..., min_length=1)
    consultation_id: str = Field(..., min_length=1, alias="consultationId")
    medications: list[ExternalMedication] = Field(default_factory=list)
    prescribing_doctor: dict[str, Any] = Field(default_factory=dict, alias="prescribingDoctor")
    valid_until: datetime | None = Field(default=None, alias="validUntil")


class ExternalMedicalRecord(_ExternalModel):
    """Prontuário como enviado pelo parceiro."""

    id: str = Field(..., min_length=1)
    patient_id: str | None = Field(default=None, alias="patientId")
    consultation_id: str | None = Field(default=None, alias="consultationId")
    anamnesis: Any = None
    vital_signs: Any = Field(default=None, alias="vitalSigns")
    physical_exam: Any = Field(default=None, alias="physicalExam")
    medical_history: Any = Field(default=None, alias="medicalHistory")
    family_history: Any = Field(default=None, alias="familyHistory")
    social_history: Any = Field(default=None, alias="socialHistory")
    current_medications: Any = Field(default=None, alias="currentMedications")
    allergies: Any = None
    lab_results: Any = Field(default=None, alias="labResults")
    imaging_results: Any = Field(default=None, alias="imagingResults")
    attachments: Any = None


# ──────────────────────────────────────────────────────────────────────────────
# Registros locais
# ──────────────────────────────────────────────────────────────────────────────


class ConsultationRecord(BaseModel):
    """Consulta persistida localmente."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    provider_id: str
    external_consultation_id: str
    external_patient_data: dict[str, Any] = Field(default_factory=dict)
    external_doctor_data: dict[str, Any] = Field(default_factory=dict)
    consultation_type: str
    scheduled_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration: int | None = None
    status: str
    consultation_notes: str | None = None
    diagnosis: str | None = None
    treatment_plan: str | None = None
    meeting_room_data: dict[str, Any] | None = None
    quality_metrics: dict[str, Any] | None = None
    sync_status: str = "synced"
    raw_data: dict[str, Any] = Field(default_factory=dict)


class PrescriptionRecord(BaseModel):
    """Receita persistida localmente, ligada à consulta local."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    provider_id: str
    external_prescription_id: str
    telemedicine_consultation_id: str | None = None
    prescribed_medications: list[dict[str, Any]] = Field(default_factory=list)
    prescribing_doctor: dict[str, Any] = Field(default_factory=dict)
    valid_until: datetime | None = None
    raw_data: dict[str, Any] = Field(default_factory=dict)


class MedicalRecord(BaseModel):
    """Prontuário persistido localmente."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    provider_id: str
    external_record_id: str
    telemedicine_consultation_id: str | None = None
    patient_id: str | None = None
    anamnesis: Any = None
    vital_signs: Any = None
    physical_exam: Any = None
    medical_history: Any = None
    family_history: Any = None
    social_history: Any = None
    current_medications: Any = None
    allergies: Any = None
    lab_results: Any = None
    imaging_results: Any = None
    attachments: Any = None
    completeness_score: float = Field(default=0.0, ge=0.0, le=1.0)
    data_quality_flags: list[str] = Field(default_factory=list)
    raw_data: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "TRACKED_RECORD_SECTIONS",
    "AuthType",
    "ConsultationRecord",
    "ExternalConsultation",
    "ExternalMedicalRecord",
    "ExternalMedication",
    "ExternalPrescription",
    "IntegrationStatus",
    "MedicalRecord",
    "PrescriptionRecord",
    "Provider",
    "ProviderAuthConfig",
]
