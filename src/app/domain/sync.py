"""Modelos de domínio da sincronização: jobs, páginas e resultados."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class SyncType(str, Enum):
    """Tipos de job do scheduler."""

    FULL = "full"
    INCREMENTAL = "incremental"
    BACKFILL = "backfill"


class JobStatus(str, Enum):
    """Ciclo de vida: pending -> running -> completed|failed."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Page(Generic[T]):
    """Página retornada por um fetch paginado do parceiro."""

    data: list[T]
    has_more: bool = False
    next_cursor: str | None = None


@dataclass(frozen=True)
class SyncError:
    """Erro acumulado durante um sync (nunca interrompe o lote)."""

    type: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, "data": dict(self.data)}


@dataclass
class SyncResult:
    """Resultado agregado de um provider (ou de uma entidade).

    `success=False` indica falha do provider inteiro; erros por registro
    ficam em `errors` sem alterar `success`.
    """

    success: bool = True
    processed: int = 0
    errors: list[SyncError] = field(default_factory=list)
    last_sync_timestamp: datetime | None = None
    consultations: int = 0
    prescriptions: int = 0
    medical_records: int = 0

    @property
    def has_errors(self) -> bool:
        return not self.success or bool(self.errors)

    def add_error(self, error_type: str, message: str, **data: Any) -> None:
        self.errors.append(SyncError(type=error_type, message=message, data=data))

    def merge(self, other: SyncResult) -> None:
        """Acumula outro resultado (ex.: fatias do backfill)."""
        self.success = self.success and other.success
        self.processed += other.processed
        self.errors.extend(other.errors)
        self.consultations += other.consultations
        self.prescriptions += other.prescriptions
        self.medical_records += other.medical_records
        if other.last_sync_timestamp is not None:
            self.last_sync_timestamp = other.last_sync_timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "processed": self.processed,
            "consultations": self.consultations,
            "prescriptions": self.prescriptions,
            "medical_records": self.medical_records,
            "errors": [error.to_dict() for error in self.errors],
            "last_sync_timestamp": (
                self.last_sync_timestamp.isoformat() if self.last_sync_timestamp else None
            ),
        }


@dataclass(frozen=True)
class SyncAlreadyInProgress:
    """Resultado distinto para trigger concorrente com um sync em andamento."""

    reason: str = "sync_already_in_progress"

    def to_dict(self) -> dict[str, Any]:
        return {"skipped": True, "reason": self.reason}


@dataclass
class SyncJob:
    """Job do scheduler e seu histórico."""

    id: str
    type: SyncType
    scheduled_at: datetime
    status: JobStatus = JobStatus.PENDING
    provider_id: str | None = None
    retry_count: int = 0
    last_error: str | None = None
    results: dict[str, Any] | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "scheduled_at": self.scheduled_at.isoformat(),
            "status": self.status.value,
            "provider_id": self.provider_id,
            "retry_count": self.retry_count,
            "last_error": self.last_error,
            "results": self.results,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


__all__ = [
    "JobStatus",
    "Page",
    "SyncAlreadyInProgress",
    "SyncError",
    "SyncJob",
    "SyncResult",
    "SyncType",
]
