"""Settings do motor de sincronização com parceiros de telemedicina.

Dois grupos isolados:
- SyncSettings: cadência e política de retry dos jobs
- ProviderClientSettings: timeouts, retries HTTP, paginação e backfill
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class SyncSettings:
    """Configurações do scheduler de sincronização.

    Attributes:
        enabled: Inicia o scheduler junto com a aplicação
        full_sync_interval_hours: Intervalo do sync completo
        incremental_sync_interval_minutes: Intervalo do sync incremental
        retry_on_failure_minutes: Espera antes de reexecutar job falho
        max_retries: Execuções máximas de um job antes de ficar terminal
        enable_auto_backfill: Agenda backfill para providers nunca sincronizados
        backfill_days_on_first_run: Dias de histórico no primeiro backfill
        startup_delay_seconds: Atraso do primeiro incremental após o start
        job_retention_days: Idade máxima do histórico de jobs
        cleanup_interval_minutes: Intervalo da limpeza do histórico
    """

    enabled: bool = True
    full_sync_interval_hours: float = 6
    incremental_sync_interval_minutes: float = 15
    retry_on_failure_minutes: float = 5
    max_retries: int = 3
    enable_auto_backfill: bool = True
    backfill_days_on_first_run: int = 30
    startup_delay_seconds: float = 5
    job_retention_days: int = 7
    cleanup_interval_minutes: float = 60

    def validate(self) -> list[str]:
        """Valida configurações do scheduler."""
        errors: list[str] = []

        if self.full_sync_interval_hours <= 0:
            errors.append("SYNC_FULL_INTERVAL_HOURS deve ser > 0")

        if self.incremental_sync_interval_minutes <= 0:
            errors.append("SYNC_INCREMENTAL_INTERVAL_MINUTES deve ser > 0")

        if self.max_retries < 1:
            errors.append("SYNC_MAX_RETRIES deve ser >= 1")

        if self.backfill_days_on_first_run <= 0:
            errors.append("SYNC_BACKFILL_DAYS_ON_FIRST_RUN deve ser > 0")

        return errors


@dataclass(frozen=True)
class ProviderClientSettings:
    """Configurações do cliente HTTP dos parceiros.

    Attributes:
        request_timeout_seconds: Timeout independente de cada chamada
        max_attempts: Tentativas por chamada (inclui a primeira)
        backoff_schedule_seconds: Esperas progressivas entre tentativas
        page_size: Limite por página de consultas e receitas
        medical_record_page_size: Limite por página de prontuários
        max_pages_per_resource: Trava contra paginação infinita
        backfill_chunk_days: Tamanho de cada fatia do backfill
        backfill_chunk_delay_seconds: Pausa entre fatias do backfill
        user_agent: User-Agent enviado aos parceiros
    """

    request_timeout_seconds: float = 30.0
    max_attempts: int = 3
    backoff_schedule_seconds: tuple[float, ...] = (1.0, 3.0, 5.0, 10.0)
    page_size: int = 100
    medical_record_page_size: int = 50
    max_pages_per_resource: int = 1000
    backfill_chunk_days: int = 7
    backfill_chunk_delay_seconds: float = 1.0
    user_agent: str = "TelemedIntegracao/1.0"

    def validate(self) -> list[str]:
        """Valida configurações do cliente."""
        errors: list[str] = []

        if self.request_timeout_seconds <= 0:
            errors.append("PROVIDER_REQUEST_TIMEOUT_SECONDS deve ser > 0")

        if self.max_attempts < 1:
            errors.append("PROVIDER_MAX_ATTEMPTS deve ser >= 1")

        if not self.backoff_schedule_seconds:
            errors.append("PROVIDER_BACKOFF_SCHEDULE_SECONDS não pode ser vazio")

        if self.page_size <= 0 or self.medical_record_page_size <= 0:
            errors.append("PROVIDER_PAGE_SIZE deve ser > 0")

        if self.backfill_chunk_days <= 0:
            errors.append("BACKFILL_CHUNK_DAYS deve ser > 0")

        return errors


def _parse_schedule(value: str) -> tuple[float, ...]:
    return tuple(float(item) for item in value.split(",") if item.strip())


def _load_sync_from_env() -> SyncSettings:
    """Carrega SyncSettings de variáveis de ambiente."""
    return SyncSettings(
        enabled=os.getenv("SYNC_SCHEDULER_ENABLED", "true").lower() in ("true", "1", "yes"),
        full_sync_interval_hours=float(os.getenv("SYNC_FULL_INTERVAL_HOURS", "6")),
        incremental_sync_interval_minutes=float(
            os.getenv("SYNC_INCREMENTAL_INTERVAL_MINUTES", "15")
        ),
        retry_on_failure_minutes=float(os.getenv("SYNC_RETRY_ON_FAILURE_MINUTES", "5")),
        max_retries=int(os.getenv("SYNC_MAX_RETRIES", "3")),
        enable_auto_backfill=os.getenv("SYNC_ENABLE_AUTO_BACKFILL", "true").lower()
        in ("true", "1", "yes"),
        backfill_days_on_first_run=int(os.getenv("SYNC_BACKFILL_DAYS_ON_FIRST_RUN", "30")),
        startup_delay_seconds=float(os.getenv("SYNC_STARTUP_DELAY_SECONDS", "5")),
        job_retention_days=int(os.getenv("SYNC_JOB_RETENTION_DAYS", "7")),
        cleanup_interval_minutes=float(os.getenv("SYNC_CLEANUP_INTERVAL_MINUTES", "60")),
    )


def _load_provider_client_from_env() -> ProviderClientSettings:
    """Carrega ProviderClientSettings de variáveis de ambiente."""
    return ProviderClientSettings(
        request_timeout_seconds=float(os.getenv("PROVIDER_REQUEST_TIMEOUT_SECONDS", "30")),
        max_attempts=int(os.getenv("PROVIDER_MAX_ATTEMPTS", "3")),
        backoff_schedule_seconds=_parse_schedule(
            os.getenv("PROVIDER_BACKOFF_SCHEDULE_SECONDS", "1,3,5,10")
        ),
        page_size=int(os.getenv("PROVIDER_PAGE_SIZE", "100")),
        medical_record_page_size=int(os.getenv("PROVIDER_MEDICAL_RECORD_PAGE_SIZE", "50")),
        max_pages_per_resource=int(os.getenv("PROVIDER_MAX_PAGES_PER_RESOURCE", "1000")),
        backfill_chunk_days=int(os.getenv("BACKFILL_CHUNK_DAYS", "7")),
        backfill_chunk_delay_seconds=float(os.getenv("BACKFILL_CHUNK_DELAY_SECONDS", "1")),
        user_agent=os.getenv("PROVIDER_USER_AGENT", "TelemedIntegracao/1.0"),
    )


@lru_cache(maxsize=1)
def get_sync_settings() -> SyncSettings:
    """Retorna instância cacheada de SyncSettings."""
    return _load_sync_from_env()


@lru_cache(maxsize=1)
def get_provider_client_settings() -> ProviderClientSettings:
    """Retorna instância cacheada de ProviderClientSettings."""
    return _load_provider_client_from_env()
