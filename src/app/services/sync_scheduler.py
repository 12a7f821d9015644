"""Scheduler de jobs de sincronização.

Responsabilidades:
- Timers recorrentes (incremental e full) e um incremental logo após o start
- Backfill único para providers nunca sincronizados
- Retry com atraso de jobs falhos, até max_retries execuções
- Histórico consultável de jobs e limpeza periódica

Ciclo de vida de um job: pending -> running -> completed|failed. Um job
em running nunca reentra em running.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from app.domain.sync import JobStatus, SyncAlreadyInProgress, SyncJob, SyncType
from app.observability import record_job_transition, sync_job_context
from utils.errors import JobExhaustedError

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from app.domain.sync import SyncResult
    from app.services.telemedicine_sync import TelemedicineSyncManager
    from config.settings import SyncSettings

logger = logging.getLogger(__name__)

MANUAL_SYNC_TYPES = frozenset({SyncType.FULL.value, SyncType.INCREMENTAL.value})
RECENT_JOBS_WINDOW = timedelta(hours=24)


def _new_job_id(sync_type: SyncType, provider_id: str | None = None) -> str:
    suffix = uuid.uuid4().hex[:12]
    if sync_type is SyncType.BACKFILL:
        return f"backfill-{provider_id}-{suffix}"
    return f"{sync_type.value}-sync-{suffix}"


class SyncJobScheduler:
    """Orquestra jobs sobre o TelemedicineSyncManager.

    Args:
        manager: Motor de sync
        settings: SyncSettings (intervalos, retries, backfill)
        clock: Relógio UTC (injetável em testes)
    """

    def __init__(
        self,
        manager: TelemedicineSyncManager,
        settings: SyncSettings,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._manager = manager
        self._settings = settings
        self._clock = clock
        self._jobs: dict[str, SyncJob] = {}
        self._timers: list[asyncio.Task[None]] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    # ──────────────────────────────────────────────────────────────
    # Ciclo de vida
    # ──────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Inicializa clientes, agenda backfills e arma os timers."""
        if self._running:
            logger.info("sync_scheduler_already_running")
            return

        self._running = True
        self._stop_event.clear()
        self._manager.reset_cancellation()
        await self._manager.initialize_clients()

        if self._settings.enable_auto_backfill:
            await self.schedule_initial_backfills()

        self._timers = [
            asyncio.create_task(
                self._periodic(
                    self._settings.incremental_sync_interval_minutes * 60,
                    lambda: self.schedule_job(SyncType.INCREMENTAL),
                ),
                name="sync-incremental-timer",
            ),
            asyncio.create_task(
                self._periodic(
                    self._settings.full_sync_interval_hours * 3600,
                    lambda: self.schedule_job(SyncType.FULL),
                ),
                name="sync-full-timer",
            ),
            asyncio.create_task(
                self._periodic(
                    self._settings.cleanup_interval_minutes * 60,
                    self.cleanup_old_jobs,
                ),
                name="sync-cleanup-timer",
            ),
        ]
        self.schedule_job(SyncType.INCREMENTAL, delay_seconds=self._settings.startup_delay_seconds)

        logger.info(
            "sync_scheduler_started",
            extra={
                "full_sync_interval_hours": self._settings.full_sync_interval_hours,
                "incremental_sync_interval_minutes": (
                    self._settings.incremental_sync_interval_minutes
                ),
            },
        )

    async def stop(self, timeout_seconds: float = 30.0) -> None:
        """Para timers, sinaliza cancelamento e drena jobs em andamento."""
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        self._manager.cancel()

        for timer in self._timers:
            timer.cancel()
        for timer in self._timers:
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        self._timers = []

        await self._drain_tasks(timeout_seconds)
        await self._manager.close_clients()
        logger.info("sync_scheduler_stopped")

    async def _drain_tasks(self, timeout_seconds: float) -> None:
        pending = list(self._tasks)
        if not pending:
            return
        _, still_pending = await asyncio.wait(pending, timeout=timeout_seconds)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            logger.warning("sync_tasks_cancelled_on_stop", extra={"count": len(still_pending)})

    async def _periodic(self, interval_seconds: float, action: Callable[[], object]) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval_seconds)
            except TimeoutError:
                action()
            else:
                return

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ──────────────────────────────────────────────────────────────
    # Agendamento
    # ──────────────────────────────────────────────────────────────

    async def schedule_initial_backfills(self) -> list[SyncJob]:
        """Um backfill por provider com cliente e last_sync_at None."""
        scheduled: list[SyncJob] = []
        now = self._clock()
        for provider_id, client in self._manager.clients.items():
            provider = client.provider
            if provider.last_sync_at is not None:
                continue
            if self._has_open_backfill(provider_id):
                continue
            start = now - timedelta(days=self._settings.backfill_days_on_first_run)
            scheduled.append(self.schedule_backfill(provider_id, start, now))
        return scheduled

    def _has_open_backfill(self, provider_id: str) -> bool:
        return any(
            job.type is SyncType.BACKFILL
            and job.provider_id == provider_id
            and job.status in (JobStatus.PENDING, JobStatus.RUNNING)
            for job in self._jobs.values()
        )

    def schedule_backfill(
        self,
        provider_id: str,
        start_date: datetime,
        end_date: datetime,
        *,
        delay_seconds: float = 0.0,
    ) -> SyncJob:
        """Registra e dispara um backfill de um provider."""
        return self.schedule_job(
            SyncType.BACKFILL,
            provider_id=provider_id,
            start_date=start_date,
            end_date=end_date,
            delay_seconds=delay_seconds,
        )

    def schedule_job(
        self,
        sync_type: SyncType,
        *,
        provider_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        delay_seconds: float = 0.0,
    ) -> SyncJob:
        """Cria job pending e agenda sua execução."""
        job = SyncJob(
            id=_new_job_id(sync_type, provider_id),
            type=sync_type,
            scheduled_at=self._clock() + timedelta(seconds=delay_seconds),
            provider_id=provider_id,
            start_date=start_date,
            end_date=end_date,
        )
        self._jobs[job.id] = job
        record_job_transition(job.id, job.type.value, job.status.value)
        self._spawn(self._run_after(job.id, delay_seconds), name=f"sync-job-{job.id}")
        return job

    async def _run_after(self, job_id: str, delay_seconds: float) -> None:
        if delay_seconds > 0:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay_seconds)
            except TimeoutError:
                pass
            else:
                return
        try:
            await self.execute_job(job_id)
        except JobExhaustedError:
            logger.warning("sync_job_exhausted", extra={"job_id": job_id})

    def trigger_manual_sync(self, sync_type: str) -> str:
        """Dispara sync manual imediato.

        Raises:
            ValueError: Tipo diferente de full|incremental.
        """
        if sync_type not in MANUAL_SYNC_TYPES:
            raise ValueError(f"Invalid sync type: {sync_type}")
        job = self.schedule_job(SyncType(sync_type))
        logger.info("manual_sync_triggered", extra={"job_id": job.id, "sync_type": sync_type})
        return job.id

    # ──────────────────────────────────────────────────────────────
    # Execução
    # ──────────────────────────────────────────────────────────────

    async def execute_job(self, job_id: str) -> SyncJob:
        """Executa um job.

        Job em running: no-op. Job falho com retries esgotados:
        JobExhaustedError.

        Raises:
            KeyError: Job inexistente.
            JobExhaustedError: Retries esgotados.
        """
        job = self._jobs[job_id]
        if job.status is JobStatus.RUNNING:
            logger.info("sync_job_already_running", extra={"job_id": job_id})
            return job
        if job.status is JobStatus.FAILED and job.retry_count >= self._settings.max_retries:
            raise JobExhaustedError(job.id, job.retry_count)

        with sync_job_context(job.id):
            self._transition(job, JobStatus.RUNNING)
            job.started_at = self._clock()

            try:
                failed, results, last_error = await self._run(job)
            except Exception as exc:
                logger.exception("sync_job_crashed", extra={"job_id": job.id})
                failed, results, last_error = True, None, f"{type(exc).__name__}: {exc}"

            job.finished_at = self._clock()
            job.results = results
            if failed:
                job.last_error = last_error
                self._on_failure(job)
            else:
                job.last_error = None
                self._transition(job, JobStatus.COMPLETED)
        return job

    async def _run(self, job: SyncJob) -> tuple[bool, dict[str, Any] | None, str | None]:
        if job.type is SyncType.BACKFILL:
            if job.provider_id is None or job.start_date is None or job.end_date is None:
                return True, None, "backfill job sem provider ou janela"
            try:
                result = await self._manager.perform_historical_backfill(
                    job.provider_id, job.start_date, job.end_date
                )
            except KeyError as exc:
                return True, None, str(exc)
            return self._summarize({job.provider_id: result})

        outcome = await self._manager.perform_full_sync(job.type.value)
        if isinstance(outcome, SyncAlreadyInProgress):
            return False, outcome.to_dict(), None
        return self._summarize(outcome)

    @staticmethod
    def _summarize(
        results: dict[str, SyncResult],
    ) -> tuple[bool, dict[str, Any], str | None]:
        failed_providers = [pid for pid, result in results.items() if result.has_errors]
        payload = {pid: result.to_dict() for pid, result in results.items()}
        if not failed_providers:
            return False, payload, None
        first = results[failed_providers[0]]
        detail = first.errors[0].message if first.errors else "provider sync failed"
        return True, payload, f"{len(failed_providers)} provider(s) with errors: {detail}"

    def _on_failure(self, job: SyncJob) -> None:
        job.retry_count += 1
        self._transition(job, JobStatus.FAILED)
        if job.retry_count < self._settings.max_retries and not self._stop_event.is_set():
            delay = self._settings.retry_on_failure_minutes * 60
            logger.info(
                "sync_job_retry_scheduled",
                extra={
                    "job_id": job.id,
                    "retry_count": job.retry_count,
                    "max_retries": self._settings.max_retries,
                    "delay_seconds": delay,
                },
            )
            self._spawn(self._run_after(job.id, delay), name=f"sync-retry-{job.id}")
            return
        logger.error(
            "sync_job_failed_permanently",
            extra={"job_id": job.id, "retry_count": job.retry_count, "last_error": job.last_error},
        )

    def _transition(self, job: SyncJob, status: JobStatus) -> None:
        job.status = status
        record_job_transition(job.id, job.type.value, status.value, job.retry_count)

    # ──────────────────────────────────────────────────────────────
    # Histórico
    # ──────────────────────────────────────────────────────────────

    def get_job(self, job_id: str) -> SyncJob | None:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[SyncJob]:
        return sorted(self._jobs.values(), key=lambda job: job.scheduled_at, reverse=True)

    def get_recent_jobs(self) -> list[SyncJob]:
        """Jobs agendados nas últimas 24h (mais recentes primeiro)."""
        cutoff = self._clock() - RECENT_JOBS_WINDOW
        return [job for job in self.list_jobs() if job.scheduled_at >= cutoff]

    def cleanup_old_jobs(self) -> int:
        """Remove jobs fora de running mais antigos que a retenção."""
        cutoff = self._clock() - timedelta(days=self._settings.job_retention_days)
        stale = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status is not JobStatus.RUNNING and job.scheduled_at < cutoff
        ]
        for job_id in stale:
            del self._jobs[job_id]
        if stale:
            logger.info("sync_jobs_cleaned", extra={"removed": len(stale)})
        return len(stale)

    def get_status(self) -> dict[str, Any]:
        """Status para a superfície operacional."""
        return {
            "is_running": self._running,
            "active_jobs": [
                job.to_dict() for job in self._jobs.values() if job.status is JobStatus.RUNNING
            ],
            "recent_jobs": [job.to_dict() for job in self.get_recent_jobs()[:10]],
            "config": {
                "full_sync_interval_hours": self._settings.full_sync_interval_hours,
                "incremental_sync_interval_minutes": (
                    self._settings.incremental_sync_interval_minutes
                ),
                "retry_on_failure_minutes": self._settings.retry_on_failure_minutes,
                "max_retries": self._settings.max_retries,
                "enable_auto_backfill": self._settings.enable_auto_backfill,
                "backfill_days_on_first_run": self._settings.backfill_days_on_first_run,
            },
        }
