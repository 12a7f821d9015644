"""Motor de sincronização com parceiros de telemedicina.

Responsabilidades:
- Manter um cliente por provider ativo e configurado
- Executar sync full/incremental de todos os providers (single-flight)
- Executar backfill histórico em fatias sequenciais
- Ordem por provider: consultas -> receitas -> prontuários

Erros por registro são acumulados no SyncResult sem interromper o lote.
Falha de fetch (auth ou transitória esgotada) encerra o provider com
success=False.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from app.domain.sync import SyncAlreadyInProgress, SyncResult
from app.observability import record_latency, record_sync_result
from app.services.telemedicine_records import TelemedicineRecordService
from utils.errors import LinkResolutionError, ProviderRequestError, TransformError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from app.domain.telemedicine import Provider
    from app.protocols.provider_client import ProviderClientProtocol
    from app.protocols.storage import TelemedicineStorageProtocol
    from config.settings import ProviderClientSettings

logger = logging.getLogger(__name__)

ENTITY_ORDER: tuple[str, ...] = ("consultations", "prescriptions", "medical_records")


class SyncRunGuard:
    """Garante no máximo um sync em andamento (asyncio.Lock)."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    async def try_acquire(self) -> bool:
        """Adquire sem esperar; False se já existe sync em andamento."""
        if self._lock.locked():
            return False
        await self._lock.acquire()
        return True

    async def acquire(self) -> None:
        """Espera o sync em andamento terminar e adquire."""
        await self._lock.acquire()

    def release(self) -> None:
        self._lock.release()

    @asynccontextmanager
    async def hold(self, *, wait: bool) -> AsyncIterator[bool]:
        """Contexto que informa se o run foi adquirido."""
        if wait:
            await self.acquire()
            acquired = True
        else:
            acquired = await self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()


def _is_eligible(provider: Provider) -> bool:
    return bool(
        provider.is_active and provider.api_url and provider.integration_status != "inactive"
    )


class TelemedicineSyncManager:
    """Coordena clientes dos parceiros e o storage.

    Args:
        storage: Colaborador de persistência
        client_factory: Cria cliente de um provider
        settings: ProviderClientSettings (paginação, backfill)
        records: Serviço de upsert (default: sobre o mesmo storage)
        sleep: Espera entre fatias do backfill (injetável em testes)
        clock: Relógio UTC (injetável em testes)
    """

    def __init__(
        self,
        storage: TelemedicineStorageProtocol,
        client_factory: Callable[[Provider], ProviderClientProtocol],
        settings: ProviderClientSettings,
        *,
        records: TelemedicineRecordService | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._storage = storage
        self._client_factory = client_factory
        self._settings = settings
        self._records = records or TelemedicineRecordService(storage)
        self._sleep = sleep
        self._clock = clock
        self._clients: dict[str, ProviderClientProtocol] = {}
        self._guard = SyncRunGuard()
        self._cancel = asyncio.Event()

    # ──────────────────────────────────────────────────────────────
    # Clientes
    # ──────────────────────────────────────────────────────────────

    @property
    def clients(self) -> dict[str, ProviderClientProtocol]:
        return dict(self._clients)

    @property
    def sync_in_progress(self) -> bool:
        return self._guard.in_progress

    async def initialize_clients(self) -> list[str]:
        """(Re)cria um cliente por provider ativo com api_url.

        Returns:
            Ids dos providers com cliente ativo.
        """
        await self.close_clients()
        providers = await self._storage.list_active_providers()
        for provider in providers:
            if not _is_eligible(provider):
                logger.info(
                    "provider_client_skipped",
                    extra={
                        "provider_id": provider.id,
                        "integration_status": provider.integration_status,
                        "has_api_url": bool(provider.api_url),
                    },
                )
                continue
            self._clients[provider.id] = self._client_factory(provider)
        logger.info(
            "provider_clients_initialized",
            extra={"count": len(self._clients), "provider_ids": sorted(self._clients)},
        )
        return sorted(self._clients)

    async def close_clients(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()

    def cancel(self) -> None:
        """Sinaliza cancelamento: loops param na próxima fronteira de página/fatia."""
        self._cancel.set()

    def reset_cancellation(self) -> None:
        self._cancel.clear()

    # ──────────────────────────────────────────────────────────────
    # Runs
    # ──────────────────────────────────────────────────────────────

    async def perform_full_sync(
        self,
        sync_type: str = "full",
        *,
        wait: bool = False,
    ) -> dict[str, SyncResult] | SyncAlreadyInProgress:
        """Sincroniza todos os providers com cliente.

        `full` busca tudo; `incremental` busca desde o last_sync_at de cada
        provider.

        Args:
            sync_type: "full" ou "incremental"
            wait: Espera um run em andamento em vez de pular

        Returns:
            Resultados por provider, ou SyncAlreadyInProgress.
        """
        async with self._guard.hold(wait=wait) as acquired:
            if not acquired:
                logger.info("sync_skipped_in_progress", extra={"sync_type": sync_type})
                return SyncAlreadyInProgress()

            started = time.perf_counter()
            results: dict[str, SyncResult] = {}
            for provider_id in list(self._clients):
                if self._cancel.is_set():
                    break
                results[provider_id] = await self._sync_provider_run(provider_id, sync_type)

            record_latency("sync_manager", f"{sync_type}_sync", (time.perf_counter() - started) * 1000)
            return results

    async def _sync_provider_run(self, provider_id: str, sync_type: str) -> SyncResult:
        client = self._clients[provider_id]
        provider = await self._storage.get_provider(provider_id) or client.provider
        since = provider.last_sync_at if sync_type == "incremental" else None
        run_started_at = self._clock()

        result = await self.sync_provider(client, since=since)
        await self._finish_provider(provider_id, result, last_sync_at=run_started_at)
        record_sync_result(
            provider_id,
            sync_type,
            success=result.success,
            consultations=result.consultations,
            prescriptions=result.prescriptions,
            medical_records=result.medical_records,
            error_count=len(result.errors),
        )
        return result

    async def _finish_provider(
        self, provider_id: str, result: SyncResult, *, last_sync_at: datetime
    ) -> None:
        if result.success:
            result.last_sync_timestamp = last_sync_at
            await self._storage.update_provider(
                provider_id, last_sync_at=last_sync_at, integration_status="active"
            )
        else:
            await self._storage.update_provider(provider_id, integration_status="error")

    async def sync_provider(
        self,
        client: ProviderClientProtocol,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> SyncResult:
        """Sincroniza as três entidades de um provider na ordem fixa.

        Não altera o provider; quem chama decide last_sync_at/status.
        """
        provider_id = client.provider.id
        result = SyncResult()
        for entity in ENTITY_ORDER:
            entity_result = await self._sync_entity(client, entity, since, until)
            result.merge(entity_result)
            if not entity_result.success:
                break
        logger.info(
            "provider_sync_finished",
            extra={
                "provider_id": provider_id,
                "success": result.success,
                "processed": result.processed,
                "error_count": len(result.errors),
            },
        )
        return result

    async def _sync_entity(
        self,
        client: ProviderClientProtocol,
        entity: str,
        since: datetime | None,
        until: datetime | None,
    ) -> SyncResult:
        provider_id = client.provider.id
        fetch = {
            "consultations": client.fetch_consultations,
            "prescriptions": client.fetch_prescriptions,
            "medical_records": client.fetch_medical_records,
        }[entity]
        singular = entity.rstrip("s")
        result = SyncResult()
        cursor: str | None = None
        pages = 0

        while True:
            if self._cancel.is_set():
                result.success = False
                result.add_error("sync_cancelled", f"{entity} sync cancelled")
                break
            try:
                page = await fetch(
                    since=since,
                    until=until,
                    pagination={"cursor": cursor} if cursor else None,
                )
            except (ProviderRequestError, TransformError) as exc:
                result.success = False
                result.add_error(
                    f"{singular}_fetch_error",
                    str(exc),
                    status_code=getattr(exc, "status_code", None),
                )
                logger.warning(
                    "provider_fetch_failed",
                    extra={
                        "provider_id": provider_id,
                        "entity": entity,
                        "error_type": type(exc).__name__,
                    },
                )
                break

            pages += 1
            for raw in page.data:
                await self._process_record(provider_id, entity, raw, result)

            if not page.has_more or not page.next_cursor:
                break
            if pages >= self._settings.max_pages_per_resource:
                logger.warning(
                    "provider_max_pages_reached",
                    extra={"provider_id": provider_id, "entity": entity, "pages": pages},
                )
                break
            cursor = page.next_cursor

        return result

    async def _process_record(
        self, provider_id: str, entity: str, raw: Any, result: SyncResult
    ) -> None:
        singular = entity.rstrip("s")
        external_id = raw.get("id") if isinstance(raw, dict) else None
        upsert = {
            "consultations": self._records.upsert_consultation,
            "prescriptions": self._records.upsert_prescription,
            "medical_records": self._records.upsert_medical_record,
        }[entity]
        try:
            await upsert(provider_id, raw)
        except TransformError as exc:
            result.add_error(f"{singular}_transform_error", str(exc), external_id=external_id)
            return
        except LinkResolutionError as exc:
            result.add_error(
                f"{singular}_link_error",
                str(exc),
                external_id=external_id,
                consultation_id=exc.external_consultation_id,
            )
            return
        except Exception as exc:
            logger.exception(
                "record_sync_failed",
                extra={"provider_id": provider_id, "entity": entity},
            )
            result.add_error(
                f"{singular}_sync_error",
                type(exc).__name__,
                external_id=external_id,
            )
            return

        result.processed += 1
        setattr(result, entity, getattr(result, entity) + 1)

    # ──────────────────────────────────────────────────────────────
    # Backfill
    # ──────────────────────────────────────────────────────────────

    def backfill_chunks(
        self, start_date: datetime, end_date: datetime
    ) -> list[tuple[datetime, datetime]]:
        """Divide [start, end] em fatias de `backfill_chunk_days`."""
        step = timedelta(days=self._settings.backfill_chunk_days)
        chunks: list[tuple[datetime, datetime]] = []
        chunk_start = start_date
        while chunk_start < end_date:
            chunk_end = min(chunk_start + step, end_date)
            chunks.append((chunk_start, chunk_end))
            chunk_start = chunk_end
        return chunks

    async def perform_historical_backfill(
        self,
        provider_id: str,
        start_date: datetime,
        end_date: datetime,
    ) -> SyncResult:
        """Backfill sequencial de um provider, agregado em um SyncResult.

        Espera qualquer run em andamento. Em sucesso, last_sync_at passa a
        ser o fim da janela.

        Raises:
            KeyError: Provider sem cliente ativo.
        """
        client = self._clients.get(provider_id)
        if client is None:
            raise KeyError(f"provider sem cliente ativo: {provider_id}")

        async with self._guard.hold(wait=True):
            result = SyncResult()
            chunks = self.backfill_chunks(start_date, end_date)
            for index, (chunk_start, chunk_end) in enumerate(chunks):
                if self._cancel.is_set():
                    result.success = False
                    result.add_error("sync_cancelled", "backfill cancelled")
                    break
                if index > 0:
                    await self._sleep(self._settings.backfill_chunk_delay_seconds)
                logger.info(
                    "backfill_chunk_started",
                    extra={
                        "provider_id": provider_id,
                        "chunk": index + 1,
                        "chunks": len(chunks),
                        "since": chunk_start.isoformat(),
                        "until": chunk_end.isoformat(),
                    },
                )
                chunk_result = await self.sync_provider(client, since=chunk_start, until=chunk_end)
                result.merge(chunk_result)
                if not chunk_result.success:
                    break

            await self._finish_provider(provider_id, result, last_sync_at=end_date)
            record_sync_result(
                provider_id,
                "backfill",
                success=result.success,
                consultations=result.consultations,
                prescriptions=result.prescriptions,
                medical_records=result.medical_records,
                error_count=len(result.errors),
            )
            return result

    # ──────────────────────────────────────────────────────────────
    # Status
    # ──────────────────────────────────────────────────────────────

    async def get_sync_status(self) -> list[dict[str, Any]]:
        """Status por provider ativo: {provider_id, provider_name, last_sync, status}."""
        providers = await self._storage.list_active_providers()
        return [
            {
                "provider_id": provider.id,
                "provider_name": provider.name,
                "last_sync": provider.last_sync_at.isoformat() if provider.last_sync_at else None,
                "status": provider.integration_status,
                "client_active": provider.id in self._clients,
            }
            for provider in providers
        ]
