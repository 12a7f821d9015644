"""Serviços de aplicação.

Orquestração de sync e upserts sobre protocolos; implementações
concretas de IO ficam em app/infra/.
"""

from app.services.sync_scheduler import SyncJobScheduler
from app.services.telemedicine_records import TelemedicineRecordService
from app.services.telemedicine_sync import SyncRunGuard, TelemedicineSyncManager

__all__ = [
    "SyncJobScheduler",
    "SyncRunGuard",
    "TelemedicineRecordService",
    "TelemedicineSyncManager",
]
