"""Container de serviços montado no lifespan do app."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from api.connectors.telemedicine import create_telemedicine_client
from api.security import ApiKeyGateway, WebhookSecurityConfig, WebhookSecurityGateway
from app.bootstrap.dependencies_stores import (
    SecurityStores,
    create_security_stores,
    create_telemedicine_storage,
)
from app.services import SyncJobScheduler, TelemedicineRecordService, TelemedicineSyncManager
from config.settings import (
    get_provider_client_settings,
    get_security_store_settings,
    get_sync_settings,
    get_webhook_security_settings,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

    from app.protocols.storage import TelemedicineStorageProtocol
    from config.settings import (
        ProviderClientSettings,
        SecurityStoreSettings,
        SyncSettings,
        WebhookSecuritySettings,
    )

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Serviços compartilhados pelas rotas."""

    storage: TelemedicineStorageProtocol
    records: TelemedicineRecordService
    sync_manager: TelemedicineSyncManager
    scheduler: SyncJobScheduler
    webhook_gateway: WebhookSecurityGateway
    webhook_api_keys: ApiKeyGateway
    admin_api_keys: ApiKeyGateway
    security_stores: SecurityStores
    sync_settings: SyncSettings


def build_services(
    *,
    storage: TelemedicineStorageProtocol | None = None,
    redis_client: AsyncRedis | None = None,
    webhook_settings: WebhookSecuritySettings | None = None,
    store_settings: SecurityStoreSettings | None = None,
    sync_settings: SyncSettings | None = None,
    client_settings: ProviderClientSettings | None = None,
) -> AppServices:
    """Monta o grafo de serviços.

    Parâmetros omitidos são carregados do ambiente.

    Args:
        storage: Storage de telemedicina (default: memória)
        redis_client: Cliente Redis para stores de segurança
        webhook_settings: WebhookSecuritySettings
        store_settings: SecurityStoreSettings
        sync_settings: SyncSettings
        client_settings: ProviderClientSettings

    Returns:
        AppServices pronto (scheduler ainda parado)
    """
    webhook_settings = webhook_settings or get_webhook_security_settings()
    store_settings = store_settings or get_security_store_settings()
    sync_settings = sync_settings or get_sync_settings()
    client_settings = client_settings or get_provider_client_settings()
    storage = storage or create_telemedicine_storage()

    stores = create_security_stores(store_settings, redis_client)
    records = TelemedicineRecordService(storage, storage_attempts=2)
    manager = TelemedicineSyncManager(
        storage,
        lambda provider: create_telemedicine_client(provider, client_settings),
        client_settings,
        records=records,
    )
    scheduler = SyncJobScheduler(manager, sync_settings)

    gateway = WebhookSecurityGateway(
        WebhookSecurityConfig.from_settings(webhook_settings),
        stores.rate_limit,
        stores.nonce,
        stores.idempotency,
    )
    services = AppServices(
        storage=storage,
        records=records,
        sync_manager=manager,
        scheduler=scheduler,
        webhook_gateway=gateway,
        webhook_api_keys=ApiKeyGateway(
            webhook_settings.api_keys, header_name=webhook_settings.api_key_header
        ),
        admin_api_keys=ApiKeyGateway(
            webhook_settings.admin_api_keys, header_name=webhook_settings.api_key_header
        ),
        security_stores=stores,
        sync_settings=sync_settings,
    )
    logger.info(
        "app_services_built",
        extra={
            "security_store_backend": store_settings.backend,
            "webhook_api_keys_configured": services.webhook_api_keys.configured,
            "admin_api_keys_configured": services.admin_api_keys.configured,
            "sync_enabled": sync_settings.enabled,
        },
    )
    return services
