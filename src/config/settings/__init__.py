"""Agregador de settings do serviço de integração.

Re-exporta todas as settings e funções de cada módulo.
Organização por domínio para isolamento de mudanças.
"""

from __future__ import annotations

# Base settings
from config.settings.base import (
    LOG_LEVELS,
    BaseSettings,
    Environment,
    SecurityStoreBackend,
    SecurityStoreSettings,
    get_base_settings,
    get_security_store_settings,
)

# Sync engine settings
from config.settings.sync import (
    ProviderClientSettings,
    SyncSettings,
    get_provider_client_settings,
    get_sync_settings,
)

# Webhook gateway settings
from config.settings.webhook_security import (
    DEFAULT_HMAC_SECRET,
    WebhookSecuritySettings,
    get_webhook_security_settings,
)

__all__ = [
    "DEFAULT_HMAC_SECRET",
    "LOG_LEVELS",
    "BaseSettings",
    "Environment",
    "ProviderClientSettings",
    "SecurityStoreBackend",
    "SecurityStoreSettings",
    "SyncSettings",
    "WebhookSecuritySettings",
    "get_base_settings",
    "get_provider_client_settings",
    "get_security_store_settings",
    "get_sync_settings",
    "get_webhook_security_settings",
]
