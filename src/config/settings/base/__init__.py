"""Agregador de settings base.

Re-exporta todas as settings base para uso externo.
"""

from __future__ import annotations

from config.settings.base.core import (
    LOG_LEVELS,
    BaseSettings,
    Environment,
    get_base_settings,
)
from config.settings.base.security_store import (
    SecurityStoreBackend,
    SecurityStoreSettings,
    get_security_store_settings,
)

__all__ = [
    "LOG_LEVELS",
    "BaseSettings",
    "Environment",
    "SecurityStoreBackend",
    "SecurityStoreSettings",
    "get_base_settings",
    "get_security_store_settings",
]
