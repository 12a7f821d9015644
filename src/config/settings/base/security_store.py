"""Settings do backend dos stores de segurança (rate limit, nonce, idempotência)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from config.settings.base.core import BaseSettings

SecurityStoreBackend = Literal["memory", "redis"]


@dataclass(frozen=True)
class SecurityStoreSettings:
    """Configurações dos stores usados pelo gateway de webhooks.

    Attributes:
        backend: Backend dos mapas de rate limit/nonce/idempotência (memory|redis)
        key_prefix: Namespace das chaves no Redis
    """

    backend: SecurityStoreBackend = "memory"
    key_prefix: str = "webhook:"

    def validate(self, base: BaseSettings) -> list[str]:
        """Valida configurações dos stores.

        Args:
            base: BaseSettings para verificar ambiente.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.backend not in {"memory", "redis"}:
            errors.append(f"SECURITY_STORE_BACKEND inválido: {self.backend}")

        if self.backend == "memory" and not base.is_development:
            errors.append(
                "SECURITY_STORE_BACKEND=memory proibido em staging/production. "
                "Nonces e idempotência precisam sobreviver entre instâncias."
            )

        if self.backend == "redis" and not base.redis_url:
            errors.append("SECURITY_STORE_BACKEND=redis requer REDIS_URL configurado")

        return errors


def _load_security_store_from_env() -> SecurityStoreSettings:
    """Carrega SecurityStoreSettings de variáveis de ambiente."""
    backend_str = os.getenv("SECURITY_STORE_BACKEND", "memory").lower()
    backend: SecurityStoreBackend = backend_str if backend_str in ("memory", "redis") else "memory"
    return SecurityStoreSettings(
        backend=backend,
        key_prefix=os.getenv("SECURITY_STORE_KEY_PREFIX", "webhook:"),
    )


@lru_cache(maxsize=1)
def get_security_store_settings() -> SecurityStoreSettings:
    """Retorna instância cacheada de SecurityStoreSettings."""
    return _load_security_store_from_env()
