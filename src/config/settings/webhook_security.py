"""Settings do gateway de segurança de webhooks.

Janelas de replay, limites de taxa e chaves aceitas pelos endpoints
que recebem eventos de parceiros de telemedicina.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

DEFAULT_HMAC_SECRET = "default-webhook-secret-please-change-in-production"


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class WebhookSecuritySettings:
    """Configurações do gateway de webhooks.

    Attributes:
        hmac_secret: Secret compartilhado para HMAC-SHA256
        max_timestamp_age_seconds: Desvio máximo aceito em X-Timestamp
        rate_limit_window_seconds: Tamanho da janela de rate limit
        rate_limit_max_requests: Requests permitidos por janela e identificador
        nonce_expiry_seconds: Tempo de retenção de nonces usados
        idempotency_ttl_seconds: Tempo de retenção das respostas cacheadas
        require_nonce: Exige X-Nonce nos webhooks de telemedicina
        api_keys: Chaves aceitas pelo gateway de API key dos webhooks
        api_key_header: Header de onde a API key é lida
        admin_api_keys: Chaves aceitas nos endpoints operacionais de sync
    """

    hmac_secret: str = DEFAULT_HMAC_SECRET
    max_timestamp_age_seconds: int = 300
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 100
    nonce_expiry_seconds: int = 3600
    idempotency_ttl_seconds: int = 86400
    require_nonce: bool = False
    api_keys: tuple[str, ...] = field(default_factory=tuple)
    api_key_header: str = "x-api-key"
    admin_api_keys: tuple[str, ...] = field(default_factory=tuple)

    def validate(self, environment: str = "development") -> list[str]:
        """Valida configurações do gateway.

        Args:
            environment: Ambiente atual (regras mais rígidas fora de dev).

        Returns:
            Lista de erros de validação (vazia = tudo OK).
        """
        errors: list[str] = []

        if self.max_timestamp_age_seconds <= 0:
            errors.append("WEBHOOK_MAX_TIMESTAMP_AGE_SECONDS deve ser > 0")

        if self.rate_limit_window_seconds <= 0:
            errors.append("WEBHOOK_RATE_LIMIT_WINDOW_SECONDS deve ser > 0")

        if self.rate_limit_max_requests <= 0:
            errors.append("WEBHOOK_RATE_LIMIT_MAX_REQUESTS deve ser > 0")

        if self.nonce_expiry_seconds < self.max_timestamp_age_seconds:
            errors.append(
                "WEBHOOK_NONCE_EXPIRY_SECONDS deve cobrir a janela de timestamp"
            )

        if environment in ("staging", "production"):
            if not self.hmac_secret or self.hmac_secret == DEFAULT_HMAC_SECRET:
                errors.append("WEBHOOK_HMAC_SECRET não configurado")
            if not self.api_keys:
                errors.append("TELEMEDICINE_API_KEY/WEBHOOK_API_KEY não configurados")

        return errors


def _load_webhook_security_from_env() -> WebhookSecuritySettings:
    """Carrega WebhookSecuritySettings a partir de variáveis de ambiente."""
    api_keys = tuple(
        key
        for key in (os.getenv("TELEMEDICINE_API_KEY", ""), os.getenv("WEBHOOK_API_KEY", ""))
        if key
    )
    return WebhookSecuritySettings(
        hmac_secret=os.getenv("WEBHOOK_HMAC_SECRET", DEFAULT_HMAC_SECRET),
        max_timestamp_age_seconds=int(os.getenv("WEBHOOK_MAX_TIMESTAMP_AGE_SECONDS", "300")),
        rate_limit_window_seconds=int(os.getenv("WEBHOOK_RATE_LIMIT_WINDOW_SECONDS", "60")),
        rate_limit_max_requests=int(os.getenv("WEBHOOK_RATE_LIMIT_MAX_REQUESTS", "100")),
        nonce_expiry_seconds=int(os.getenv("WEBHOOK_NONCE_EXPIRY_SECONDS", "3600")),
        idempotency_ttl_seconds=int(os.getenv("WEBHOOK_IDEMPOTENCY_TTL_SECONDS", "86400")),
        require_nonce=os.getenv("WEBHOOK_REQUIRE_NONCE", "").lower() in ("true", "1", "yes"),
        api_keys=api_keys,
        api_key_header=os.getenv("WEBHOOK_API_KEY_HEADER", "x-api-key").lower(),
        admin_api_keys=_split_csv(os.getenv("SYNC_ADMIN_API_KEYS", "")),
    )


@lru_cache(maxsize=1)
def get_webhook_security_settings() -> WebhookSecuritySettings:
    """Retorna instância cacheada de WebhookSecuritySettings."""
    return _load_webhook_security_from_env()
