"""Headers de autenticação por esquema declarado do parceiro."""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.domain.telemedicine import Provider

logger = logging.getLogger(__name__)


def build_auth_headers(provider: Provider) -> dict[str, str]:
    """Monta headers conforme `auth_config.type`.

    - api_key: X-API-Key
    - bearer: Authorization: Bearer <token>
    - basic: Authorization: Basic base64(user:pass)
    - oauth: Authorization: Bearer <access_token>

    Esquema ausente ou desconhecido gera warning e segue sem autenticação.

    Args:
        provider: Provider com auth_config e credentials_config

    Returns:
        Headers de autenticação (pode ser vazio)
    """
    auth_type = provider.auth_config.type
    credentials = provider.credentials_config or {}

    if not auth_type or not credentials:
        logger.warning(
            "provider_auth_config_missing",
            extra={"provider_id": provider.id, "auth_type": auth_type},
        )
        return {}

    if auth_type == "api_key":
        api_key = credentials.get("api_key") or credentials.get("apiKey")
        return {"X-API-Key": str(api_key)} if api_key else {}

    if auth_type == "bearer":
        token = credentials.get("token")
        return {"Authorization": f"Bearer {token}"} if token else {}

    if auth_type == "basic":
        username = credentials.get("username", "")
        password = credentials.get("password", "")
        encoded = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        return {"Authorization": f"Basic {encoded}"}

    if auth_type == "oauth":
        access_token = credentials.get("access_token") or credentials.get("accessToken")
        return {"Authorization": f"Bearer {access_token}"} if access_token else {}

    logger.warning(
        "provider_auth_type_unsupported",
        extra={"provider_id": provider.id, "auth_type": auth_type},
    )
    return {}
