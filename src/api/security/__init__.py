"""Borda de segurança: gateway de webhooks e API keys."""

from api.security.api_key import DEFAULT_API_KEY_HEADER, ApiKeyGateway
from api.security.events import log_security_event, mask_value
from api.security.idempotency import capture_idempotent_response, replay_response
from api.security.models import GatewayResponse, WebhookRequest
from api.security.webhook_gateway import (
    IDEMPOTENCY_HEADER,
    NONCE_HEADER,
    PROVIDER_KEY_HEADER,
    SIGNATURE_HEADERS,
    TIMESTAMP_HEADER,
    WebhookSecurityConfig,
    WebhookSecurityGateway,
    default_rate_limit_identifier,
)

__all__ = [
    "DEFAULT_API_KEY_HEADER",
    "IDEMPOTENCY_HEADER",
    "NONCE_HEADER",
    "PROVIDER_KEY_HEADER",
    "SIGNATURE_HEADERS",
    "TIMESTAMP_HEADER",
    "ApiKeyGateway",
    "GatewayResponse",
    "WebhookRequest",
    "WebhookSecurityConfig",
    "WebhookSecurityGateway",
    "capture_idempotent_response",
    "default_rate_limit_identifier",
    "log_security_event",
    "mask_value",
    "replay_response",
]
