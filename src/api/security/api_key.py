"""Autenticação por API key para endpoints de parceiros e administrativos."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from api.security.events import log_security_event
from app.infra.crypto import constant_time_equals
from app.observability import record_security_rejection
from config.logging import redact_identifier
from utils.errors import SecurityViolationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from api.security.models import WebhookRequest

logger = logging.getLogger(__name__)

DEFAULT_API_KEY_HEADER = "x-api-key"
_BEARER_PREFIX = "bearer "


class ApiKeyGateway:
    """Valida a API key de um request contra um conjunto configurado.

    Ordem de leitura: header configurado, `Authorization: Bearer`,
    e por último o query param `api_key` (se habilitado).

    Args:
        valid_keys: Chaves aceitas
        header_name: Header dedicado (default x-api-key)
        allow_query_param: Aceita `?api_key=`
    """

    def __init__(
        self,
        valid_keys: Iterable[str],
        *,
        header_name: str = DEFAULT_API_KEY_HEADER,
        allow_query_param: bool = False,
    ) -> None:
        self._valid_keys = tuple(key for key in valid_keys if key)
        self._header_name = header_name.lower()
        self._allow_query = allow_query_param

    @property
    def configured(self) -> bool:
        return bool(self._valid_keys)

    def extract_key(self, request: WebhookRequest) -> str | None:
        key = request.header(self._header_name)
        if key:
            return key
        authorization = request.header("authorization") or ""
        if authorization.lower().startswith(_BEARER_PREFIX):
            token = authorization[len(_BEARER_PREFIX):].strip()
            if token:
                return token
        if self._allow_query:
            return request.query.get("api_key") or None
        return None

    def is_valid(self, key: str) -> bool:
        # Compara contra todas as chaves para não vazar posição por tempo
        matched = False
        for candidate in self._valid_keys:
            if constant_time_equals(key, candidate):
                matched = True
        return matched

    def authenticate(self, request: WebhookRequest) -> str:
        """Valida o request.

        Returns:
            A chave aceita.

        Raises:
            SecurityViolationError: 401 se ausente ou inválida.
        """
        context = {
            "identifier": redact_identifier(request.client_ip or "unknown"),
            "endpoint": request.path,
        }
        key = self.extract_key(request)
        if key is None:
            log_security_event("missing_api_key", **context)
            record_security_rejection("missing_api_key", 401)
            raise SecurityViolationError(
                "API key required", status_code=401, reason="missing_api_key"
            )
        if not self.is_valid(key):
            log_security_event("invalid_api_key", api_key=key, **context)
            record_security_rejection("invalid_api_key", 401)
            raise SecurityViolationError(
                "Invalid API key", status_code=401, reason="invalid_api_key"
            )
        return key
