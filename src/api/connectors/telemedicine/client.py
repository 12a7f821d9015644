"""Cliente HTTP por parceiro de telemedicina.

Estende o HttpClient genérico com:
- Autenticação conforme o esquema declarado do provider
- Paginação por cursor (Page{data, has_more, next_cursor})
- Janela temporal since/until e filtros por ids
- Logging estruturado sem payload clínico
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from api.connectors.telemedicine.auth import build_auth_headers
from app.domain.sync import Page
from app.infra.http import HttpClient, HttpClientConfig
from app.observability import record_latency
from utils.errors import ProviderRequestError, TransformError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from app.domain.telemedicine import Provider
    from config.settings import ProviderClientSettings

logger = logging.getLogger(__name__)

CONSULTATIONS_ENDPOINT = "/consultations"
PRESCRIPTIONS_ENDPOINT = "/prescriptions"
MEDICAL_RECORDS_ENDPOINT = "/medical-records"

# Chave da lista no corpo, além de "data"
_LIST_KEYS = {
    CONSULTATIONS_ENDPOINT: "consultations",
    PRESCRIPTIONS_ENDPOINT: "prescriptions",
    MEDICAL_RECORDS_ENDPOINT: "records",
}


def _csv(values: list[str] | tuple[str, ...] | None) -> str | None:
    return ",".join(values) if values else None


class TelemedicineApiClient(HttpClient):
    """Cliente de um parceiro.

    Args:
        provider: Provider com api_url e credenciais
        config: Configuração HTTP (timeout, tentativas, backoff)
        page_size: Limite padrão por página
        medical_record_page_size: Limite padrão para prontuários
        transport: Transport httpx (MockTransport em testes)
        sleep: Função de espera do backoff
    """

    def __init__(
        self,
        provider: Provider,
        config: HttpClientConfig | None = None,
        *,
        page_size: int = 100,
        medical_record_page_size: int = 50,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[object]] | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {"transport": transport}
        if sleep is not None:
            kwargs["sleep"] = sleep
        super().__init__(config, **kwargs)
        self.provider = provider
        self._base_url = (provider.api_url or "").rstrip("/")
        self._auth_headers = build_auth_headers(provider)
        self._page_size = page_size
        self._medical_record_page_size = medical_record_page_size

    @property
    def provider_id(self) -> str:
        return self.provider.id

    async def fetch_consultations(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        pagination: dict[str, Any] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> Page[dict[str, Any]]:
        """Busca uma página de consultas.

        Filtros aceitos: ``statuses`` (lista).
        """
        filters = filters or {}
        extra = {"status": _csv(filters.get("statuses"))}
        return await self._fetch_page(
            CONSULTATIONS_ENDPOINT, since, until, pagination, self._page_size, extra
        )

    async def fetch_prescriptions(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        pagination: dict[str, Any] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> Page[dict[str, Any]]:
        """Busca uma página de receitas.

        Filtros aceitos: ``consultation_ids`` (lista).
        """
        filters = filters or {}
        extra = {"consultation_ids": _csv(filters.get("consultation_ids"))}
        return await self._fetch_page(
            PRESCRIPTIONS_ENDPOINT, since, until, pagination, self._page_size, extra
        )

    async def fetch_medical_records(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        pagination: dict[str, Any] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> Page[dict[str, Any]]:
        """Busca uma página de prontuários.

        Filtros aceitos: ``patient_ids`` e ``consultation_ids`` (listas).
        """
        filters = filters or {}
        extra = {
            "patient_ids": _csv(filters.get("patient_ids")),
            "consultation_ids": _csv(filters.get("consultation_ids")),
        }
        return await self._fetch_page(
            MEDICAL_RECORDS_ENDPOINT,
            since,
            until,
            pagination,
            self._medical_record_page_size,
            extra,
        )

    def _build_params(
        self,
        since: datetime | None,
        until: datetime | None,
        pagination: dict[str, Any] | None,
        default_limit: int,
        extra: dict[str, Any],
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"limit": default_limit}
        for key, value in (pagination or {}).items():
            if value is not None:
                params[key] = value
        if since is not None:
            params["since"] = since.isoformat()
        if until is not None:
            params["until"] = until.isoformat()
        params.update({k: v for k, v in extra.items() if v is not None})
        return params

    async def _fetch_page(
        self,
        endpoint: str,
        since: datetime | None,
        until: datetime | None,
        pagination: dict[str, Any] | None,
        default_limit: int,
        extra: dict[str, Any],
    ) -> Page[dict[str, Any]]:
        params = self._build_params(since, until, pagination, default_limit, extra)
        headers = {
            "Content-Type": "application/json",
            **self._auth_headers,
        }
        start = time.perf_counter()
        try:
            response = await self.get(f"{self._base_url}{endpoint}", params=params, headers=headers)
        except ProviderRequestError as exc:
            logger.warning(
                "provider_request_failed",
                extra={
                    "provider_id": self.provider_id,
                    "endpoint": endpoint,
                    "error_type": type(exc).__name__,
                    "status_code": getattr(exc, "status_code", None),
                },
            )
            raise
        finally:
            record_latency(
                "provider_client",
                f"GET {endpoint}",
                (time.perf_counter() - start) * 1000,
            )
        return self._parse_page(endpoint, response)

    def _parse_page(self, endpoint: str, response: httpx.Response) -> Page[dict[str, Any]]:
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise TransformError(f"{endpoint}: resposta não é JSON válido") from exc
        if not isinstance(body, dict):
            raise TransformError(f"{endpoint}: resposta não é objeto")

        data = body.get("data")
        if data is None:
            data = body.get(_LIST_KEYS[endpoint], [])
        if not isinstance(data, list):
            raise TransformError(f"{endpoint}: lista de registros inválida")

        has_more = bool(body.get("hasMore", body.get("has_more", False)))
        next_cursor = body.get("nextCursor", body.get("next_cursor"))

        logger.debug(
            "provider_page_fetched",
            extra={
                "provider_id": self.provider_id,
                "endpoint": endpoint,
                "count": len(data),
                "has_more": has_more,
            },
        )
        return Page(
            data=data,
            has_more=has_more,
            next_cursor=str(next_cursor) if next_cursor is not None else None,
        )


def create_telemedicine_client(
    provider: Provider,
    settings: ProviderClientSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TelemedicineApiClient:
    """Factory do cliente com config do ambiente.

    Args:
        provider: Provider alvo
        settings: ProviderClientSettings opcional. Se None, carrega do ambiente.
        transport: Transport httpx opcional (testes)

    Returns:
        Cliente configurado
    """
    from config.settings import get_provider_client_settings

    client_settings = settings or get_provider_client_settings()
    config = HttpClientConfig(
        timeout_seconds=client_settings.request_timeout_seconds,
        max_attempts=client_settings.max_attempts,
        backoff_schedule=client_settings.backoff_schedule_seconds,
        default_headers={"User-Agent": client_settings.user_agent},
    )
    return TelemedicineApiClient(
        provider,
        config,
        page_size=client_settings.page_size,
        medical_record_page_size=client_settings.medical_record_page_size,
        transport=transport,
    )
