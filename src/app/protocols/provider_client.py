"""Protocolo do cliente de parceiro usado pelo motor de sync.

Evita dependência direta da camada api.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from datetime import datetime

    from app.domain.sync import Page
    from app.domain.telemedicine import Provider


class ProviderClientProtocol(Protocol):
    """Contrato mínimo de fetch paginado de um parceiro."""

    provider: Provider

    async def fetch_consultations(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        pagination: dict[str, Any] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> Page[dict[str, Any]]: ...

    async def fetch_prescriptions(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        pagination: dict[str, Any] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> Page[dict[str, Any]]: ...

    async def fetch_medical_records(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        pagination: dict[str, Any] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> Page[dict[str, Any]]: ...

    async def aclose(self) -> None: ...
