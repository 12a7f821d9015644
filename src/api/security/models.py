"""Request/response neutros de framework usados pelos gateways."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class WebhookRequest:
    """Visão mínima do request HTTP.

    Headers e query devem chegar com nomes em minúsculas.
    """

    method: str
    path: str
    headers: dict[str, str]
    raw_body: bytes = b""
    query: dict[str, str] = field(default_factory=dict)
    client_ip: str | None = None

    def header(self, name: str) -> str | None:
        value = self.headers.get(name.lower())
        return value if value else None


@dataclass(frozen=True)
class GatewayResponse:
    """Resposta pronta para a borda HTTP."""

    status_code: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)
    replayed: bool = False

    @classmethod
    def json(
        cls,
        status_code: int,
        content: Any,
        headers: dict[str, str] | None = None,
    ) -> GatewayResponse:
        body = json.dumps(content, separators=(",", ":"), default=str).encode("utf-8")
        return cls(
            status_code=status_code,
            body=body,
            headers={"content-type": "application/json", **(headers or {})},
        )
