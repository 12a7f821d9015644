"""Conversão entre Request/Response do Starlette e os modelos dos gateways."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from api.security import GatewayResponse, WebhookRequest

if TYPE_CHECKING:
    from app.bootstrap.container import AppServices
    from utils.errors import SecurityViolationError


def build_webhook_request(request: Request, raw_body: bytes = b"") -> WebhookRequest:
    """Monta WebhookRequest com headers em minúsculas."""
    return WebhookRequest(
        method=request.method,
        path=request.url.path,
        headers={k.lower(): v for k, v in request.headers.items()},
        raw_body=raw_body,
        query=dict(request.query_params),
        client_ip=request.client.host if request.client else None,
    )


def to_http_response(response: GatewayResponse) -> Response:
    headers = {k: v for k, v in response.headers.items() if k != "content-type"}
    return Response(
        content=response.body,
        status_code=response.status_code,
        headers=headers,
        media_type=response.headers.get("content-type", "application/json"),
    )


def violation_response(exc: SecurityViolationError) -> JSONResponse:
    content: dict[str, object] = {"error": exc.message}
    headers: dict[str, str] = {}
    if exc.retry_after is not None:
        content["retry_after"] = exc.retry_after
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(content=content, status_code=exc.status_code, headers=headers)


def get_services(request: Request) -> AppServices:
    """Serviços montados no lifespan."""
    return request.app.state.services


async def security_violation_handler(_request: Request, exc: Exception) -> Response:
    """Exception handler do app para SecurityViolationError."""
    return violation_response(exc)  # type: ignore[arg-type]
