"""Endpoints de webhook dos parceiros de telemedicina.

Endpoints (prefixo /api/webhooks/telemedicine):
- POST /consultation
- POST /prescription
- POST /medical-record
- POST /status-update

Cada request passa pela API key e depois pelo gateway de webhooks
(rate limit, idempotência, timestamp, nonce, assinatura). O corpo é o
registro externo do parceiro acrescido de `providerId`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from api.routes.edge import (
    build_webhook_request,
    get_services,
    to_http_response,
    violation_response,
)
from api.security import GatewayResponse
from app.observability import reset_correlation_id, set_correlation_id
from utils.errors import LinkResolutionError, SecurityViolationError, TransformError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from app.bootstrap.container import AppServices

logger = logging.getLogger(__name__)

router = APIRouter()


class StatusUpdatePayload(BaseModel):
    """Corpo do status-update."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    provider_id: str = Field(alias="providerId", min_length=1)
    external_consultation_id: str = Field(alias="externalConsultationId", min_length=1)
    status: str = Field(min_length=1)
    sync_status: str | None = Field(default=None, alias="syncStatus")
    update_data: dict[str, Any] | None = Field(default=None, alias="updateData")
    timestamp: str | None = None


def _invalid(message: str, errors: list[str]) -> GatewayResponse:
    return GatewayResponse.json(
        status.HTTP_400_BAD_REQUEST, {"message": message, "errors": errors}
    )


def _not_found(message: str) -> GatewayResponse:
    return GatewayResponse.json(status.HTTP_404_NOT_FOUND, {"message": message})


async def _split_envelope(
    services: AppServices, payload: dict[str, Any], label: str
) -> tuple[str, dict[str, Any]] | GatewayResponse:
    """Separa providerId do registro e confirma que o provider existe."""
    record = dict(payload)
    provider_id = record.pop("providerId", None)
    if not isinstance(provider_id, str) or not provider_id:
        return _invalid(f"Invalid {label} data", ["providerId"])
    provider = await services.storage.get_provider(provider_id)
    if provider is None:
        return _not_found("Provider not found")
    return provider_id, record


async def _guarded(
    request: Request,
    handler: Callable[[AppServices, dict[str, Any]], Awaitable[GatewayResponse]],
) -> Response:
    """API key, gateway de webhooks e handler, com correlation_id."""
    token = set_correlation_id(request.headers.get("x-correlation-id"))
    try:
        services = get_services(request)
        try:
            services.webhook_api_keys.authenticate(build_webhook_request(request))
        except SecurityViolationError as exc:
            return violation_response(exc)

        webhook_request = build_webhook_request(request, await request.body())

        async def bound(payload: dict[str, Any]) -> GatewayResponse:
            return await handler(services, payload)

        response = await services.webhook_gateway.process(webhook_request, bound)
        logger.info(
            "telemedicine_webhook_handled",
            extra={
                "endpoint": request.url.path,
                "status_code": response.status_code,
                "replayed": response.replayed,
            },
        )
        return to_http_response(response)
    finally:
        reset_correlation_id(token)


async def _handle_consultation(services: AppServices, payload: dict[str, Any]) -> GatewayResponse:
    envelope = await _split_envelope(services, payload, "consultation")
    if isinstance(envelope, GatewayResponse):
        return envelope
    provider_id, record = envelope
    try:
        consultation, action = await services.records.upsert_consultation(provider_id, record)
    except TransformError as exc:
        return _invalid("Invalid consultation data", list(exc.fields) or [str(exc)])
    return GatewayResponse.json(
        status.HTTP_201_CREATED,
        {
            "message": "Consultation data received successfully",
            "consultationId": consultation.id,
            "action": action,
        },
    )


async def _handle_prescription(services: AppServices, payload: dict[str, Any]) -> GatewayResponse:
    envelope = await _split_envelope(services, payload, "prescription")
    if isinstance(envelope, GatewayResponse):
        return envelope
    provider_id, record = envelope
    try:
        prescription, action = await services.records.upsert_prescription(provider_id, record)
    except TransformError as exc:
        return _invalid("Invalid prescription data", list(exc.fields) or [str(exc)])
    except LinkResolutionError:
        return _not_found("Consultation not found")
    return GatewayResponse.json(
        status.HTTP_201_CREATED,
        {
            "message": "Prescription data received successfully",
            "prescriptionId": prescription.id,
            "action": action,
        },
    )


async def _handle_medical_record(
    services: AppServices, payload: dict[str, Any]
) -> GatewayResponse:
    envelope = await _split_envelope(services, payload, "medical record")
    if isinstance(envelope, GatewayResponse):
        return envelope
    provider_id, record = envelope
    try:
        medical_record, action = await services.records.upsert_medical_record(provider_id, record)
    except TransformError as exc:
        return _invalid("Invalid medical record data", list(exc.fields) or [str(exc)])
    except LinkResolutionError:
        return _not_found("Consultation not found")
    return GatewayResponse.json(
        status.HTTP_201_CREATED,
        {
            "message": "Medical record data received successfully",
            "recordId": medical_record.id,
            "action": action,
            "completenessScore": medical_record.completeness_score,
        },
    )


async def _handle_status_update(services: AppServices, payload: dict[str, Any]) -> GatewayResponse:
    try:
        update = StatusUpdatePayload.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        return _invalid("Invalid status update data", fields)
    try:
        consultation = await services.records.update_consultation_status(
            update.provider_id,
            update.external_consultation_id,
            update.status,
            sync_status=update.sync_status,
            update_data=update.update_data,
        )
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        return _invalid("Invalid status update data", fields)
    if consultation is None:
        return _not_found("Consultation not found")
    return GatewayResponse.json(
        status.HTTP_200_OK,
        {
            "message": "Status updated successfully",
            "consultationId": consultation.id,
            "newStatus": update.status,
        },
    )


@router.post("/consultation")
async def receive_consultation(request: Request) -> Response:
    """Upsert de consulta por (providerId, id externo)."""
    return await _guarded(request, _handle_consultation)


@router.post("/prescription")
async def receive_prescription(request: Request) -> Response:
    """Upsert de receita; exige consulta-pai já sincronizada."""
    return await _guarded(request, _handle_prescription)


@router.post("/medical-record")
async def receive_medical_record(request: Request) -> Response:
    """Upsert de prontuário com score de completude."""
    return await _guarded(request, _handle_medical_record)


@router.post("/status-update")
async def receive_status_update(request: Request) -> Response:
    """Atualiza status (e campos extras) de uma consulta existente."""
    return await _guarded(request, _handle_status_update)
