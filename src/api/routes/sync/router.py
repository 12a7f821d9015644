"""Endpoints administrativos de sincronização.

Endpoints (prefixo /api/sync), protegidos por SYNC_ADMIN_API_KEYS:
- GET /status: estado do scheduler, dos providers e dos stores de segurança
- POST /trigger: dispara sync manual (full|incremental)
- GET /jobs: jobs das últimas 24h
- GET /jobs/{job_id}: job específico
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.routes.edge import build_webhook_request, get_services
from utils.errors import InfrastructureError

logger = logging.getLogger(__name__)


async def require_admin_api_key(request: Request) -> None:
    """Dependency que valida a API key administrativa.

    Raises:
        SecurityViolationError: Tratada pelo handler registrado no app.
    """
    get_services(request).admin_api_keys.authenticate(build_webhook_request(request))


router = APIRouter(dependencies=[Depends(require_admin_api_key)])


class TriggerSyncRequest(BaseModel):
    """Corpo do trigger manual."""

    type: str = "incremental"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@router.get("/status")
async def sync_status(request: Request) -> dict[str, Any]:
    """Estado do scheduler, último sync por provider e contagem dos stores."""
    services = get_services(request)
    try:
        security_stats: dict[str, int] | None = await services.webhook_gateway.get_stats()
    except InfrastructureError as exc:
        logger.warning("security_stats_unavailable", extra={"error_type": type(exc).__name__})
        security_stats = None
    return {
        "scheduler": services.scheduler.get_status(),
        "providers": await services.sync_manager.get_sync_status(),
        "webhook_security": security_stats,
        "timestamp": _now_iso(),
    }


@router.post("/trigger")
async def trigger_sync(request: Request, body: TriggerSyncRequest | None = None) -> JSONResponse:
    """Agenda sync manual imediato."""
    sync_type = body.type if body is not None else "incremental"
    services = get_services(request)
    try:
        job_id = services.scheduler.trigger_manual_sync(sync_type)
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid sync type. Use 'full' or 'incremental'"},
        )
    logger.info("manual_sync_requested", extra={"sync_type": sync_type, "job_id": job_id})
    return JSONResponse(
        content={
            "message": f"{sync_type} sync triggered successfully",
            "job_id": job_id,
            "timestamp": _now_iso(),
        }
    )


@router.get("/jobs")
async def list_recent_jobs(request: Request) -> list[dict[str, Any]]:
    """Jobs criados nas últimas 24h, mais recentes primeiro."""
    return [job.to_dict() for job in get_services(request).scheduler.get_recent_jobs()]


@router.get("/jobs/{job_id}")
async def get_job(request: Request, job_id: str) -> JSONResponse:
    job = get_services(request).scheduler.get_job(job_id)
    if job is None:
        return JSONResponse(status_code=404, content={"message": "Job not found"})
    return JSONResponse(content=job.to_dict())
