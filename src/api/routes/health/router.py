"""Liveness e readiness do serviço de integração (Redis e scheduler de sync)."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Resposta do health check."""

    status: str
    service: str
    timestamp: str
    version: str = "1.0.0"


@dataclass(frozen=True, slots=True)
class DependencyCheck:
    """Resultado de checagem de dependência."""

    status: Literal["ok", "degraded", "failed"]
    latency_ms: float | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness: verifica se o serviço está rodando."""
    return HealthResponse(
        status="healthy",
        service="telemed-integracao",
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness: Redis (quando configurado) e scheduler de sync."""
    state = request.app.state
    redis_check = await _check_redis(
        getattr(state, "redis_client", None),
        required=getattr(state, "redis_required", False),
    )
    scheduler_check = _check_scheduler(getattr(state, "services", None))

    ready = redis_check.status in {"ok", "degraded"} and scheduler_check.status != "failed"
    payload = {
        "status": "ready" if ready else "not_ready",
        "checks": {
            "redis": redis_check.as_dict(),
            "sync_scheduler": scheduler_check.as_dict(),
        },
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return JSONResponse(content=payload, status_code=200 if ready else 503)


async def _check_redis(redis_client: Any | None, *, required: bool) -> DependencyCheck:
    if redis_client is None:
        if required:
            return DependencyCheck(status="failed", error="not_configured")
        return DependencyCheck(status="degraded", error="not_configured")
    started_at = time.perf_counter()
    try:
        await asyncio.wait_for(redis_client.ping(), timeout=2.0)
    except TimeoutError:
        return DependencyCheck(status="failed", error="timeout")
    except Exception as exc:
        logger.warning("readiness_redis_check_failed", extra={"error_type": type(exc).__name__})
        return DependencyCheck(status="failed", error=type(exc).__name__)
    latency_ms = (time.perf_counter() - started_at) * 1000
    return DependencyCheck(status="ok", latency_ms=round(latency_ms, 2))


def _check_scheduler(services: Any | None) -> DependencyCheck:
    if services is None:
        return DependencyCheck(status="failed", error="not_initialized")
    if not services.sync_settings.enabled:
        return DependencyCheck(status="degraded", error="disabled")
    if not services.scheduler.is_running:
        return DependencyCheck(status="failed", error="not_running")
    return DependencyCheck(status="ok")
