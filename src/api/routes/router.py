"""Agregador de rotas: registra todos os routers da API.

Uso:
    from api.routes import create_api_router

    app = FastAPI()
    app.include_router(create_api_router())
"""

from __future__ import annotations

from fastapi import APIRouter

from api.routes.health.router import router as health_router
from api.routes.sync.router import router as sync_router
from api.routes.telemedicine.router import router as telemedicine_router


def create_api_router() -> APIRouter:
    """Cria router principal com todos os sub-routers registrados.

    Returns:
        APIRouter configurado com todos os endpoints.
    """
    api_router = APIRouter()

    # Health checks (sem prefixo para /health e /ready na raiz)
    api_router.include_router(health_router, tags=["health"])

    api_router.include_router(
        telemedicine_router,
        prefix="/api/webhooks/telemedicine",
        tags=["telemedicine"],
    )
    api_router.include_router(sync_router, prefix="/api/sync", tags=["sync"])

    return api_router
