"""Entrypoint do serviço de integração de telemedicina.

Inicializa o bootstrap e expõe a aplicação ASGI (FastAPI).

Uso (produção):
    uvicorn app.app:app --host 0.0.0.0 --port 8080

Uso (desenvolvimento):
    uvicorn app.app:app --reload --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from api.routes import create_api_router
from api.routes.edge import security_violation_handler
from app.bootstrap import initialize_app, validate_runtime_settings
from app.bootstrap.clients import create_async_redis_client
from app.bootstrap.container import build_services
from config.logging import get_logger
from config.settings import get_base_settings, get_security_store_settings
from utils.errors import SecurityViolationError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from app.bootstrap.container import AppServices

# Inicializar logging ANTES de qualquer import que use logger
initialize_app()

logger = get_logger(__name__)

SERVICE_LABEL = "telemed-integracao"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Gerencia ciclo de vida da aplicação.

    Startup:
    - Valida configurações
    - Conecta Redis (quando é o backend dos stores de segurança)
    - Monta serviços e inicia o scheduler de sync

    Shutdown:
    - Para o scheduler (cancela sync em andamento, fecha clientes)
    - Fecha Redis
    """
    logger.info("app_starting", extra={"service": SERVICE_LABEL})
    validate_runtime_settings()

    store_settings = get_security_store_settings()
    app.state.redis_required = store_settings.backend == "redis"
    if getattr(app.state, "redis_client", None) is None:
        app.state.redis_client = None
        redis_url = get_base_settings().redis_url
        if redis_url:
            try:
                app.state.redis_client = create_async_redis_client(redis_url)
            except Exception as exc:
                logger.warning("redis_client_not_ready", extra={"error_type": type(exc).__name__})

    services: AppServices | None = getattr(app.state, "services", None)
    if services is None:
        services = build_services(redis_client=app.state.redis_client)
        app.state.services = services

    if services.sync_settings.enabled:
        await services.scheduler.start()
    else:
        logger.info("sync_scheduler_disabled")

    yield

    logger.info("app_shutting_down", extra={"service": SERVICE_LABEL})
    await services.scheduler.stop()
    redis_client = getattr(app.state, "redis_client", None)
    if redis_client is not None:
        await redis_client.aclose()


def create_app(services: AppServices | None = None) -> FastAPI:
    """Cria e configura a aplicação FastAPI.

    Args:
        services: Serviços pré-montados (testes). Se None, o lifespan monta.

    Returns:
        Aplicação FastAPI configurada.
    """
    fastapi_app = FastAPI(
        title="Telemed Integração",
        description="Webhooks seguros e sincronização com parceiros de telemedicina",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    fastapi_app.state.services = services

    fastapi_app.add_exception_handler(SecurityViolationError, security_violation_handler)
    fastapi_app.include_router(create_api_router())

    logger.info("app_configured", extra={"service": SERVICE_LABEL})

    return fastapi_app


# Aplicação ASGI exposta para uvicorn
app = create_app()


def main() -> None:
    """Entrypoint para execução direta (desenvolvimento)."""
    import uvicorn

    logger.info("Starting telemed-integracao in development mode")
    uvicorn.run(
        "app.app:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
    )


if __name__ == "__main__":
    main()
