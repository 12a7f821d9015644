"""Router de telemedicina: agrega os endpoints de webhook."""

from __future__ import annotations

from fastapi import APIRouter

from api.routes.telemedicine.webhook import router as webhook_router

router = APIRouter()

router.include_router(webhook_router)
