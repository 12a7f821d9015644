"""Conector HTTP dos parceiros de telemedicina."""

from api.connectors.telemedicine.auth import build_auth_headers
from api.connectors.telemedicine.client import (
    CONSULTATIONS_ENDPOINT,
    MEDICAL_RECORDS_ENDPOINT,
    PRESCRIPTIONS_ENDPOINT,
    TelemedicineApiClient,
    create_telemedicine_client,
)

__all__ = [
    "CONSULTATIONS_ENDPOINT",
    "MEDICAL_RECORDS_ENDPOINT",
    "PRESCRIPTIONS_ENDPOINT",
    "TelemedicineApiClient",
    "build_auth_headers",
    "create_telemedicine_client",
]
