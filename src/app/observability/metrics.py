"""Registro de métricas via structured logging.

As métricas saem como logs `metric_*` e são agregadas depois pelo
coletor de logs (BigQuery, CloudWatch Insights, etc).

Métricas suportadas:
- Latência: tempo de chamadas aos parceiros e de execuções de sync
- Resultado de sync: contadores por provider
- Transição de job: mudanças de status no scheduler
- Decisão de segurança: rejeições do gateway de webhooks
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def record_latency(
    component: str,
    operation: str,
    latency_ms: float,
    correlation_id: str | None = None,
) -> None:
    """Registra latência de operação.

    Args:
        component: Nome do componente (ex: "provider_client", "sync_manager")
        operation: Nome da operação (ex: "fetch_consultations", "full_sync")
        latency_ms: Latência em milissegundos
        correlation_id: ID de correlação para rastreamento
    """
    logger.info(
        "metric_latency",
        extra={
            "metric_type": "latency",
            "component": component,
            "operation": operation,
            "latency_ms": round(latency_ms, 2),
            "correlation_id": correlation_id,
        },
    )


def record_sync_result(
    provider_id: str,
    sync_type: str,
    *,
    success: bool,
    consultations: int,
    prescriptions: int,
    medical_records: int,
    error_count: int,
) -> None:
    """Registra contadores de uma execução de sync por provider."""
    logger.info(
        "metric_sync_result",
        extra={
            "metric_type": "sync_result",
            "component": "sync_manager",
            "provider_id": provider_id,
            "sync_type": sync_type,
            "success": success,
            "consultations_synced": consultations,
            "prescriptions_synced": prescriptions,
            "medical_records_synced": medical_records,
            "error_count": error_count,
        },
    )


def record_job_transition(
    job_id: str,
    job_type: str,
    status: str,
    retry_count: int = 0,
) -> None:
    """Registra transição de status de um job do scheduler."""
    logger.info(
        "metric_job_transition",
        extra={
            "metric_type": "job_transition",
            "component": "sync_scheduler",
            "job_id": job_id,
            "job_type": job_type,
            "status": status,
            "retry_count": retry_count,
        },
    )


def record_security_rejection(reason: str, status_code: int) -> None:
    """Registra rejeição do gateway de webhooks (counter por motivo)."""
    logger.info(
        "metric_security_rejection",
        extra={
            "metric_type": "security_rejection",
            "component": "webhook_gateway",
            "reason": reason,
            "status_code": status_code,
        },
    )
