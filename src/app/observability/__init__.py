"""Observabilidade: contexto de rastreamento e métricas via logs estruturados.

Uso:
    from app.observability import set_correlation_id, sync_job_context
    from app.observability import record_latency, record_sync_result
"""

from app.observability.correlation import (
    current_log_context,
    get_correlation_id,
    get_sync_job_id,
    reset_correlation_id,
    set_correlation_id,
    sync_job_context,
)
from app.observability.metrics import (
    record_job_transition,
    record_latency,
    record_security_rejection,
    record_sync_result,
)

__all__ = [
    "current_log_context",
    "get_correlation_id",
    "get_sync_job_id",
    "record_job_transition",
    "record_latency",
    "record_security_rejection",
    "record_sync_result",
    "reset_correlation_id",
    "set_correlation_id",
    "sync_job_context",
]
