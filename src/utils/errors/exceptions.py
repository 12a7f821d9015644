"""Exceções de domínio da camada de integração com parceiros."""

from __future__ import annotations


class InfrastructureError(RuntimeError):
    """Base para falhas de infraestrutura transitórias."""


class RedisConnectionError(InfrastructureError):
    """Falha de conexão/timeout ao acessar Redis."""


class SecurityViolationError(Exception):
    """Request rejeitado por um check de segurança do gateway.

    Terminal para o request: nunca é retentado e sempre vira evento de
    segurança nos logs.

    Attributes:
        status_code: Status HTTP a devolver (401, 403, 429, ...)
        reason: Evento de segurança (ex.: "invalid_signature")
        retry_after: Segundos até nova tentativa (apenas rate limit)
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        reason: str,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason = reason
        self.retry_after = retry_after


class ProviderRequestError(RuntimeError):
    """Base para falhas de chamada à API de um parceiro."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkError(ProviderRequestError):
    """Timeout, 5xx ou falha de conexão. Retentável."""


class ProviderAuthError(ProviderRequestError):
    """400/401/403/404 vindo do parceiro. Nunca retentado."""


class TransformError(ValueError):
    """Payload externo com formato inesperado."""

    def __init__(
        self,
        message: str,
        external_id: str | None = None,
        fields: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.external_id = external_id
        self.fields = fields


class LinkResolutionError(LookupError):
    """Registro dependente sem consulta-pai resolvível localmente."""

    def __init__(self, provider_id: str, external_consultation_id: str) -> None:
        super().__init__(f"link not found: consultation {external_consultation_id}")
        self.provider_id = provider_id
        self.external_consultation_id = external_consultation_id


class JobExhaustedError(RuntimeError):
    """Job falhou max_retries vezes e não é mais reexecutado."""

    def __init__(self, job_id: str, retry_count: int) -> None:
        super().__init__(f"job {job_id} exhausted after {retry_count} attempts")
        self.job_id = job_id
        self.retry_count = retry_count
