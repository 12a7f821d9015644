"""App: orquestração do sync, domínio e infraestrutura.

Subpastas:
- bootstrap/: composition root (factories, inicialização, wiring)
- domain/: modelos de parceiros, registros clínicos e jobs
- services/: upsert de registros, motor de sync e scheduler
- infra/: implementações concretas de IO (HTTP, Redis, memória, HMAC)
- protocols/: contratos/interfaces
- observability/: correlation_id e métricas via logs

Padrão: app executa; api adapta; config configura; utils apoia.
"""
