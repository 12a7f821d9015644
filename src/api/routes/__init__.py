"""Rotas HTTP da API: adapters de entrada.

Responsabilidades:
- Definir endpoints HTTP (webhooks de parceiros, sync admin, health)
- Autenticação por API key e gateway de webhooks antes dos handlers
- Delegação para os serviços montados no lifespan
- Respostas HTTP apropriadas

Estrutura:
- routes/telemedicine/: webhooks dos parceiros
- routes/sync/: endpoints administrativos de sincronização
- routes/health/: health checks e readiness
- edge.py: conversão Request/Response <-> modelos dos gateways

Agregação:
- router.py: registra todos os routers no app principal
"""

from __future__ import annotations

from api.routes.router import create_api_router

__all__ = ["create_api_router"]
