"""API: camada de borda do serviço de integração.

Responsabilidades:
- Receber webhooks dos parceiros de telemedicina
- Validar API key, assinatura, timestamp, nonce e rate limit
- Expor endpoints operacionais de sincronização
- Chamar as APIs dos parceiros (connectors)

Subpastas:
- connectors/: clientes HTTP por parceiro
- security/: gateways de webhook e de API key
- routes/: endpoints HTTP (webhooks, sync admin, health)

NÃO PODE conter: regras de sync, persistência, agendamento de jobs.
"""
