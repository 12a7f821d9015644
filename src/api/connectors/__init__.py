"""Connectors: adapters de borda para APIs externas.

Estrutura:
- telemedicine/: APIs dos parceiros de telemedicina (consultas, receitas, prontuários)
"""

__all__: list[str] = []
