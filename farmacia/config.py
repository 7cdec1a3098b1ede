# farmacia/config.py
"""
Configurações globais e valores padrão do PDV da farmácia.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco local (SQLite)
DB_PATH = os.environ.get("FARMACIA_DB", os.path.join(os.getcwd(), "farmacia.db"))

# Backend REST (opcional). Sem URL, o CLI usa o banco local.
API_URL = os.environ.get("FARMACIA_API_URL") or None
API_TOKEN = os.environ.get("FARMACIA_API_TOKEN") or None


@dataclass
class DefaultConfig:
    """Valores padrão para as regras de venda."""
    validade_receita_dias: int = 30      # receita vale 30 dias a partir da emissão
    min_caracteres_receita: int = 8
    janela_fefo_dias: int = 90           # lotes "próximos ao vencimento"
    max_lotes_fefo: int = 5
    timeout_http: float = 15.0           # segundos
    max_sondas_paralelas: int = 8        # requisições simultâneas de promoção por lote
    atraso_busca: float = 0.3            # debounce da busca de produtos (s)
    min_caracteres_busca: int = 2


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
