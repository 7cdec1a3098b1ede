# farmacia/infra/backends.py
"""
Escolha do backend dos colaboradores externos: REST (``requests``) ou SQLite local.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from farmacia.config import API_TOKEN, DB_PATH
from farmacia.infra.api import ApiClient
from farmacia.infra.logger import log_system_event
from farmacia.infra.migrations import apply_migrations
from farmacia.infra.repositories import LoteRepo, ProdutoRepo, PromocaoRepo, VendaRepo
from farmacia.infra.servicos import LoteService, ProdutoService, PromocaoService, VendaService


@dataclass
class Servicos:
    produtos: Any
    lotes: Any
    promocoes: Any
    vendas: Any
    origem: str = "local"


def criar_servicos(api_url: Optional[str] = None, db_path: str = DB_PATH, token: Optional[str] = API_TOKEN) -> Servicos:
    """Com ``api_url`` usa o backend REST; sem ele, o banco local em ``db_path``."""
    if api_url:
        api = ApiClient(api_url, token=token)
        log_system_event("backend_selected", {"origem": "api", "url": api_url})
        return Servicos(
            produtos=ProdutoService(api),
            lotes=LoteService(api),
            promocoes=PromocaoService(api),
            vendas=VendaService(api),
            origem="api",
        )

    apply_migrations(db_path)
    log_system_event("backend_selected", {"origem": "local", "db_path": str(db_path)})
    return Servicos(
        produtos=ProdutoRepo(db_path),
        lotes=LoteRepo(db_path),
        promocoes=PromocaoRepo(db_path),
        vendas=VendaRepo(db_path),
    )
