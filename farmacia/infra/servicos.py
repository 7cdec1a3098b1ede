# farmacia/infra/servicos.py
"""
Serviços REST consumidos pelo PDV.

Classes:
- ProdutoService   -> catálogo (GET /produtos)
- LoteService      -> lotes disponíveis (GET /produtos/{id}/lotes)
- PromocaoService  -> promoções aplicáveis (GET /promocoes/aplicaveis)
- VendaService     -> criação e pagamento (POST /vendas)

Todas as respostas são convertidas em dataclasses pela fronteira
``farmacia.adapters.payloads``; nada além daqui vê JSON cru.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from farmacia.adapters.payloads import (
    lista_from_api,
    lote_from_api,
    produto_from_api,
    promocao_from_api,
)
from farmacia.domain.erros import ErroServico, PayloadInvalido
from farmacia.domain.models import Lote, Produto, Promocao
from farmacia.infra.api import ApiClient


class ProdutoService:
    def __init__(self, api: ApiClient):
        self.api = api

    def buscar_por_id(self, produto_id: str) -> Optional[Produto]:
        try:
            data = self.api.get(f"/produtos/{quote(str(produto_id), safe='')}")
        except ErroServico as e:
            if e.status == 404:
                return None
            raise
        return produto_from_api(data) if data else None

    def buscar(self, termo: str) -> List[Produto]:
        """Busca por código de barras, nome ou princípio ativo."""
        data = self.api.get("/produtos", params={"search": termo})
        return [produto_from_api(p) for p in lista_from_api(data, "produtos")]


class LoteService:
    def __init__(self, api: ApiClient):
        self.api = api

    def listar_disponiveis(self, produto_id: str) -> List[Lote]:
        data = self.api.get(f"/produtos/{quote(str(produto_id), safe='')}/lotes")
        return [lote_from_api(l) for l in lista_from_api(data, "lotes")]


class PromocaoService:
    def __init__(self, api: ApiClient):
        self.api = api

    def buscar_aplicaveis(
        self,
        produto_id: str,
        laboratorio: Optional[str] = None,
        lote_id: Optional[str] = None,
    ) -> List[Promocao]:
        data = self.api.get(
            "/promocoes/aplicaveis",
            params={"produtoId": produto_id, "laboratorio": laboratorio, "loteId": lote_id},
        )
        return [promocao_from_api(p) for p in lista_from_api(data, "promocoes")]


class VendaService:
    def __init__(self, api: ApiClient):
        self.api = api

    def criar_venda(self, payload: Dict[str, Any]) -> str:
        """Cria a venda e devolve o id gerado."""
        data = self.api.post("/vendas", json=payload)
        venda = data.get("data", data) if isinstance(data, dict) else None
        if not isinstance(venda, dict) or not venda.get("id"):
            raise PayloadInvalido("Venda: resposta sem id")
        return str(venda["id"])

    def finalizar_pagamento(self, venda_id: str) -> None:
        self.api.post(f"/vendas/{quote(str(venda_id), safe='')}/finalizar-pagamento")
