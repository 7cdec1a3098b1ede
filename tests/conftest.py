"""
Fixtures compartilhadas: fábricas de entidades e serviços falsos em memória.
"""

from datetime import date, datetime, timedelta

import pytest

from farmacia.domain.erros import ErroServico
from farmacia.domain.models import (
    Lote,
    Produto,
    Promocao,
    TipoAlcancePromocao,
    TipoPromocao,
)

HOJE = date(2025, 6, 1)
AGORA = datetime(2025, 6, 1, 12, 0, 0)


def fazer_produto(**kw) -> Produto:
    dados = dict(id="P1", nome="Dipirona 500mg", preco_venda=10.0, estoque=100, laboratorio="EMS")
    dados.update(kw)
    return Produto(**dados)


def fazer_lote(lote_id: str, dias: int, disponivel: int = 10, **kw) -> Lote:
    dados = dict(
        id=lote_id,
        numero_lote=f"N-{lote_id}",
        data_validade=HOJE + timedelta(days=dias),
        quantidade_disponivel=disponivel,
        dias_para_vencimento=dias,
        produto_id="P1",
    )
    dados.update(kw)
    return Lote(**dados)


def fazer_promocao(promo_id: str, alcance: str = "PRODUTO", pct: float = 10.0, **kw) -> Promocao:
    alcance = TipoAlcancePromocao(alcance)
    dados = dict(
        id=promo_id,
        nome=f"Promo {promo_id}",
        tipo_alcance=alcance,
        tipo=TipoPromocao.PORCENTAGEM,
        porcentagem_desconto=pct,
        data_inicio=AGORA - timedelta(days=10),
        data_fim=AGORA + timedelta(days=10),
    )
    if alcance == TipoAlcancePromocao.PRODUTO:
        dados["produto_id"] = "P1"
    elif alcance == TipoAlcancePromocao.LABORATORIO:
        dados["laboratorio"] = "EMS"
    dados.update(kw)
    return Promocao(**dados)


class FakeLotes:
    def __init__(self, lotes=(), erro=None, ao_listar=None):
        self.lotes = list(lotes)
        self.erro = erro
        self.ao_listar = ao_listar
        self.chamadas = []

    def listar_disponiveis(self, produto_id):
        self.chamadas.append(produto_id)
        if self.ao_listar:
            self.ao_listar()
        if self.erro:
            raise self.erro
        return list(self.lotes)


class FakePromocoes:
    """Devolve todas as promoções; falha para os lotes listados em ``falhas``."""

    def __init__(self, promocoes=(), falhas=()):
        self.promocoes = list(promocoes)
        self.falhas = set(falhas)
        self.chamadas = []

    def buscar_aplicaveis(self, produto_id, laboratorio=None, lote_id=None):
        self.chamadas.append((produto_id, laboratorio, lote_id))
        if lote_id in self.falhas:
            raise ErroServico("timeout", status=504)
        return list(self.promocoes)


class FakeVendas:
    def __init__(self, erro_criar=None, erro_pagamento=None):
        self.erro_criar = erro_criar
        self.erro_pagamento = erro_pagamento
        self.payloads = []
        self.pagas = []

    def criar_venda(self, payload):
        if self.erro_criar:
            raise self.erro_criar
        self.payloads.append(payload)
        return f"V{len(self.payloads)}"

    def finalizar_pagamento(self, venda_id):
        if self.erro_pagamento:
            raise self.erro_pagamento
        self.pagas.append(venda_id)


class FakeProdutos:
    def __init__(self, produtos=(), erro=None):
        self.produtos = list(produtos)
        self.erro = erro
        self.termos = []

    def buscar(self, termo):
        self.termos.append(termo)
        if self.erro:
            raise self.erro
        return [p for p in self.produtos if termo.lower() in p.nome.lower()]

    def buscar_por_id(self, produto_id):
        return next((p for p in self.produtos if p.id == produto_id), None)


@pytest.fixture
def hoje():
    return HOJE


@pytest.fixture
def agora():
    return AGORA


@pytest.fixture
def produto():
    return fazer_produto


@pytest.fixture
def lote():
    return fazer_lote


@pytest.fixture
def promocao():
    return fazer_promocao


@pytest.fixture
def fakes():
    """Classes dos serviços falsos."""
    class _Fakes:
        Lotes = FakeLotes
        Promocoes = FakePromocoes
        Vendas = FakeVendas
        Produtos = FakeProdutos
    return _Fakes
