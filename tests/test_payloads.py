from datetime import date, datetime

import pytest

from farmacia.adapters.payloads import (
    lista_from_api,
    lote_from_api,
    produto_from_api,
    promocao_from_api,
)
from farmacia.domain.erros import PayloadInvalido
from farmacia.domain.models import CondicaoTermino, TipoAlcancePromocao, TipoPromocao

HOJE = date(2025, 6, 1)


def test_produto_camel_case():
    p = produto_from_api({
        "id": 42,
        "nome": "Amoxicilina 500mg",
        "precoVenda": "R$ 25,90",
        "estoque": "12",
        "laboratorio": " EMS ",
        "loteObrigatorio": True,
        "codigoBarras": "7891234567890",
    })
    assert p.id == "42"
    assert p.preco_venda == 25.9
    assert p.estoque == 12
    assert p.laboratorio == "EMS"
    assert p.lote_obrigatorio is True
    assert p.controlado is False
    assert p.ativo is True


@pytest.mark.parametrize(
    "extra",
    [{"controlado": True}, {"exigeReceita": "true"}, {"classeControlada": "A1"}],
)
def test_produto_controlado_por_qualquer_sinal(extra):
    assert produto_from_api({"id": "1", "nome": "X", **extra}).controlado is True


def test_produto_sem_id():
    with pytest.raises(PayloadInvalido):
        produto_from_api({"nome": "Sem id"})


def test_produto_nao_dict():
    with pytest.raises(PayloadInvalido):
        produto_from_api(["x"])


def test_lote_calcula_disponivel_e_dias():
    l = lote_from_api(
        {
            "id": "L1",
            "numeroLote": "ABC123",
            "dataValidade": "2025-07-01",
            "quantidadeAtual": 10,
            "quantidadeReservada": 3,
            "precoCusto": "4,50",
        },
        hoje=HOJE,
    )
    assert l.quantidade_disponivel == 7
    assert l.dias_para_vencimento == 30
    assert l.data_validade == date(2025, 7, 1)
    assert l.preco_custo == 4.5


def test_lote_formato_promocional():
    l = lote_from_api({
        "loteId": "L9",
        "numeroLote": "Z",
        "dataValidade": "01/08/2025",
        "quantidadeDisponivel": 4,
        "diasParaVencimento": 61,
    })
    assert l.id == "L9"
    assert l.quantidade_disponivel == 4
    assert l.dias_para_vencimento == 61


def test_lote_validade_invalida():
    with pytest.raises(PayloadInvalido):
        lote_from_api({"id": "L1", "dataValidade": "ontem"})


def _promo(**kw):
    base = {
        "id": "PR1",
        "nome": "Semana EMS",
        "tipoAlcance": "LABORATORIO",
        "laboratorio": "EMS",
        "tipo": "PORCENTAGEM",
        "porcentagemDesconto": "15",
        "dataInicio": "2025-06-01T00:00:00",
        "dataFim": "2025-06-30T23:59:59",
    }
    base.update(kw)
    return base


def test_promocao_ok():
    p = promocao_from_api(_promo(condicaoTermino="QUANTIDADE_LIMITADA", quantidadeMaxima=50, quantidadeVendida=3))
    assert p.tipo_alcance == TipoAlcancePromocao.LABORATORIO
    assert p.tipo == TipoPromocao.PORCENTAGEM
    assert p.porcentagem_desconto == 15.0
    assert p.data_fim == datetime(2025, 6, 30, 23, 59, 59)
    assert p.condicao_termino == CondicaoTermino.QUANTIDADE_LIMITADA
    assert p.quantidade_vendida == 3


@pytest.mark.parametrize(
    "kw",
    [
        {"laboratorio": None},
        {"produtoId": "P1"},
        {"tipoAlcance": "LOTE"},
    ],
)
def test_promocao_chave_de_alcance_inconsistente(kw):
    with pytest.raises(PayloadInvalido):
        promocao_from_api(_promo(**kw))


def test_promocao_enum_desconhecido():
    with pytest.raises(PayloadInvalido, match="TipoPromocao"):
        promocao_from_api(_promo(tipo="BRINDE"))


def test_promocao_sem_vigencia():
    with pytest.raises(PayloadInvalido):
        promocao_from_api(_promo(dataFim=None))


def test_lista_embrulhada():
    assert lista_from_api([1], "lotes") == [1]
    assert lista_from_api({"lotes": [1, 2]}, "lotes") == [1, 2]
    assert lista_from_api({"data": [3]}, "lotes") == [3]
    with pytest.raises(PayloadInvalido):
        lista_from_api({"erro": "x"}, "lotes")
