from datetime import timedelta

import pytest

from farmacia.domain.descontos import aplicar_desconto
from farmacia.domain.erros import ErroValidacao
from farmacia.domain.lotes import para_selecao
from farmacia.domain.models import DadosCliente, DadosPaciente, DadosReceita, TipoPromocao
from farmacia.usecases.carrinho_venda import CarrinhoVenda


@pytest.fixture
def carrinho(hoje):
    return CarrinhoVenda(hoje=hoje)


def _paciente_ok():
    return DadosPaciente(
        nome="Maria Silva",
        cpf="123.456.789-09",
        rg="12.345.678-9",
        endereco="Rua das Flores, 123",
        telefone="(11) 98765-4321",
    )


def test_totais_recalculados(carrinho, produto):
    carrinho.adicionar_item(produto(), 2, desconto=2.0)
    carrinho.adicionar_item(produto(id="P2", preco_venda=5.0), 1)
    assert carrinho.valor_total == pytest.approx(25.0)
    assert carrinho.valor_desconto == pytest.approx(2.0)
    assert carrinho.valor_final == pytest.approx(23.0)
    carrinho.remover_item(0)
    assert carrinho.valor_total == pytest.approx(5.0)
    assert carrinho.valor_desconto == 0.0


def test_mesmo_produto_soma_linha(carrinho, produto):
    carrinho.adicionar_item(produto(), 2, desconto=1.0, promocao_id="PR1")
    item = carrinho.adicionar_item(produto(), 3, desconto=1.5)
    assert len(carrinho.itens) == 1
    assert item.quantidade == 5
    assert item.desconto == pytest.approx(2.5)
    assert item.promocao_id == "PR1"


def test_soma_acima_do_estoque_e_rejeitada(carrinho, produto):
    p = produto(estoque=4)
    carrinho.adicionar_item(p, 3)
    with pytest.raises(ErroValidacao, match="Estoque insuficiente. Disponível: 4"):
        carrinho.adicionar_item(p, 2)
    assert carrinho.itens[0].quantidade == 3


def test_desconto_fixo_maior_que_preco_zera_linha(carrinho, produto, promocao):
    p = produto(preco_venda=5.0)
    promo = promocao("PF", tipo=TipoPromocao.FIXO, porcentagem_desconto=None, valor_desconto=8.0)
    res = aplicar_desconto(p.preco_venda, promo)
    carrinho.adicionar_item(p, 2, desconto=(p.preco_venda - res.preco_final) * 2, promocao_id="PF")
    assert carrinho.valor_desconto == pytest.approx(10.0)
    assert carrinho.valor_final == pytest.approx(0.0)

    # desconto nominal (8 x 2) acima do subtotal da linha
    with pytest.raises(ErroValidacao, match="maior que o valor do item"):
        carrinho.adicionar_item(produto(id="P2", preco_venda=5.0), 2, desconto=16.0)
    assert len(carrinho.itens) == 1


def test_desconto_acumulado_acima_do_subtotal_e_rejeitado(carrinho, produto):
    carrinho.adicionar_item(produto(), 1, desconto=9.0)
    with pytest.raises(ErroValidacao, match="maior que o valor do item"):
        carrinho.adicionar_item(produto(), 1, desconto=12.0)
    assert carrinho.itens[0].quantidade == 1
    assert carrinho.valor_final >= 0


@pytest.mark.parametrize("qtd", [0, -1])
def test_quantidade_invalida(carrinho, produto, qtd):
    with pytest.raises(ErroValidacao):
        carrinho.adicionar_item(produto(), qtd)
    assert carrinho.vazio


def test_produto_com_lote_obrigatorio_exige_lotes(carrinho, produto, lote):
    p = produto(lote_obrigatorio=True)
    with pytest.raises(ErroValidacao, match="Selecione os lotes"):
        carrinho.adicionar_item(p, 2)
    with pytest.raises(ErroValidacao, match="difere"):
        carrinho.adicionar_item(p, 2, lotes=[para_selecao(lote("L1", 10), 3)])
    item = carrinho.adicionar_item(p, 2, lotes=[para_selecao(lote("L1", 10), 2)])
    assert [(l.lote_id, l.quantidade_aplicavel) for l in item.lotes] == [("L1", 2)]


def test_lotes_mesclados_por_lote_e_revalidados(carrinho, produto, lote):
    p = produto(lote_obrigatorio=True)
    l1 = lote("L1", 10, disponivel=5)
    l2 = lote("L2", 40, disponivel=5)
    carrinho.adicionar_item(p, 3, lotes=[para_selecao(l1, 3)])
    item = carrinho.adicionar_item(p, 3, lotes=[para_selecao(l1, 1), para_selecao(l2, 2)])
    assert {l.lote_id: l.quantidade_aplicavel for l in item.lotes} == {"L1": 4, "L2": 2}
    with pytest.raises(ErroValidacao, match="excede o disponível"):
        carrinho.adicionar_item(p, 2, lotes=[para_selecao(l1, 2)])
    assert carrinho.itens[0].quantidade == 6


def test_controlado_exige_receita_e_paciente(carrinho, produto, lote, hoje):
    p = produto(controlado=True)
    carrinho.adicionar_item(p, 1, lotes=[para_selecao(lote("L1", 10), 1)])
    assert carrinho.tem_medicamento_controlado
    pend = carrinho.pendencias()
    assert "Número e data da receita são obrigatórios" in pend
    assert any("Dados do paciente" in m for m in pend)
    assert not carrinho.pode_finalizar()
    with pytest.raises(ErroValidacao):
        carrinho.validar_para_finalizacao()

    carrinho.receita = DadosReceita(numero="RX123456", data=hoje - timedelta(days=30))
    carrinho.paciente = _paciente_ok()
    assert carrinho.pendencias() == []
    assert carrinho.pode_finalizar()


@pytest.mark.parametrize(
    "numero, dias_atras, trecho",
    [
        ("RX1234", 1, "pelo menos 8"),
        ("RX123456", 31, "Receita vencida"),
        ("RX123456", -1, "não pode ser futura"),
    ],
)
def test_receita_invalida_bloqueia(carrinho, produto, lote, hoje, numero, dias_atras, trecho):
    carrinho.adicionar_item(produto(exige_receita=True), 1, lotes=[para_selecao(lote("L1", 10), 1)])
    carrinho.receita = DadosReceita(numero=numero, data=hoje - timedelta(days=dias_atras))
    carrinho.paciente = _paciente_ok()
    assert any(trecho in m for m in carrinho.pendencias())


def test_remover_ultimo_controlado_limpa_receita(carrinho, produto, lote, hoje):
    carrinho.adicionar_item(produto(), 1)
    carrinho.adicionar_item(produto(id="C1", classe_controlada="B1"), 1, lotes=[para_selecao(lote("L1", 10), 1)])
    carrinho.receita = DadosReceita(numero="RX123456", data=hoje)
    carrinho.paciente = _paciente_ok()
    carrinho.remover_item(1)
    assert not carrinho.tem_medicamento_controlado
    assert carrinho.receita == DadosReceita()
    assert carrinho.paciente == DadosPaciente()
    assert carrinho.pode_finalizar()


def test_remover_indice_invalido(carrinho):
    with pytest.raises(ErroValidacao):
        carrinho.remover_item(0)


def test_carrinho_vazio_nao_finaliza(carrinho):
    assert carrinho.pendencias() == ["Adicione pelo menos um produto à venda"]


def test_cliente_parcial_e_pendencia(carrinho, produto):
    carrinho.adicionar_item(produto(), 1)
    carrinho.cliente = DadosCliente(nome="João Souza")
    assert "Complete os dados do cliente ou deixe todos os campos em branco" in carrinho.pendencias()
    carrinho.cliente = DadosCliente(nome="João Souza", documento="123", tipo_documento="CPF")
    assert carrinho.pode_finalizar()
    carrinho.cliente = DadosCliente(id="CLI-1")
    assert carrinho.pode_finalizar()
