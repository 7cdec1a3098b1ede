"""
Políticas de lote e validade.

Este módulo reúne as regras puras usadas na seleção de lotes durante a
venda: dias até o vencimento, faixa de cor do vencimento, obrigatoriedade
de seleção manual e a ordenação/seleção FEFO (primeiro a vencer, primeiro
a sair). Nenhuma função aqui acessa serviços ou altera estado externo.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional

from farmacia.domain.models import Lote, LoteSelecionado, Produto


def calcular_dias_para_vencimento(data_validade: date, hoje: Optional[date] = None) -> int:
    """Dias inteiros entre ``hoje`` e a validade do lote.

    Valores negativos indicam lote vencido; zero significa que vence hoje.

    Args:
        data_validade: Data de validade do lote (``date`` ou ``datetime``).
        hoje: Data de referência. Padrão: ``date.today()``.

    Returns:
        Número de dias até o vencimento.
    """
    if isinstance(data_validade, datetime):
        data_validade = data_validade.date()
    ref = hoje or date.today()
    if isinstance(ref, datetime):
        ref = ref.date()
    return (data_validade - ref).days


def obter_cor_vencimento(dias_para_vencimento: int) -> str:
    """Classifica o vencimento em uma cor (nomes de estilo do Rich).

    Regras:
        - ``dias < 0``   → ``'red'`` (vencido)
        - ``dias <= 30`` → ``'dark_orange'`` (próximo do vencimento)
        - ``dias <= 90`` → ``'yellow'`` (atenção)
        - caso contrário → ``'green'``
    """
    if dias_para_vencimento < 0:
        return "red"
    if dias_para_vencimento <= 30:
        return "dark_orange"
    if dias_para_vencimento <= 90:
        return "yellow"
    return "green"


def eh_controlado(produto: Produto) -> bool:
    """Medicamento controlado: flag explícita, exige receita ou tem classe controlada."""
    classe = (produto.classe_controlada or "").strip()
    return bool(produto.controlado or produto.exige_receita or classe)


def requer_lote_obrigatorio(produto: Produto) -> bool:
    """Indica se a venda do produto exige seleção manual de lotes."""
    return eh_controlado(produto) or produto.lote_obrigatorio is True


def obter_tipo_produto_lote(produto: Produto) -> str:
    if eh_controlado(produto):
        return "controlado"
    if produto.lote_obrigatorio:
        return "lote-obrigatorio"
    return "comum"


def obter_descricao_controle(produto: Produto) -> str:
    tipo = obter_tipo_produto_lote(produto)
    if tipo == "controlado":
        return "Medicamento Controlado - Lote Obrigatório"
    if tipo == "lote-obrigatorio":
        return "Controle de Lote Obrigatório"
    return "FEFO Automático"


def ordenar_fefo(lotes: Iterable[Lote]) -> List[Lote]:
    """Mantém só lotes com saldo e ordena pelo vencimento mais próximo.

    A ordenação é estável: lotes com o mesmo prazo mantêm a ordem recebida.
    """
    com_saldo = [l for l in lotes if l.quantidade_disponivel > 0]
    return sorted(com_saldo, key=lambda l: l.dias_para_vencimento)


def selecionar_lotes_fefo(lotes: Iterable[Lote], janela_dias: int = 90, maximo: int = 5) -> List[Lote]:
    """Escolhe até ``maximo`` lotes que vencem dentro de ``janela_dias``.

    Args:
        lotes: Lotes candidatos (qualquer ordem).
        janela_dias: Limite de dias para considerar o lote "próximo ao vencimento".
        maximo: Quantidade máxima de lotes retornados.

    Returns:
        Lista em ordem FEFO, possivelmente vazia.
    """
    proximos = [l for l in ordenar_fefo(lotes) if l.dias_para_vencimento <= janela_dias]
    return proximos[:maximo]


def limitar_quantidade(quantidade: int, disponivel: int) -> int:
    """Restringe a quantidade aplicável a ``[1, disponivel]``."""
    return min(max(1, int(quantidade)), int(disponivel))


def para_selecao(lote: Lote, quantidade: Optional[int] = None) -> LoteSelecionado:
    """Cria a seleção de um lote; por padrão usa todo o saldo disponível."""
    qtd = lote.quantidade_disponivel if quantidade is None else quantidade
    return LoteSelecionado(
        lote_id=lote.id,
        numero_lote=lote.numero_lote,
        data_validade=lote.data_validade,
        quantidade_disponivel=lote.quantidade_disponivel,
        quantidade_aplicavel=qtd,
        preco_custo=lote.preco_custo,
        dias_para_vencimento=lote.dias_para_vencimento,
    )


def total_aplicavel(selecoes: Iterable[LoteSelecionado]) -> int:
    return sum(s.quantidade_aplicavel for s in selecoes)
