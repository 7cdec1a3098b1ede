"""
Cálculo do preço promocional.

As funções são puras e não arredondam: o arredondamento para centavos é
responsabilidade da camada de exibição (``arredondar_moeda`` /
``formatar_moeda``). Nenhuma promoção produz preço final negativo; o piso
em zero é uma regra, não um erro de validação.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from farmacia.domain.erros import ErroValidacao
from farmacia.domain.models import Promocao, TipoPromocao

Numero = Union[int, float]


@dataclass
class ResultadoDesconto:
    preco_final: float
    valor_desconto: float
    porcentagem_desconto: float


def aplicar_desconto(preco_base: Numero, promocao: Promocao) -> ResultadoDesconto:
    """Aplica a promoção sobre um preço base.

    Parameters
    ----------
    preco_base: float
        Preço unitário original (>= 0).
    promocao: Promocao
        Promoção do tipo ``FIXO`` (usa ``valor_desconto``) ou
        ``PORCENTAGEM`` (usa ``porcentagem_desconto``).

    Returns
    -------
    ResultadoDesconto
        ``preco_final = max(0, preco_base - valor_desconto)``. O
        ``valor_desconto`` é o nominal da promoção, mesmo quando excede o
        preço base.
    """
    base = float(preco_base)
    if base < 0:
        raise ErroValidacao("Preço base não pode ser negativo")

    if promocao.tipo == TipoPromocao.FIXO and promocao.valor_desconto is not None:
        valor = float(promocao.valor_desconto)
        pct = (valor / base) * 100 if base > 0 else 0.0
    elif promocao.tipo == TipoPromocao.PORCENTAGEM and promocao.porcentagem_desconto is not None:
        pct = float(promocao.porcentagem_desconto)
        valor = base * pct / 100
    else:
        raise ErroValidacao("Dados insuficientes para calcular promoção")

    return ResultadoDesconto(
        preco_final=max(0.0, base - valor),
        valor_desconto=valor,
        porcentagem_desconto=pct,
    )


def arredondar_moeda(valor: Numero) -> float:
    """Arredonda para centavos (meio para cima, como no caixa)."""
    return float(Decimal(str(valor)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def formatar_moeda(valor: Numero) -> str:
    """Formata em reais: ``1234.5`` → ``'R$ 1.234,50'``."""
    txt = f"{arredondar_moeda(valor):,.2f}"
    return "R$ " + txt.replace(",", "X").replace(".", ",").replace("X", ".")


def formatar_porcentagem(valor: Numero) -> str:
    return f"{float(valor):.1f}%".replace(".", ",")
