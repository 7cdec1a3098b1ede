"""
Regras de aplicabilidade de promoções.

A escolha é feita em uma única passada sobre as candidatas devolvidas pelo
serviço de promoções:

1. descarta promoções inativas, fora do período de vigência ou com a cota
   de ``QUANTIDADE_LIMITADA`` esgotada;
2. descarta promoções cujo alcance não casa com o produto/lote pedido;
3. aplica a precedência LOTE > PRODUTO > LABORATORIO. Dentro do mesmo
   alcance vale a primeira candidata na ordem recebida.

Promoção de lote só é considerada quando o chamador informa o ``lote_id``:
o desconto do lote só existe depois que o lote foi de fato escolhido.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from farmacia.domain.models import (
    CondicaoTermino,
    Produto,
    Promocao,
    TipoAlcancePromocao,
    TipoPromocao,
)


PRECEDENCIA = (
    TipoAlcancePromocao.LOTE,
    TipoAlcancePromocao.PRODUTO,
    TipoAlcancePromocao.LABORATORIO,
)


@dataclass
class StatusPromocao:
    ativa: bool
    vigente: bool
    disponivel: bool
    quantidade_restante: Optional[int] = None
    dias_restantes: Optional[int] = None


@dataclass
class ValidacaoPromocao:
    valida: bool
    erros: List[str] = field(default_factory=list)


def esta_vigente(promocao: Promocao, agora: Optional[datetime] = None) -> bool:
    """``data_inicio <= agora <= data_fim`` (limites inclusivos)."""
    agora = agora or datetime.now()
    return promocao.data_inicio <= agora <= promocao.data_fim


def quantidade_restante(promocao: Promocao) -> Optional[int]:
    if promocao.condicao_termino != CondicaoTermino.QUANTIDADE_LIMITADA:
        return None
    if not promocao.quantidade_maxima:
        return None
    return promocao.quantidade_maxima - (promocao.quantidade_vendida or 0)


def verificar_status_promocao(promocao: Promocao, agora: Optional[datetime] = None) -> StatusPromocao:
    """Resume o estado atual de uma promoção.

    ``disponivel`` exige promoção ativa, vigente e, quando limitada por
    quantidade, com saldo restante positivo.
    """
    agora = agora or datetime.now()
    ativa = bool(promocao.ativo)
    vigente = esta_vigente(promocao, agora)
    disponivel = ativa and vigente
    restante = quantidade_restante(promocao)
    if restante is not None:
        disponivel = disponivel and restante > 0
    dias = None
    if vigente:
        dias = math.ceil((promocao.data_fim - agora).total_seconds() / 86400)
    return StatusPromocao(
        ativa=ativa,
        vigente=vigente,
        disponivel=disponivel,
        quantidade_restante=restante,
        dias_restantes=dias,
    )


def _mesmo_laboratorio(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return a.strip().casefold() == b.strip().casefold()


def alcance_corresponde(promocao: Promocao, produto: Produto, lote_id: Optional[str] = None) -> bool:
    """Verifica se a chave de alcance da promoção casa com o produto/lote."""
    if promocao.tipo_alcance == TipoAlcancePromocao.LOTE:
        return lote_id is not None and promocao.lote_id == lote_id
    if promocao.tipo_alcance == TipoAlcancePromocao.PRODUTO:
        return promocao.produto_id == produto.id
    if promocao.tipo_alcance == TipoAlcancePromocao.LABORATORIO:
        return _mesmo_laboratorio(promocao.laboratorio, produto.laboratorio)
    return False


def escolher_promocao(
    candidatas: Iterable[Promocao],
    produto: Produto,
    lote_id: Optional[str] = None,
    agora: Optional[datetime] = None,
) -> Optional[Promocao]:
    """Escolhe a promoção aplicável segundo a precedência de alcance.

    Args:
        candidatas: Promoções devolvidas pelo serviço (ordem preservada).
        produto: Produto sendo vendido.
        lote_id: Lote efetivamente escolhido, se houver.
        agora: Instante de referência para a vigência.

    Returns:
        A promoção vencedora ou ``None``.
    """
    agora = agora or datetime.now()
    por_alcance = {}
    for promo in candidatas:
        if not verificar_status_promocao(promo, agora).disponivel:
            continue
        if not alcance_corresponde(promo, produto, lote_id):
            continue
        por_alcance.setdefault(promo.tipo_alcance, promo)
    for alcance in PRECEDENCIA:
        if alcance in por_alcance:
            return por_alcance[alcance]
    return None


def validar_promocao(promocao: Promocao, agora: Optional[datetime] = None, nova: bool = True) -> ValidacaoPromocao:
    """Valida o cadastro de uma promoção (regras do back-office).

    Com ``nova=True`` a data de início não pode estar no passado.
    """
    erros: List[str] = []
    if not promocao.nome or len(promocao.nome.strip()) < 3:
        erros.append("Nome deve ter pelo menos 3 caracteres")

    chaves = {
        TipoAlcancePromocao.PRODUTO: (promocao.produto_id, "Produto é obrigatório"),
        TipoAlcancePromocao.LABORATORIO: (promocao.laboratorio, "Laboratório é obrigatório"),
        TipoAlcancePromocao.LOTE: (promocao.lote_id, "Lote é obrigatório"),
    }
    valor, msg = chaves[promocao.tipo_alcance]
    if not valor:
        erros.append(msg)

    if promocao.tipo == TipoPromocao.FIXO:
        if not promocao.valor_desconto or promocao.valor_desconto <= 0:
            erros.append("Valor de desconto deve ser maior que zero para promoção fixa")
    elif promocao.tipo == TipoPromocao.PORCENTAGEM:
        pct = promocao.porcentagem_desconto
        if not pct or pct <= 0 or pct > 100:
            erros.append("Porcentagem de desconto deve estar entre 1 e 100")

    if promocao.data_inicio >= promocao.data_fim:
        erros.append("Data de início deve ser anterior à data de fim")
    if nova and promocao.data_inicio < (agora or datetime.now()):
        erros.append("Data de início não pode ser no passado")

    if promocao.condicao_termino == CondicaoTermino.QUANTIDADE_LIMITADA:
        if not promocao.quantidade_maxima or promocao.quantidade_maxima <= 0:
            erros.append("Quantidade máxima deve ser maior que zero para condição de quantidade limitada")

    return ValidacaoPromocao(valida=not erros, erros=erros)
