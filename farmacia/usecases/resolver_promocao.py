# farmacia/usecases/resolver_promocao.py
"""
UC: resolver a promoção aplicável a um produto (e, opcionalmente, a um lote).

Fluxo:
1) Busca candidatas no serviço de promoções por {produto, laboratório, lote}.
2) Descarta inativas, fora da vigência e esgotadas (quantidade limitada).
3) Reconfere o alcance de cada candidata contra o produto/lote.
4) Aplica a precedência LOTE > PRODUTO > LABORATORIO.

Sem efeitos colaterais; a busca pode ser repetida pelo chamador.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from farmacia.domain.erros import ErroServico
from farmacia.domain.models import Produto, Promocao
from farmacia.domain.promocoes import escolher_promocao
from farmacia.infra.logger import log_promocao


def resolver_promocao_aplicavel(
    produto: Produto,
    lote_id: Optional[str] = None,
    *,
    servico,
    agora: Optional[datetime] = None,
) -> Optional[Promocao]:
    """Devolve a promoção vencedora ou ``None``.

    ``servico`` é qualquer objeto com ``buscar_aplicaveis(produto_id,
    laboratorio, lote_id)`` (REST ou banco local).
    """
    agora = agora or datetime.now()
    try:
        candidatas = servico.buscar_aplicaveis(produto.id, produto.laboratorio, lote_id)
    except ErroServico as e:
        log_promocao("fetch_error", produto.id, lote_id=lote_id, level="error", error=e.mensagem)
        raise

    escolhida = escolher_promocao(candidatas, produto, lote_id=lote_id, agora=agora)
    log_promocao(
        "resolved",
        produto.id,
        promocao_id=escolhida.id if escolhida else None,
        lote_id=lote_id,
        candidatas=len(candidatas),
    )
    return escolhida
