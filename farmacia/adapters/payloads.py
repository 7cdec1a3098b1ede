# farmacia/adapters/payloads.py
"""
Fronteira de payloads: JSON dos serviços (camelCase) → dataclasses do domínio.

Toda resposta externa passa por aqui uma única vez. Valores numéricos,
datas e booleanos são coeridos; ids ausentes, enums desconhecidos e
promoções com chave de alcance inconsistente geram ``PayloadInvalido``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from farmacia.adapters.parsers import (
    normalize_str,
    parse_bool,
    parse_data,
    parse_datahora,
    parse_inteiro,
    parse_valor,
)
from farmacia.domain.erros import PayloadInvalido
from farmacia.domain.lotes import calcular_dias_para_vencimento
from farmacia.domain.models import (
    CondicaoTermino,
    Lote,
    Produto,
    Promocao,
    TipoAlcancePromocao,
    TipoPromocao,
)


def _pick(d: Dict[str, Any], *keys: str) -> Any:
    """Primeiro valor não-nulo entre chaves alternativas (camelCase / snake_case)."""
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return None


def _obrigatorio(d: Dict[str, Any], entidade: str, *keys: str) -> Any:
    val = _pick(d, *keys)
    if val is None or (isinstance(val, str) and not val.strip()):
        raise PayloadInvalido(f"{entidade}: campo '{keys[0]}' ausente")
    return val


def _enum(cls, val: Any, entidade: str):
    try:
        return cls(str(val).strip().upper())
    except ValueError:
        raise PayloadInvalido(f"{entidade}: valor inválido '{val}' para {cls.__name__}") from None


def _exige_dict(data: Any, entidade: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise PayloadInvalido(f"{entidade}: esperado objeto JSON, recebido {type(data).__name__}")
    return data


def produto_from_api(data: Any) -> Produto:
    d = _exige_dict(data, "Produto")
    classe = normalize_str(_pick(d, "classeControlada", "classe_controlada"))
    exige_receita = bool(parse_bool(_pick(d, "exigeReceita", "exige_receita")))
    controlado = bool(parse_bool(_pick(d, "controlado"))) or exige_receita or bool(classe)
    ativo = parse_bool(_pick(d, "ativo"))
    return Produto(
        id=str(_obrigatorio(d, "Produto", "id")),
        nome=str(_pick(d, "nome") or ""),
        preco_venda=parse_valor(_pick(d, "precoVenda", "preco_venda", "preco")) or 0.0,
        estoque=parse_inteiro(_pick(d, "estoque")) or 0,
        laboratorio=normalize_str(_pick(d, "laboratorio")),
        controlado=controlado,
        lote_obrigatorio=bool(parse_bool(_pick(d, "loteObrigatorio", "lote_obrigatorio"))),
        codigo_barras=normalize_str(_pick(d, "codigoBarras", "codigo_barras")),
        exige_receita=exige_receita,
        classe_controlada=classe,
        ativo=True if ativo is None else ativo,
    )


def lote_from_api(data: Any, hoje: Optional[date] = None) -> Lote:
    """Aceita tanto o formato de ``/lotes`` (``id``, ``quantidadeAtual``) quanto
    o de lotes para promoção (``loteId``, ``quantidadeDisponivel``)."""
    d = _exige_dict(data, "Lote")
    validade = parse_data(_obrigatorio(d, "Lote", "dataValidade", "data_validade"))
    if validade is None:
        raise PayloadInvalido(f"Lote: dataValidade inválida '{_pick(d, 'dataValidade', 'data_validade')}'")
    atual = parse_inteiro(_pick(d, "quantidadeAtual", "quantidade_atual"))
    reservada = parse_inteiro(_pick(d, "quantidadeReservada", "quantidade_reservada")) or 0
    disponivel = parse_inteiro(_pick(d, "quantidadeDisponivel", "quantidade_disponivel"))
    if disponivel is None:
        disponivel = (atual or 0) - reservada
    dias = parse_inteiro(_pick(d, "diasParaVencimento", "dias_para_vencimento"))
    if dias is None:
        dias = calcular_dias_para_vencimento(validade, hoje)
    return Lote(
        id=str(_obrigatorio(d, "Lote", "loteId", "id", "lote_id")),
        numero_lote=str(_pick(d, "numeroLote", "numero_lote") or ""),
        data_validade=validade,
        quantidade_disponivel=disponivel,
        preco_custo=parse_valor(_pick(d, "precoCusto", "preco_custo")) or 0.0,
        dias_para_vencimento=dias,
        produto_id=normalize_str(_pick(d, "produtoId", "produto_id")),
        data_fabricacao=parse_data(_pick(d, "dataFabricacao", "data_fabricacao")),
        quantidade_atual=atual,
        quantidade_reservada=reservada,
    )


_CHAVE_ALCANCE = {
    TipoAlcancePromocao.PRODUTO: "produto_id",
    TipoAlcancePromocao.LABORATORIO: "laboratorio",
    TipoAlcancePromocao.LOTE: "lote_id",
}


def promocao_from_api(data: Any) -> Promocao:
    d = _exige_dict(data, "Promoção")
    tipo_alcance = _enum(TipoAlcancePromocao, _pick(d, "tipoAlcance", "tipo_alcance") or "PRODUTO", "Promoção")
    chaves = {
        "produto_id": normalize_str(_pick(d, "produtoId", "produto_id")),
        "laboratorio": normalize_str(_pick(d, "laboratorio")),
        "lote_id": normalize_str(_pick(d, "loteId", "lote_id")),
    }
    esperada = _CHAVE_ALCANCE[tipo_alcance]
    preenchidas = [k for k, v in chaves.items() if v]
    if preenchidas != [esperada]:
        raise PayloadInvalido(
            f"Promoção: alcance {tipo_alcance.value} exige somente '{esperada}', "
            f"recebido {preenchidas or 'nenhum'}"
        )

    inicio = parse_datahora(_obrigatorio(d, "Promoção", "dataInicio", "data_inicio"))
    fim = parse_datahora(_obrigatorio(d, "Promoção", "dataFim", "data_fim"))
    if inicio is None or fim is None:
        raise PayloadInvalido("Promoção: período de vigência inválido")
    ativo = parse_bool(_pick(d, "ativo"))
    return Promocao(
        id=str(_obrigatorio(d, "Promoção", "id")),
        nome=str(_pick(d, "nome") or ""),
        tipo_alcance=tipo_alcance,
        tipo=_enum(TipoPromocao, _obrigatorio(d, "Promoção", "tipo"), "Promoção"),
        data_inicio=inicio,
        data_fim=fim,
        ativo=True if ativo is None else ativo,
        valor_desconto=parse_valor(_pick(d, "valorDesconto", "valor_desconto")),
        porcentagem_desconto=parse_valor(_pick(d, "porcentagemDesconto", "porcentagem_desconto")),
        condicao_termino=_enum(
            CondicaoTermino,
            _pick(d, "condicaoTermino", "condicao_termino") or "ATE_ACABAR_ESTOQUE",
            "Promoção",
        ),
        quantidade_maxima=parse_inteiro(_pick(d, "quantidadeMaxima", "quantidade_maxima")),
        quantidade_vendida=parse_inteiro(_pick(d, "quantidadeVendida", "quantidade_vendida")) or 0,
        **chaves,
    )


def lista_from_api(data: Any, chave: str) -> List[Any]:
    """Extrai a lista de uma resposta que pode vir crua ou embrulhada.

    Ex.: ``[...]``, ``{"promocoes": [...]}`` ou ``{"data": [...]}``.
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for k in (chave, "data", "items"):
            if isinstance(data.get(k), list):
                return data[k]
    raise PayloadInvalido(f"Resposta inesperada: esperada lista de {chave}")
