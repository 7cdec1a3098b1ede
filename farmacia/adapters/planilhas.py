# farmacia/adapters/planilhas.py
"""
Loaders de planilhas XLSX do cadastro (produtos, lotes e promoções).

Essas funções:
- leem planilhas XLSX usando pandas;
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com as chaves esperadas pelos repositórios locais.

Observações:
- Linhas sem identificador são ignoradas.
- Valores monetários aceitam "12,50" e "R$ 1.234,56".
- Datas aceitam ISO e DD/MM/AAAA.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import pandas as pd

from farmacia.adapters.parsers import normalize_str, parse_bool, parse_inteiro, parse_valor


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key):
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    return val


def _to_date_iso(val: Any) -> Optional[str]:
    """Converte valor para data ISO (YYYY-MM-DD) se possível."""
    d = _to_timestamp(val)
    return d.date().isoformat() if d is not None else None


def _to_datetime_iso(val: Any) -> Optional[str]:
    d = _to_timestamp(val)
    return d.to_pydatetime().isoformat(timespec="seconds") if d is not None else None


def _to_timestamp(val: Any) -> Optional[pd.Timestamp]:
    if val is None or pd.isna(val):
        return None
    if isinstance(val, pd.Timestamp):
        return val
    s = str(val).strip()
    if not s:
        return None
    # ISO primeiro; dayfirst só para o formato brasileiro
    dayfirst = bool(re.match(r"^\d{1,2}[/-]\d{1,2}[/-]\d{2,4}", s))
    d = pd.to_datetime(s, dayfirst=dayfirst, errors="coerce")
    if pd.isna(d):
        return None
    return d


_ALIASES = {
    # produto
    "id": "id",
    "codigo": "id",
    "cod": "id",
    "produto id": "produto_id",
    "id produto": "produto_id",
    "codigo produto": "produto_id",
    "nome": "nome",
    "produto": "nome",
    "descricao": "nome",
    "codigo barras": "codigo_barras",
    "codigo de barras": "codigo_barras",
    "ean": "codigo_barras",
    "preco": "preco_venda",
    "preco venda": "preco_venda",
    "preco de venda": "preco_venda",
    "estoque": "estoque",
    "laboratorio": "laboratorio",
    "fabricante": "laboratorio",
    "controlado": "controlado",
    "lote obrigatorio": "lote_obrigatorio",
    "exige receita": "exige_receita",
    "receita": "exige_receita",
    "classe controlada": "classe_controlada",
    "classe": "classe_controlada",
    "ativo": "ativo",

    # lote
    "lote": "numero_lote",
    "numero lote": "numero_lote",
    "numero do lote": "numero_lote",
    "id lote": "lote_id",
    "lote id": "lote_id",
    "fabricacao": "data_fabricacao",
    "data fabricacao": "data_fabricacao",
    "validade": "data_validade",
    "data validade": "data_validade",
    "quantidade": "quantidade_atual",
    "qtd": "quantidade_atual",
    "qtde": "quantidade_atual",
    "quantidade atual": "quantidade_atual",
    "reservada": "quantidade_reservada",
    "quantidade reservada": "quantidade_reservada",
    "custo": "preco_custo",
    "preco custo": "preco_custo",

    # promoção
    "alcance": "tipo_alcance",
    "tipo alcance": "tipo_alcance",
    "tipo": "tipo",
    "tipo desconto": "tipo",
    "valor desconto": "valor_desconto",
    "desconto": "valor_desconto",
    "porcentagem": "porcentagem_desconto",
    "porcentagem desconto": "porcentagem_desconto",
    "percentual": "porcentagem_desconto",
    "condicao termino": "condicao_termino",
    "quantidade maxima": "quantidade_maxima",
    "quantidade vendida": "quantidade_vendida",
    "inicio": "data_inicio",
    "data inicio": "data_inicio",
    "fim": "data_fim",
    "data fim": "data_fim",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = _ALIASES.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


def _read(path: str) -> pd.DataFrame:
    df = pd.read_excel(path, dtype="string")
    return _normalize_columns(df)


def _flag(row, key: str, default: bool = False) -> bool:
    v = parse_bool(_safe_get(row, key))
    return default if v is None else v


def _upper(val: Any) -> Optional[str]:
    """Normaliza enums da planilha: Laboratório -> LABORATORIO, quantidade limitada -> QUANTIDADE_LIMITADA."""
    s = _slug(normalize_str(val))
    return s.upper().replace(" ", "_") if s else None


# ---------------------------
# loaders públicos (XLSX)
# ---------------------------

def load_produtos_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de produtos e retorna registros compatíveis com a tabela `produto`."""
    out: List[Dict[str, Any]] = []
    for _, row in _read(path).iterrows():
        pid = normalize_str(_safe_get(row, "id"))
        if not pid:
            continue
        out.append({
            "id": pid,
            "nome": normalize_str(_safe_get(row, "nome")) or pid,
            "codigo_barras": normalize_str(_safe_get(row, "codigo_barras")),
            "preco_venda": parse_valor(_safe_get(row, "preco_venda")) or 0.0,
            "estoque": parse_inteiro(_safe_get(row, "estoque")) or 0,
            "laboratorio": normalize_str(_safe_get(row, "laboratorio")),
            "controlado": _flag(row, "controlado"),
            "lote_obrigatorio": _flag(row, "lote_obrigatorio"),
            "exige_receita": _flag(row, "exige_receita"),
            "classe_controlada": _upper(_safe_get(row, "classe_controlada")),
            "ativo": _flag(row, "ativo", default=True),
        })
    return out


def load_lotes_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de lotes. O id do lote, se ausente, é ``<produto>-<numero_lote>``."""
    out: List[Dict[str, Any]] = []
    for _, row in _read(path).iterrows():
        produto_id = normalize_str(_safe_get(row, "produto_id"))
        numero = normalize_str(_safe_get(row, "numero_lote"))
        validade = _to_date_iso(_safe_get(row, "data_validade"))
        if not produto_id or not numero or not validade:
            continue
        lote_id = normalize_str(_safe_get(row, "lote_id")) or normalize_str(_safe_get(row, "id"))
        out.append({
            "id": lote_id or f"{produto_id}-{numero}",
            "produto_id": produto_id,
            "numero_lote": numero,
            "data_fabricacao": _to_date_iso(_safe_get(row, "data_fabricacao")),
            "data_validade": validade,
            "quantidade_atual": parse_inteiro(_safe_get(row, "quantidade_atual")) or 0,
            "quantidade_reservada": parse_inteiro(_safe_get(row, "quantidade_reservada")) or 0,
            "preco_custo": parse_valor(_safe_get(row, "preco_custo")) or 0.0,
            "ativo": _flag(row, "ativo", default=True),
        })
    return out


def load_promocoes_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de promoções (alcance, tipo, valores e vigência)."""
    out: List[Dict[str, Any]] = []
    for _, row in _read(path).iterrows():
        pid = normalize_str(_safe_get(row, "id"))
        inicio = _to_datetime_iso(_safe_get(row, "data_inicio"))
        fim = _to_datetime_iso(_safe_get(row, "data_fim"))
        if not pid or not inicio or not fim:
            continue
        out.append({
            "id": pid,
            "nome": normalize_str(_safe_get(row, "nome")) or pid,
            "tipo_alcance": _upper(_safe_get(row, "tipo_alcance")) or "PRODUTO",
            "produto_id": normalize_str(_safe_get(row, "produto_id")),
            "laboratorio": normalize_str(_safe_get(row, "laboratorio")),
            "lote_id": normalize_str(_safe_get(row, "lote_id")),
            "tipo": _upper(_safe_get(row, "tipo")) or "PORCENTAGEM",
            "valor_desconto": parse_valor(_safe_get(row, "valor_desconto")),
            "porcentagem_desconto": parse_valor(_safe_get(row, "porcentagem_desconto")),
            "condicao_termino": _upper(_safe_get(row, "condicao_termino")) or "ATE_ACABAR_ESTOQUE",
            "quantidade_maxima": parse_inteiro(_safe_get(row, "quantidade_maxima")),
            "quantidade_vendida": parse_inteiro(_safe_get(row, "quantidade_vendida")) or 0,
            "data_inicio": inicio,
            "data_fim": fim,
            "ativo": _flag(row, "ativo", default=True),
        })
    return out
