"""
Utilidades de parsing para valores vindos de APIs, planilhas e prompts.

Este módulo interpreta strings de preço, data e booleanos no formato
tipicamente encontrado no sistema (por exemplo, "R$ 1.234,56" ou
"05/03/2025"). O objetivo é extrair de forma robusta o valor Python
correspondente, devolvendo ``None`` quando não for possível.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

_NUM_RE = re.compile(r"[-+]?\d[\d.,]*")

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y")


def parse_valor(txt: Any) -> Optional[float]:
    """Interpreta um valor monetário ou numérico.

    Aceita números, "12.5", "12,50", "R$ 1.234,56" e "1,234.56".
    Quando há ponto e vírgula, o último separador é o decimal.

    Exemplos:
        "R$ 1.234,56" → 1234.56
        "12,5"        → 12.5
        "1,234.56"    → 1234.56
        ""            → None
    """
    if txt is None or isinstance(txt, bool):
        return None
    if isinstance(txt, (int, float)):
        return float(txt)
    s = str(txt).strip()
    if not s:
        return None
    m = _NUM_RE.search(s)
    if not m:
        return None
    num = m.group(0)
    if "," in num and "." in num:
        if num.rfind(",") > num.rfind("."):
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif "," in num:
        num = num.replace(",", ".")
    elif num.count(".") > 1:
        num = num.replace(".", "")
    try:
        return float(num)
    except ValueError:
        return None


def parse_inteiro(txt: Any) -> Optional[int]:
    v = parse_valor(txt)
    return int(v) if v is not None else None


def parse_data(txt: Any) -> Optional[date]:
    """Converte ISO (``YYYY-MM-DD``, com ou sem hora) ou ``DD/MM/AAAA`` em ``date``."""
    if txt is None:
        return None
    if isinstance(txt, datetime):
        return txt.date()
    if isinstance(txt, date):
        return txt
    s = str(txt).strip()
    if not s:
        return None
    dt = parse_datahora(s)
    if dt is not None:
        return dt.date()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def parse_datahora(txt: Any) -> Optional[datetime]:
    """Converte ISO 8601 em ``datetime`` ingênuo (hora local).

    Um sufixo de fuso (``Z`` ou ``+00:00``) é convertido para a hora local
    e descartado, pois o restante do sistema compara com ``datetime.now()``.
    """
    if txt is None:
        return None
    if isinstance(txt, datetime):
        return txt.astimezone().replace(tzinfo=None) if txt.tzinfo else txt
    if isinstance(txt, date):
        return datetime(txt.year, txt.month, txt.day)
    s = str(txt).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(s, fmt)
            except ValueError:
                continue
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def parse_bool(val: Any) -> Optional[bool]:
    if val is None:
        return None
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in {"1", "true", "t", "sim", "s", "y", "yes"}:
        return True
    if s in {"0", "false", "f", "nao", "não", "n", "no"}:
        return False
    return None


def normalize_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None
