# farmacia/usecases/importar_cadastros.py
"""
UC: importar cadastros (produtos, lotes, promoções) de XLSX para o banco local.

Cada linha passa pela mesma fronteira de payloads usada nas respostas REST
antes de ser gravada; uma linha inconsistente aborta a importação inteira.
"""

from __future__ import annotations

from typing import Any, Dict, List

from farmacia.adapters.payloads import lote_from_api, produto_from_api, promocao_from_api
from farmacia.adapters.planilhas import (
    load_lotes_from_xlsx,
    load_produtos_from_xlsx,
    load_promocoes_from_xlsx,
)
from farmacia.config import DB_PATH
from farmacia.domain.erros import ErroFarmacia, PayloadInvalido
from farmacia.infra.logger import log_system_event, log_transaction
from farmacia.infra.migrations import apply_migrations
from farmacia.infra.repositories import LoteRepo, ProdutoRepo, PromocaoRepo


_CADASTROS = {
    "produtos": (load_produtos_from_xlsx, produto_from_api, ProdutoRepo),
    "lotes": (load_lotes_from_xlsx, lote_from_api, LoteRepo),
    "promocoes": (load_promocoes_from_xlsx, promocao_from_api, PromocaoRepo),
}


def importar_cadastro(tipo: str, path: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê o XLSX de ``tipo`` e grava as linhas no banco local."""
    if tipo not in _CADASTROS:
        raise ValueError(f"tipo de cadastro desconhecido: {tipo}")
    loader, validar, repo_cls = _CADASTROS[tipo]
    log_system_event("importacao_start", {"tipo": tipo, "file_path": path})

    try:
        rows: List[Dict[str, Any]] = loader(path)
        for i, row in enumerate(rows, start=2):  # linha 1 é o cabeçalho
            try:
                validar(row)
            except PayloadInvalido as e:
                raise PayloadInvalido(f"Linha {i}: {e.mensagem}") from e

        apply_migrations(db_path)
        n = repo_cls(db_path).upsert(rows)
        result = {"arquivo": path, "tipo": tipo, "linhas_importadas": n}
        log_transaction(f"importar_{tipo}", {"file": path, "rows_count": n}, result=result)
        return result
    except ErroFarmacia as e:
        log_transaction(f"importar_{tipo}", {"file": path}, error=e.mensagem)
        log_system_event("importacao_error", {"tipo": tipo, "error": e.mensagem}, level="error")
        raise
