# farmacia/infra/repositories.py
"""
Repositórios (DAO) do backend local em SQLite.

Expõem os mesmos métodos dos serviços REST de ``farmacia.infra.servicos``,
de modo que os casos de uso funcionam com qualquer um dos dois.

Classes:
- ProdutoRepo
- LoteRepo
- PromocaoRepo
- VendaRepo
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from .db import connect
from farmacia.adapters.payloads import lote_from_api, produto_from_api, promocao_from_api
from farmacia.domain.erros import ErroValidacao
from farmacia.domain.models import Lote, Produto, Promocao
from farmacia.infra.logger import log_transaction


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _iso(val: Any) -> Any:
    if isinstance(val, (date, datetime)):
        return val.isoformat()
    return val


def _bool01(val: Any) -> int:
    return 1 if val else 0


def _rows(cur) -> List[Dict[str, Any]]:
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


# -------------------------
# Produto
# -------------------------

class ProdutoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, rows: Iterable[Any]) -> int:
        rows = [_as_dict(r) for r in rows]
        with connect(self.db_path) as c:
            for r in rows:
                payload = {
                    "id": r["id"],
                    "nome": r.get("nome") or "",
                    "codigo_barras": r.get("codigo_barras"),
                    "preco_venda": r.get("preco_venda") or 0.0,
                    "estoque": r.get("estoque") or 0,
                    "laboratorio": r.get("laboratorio"),
                    "controlado": _bool01(r.get("controlado")),
                    "lote_obrigatorio": _bool01(r.get("lote_obrigatorio")),
                    "exige_receita": _bool01(r.get("exige_receita")),
                    "classe_controlada": r.get("classe_controlada"),
                    "ativo": _bool01(r.get("ativo", True)),
                }
                c.execute(
                    """
                    INSERT INTO produto
                        (id, nome, codigo_barras, preco_venda, estoque, laboratorio,
                         controlado, lote_obrigatorio, exige_receita, classe_controlada, ativo)
                    VALUES
                        (:id, :nome, :codigo_barras, :preco_venda, :estoque, :laboratorio,
                         :controlado, :lote_obrigatorio, :exige_receita, :classe_controlada, :ativo)
                    ON CONFLICT(id) DO UPDATE SET
                        nome=excluded.nome,
                        codigo_barras=excluded.codigo_barras,
                        preco_venda=excluded.preco_venda,
                        estoque=excluded.estoque,
                        laboratorio=excluded.laboratorio,
                        controlado=excluded.controlado,
                        lote_obrigatorio=excluded.lote_obrigatorio,
                        exige_receita=excluded.exige_receita,
                        classe_controlada=excluded.classe_controlada,
                        ativo=excluded.ativo
                    """,
                    payload,
                )
        return len(rows)

    def buscar_por_id(self, produto_id: str) -> Optional[Produto]:
        with connect(self.db_path) as c:
            cur = c.execute("SELECT * FROM produto WHERE id = ?", (produto_id,))
            rows = _rows(cur)
        return produto_from_api(rows[0]) if rows else None

    def buscar(self, termo: str) -> List[Produto]:
        """Busca por código de barras exato ou trecho do nome."""
        like = f"%{termo.strip()}%"
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                SELECT * FROM produto
                WHERE ativo = 1 AND (codigo_barras = ? OR id = ? OR nome LIKE ? COLLATE NOCASE)
                ORDER BY nome
                """,
                (termo.strip(), termo.strip(), like),
            )
            return [produto_from_api(r) for r in _rows(cur)]

    def get_all(self) -> List[Produto]:
        with connect(self.db_path) as c:
            return [produto_from_api(r) for r in _rows(c.execute("SELECT * FROM produto ORDER BY nome"))]


# -------------------------
# Lote
# -------------------------

class LoteRepo:
    def __init__(self, db_path: str, hoje: Optional[date] = None):
        self.db_path = db_path
        self.hoje = hoje

    def upsert(self, rows: Iterable[Any]) -> int:
        rows = [_as_dict(r) for r in rows]
        with connect(self.db_path) as c:
            for r in rows:
                payload = {
                    "id": r["id"],
                    "produto_id": r["produto_id"],
                    "numero_lote": r.get("numero_lote") or r["id"],
                    "data_fabricacao": _iso(r.get("data_fabricacao")),
                    "data_validade": _iso(r["data_validade"]),
                    "quantidade_atual": r.get("quantidade_atual") or 0,
                    "quantidade_reservada": r.get("quantidade_reservada") or 0,
                    "preco_custo": r.get("preco_custo") or 0.0,
                    "ativo": _bool01(r.get("ativo", True)),
                }
                c.execute(
                    """
                    INSERT INTO lote
                        (id, produto_id, numero_lote, data_fabricacao, data_validade,
                         quantidade_atual, quantidade_reservada, preco_custo, ativo)
                    VALUES
                        (:id, :produto_id, :numero_lote, :data_fabricacao, :data_validade,
                         :quantidade_atual, :quantidade_reservada, :preco_custo, :ativo)
                    ON CONFLICT(id) DO UPDATE SET
                        produto_id=excluded.produto_id,
                        numero_lote=excluded.numero_lote,
                        data_fabricacao=excluded.data_fabricacao,
                        data_validade=excluded.data_validade,
                        quantidade_atual=excluded.quantidade_atual,
                        quantidade_reservada=excluded.quantidade_reservada,
                        preco_custo=excluded.preco_custo,
                        ativo=excluded.ativo
                    """,
                    payload,
                )
        return len(rows)

    def listar_disponiveis(self, produto_id: str) -> List[Lote]:
        """Lotes ativos com saldo, do vencimento mais próximo ao mais distante."""
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                SELECT id, produto_id, numero_lote, data_fabricacao, data_validade,
                       quantidade_atual, quantidade_reservada, preco_custo
                FROM lote
                WHERE produto_id = ? AND ativo = 1
                  AND quantidade_atual - quantidade_reservada > 0
                ORDER BY data_validade ASC
                """,
                (produto_id,),
            )
            return [lote_from_api(r, hoje=self.hoje) for r in _rows(cur)]


# -------------------------
# Promoção
# -------------------------

class PromocaoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, rows: Iterable[Any]) -> int:
        rows = [_as_dict(r) for r in rows]
        with connect(self.db_path) as c:
            for r in rows:
                payload = {
                    "id": r["id"],
                    "nome": r.get("nome") or "",
                    "tipo_alcance": getattr(r["tipo_alcance"], "value", r["tipo_alcance"]),
                    "produto_id": r.get("produto_id"),
                    "laboratorio": r.get("laboratorio"),
                    "lote_id": r.get("lote_id"),
                    "tipo": getattr(r["tipo"], "value", r["tipo"]),
                    "valor_desconto": r.get("valor_desconto"),
                    "porcentagem_desconto": r.get("porcentagem_desconto"),
                    "condicao_termino": getattr(
                        r.get("condicao_termino"), "value", r.get("condicao_termino") or "ATE_ACABAR_ESTOQUE"
                    ),
                    "quantidade_maxima": r.get("quantidade_maxima"),
                    "quantidade_vendida": r.get("quantidade_vendida") or 0,
                    "data_inicio": _iso(r["data_inicio"]),
                    "data_fim": _iso(r["data_fim"]),
                    "ativo": _bool01(r.get("ativo", True)),
                }
                c.execute(
                    """
                    INSERT INTO promocao
                        (id, nome, tipo_alcance, produto_id, laboratorio, lote_id, tipo,
                         valor_desconto, porcentagem_desconto, condicao_termino,
                         quantidade_maxima, quantidade_vendida, data_inicio, data_fim, ativo)
                    VALUES
                        (:id, :nome, :tipo_alcance, :produto_id, :laboratorio, :lote_id, :tipo,
                         :valor_desconto, :porcentagem_desconto, :condicao_termino,
                         :quantidade_maxima, :quantidade_vendida, :data_inicio, :data_fim, :ativo)
                    ON CONFLICT(id) DO UPDATE SET
                        nome=excluded.nome,
                        tipo_alcance=excluded.tipo_alcance,
                        produto_id=excluded.produto_id,
                        laboratorio=excluded.laboratorio,
                        lote_id=excluded.lote_id,
                        tipo=excluded.tipo,
                        valor_desconto=excluded.valor_desconto,
                        porcentagem_desconto=excluded.porcentagem_desconto,
                        condicao_termino=excluded.condicao_termino,
                        quantidade_maxima=excluded.quantidade_maxima,
                        data_inicio=excluded.data_inicio,
                        data_fim=excluded.data_fim,
                        ativo=excluded.ativo
                    """,
                    payload,
                )
        return len(rows)

    def buscar_aplicaveis(
        self,
        produto_id: str,
        laboratorio: Optional[str] = None,
        lote_id: Optional[str] = None,
    ) -> List[Promocao]:
        """Promoções cujo alcance casa com produto, laboratório ou lote.

        Vigência e status são filtrados pelo resolvedor, não aqui.
        """
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                SELECT * FROM promocao
                WHERE (tipo_alcance = 'PRODUTO' AND produto_id = :produto_id)
                   OR (tipo_alcance = 'LABORATORIO' AND :laboratorio IS NOT NULL
                       AND laboratorio = :laboratorio COLLATE NOCASE)
                   OR (tipo_alcance = 'LOTE' AND :lote_id IS NOT NULL AND lote_id = :lote_id)
                ORDER BY rowid
                """,
                {"produto_id": produto_id, "laboratorio": laboratorio, "lote_id": lote_id},
            )
            return [promocao_from_api(r) for r in _rows(cur)]


# -------------------------
# Venda
# -------------------------

_CAMPOS_VENDA = {
    "clienteId": "cliente_id",
    "clienteNome": "cliente_nome",
    "clienteDocumento": "cliente_documento",
    "clienteTipoDocumento": "cliente_tipo_documento",
    "pacienteNome": "paciente_nome",
    "pacienteDocumento": "paciente_documento",
    "pacienteRg": "paciente_rg",
    "pacienteEndereco": "paciente_endereco",
    "pacienteTelefone": "paciente_telefone",
    "numeroReceita": "numero_receita",
    "dataReceita": "data_receita",
    "observacoes": "observacoes",
}


class VendaRepo:
    """Faz o papel dos serviços de venda e de estoque no modo local."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def criar_venda(self, payload: Dict[str, Any]) -> str:
        itens = payload.get("itens") or []
        if not itens:
            raise ErroValidacao("Adicione pelo menos um produto à venda")
        venda_id = str(uuid.uuid4())
        with connect(self.db_path) as c:
            valor_total = 0.0
            valor_desconto = 0.0
            controlado = False
            for it in itens:
                prod = c.execute(
                    "SELECT estoque, controlado, exige_receita, classe_controlada FROM produto WHERE id = ?",
                    (it["produtoId"],),
                ).fetchone()
                if prod is None:
                    raise ErroValidacao(f"Produto {it['produtoId']} não encontrado")
                if it["quantidade"] > prod["estoque"]:
                    raise ErroValidacao(f"Estoque insuficiente. Disponível: {prod['estoque']}")
                controlado = controlado or bool(
                    prod["controlado"] or prod["exige_receita"] or (prod["classe_controlada"] or "").strip()
                )
                valor_total += float(it["precoUnitario"]) * int(it["quantidade"])
                valor_desconto += float(it.get("desconto") or 0.0)

            row = {col: payload.get(key) for key, col in _CAMPOS_VENDA.items()}
            row.update({
                "id": venda_id,
                "criado_em": datetime.now().isoformat(timespec="seconds"),
                "forma_pagamento": payload["formaPagamento"],
                "tem_medicamento_controlado": _bool01(controlado),
                "valor_total": valor_total,
                "valor_desconto": valor_desconto,
                "valor_final": valor_total - valor_desconto,
            })
            cols = ",".join(row.keys())
            vals = ",".join(f":{k}" for k in row.keys())
            c.execute(f"INSERT INTO venda ({cols}) VALUES ({vals})", row)

            for it in itens:
                self._gravar_item(c, venda_id, it)

        log_transaction("venda_local", {"venda_id": venda_id, "itens": len(itens)}, result="created")
        return venda_id

    def _gravar_item(self, c, venda_id: str, it: Dict[str, Any]) -> None:
        qtd = int(it["quantidade"])
        preco = float(it["precoUnitario"])
        desconto = float(it.get("desconto") or 0.0)
        cur = c.execute(
            """
            INSERT INTO item_venda (venda_id, produto_id, quantidade, preco_unitario, desconto, total, promocao_id)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (venda_id, it["produtoId"], qtd, preco, desconto, preco * qtd - desconto, it.get("promocaoId")),
        )
        item_id = cur.lastrowid

        lotes = it.get("lotes") or self._alocar_fefo(c, it["produtoId"], qtd)
        for lt in lotes:
            saldo = c.execute(
                "SELECT produto_id, quantidade_atual - quantidade_reservada AS disp FROM lote WHERE id = ?",
                (lt["loteId"],),
            ).fetchone()
            if saldo is not None and saldo["produto_id"] != it["produtoId"]:
                raise ErroValidacao(f"Lote {lt['loteId']} não pertence ao produto {it['produtoId']}")
            if saldo is None or lt["quantidade"] > saldo["disp"]:
                raise ErroValidacao(f"Lote {lt['loteId']} sem saldo suficiente")
            c.execute(
                "UPDATE lote SET quantidade_atual = quantidade_atual - ? WHERE id = ?",
                (lt["quantidade"], lt["loteId"]),
            )
            c.execute(
                "INSERT INTO item_venda_lote (item_id, lote_id, quantidade) VALUES (?, ?, ?)",
                (item_id, lt["loteId"], lt["quantidade"]),
            )

        c.execute("UPDATE produto SET estoque = estoque - ? WHERE id = ?", (qtd, it["produtoId"]))
        if it.get("promocaoId"):
            c.execute(
                "UPDATE promocao SET quantidade_vendida = quantidade_vendida + ? WHERE id = ?",
                (qtd, it["promocaoId"]),
            )

    @staticmethod
    def _alocar_fefo(c, produto_id: str, quantidade: int) -> List[Dict[str, Any]]:
        """Baixa automática (FEFO) para produtos sem seleção manual de lote."""
        cur = c.execute(
            """
            SELECT id, quantidade_atual - quantidade_reservada AS disp FROM lote
            WHERE produto_id = ? AND ativo = 1 AND quantidade_atual - quantidade_reservada > 0
            ORDER BY data_validade ASC
            """,
            (produto_id,),
        )
        out: List[Dict[str, Any]] = []
        restante = quantidade
        for row in cur.fetchall():
            if restante <= 0:
                break
            usar = min(restante, row["disp"])
            out.append({"loteId": row["id"], "quantidade": usar})
            restante -= usar
        if restante > 0 and c.execute(
            "SELECT 1 FROM lote WHERE produto_id = ? AND ativo = 1 LIMIT 1", (produto_id,)
        ).fetchone():
            # produto controlado por lote: a baixa precisa sair inteira dos lotes
            raise ErroValidacao(
                f"Lotes de {produto_id} sem saldo suficiente. Disponível: {quantidade - restante}"
            )
        return out

    def finalizar_pagamento(self, venda_id: str) -> None:
        with connect(self.db_path) as c:
            cur = c.execute(
                "UPDATE venda SET status_pagamento = 'PAGO', data_pagamento = ? WHERE id = ?",
                (datetime.now().isoformat(timespec="seconds"), venda_id),
            )
            if cur.rowcount == 0:
                raise ErroValidacao(f"Venda {venda_id} não encontrada")

    def buscar(self, venda_id: str) -> Optional[Dict[str, Any]]:
        with connect(self.db_path) as c:
            rows = _rows(c.execute("SELECT * FROM venda WHERE id = ?", (venda_id,)))
            if not rows:
                return None
            venda = rows[0]
            venda["itens"] = _rows(c.execute("SELECT * FROM item_venda WHERE venda_id = ? ORDER BY id", (venda_id,)))
            for it in venda["itens"]:
                it["lotes"] = _rows(
                    c.execute("SELECT lote_id, quantidade FROM item_venda_lote WHERE item_id = ?", (it["id"],))
                )
            return venda
