# farmacia/infra/migrations.py
"""
Migrações de schema do backend local usando PRAGMA user_version.

V1: catálogo (produto, lote, promocao)
V2: vendas (venda, item_venda, item_venda_lote)
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS produto (
        id TEXT PRIMARY KEY,
        nome TEXT NOT NULL,
        codigo_barras TEXT,
        preco_venda REAL NOT NULL DEFAULT 0,
        estoque INTEGER NOT NULL DEFAULT 0,
        laboratorio TEXT,
        controlado INTEGER NOT NULL DEFAULT 0,
        lote_obrigatorio INTEGER NOT NULL DEFAULT 0,
        exige_receita INTEGER NOT NULL DEFAULT 0,
        classe_controlada TEXT,            -- A1..C5
        ativo INTEGER NOT NULL DEFAULT 1
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS lote (
        id TEXT PRIMARY KEY,
        produto_id TEXT NOT NULL,
        numero_lote TEXT NOT NULL,
        data_fabricacao TEXT,
        data_validade TEXT NOT NULL,       -- ISO YYYY-MM-DD
        quantidade_atual INTEGER NOT NULL DEFAULT 0,
        quantidade_reservada INTEGER NOT NULL DEFAULT 0,
        preco_custo REAL NOT NULL DEFAULT 0,
        ativo INTEGER NOT NULL DEFAULT 1,
        FOREIGN KEY (produto_id) REFERENCES produto(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS promocao (
        id TEXT PRIMARY KEY,
        nome TEXT NOT NULL,
        tipo_alcance TEXT NOT NULL,        -- 'PRODUTO' | 'LABORATORIO' | 'LOTE'
        produto_id TEXT,
        laboratorio TEXT,
        lote_id TEXT,
        tipo TEXT NOT NULL,                -- 'FIXO' | 'PORCENTAGEM'
        valor_desconto REAL,
        porcentagem_desconto REAL,
        condicao_termino TEXT NOT NULL DEFAULT 'ATE_ACABAR_ESTOQUE',
        quantidade_maxima INTEGER,
        quantidade_vendida INTEGER NOT NULL DEFAULT 0,
        data_inicio TEXT NOT NULL,         -- ISO datetime
        data_fim TEXT NOT NULL,
        ativo INTEGER NOT NULL DEFAULT 1
    );
    """,
    "CREATE INDEX IF NOT EXISTS ix_lote_produto ON lote(produto_id, data_validade);",
    "CREATE INDEX IF NOT EXISTS ix_promocao_produto ON promocao(produto_id);",
    "CREATE INDEX IF NOT EXISTS ix_promocao_lote ON promocao(lote_id);",
]

SCHEMA_V2: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS venda (
        id TEXT PRIMARY KEY,
        criado_em TEXT NOT NULL,
        forma_pagamento TEXT NOT NULL,
        status_pagamento TEXT NOT NULL DEFAULT 'PENDENTE',
        data_pagamento TEXT,
        cliente_id TEXT,
        cliente_nome TEXT,
        cliente_documento TEXT,
        cliente_tipo_documento TEXT,
        paciente_nome TEXT,
        paciente_documento TEXT,
        paciente_rg TEXT,
        paciente_endereco TEXT,
        paciente_telefone TEXT,
        numero_receita TEXT,
        data_receita TEXT,
        tem_medicamento_controlado INTEGER NOT NULL DEFAULT 0,
        valor_total REAL NOT NULL DEFAULT 0,
        valor_desconto REAL NOT NULL DEFAULT 0,
        valor_final REAL NOT NULL DEFAULT 0,
        observacoes TEXT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS item_venda (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        venda_id TEXT NOT NULL,
        produto_id TEXT NOT NULL,
        quantidade INTEGER NOT NULL,
        preco_unitario REAL NOT NULL,
        desconto REAL NOT NULL DEFAULT 0,
        total REAL NOT NULL,
        promocao_id TEXT,
        FOREIGN KEY (venda_id) REFERENCES venda(id) ON DELETE CASCADE,
        FOREIGN KEY (produto_id) REFERENCES produto(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS item_venda_lote (
        item_id INTEGER NOT NULL,
        lote_id TEXT NOT NULL,
        quantidade INTEGER NOT NULL,
        PRIMARY KEY (item_id, lote_id),
        FOREIGN KEY (item_id) REFERENCES item_venda(id) ON DELETE CASCADE,
        FOREIGN KEY (lote_id) REFERENCES lote(id)
    );
    """,
]


def _apply(conn, statements: List[str]) -> None:
    for sql in statements:
        conn.executescript(sql)


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply(conn, SCHEMA_V1)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply(conn, SCHEMA_V2)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

        # versões futuras: if ver < 3: _apply(conn, SCHEMA_V3)
    return None
