from datetime import date, datetime, timedelta
from pathlib import Path

import pandas as pd
import pytest
from typer.testing import CliRunner

from farmacia.adapters.cli import app
from farmacia.infra.db import connect
from farmacia.infra.migrations import apply_migrations
from farmacia.infra.repositories import LoteRepo, ProdutoRepo, PromocaoRepo

runner = CliRunner()


@pytest.fixture
def db(tmp_path: Path) -> str:
    db_path = str(tmp_path / "farmacia_cli.sqlite")
    apply_migrations(db_path)
    hoje = date.today()
    ProdutoRepo(db_path).upsert([
        {"id": "P1", "nome": "Dipirona", "preco_venda": 10.0, "estoque": 20, "laboratorio": "EMS"},
        {"id": "P2", "nome": "Clonazepam", "preco_venda": 30.0, "estoque": 5,
         "laboratorio": "Roche", "classe_controlada": "B1"},
    ])
    LoteRepo(db_path).upsert([
        {"id": "L1", "produto_id": "P1", "numero_lote": "A1",
         "data_validade": hoje + timedelta(days=200), "quantidade_atual": 10},
        {"id": "L2", "produto_id": "P1", "numero_lote": "A2",
         "data_validade": hoje + timedelta(days=20), "quantidade_atual": 10},
        {"id": "LC1", "produto_id": "P2", "numero_lote": "C1",
         "data_validade": hoje + timedelta(days=300), "quantidade_atual": 5},
    ])
    return db_path


def _promo_produto(db_path: str) -> None:
    agora = datetime.now()
    PromocaoRepo(db_path).upsert([{
        "id": "PR1", "nome": "Semana Dipirona", "tipo_alcance": "PRODUTO", "produto_id": "P1",
        "tipo": "PORCENTAGEM", "porcentagem_desconto": 10,
        "data_inicio": agora - timedelta(days=1), "data_fim": agora + timedelta(days=5),
    }])


def test_cli_migrate(tmp_path: Path):
    db_path = tmp_path / "novo.sqlite"
    result = runner.invoke(app, ["migrate", "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert "Migrações aplicadas" in result.output


def test_cli_produto_buscar(db):
    result = runner.invoke(app, ["produto", "buscar", "dipi", "--db", db])
    assert result.exit_code == 0, result.output
    assert "Dipirona" in result.output
    assert "Clonazepam" not in result.output


def test_cli_lotes_listar_e_fefo(db):
    result = runner.invoke(app, ["lotes", "listar", "P1", "--db", db])
    assert result.exit_code == 0, result.output
    assert result.output.index("A2") < result.output.index("A1")

    result = runner.invoke(app, ["lotes", "fefo", "P1", "--db", db])
    assert result.exit_code == 0, result.output
    assert "A2" in result.output
    assert "A1" not in result.output


def test_cli_fefo_sem_lotes_na_janela(db):
    result = runner.invoke(app, ["lotes", "fefo", "P2", "--db", db])
    assert result.exit_code == 1
    assert "Não há lotes próximos ao vencimento" in result.output


def test_cli_promocao_calcular():
    result = runner.invoke(app, ["promocao", "calcular", "100", "--tipo", "PORCENTAGEM", "--valor", "25"])
    assert result.exit_code == 0, result.output
    assert "R$ 75,00" in result.output


def test_cli_promocao_aplicavel(db):
    _promo_produto(db)
    result = runner.invoke(app, ["promocao", "aplicavel", "P1", "--db", db])
    assert result.exit_code == 0, result.output
    assert "Semana Dipirona" in result.output
    assert "R$ 9,00" in result.output


def test_cli_erro_vira_painel(db):
    result = runner.invoke(app, ["promocao", "aplicavel", "NAO_EXISTE", "--db", db])
    assert result.exit_code == 1
    assert "não encontrado" in result.output


def test_cli_importar_produtos(tmp_path: Path):
    xlsx = tmp_path / "produtos.xlsx"
    pd.DataFrame({
        "Código": ["X1", "X2"],
        "Nome": ["Omeprazol 20mg", "Losartana 50mg"],
        "Preço de venda": ["12,50", "8,00"],
        "Estoque": ["10", "4"],
        "Laboratório": ["EMS", "Medley"],
    }).to_excel(xlsx, index=False)
    db_path = str(tmp_path / "imp.sqlite")
    result = runner.invoke(app, ["importar", "produtos", str(xlsx), "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "Linhas importadas: 2" in result.output
    assert ProdutoRepo(db_path).buscar_por_id("X1").preco_venda == 12.5


def test_cli_venda_nova_simples(db):
    _promo_produto(db)
    entrada = "\n".join([
        "Dipirona",  # produto
        "2",         # quantidade
        "",          # encerra itens
        "",          # informar cliente? (não)
        "",          # forma de pagamento (DINHEIRO)
        "",          # observações
    ]) + "\n"
    result = runner.invoke(app, ["venda", "nova", "--db", db], input=entrada)
    assert result.exit_code == 0, result.output
    assert "Venda finalizada com sucesso" in result.output
    assert "R$ 18,00" in result.output
    assert ProdutoRepo(db).buscar_por_id("P1").estoque == 18
    with connect(db) as c:
        row = c.execute("SELECT status_pagamento, valor_desconto FROM venda").fetchone()
    assert row["status_pagamento"] == "PAGO"
    assert row["valor_desconto"] == pytest.approx(2.0)


def test_cli_venda_nova_controlado(db):
    entrada = "\n".join([
        "Clonazepam",
        "2",
        "1",        # seleciona o lote 1 (saldo total)
        "c",        # confirma (ajusta para 2)
        "",         # encerra itens
        "RX123456",
        date.today().strftime("%d/%m/%Y"),
        "Maria Silva",
        "12345678909",
        "123456789",
        "Rua das Flores, 123",
        "11987654321",
        "n",        # cliente
        "PIX",
        "",
    ]) + "\n"
    result = runner.invoke(app, ["venda", "nova", "--db", db], input=entrada)
    assert result.exit_code == 0, result.output
    assert "Venda finalizada com sucesso" in result.output
    with connect(db) as c:
        venda = c.execute("SELECT * FROM venda").fetchone()
        baixa = c.execute("SELECT lote_id, quantidade FROM item_venda_lote").fetchall()
    assert venda["numero_receita"] == "RX123456"
    assert venda["tem_medicamento_controlado"] == 1
    assert venda["forma_pagamento"] == "PIX"
    assert [(r["lote_id"], r["quantidade"]) for r in baixa] == [("LC1", 2)]


def test_cli_venda_vazia(db):
    result = runner.invoke(app, ["venda", "nova", "--db", db], input="\n")
    assert result.exit_code == 1
    assert "carrinho vazio" in result.output


def test_cli_venda_promocao_fixa_maior_que_preco(db):
    agora = datetime.now()
    PromocaoRepo(db).upsert([{
        "id": "PF", "nome": "Leve grátis", "tipo_alcance": "PRODUTO", "produto_id": "P1",
        "tipo": "FIXO", "valor_desconto": 15.0,
        "data_inicio": agora - timedelta(days=1), "data_fim": agora + timedelta(days=5),
    }])
    entrada = "\n".join(["Dipirona", "2", "", "", "", ""]) + "\n"
    result = runner.invoke(app, ["venda", "nova", "--db", db], input=entrada)
    assert result.exit_code == 0, result.output
    with connect(db) as c:
        venda = c.execute("SELECT valor_total, valor_desconto, valor_final FROM venda").fetchone()
        item = c.execute("SELECT total FROM item_venda").fetchone()
    assert venda["valor_total"] == pytest.approx(20.0)
    assert venda["valor_desconto"] == pytest.approx(20.0)
    assert venda["valor_final"] == pytest.approx(0.0)
    assert item["total"] == pytest.approx(0.0)


def test_cli_dialogo_lotes_numero_fora_da_tabela(db):
    entrada = "\n".join([
        "Clonazepam",
        "2",
        "0",
        "-1",
        "q 0 1",
        "x",        # cancela a seleção
        "",         # encerra itens
    ]) + "\n"
    result = runner.invoke(app, ["venda", "nova", "--db", db], input=entrada)
    assert result.output.count("Comando inválido") == 3
    assert "Item não adicionado" in result.output
    assert result.exit_code == 1
    with connect(db) as c:
        assert c.execute("SELECT COUNT(*) FROM venda").fetchone()[0] == 0
