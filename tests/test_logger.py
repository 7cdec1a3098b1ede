import logging

from farmacia.infra import logger as flog


def test_helpers_sao_silenciosos_por_padrao(monkeypatch):
    monkeypatch.setattr(flog, "ENABLE_LOGGING", False)
    monkeypatch.setattr(flog, "ENABLE_OUTPUT", False)
    flog.log_venda("created", "V1", itens=2)
    flog.log_promocao("resolved", "P1", promocao_id="PR1")
    flog.log_lote("confirmed", "P1", "L1")
    flog.log_api_call("GET", "/produtos", status=200)
    assert flog.get_log_summary("vendas") is None


def test_setup_logger_grava_arquivo(monkeypatch, tmp_path):
    monkeypatch.setattr(flog, "ENABLE_LOGGING", True)
    arquivo = tmp_path / "sub" / "teste.log"
    lg = flog.setup_logger("farmacia.teste", str(arquivo))
    lg.info("linha de teste")
    for h in lg.handlers:
        h.flush()
    assert "linha de teste" in arquivo.read_text(encoding="utf-8")
    for h in list(lg.handlers):
        h.close()
        lg.removeHandler(h)


def test_setup_logger_desligado_nao_cria_arquivo(monkeypatch, tmp_path):
    monkeypatch.setattr(flog, "ENABLE_LOGGING", False)
    monkeypatch.setattr(flog, "ENABLE_OUTPUT", False)
    arquivo = tmp_path / "nada.log"
    lg = flog.setup_logger("farmacia.teste2", str(arquivo))
    lg.info("ignorado")
    assert isinstance(lg.handlers[0], logging.NullHandler)
    assert not arquivo.exists()


def test_log_summary(monkeypatch, tmp_path):
    monkeypatch.setattr(flog, "ENABLE_LOGGING", True)
    monkeypatch.setattr(flog, "LOGS_DIR", tmp_path)
    (tmp_path / "vendas.log").write_text("a\nb\nc\n", encoding="utf-8")
    assert flog.get_log_summary("vendas", lines=2) == "b\nc\n"
    assert flog.get_log_summary("desconhecido") == "Log desconhecido não encontrado."
