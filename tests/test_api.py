from concurrent.futures import ThreadPoolExecutor

import pytest
import requests

from farmacia.domain.erros import ErroAutenticacao, ErroServico, PayloadInvalido
from farmacia.infra.api import ApiClient
from farmacia.infra.servicos import LoteService, ProdutoService, PromocaoService, VendaService


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else b"{}"

    def json(self):
        if self._payload is None:
            raise ValueError("sem corpo")
        return self._payload


class FakeSession:
    def __init__(self, respostas):
        self.headers = {}
        self.respostas = list(respostas)
        self.chamadas = []

    def request(self, method, url, **kwargs):
        self.chamadas.append((method, url, kwargs))
        resp = self.respostas.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


def _api(*respostas, token="tok"):
    session = FakeSession(respostas)
    return ApiClient("http://api.local/", token=token, timeout=5, session=session), session


def test_cabecalhos_e_parametros():
    api, session = _api(FakeResponse(200, []))
    api.get("/promocoes/aplicaveis", params={"produtoId": "P1", "laboratorio": None, "loteId": ""})
    method, url, kwargs = session.chamadas[0]
    assert (method, url) == ("GET", "http://api.local/promocoes/aplicaveis")
    assert kwargs["params"] == {"produtoId": "P1"}
    assert kwargs["timeout"] == 5
    assert session.headers["Authorization"] == "Bearer tok"


def test_401_vira_erro_de_autenticacao():
    api, _ = _api(FakeResponse(401, {"message": "expirado"}))
    with pytest.raises(ErroAutenticacao) as exc:
        api.get("/produtos/1")
    assert exc.value.status == 401


def test_erro_http_usa_mensagem_do_backend():
    api, _ = _api(FakeResponse(422, {"mensagem": "Estoque insuficiente"}))
    with pytest.raises(ErroServico, match="Estoque insuficiente") as exc:
        api.post("/vendas", json={})
    assert exc.value.status == 422


def test_falha_de_rede():
    api, _ = _api(requests.ConnectionError("recusada"))
    with pytest.raises(ErroServico, match="Falha de comunicação"):
        api.get("/produtos")


def test_corpo_vazio_retorna_none():
    api, _ = _api(FakeResponse(204))
    assert api.post("/vendas/1/finalizar-pagamento") is None


def test_produto_404_retorna_none():
    api, _ = _api(FakeResponse(404, {"message": "não encontrado"}))
    assert ProdutoService(api).buscar_por_id("X") is None


def test_servicos_convertem_payloads():
    api, session = _api(
        FakeResponse(200, {"data": [{"id": "P1", "nome": "Dipirona", "precoVenda": 9.9}]}),
        FakeResponse(200, [{"id": "L1", "numeroLote": "A", "dataValidade": "2030-01-01", "quantidadeDisponivel": 3}]),
        FakeResponse(200, {"promocoes": [{
            "id": "PR", "nome": "Promo", "tipoAlcance": "LOTE", "loteId": "L1", "tipo": "FIXO",
            "valorDesconto": 1, "dataInicio": "2025-01-01", "dataFim": "2030-01-01",
        }]}),
    )
    assert ProdutoService(api).buscar("dip")[0].preco_venda == 9.9
    assert LoteService(api).listar_disponiveis("P 1")[0].quantidade_disponivel == 3
    assert PromocaoService(api).buscar_aplicaveis("P1", "EMS", "L1")[0].lote_id == "L1"
    assert session.chamadas[1][1] == "http://api.local/produtos/P%201/lotes"
    assert session.chamadas[2][2]["params"] == {"produtoId": "P1", "laboratorio": "EMS", "loteId": "L1"}


def test_venda_service():
    api, session = _api(FakeResponse(201, {"data": {"id": "V-10"}}), FakeResponse(200, {"ok": True}))
    vendas = VendaService(api)
    assert vendas.criar_venda({"itens": []}) == "V-10"
    vendas.finalizar_pagamento("V-10")
    assert session.chamadas[1][:2] == ("POST", "http://api.local/vendas/V-10/finalizar-pagamento")


def test_venda_sem_id():
    api, _ = _api(FakeResponse(201, {"data": {}}))
    with pytest.raises(PayloadInvalido):
        VendaService(api).criar_venda({})


def test_uma_sessao_por_thread():
    api = ApiClient("http://api.local/", token="tok")
    principal = api.session
    assert api.session is principal

    with ThreadPoolExecutor(max_workers=2) as pool:
        outras = list(pool.map(lambda _: api.session, range(2)))
    assert all(isinstance(s, requests.Session) for s in outras)
    assert all(s is not principal for s in outras)
    assert all(s.headers["Authorization"] == "Bearer tok" for s in outras)
