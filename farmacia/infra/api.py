# farmacia/infra/api.py
"""
Cliente HTTP dos serviços REST (requests).

- Uma ``requests.Session`` por thread (as sondas de promoção por lote rodam
  num pool de threads e ``Session`` não é thread-safe), todas com URL base,
  cabeçalhos JSON e token Bearer opcional. Uma sessão injetada (testes) é
  compartilhada.
- Falhas de rede e respostas 4xx/5xx viram ``ErroServico`` (401 vira
  ``ErroAutenticacao``) com a mensagem do backend quando houver.
- As chamadas são idempotentes do ponto de vista do PDV, exceto ``post``;
  nenhuma repetição automática é feita aqui.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional

import requests

from farmacia.config import API_TOKEN, DEFAULTS
from farmacia.domain.erros import ErroAutenticacao, ErroServico
from farmacia.infra.logger import log_api_call


class ApiClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = API_TOKEN,
        timeout: float = DEFAULTS.timeout_http,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token = token
        self._injetada = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        s = getattr(self._local, "session", None)
        if s is None:
            s = self._injetada if self._injetada is not None else requests.Session()
            s.headers.update({"Content-Type": "application/json"})
            if self.token:
                s.headers["Authorization"] = f"Bearer {self.token}"
            self._local.session = s
        return s

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, **kwargs) -> Any:
        kwargs.setdefault("timeout", self.timeout)
        try:
            resp = self.session.request(method, self._url(path), **kwargs)
        except requests.RequestException as e:
            log_api_call(method, path, error=str(e))
            raise ErroServico(f"Falha de comunicação com o servidor: {e}") from e

        if resp.status_code == 401:
            log_api_call(method, path, status=401, error="unauthorized")
            raise ErroAutenticacao("Sessão expirada. Faça login novamente.", status=401)
        if resp.status_code >= 400:
            msg = _mensagem_erro(resp)
            log_api_call(method, path, status=resp.status_code, error=msg)
            raise ErroServico(msg, status=resp.status_code)

        log_api_call(method, path, status=resp.status_code)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ErroServico(f"Resposta inválida do servidor em {path}", status=resp.status_code) from e

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, json=json)

    def patch(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("PATCH", path, json=json)


def _mensagem_erro(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for k in ("mensagem", "message", "error"):
            if body.get(k):
                return str(body[k])
    return f"Erro HTTP {resp.status_code}"
