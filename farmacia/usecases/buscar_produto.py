# farmacia/usecases/buscar_produto.py
"""
UC: busca incremental de produtos (digitação com debounce).
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional

from farmacia.config import DEFAULTS
from farmacia.domain.erros import ErroServico
from farmacia.domain.models import Produto
from farmacia.infra.logger import log_system_event
from farmacia.infra.temporizador import Debouncer


class BuscaIncremental:
    """Consulta o serviço só depois que o operador para de digitar."""

    def __init__(
        self,
        servico_produtos,
        atraso: float = DEFAULTS.atraso_busca,
        relogio: Callable[[], float] = time.monotonic,
        min_caracteres: int = DEFAULTS.min_caracteres_busca,
    ):
        self.servico = servico_produtos
        self.min_caracteres = min_caracteres
        self.resultados: List[Produto] = []
        self.erro: Optional[str] = None
        self.ultimo_termo: Optional[str] = None
        self._debouncer = Debouncer(self._buscar, atraso, relogio)

    def digitar(self, termo: str) -> None:
        termo = (termo or "").strip()
        if len(termo) < self.min_caracteres:
            self._debouncer.cancelar()
            self.resultados = []
            self.erro = None
            return
        self._debouncer.chamar(termo)

    def processar(self) -> bool:
        return self._debouncer.processar()

    def buscar_agora(self, termo: str) -> List[Produto]:
        self.digitar(termo)
        self._debouncer.descarregar()
        return self.resultados

    @property
    def pendente(self) -> bool:
        return self._debouncer.pendente

    def _buscar(self, termo: str) -> None:
        self.ultimo_termo = termo
        try:
            self.resultados = self.servico.buscar(termo)
            self.erro = None
        except ErroServico as e:
            self.resultados = []
            self.erro = e.mensagem
            log_system_event("busca_produto_error", {"termo": termo, "error": e.mensagem}, level="warning")
