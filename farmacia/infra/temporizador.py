# farmacia/infra/temporizador.py
"""
Debounce e throttle sem dependência de framework.

Os dois recebem um relógio injetável (``time.monotonic`` por padrão), o que
permite testá-los com um relógio falso. O debounce não cria threads: quem usa
chama ``processar()`` no próprio laço (ex.: a cada tecla lida).
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional, Tuple


class Debouncer:
    """Executa ``funcao`` só depois de ``atraso`` segundos sem novas chamadas."""

    def __init__(self, funcao: Callable[..., Any], atraso: float, relogio: Callable[[], float] = time.monotonic):
        self.funcao = funcao
        self.atraso = atraso
        self.relogio = relogio
        self._args: Optional[Tuple[Any, ...]] = None
        self._prazo: Optional[float] = None

    @property
    def pendente(self) -> bool:
        return self._prazo is not None

    def chamar(self, *args: Any) -> None:
        """Agenda a execução; uma chamada nova substitui a anterior."""
        self._args = args
        self._prazo = self.relogio() + self.atraso

    def processar(self) -> bool:
        """Dispara a chamada agendada se o prazo venceu. Devolve True se disparou."""
        if self._prazo is None or self.relogio() < self._prazo:
            return False
        args = self._args or ()
        self.cancelar()
        self.funcao(*args)
        return True

    def descarregar(self) -> bool:
        """Dispara imediatamente a chamada pendente, se houver."""
        if self._prazo is None:
            return False
        args = self._args or ()
        self.cancelar()
        self.funcao(*args)
        return True

    def cancelar(self) -> None:
        self._args = None
        self._prazo = None


class Throttle:
    """Executa ``funcao`` no máximo uma vez a cada ``intervalo`` segundos.

    Chamadas dentro do intervalo são descartadas.
    """

    def __init__(self, funcao: Callable[..., Any], intervalo: float, relogio: Callable[[], float] = time.monotonic):
        self.funcao = funcao
        self.intervalo = intervalo
        self.relogio = relogio
        self._ultima: Optional[float] = None

    def chamar(self, *args: Any) -> bool:
        agora = self.relogio()
        if self._ultima is not None and agora - self._ultima < self.intervalo:
            return False
        self._ultima = agora
        self.funcao(*args)
        return True
