# farmacia/domain/erros.py
"""
Exceções do domínio.

Toda falha que deve chegar ao operador herda de ``ErroFarmacia`` e carrega
uma ``mensagem`` pronta para exibição. O CLI converte essas exceções em
avisos; nada aqui deve escapar como traceback.
"""

from __future__ import annotations

from typing import Optional


class ErroFarmacia(Exception):
    """Base de todos os erros exibíveis ao operador."""

    def __init__(self, mensagem: str):
        super().__init__(mensagem)
        self.mensagem = mensagem


class ErroValidacao(ErroFarmacia):
    """Entrada inválida (quantidade, receita, dados do paciente...)."""


class ErroRegraNegocio(ErroFarmacia):
    """Regra de negócio não satisfeita (ex.: nenhum lote FEFO em 90 dias)."""


class ErroServico(ErroFarmacia):
    """Falha ao falar com um serviço externo (rede, 5xx, 4xx)."""

    def __init__(self, mensagem: str, status: Optional[int] = None):
        super().__init__(mensagem)
        self.status = status


class ErroAutenticacao(ErroServico):
    """Token ausente ou expirado (HTTP 401)."""


class PayloadInvalido(ErroFarmacia):
    """Resposta de serviço com formato inesperado."""


class TransicaoInvalida(ErroFarmacia):
    """Operação não permitida no estado atual da seleção de lotes."""
