# farmacia/usecases/selecao_lotes.py
"""
UC: seleção de lotes para um item da venda (máquina de estados).

Estados:
    FECHADO -> CARREGANDO -> PRONTO -> CONFIRMADO | CANCELADO
    CARREGANDO -> ERRO (falha ou lista vazia)

Ao carregar, os lotes com saldo são ordenados em FEFO e cada lote visível
é sondado em paralelo por uma promoção de alcance LOTE. Falha numa sonda
não bloqueia a listagem; falha na listagem bloqueia a seleção.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from farmacia.config import DEFAULTS, DefaultConfig
from farmacia.domain.erros import ErroFarmacia, ErroRegraNegocio, ErroValidacao, TransicaoInvalida
from farmacia.domain.lotes import (
    limitar_quantidade,
    ordenar_fefo,
    para_selecao,
    selecionar_lotes_fefo,
    total_aplicavel,
)
from farmacia.domain.models import Lote, LoteSelecionado, Produto, Promocao, TipoAlcancePromocao
from farmacia.infra.logger import log_lote
from farmacia.usecases.resolver_promocao import resolver_promocao_aplicavel


class EstadoSelecao(str, Enum):
    FECHADO = "FECHADO"
    CARREGANDO = "CARREGANDO"
    PRONTO = "PRONTO"
    CONFIRMADO = "CONFIRMADO"
    CANCELADO = "CANCELADO"
    ERRO = "ERRO"


@dataclass
class ResultadoSonda:
    lote_id: str
    ok: bool
    promocao: Optional[Promocao] = None
    erro: Optional[str] = None


@dataclass
class ResultadoSelecao:
    lotes: List[LoteSelecionado] = field(default_factory=list)
    promocao: Optional[Promocao] = None
    lote_promocional_id: Optional[str] = None

    @property
    def quantidade_total(self) -> int:
        return total_aplicavel(self.lotes)


def _sondar(produto: Produto, lote: Lote, servico, agora: Optional[datetime]) -> ResultadoSonda:
    try:
        promo = resolver_promocao_aplicavel(produto, lote.id, servico=servico, agora=agora)
    except ErroFarmacia as e:
        log_lote("promo_probe_failed", produto.id, lote.id, error=e.mensagem)
        return ResultadoSonda(lote.id, False, erro=e.mensagem)
    except Exception as e:
        log_lote("promo_probe_failed", produto.id, lote.id, error=str(e))
        return ResultadoSonda(lote.id, False, erro=str(e))
    # só interessa a promoção do próprio lote
    if promo is not None and promo.tipo_alcance != TipoAlcancePromocao.LOTE:
        promo = None
    return ResultadoSonda(lote.id, True, promocao=promo)


def sondar_promocoes_lotes(
    produto: Produto,
    lotes: List[Lote],
    servico,
    agora: Optional[datetime] = None,
    max_workers: int = DEFAULTS.max_sondas_paralelas,
) -> List[ResultadoSonda]:
    """Uma requisição por lote, em paralelo; o resultado segue a ordem de ``lotes``."""
    if not lotes:
        return []
    workers = max(1, min(max_workers, len(lotes)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_sondar, produto, lote, servico, agora) for lote in lotes]
        return [f.result() for f in futures]


class SelecaoLotes:
    """Diálogo de seleção de lotes, sem interface gráfica."""

    def __init__(
        self,
        servico_lotes,
        servico_promocoes,
        *,
        config: DefaultConfig = DEFAULTS,
        agora: Optional[datetime] = None,
    ):
        self.servico_lotes = servico_lotes
        self.servico_promocoes = servico_promocoes
        self.config = config
        self.agora = agora

        self.estado = EstadoSelecao.FECHADO
        self.produto: Optional[Produto] = None
        self.quantidade_solicitada: Optional[int] = None
        self.lotes: List[Lote] = []
        self.selecoes: Dict[str, LoteSelecionado] = {}
        self.sondas: List[ResultadoSonda] = []
        self.promocoes_por_lote: Dict[str, Promocao] = {}
        self.erro: Optional[str] = None
        self._geracao = 0

    # -------------------------
    # Helpers
    # -------------------------

    def _exigir(self, *estados: EstadoSelecao) -> None:
        if self.estado not in estados:
            raise TransicaoInvalida(f"Operação inválida no estado {self.estado.value}")

    def _lote(self, lote_id: str) -> Lote:
        for l in self.lotes:
            if l.id == lote_id:
                return l
        raise ErroValidacao(f"Lote {lote_id} não encontrado")

    def _log(self, action: str, lote_id: Optional[str] = None, **kwargs) -> None:
        log_lote(action, self.produto.id if self.produto else "-", lote_id, **kwargs)

    @property
    def selecionados(self) -> List[LoteSelecionado]:
        """Seleção atual na ordem FEFO da listagem."""
        return [self.selecoes[l.id] for l in self.lotes if l.id in self.selecoes]

    @property
    def quantidade_selecionada(self) -> int:
        return total_aplicavel(self.selecoes.values())

    @property
    def todos_selecionados(self) -> bool:
        return bool(self.lotes) and all(l.id in self.selecoes for l in self.lotes)

    # -------------------------
    # Transições
    # -------------------------

    def abrir(self, produto: Produto, quantidade_solicitada: Optional[int] = None) -> EstadoSelecao:
        """Carrega os lotes do produto e sonda as promoções por lote."""
        self._exigir(
            EstadoSelecao.FECHADO,
            EstadoSelecao.CONFIRMADO,
            EstadoSelecao.CANCELADO,
            EstadoSelecao.ERRO,
        )
        self._geracao += 1
        geracao = self._geracao
        self.estado = EstadoSelecao.CARREGANDO
        self.produto = produto
        self.quantidade_solicitada = quantidade_solicitada
        self.lotes, self.selecoes, self.sondas, self.promocoes_por_lote = [], {}, [], {}
        self.erro = None
        self._log("load_start", quantidade=quantidade_solicitada)

        try:
            lotes = self.servico_lotes.listar_disponiveis(produto.id)
        except ErroFarmacia as e:
            return self._falhar(geracao, "Erro ao carregar lotes disponíveis.", e.mensagem)
        except Exception as e:
            return self._falhar(geracao, "Erro ao carregar lotes disponíveis.", str(e))

        if geracao != self._geracao or self.estado != EstadoSelecao.CARREGANDO:
            self._log("stale_load_ignored")
            return self.estado

        lotes = ordenar_fefo(lotes)
        if not lotes:
            return self._falhar(geracao, "Nenhum lote disponível para este produto.")

        sondas = sondar_promocoes_lotes(
            produto, lotes, self.servico_promocoes, agora=self.agora,
            max_workers=self.config.max_sondas_paralelas,
        )
        if geracao != self._geracao or self.estado != EstadoSelecao.CARREGANDO:
            self._log("stale_load_ignored")
            return self.estado

        self.lotes = lotes
        self.sondas = sondas
        self.promocoes_por_lote = {s.lote_id: s.promocao for s in sondas if s.ok and s.promocao}
        self.estado = EstadoSelecao.PRONTO
        self._log(
            "load_ready",
            lotes=len(lotes),
            promocoes=len(self.promocoes_por_lote),
            sondas_falhas=sum(1 for s in sondas if not s.ok),
        )
        return self.estado

    def _falhar(self, geracao: int, mensagem: str, detalhe: Optional[str] = None) -> EstadoSelecao:
        if geracao != self._geracao or self.estado != EstadoSelecao.CARREGANDO:
            self._log("stale_load_ignored")
            return self.estado
        self.estado = EstadoSelecao.ERRO
        self.erro = mensagem
        self._log("load_error", error=detalhe or mensagem)
        return self.estado

    def alternar_lote(self, lote_id: str) -> bool:
        """Marca/desmarca um lote. Devolve True se ficou selecionado."""
        self._exigir(EstadoSelecao.PRONTO)
        lote = self._lote(lote_id)
        if lote_id in self.selecoes:
            del self.selecoes[lote_id]
            return False
        self.selecoes[lote_id] = para_selecao(lote)
        return True

    def atualizar_quantidade(self, lote_id: str, quantidade: int) -> int:
        """Altera a quantidade de um lote selecionado, limitada a ``[1, disponível]``."""
        self._exigir(EstadoSelecao.PRONTO)
        lote = self._lote(lote_id)
        if lote_id not in self.selecoes:
            raise ErroValidacao(f"Lote {lote.numero_lote} não está selecionado")
        qtd = limitar_quantidade(quantidade, lote.quantidade_disponivel)
        self.selecoes[lote_id].quantidade_aplicavel = qtd
        return qtd

    def alternar_todos(self) -> bool:
        self._exigir(EstadoSelecao.PRONTO)
        if self.todos_selecionados:
            self.selecoes = {}
            return False
        self.selecoes = {l.id: para_selecao(l) for l in self.lotes}
        return True

    def selecionar_fefo(self) -> List[LoteSelecionado]:
        """Substitui a seleção pelos lotes mais próximos do vencimento."""
        self._exigir(EstadoSelecao.PRONTO)
        janela = self.config.janela_fefo_dias
        escolhidos = selecionar_lotes_fefo(self.lotes, janela_dias=janela, maximo=self.config.max_lotes_fefo)
        if not escolhidos:
            raise ErroRegraNegocio(f"Não há lotes próximos ao vencimento ({janela} dias)")
        self.selecoes = {l.id: para_selecao(l) for l in escolhidos}
        self._log("fefo_selected", lotes=[l.id for l in escolhidos])
        return self.selecionados

    def confirmar(self) -> ResultadoSelecao:
        self._exigir(EstadoSelecao.PRONTO)
        selecionados = [s for s in self.selecionados if s.quantidade_aplicavel > 0]
        if not selecionados:
            raise ErroValidacao("Selecione pelo menos um lote")

        alvo = self.quantidade_solicitada
        if alvo is not None:
            total = total_aplicavel(selecionados)
            if total < alvo:
                raise ErroValidacao(f"Quantidade selecionada ({total}) menor que a solicitada ({alvo})")
            restante = alvo
            ajustados: List[LoteSelecionado] = []
            for s in selecionados:
                if restante <= 0:
                    break
                usar = min(restante, s.quantidade_aplicavel)
                ajustados.append(
                    LoteSelecionado(
                        lote_id=s.lote_id,
                        numero_lote=s.numero_lote,
                        data_validade=s.data_validade,
                        quantidade_disponivel=s.quantidade_disponivel,
                        quantidade_aplicavel=usar,
                        preco_custo=s.preco_custo,
                        dias_para_vencimento=s.dias_para_vencimento,
                    )
                )
                restante -= usar
            selecionados = ajustados

        resultado = ResultadoSelecao(lotes=selecionados)
        for s in selecionados:
            promo = self.promocoes_por_lote.get(s.lote_id)
            if promo is not None:
                resultado.promocao = promo
                resultado.lote_promocional_id = s.lote_id
                break

        self.estado = EstadoSelecao.CONFIRMADO
        self._log(
            "confirmed",
            lotes={s.lote_id: s.quantidade_aplicavel for s in selecionados},
            promocao_id=resultado.promocao.id if resultado.promocao else None,
        )
        return resultado

    def cancelar(self) -> None:
        self._exigir(EstadoSelecao.CARREGANDO, EstadoSelecao.PRONTO, EstadoSelecao.ERRO)
        self.selecoes = {}
        self.estado = EstadoSelecao.CANCELADO
        self._log("cancelled")
