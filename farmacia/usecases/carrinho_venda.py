# farmacia/usecases/carrinho_venda.py
"""
UC: carrinho da venda (acumulador de itens).

- Um item por produto; adicionar o mesmo produto soma quantidade, desconto
  e lotes, revalidando estoque e saldo de cada lote.
- Totais são sempre recalculados a partir da lista de itens.
- Com medicamento controlado no carrinho, a finalização exige receita e
  dados completos do paciente.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from farmacia.config import DEFAULTS, DefaultConfig
from farmacia.domain.erros import ErroValidacao
from farmacia.domain.lotes import eh_controlado, requer_lote_obrigatorio, total_aplicavel
from farmacia.domain.models import (
    DadosCliente,
    DadosPaciente,
    DadosReceita,
    ItemVenda,
    LoteSelecionado,
    Produto,
)
from farmacia.domain.receita import pendencias_cliente, pendencias_paciente, validar_receita
from farmacia.infra.logger import log_venda


def _mesclar_lotes(atuais: List[LoteSelecionado], novos: List[LoteSelecionado]) -> List[LoteSelecionado]:
    por_lote: Dict[str, LoteSelecionado] = {}
    for s in list(atuais) + list(novos):
        if s.lote_id in por_lote:
            por_lote[s.lote_id].quantidade_aplicavel += s.quantidade_aplicavel
        else:
            por_lote[s.lote_id] = LoteSelecionado(**vars(s))
    for s in por_lote.values():
        if s.quantidade_aplicavel > s.quantidade_disponivel:
            raise ErroValidacao(
                f"Lote {s.numero_lote}: quantidade ({s.quantidade_aplicavel}) "
                f"excede o disponível ({s.quantidade_disponivel})"
            )
    return list(por_lote.values())


class CarrinhoVenda:
    def __init__(self, config: DefaultConfig = DEFAULTS, hoje: Optional[date] = None):
        self.config = config
        self.hoje = hoje
        self.itens: List[ItemVenda] = []
        self.receita = DadosReceita()
        self.paciente = DadosPaciente()
        self.cliente: Optional[DadosCliente] = None

    # -------------------------
    # Itens
    # -------------------------

    def _indice(self, produto_id: str) -> Optional[int]:
        for i, it in enumerate(self.itens):
            if it.produto_id == produto_id:
                return i
        return None

    def adicionar_item(
        self,
        produto: Produto,
        quantidade: int,
        preco_unitario: Optional[float] = None,
        desconto: float = 0.0,
        lotes: Optional[List[LoteSelecionado]] = None,
        promocao_id: Optional[str] = None,
    ) -> ItemVenda:
        """Adiciona (ou soma) um produto ao carrinho.

        Args:
            produto: Produto com estoque atual.
            quantidade: Unidades a adicionar (> 0).
            preco_unitario: Preço cobrado; padrão ``produto.preco_venda``.
            desconto: Desconto total da linha para estas unidades.
            lotes: Alocação por lote; obrigatória para produtos com lote controlado.
            promocao_id: Promoção aplicada, se houver.

        Raises:
            ErroValidacao: quantidade, estoque, desconto ou lotes inconsistentes.
        """
        quantidade = int(quantidade)
        if quantidade <= 0:
            raise ErroValidacao("Quantidade deve ser maior que zero")
        if desconto < 0:
            raise ErroValidacao("Desconto não pode ser negativo")
        lotes = list(lotes or [])

        if requer_lote_obrigatorio(produto) and not lotes:
            raise ErroValidacao(f"Selecione os lotes de {produto.nome}")
        if lotes and total_aplicavel(lotes) != quantidade:
            raise ErroValidacao(
                f"Quantidade dos lotes ({total_aplicavel(lotes)}) difere da quantidade do item ({quantidade})"
            )

        idx = self._indice(produto.id)
        atual = self.itens[idx] if idx is not None else None
        nova_qtd = quantidade + (atual.quantidade if atual else 0)
        if nova_qtd > produto.estoque:
            raise ErroValidacao(f"Estoque insuficiente. Disponível: {produto.estoque}")

        if atual is not None:
            preco = atual.preco_unitario
        else:
            preco = produto.preco_venda if preco_unitario is None else float(preco_unitario)
        novo_desconto = float(desconto) + (atual.desconto if atual else 0.0)
        if novo_desconto > preco * nova_qtd + 1e-9:
            raise ErroValidacao("Desconto não pode ser maior que o valor do item")

        if atual is None:
            item = ItemVenda(
                produto_id=produto.id,
                quantidade=quantidade,
                preco_unitario=preco,
                desconto=novo_desconto,
                lotes=_mesclar_lotes([], lotes),
                produto=produto,
                promocao_id=promocao_id,
            )
            self.itens.append(item)
        else:
            item = ItemVenda(
                produto_id=produto.id,
                quantidade=nova_qtd,
                preco_unitario=preco,
                desconto=novo_desconto,
                lotes=_mesclar_lotes(atual.lotes, lotes),
                produto=produto,
                promocao_id=promocao_id or atual.promocao_id,
            )
            self.itens[idx] = item

        log_venda(
            "item_added",
            produto_id=produto.id,
            quantidade=quantidade,
            total_linha=item.quantidade,
            desconto=item.desconto,
            promocao_id=item.promocao_id,
        )
        return item

    def remover_item(self, indice: int) -> ItemVenda:
        if not 0 <= indice < len(self.itens):
            raise ErroValidacao("Item não encontrado no carrinho")
        item = self.itens.pop(indice)
        if not self.tem_medicamento_controlado:
            self.receita = DadosReceita()
            self.paciente = DadosPaciente()
        log_venda("item_removed", produto_id=item.produto_id)
        return item

    def limpar(self) -> None:
        self.itens = []
        self.receita = DadosReceita()
        self.paciente = DadosPaciente()
        self.cliente = None

    # -------------------------
    # Totais
    # -------------------------

    @property
    def valor_total(self) -> float:
        return sum(it.subtotal for it in self.itens)

    @property
    def valor_desconto(self) -> float:
        return sum(it.desconto for it in self.itens)

    @property
    def valor_final(self) -> float:
        return self.valor_total - self.valor_desconto

    @property
    def vazio(self) -> bool:
        return not self.itens

    # -------------------------
    # Controlados / finalização
    # -------------------------

    @property
    def tem_medicamento_controlado(self) -> bool:
        return any(it.produto is not None and eh_controlado(it.produto) for it in self.itens)

    def pendencias(self) -> List[str]:
        """Tudo que ainda impede a finalização."""
        out: List[str] = []
        if not self.itens:
            out.append("Adicione pelo menos um produto à venda")
        if self.tem_medicamento_controlado:
            val = validar_receita(
                self.receita.numero,
                self.receita.data,
                hoje=self.hoje,
                validade_dias=self.config.validade_receita_dias,
                min_caracteres=self.config.min_caracteres_receita,
            )
            if not val.valida:
                out.append(val.mensagem)
            out.extend(pendencias_paciente(self.paciente))
        out.extend(pendencias_cliente(self.cliente))
        return out

    def pode_finalizar(self) -> bool:
        return not self.pendencias()

    def validar_para_finalizacao(self) -> None:
        pend = self.pendencias()
        if pend:
            raise ErroValidacao(pend[0] if len(pend) == 1 else "; ".join(pend))
