# farmacia/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os serviços externos falam JSON (camelCase); a conversão para estas
  dataclasses acontece uma única vez em ``farmacia.adapters.payloads``.
- Daí em diante o código trabalha só com os tipos abaixo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class TipoPromocao(str, Enum):
    FIXO = "FIXO"
    PORCENTAGEM = "PORCENTAGEM"


class TipoAlcancePromocao(str, Enum):
    PRODUTO = "PRODUTO"
    LABORATORIO = "LABORATORIO"
    LOTE = "LOTE"


class CondicaoTermino(str, Enum):
    ATE_ACABAR_ESTOQUE = "ATE_ACABAR_ESTOQUE"
    QUANTIDADE_LIMITADA = "QUANTIDADE_LIMITADA"


class FormaPagamento(str, Enum):
    DINHEIRO = "DINHEIRO"
    CARTAO_CREDITO = "CARTAO_CREDITO"
    CARTAO_DEBITO = "CARTAO_DEBITO"
    PIX = "PIX"
    BOLETO = "BOLETO"
    TRANSFERENCIA = "TRANSFERENCIA"
    CREDITO_LOJA = "CREDITO_LOJA"


TIPOS_DOCUMENTO = ("CPF", "RG", "CNH", "PASSAPORTE")


@dataclass
class Produto:
    """Cadastro de produto (somente leitura para o PDV)."""
    id: str
    nome: str
    preco_venda: float = 0.0
    estoque: int = 0
    laboratorio: Optional[str] = None
    controlado: bool = False
    lote_obrigatorio: bool = False
    codigo_barras: Optional[str] = None
    exige_receita: bool = False
    classe_controlada: Optional[str] = None   # A1..C5 (Portaria 344/98)
    ativo: bool = True


@dataclass
class Lote:
    """Lote disponível de um produto, já com os campos derivados."""
    id: str
    numero_lote: str
    data_validade: date
    quantidade_disponivel: int
    preco_custo: float = 0.0
    dias_para_vencimento: int = 0
    produto_id: Optional[str] = None
    data_fabricacao: Optional[date] = None
    quantidade_atual: Optional[int] = None
    quantidade_reservada: int = 0


@dataclass
class Promocao:
    id: str
    nome: str
    tipo_alcance: TipoAlcancePromocao
    tipo: TipoPromocao
    data_inicio: datetime
    data_fim: datetime
    ativo: bool = True
    produto_id: Optional[str] = None
    laboratorio: Optional[str] = None
    lote_id: Optional[str] = None
    valor_desconto: Optional[float] = None         # FIXO
    porcentagem_desconto: Optional[float] = None   # PORCENTAGEM
    condicao_termino: CondicaoTermino = CondicaoTermino.ATE_ACABAR_ESTOQUE
    quantidade_maxima: Optional[int] = None
    quantidade_vendida: int = 0


@dataclass
class LoteSelecionado:
    """Lote escolhido no diálogo de seleção (transiente)."""
    lote_id: str
    numero_lote: str
    data_validade: date
    quantidade_disponivel: int
    quantidade_aplicavel: int
    preco_custo: float = 0.0
    dias_para_vencimento: Optional[int] = None


@dataclass
class ItemVenda:
    produto_id: str
    quantidade: int
    preco_unitario: float
    desconto: float = 0.0
    lotes: List[LoteSelecionado] = field(default_factory=list)
    produto: Optional[Produto] = None
    promocao_id: Optional[str] = None

    @property
    def subtotal(self) -> float:
        return self.preco_unitario * self.quantidade

    @property
    def total(self) -> float:
        return self.subtotal - self.desconto


@dataclass
class DadosReceita:
    numero: Optional[str] = None
    data: Optional[date] = None


@dataclass
class DadosPaciente:
    """Dono da receita (obrigatório para medicamentos controlados)."""
    nome: Optional[str] = None
    cpf: Optional[str] = None
    rg: Optional[str] = None
    endereco: Optional[str] = None
    telefone: Optional[str] = None


@dataclass
class DadosCliente:
    id: Optional[str] = None
    nome: Optional[str] = None
    documento: Optional[str] = None
    tipo_documento: Optional[str] = None
