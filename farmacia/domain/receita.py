# farmacia/domain/receita.py
"""
Validações de receita, paciente e cliente para a venda.

Aplicam-se quando o carrinho contém medicamento controlado (Portaria
SVS/MS nº 344/1998): receita com número e data válidos e identificação
completa do paciente dono da receita.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from farmacia.domain.models import TIPOS_DOCUMENTO, DadosCliente, DadosPaciente


@dataclass
class ValidacaoReceita:
    valida: bool
    mensagem: str = ""


def validar_receita(
    numero: Optional[str],
    data_receita: Optional[date],
    hoje: Optional[date] = None,
    validade_dias: int = 30,
    min_caracteres: int = 8,
) -> ValidacaoReceita:
    """Valida número e data da receita.

    Regras:
        - número e data obrigatórios;
        - número com pelo menos ``min_caracteres``;
        - data não pode ser futura;
        - receita vale ``validade_dias`` dias a partir da data de emissão.
    """
    numero = (numero or "").strip()
    if not numero or data_receita is None:
        return ValidacaoReceita(False, "Número e data da receita são obrigatórios")
    if len(numero) < min_caracteres:
        return ValidacaoReceita(False, f"Número da receita deve ter pelo menos {min_caracteres} caracteres")
    hoje = hoje or date.today()
    if data_receita > hoje:
        return ValidacaoReceita(False, "Data da receita não pode ser futura")
    if hoje > data_receita + timedelta(days=validade_dias):
        return ValidacaoReceita(False, f"Receita vencida. Validade de {validade_dias} dias")
    return ValidacaoReceita(True, "Receita válida")


def somente_digitos(valor: Optional[str]) -> str:
    return re.sub(r"\D", "", valor or "")


def validar_telefone(telefone: Optional[str]) -> bool:
    """Telefone brasileiro com DDD: 10 ou 11 dígitos."""
    return len(somente_digitos(telefone)) in (10, 11)


def pendencias_paciente(paciente: DadosPaciente) -> List[str]:
    out: List[str] = []
    if not (paciente.nome and paciente.cpf and paciente.rg and paciente.telefone):
        out.append("Dados do paciente (dono da receita) são obrigatórios para medicamentos controlados")
    if paciente.nome and len(paciente.nome.strip()) < 3:
        out.append("Nome do paciente deve ter pelo menos 3 caracteres")
    if not paciente.endereco or len(paciente.endereco.strip()) < 10:
        out.append("Endereço do paciente deve ter pelo menos 10 caracteres")
    if paciente.telefone and not validar_telefone(paciente.telefone):
        out.append("Telefone do paciente deve ter formato válido (10 ou 11 dígitos)")
    return out


def pendencias_cliente(cliente: Optional[DadosCliente]) -> List[str]:
    """Cliente é opcional, mas se começou a ser preenchido deve estar completo."""
    if cliente is None or cliente.id:
        return []
    out: List[str] = []
    if bool(cliente.nome) != bool(cliente.documento):
        out.append("Complete os dados do cliente ou deixe todos os campos em branco")
    if cliente.documento and (cliente.tipo_documento or "").upper() not in TIPOS_DOCUMENTO:
        out.append("Tipo de documento inválido")
    if cliente.nome and len(cliente.nome.strip()) < 3:
        out.append("Nome do cliente deve ter pelo menos 3 caracteres")
    return out
