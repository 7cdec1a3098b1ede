# farmacia/usecases/finalizar_venda.py
"""
UC: finalizar a venda.

1) Valida o carrinho (itens, receita, paciente e cliente).
2) Monta o payload ``CriarVendaData`` (camelCase) e cria a venda.
3) Finaliza o pagamento com o id devolvido; falha aqui não desfaz a venda.
4) Limpa o carrinho.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from farmacia.domain.erros import ErroFarmacia
from farmacia.domain.models import FormaPagamento
from farmacia.infra.logger import log_transaction, log_venda
from farmacia.usecases.carrinho_venda import CarrinhoVenda


@dataclass
class ResultadoFinalizacao:
    venda_id: str
    valor_final: float
    pagamento_finalizado: bool = True
    mensagem: str = "Venda finalizada com sucesso"


def _sem_vazios(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None and v != ""}


def montar_payload_venda(
    carrinho: CarrinhoVenda,
    forma_pagamento: Union[FormaPagamento, str],
    observacoes: Optional[str] = None,
) -> Dict[str, Any]:
    itens = []
    for it in carrinho.itens:
        item = {
            "produtoId": it.produto_id,
            "quantidade": it.quantidade,
            "precoUnitario": it.preco_unitario,
            "desconto": it.desconto,
        }
        if it.lotes:
            item["lotes"] = [{"loteId": l.lote_id, "quantidade": l.quantidade_aplicavel} for l in it.lotes]
        if it.promocao_id:
            item["promocaoId"] = it.promocao_id
        itens.append(item)

    payload: Dict[str, Any] = {
        "itens": itens,
        "formaPagamento": FormaPagamento(forma_pagamento).value,
        "observacoes": observacoes,
    }

    cli = carrinho.cliente
    if cli is not None:
        if cli.id:
            payload["clienteId"] = cli.id
        else:
            payload.update({
                "clienteNome": cli.nome,
                "clienteDocumento": cli.documento,
                "clienteTipoDocumento": (cli.tipo_documento or "").upper() or None,
            })

    if carrinho.tem_medicamento_controlado:
        pac, rec = carrinho.paciente, carrinho.receita
        payload.update({
            "pacienteNome": pac.nome,
            "pacienteDocumento": pac.cpf,
            "pacienteTipoDocumento": "CPF",
            "pacienteRg": pac.rg,
            "pacienteEndereco": pac.endereco,
            "pacienteTelefone": pac.telefone,
            "numeroReceita": rec.numero,
            "dataReceita": rec.data.isoformat() if rec.data else None,
        })

    return _sem_vazios(payload)


def finalizar_venda(
    carrinho: CarrinhoVenda,
    servico_vendas,
    forma_pagamento: Union[FormaPagamento, str],
    observacoes: Optional[str] = None,
) -> ResultadoFinalizacao:
    """Cria a venda no serviço e tenta finalizar o pagamento.

    Raises:
        ErroValidacao: carrinho com pendências (nada é enviado).
        ErroServico: falha ao criar a venda (carrinho preservado).
    """
    carrinho.validar_para_finalizacao()
    payload = montar_payload_venda(carrinho, forma_pagamento, observacoes)
    valor_final = carrinho.valor_final

    try:
        venda_id = servico_vendas.criar_venda(payload)
    except ErroFarmacia as e:
        log_transaction("criar_venda", {"itens": len(payload["itens"])}, error=e.mensagem)
        raise
    log_venda("created", venda_id, itens=len(payload["itens"]), valor_final=valor_final)

    resultado = ResultadoFinalizacao(venda_id=venda_id, valor_final=valor_final)
    try:
        servico_vendas.finalizar_pagamento(venda_id)
        log_venda("payment_finalized", venda_id)
    except ErroFarmacia as e:
        resultado.pagamento_finalizado = False
        resultado.mensagem = "Venda criada, mas houve erro ao finalizar pagamento"
        log_venda("payment_error", venda_id, error=e.mensagem)

    carrinho.limpar()
    log_transaction("finalizar_venda", {"venda_id": venda_id}, result=resultado.mensagem)
    return resultado
