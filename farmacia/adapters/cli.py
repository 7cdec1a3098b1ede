# farmacia/adapters/cli.py
"""
CLI do PDV da farmácia (Typer).

Comandos principais:
- migrate                              -> aplica migrações no banco local
- importar produtos|lotes|promocoes    -> importa cadastros de XLSX
- produto buscar <termo>               -> busca no catálogo
- lotes listar <produto_id>            -> lotes disponíveis em ordem FEFO
- lotes fefo <produto_id>              -> lotes que vencem em até 90 dias
- promocao aplicavel <produto_id>      -> promoção vencedora (e preço final)
- promocao calcular <preco>            -> calcula um desconto avulso
- venda nova                           -> venda interativa no terminal

Sem ``--api-url`` (ou FARMACIA_API_URL) os comandos usam o banco local.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from farmacia.adapters.parsers import parse_data, parse_valor
from farmacia.config import API_URL, DB_PATH, DEFAULTS
from farmacia.domain.descontos import aplicar_desconto, formatar_moeda, formatar_porcentagem
from farmacia.domain.erros import ErroFarmacia, ErroRegraNegocio, ErroValidacao
from farmacia.domain.lotes import (
    obter_cor_vencimento,
    obter_descricao_controle,
    ordenar_fefo,
    requer_lote_obrigatorio,
    selecionar_lotes_fefo,
)
from farmacia.domain.models import (
    TIPOS_DOCUMENTO,
    DadosCliente,
    FormaPagamento,
    Lote,
    Produto,
    Promocao,
    TipoAlcancePromocao,
    TipoPromocao,
)
from farmacia.domain.promocoes import verificar_status_promocao
from farmacia.infra.backends import Servicos, criar_servicos
from farmacia.infra.logger import log_system_event
from farmacia.infra.migrations import apply_migrations
from farmacia.usecases.buscar_produto import BuscaIncremental
from farmacia.usecases.carrinho_venda import CarrinhoVenda
from farmacia.usecases.finalizar_venda import finalizar_venda
from farmacia.usecases.importar_cadastros import importar_cadastro
from farmacia.usecases.resolver_promocao import resolver_promocao_aplicavel
from farmacia.usecases.selecao_lotes import EstadoSelecao, ResultadoSelecao, SelecaoLotes


app = typer.Typer(help="Farmácia PDV - CLI")
console = Console()

DB_OPT = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
API_OPT = typer.Option(API_URL, "--api-url", help="URL base da API REST (opcional)")


# -----------------------
# util
# -----------------------

@contextmanager
def _tratando_erros():
    """Converte ErroFarmacia em painel vermelho e código de saída 1."""
    try:
        yield
    except ErroFarmacia as e:
        console.print(Panel(e.mensagem, title="Erro", border_style="red"))
        raise typer.Exit(code=1)


def _servicos(db_path: str, api_url: Optional[str]) -> Servicos:
    return criar_servicos(api_url=api_url, db_path=db_path)


def _tabela_produtos(produtos: List[Produto], title: str = "Produtos") -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("id")
    table.add_column("nome")
    table.add_column("laboratório")
    table.add_column("preço", justify="right")
    table.add_column("estoque", justify="right")
    table.add_column("controle")
    for i, p in enumerate(produtos, start=1):
        table.add_row(
            str(i),
            p.id,
            p.nome,
            p.laboratorio or "-",
            formatar_moeda(p.preco_venda),
            str(p.estoque),
            obter_descricao_controle(p),
        )
    return table


def _tabela_lotes(lotes: List[Lote], title: str, selecao: Optional[SelecaoLotes] = None) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("#", justify="right")
    if selecao is not None:
        table.add_column("sel", justify="center")
    table.add_column("lote")
    table.add_column("validade", justify="center")
    table.add_column("dias", justify="right")
    table.add_column("disponível", justify="right")
    if selecao is not None:
        table.add_column("qtd", justify="right")
        table.add_column("promoção")
    for i, l in enumerate(lotes, start=1):
        cor = obter_cor_vencimento(l.dias_para_vencimento)
        row = [str(i)]
        if selecao is not None:
            row.append("[bold green]x[/]" if l.id in selecao.selecoes else "")
        row += [
            l.numero_lote,
            l.data_validade.strftime("%d/%m/%Y"),
            f"[{cor}]{l.dias_para_vencimento}[/]",
            str(l.quantidade_disponivel),
        ]
        if selecao is not None:
            sel = selecao.selecoes.get(l.id)
            promo = selecao.promocoes_por_lote.get(l.id)
            row.append(str(sel.quantidade_aplicavel) if sel else "")
            row.append(f"[bold magenta]{promo.nome}[/]" if promo else "")
        table.add_row(*row)
    return table


def _descrever_promocao(promo: Promocao, preco: float) -> Panel:
    res = aplicar_desconto(preco, promo)
    status = verificar_status_promocao(promo)
    linhas = [
        f"Promoção: {promo.nome} ({promo.tipo_alcance.value})",
        f"Preço original: {formatar_moeda(preco)}",
        f"Desconto: {formatar_moeda(res.valor_desconto)} ({formatar_porcentagem(res.porcentagem_desconto)})",
        f"Preço final: {formatar_moeda(res.preco_final)}",
        f"Dias restantes: {status.dias_restantes}",
    ]
    if status.quantidade_restante is not None:
        linhas.append(f"Quantidade restante: {status.quantidade_restante}")
    return Panel("\n".join(linhas), title="Promoção aplicável", border_style="green")


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPT):
    """Aplica as migrações do banco local."""
    apply_migrations(db_path)
    typer.echo(f">> Migrações aplicadas em: {db_path}")


importar_app = typer.Typer(help="Importar cadastros de planilhas XLSX.")
app.add_typer(importar_app, name="importar")


def _importar(tipo: str, path: str, db_path: str) -> None:
    with _tratando_erros():
        info = importar_cadastro(tipo, path, db_path=db_path)
    console.print(Panel(
        f"Arquivo: {info['arquivo']}\nLinhas importadas: {info['linhas_importadas']}",
        title=f"Importação de {tipo}",
    ))


@importar_app.command("produtos")
def cmd_importar_produtos(path: str = typer.Argument(..., help="XLSX de produtos"), db_path: str = DB_OPT):
    """Importa produtos (id, nome, preço, estoque, laboratório, flags de controle)."""
    _importar("produtos", path, db_path)


@importar_app.command("lotes")
def cmd_importar_lotes(path: str = typer.Argument(..., help="XLSX de lotes"), db_path: str = DB_OPT):
    """Importa lotes (produto, número, validade, quantidades, custo)."""
    _importar("lotes", path, db_path)


@importar_app.command("promocoes")
def cmd_importar_promocoes(path: str = typer.Argument(..., help="XLSX de promoções"), db_path: str = DB_OPT):
    """Importa promoções (alcance, tipo, desconto, vigência)."""
    _importar("promocoes", path, db_path)


# -----------------------
# consultas
# -----------------------

produto_app = typer.Typer(help="Consultas ao catálogo.")
app.add_typer(produto_app, name="produto")


@produto_app.command("buscar")
def cmd_produto_buscar(
    termo: str = typer.Argument(..., help="Código de barras, id ou trecho do nome"),
    db_path: str = DB_OPT,
    api_url: Optional[str] = API_OPT,
):
    """Busca produtos no catálogo."""
    with _tratando_erros():
        busca = BuscaIncremental(_servicos(db_path, api_url).produtos)
        produtos = busca.buscar_agora(termo)
        if busca.erro:
            raise ErroValidacao(busca.erro)
    if not produtos:
        console.print(Panel("Nenhum produto encontrado", title="Produtos", border_style="yellow"))
        return
    console.print(_tabela_produtos(produtos))


lotes_app = typer.Typer(help="Consultas de lotes.")
app.add_typer(lotes_app, name="lotes")


@lotes_app.command("listar")
def cmd_lotes_listar(
    produto_id: str = typer.Argument(...),
    db_path: str = DB_OPT,
    api_url: Optional[str] = API_OPT,
):
    """Lista os lotes disponíveis do produto em ordem FEFO."""
    with _tratando_erros():
        lotes = ordenar_fefo(_servicos(db_path, api_url).lotes.listar_disponiveis(produto_id))
        if not lotes:
            raise ErroRegraNegocio("Nenhum lote disponível para este produto.")
    console.print(_tabela_lotes(lotes, title=f"Lotes de {produto_id}"))


@lotes_app.command("fefo")
def cmd_lotes_fefo(
    produto_id: str = typer.Argument(...),
    db_path: str = DB_OPT,
    api_url: Optional[str] = API_OPT,
):
    """Mostra os lotes que a seleção FEFO automática escolheria."""
    janela = DEFAULTS.janela_fefo_dias
    with _tratando_erros():
        lotes = _servicos(db_path, api_url).lotes.listar_disponiveis(produto_id)
        escolhidos = selecionar_lotes_fefo(lotes, janela_dias=janela, maximo=DEFAULTS.max_lotes_fefo)
        if not escolhidos:
            raise ErroRegraNegocio(f"Não há lotes próximos ao vencimento ({janela} dias)")
    console.print(_tabela_lotes(escolhidos, title=f"FEFO ({janela} dias) - {produto_id}"))


promocao_app = typer.Typer(help="Promoções.")
app.add_typer(promocao_app, name="promocao")


@promocao_app.command("aplicavel")
def cmd_promocao_aplicavel(
    produto_id: str = typer.Argument(...),
    lote: Optional[str] = typer.Option(None, "--lote", help="Id do lote escolhido"),
    db_path: str = DB_OPT,
    api_url: Optional[str] = API_OPT,
):
    """Resolve a promoção aplicável (LOTE > PRODUTO > LABORATÓRIO)."""
    with _tratando_erros():
        servicos = _servicos(db_path, api_url)
        produto = servicos.produtos.buscar_por_id(produto_id)
        if produto is None:
            raise ErroValidacao(f"Produto {produto_id} não encontrado")
        promo = resolver_promocao_aplicavel(produto, lote, servico=servicos.promocoes)
        if promo is None:
            console.print(Panel("Nenhuma promoção aplicável", title=produto.nome, border_style="yellow"))
            return
        console.print(_descrever_promocao(promo, produto.preco_venda))


@promocao_app.command("calcular")
def cmd_promocao_calcular(
    preco: str = typer.Argument(..., help="Preço base (ex.: 12,50)"),
    tipo: TipoPromocao = typer.Option(..., "--tipo", case_sensitive=False),
    valor: str = typer.Option(..., "--valor", help="Valor (FIXO) ou porcentagem (PORCENTAGEM)"),
):
    """Calcula o preço com desconto sem consultar serviços."""
    with _tratando_erros():
        base = parse_valor(preco)
        v = parse_valor(valor)
        if base is None or v is None:
            raise ErroValidacao("Preço e valor devem ser numéricos")
        promo = Promocao(
            id="avulsa",
            nome="Cálculo avulso",
            tipo_alcance=TipoAlcancePromocao.PRODUTO,
            tipo=tipo,
            data_inicio=datetime.min,
            data_fim=datetime.max,
            produto_id="-",
            valor_desconto=v if tipo == TipoPromocao.FIXO else None,
            porcentagem_desconto=v if tipo == TipoPromocao.PORCENTAGEM else None,
        )
        res = aplicar_desconto(base, promo)
    table = Table(title="Cálculo de desconto", box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor", justify="right")
    table.add_row("Preço original", formatar_moeda(base))
    table.add_row("Desconto", formatar_moeda(res.valor_desconto))
    table.add_row("Porcentagem", formatar_porcentagem(res.porcentagem_desconto))
    table.add_row("Preço final", formatar_moeda(res.preco_final))
    console.print(table)


# -----------------------
# venda interativa
# -----------------------

venda_app = typer.Typer(help="Vendas.")
app.add_typer(venda_app, name="venda")

_AJUDA_LOTES = (
    "Comandos: [bold]n[/] alterna o lote n (ex.: 1 ou 1,3) | [bold]q n qtd[/] quantidade | "
    "[bold]t[/] todos | [bold]f[/] FEFO | [bold]c[/] confirmar | [bold]x[/] cancelar"
)


def _lote_por_numero(sel: SelecaoLotes, texto: str) -> Lote:
    """Lote pela numeração exibida na tabela (1..n)."""
    n = int(texto)
    if not 1 <= n <= len(sel.lotes):
        raise IndexError(n)
    return sel.lotes[n - 1]


def _dialogo_lotes(sel: SelecaoLotes, produto: Produto, quantidade: int) -> Optional[ResultadoSelecao]:
    """Diálogo de seleção de lotes no terminal. Devolve None se cancelado."""
    sel.abrir(produto, quantidade)
    if sel.estado == EstadoSelecao.ERRO:
        console.print(Panel(sel.erro or "Erro", title="Lotes", border_style="red"))
        return None

    while True:
        console.print(_tabela_lotes(sel.lotes, title=f"Lotes de {produto.nome} (solicitado: {quantidade})", selecao=sel))
        console.print(f"Selecionado: {sel.quantidade_selecionada}")
        console.print(_AJUDA_LOTES)
        cmd = typer.prompt("Lotes").strip().lower()
        try:
            if cmd == "c":
                return sel.confirmar()
            if cmd == "x":
                sel.cancelar()
                return None
            if cmd == "t":
                sel.alternar_todos()
            elif cmd == "f":
                sel.selecionar_fefo()
            elif cmd.startswith("q"):
                partes = cmd.split()
                if len(partes) != 3:
                    raise ErroValidacao("Use: q <n> <quantidade>")
                lote = _lote_por_numero(sel, partes[1])
                sel.atualizar_quantidade(lote.id, int(partes[2]))
            else:
                for n in cmd.replace(" ", "").split(","):
                    sel.alternar_lote(_lote_por_numero(sel, n).id)
        except (ValueError, IndexError):
            console.print("[red]Comando inválido[/]")
        except ErroFarmacia as e:
            console.print(f"[red]{e.mensagem}[/]")


def _escolher_produto(servicos: Servicos) -> Optional[Produto]:
    busca = BuscaIncremental(servicos.produtos)
    while True:
        termo = typer.prompt("Produto (vazio para encerrar)", default="", show_default=False).strip()
        if not termo:
            return None
        produtos = busca.buscar_agora(termo)
        if busca.erro:
            console.print(f"[red]{busca.erro}[/]")
            continue
        if not produtos:
            console.print("[yellow]Nenhum produto encontrado[/]")
            continue
        if len(produtos) == 1:
            return produtos[0]
        console.print(_tabela_produtos(produtos, title="Resultados"))
        n = typer.prompt("Número do produto", type=int, default=1)
        if 1 <= n <= len(produtos):
            return produtos[n - 1]
        console.print("[red]Opção inválida[/]")


def _adicionar_produto(servicos: Servicos, carrinho: CarrinhoVenda, produto: Produto) -> None:
    quantidade = typer.prompt("Quantidade", type=int, default=1)
    if quantidade <= 0 or quantidade > produto.estoque:
        raise ErroValidacao(f"Quantidade inválida. Disponível: {produto.estoque}")

    lotes = None
    promo = None
    if requer_lote_obrigatorio(produto):
        console.print(f"[bold yellow]{obter_descricao_controle(produto)}[/]")
        sel = SelecaoLotes(servicos.lotes, servicos.promocoes)
        resultado = _dialogo_lotes(sel, produto, quantidade)
        if resultado is None:
            console.print("[yellow]Item não adicionado[/]")
            return
        lotes = resultado.lotes
        promo = resultado.promocao
    if promo is None:
        promo = resolver_promocao_aplicavel(produto, servico=servicos.promocoes)

    desconto = 0.0
    if promo is not None:
        res = aplicar_desconto(produto.preco_venda, promo)
        # desconto efetivo: o piso em zero limita promoções FIXO maiores que o preço
        desconto = (produto.preco_venda - res.preco_final) * quantidade
        console.print(f"[green]Promoção aplicada: {promo.nome} ({formatar_moeda(res.preco_final)} un.)[/]")

    carrinho.adicionar_item(
        produto,
        quantidade,
        desconto=desconto,
        lotes=lotes,
        promocao_id=promo.id if promo else None,
    )


def _mostrar_carrinho(carrinho: CarrinhoVenda) -> None:
    table = Table(title="Carrinho", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("produto")
    table.add_column("qtd", justify="right")
    table.add_column("unitário", justify="right")
    table.add_column("desconto", justify="right")
    table.add_column("total", justify="right")
    table.add_column("lotes")
    for i, it in enumerate(carrinho.itens, start=1):
        table.add_row(
            str(i),
            it.produto.nome if it.produto else it.produto_id,
            str(it.quantidade),
            formatar_moeda(it.preco_unitario),
            formatar_moeda(it.desconto),
            formatar_moeda(it.total),
            ", ".join(f"{l.numero_lote}:{l.quantidade_aplicavel}" for l in it.lotes),
        )
    console.print(table)
    console.print(
        f"Total: {formatar_moeda(carrinho.valor_total)} | "
        f"Desconto: {formatar_moeda(carrinho.valor_desconto)} | "
        f"[bold]Final: {formatar_moeda(carrinho.valor_final)}[/]"
    )


def _coletar_controlados(carrinho: CarrinhoVenda) -> None:
    console.print(Panel("Venda com medicamento controlado: receita e paciente obrigatórios", border_style="yellow"))
    carrinho.receita.numero = typer.prompt("Número da receita", default=carrinho.receita.numero or None)
    data_txt = typer.prompt("Data da receita (DD/MM/AAAA)")
    carrinho.receita.data = parse_data(data_txt)
    pac = carrinho.paciente
    pac.nome = typer.prompt("Nome do paciente", default=pac.nome or None)
    pac.cpf = typer.prompt("CPF do paciente", default=pac.cpf or None)
    pac.rg = typer.prompt("RG do paciente", default=pac.rg or None)
    pac.endereco = typer.prompt("Endereço do paciente", default=pac.endereco or None)
    pac.telefone = typer.prompt("Telefone do paciente", default=pac.telefone or None)


def _coletar_cliente(carrinho: CarrinhoVenda) -> None:
    if not typer.confirm("Informar cliente?", default=False):
        carrinho.cliente = None
        return
    nome = typer.prompt("Nome do cliente")
    documento = typer.prompt("Documento do cliente")
    tipo = typer.prompt(f"Tipo de documento ({'/'.join(TIPOS_DOCUMENTO)})", default="CPF")
    carrinho.cliente = DadosCliente(nome=nome, documento=documento, tipo_documento=tipo.upper())


@venda_app.command("nova")
def cmd_venda_nova(
    db_path: str = DB_OPT,
    api_url: Optional[str] = API_OPT,
):
    """Registra uma venda interativa (produtos, lotes, promoções, receita)."""
    with _tratando_erros():
        servicos = _servicos(db_path, api_url)
    carrinho = CarrinhoVenda()
    log_system_event("venda_nova_start", {"origem": servicos.origem})

    while True:
        produto = _escolher_produto(servicos)
        if produto is None:
            break
        try:
            _adicionar_produto(servicos, carrinho, produto)
        except ErroFarmacia as e:
            console.print(f"[red]{e.mensagem}[/]")
            continue
        _mostrar_carrinho(carrinho)

    if carrinho.vazio:
        console.print("[yellow]Venda cancelada: carrinho vazio[/]")
        raise typer.Exit(code=1)

    while True:
        if carrinho.tem_medicamento_controlado:
            _coletar_controlados(carrinho)
        _coletar_cliente(carrinho)
        pendencias = carrinho.pendencias()
        if not pendencias:
            break
        console.print(Panel("\n".join(pendencias), title="Pendências", border_style="red"))
        if not typer.confirm("Corrigir os dados?", default=True):
            raise typer.Exit(code=1)

    forma_txt = typer.prompt(
        f"Forma de pagamento ({'/'.join(f.value for f in FormaPagamento)})",
        default=FormaPagamento.DINHEIRO.value,
    )
    observacoes = typer.prompt("Observações", default="", show_default=False)

    with _tratando_erros():
        try:
            forma = FormaPagamento(forma_txt.strip().upper())
        except ValueError:
            raise ErroValidacao(f"Forma de pagamento inválida: {forma_txt}") from None
        resultado = finalizar_venda(carrinho, servicos.vendas, forma, observacoes or None)

    cor = "green" if resultado.pagamento_finalizado else "yellow"
    console.print(Panel(
        f"{resultado.mensagem}\nVenda: {resultado.venda_id}\nValor final: {formatar_moeda(resultado.valor_final)}",
        title="Venda",
        border_style=cor,
    ))


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
