# farmacia/adapters/cli.py
"""
CLI da farmácia (Typer).

Comandos principais:
- migrate                          -> aplica migrações e cria views
- params set/get/show              -> limiares de alerta
- categoria add/list               -> categorias de medicamentos
- medicamento add/list/edit/status/remove
- cliente add/list/remove
- estoque entrada/saida/historico  -> livro de estoque
- entrada-lotes / saida-lotes      -> movimentações em lote (XLSX/CSV)
- alertas                          -> estoque baixo, validade próxima e vencidos
- venda --item ID:QTD              -> registra uma venda
- vendas list/show
- dashboard
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from farmacia.adapters.parsers import parse_data, parse_decimal, parse_item_venda
from farmacia.config import DB_PATH, DEFAULTS
from farmacia.domain.errors import FarmaciaError, ValidationError
from farmacia.domain.models import Alerta, Cliente, Medicamento, MovimentacaoEstoque, TipoAlerta, Venda
from farmacia.infra.logger import log_system_event
from farmacia.infra.repositories import ParamsRepo
from farmacia.infra.views import init_db
from farmacia.usecases.alertas import AlertaService
from farmacia.usecases.catalogo import CatalogoService, CategoriaService
from farmacia.usecases.clientes import ClienteService
from farmacia.usecases.dashboard import DashboardService
from farmacia.usecases.movimentar_estoque import EstoqueService
from farmacia.usecases.vendas import VendaService


app = typer.Typer(help="Farmácia — estoque e vendas")
console = Console()

PARAMS = {
    "limiar_estoque_baixo": DEFAULTS.limiar_estoque_baixo,
    "janela_validade_dias": DEFAULTS.janela_validade_dias,
}


# -----------------------
# util
# -----------------------

def _json_default(obj: Any) -> Any:
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


def _to_plain(obj: Any) -> Any:
    if isinstance(obj, Venda):
        d = asdict(obj)
        d["valor_total"] = obj.valor_total
        return d
    if isinstance(obj, list):
        return [_to_plain(o) for o in obj]
    if is_dataclass(obj):
        return asdict(obj)
    return obj


def _print_json(obj) -> None:
    typer.echo(json.dumps(_to_plain(obj), ensure_ascii=False, indent=2, default=_json_default))


def _moeda(valor: Decimal) -> str:
    return "R$ " + f"{valor:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def _fmt(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, Decimal):
        return _moeda(val)
    if isinstance(val, datetime):
        return val.strftime("%d/%m/%Y %H:%M")
    if isinstance(val, date):
        return val.strftime("%d/%m/%Y")
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, Enum):
        return val.value
    return str(val)


def _display_table(data: Dict[str, Any] | List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe os dados em tabelas formatadas usando Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    if isinstance(data, list):
        table = Table(title=title, box=box.ROUNDED)
        columns = list(data[0].keys())
        for column in columns:
            if column.lower() in ("id", "estoque", "quantidade", "antes", "depois", "preco", "total", "dias"):
                table.add_column(column, justify="right")
            elif column.lower() in ("validade", "data"):
                table.add_column(column, justify="center")
            else:
                table.add_column(column)
        for row in data:
            table.add_row(*[_fmt(row.get(col)) for col in columns])
        console.print(table)
        return

    # Operações em lote
    if "total" in data and "sucessos" in data:
        panel_content = [
            f"Total de registros: {data['total']}",
            f"Processados com sucesso: {data['sucessos']}",
        ]
        if data.get("erros"):
            panel_content.append(f"Erros: {len(data['erros'])}")
        console.print(Panel("\n".join(panel_content), title=f"{data.get('tipo', 'Registros')} em Lote"))

        if data.get("erros"):
            erro_table = Table(title="Erros Encontrados")
            erro_table.add_column("Linha")
            erro_table.add_column("Erro")
            for erro in data["erros"]:
                erro_table.add_row(str(erro.get("linha", "?")), erro.get("mensagem", "Erro desconhecido"))
            console.print(erro_table)
        return

    # Registro único: campo / valor
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Campo")
    table.add_column("Valor")
    for chave, valor in data.items():
        table.add_row(chave, _fmt(valor))
    console.print(table)


@contextmanager
def _tratando_erros() -> Iterator[None]:
    """Converte erros de negócio em mensagem vermelha e código de saída 1."""
    try:
        yield
    except FarmaciaError as e:
        log_system_event("cli_error", e.to_dict(), level="warning")
        console.print(f"[bold red]Erro:[/] {e}")
        raise typer.Exit(code=1)


def _med_row(m: Medicamento) -> Dict[str, Any]:
    return {
        "id": m.id,
        "nome": m.nome_exibicao,
        "categoria": m.categoria.nome,
        "preco": m.preco,
        "estoque": m.estoque,
        "validade": m.data_validade,
        "ativo": m.ativo,
    }


def _cliente_row(c: Cliente) -> Dict[str, Any]:
    return {
        "id": c.id,
        "nome": c.nome,
        "cpf": c.cpf,
        "email": c.email,
        "telefone": c.telefone,
        "idade": c.idade,
    }


def _mov_row(m: MovimentacaoEstoque) -> Dict[str, Any]:
    return {
        "id": m.id,
        "data": m.data_movimentacao,
        "medicamento": m.medicamento_nome,
        "tipo": m.tipo,
        "quantidade": m.quantidade,
        "antes": m.quantidade_anterior,
        "depois": m.quantidade_atual,
        "observacao": m.observacao,
    }


def _alerta_row(a: Alerta) -> Dict[str, Any]:
    cor = {
        TipoAlerta.ESTOQUE_BAIXO: "yellow",
        TipoAlerta.VALIDADE_PROXIMA: "yellow",
        TipoAlerta.VENCIDO: "red",
    }[a.tipo]
    return {
        "id": a.medicamento.id,
        "medicamento": a.medicamento.nome_exibicao,
        "tipo": f"[bold {cor}]{a.tipo.value}[/]",
        "mensagem": a.mensagem,
    }


def _venda_row(v: Venda) -> Dict[str, Any]:
    return {
        "id": v.id,
        "data": v.data_venda,
        "cliente": v.cliente.nome if v.cliente else "-",
        "itens": len(v.itens),
        "total": v.valor_total,
    }


def _show_venda(v: Venda) -> None:
    _display_table(
        [
            {"medicamento": i.nome_medicamento, "quantidade": i.quantidade,
             "preco": i.preco_unitario, "subtotal": i.subtotal}
            for i in v.itens
        ],
        title=f"Venda #{v.id} — {_fmt(v.data_venda)}",
    )
    if v.cliente:
        console.print(f"Cliente: {v.cliente.nome} ({v.cliente.cpf})")
    console.print(f"[bold]Total: {_moeda(v.valor_total)}[/bold]")


DB_OPTION = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
JSON_OPTION = typer.Option(False, "--json", help="Saída em JSON")


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPTION):
    """Aplica migrações e recria as views auxiliares."""
    init_db(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


params_app = typer.Typer(help="Gerenciar os limiares de alerta.")
app.add_typer(params_app, name="params")


@params_app.command("set")
def cmd_params_set(
    limiar_estoque_baixo: Optional[int] = typer.Option(None, help="Unidades (ex.: 10)"),
    janela_validade_dias: Optional[int] = typer.Option(None, help="Dias até o vencimento (ex.: 30)"),
    db_path: str = DB_OPTION,
):
    """Define parâmetros (apenas os informados são alterados)."""
    init_db(db_path)
    items: List[tuple] = []
    if limiar_estoque_baixo is not None:
        items.append(("limiar_estoque_baixo", str(limiar_estoque_baixo)))
    if janela_validade_dias is not None:
        items.append(("janela_validade_dias", str(janela_validade_dias)))
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    if any(int(v) < 0 for _, v in items):
        console.print("[bold red]Erro:[/] parâmetros não podem ser negativos")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
def cmd_params_get(
    chave: str = typer.Argument(..., help="limiar_estoque_baixo | janela_validade_dias"),
    db_path: str = DB_OPTION,
):
    """Mostra um parâmetro específico."""
    init_db(db_path)
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(db_path: str = DB_OPTION):
    """Exibe os parâmetros efetivos (com fallback para defaults)."""
    init_db(db_path)
    repo = ParamsRepo(db_path)
    _display_table(
        [{"parametro": k, "atual": repo.get(k, str(v)), "padrao": v} for k, v in PARAMS.items()],
        title="Parâmetros do Sistema",
    )
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# catálogo
# -----------------------

categoria_app = typer.Typer(help="Categorias de medicamentos.")
app.add_typer(categoria_app, name="categoria")


@categoria_app.command("add")
def cmd_categoria_add(
    nome: str = typer.Argument(...),
    descricao: Optional[str] = typer.Option(None),
    db_path: str = DB_OPTION,
):
    """Cadastra uma categoria."""
    with _tratando_erros():
        cat = CategoriaService(db_path).criar(nome, descricao)
    typer.echo(f">> Categoria {cat.id} criada: {cat.nome}")


@categoria_app.command("list")
def cmd_categoria_list(db_path: str = DB_OPTION, as_json: bool = JSON_OPTION):
    """Lista as categorias."""
    cats = CategoriaService(db_path).listar()
    if as_json:
        _print_json(cats)
        return
    _display_table([asdict(c) for c in cats], title="Categorias")


med_app = typer.Typer(help="Catálogo de medicamentos.")
app.add_typer(med_app, name="medicamento")


@med_app.command("add")
def cmd_medicamento_add(
    nome: str = typer.Option(..., help="Nome comercial"),
    preco: str = typer.Option(..., help="Ex.: 10,50"),
    validade: str = typer.Option(..., help="DD/MM/AAAA"),
    categoria: int = typer.Option(..., help="Id da categoria"),
    dosagem: str = typer.Option("", help="Ex.: 500mg"),
    estoque: int = typer.Option(0, help="Estoque inicial"),
    descricao: Optional[str] = typer.Option(None),
    db_path: str = DB_OPTION,
):
    """Cadastra um medicamento."""
    with _tratando_erros():
        med = CatalogoService(db_path).criar({
            "nome": nome,
            "dosagem": dosagem,
            "descricao": descricao,
            "preco": parse_decimal(preco),
            "estoque": estoque,
            "data_validade": parse_data(validade, "data_validade"),
            "categoria_id": categoria,
        })
    typer.echo(f">> Medicamento {med.id} criado: {med.nome_exibicao}")


@med_app.command("list")
def cmd_medicamento_list(
    filtro: str = typer.Option("ativos", help="ativos | todos | historico"),
    db_path: str = DB_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Lista o catálogo."""
    with _tratando_erros():
        meds = CatalogoService(db_path).listar(filtro)
    if as_json:
        _print_json(meds)
        return
    _display_table([_med_row(m) for m in meds], title=f"Medicamentos ({filtro})")


@med_app.command("edit")
def cmd_medicamento_edit(
    id: int = typer.Argument(...),
    nome: Optional[str] = typer.Option(None),
    dosagem: Optional[str] = typer.Option(None),
    descricao: Optional[str] = typer.Option(None),
    preco: Optional[str] = typer.Option(None),
    estoque: Optional[int] = typer.Option(None, help="Novo estoque (gera movimentação de ajuste)"),
    validade: Optional[str] = typer.Option(None, help="DD/MM/AAAA"),
    categoria: Optional[int] = typer.Option(None),
    responsavel: Optional[str] = typer.Option(None),
    db_path: str = DB_OPTION,
):
    """Edita campos de um medicamento (apenas os informados)."""
    with _tratando_erros():
        parcial: Dict[str, Any] = {}
        if nome is not None:
            parcial["nome"] = nome
        if dosagem is not None:
            parcial["dosagem"] = dosagem
        if descricao is not None:
            parcial["descricao"] = descricao
        if preco is not None:
            parcial["preco"] = parse_decimal(preco)
        if estoque is not None:
            parcial["estoque"] = estoque
        if validade is not None:
            parcial["data_validade"] = parse_data(validade, "data_validade")
        if categoria is not None:
            parcial["categoria_id"] = categoria
        if not parcial:
            raise ValidationError("Nada a alterar. Informe pelo menos um campo.")
        med = CatalogoService(db_path).atualizar(id, parcial, responsavel=responsavel)
    _display_table(_med_row(med), title="Medicamento Atualizado")


@med_app.command("status")
def cmd_medicamento_status(
    id: int = typer.Argument(...),
    ativo: bool = typer.Option(..., "--ativo/--inativo"),
    db_path: str = DB_OPTION,
):
    """Ativa ou inativa um medicamento."""
    with _tratando_erros():
        med = CatalogoService(db_path).definir_status(id, ativo)
    typer.echo(f">> {med.nome_exibicao}: {'ativo' if med.ativo else 'inativo'}")


@med_app.command("remove")
def cmd_medicamento_remove(id: int = typer.Argument(...), db_path: str = DB_OPTION):
    """Remove (logicamente) um medicamento do catálogo."""
    with _tratando_erros():
        med = CatalogoService(db_path).remover(id)
    typer.echo(f">> Medicamento {med.id} removido do catálogo")


# -----------------------
# clientes
# -----------------------

cliente_app = typer.Typer(help="Cadastro de clientes.")
app.add_typer(cliente_app, name="cliente")


@cliente_app.command("add")
def cmd_cliente_add(
    nome: str = typer.Option(...),
    cpf: str = typer.Option(..., help="000.000.000-00"),
    email: str = typer.Option(...),
    nascimento: str = typer.Option(..., help="DD/MM/AAAA"),
    telefone: Optional[str] = typer.Option(None),
    db_path: str = DB_OPTION,
):
    """Cadastra um cliente."""
    with _tratando_erros():
        cli = ClienteService(db_path).criar({
            "nome": nome,
            "cpf": cpf,
            "email": email,
            "telefone": telefone,
            "data_nascimento": parse_data(nascimento, "data_nascimento"),
        })
    typer.echo(f">> Cliente {cli.id} criado: {cli.nome}")


@cliente_app.command("list")
def cmd_cliente_list(
    busca: Optional[str] = typer.Option(None, help="Trecho do nome ou do CPF"),
    db_path: str = DB_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Lista clientes."""
    svc = ClienteService(db_path)
    clientes = svc.buscar(busca) if busca else svc.listar()
    if as_json:
        _print_json(clientes)
        return
    _display_table([_cliente_row(c) for c in clientes], title="Clientes")


@cliente_app.command("remove")
def cmd_cliente_remove(id: int = typer.Argument(...), db_path: str = DB_OPTION):
    """Remove um cliente (vendas são preservadas sem o vínculo)."""
    with _tratando_erros():
        ClienteService(db_path).remover(id)
    typer.echo(f">> Cliente {id} removido")


# -----------------------
# comandos de movimentação
# -----------------------

estoque_app = typer.Typer(help="Livro de estoque.")
app.add_typer(estoque_app, name="estoque")


def _movimentar(db_path: str, tipo: str, medicamento_id: int, quantidade: int,
                observacao: Optional[str], responsavel: Optional[str]) -> None:
    with _tratando_erros():
        mov = EstoqueService(db_path).registrar_movimentacao(
            medicamento_id, tipo, quantidade, observacao=observacao, responsavel=responsavel
        )
    _display_table(_mov_row(mov), title=f"{'Entrada' if tipo == 'ENTRADA' else 'Saída'} Registrada")


@estoque_app.command("entrada")
def cmd_estoque_entrada(
    medicamento_id: int = typer.Argument(...),
    quantidade: int = typer.Argument(...),
    observacao: Optional[str] = typer.Option(None, "--obs"),
    responsavel: Optional[str] = typer.Option(None),
    db_path: str = DB_OPTION,
):
    """Registra uma ENTRADA."""
    _movimentar(db_path, "ENTRADA", medicamento_id, quantidade, observacao, responsavel)


@estoque_app.command("saida")
def cmd_estoque_saida(
    medicamento_id: int = typer.Argument(...),
    quantidade: int = typer.Argument(...),
    observacao: Optional[str] = typer.Option(None, "--obs"),
    responsavel: Optional[str] = typer.Option(None),
    db_path: str = DB_OPTION,
):
    """Registra uma SAÍDA."""
    _movimentar(db_path, "SAIDA", medicamento_id, quantidade, observacao, responsavel)


@estoque_app.command("historico")
def cmd_estoque_historico(
    medicamento: Optional[int] = typer.Option(None, help="Filtra por medicamento"),
    db_path: str = DB_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Mostra as movimentações, mais recentes primeiro."""
    with _tratando_erros():
        movs = EstoqueService(db_path).historico(medicamento)
    if as_json:
        _print_json(movs)
        return
    _display_table([_mov_row(m) for m in movs], title="Histórico de Movimentações")


@app.command("entrada-lotes")
def cmd_entrada_lotes(
    path: str = typer.Argument(..., help="Planilha (XLSX/CSV) de ENTRADAS"),
    db_path: str = DB_OPTION,
):
    """Registra entradas em lote a partir de uma planilha."""
    info = EstoqueService(db_path).run_entrada_lote(path)
    _display_table(info, title="Processamento de Entradas em Lote")


@app.command("saida-lotes")
def cmd_saida_lotes(
    path: str = typer.Argument(..., help="Planilha (XLSX/CSV) de SAÍDAS"),
    db_path: str = DB_OPTION,
):
    """Registra saídas em lote a partir de uma planilha."""
    info = EstoqueService(db_path).run_saida_lote(path)
    _display_table(info, title="Processamento de Saídas em Lote")


# -----------------------
# alertas / vendas / painel
# -----------------------

@app.command("alertas")
def cmd_alertas(
    limiar: Optional[int] = typer.Option(None, help="Limiar de estoque baixo"),
    janela: Optional[int] = typer.Option(None, help="Janela de validade (dias)"),
    db_path: str = DB_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Lista alertas de estoque baixo, validade próxima e vencidos."""
    alertas = AlertaService(db_path).listar_alertas(limiar_estoque=limiar, janela_dias=janela)
    if as_json:
        _print_json([
            {"medicamento_id": a.medicamento.id, "medicamento": a.medicamento.nome_exibicao,
             "tipo": a.tipo, "mensagem": a.mensagem, "valor": a.valor}
            for a in alertas
        ])
        return
    _display_table([_alerta_row(a) for a in alertas], title="Alertas")


@app.command("venda")
def cmd_venda(
    item: List[str] = typer.Option(..., "--item", help="ID:QTD (repetível)"),
    cliente: Optional[int] = typer.Option(None, help="Id do cliente"),
    db_path: str = DB_OPTION,
):
    """Registra uma venda com um ou mais itens."""
    with _tratando_erros():
        svc = VendaService(db_path)
        carrinho = svc.novo_carrinho()
        for txt in item:
            medicamento_id, quantidade = parse_item_venda(txt)
            svc.adicionar_item(carrinho, medicamento_id, quantidade)
        venda = svc.finalizar(carrinho, cliente_id=cliente)
    _show_venda(venda)


vendas_app = typer.Typer(help="Consulta de vendas.")
app.add_typer(vendas_app, name="vendas")


@vendas_app.command("list")
def cmd_vendas_list(
    cliente: Optional[int] = typer.Option(None, help="Filtra por cliente"),
    db_path: str = DB_OPTION,
    as_json: bool = JSON_OPTION,
):
    """Lista as vendas, mais recentes primeiro."""
    with _tratando_erros():
        svc = VendaService(db_path)
        vendas = svc.vendas_por_cliente(cliente) if cliente is not None else svc.listar_vendas()
    if as_json:
        _print_json(vendas)
        return
    _display_table([_venda_row(v) for v in vendas], title="Vendas")


@vendas_app.command("show")
def cmd_vendas_show(id: int = typer.Argument(...), db_path: str = DB_OPTION, as_json: bool = JSON_OPTION):
    """Mostra os itens de uma venda."""
    with _tratando_erros():
        venda = VendaService(db_path).obter_venda(id)
    if as_json:
        _print_json(venda)
        return
    _show_venda(venda)


@app.command("dashboard")
def cmd_dashboard(db_path: str = DB_OPTION, as_json: bool = JSON_OPTION):
    """Números do dia: medicamentos ativos, clientes, vendas e alertas."""
    stats = DashboardService(db_path).estatisticas()
    if as_json:
        _print_json(stats)
        return
    _display_table(asdict(stats), title="Painel")


def main():
    app()


if __name__ == "__main__":
    main()
