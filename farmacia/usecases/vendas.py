# farmacia/usecases/vendas.py
"""
UC: Composição e finalização de vendas.

- novo_carrinho(): rascunho em memória.
- adicionar_item() / remover_item() / alterar_quantidade(): edição do rascunho.
- finalizar(): valida tudo, depois baixa o estoque de cada linha e grava a venda.
- obter_venda() / listar_vendas() / vendas_por_cliente(): consultas.

Obs.:
- Nenhuma escrita acontece se alguma validação falhar.
- As SAÍDAS passam pelo livro de estoque (`EstoqueService.aplicar_movimentacao`)
  na mesma transação que grava a venda; uma falha desfaz tudo.
- Nome e preço de cada linha são congelados no momento da finalização.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, List, Optional

from farmacia.config import DB_PATH
from farmacia.domain.errors import (
    ClientUnderageError,
    DuplicateLineError,
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from farmacia.domain.models import Carrinho, ItemCarrinho, ItemVenda, TipoMovimentacao, Venda
from farmacia.domain.policies import calcular_idade, motivo_nao_vendavel, pode_comprar, valida_quantidade
from farmacia.infra.db import connect
from farmacia.infra.logger import log_transaction, log_venda, notificar_auditoria, registrar_auditoria
from farmacia.infra.repositories import ClienteRepo, MedicamentoRepo, VendaRepo
from farmacia.infra.views import init_db
from farmacia.usecases.movimentar_estoque import EstoqueService


class VendaService:
    def __init__(
        self,
        db_path: str = DB_PATH,
        repo: Optional[VendaRepo] = None,
        medicamentos: Optional[MedicamentoRepo] = None,
        clientes: Optional[ClienteRepo] = None,
        estoque: Optional[EstoqueService] = None,
        auditoria: Optional[Callable] = registrar_auditoria,
    ):
        if repo is None or medicamentos is None or clientes is None:
            init_db(db_path)
        self.db_path = db_path
        self.repo = repo or VendaRepo(db_path)
        self.medicamentos = medicamentos or MedicamentoRepo(db_path)
        self.clientes = clientes or ClienteRepo(db_path)
        self.estoque = estoque or EstoqueService(db_path, repo=self.medicamentos, auditoria=auditoria)
        self.auditoria = auditoria

    # ---------- carrinho ----------

    def novo_carrinho(self) -> Carrinho:
        return Carrinho()

    def adicionar_item(self, carrinho: Carrinho, medicamento_id: int, quantidade: Any = 1,
                       hoje: Optional[date] = None) -> ItemCarrinho:
        """Adiciona uma linha ao carrinho com nome e preço atuais (prévia).

        Raises:
            NotFoundError: medicamento inexistente.
            DuplicateLineError: medicamento já está no carrinho.
            ValidationError: quantidade < 1, ou medicamento removido,
                inativo, sem estoque ou vencido.
        """
        qtd = valida_quantidade(quantidade)
        med = self.medicamentos.get(medicamento_id)
        if med is None:
            raise NotFoundError("Medicamento", medicamento_id)
        if carrinho.contem(med.id):
            raise DuplicateLineError(med.id)
        motivo = motivo_nao_vendavel(med, hoje)
        if motivo:
            raise ValidationError(motivo, campo="medicamento_id")
        item = ItemCarrinho(
            medicamento_id=med.id,
            nome_medicamento=med.nome_exibicao,
            quantidade=qtd,
            preco_unitario=med.preco,
        )
        carrinho.itens.append(item)
        log_venda("item_adicionado", medicamento_id=med.id, quantidade=qtd)
        return item

    def _indice(self, carrinho: Carrinho, indice: int) -> int:
        if not isinstance(indice, int) or isinstance(indice, bool) or not 0 <= indice < len(carrinho):
            raise ValidationError(f"Item {indice} não existe no carrinho", campo="indice")
        return indice

    def remover_item(self, carrinho: Carrinho, indice: int) -> ItemCarrinho:
        return carrinho.itens.pop(self._indice(carrinho, indice))

    def alterar_quantidade(self, carrinho: Carrinho, indice: int, quantidade: Any) -> ItemCarrinho:
        item = carrinho.itens[self._indice(carrinho, indice)]
        item.quantidade = valida_quantidade(quantidade)
        return item

    # ---------- finalização ----------

    def _validar(self, carrinho: Carrinho, cliente_id: Optional[int], hoje: date) -> None:
        if not len(carrinho):
            raise EmptyCartError()
        if cliente_id is not None:
            cliente = self.clientes.get(cliente_id)
            if cliente is None:
                raise NotFoundError("Cliente", cliente_id)
            idade = calcular_idade(cliente.data_nascimento, hoje)
            if not pode_comprar(idade):
                raise ClientUnderageError(cliente.id, idade)
        for item in carrinho.itens:
            med = self.medicamentos.get(item.medicamento_id)
            if med is None:
                raise NotFoundError("Medicamento", item.medicamento_id)
            motivo = motivo_nao_vendavel(med, hoje, checar_estoque=False)
            if motivo:
                raise ValidationError(motivo, campo="medicamento_id")
            if med.estoque < item.quantidade:
                raise InsufficientStockError(med.id, med.nome_exibicao, med.estoque, item.quantidade)

    def finalizar(self, carrinho: Carrinho, cliente_id: Optional[int] = None,
                  hoje: Optional[date] = None) -> Venda:
        """Valida o carrinho inteiro e só então grava a venda.

        Args:
            carrinho: Rascunho com ao menos uma linha.
            cliente_id: Cliente opcional; precisa ter 18 anos ou mais.
            hoje: Data de referência para idade e validade.

        Returns:
            A venda persistida, com itens na ordem do carrinho.
        """
        hoje = hoje or date.today()
        dados = {
            "cliente_id": cliente_id,
            "itens": [(i.medicamento_id, i.quantidade) for i in carrinho.itens],
        }
        try:
            self._validar(carrinho, cliente_id, hoje)
            with connect(self.db_path, immediate=True) as conn:
                # o cliente pode ter sido removido depois da validação
                if cliente_id is not None and self.clientes.get(cliente_id, conn=conn) is None:
                    raise NotFoundError("Cliente", cliente_id)
                itens: List[ItemVenda] = []
                movimentacoes = []
                for item in carrinho.itens:
                    mov = self.estoque.aplicar_movimentacao(
                        conn, item.medicamento_id, TipoMovimentacao.SAIDA, item.quantidade,
                        observacao="Saída por venda",
                    )
                    movimentacoes.append(mov)
                    med = self.medicamentos.get(item.medicamento_id, conn=conn)
                    itens.append(ItemVenda(
                        medicamento_id=med.id,
                        nome_medicamento=med.nome_exibicao,
                        quantidade=item.quantidade,
                        preco_unitario=med.preco,
                    ))
                venda_id = self.repo.insert(conn, cliente_id, datetime.now(), itens)
                venda = self.repo.get(venda_id, conn=conn)
        except Exception as e:
            log_transaction("venda", dados, error=str(e))
            raise

        log_venda("finalizada", venda.id, total=str(venda.valor_total), itens=len(venda.itens))
        log_transaction("venda", dados, result=venda.id)
        for mov in movimentacoes:
            self.estoque.notificar(mov)
        notificar_auditoria(self.auditoria, "venda_criada", {
            "id": venda.id,
            "cliente_id": cliente_id,
            "valor_total": venda.valor_total,
            "itens": [
                {"medicamento_id": i.medicamento_id, "quantidade": i.quantidade,
                 "preco_unitario": i.preco_unitario}
                for i in venda.itens
            ],
        })
        return venda

    # ---------- consultas ----------

    def obter_venda(self, id: int) -> Venda:
        venda = self.repo.get(id)
        if venda is None:
            raise NotFoundError("Venda", id)
        return venda

    def listar_vendas(self) -> List[Venda]:
        return self.repo.list()

    def vendas_por_cliente(self, cliente_id: int) -> List[Venda]:
        if self.clientes.get(cliente_id) is None:
            raise NotFoundError("Cliente", cliente_id)
        return self.repo.list(cliente_id)
