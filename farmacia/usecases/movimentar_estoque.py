# farmacia/usecases/movimentar_estoque.py
"""
UC: Livro de estoque (ENTRADAS e SAÍDAS).

- registrar_movimentacao(): única porta de alteração de estoque.
- registrar_entrada() / registrar_saida(): atalhos.
- historico(): lançamentos mais recentes primeiro.
- run_entrada_lote(path) / run_saida_lote(path): lê planilha e aplica linha a linha.

Obs.:
- A leitura do estoque atual, a checagem de não-negatividade, o UPDATE
  (compare-and-set) e o INSERT do lançamento acontecem na mesma transação
  BEGIN IMMEDIATE.
- Vendas reutilizam `aplicar_movimentacao` dentro da própria transação.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from farmacia.config import DB_PATH
from farmacia.adapters.planilhas import load_movimentacoes
from farmacia.domain.errors import (
    FarmaciaError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from farmacia.domain.models import MovimentacaoEstoque, TipoMovimentacao
from farmacia.domain.policies import valida_observacao, valida_quantidade, valida_texto
from farmacia.infra.db import connect
from farmacia.infra.logger import (
    log_database_operation,
    log_file_operation,
    log_movimentacao,
    log_system_event,
    log_transaction,
    notificar_auditoria,
    registrar_auditoria,
)
from farmacia.infra.repositories import MedicamentoRepo, MovimentacaoRepo
from farmacia.infra.views import init_db


def _tipo(tipo: Union[str, TipoMovimentacao]) -> TipoMovimentacao:
    try:
        return TipoMovimentacao(str(getattr(tipo, "value", tipo)).strip().upper())
    except ValueError:
        raise ValidationError(f"Tipo de movimentação inválido: {tipo!r}", campo="tipo")


class EstoqueService:
    """Autoridade única sobre `medicamento.estoque`."""

    def __init__(
        self,
        db_path: str = DB_PATH,
        repo: Optional[MedicamentoRepo] = None,
        movimentacoes: Optional[MovimentacaoRepo] = None,
        auditoria: Optional[Callable] = registrar_auditoria,
    ):
        if repo is None or movimentacoes is None:
            init_db(db_path)
        self.db_path = db_path
        self.repo = repo or MedicamentoRepo(db_path)
        self.movimentacoes = movimentacoes or MovimentacaoRepo(db_path)
        self.auditoria = auditoria

    def aplicar_movimentacao(
        self,
        conn: sqlite3.Connection,
        medicamento_id: int,
        tipo: Union[str, TipoMovimentacao],
        quantidade: Any,
        observacao: Optional[str] = None,
        responsavel: Optional[str] = None,
    ) -> MovimentacaoEstoque:
        """Aplica um lançamento dentro da transação ``conn`` do chamador.

        A conexão deve ter sido aberta com ``connect(..., immediate=True)``
        para que a leitura do estoque e a escrita ocorram sob o mesmo lock.

        Raises:
            ValidationError: quantidade não positiva, tipo inválido,
                observação longa demais ou medicamento removido.
            NotFoundError: medicamento inexistente.
            InsufficientStockError: a saída deixaria o estoque negativo.
        """
        tipo = _tipo(tipo)
        qtd = valida_quantidade(quantidade)
        observacao = valida_observacao(observacao)
        responsavel = valida_texto(responsavel, "responsavel", obrigatorio=False)

        med = self.repo.get(medicamento_id, conn=conn)
        if med is None:
            raise NotFoundError("Medicamento", medicamento_id)
        if med.removido:
            raise ValidationError(
                f"Medicamento {medicamento_id} foi removido do catálogo", campo="medicamento_id"
            )

        antes = med.estoque
        depois = antes + qtd if tipo is TipoMovimentacao.ENTRADA else antes - qtd
        if depois < 0:
            raise InsufficientStockError(med.id, med.nome_exibicao, antes, qtd)

        if not self.repo.compare_and_set_estoque(conn, med.id, antes, depois):
            # estoque mudou entre a leitura e a escrita: relê para reportar o valor real
            atual = self.repo.get(med.id, conn=conn)
            raise InsufficientStockError(med.id, med.nome_exibicao, atual.estoque, qtd)

        agora = datetime.now()
        mov_id = self.movimentacoes.insert(conn, {
            "medicamento_id": med.id,
            "tipo": tipo.value,
            "quantidade": qtd,
            "quantidade_anterior": antes,
            "quantidade_atual": depois,
            "data_movimentacao": agora.isoformat(timespec="seconds"),
            "observacao": observacao,
            "responsavel": responsavel,
        })
        log_database_operation("movimentacao_estoque", "INSERT", 1, medicamento_id=med.id)

        return MovimentacaoEstoque(
            id=mov_id,
            medicamento_id=med.id,
            medicamento_nome=med.nome_exibicao,
            tipo=tipo,
            quantidade=qtd,
            quantidade_anterior=antes,
            quantidade_atual=depois,
            data_movimentacao=agora.replace(microsecond=0),
            observacao=observacao,
            responsavel=responsavel,
            ativo=med.ativo,
        )

    def registrar_movimentacao(
        self,
        medicamento_id: int,
        tipo: Union[str, TipoMovimentacao],
        quantidade: Any,
        observacao: Optional[str] = None,
        responsavel: Optional[str] = None,
    ) -> MovimentacaoEstoque:
        """Registra uma ENTRADA ou SAÍDA e devolve o lançamento criado."""
        dados = {"medicamento_id": medicamento_id, "tipo": str(getattr(tipo, "value", tipo)), "quantidade": quantidade}
        try:
            with connect(self.db_path, immediate=True) as conn:
                mov = self.aplicar_movimentacao(
                    conn, medicamento_id, tipo, quantidade, observacao, responsavel
                )
        except Exception as e:
            log_transaction("movimentacao", dados, error=str(e))
            raise

        log_movimentacao(
            mov.tipo.value, mov.medicamento_id, mov.quantidade,
            antes=mov.quantidade_anterior, depois=mov.quantidade_atual,
        )
        log_transaction("movimentacao", dados, result=mov.id)
        self.notificar(mov)
        return mov

    def notificar(self, mov: MovimentacaoEstoque) -> None:
        evento = "estoque_entrada" if mov.tipo is TipoMovimentacao.ENTRADA else "estoque_saida"
        notificar_auditoria(self.auditoria, evento, {
            "movimentacao_id": mov.id,
            "medicamento_id": mov.medicamento_id,
            "quantidade": mov.quantidade,
            "quantidade_anterior": mov.quantidade_anterior,
            "quantidade_atual": mov.quantidade_atual,
            "observacao": mov.observacao,
        })

    def registrar_entrada(self, medicamento_id: int, quantidade: Any, observacao: Optional[str] = None,
                          responsavel: Optional[str] = None) -> MovimentacaoEstoque:
        return self.registrar_movimentacao(
            medicamento_id, TipoMovimentacao.ENTRADA, quantidade, observacao, responsavel
        )

    def registrar_saida(self, medicamento_id: int, quantidade: Any, observacao: Optional[str] = None,
                        responsavel: Optional[str] = None) -> MovimentacaoEstoque:
        return self.registrar_movimentacao(
            medicamento_id, TipoMovimentacao.SAIDA, quantidade, observacao, responsavel
        )

    def historico(self, medicamento_id: Optional[int] = None) -> List[MovimentacaoEstoque]:
        if medicamento_id is not None and self.repo.get(medicamento_id) is None:
            raise NotFoundError("Medicamento", medicamento_id)
        return self.movimentacoes.list(medicamento_id)

    # ---------- lote (planilha) ----------

    def _run_lote(self, path: str, tipo: TipoMovimentacao) -> Dict[str, Any]:
        operacao = f"{tipo.value.lower()}_lote"
        log_system_event(f"{operacao}_start", {"file_path": path})
        rows = load_movimentacoes(path)
        log_file_operation("import", path, rows_processed=len(rows))

        sucessos = 0
        erros: List[Dict[str, Any]] = []
        for row in rows:
            try:
                if row.get("medicamento_id") is None:
                    raise ValidationError("Medicamento não informado", campo="medicamento_id")
                self.registrar_movimentacao(
                    row["medicamento_id"], tipo, row.get("quantidade"),
                    observacao=row.get("observacao"), responsavel=row.get("responsavel"),
                )
                sucessos += 1
            except FarmaciaError as e:
                erros.append({"linha": row["linha"], "mensagem": str(e)})

        result = {"tipo": tipo.value.title(), "arquivo": path, "total": len(rows),
                  "sucessos": sucessos, "erros": erros}
        log_transaction(operacao, {"file": path, "rows_count": len(rows)}, result=result)
        log_system_event(f"{operacao}_success", {"file_path": path, "sucessos": sucessos, "erros": len(erros)})
        return result

    def run_entrada_lote(self, path: str) -> Dict[str, Any]:
        """Lê uma planilha de ENTRADAS e aplica cada linha de forma independente."""
        return self._run_lote(path, TipoMovimentacao.ENTRADA)

    def run_saida_lote(self, path: str) -> Dict[str, Any]:
        """Lê uma planilha de SAÍDAS e aplica cada linha de forma independente."""
        return self._run_lote(path, TipoMovimentacao.SAIDA)
