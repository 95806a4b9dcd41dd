# farmacia/usecases/catalogo.py
"""
UC: Catálogo de medicamentos e categorias.

- CategoriaService: CRUD de categorias (remoção recusada se houver medicamentos).
- CatalogoService:  obter / listar / criar / atualizar / definir_status / remover.

Obs.:
- Remoção de medicamento é lógica (removido=1, ativo=0); vendas antigas
  continuam apontando para o registro.
- Mudança de estoque via `atualizar` vira um lançamento no livro de estoque
  (ENTRADA/SAÍDA da diferença), nunca uma escrita direta.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from farmacia.config import DB_PATH
from farmacia.domain.errors import NotFoundError, ValidationError
from farmacia.domain.models import Categoria, Medicamento, TipoMovimentacao
from farmacia.domain.policies import (
    arredonda_moeda,
    valida_booleano,
    valida_data,
    valida_quantidade,
    valida_texto,
)
from farmacia.infra.db import connect
from farmacia.infra.logger import (
    log_database_operation,
    log_movimentacao,
    log_transaction,
    notificar_auditoria,
    registrar_auditoria,
)
from farmacia.infra.repositories import CategoriaRepo, MedicamentoRepo
from farmacia.infra.views import init_db
from farmacia.usecases.movimentar_estoque import EstoqueService

FILTROS = ("ativos", "todos", "historico")

CAMPOS_EDITAVEIS = (
    "nome", "dosagem", "descricao", "preco", "estoque", "data_validade", "ativo", "categoria_id",
)


class CategoriaService:
    def __init__(self, db_path: str = DB_PATH, repo: Optional[CategoriaRepo] = None,
                 auditoria: Optional[Callable] = registrar_auditoria):
        if repo is None:
            init_db(db_path)
            repo = CategoriaRepo(db_path)
        self.repo = repo
        self.auditoria = auditoria

    def obter(self, id: int) -> Categoria:
        cat = self.repo.get(id)
        if cat is None:
            raise NotFoundError("Categoria", id)
        return cat

    def listar(self) -> List[Categoria]:
        return self.repo.list()

    def criar(self, nome: str, descricao: Optional[str] = None) -> Categoria:
        nome = valida_texto(nome, "nome")
        descricao = valida_texto(descricao, "descricao", obrigatorio=False)
        cat = self.repo.create(nome, descricao)
        log_database_operation("categoria", "INSERT", 1, id=cat.id)
        notificar_auditoria(self.auditoria, "categoria_criada", {"id": cat.id, "nome": cat.nome})
        return cat

    def atualizar(self, id: int, nome: Optional[str] = None, descricao: Optional[str] = None) -> Categoria:
        self.obter(id)
        campos: Dict[str, Any] = {}
        if nome is not None:
            campos["nome"] = valida_texto(nome, "nome")
        if descricao is not None:
            campos["descricao"] = valida_texto(descricao, "descricao", obrigatorio=False)
        self.repo.update(id, campos)
        notificar_auditoria(self.auditoria, "categoria_editada", {"id": id, **campos})
        return self.obter(id)

    def remover(self, id: int) -> None:
        self.obter(id)
        em_uso = self.repo.count_medicamentos(id)
        if em_uso:
            raise ValidationError(
                f"Categoria {id} possui {em_uso} medicamento(s) vinculado(s)", campo="categoria_id"
            )
        self.repo.delete(id)
        notificar_auditoria(self.auditoria, "categoria_removida", {"id": id})


class CatalogoService:
    """Catálogo de medicamentos: fonte da verdade de preço, estoque e validade."""

    def __init__(
        self,
        db_path: str = DB_PATH,
        repo: Optional[MedicamentoRepo] = None,
        categorias: Optional[CategoriaRepo] = None,
        estoque: Optional[EstoqueService] = None,
        auditoria: Optional[Callable] = registrar_auditoria,
    ):
        if repo is None or categorias is None:
            init_db(db_path)
        self.db_path = db_path
        self.repo = repo or MedicamentoRepo(db_path)
        self.categorias = categorias or CategoriaRepo(db_path)
        self.auditoria = auditoria
        self._estoque = estoque

    @property
    def estoque(self) -> EstoqueService:
        if self._estoque is None:
            self._estoque = EstoqueService(self.db_path, repo=self.repo, auditoria=self.auditoria)
        return self._estoque

    # ---------- leitura ----------

    def obter(self, id: int) -> Medicamento:
        med = self.repo.get(id)
        if med is None:
            raise NotFoundError("Medicamento", id)
        return med

    def listar(self, filtro: str = "ativos") -> List[Medicamento]:
        if filtro not in FILTROS:
            raise ValidationError(f"Filtro inválido: {filtro}. Use {', '.join(FILTROS)}", campo="filtro")
        return self.repo.list(filtro)

    # ---------- validação ----------

    def _validar(self, dados: Dict[str, Any], parcial: bool) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if not parcial or "nome" in dados:
            out["nome"] = valida_texto(dados.get("nome"), "nome")
        if not parcial or "dosagem" in dados:
            out["dosagem"] = valida_texto(dados.get("dosagem"), "dosagem", obrigatorio=False) or ""
        if "descricao" in dados:
            out["descricao"] = valida_texto(dados.get("descricao"), "descricao", obrigatorio=False)
        if not parcial or "preco" in dados:
            out["preco"] = arredonda_moeda(dados.get("preco"), campo="preco")
        if not parcial or "estoque" in dados:
            out["estoque"] = valida_quantidade(dados.get("estoque", 0), campo="estoque", minimo=0)
        if not parcial or "data_validade" in dados:
            out["data_validade"] = valida_data(dados.get("data_validade"), "data_validade")
        if "ativo" in dados:
            out["ativo"] = valida_booleano(dados["ativo"], "ativo")
        if not parcial or "categoria_id" in dados:
            cat_id = dados.get("categoria_id")
            if cat_id is None:
                raise ValidationError("Categoria é obrigatória", campo="categoria_id")
            if self.categorias.get(cat_id) is None:
                raise ValidationError(f"Categoria {cat_id} não existe", campo="categoria_id")
            out["categoria_id"] = cat_id
        return out

    # ---------- escrita ----------

    def criar(self, dados: Dict[str, Any]) -> Medicamento:
        try:
            campos = self._validar(dados, parcial=False)
            campos.setdefault("ativo", True)
            med = self.repo.create(campos)
        except Exception as e:
            log_transaction("medicamento_criar", {"nome": dados.get("nome")}, error=str(e))
            raise
        log_transaction("medicamento_criar", {"nome": med.nome}, result=med.id)
        notificar_auditoria(self.auditoria, "medicamento_criado", {
            "id": med.id, "nome": med.nome, "preco": med.preco, "estoque": med.estoque,
        })
        return med

    def atualizar(self, id: int, parcial: Dict[str, Any], responsavel: Optional[str] = None) -> Medicamento:
        """Edita campos e, se ``estoque`` vier, lança a diferença no livro.

        Tudo roda numa única transação BEGIN IMMEDIATE: se o lançamento
        falhar, nenhuma edição de campo é gravada.
        """
        self.obter(id)
        desconhecidos = set(parcial) - set(CAMPOS_EDITAVEIS)
        if desconhecidos:
            raise ValidationError(
                f"Campos não editáveis: {', '.join(sorted(desconhecidos))}",
                campo=sorted(desconhecidos)[0],
            )
        campos = self._validar(parcial, parcial=True)
        novo_estoque = campos.pop("estoque", None)
        estoque = self.estoque

        mov = None
        try:
            with connect(self.db_path, immediate=True) as conn:
                atual = self.repo.get(id, conn=conn)
                if atual is None:
                    raise NotFoundError("Medicamento", id)
                if atual.removido and campos.get("ativo"):
                    raise ValidationError(
                        f"Medicamento {id} foi removido e não pode ser reativado", campo="ativo"
                    )
                self.repo.update(id, campos, conn=conn)
                if novo_estoque is not None and novo_estoque != atual.estoque:
                    delta = novo_estoque - atual.estoque
                    tipo = TipoMovimentacao.ENTRADA if delta > 0 else TipoMovimentacao.SAIDA
                    mov = estoque.aplicar_movimentacao(
                        conn, id, tipo, abs(delta), observacao="Ajuste de cadastro", responsavel=responsavel
                    )
                med = self.repo.get(id, conn=conn)
        except Exception as e:
            log_transaction("medicamento_editar", {"id": id, "campos": sorted(parcial)}, error=str(e))
            raise

        log_database_operation("medicamento", "UPDATE", 1, id=id, campos=list(campos))
        log_transaction("medicamento_editar", {"id": id, "campos": sorted(parcial)}, result=id)
        if mov is not None:
            log_movimentacao(
                mov.tipo.value, mov.medicamento_id, mov.quantidade,
                antes=mov.quantidade_anterior, depois=mov.quantidade_atual,
            )
            estoque.notificar(mov)
        notificar_auditoria(self.auditoria, "medicamento_editado", {"id": id, **campos})
        if "ativo" in campos and campos["ativo"] != atual.ativo:
            notificar_auditoria(self.auditoria, "medicamento_status", {"id": id, "ativo": med.ativo})
        return med

    def definir_status(self, id: int, ativo: bool) -> Medicamento:
        atual = self.obter(id)
        if atual.removido and ativo:
            raise ValidationError(f"Medicamento {id} foi removido e não pode ser reativado", campo="ativo")
        self.repo.update(id, {"ativo": bool(ativo)})
        notificar_auditoria(self.auditoria, "medicamento_status", {"id": id, "ativo": bool(ativo)})
        return self.obter(id)

    def remover(self, id: int) -> Medicamento:
        self.obter(id)
        self.repo.update(id, {"ativo": False, "removido": True})
        notificar_auditoria(self.auditoria, "medicamento_removido", {"id": id})
        return self.obter(id)
