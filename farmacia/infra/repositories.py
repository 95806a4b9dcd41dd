# farmacia/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- ParamsRepo
- CategoriaRepo
- MedicamentoRepo
- ClienteRepo
- MovimentacaoRepo
- VendaRepo

Cada repositório converte as linhas em dataclasses do domínio; é a única
camada que conhece o formato das tabelas. Métodos que participam de uma
transação maior aceitam ``conn`` opcional; sem ela, abrem a própria conexão.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .db import connect
from farmacia.domain.models import (
    Categoria,
    Cliente,
    ItemVenda,
    Medicamento,
    MovimentacaoEstoque,
    TipoMovimentacao,
    Venda,
)


# -------------------------
# Helpers
# -------------------------

@contextmanager
def _using(db_path: str, conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
    if conn is not None:
        yield conn
    else:
        with connect(db_path) as c:
            yield c


def _iso(v: Any) -> Any:
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, bool):
        return int(v)
    return v


def _set_clause(campos: Dict[str, Any], permitidos: Sequence[str]) -> Tuple[str, Dict[str, Any]]:
    desconhecidos = set(campos) - set(permitidos)
    if desconhecidos:
        raise KeyError(f"colunas não permitidas: {sorted(desconhecidos)}")
    sets = ", ".join(f"{k} = :{k}" for k in campos)
    return sets, {k: _iso(v) for k, v in campos.items()}


def _ts(s: str) -> datetime:
    return datetime.fromisoformat(s)


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_int(self, key: str, default: int) -> int:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return int(float(v))
        except ValueError:
            return default


# -------------------------
# Categoria
# -------------------------

def _row_to_categoria(r) -> Categoria:
    return Categoria(id=r["id"], nome=r["nome"], descricao=r["descricao"])


class CategoriaRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get(self, id: int) -> Optional[Categoria]:
        with connect(self.db_path) as c:
            r = c.execute("SELECT id, nome, descricao FROM categoria WHERE id = ?", (id,)).fetchone()
            return _row_to_categoria(r) if r else None

    def list(self) -> List[Categoria]:
        with connect(self.db_path) as c:
            cur = c.execute("SELECT id, nome, descricao FROM categoria ORDER BY nome")
            return [_row_to_categoria(r) for r in cur.fetchall()]

    def create(self, nome: str, descricao: Optional[str]) -> Categoria:
        with connect(self.db_path) as c:
            cur = c.execute(
                "INSERT INTO categoria (nome, descricao) VALUES (?, ?)", (nome, descricao)
            )
            return Categoria(id=cur.lastrowid, nome=nome, descricao=descricao)

    def update(self, id: int, campos: Dict[str, Any]) -> None:
        if not campos:
            return
        sets, params = _set_clause(campos, ("nome", "descricao"))
        with connect(self.db_path) as c:
            c.execute(f"UPDATE categoria SET {sets} WHERE id = :_id", {**params, "_id": id})

    def delete(self, id: int) -> None:
        with connect(self.db_path) as c:
            c.execute("DELETE FROM categoria WHERE id = ?", (id,))

    def count_medicamentos(self, id: int) -> int:
        with connect(self.db_path) as c:
            return c.execute(
                "SELECT COUNT(*) FROM medicamento WHERE categoria_id = ?", (id,)
            ).fetchone()[0]


# -------------------------
# Medicamento
# -------------------------

_MEDICAMENTO_COLS = (
    "nome", "dosagem", "descricao", "preco", "estoque",
    "data_validade", "ativo", "categoria_id", "removido",
)

_FILTROS = {
    "ativos": "WHERE ativo = 1 AND removido = 0",
    "todos": "WHERE removido = 0",
    "historico": "",
}


def _row_to_medicamento(r) -> Medicamento:
    return Medicamento(
        id=r["id"],
        nome=r["nome"],
        dosagem=r["dosagem"] or "",
        descricao=r["descricao"],
        preco=Decimal(r["preco"]),
        estoque=int(r["estoque"]),
        data_validade=date.fromisoformat(r["data_validade"]),
        ativo=bool(r["ativo"]),
        removido=bool(r["removido"]),
        categoria=Categoria(
            id=r["categoria_id"],
            nome=r["categoria_nome"],
            descricao=r["categoria_descricao"],
        ),
    )


class MedicamentoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get(self, id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[Medicamento]:
        with _using(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM vw_medicamentos WHERE id = ?", (id,)).fetchone()
            return _row_to_medicamento(r) if r else None

    def list(self, filtro: str = "todos") -> List[Medicamento]:
        if filtro not in _FILTROS:
            raise ValueError(f"filtro desconhecido: {filtro}")
        with connect(self.db_path) as c:
            cur = c.execute(f"SELECT * FROM vw_medicamentos {_FILTROS[filtro]} ORDER BY nome, id")
            return [_row_to_medicamento(r) for r in cur.fetchall()]

    def create(self, campos: Dict[str, Any]) -> Medicamento:
        _, params = _set_clause(campos, _MEDICAMENTO_COLS)
        cols = ",".join(params.keys())
        vals = ",".join(f":{k}" for k in params.keys())
        with connect(self.db_path) as c:
            cur = c.execute(f"INSERT INTO medicamento ({cols}) VALUES ({vals})", params)
            return self.get(cur.lastrowid, conn=c)

    def update(self, id: int, campos: Dict[str, Any], conn: Optional[sqlite3.Connection] = None) -> None:
        if "estoque" in campos:
            raise KeyError("estoque só muda pelo livro de movimentações")
        if not campos:
            return
        sets, params = _set_clause(campos, _MEDICAMENTO_COLS)
        with _using(self.db_path, conn) as c:
            c.execute(f"UPDATE medicamento SET {sets} WHERE id = :_id", {**params, "_id": id})

    def compare_and_set_estoque(self, conn: sqlite3.Connection, id: int, antes: int, depois: int) -> bool:
        """Atualiza o estoque somente se ainda valer ``antes`` (CAS)."""
        cur = conn.execute(
            "UPDATE medicamento SET estoque = ? WHERE id = ? AND estoque = ? AND ? >= 0",
            (depois, id, antes, depois),
        )
        return cur.rowcount == 1


# -------------------------
# Cliente
# -------------------------

_CLIENTE_COLS = ("nome", "cpf", "email", "telefone", "data_nascimento")


def _row_to_cliente(r, prefix: str = "") -> Cliente:
    return Cliente(
        id=r[f"{prefix}id"],
        nome=r[f"{prefix}nome"],
        cpf=r[f"{prefix}cpf"],
        email=r[f"{prefix}email"],
        telefone=r[f"{prefix}telefone"],
        data_nascimento=date.fromisoformat(r[f"{prefix}data_nascimento"]),
    )


class ClienteRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get(self, id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[Cliente]:
        with _using(self.db_path, conn) as c:
            r = c.execute("SELECT * FROM cliente WHERE id = ?", (id,)).fetchone()
            return _row_to_cliente(r) if r else None

    def get_by_cpf(self, cpf: str) -> Optional[Cliente]:
        with connect(self.db_path) as c:
            r = c.execute("SELECT * FROM cliente WHERE cpf = ?", (cpf,)).fetchone()
            return _row_to_cliente(r) if r else None

    def list(self) -> List[Cliente]:
        with connect(self.db_path) as c:
            return [_row_to_cliente(r) for r in c.execute("SELECT * FROM cliente ORDER BY nome, id")]

    def count(self) -> int:
        with connect(self.db_path) as c:
            return c.execute("SELECT COUNT(*) FROM cliente").fetchone()[0]

    def create(self, campos: Dict[str, Any]) -> Cliente:
        _, params = _set_clause(campos, _CLIENTE_COLS)
        cols = ",".join(params.keys())
        vals = ",".join(f":{k}" for k in params.keys())
        with connect(self.db_path) as c:
            cur = c.execute(f"INSERT INTO cliente ({cols}) VALUES ({vals})", params)
            new_id = cur.lastrowid
        return self.get(new_id)

    def update(self, id: int, campos: Dict[str, Any]) -> None:
        if not campos:
            return
        sets, params = _set_clause(campos, _CLIENTE_COLS)
        with connect(self.db_path) as c:
            c.execute(f"UPDATE cliente SET {sets} WHERE id = :_id", {**params, "_id": id})

    def delete(self, id: int) -> None:
        with connect(self.db_path) as c:
            c.execute("DELETE FROM cliente WHERE id = ?", (id,))


# -------------------------
# Movimentações de estoque
# -------------------------

def _row_to_movimentacao(r) -> MovimentacaoEstoque:
    return MovimentacaoEstoque(
        id=r["id"],
        medicamento_id=r["medicamento_id"],
        medicamento_nome=r["medicamento_nome"],
        tipo=TipoMovimentacao(r["tipo"]),
        quantidade=r["quantidade"],
        quantidade_anterior=r["quantidade_anterior"],
        quantidade_atual=r["quantidade_atual"],
        data_movimentacao=_ts(r["data_movimentacao"]),
        observacao=r["observacao"],
        responsavel=r["responsavel"],
        ativo=bool(r["ativo"]),
    )


class MovimentacaoRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, conn: sqlite3.Connection, row: Dict[str, Any]) -> int:
        """Acrescenta um lançamento; sempre dentro da transação do chamador."""
        cur = conn.execute(
            """
            INSERT INTO movimentacao_estoque
                (medicamento_id, tipo, quantidade, quantidade_anterior,
                 quantidade_atual, data_movimentacao, observacao, responsavel)
            VALUES
                (:medicamento_id, :tipo, :quantidade, :quantidade_anterior,
                 :quantidade_atual, :data_movimentacao, :observacao, :responsavel)
            """,
            {k: _iso(v) for k, v in row.items()},
        )
        return cur.lastrowid

    def list(self, medicamento_id: Optional[int] = None) -> List[MovimentacaoEstoque]:
        sql = "SELECT * FROM vw_movimentacoes_detalhe"
        args: Tuple = ()
        if medicamento_id is not None:
            sql += " WHERE medicamento_id = ?"
            args = (medicamento_id,)
        sql += " ORDER BY data_movimentacao DESC, id DESC"
        with connect(self.db_path) as c:
            return [_row_to_movimentacao(r) for r in c.execute(sql, args).fetchall()]


# -------------------------
# Vendas
# -------------------------

class VendaRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(
        self,
        conn: sqlite3.Connection,
        cliente_id: Optional[int],
        data_venda: datetime,
        itens: Sequence[ItemVenda],
    ) -> int:
        cur = conn.execute(
            "INSERT INTO venda (cliente_id, data_venda) VALUES (?, ?)",
            (cliente_id, data_venda.isoformat(timespec="seconds")),
        )
        venda_id = cur.lastrowid
        conn.executemany(
            """
            INSERT INTO item_venda
                (venda_id, posicao, medicamento_id, nome_medicamento, quantidade, preco_unitario)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (venda_id, pos, i.medicamento_id, i.nome_medicamento, i.quantidade, str(i.preco_unitario))
                for pos, i in enumerate(itens)
            ],
        )
        return venda_id

    def _load(self, c: sqlite3.Connection, rows) -> List[Venda]:
        vendas: List[Venda] = []
        for r in rows:
            itens = tuple(
                ItemVenda(
                    medicamento_id=i["medicamento_id"],
                    nome_medicamento=i["nome_medicamento"],
                    quantidade=i["quantidade"],
                    preco_unitario=Decimal(i["preco_unitario"]),
                )
                for i in c.execute(
                    "SELECT * FROM item_venda WHERE venda_id = ? ORDER BY posicao", (r["id"],)
                )
            )
            cliente = _row_to_cliente(r, prefix="c_") if r["c_id"] is not None else None
            vendas.append(Venda(id=r["id"], itens=itens, data_venda=_ts(r["data_venda"]), cliente=cliente))
        return vendas

    _SELECT = """
        SELECT v.id, v.data_venda,
               c.id AS c_id, c.nome AS c_nome, c.cpf AS c_cpf, c.email AS c_email,
               c.telefone AS c_telefone, c.data_nascimento AS c_data_nascimento
        FROM venda v
        LEFT JOIN cliente c ON c.id = v.cliente_id
    """

    def get(self, id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[Venda]:
        with _using(self.db_path, conn) as c:
            rows = c.execute(self._SELECT + " WHERE v.id = ?", (id,)).fetchall()
            found = self._load(c, rows)
            return found[0] if found else None

    def list(self, cliente_id: Optional[int] = None) -> List[Venda]:
        sql = self._SELECT
        args: Tuple = ()
        if cliente_id is not None:
            sql += " WHERE v.cliente_id = ?"
            args = (cliente_id,)
        sql += " ORDER BY v.data_venda DESC, v.id DESC"
        with connect(self.db_path) as c:
            return self._load(c, c.execute(sql, args).fetchall())

    def count_do_dia(self, dia: date) -> int:
        with connect(self.db_path) as c:
            return c.execute(
                "SELECT COUNT(*) FROM venda WHERE date(data_venda) = date(?)", (dia.isoformat(),)
            ).fetchone()[0]
