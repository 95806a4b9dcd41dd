# farmacia/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (params, catálogo, clientes, movimentações, vendas)
V2: remoção lógica de medicamentos e responsável nas movimentações
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Parâmetros K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Categorias de medicamentos
    """
    CREATE TABLE IF NOT EXISTS categoria (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        descricao TEXT
    );
    """,
    # Catálogo de medicamentos (preço em TEXT para preservar o Decimal)
    """
    CREATE TABLE IF NOT EXISTS medicamento (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        dosagem TEXT NOT NULL DEFAULT '',
        descricao TEXT,
        preco TEXT NOT NULL,
        estoque INTEGER NOT NULL DEFAULT 0 CHECK (estoque >= 0),
        data_validade TEXT NOT NULL,
        ativo INTEGER NOT NULL DEFAULT 1,
        categoria_id INTEGER NOT NULL,
        FOREIGN KEY (categoria_id) REFERENCES categoria(id)
    );
    """,
    # Clientes
    """
    CREATE TABLE IF NOT EXISTS cliente (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        nome TEXT NOT NULL,
        cpf TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL,
        telefone TEXT,
        data_nascimento TEXT NOT NULL
    );
    """,
    # Livro de movimentações (append-only)
    """
    CREATE TABLE IF NOT EXISTS movimentacao_estoque (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        medicamento_id INTEGER NOT NULL,
        tipo TEXT NOT NULL CHECK (tipo IN ('ENTRADA', 'SAIDA')),
        quantidade INTEGER NOT NULL CHECK (quantidade > 0),
        quantidade_anterior INTEGER NOT NULL,
        quantidade_atual INTEGER NOT NULL CHECK (quantidade_atual >= 0),
        data_movimentacao TEXT NOT NULL,
        observacao TEXT,
        FOREIGN KEY (medicamento_id) REFERENCES medicamento(id)
    );
    """,
    # Vendas (o total é sempre derivado de item_venda)
    """
    CREATE TABLE IF NOT EXISTS venda (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        cliente_id INTEGER,
        data_venda TEXT NOT NULL,
        FOREIGN KEY (cliente_id) REFERENCES cliente(id) ON DELETE SET NULL
    );
    """,
    # Itens de venda (snapshot de nome e preço)
    """
    CREATE TABLE IF NOT EXISTS item_venda (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        venda_id INTEGER NOT NULL,
        posicao INTEGER NOT NULL,
        medicamento_id INTEGER NOT NULL,
        nome_medicamento TEXT NOT NULL,
        quantidade INTEGER NOT NULL CHECK (quantidade > 0),
        preco_unitario TEXT NOT NULL,
        FOREIGN KEY (venda_id) REFERENCES venda(id) ON DELETE CASCADE,
        FOREIGN KEY (medicamento_id) REFERENCES medicamento(id)
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    _ensure_column(conn, "medicamento", "removido", "removido INTEGER NOT NULL DEFAULT 0")
    _ensure_column(conn, "movimentacao_estoque", "responsavel", "responsavel TEXT")


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
