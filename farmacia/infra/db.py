# farmacia/infra/db.py
"""
Utilidades de conexão SQLite.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from farmacia.config import DEFAULTS


@contextmanager
def connect(db_path: str, immediate: bool = False) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - commit ao sair (rollback em caso de exceção)

    Com ``immediate=True`` a transação começa com BEGIN IMMEDIATE, ou seja,
    o lock de escrita é obtido antes da primeira leitura. É o modo usado nas
    operações de leitura-modificação-escrita do estoque.
    """
    conn = sqlite3.connect(str(db_path), timeout=DEFAULTS.timeout_db)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
