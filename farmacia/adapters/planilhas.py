# farmacia/adapters/planilhas.py
"""
Loader de planilhas (XLSX/CSV) de movimentações de estoque em lote.

A função pública:
- lê a planilha usando pandas (``read_excel`` ou ``read_csv`` conforme a extensão);
- normaliza cabeçalhos (acentos, variações, sinônimos);
- retorna uma lista de dicionários com as chaves esperadas pelo livro de estoque.

Observações:
- Todas as colunas são lidas como texto; a validação final fica com o
  livro de estoque, que reporta o erro por linha.
- Linhas totalmente vazias são descartadas.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from farmacia.adapters.parsers import parse_quantidade


def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def _safe_get(row, key) -> Optional[Any]:
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    val = str(val).strip()
    return val or None


def _to_id(val: Optional[str]) -> Optional[Any]:
    if val is None:
        return None
    try:
        f = float(val)
    except ValueError:
        return val
    return int(f) if f.is_integer() else val


_ALIASES = {
    "id": "medicamento_id",
    "codigo": "medicamento_id",
    "cod": "medicamento_id",
    "medicamento": "medicamento_id",
    "medicamento id": "medicamento_id",
    "id medicamento": "medicamento_id",

    "quantidade": "quantidade",
    "qtde": "quantidade",
    "qtd": "quantidade",

    "observacao": "observacao",
    "obs": "observacao",
    "motivo": "observacao",

    "responsavel": "responsavel",
    "usuario": "responsavel",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    return df.rename(columns={col: _ALIASES.get(_slug(col), _slug(col)) for col in df.columns})


def _read(path: str) -> pd.DataFrame:
    if Path(path).suffix.lower() == ".csv":
        return pd.read_csv(path, dtype="string")
    return pd.read_excel(path, dtype="string")


def load_movimentacoes(path: str) -> List[Dict[str, Any]]:
    """Lê uma planilha de movimentações e devolve uma linha por registro.

    Campos de saída (chaves do dict por linha):
      - medicamento_id: int | texto original | None
      - quantidade: int | texto original | None
      - observacao: str | None
      - responsavel: str | None
      - linha: número da linha na planilha (cabeçalho = 1)
    """
    df = _normalize_columns(_read(path))
    out: List[Dict[str, Any]] = []
    for pos, (_, row) in enumerate(df.iterrows()):
        rec = {
            "medicamento_id": _to_id(_safe_get(row, "medicamento_id")),
            "quantidade": parse_quantidade(_safe_get(row, "quantidade")),
            "observacao": _safe_get(row, "observacao"),
            "responsavel": _safe_get(row, "responsavel"),
        }
        if any(v is not None for v in rec.values()):
            # linha 1 da planilha é o cabeçalho
            rec["linha"] = pos + 2
            out.append(rec)
    return out
