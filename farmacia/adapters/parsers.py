"""
Utilidades de parsing para valores digitados pelo usuário ou lidos de planilhas.

Este módulo interpreta os formatos tipicamente encontrados no balcão e nas
planilhas de movimentação: preços com vírgula decimal ("10,50"), datas no
padrão brasileiro (DD/MM/AAAA) ou ISO, quantidades com unidade
("5 UN - Unidade") e itens de venda no formato "ID:QTD". As funções
retornam tipos do domínio ou levantam ``ValidationError`` com o campo.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Tuple

from farmacia.domain.errors import ValidationError
from farmacia.domain.policies import arredonda_moeda

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
_ITEM_RE = re.compile(r"^\s*(\d+)\s*(?::\s*(\S+)\s*)?$")

_FORMATOS_DATA = ("%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y", "%d/%m/%y")


def parse_decimal(txt: Any, campo: str = "preco") -> Decimal:
    """Interpreta um valor monetário.

    Exemplos:
        "10,50"    → Decimal("10.50")
        "R$ 3.2"   → Decimal("3.20")
        "1.234,56" → Decimal("1234.56")

    Raises:
        ValidationError: texto vazio, não numérico ou negativo.
    """
    if isinstance(txt, (Decimal, int, float)) and not isinstance(txt, bool):
        return arredonda_moeda(txt, campo=campo)
    s = str(txt or "").strip().upper().replace("R$", "").strip()
    if not s:
        raise ValidationError("Preço é obrigatório", campo=campo)
    # "1.234,56": ponto como milhar quando há vírgula decimal
    if "," in s and "." in s:
        s = s.replace(".", "")
    return arredonda_moeda(s, campo=campo)


def parse_data(txt: Any, campo: str = "data") -> date:
    """Interpreta uma data em DD/MM/AAAA, AAAA-MM-DD, DD-MM-AAAA ou DD/MM/AA."""
    if isinstance(txt, datetime):
        return txt.date()
    if isinstance(txt, date):
        return txt
    s = str(txt or "").strip()
    for fmt in _FORMATOS_DATA:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    raise ValidationError(f"Data inválida: {txt!r}. Use DD/MM/AAAA", campo=campo)


def parse_quantidade(txt: Any) -> Optional[Any]:
    """Extrai a quantidade inteira de textos como "5", "5,0" ou "5 UN - Unidade".

    Valores fracionários ou sem número são devolvidos como estavam, para
    que a validação do livro de estoque gere a mensagem adequada.
    """
    if txt is None:
        return None
    if isinstance(txt, int) and not isinstance(txt, bool):
        return txt
    s = str(txt).strip()
    if not s:
        return None
    head = s.split("-", 1)[0].strip()
    parts = head.split()
    if not parts:
        return s
    m = _NUM_RE.fullmatch(parts[0])
    if not m:
        return s
    num = float(m.group(0).replace(",", "."))
    return int(num) if num.is_integer() else s


def parse_item_venda(txt: str) -> Tuple[int, int]:
    """Interpreta um item de venda "ID:QTD" (quantidade padrão 1).

    Exemplos:
        "3:2" → (3, 2)
        "7"   → (7, 1)
    """
    m = _ITEM_RE.match(str(txt or ""))
    if not m:
        raise ValidationError(f"Item inválido: {txt!r}. Use ID:QTD", campo="item")
    qtd = m.group(2) or "1"
    if not qtd.isdigit():
        raise ValidationError(f"Quantidade inválida no item {txt!r}", campo="quantidade")
    return int(m.group(1)), int(qtd)
