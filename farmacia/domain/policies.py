"""
Políticas de negócio e utilidades puras do núcleo da farmácia.

Este módulo concentra as regras que antes ficavam espalhadas pelas telas:
idade e elegibilidade do cliente, dias até a validade, condição de venda de
um medicamento e arredondamento monetário. As funções não acessam o banco;
são usadas pelos casos de uso de catálogo, estoque, alertas e vendas.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from farmacia.config import DEFAULTS
from farmacia.domain.errors import ValidationError

CENTAVOS = Decimal("0.01")

CPF_RE = re.compile(r"^\d{3}\.\d{3}\.\d{3}-\d{2}$")
EMAIL_RE = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
TELEFONE_RE = re.compile(r"^[\d\s()\-]+$")


def calcular_idade(data_nascimento: date, em: Optional[date] = None) -> int:
    """Calcula a idade em anos completos.

    Subtrai os anos e desconta um quando o aniversário ainda não ocorreu
    no ano de referência (comparação mês/dia).

    Args:
        data_nascimento: Data de nascimento.
        em: Data de referência; ``date.today()`` quando omitida.

    Returns:
        Idade em anos inteiros.
    """
    ref = em or date.today()
    ainda_nao_fez = (ref.month, ref.day) < (data_nascimento.month, data_nascimento.day)
    return ref.year - data_nascimento.year - int(ainda_nao_fez)


def pode_comprar(idade: int) -> bool:
    return idade >= DEFAULTS.idade_minima


def dias_ate(alvo: date, hoje: Optional[date] = None) -> int:
    """Dias de calendário entre ``hoje`` e ``alvo`` (negativo se já passou)."""
    return (alvo - (hoje or date.today())).days


def motivo_nao_vendavel(medicamento, hoje: Optional[date] = None, checar_estoque: bool = True) -> Optional[str]:
    """Verifica se um medicamento pode entrar em uma venda.

    Regras (na ordem):
        - removido ou inativo → não vendável
        - estoque ``<= 0``    → não vendável
        - validade anterior a hoje → não vendável

    Com ``checar_estoque=False`` a regra de estoque é ignorada; a venda
    compara o estoque com a quantidade pedida à parte.

    Returns:
        ``None`` se o medicamento pode ser vendido; caso contrário, a
        mensagem explicando o motivo.
    """
    if medicamento.removido:
        return f"{medicamento.nome} foi removido do catálogo"
    if not medicamento.ativo:
        return f"{medicamento.nome} está inativo"
    if checar_estoque and medicamento.estoque <= 0:
        return f"{medicamento.nome} está sem estoque"
    if dias_ate(medicamento.data_validade, hoje) < 0:
        return f"{medicamento.nome} está vencido desde {medicamento.data_validade.strftime('%d/%m/%Y')}"
    return None


def arredonda_moeda(valor: Any, campo: str = "preco") -> Decimal:
    """Converte ``valor`` para Decimal com duas casas (ROUND_HALF_UP).

    Aceita Decimal, int, str (``"10.50"`` ou ``"10,50"``). Floats passam
    por ``str`` para evitar a representação binária.

    Raises:
        ValidationError: valor ausente, não numérico ou negativo.
    """
    if valor is None or isinstance(valor, bool):
        raise ValidationError("Preço é obrigatório", campo=campo)
    try:
        if isinstance(valor, Decimal):
            d = valor
        elif isinstance(valor, float):
            d = Decimal(str(valor))
        else:
            d = Decimal(str(valor).strip().replace(",", "."))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Valor inválido: {valor!r}", campo=campo)
    if not d.is_finite():
        raise ValidationError(f"Valor inválido: {valor!r}", campo=campo)
    if d < 0:
        raise ValidationError("Preço não pode ser negativo", campo=campo)
    return d.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def valida_quantidade(valor: Any, campo: str = "quantidade", minimo: int = 1) -> int:
    """Garante um inteiro ``>= minimo`` (bool não é aceito)."""
    if isinstance(valor, bool):
        raise ValidationError("Quantidade deve ser um número inteiro", campo=campo)
    if isinstance(valor, float) and not valor.is_integer():
        raise ValidationError("Quantidade deve ser um número inteiro", campo=campo)
    try:
        q = int(valor)
    except (TypeError, ValueError):
        raise ValidationError("Quantidade deve ser um número inteiro", campo=campo)
    if q < minimo:
        if minimo == 0:
            raise ValidationError("Quantidade não pode ser negativa", campo=campo)
        raise ValidationError(f"Quantidade deve ser maior ou igual a {minimo}", campo=campo)
    return q


def valida_data(valor: Any, campo: str) -> date:
    """Aceita ``date``/``datetime`` ou string ISO (YYYY-MM-DD ou YYYY-MM-DDTHH:MM[:SS])."""
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    if isinstance(valor, str) and valor.strip():
        s = valor.strip()
        try:
            if "T" in s:
                return datetime.fromisoformat(s).date()
            return date.fromisoformat(s)
        except ValueError:
            pass
    raise ValidationError(f"Data inválida: {valor!r}", campo=campo)


_VERDADEIROS = {"1", "true", "sim", "s", "yes", "y"}
_FALSOS = {"0", "false", "nao", "não", "n", "no"}


def valida_booleano(valor: Any, campo: str) -> bool:
    if isinstance(valor, bool):
        return valor
    if isinstance(valor, int) and valor in (0, 1):
        return bool(valor)
    if isinstance(valor, str):
        s = valor.strip().lower()
        if s in _VERDADEIROS:
            return True
        if s in _FALSOS:
            return False
    raise ValidationError(f"Valor booleano inválido: {valor!r}", campo=campo)


def valida_texto(valor: Any, campo: str, obrigatorio: bool = True) -> Optional[str]:
    s = str(valor).strip() if valor is not None else ""
    if not s:
        if obrigatorio:
            raise ValidationError(f"Campo '{campo}' é obrigatório", campo=campo)
        return None
    return s


def valida_observacao(valor: Any) -> Optional[str]:
    s = valida_texto(valor, "observacao", obrigatorio=False)
    if s is not None and len(s) > DEFAULTS.max_observacao:
        raise ValidationError(
            f"Observação excede {DEFAULTS.max_observacao} caracteres", campo="observacao"
        )
    return s
