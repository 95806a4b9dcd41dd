# farmacia/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios convertem linhas do SQLite nestas dataclasses; o núcleo
  nunca trabalha com dicionários de formato variável.
- Registros de movimentação e de venda são imutáveis (frozen).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from farmacia.domain.policies import calcular_idade


class TipoMovimentacao(str, Enum):
    ENTRADA = "ENTRADA"
    SAIDA = "SAIDA"


class TipoAlerta(str, Enum):
    ESTOQUE_BAIXO = "ESTOQUE_BAIXO"
    VALIDADE_PROXIMA = "VALIDADE_PROXIMA"
    VENCIDO = "VENCIDO"


@dataclass
class Categoria:
    """Categoria de medicamento."""
    id: int
    nome: str
    descricao: Optional[str] = None


@dataclass
class Medicamento:
    """Item do catálogo; fonte da verdade para preço, estoque e validade."""
    id: int
    nome: str
    dosagem: str
    preco: Decimal
    estoque: int
    data_validade: date
    categoria: Categoria
    ativo: bool = True
    descricao: Optional[str] = None
    removido: bool = False

    @property
    def nome_exibicao(self) -> str:
        return f"{self.nome} {self.dosagem}".strip() if self.dosagem else self.nome


@dataclass
class Cliente:
    """Cadastro de cliente."""
    id: int
    nome: str
    cpf: str
    email: str
    data_nascimento: date
    telefone: Optional[str] = None

    @property
    def idade(self) -> int:
        return calcular_idade(self.data_nascimento)


@dataclass(frozen=True)
class MovimentacaoEstoque:
    """Lançamento do livro de estoque (append-only)."""
    id: int
    medicamento_id: int
    tipo: TipoMovimentacao
    quantidade: int
    quantidade_anterior: int
    quantidade_atual: int
    data_movimentacao: datetime
    observacao: Optional[str] = None
    responsavel: Optional[str] = None
    medicamento_nome: Optional[str] = None
    ativo: Optional[bool] = None   # status do medicamento após a movimentação


@dataclass(frozen=True)
class ItemVenda:
    """Linha da venda com nome e preço congelados no momento da venda."""
    medicamento_id: int
    nome_medicamento: str
    quantidade: int
    preco_unitario: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.preco_unitario * self.quantidade


@dataclass(frozen=True)
class Venda:
    id: int
    itens: Tuple[ItemVenda, ...]
    data_venda: datetime
    cliente: Optional[Cliente] = None

    @property
    def valor_total(self) -> Decimal:
        # sempre derivado dos itens
        return sum((i.subtotal for i in self.itens), Decimal("0.00"))


@dataclass(frozen=True)
class Alerta:
    """Alerta derivado do catálogo; nunca persistido."""
    medicamento: Medicamento
    tipo: TipoAlerta
    mensagem: str
    valor: int   # estoque restante (ESTOQUE_BAIXO) ou dias até a validade


@dataclass
class ItemCarrinho:
    medicamento_id: int
    nome_medicamento: str
    quantidade: int
    preco_unitario: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.preco_unitario * self.quantidade


@dataclass
class Carrinho:
    """Rascunho de venda em memória. Descartá-lo não altera nada no banco."""
    itens: List[ItemCarrinho] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.itens)

    def contem(self, medicamento_id: int) -> bool:
        return any(i.medicamento_id == medicamento_id for i in self.itens)

    @property
    def valor_total(self) -> Decimal:
        return sum((i.subtotal for i in self.itens), Decimal("0.00"))


@dataclass
class EstatisticasDashboard:
    medicamentos_ativos: int = 0
    clientes_cadastrados: int = 0
    vendas_hoje: int = 0
    alertas_ativos: int = 0
