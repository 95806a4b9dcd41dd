# farmacia/domain/errors.py
"""
Taxonomia de erros do núcleo.

Todos os erros carregam atributos estruturados (id da entidade, campo,
quantidades) para que a interface monte mensagens específicas, além de uma
mensagem pronta em português.
"""

from __future__ import annotations

from typing import Any, Optional


class FarmaciaError(Exception):
    """Erro base de regras de negócio."""

    def to_dict(self) -> dict:
        data = {k: v for k, v in vars(self).items() if not k.startswith("_")}
        data["erro"] = type(self).__name__
        data["mensagem"] = str(self)
        return data


class ValidationError(FarmaciaError):
    """Entrada malformada ou fora da faixa permitida."""

    def __init__(self, mensagem: str, campo: Optional[str] = None):
        super().__init__(mensagem)
        self.campo = campo


class NotFoundError(FarmaciaError):
    """Entidade referenciada não existe."""

    def __init__(self, entidade: str, id: Any):
        super().__init__(f"{entidade} {id} não encontrado(a)")
        self.entidade = entidade
        self.id = id


class InsufficientStockError(FarmaciaError):
    """Saída solicitada maior que o estoque disponível."""

    def __init__(self, medicamento_id: int, nome: str, disponivel: int, solicitado: int):
        super().__init__(
            f"Estoque insuficiente para {nome} (id {medicamento_id}). "
            f"Disponível: {disponivel} unidades, solicitado: {solicitado}"
        )
        self.medicamento_id = medicamento_id
        self.nome = nome
        self.disponivel = disponivel
        self.solicitado = solicitado


class DuplicateLineError(FarmaciaError):
    """Medicamento já presente no carrinho."""

    def __init__(self, medicamento_id: int):
        super().__init__(
            f"Medicamento {medicamento_id} já está no carrinho; altere a quantidade do item"
        )
        self.medicamento_id = medicamento_id


class ClientUnderageError(FarmaciaError):
    """Cliente menor de idade informado na venda."""

    def __init__(self, cliente_id: int, idade: int):
        super().__init__(
            f"Cliente {cliente_id} tem {idade} anos; é preciso ter 18 anos ou mais para comprar"
        )
        self.cliente_id = cliente_id
        self.idade = idade


class EmptyCartError(FarmaciaError):
    """Tentativa de finalizar venda sem itens."""

    def __init__(self):
        super().__init__("Adicione pelo menos um medicamento à venda")
