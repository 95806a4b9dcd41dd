from datetime import date, timedelta

import pytest

from farmacia.domain.errors import NotFoundError, ValidationError


def test_criar_cliente(novo_cliente, clientes, eventos):
    cli = novo_cliente(nome="Maria Souza", telefone="(11) 98765-4321")
    assert clientes.obter(cli.id).nome == "Maria Souza"
    assert cli.telefone == "(11) 98765-4321"
    assert cli.idade >= 30
    assert eventos[-1][0] == "cliente_criado"


@pytest.mark.parametrize("campo,valor", [
    ("nome", ""),
    ("cpf", "12345678900"),
    ("cpf", "123.456.789-0"),
    ("email", "maria@"),
    ("email", "sem-arroba.com"),
    ("telefone", "11 9999-abcd"),
    ("data_nascimento", "1990-13-01"),
    ("data_nascimento", date.today() + timedelta(days=1)),
])
def test_criar_cliente_invalido(novo_cliente, clientes, campo, valor):
    with pytest.raises(ValidationError) as exc:
        novo_cliente(**{campo: valor})
    assert exc.value.campo == campo
    assert clientes.listar() == []


def test_cpf_unico(novo_cliente, clientes):
    a = novo_cliente(cpf="111.222.333-44")
    with pytest.raises(ValidationError) as exc:
        novo_cliente(cpf="111.222.333-44")
    assert exc.value.campo == "cpf"

    b = novo_cliente(cpf="555.666.777-88")
    with pytest.raises(ValidationError):
        clientes.atualizar(b.id, {"cpf": a.cpf})
    # o próprio CPF pode ser reenviado
    assert clientes.atualizar(a.id, {"cpf": a.cpf, "nome": "Ana"}).nome == "Ana"


def test_atualizar_rejeita_campo_desconhecido(novo_cliente, clientes):
    cli = novo_cliente()
    with pytest.raises(ValidationError):
        clientes.atualizar(cli.id, {"saldo": 10})
    with pytest.raises(NotFoundError):
        clientes.atualizar(999, {"nome": "X"})


def test_buscar(novo_cliente, clientes):
    novo_cliente(nome="Maria Souza", cpf="111.111.111-11")
    novo_cliente(nome="João Lima", cpf="222.222.222-22")

    assert [c.nome for c in clientes.buscar("maria")] == ["Maria Souza"]
    assert [c.nome for c in clientes.buscar("222.2")] == ["João Lima"]
    assert len(clientes.buscar("m")) == 2
    assert len(clientes.buscar("")) == 2
    assert clientes.buscar("zz") == []


def test_remover(novo_cliente, clientes, eventos):
    cli = novo_cliente()
    clientes.remover(cli.id)
    assert eventos[-1] == ("cliente_removido", {"id": cli.id})
    with pytest.raises(NotFoundError):
        clientes.obter(cli.id)
    with pytest.raises(NotFoundError):
        clientes.remover(cli.id)
