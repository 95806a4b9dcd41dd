from datetime import date, timedelta
from itertools import count

import pytest

from farmacia.infra.views import init_db
from farmacia.usecases.catalogo import CatalogoService, CategoriaService
from farmacia.usecases.clientes import ClienteService
from farmacia.usecases.movimentar_estoque import EstoqueService
from farmacia.usecases.vendas import VendaService


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "farmacia_test.sqlite")
    init_db(path)
    return path


@pytest.fixture
def eventos():
    """Eventos de auditoria recebidos, na ordem de emissão."""
    return []


@pytest.fixture
def auditoria(eventos):
    def _registrar(evento, dados):
        eventos.append((evento, dados))
    return _registrar


@pytest.fixture
def categoria(db_path):
    return CategoriaService(db_path, auditoria=None).criar("Analgésicos", "Dor e febre")


@pytest.fixture
def catalogo(db_path, auditoria):
    return CatalogoService(db_path, auditoria=auditoria)


@pytest.fixture
def estoque(db_path, auditoria):
    return EstoqueService(db_path, auditoria=auditoria)


@pytest.fixture
def vendas(db_path, auditoria):
    return VendaService(db_path, auditoria=auditoria)


@pytest.fixture
def clientes(db_path, auditoria):
    return ClienteService(db_path, auditoria=auditoria)


@pytest.fixture
def novo_medicamento(catalogo, categoria):
    def _criar(**campos):
        dados = {
            "nome": "Dipirona",
            "dosagem": "500mg",
            "preco": "10.00",
            "estoque": 10,
            "data_validade": date.today() + timedelta(days=365),
            "categoria_id": categoria.id,
        }
        dados.update(campos)
        return catalogo.criar(dados)
    return _criar


@pytest.fixture
def novo_cliente(clientes):
    seq = count(1)

    def _criar(**campos):
        n = next(seq)
        dados = {
            "nome": f"Cliente {n}",
            "cpf": f"{n:03d}.456.789-00",
            "email": f"cliente{n}@exemplo.com",
            "data_nascimento": date(1990, 5, 20),
        }
        dados.update(campos)
        return clientes.criar(dados)
    return _criar
