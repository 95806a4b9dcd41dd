from datetime import date, timedelta

import pytest

from farmacia.domain.models import TipoAlerta
from farmacia.infra.repositories import ParamsRepo
from farmacia.usecases.alertas import AlertaService

HOJE = date.today()


@pytest.fixture
def alertas(db_path):
    return AlertaService(db_path)


def _tipos(lista):
    return [(a.medicamento.nome, a.tipo) for a in lista]


def test_catalogo_vazio_nao_tem_alertas(alertas):
    assert alertas.listar_alertas(hoje=HOJE) == []


def test_estoque_baixo_limites(novo_medicamento, alertas):
    novo_medicamento(nome="Zero", estoque=0)
    novo_medicamento(nome="Cinco", estoque=5)
    novo_medicamento(nome="Dez", estoque=10)
    novo_medicamento(nome="Onze", estoque=11)

    res = alertas.listar_alertas(limiar_estoque=10, janela_dias=30, hoje=HOJE)

    assert _tipos(res) == [("Cinco", TipoAlerta.ESTOQUE_BAIXO), ("Dez", TipoAlerta.ESTOQUE_BAIXO)]
    assert res[0].mensagem == "Estoque baixo: apenas 5 unidades restantes."
    assert res[0].valor == 5


def test_validade_proxima_e_vencido(novo_medicamento, alertas):
    novo_medicamento(nome="A-Hoje", data_validade=HOJE, estoque=50)
    novo_medicamento(nome="B-Dez", data_validade=HOJE + timedelta(days=10), estoque=50)
    novo_medicamento(nome="C-Trinta", data_validade=HOJE + timedelta(days=30), estoque=50)
    novo_medicamento(nome="D-TrintaUm", data_validade=HOJE + timedelta(days=31), estoque=50)
    novo_medicamento(nome="E-Vencido", data_validade=HOJE - timedelta(days=3), estoque=50)

    res = alertas.listar_alertas(limiar_estoque=10, janela_dias=30, hoje=HOJE)

    assert _tipos(res) == [
        ("A-Hoje", TipoAlerta.VALIDADE_PROXIMA),
        ("B-Dez", TipoAlerta.VALIDADE_PROXIMA),
        ("C-Trinta", TipoAlerta.VALIDADE_PROXIMA),
        ("E-Vencido", TipoAlerta.VENCIDO),
    ]
    assert res[0].mensagem == "Validade próxima: vence hoje."
    assert res[1].mensagem == "Validade próxima: vence em 10 dias."
    assert res[3].mensagem == "Vencido há 3 dias."
    assert res[3].valor == -3


def test_mesmo_medicamento_gera_dois_alertas_estoque_primeiro(novo_medicamento, alertas):
    novo_medicamento(estoque=2, data_validade=HOJE + timedelta(days=5))
    res = alertas.listar_alertas(hoje=HOJE)
    assert [a.tipo for a in res] == [TipoAlerta.ESTOQUE_BAIXO, TipoAlerta.VALIDADE_PROXIMA]


def test_inativos_e_removidos_ficam_de_fora(novo_medicamento, catalogo, alertas):
    inativo = novo_medicamento(nome="Inativo", estoque=1)
    removido = novo_medicamento(nome="Removido", estoque=1)
    catalogo.definir_status(inativo.id, False)
    catalogo.remover(removido.id)
    assert alertas.listar_alertas(hoje=HOJE) == []


def test_alertas_sao_idempotentes_e_seguem_o_catalogo(novo_medicamento, estoque, alertas):
    med = novo_medicamento(estoque=3)
    primeira = alertas.listar_alertas(hoje=HOJE)
    assert primeira == alertas.listar_alertas(hoje=HOJE)

    estoque.registrar_entrada(med.id, 100)
    assert alertas.listar_alertas(hoje=HOJE) == []


def test_limiares_vem_dos_params(db_path, novo_medicamento, alertas):
    novo_medicamento(estoque=5, data_validade=HOJE + timedelta(days=20))
    assert len(alertas.listar_alertas(hoje=HOJE)) == 2

    ParamsRepo(db_path).set_many([("limiar_estoque_baixo", "3"), ("janela_validade_dias", "15")])
    assert alertas.listar_alertas(hoje=HOJE) == []
    assert alertas.limiares() == (3, 15)
    # argumento explícito vence o parâmetro salvo
    assert len(alertas.listar_alertas(limiar_estoque=5, hoje=HOJE)) == 1


def test_atalhos_por_tipo(novo_medicamento, alertas):
    baixo = novo_medicamento(nome="Baixo", estoque=1)
    vence = novo_medicamento(nome="Vence", estoque=50, data_validade=HOJE + timedelta(days=2))
    assert [m.id for m in alertas.estoque_baixo()] == [baixo.id]
    assert [m.id for m in alertas.validade_proxima(hoje=HOJE)] == [vence.id]
