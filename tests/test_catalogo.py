from datetime import date, timedelta
from decimal import Decimal

import pytest

from farmacia.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from farmacia.domain.models import TipoMovimentacao
from farmacia.usecases.catalogo import CategoriaService


def test_criar_medicamento_arredonda_preco(novo_medicamento, categoria):
    med = novo_medicamento(preco="10,555")
    assert med.id is not None
    assert med.preco == Decimal("10.56")
    assert med.categoria.nome == categoria.nome
    assert med.ativo and not med.removido
    assert med.nome_exibicao == "Dipirona 500mg"


@pytest.mark.parametrize("campo,valor", [
    ("nome", "   "),
    ("preco", "-1"),
    ("preco", "dez"),
    ("estoque", -1),
    ("estoque", 2.5),
    ("data_validade", "2027-02-30"),
    ("categoria_id", None),
    ("categoria_id", 999),
])
def test_criar_medicamento_invalido_nomeia_o_campo(novo_medicamento, catalogo, campo, valor):
    with pytest.raises(ValidationError) as exc:
        novo_medicamento(**{campo: valor})
    assert exc.value.campo == campo
    assert catalogo.listar("historico") == []


def test_obter_inexistente(catalogo):
    with pytest.raises(NotFoundError):
        catalogo.obter(42)


def test_atualizar_estoque_vira_movimentacao(novo_medicamento, catalogo):
    med = novo_medicamento(estoque=10)

    atualizado = catalogo.atualizar(med.id, {"estoque": 15, "preco": "12.00"}, responsavel="ana")
    assert atualizado.estoque == 15
    assert atualizado.preco == Decimal("12.00")

    atualizado = catalogo.atualizar(med.id, {"estoque": 12})
    assert atualizado.estoque == 12

    hist = catalogo.estoque.historico(med.id)
    assert [(m.tipo, m.quantidade) for m in hist] == [
        (TipoMovimentacao.SAIDA, 3),
        (TipoMovimentacao.ENTRADA, 5),
    ]
    assert all(m.observacao == "Ajuste de cadastro" for m in hist)
    assert hist[1].responsavel == "ana"
    assert (hist[1].quantidade_anterior, hist[1].quantidade_atual) == (10, 15)


def test_atualizar_sem_mudar_estoque_nao_gera_movimentacao(novo_medicamento, catalogo):
    med = novo_medicamento(estoque=10)
    catalogo.atualizar(med.id, {"estoque": 10, "nome": "Novalgina"})
    assert catalogo.obter(med.id).nome == "Novalgina"
    assert catalogo.estoque.historico(med.id) == []


def test_atualizar_rejeita_campo_desconhecido(novo_medicamento, catalogo):
    med = novo_medicamento()
    with pytest.raises(ValidationError) as exc:
        catalogo.atualizar(med.id, {"codigo_barras": "789"})
    assert exc.value.campo == "codigo_barras"


def test_atualizar_valida_parcial(novo_medicamento, catalogo):
    med = novo_medicamento()
    with pytest.raises(ValidationError) as exc:
        catalogo.atualizar(med.id, {"nome": ""})
    assert exc.value.campo == "nome"
    assert catalogo.obter(med.id).nome == "Dipirona"


def test_filtros_de_listagem(novo_medicamento, catalogo):
    ativo = novo_medicamento(nome="A")
    inativo = novo_medicamento(nome="B")
    removido = novo_medicamento(nome="C")
    catalogo.definir_status(inativo.id, False)
    catalogo.remover(removido.id)

    assert [m.id for m in catalogo.listar("ativos")] == [ativo.id]
    assert [m.id for m in catalogo.listar("todos")] == [ativo.id, inativo.id]
    assert [m.id for m in catalogo.listar("historico")] == [ativo.id, inativo.id, removido.id]

    # removido continua legível para o histórico
    r = catalogo.obter(removido.id)
    assert r.removido and not r.ativo

    with pytest.raises(ValidationError):
        catalogo.listar("qualquer")


def test_removido_nao_pode_ser_reativado(novo_medicamento, catalogo):
    med = novo_medicamento()
    catalogo.remover(med.id)
    with pytest.raises(ValidationError):
        catalogo.definir_status(med.id, True)


def test_removido_nao_volta_a_ativo_pela_edicao(novo_medicamento, catalogo):
    med = novo_medicamento()
    catalogo.remover(med.id)
    with pytest.raises(ValidationError) as exc:
        catalogo.atualizar(med.id, {"ativo": True, "nome": "Outro"})
    assert exc.value.campo == "ativo"
    r = catalogo.obter(med.id)
    assert r.removido and not r.ativo
    assert r.nome == "Dipirona"


def test_atualizar_ativo_aceita_texto(novo_medicamento, catalogo):
    med = novo_medicamento()
    assert catalogo.atualizar(med.id, {"ativo": "false"}).ativo is False
    assert catalogo.atualizar(med.id, {"ativo": "1"}).ativo is True
    with pytest.raises(ValidationError) as exc:
        catalogo.atualizar(med.id, {"ativo": "talvez"})
    assert exc.value.campo == "ativo"


def test_atualizar_removido_com_estoque_nao_grava_nada(novo_medicamento, catalogo):
    med = novo_medicamento(estoque=10)
    catalogo.remover(med.id)
    with pytest.raises(ValidationError):
        catalogo.atualizar(med.id, {"nome": "Renomeado", "estoque": 5})
    r = catalogo.obter(med.id)
    assert (r.nome, r.estoque) == ("Dipirona", 10)
    assert catalogo.estoque.historico(med.id) == []


def test_falha_no_lancamento_desfaz_edicao(novo_medicamento, catalogo, monkeypatch, eventos):
    med = novo_medicamento(estoque=10)

    def sem_estoque(conn, medicamento_id, tipo, quantidade, **kw):
        raise InsufficientStockError(medicamento_id, "Dipirona 500mg", 0, quantidade)

    monkeypatch.setattr(catalogo.estoque, "aplicar_movimentacao", sem_estoque)
    with pytest.raises(InsufficientStockError):
        catalogo.atualizar(med.id, {"preco": "99.00", "estoque": 4})

    r = catalogo.obter(med.id)
    assert (r.preco, r.estoque) == (Decimal("10.00"), 10)
    assert [e for e, _ in eventos] == ["medicamento_criado"]


def test_eventos_de_auditoria(novo_medicamento, catalogo, eventos):
    med = novo_medicamento()
    catalogo.atualizar(med.id, {"ativo": False})
    catalogo.remover(med.id)
    nomes = [e for e, _ in eventos]
    assert nomes == [
        "medicamento_criado",
        "medicamento_editado",
        "medicamento_status",
        "medicamento_removido",
    ]


def test_falha_na_auditoria_nao_derruba_o_cadastro(db_path, categoria):
    from farmacia.usecases.catalogo import CatalogoService

    def quebrada(evento, dados):
        raise RuntimeError("auditoria fora do ar")

    svc = CatalogoService(db_path, auditoria=quebrada)
    med = svc.criar({
        "nome": "Paracetamol", "preco": "5", "estoque": 1,
        "data_validade": date.today() + timedelta(days=30), "categoria_id": categoria.id,
    })
    assert svc.obter(med.id).nome == "Paracetamol"


def test_categorias(db_path, novo_medicamento):
    svc = CategoriaService(db_path, auditoria=None)
    vazia = svc.criar("Vitaminas")
    svc.atualizar(vazia.id, nome="Suplementos")
    assert svc.obter(vazia.id).nome == "Suplementos"
    assert [c.nome for c in svc.listar()] == ["Analgésicos", "Suplementos"]

    med = novo_medicamento()
    with pytest.raises(ValidationError):
        svc.remover(med.categoria.id)

    svc.remover(vazia.id)
    with pytest.raises(NotFoundError):
        svc.obter(vazia.id)

    with pytest.raises(ValidationError):
        svc.criar("")
