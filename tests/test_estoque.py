import threading

import pandas as pd
import pytest

from farmacia.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from farmacia.domain.models import TipoMovimentacao
from farmacia.infra.repositories import MedicamentoRepo, MovimentacaoRepo
from farmacia.usecases.movimentar_estoque import EstoqueService


def test_entrada_registra_antes_e_depois(novo_medicamento, estoque, catalogo):
    med = novo_medicamento(estoque=10)
    mov = estoque.registrar_entrada(med.id, 5, observacao="  NF 123  ", responsavel="ana")

    assert mov.tipo is TipoMovimentacao.ENTRADA
    assert (mov.quantidade_anterior, mov.quantidade_atual) == (10, 15)
    assert mov.observacao == "NF 123"
    assert mov.medicamento_nome == "Dipirona 500mg"
    assert mov.ativo is True
    assert catalogo.obter(med.id).estoque == 15


def test_saida_ate_zero_e_permitida(novo_medicamento, estoque, catalogo):
    med = novo_medicamento(estoque=4)
    mov = estoque.registrar_saida(med.id, 4)
    assert mov.quantidade_atual == 0
    assert catalogo.obter(med.id).estoque == 0


def test_saida_maior_que_estoque_nao_altera_nada(novo_medicamento, estoque, catalogo):
    med = novo_medicamento(estoque=3)
    with pytest.raises(InsufficientStockError) as exc:
        estoque.registrar_saida(med.id, 5)
    assert exc.value.disponivel == 3
    assert exc.value.solicitado == 5
    assert exc.value.medicamento_id == med.id
    assert catalogo.obter(med.id).estoque == 3
    assert estoque.historico(med.id) == []


@pytest.mark.parametrize("quantidade", [0, -1, 1.5, "dois"])
def test_quantidade_invalida(novo_medicamento, estoque, quantidade):
    med = novo_medicamento()
    with pytest.raises(ValidationError) as exc:
        estoque.registrar_entrada(med.id, quantidade)
    assert exc.value.campo == "quantidade"


def test_tipo_invalido(novo_medicamento, estoque):
    med = novo_medicamento()
    with pytest.raises(ValidationError):
        estoque.registrar_movimentacao(med.id, "AJUSTE", 1)


def test_tipo_aceita_texto(novo_medicamento, estoque):
    med = novo_medicamento(estoque=2)
    assert estoque.registrar_movimentacao(med.id, "saida", 1).quantidade_atual == 1


def test_observacao_longa(novo_medicamento, estoque):
    med = novo_medicamento()
    with pytest.raises(ValidationError):
        estoque.registrar_entrada(med.id, 1, observacao="x" * 501)


def test_medicamento_inexistente(estoque):
    with pytest.raises(NotFoundError):
        estoque.registrar_entrada(999, 1)
    with pytest.raises(NotFoundError):
        estoque.historico(999)


def test_inativo_aceita_movimentacao_removido_nao(novo_medicamento, estoque, catalogo):
    inativo = novo_medicamento(nome="A")
    removido = novo_medicamento(nome="B")
    catalogo.definir_status(inativo.id, False)
    catalogo.remover(removido.id)

    mov = estoque.registrar_entrada(inativo.id, 1)
    assert mov.ativo is False

    with pytest.raises(ValidationError):
        estoque.registrar_entrada(removido.id, 1)


def test_entrada_e_saida_se_anulam(novo_medicamento, estoque, catalogo):
    med = novo_medicamento(estoque=7)
    estoque.registrar_entrada(med.id, 13)
    estoque.registrar_saida(med.id, 13)
    assert catalogo.obter(med.id).estoque == 7


def test_historico_mais_recente_primeiro(novo_medicamento, estoque):
    a = novo_medicamento(nome="A")
    b = novo_medicamento(nome="B")
    m1 = estoque.registrar_entrada(a.id, 1)
    m2 = estoque.registrar_entrada(b.id, 2)
    m3 = estoque.registrar_saida(a.id, 1)

    assert [m.id for m in estoque.historico()] == [m3.id, m2.id, m1.id]
    assert [m.id for m in estoque.historico(a.id)] == [m3.id, m1.id]


def test_auditoria_por_movimentacao(novo_medicamento, estoque, eventos):
    med = novo_medicamento()
    eventos.clear()
    estoque.registrar_entrada(med.id, 2)
    estoque.registrar_saida(med.id, 1)
    assert [e for e, _ in eventos] == ["estoque_entrada", "estoque_saida"]
    assert eventos[1][1]["quantidade_atual"] == 11


def test_falha_na_auditoria_nao_desfaz_movimentacao(db_path, novo_medicamento, catalogo):
    def quebrada(evento, dados):
        raise RuntimeError("sem disco")

    med = novo_medicamento(estoque=1)
    svc = EstoqueService(db_path, auditoria=quebrada)
    svc.registrar_entrada(med.id, 4)
    assert catalogo.obter(med.id).estoque == 5


def test_saidas_concorrentes_nunca_negativam(db_path, novo_medicamento, catalogo):
    med = novo_medicamento(estoque=5)
    resultados = []
    lock = threading.Lock()

    def vender():
        svc = EstoqueService(
            db_path, repo=MedicamentoRepo(db_path), movimentacoes=MovimentacaoRepo(db_path), auditoria=None
        )
        try:
            svc.registrar_saida(med.id, 1)
            ok = True
        except InsufficientStockError:
            ok = False
        with lock:
            resultados.append(ok)

    threads = [threading.Thread(target=vender) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert resultados.count(True) == 5
    assert catalogo.obter(med.id).estoque == 0
    assert len(catalogo.estoque.historico(med.id)) == 5


# ---------- lote ----------

def test_entrada_em_lote_reporta_erros_por_linha(tmp_path, novo_medicamento, estoque, catalogo):
    med = novo_medicamento(estoque=0)
    path = tmp_path / "entradas.xlsx"
    pd.DataFrame({
        "Código": [med.id, 999, med.id, med.id],
        "Quantidade": ["5", "1", "abc", "2 UN - Unidade"],
        "Observação": ["NF 1", None, None, "NF 2"],
        "Responsável": ["ana", None, None, None],
    }).to_excel(path, index=False)

    res = estoque.run_entrada_lote(str(path))

    assert res["total"] == 4
    assert res["sucessos"] == 2
    assert [e["linha"] for e in res["erros"]] == [3, 4]
    assert "999" in res["erros"][0]["mensagem"]
    assert catalogo.obter(med.id).estoque == 7

    hist = estoque.historico(med.id)
    assert {m.observacao for m in hist} == {"NF 1", "NF 2"}


def test_saida_em_lote_nao_para_no_primeiro_erro(tmp_path, novo_medicamento, estoque, catalogo):
    med = novo_medicamento(estoque=3)
    path = tmp_path / "saidas.csv"
    pd.DataFrame({
        "id": [med.id, med.id, med.id],
        "qtd": [2, 5, 1],
    }).to_csv(path, index=False)

    res = estoque.run_saida_lote(str(path))

    assert res["sucessos"] == 2
    assert len(res["erros"]) == 1
    assert res["erros"][0]["linha"] == 3
    assert "Estoque insuficiente" in res["erros"][0]["mensagem"]
    assert catalogo.obter(med.id).estoque == 0
