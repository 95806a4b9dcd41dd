from datetime import date, timedelta

from farmacia.domain.models import EstatisticasDashboard
from farmacia.usecases.dashboard import DashboardService


def test_banco_vazio_zera_tudo(db_path):
    assert DashboardService(db_path).estatisticas() == EstatisticasDashboard()


def test_estatisticas(db_path, novo_medicamento, novo_cliente, catalogo, vendas):
    med = novo_medicamento(estoque=12)
    novo_medicamento(nome="Baixo", estoque=2)
    inativo = novo_medicamento(nome="Inativo")
    catalogo.definir_status(inativo.id, False)
    novo_cliente()
    novo_cliente()

    carrinho = vendas.novo_carrinho()
    vendas.adicionar_item(carrinho, med.id, 1)
    vendas.finalizar(carrinho)

    painel = DashboardService(db_path)
    stats = painel.estatisticas()
    assert stats.medicamentos_ativos == 2
    assert stats.clientes_cadastrados == 2
    assert stats.vendas_hoje == 1
    assert stats.alertas_ativos == 1

    amanha = painel.estatisticas(hoje=date.today() + timedelta(days=1))
    assert amanha.vendas_hoje == 0
