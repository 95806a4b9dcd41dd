# farmacia/usecases/dashboard.py
"""
UC: Painel com os números do dia.

Somente leitura; cada chamada consulta o estado atual.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from farmacia.config import DB_PATH
from farmacia.domain.models import EstatisticasDashboard
from farmacia.infra.repositories import ClienteRepo, MedicamentoRepo, ParamsRepo, VendaRepo
from farmacia.infra.views import init_db
from farmacia.usecases.alertas import AlertaService


class DashboardService:
    def __init__(self, db_path: str = DB_PATH):
        init_db(db_path)
        self.medicamentos = MedicamentoRepo(db_path)
        self.clientes = ClienteRepo(db_path)
        self.vendas = VendaRepo(db_path)
        self.alertas = AlertaService(db_path, repo=self.medicamentos, params=ParamsRepo(db_path))

    def estatisticas(self, hoje: Optional[date] = None) -> EstatisticasDashboard:
        hoje = hoje or date.today()
        return EstatisticasDashboard(
            medicamentos_ativos=len(self.medicamentos.list("ativos")),
            clientes_cadastrados=self.clientes.count(),
            vendas_hoje=self.vendas.count_do_dia(hoje),
            alertas_ativos=len(self.alertas.listar_alertas(hoje=hoje)),
        )
