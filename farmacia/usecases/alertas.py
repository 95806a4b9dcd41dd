# farmacia/usecases/alertas.py
"""
UC: Alertas de estoque baixo e de validade.

Os alertas são recalculados a cada chamada a partir do catálogo atual;
nada é persistido. Limiares: argumento explícito > tabela `params` >
valores padrão de `config.DEFAULTS`.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from farmacia.config import DB_PATH, DEFAULTS
from farmacia.domain.models import Alerta, Medicamento, TipoAlerta
from farmacia.domain.policies import dias_ate
from farmacia.infra.repositories import MedicamentoRepo, ParamsRepo
from farmacia.infra.views import init_db


def _msg_estoque(estoque: int) -> str:
    return f"Estoque baixo: apenas {estoque} unidades restantes."


def _msg_validade(dias: int) -> str:
    if dias == 0:
        return "Validade próxima: vence hoje."
    return f"Validade próxima: vence em {dias} dias."


def _msg_vencido(dias: int) -> str:
    return f"Vencido há {dias} dias."


class AlertaService:
    def __init__(self, db_path: str = DB_PATH, repo: Optional[MedicamentoRepo] = None,
                 params: Optional[ParamsRepo] = None):
        if repo is None or params is None:
            init_db(db_path)
        self.repo = repo or MedicamentoRepo(db_path)
        self.params = params or ParamsRepo(db_path)

    def limiares(self, limiar_estoque: Optional[int] = None, janela_dias: Optional[int] = None):
        """Resolve (limiar de estoque, janela de validade em dias)."""
        if limiar_estoque is None:
            limiar_estoque = self.params.get_int("limiar_estoque_baixo", DEFAULTS.limiar_estoque_baixo)
        if janela_dias is None:
            janela_dias = self.params.get_int("janela_validade_dias", DEFAULTS.janela_validade_dias)
        return limiar_estoque, janela_dias

    def listar_alertas(
        self,
        limiar_estoque: Optional[int] = None,
        janela_dias: Optional[int] = None,
        hoje: Optional[date] = None,
    ) -> List[Alerta]:
        """Lista os alertas dos medicamentos ativos.

        Regras:
            - ``0 < estoque <= limiar``        → ESTOQUE_BAIXO
            - ``0 <= dias até validade <= janela`` → VALIDADE_PROXIMA
            - ``dias até validade < 0``        → VENCIDO

        Um mesmo medicamento pode gerar mais de um alerta; para cada item o
        alerta de estoque vem antes do de validade.
        """
        limiar, janela = self.limiares(limiar_estoque, janela_dias)
        hoje = hoje or date.today()
        alertas: List[Alerta] = []
        for med in self.repo.list("ativos"):
            if 0 < med.estoque <= limiar:
                alertas.append(Alerta(med, TipoAlerta.ESTOQUE_BAIXO, _msg_estoque(med.estoque), med.estoque))
            dias = dias_ate(med.data_validade, hoje)
            if dias < 0:
                alertas.append(Alerta(med, TipoAlerta.VENCIDO, _msg_vencido(-dias), dias))
            elif dias <= janela:
                alertas.append(Alerta(med, TipoAlerta.VALIDADE_PROXIMA, _msg_validade(dias), dias))
        return alertas

    def estoque_baixo(self, limiar_estoque: Optional[int] = None) -> List[Medicamento]:
        return [a.medicamento for a in self.listar_alertas(limiar_estoque=limiar_estoque)
                if a.tipo is TipoAlerta.ESTOQUE_BAIXO]

    def validade_proxima(self, janela_dias: Optional[int] = None, hoje: Optional[date] = None) -> List[Medicamento]:
        return [a.medicamento for a in self.listar_alertas(janela_dias=janela_dias, hoje=hoje)
                if a.tipo is TipoAlerta.VALIDADE_PROXIMA]
