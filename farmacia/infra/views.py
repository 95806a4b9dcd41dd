# farmacia/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_movimentacoes_detalhe: livro de estoque com nome/dosagem e status atual
                            do medicamento (histórico de movimentações).
- vw_medicamentos:          catálogo com os dados da categoria.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
- DROP + CREATE rodam numa única transação: outra conexão nunca enxerga
  o intervalo sem a view.
"""

from __future__ import annotations

from .db import connect
from .migrations import apply_migrations


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        # -----------------------
        # Views (drop + create)
        # -----------------------
        c.executescript(
            """
            BEGIN;

            ---------------------------
            -- Movimentações com dados do medicamento
            ---------------------------
            DROP VIEW IF EXISTS vw_movimentacoes_detalhe;
            CREATE VIEW vw_movimentacoes_detalhe AS
            SELECT
                mv.id,
                mv.medicamento_id,
                TRIM(m.nome || ' ' || COALESCE(m.dosagem, '')) AS medicamento_nome,
                mv.tipo,
                mv.quantidade,
                mv.quantidade_anterior,
                mv.quantidade_atual,
                mv.data_movimentacao,
                mv.observacao,
                mv.responsavel,
                m.ativo
            FROM movimentacao_estoque mv
            JOIN medicamento m ON m.id = mv.medicamento_id;

            ---------------------------
            -- Catálogo com categoria
            ---------------------------
            DROP VIEW IF EXISTS vw_medicamentos;
            CREATE VIEW vw_medicamentos AS
            SELECT
                m.id,
                m.nome,
                m.dosagem,
                m.descricao,
                m.preco,
                m.estoque,
                date(m.data_validade) AS data_validade,
                m.ativo,
                m.removido,
                m.categoria_id,
                c.nome      AS categoria_nome,
                c.descricao AS categoria_descricao
            FROM medicamento m
            JOIN categoria c ON c.id = m.categoria_id;

            COMMIT;
            """
        )

        # --------------------------------
        # Índices úteis (IF NOT EXISTS)
        # --------------------------------
        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_mov_medicamento ON movimentacao_estoque(medicamento_id);
            CREATE INDEX IF NOT EXISTS idx_mov_data        ON movimentacao_estoque(data_movimentacao);
            CREATE INDEX IF NOT EXISTS idx_venda_data      ON venda(data_venda);
            CREATE INDEX IF NOT EXISTS idx_venda_cliente   ON venda(cliente_id);
            CREATE INDEX IF NOT EXISTS idx_item_venda      ON item_venda(venda_id, posicao);
            CREATE INDEX IF NOT EXISTS idx_medicamento_cat ON medicamento(categoria_id);
            """
        )


def init_db(db_path: str) -> None:
    """Migrações + views; usado pelos serviços e pelo comando ``migrate``."""
    apply_migrations(db_path)
    create_views(db_path)
