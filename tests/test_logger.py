import json
from datetime import date
from decimal import Decimal

from farmacia.domain.models import TipoMovimentacao
from farmacia.infra import logger


def test_notificar_auditoria_engole_falhas():
    chamadas = []

    def quebrada(evento, dados):
        chamadas.append(evento)
        raise RuntimeError("fora do ar")

    logger.notificar_auditoria(quebrada, "venda_criada", {"id": 1})
    logger.notificar_auditoria(None, "venda_criada", {"id": 1})
    assert chamadas == ["venda_criada"]


def test_registrar_auditoria_grava_json(tmp_path, monkeypatch):
    arquivo = tmp_path / "auditoria.log"
    monkeypatch.setattr(logger, "ENABLE_LOGGING", True)
    monkeypatch.setattr(logger, "audit_logger", logger.setup_logger("farmacia.auditoria.teste", str(arquivo)))

    logger.registrar_auditoria("estoque_saida", {
        "medicamento_id": 3,
        "preco": Decimal("10.50"),
        "validade": date(2027, 1, 31),
        "tipo": TipoMovimentacao.SAIDA,
    })

    linha = arquivo.read_text(encoding="utf-8").strip().splitlines()[-1]
    payload = json.loads(linha.split(" - INFO - ", 1)[1])
    assert payload == {
        "evento": "estoque_saida",
        "medicamento_id": 3,
        "preco": "10.50",
        "validade": "2027-01-31",
        "tipo": "SAIDA",
    }


def test_registrar_auditoria_desligada_nao_escreve(tmp_path, monkeypatch):
    arquivo = tmp_path / "auditoria.log"
    monkeypatch.setattr(logger, "ENABLE_LOGGING", False)
    monkeypatch.setattr(logger, "audit_logger", logger.setup_logger("farmacia.auditoria.off", str(arquivo)))
    logger.registrar_auditoria("venda_criada", {"id": 1})
    assert not arquivo.exists()


def test_log_summary(tmp_path, monkeypatch):
    arquivo = tmp_path / "transactions.log"
    monkeypatch.setattr(logger, "ENABLE_LOGGING", True)
    monkeypatch.setattr(logger, "transaction_logger",
                        logger.setup_logger("farmacia.transactions.teste", str(arquivo)))
    monkeypatch.setitem(logger.LOG_FILES, "transactions", arquivo)

    logger.log_transaction("venda", {"itens": 2}, result=7)
    logger.log_transaction("venda", {"itens": 1}, error="Estoque insuficiente")

    resumo = logger.get_log_summary("transactions", lines=1)
    assert "TRANSACTION_FAILED: venda - Estoque insuficiente" in resumo
    assert "TRANSACTION_SUCCESS" not in resumo
    assert logger.get_log_summary("inexistente") == "Log inexistente não encontrado."
