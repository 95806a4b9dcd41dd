"""
Sistema de logging e auditoria da farmácia.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: movimentações de estoque, vendas, alterações de
cadastro e operações no banco de dados. A auditoria é "fire-and-forget":
uma falha ao registrar um evento nunca derruba a operação de negócio.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from farmacia import config


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = config.ENABLE_LOGGING
# Flag global: força os helpers de log mesmo com ENABLE_LOGGING desligado
ENABLE_OUTPUT = False

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é aberto na primeira escrita (``delay=True``), então
    importar o módulo não cria arquivos enquanto o logging estiver desligado.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers existentes (reconfiguração idempotente)
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger

LOGS_DIR = config.LOGS_DIR

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "estoque": LOGS_DIR / "estoque.log",
    "vendas": LOGS_DIR / "vendas.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
    "auditoria": LOGS_DIR / "auditoria.log",
}

# Loggers específicos para cada área
transaction_logger = setup_logger('farmacia.transactions', str(LOG_FILES["transactions"]))
estoque_logger = setup_logger('farmacia.estoque', str(LOG_FILES["estoque"]))
vendas_logger = setup_logger('farmacia.vendas', str(LOG_FILES["vendas"]))
database_logger = setup_logger('farmacia.database', str(LOG_FILES["database"]))
system_logger = setup_logger('farmacia.system', str(LOG_FILES["system"]))
audit_logger = setup_logger('farmacia.auditoria', str(LOG_FILES["auditoria"]))


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (venda, movimentacao, cadastro...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")

def log_movimentacao(tipo: str, medicamento_id: int, quantidade: int, **kwargs) -> None:
    """
    Log específico para movimentações de estoque.

    Args:
        tipo: ENTRADA ou SAIDA
        medicamento_id: Id do medicamento
        quantidade: Quantidade movimentada
        **kwargs: Dados adicionais (antes/depois, observação)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "medicamento_id": medicamento_id,
        "quantidade": quantidade,
        **kwargs
    }
    estoque_logger.info(f"{str(tipo).upper()}: {log_data}")

def log_venda(action: str, venda_id: Optional[int] = None, **kwargs) -> None:
    """Log específico para vendas (carrinho e finalização)."""
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"venda_id": venda_id, **kwargs}
    vendas_logger.info(f"VENDA_{action.upper()}: {log_data}")

def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, DELETE, SELECT)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "table": table,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs
    }
    database_logger.info(f"DB_{operation}: {log_data}")

def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")

def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para operações de arquivo (importação de planilhas).

    Args:
        operation: Tipo de operação (import, export)
        file_path: Caminho do arquivo
        rows_processed: Número de linhas processadas
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        **kwargs
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")

def registrar_auditoria(evento: str, dados: Dict[str, Any]) -> None:
    """Colaborador de auditoria padrão: uma linha JSON por evento."""
    if not ENABLE_LOGGING:
        return
    audit_logger.info(json.dumps({"evento": evento, **dados}, ensure_ascii=False, default=_json_default))

def notificar_auditoria(sink: Optional[Callable[[str, Dict[str, Any]], None]], evento: str, dados: Dict[str, Any]) -> None:
    """
    Entrega um evento ao colaborador de auditoria sem propagar falhas.

    Erros do colaborador são registrados no log de sistema e descartados:
    a operação de negócio já foi concluída quando o evento é emitido.
    """
    if sink is None:
        return
    try:
        sink(evento, dados)
    except Exception as e:
        system_logger.warning(f"AUDIT_FAILED: {evento} - {e}")

def get_log_summary(log_type: str = "transactions", lines: int = 100) -> str:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, estoque, vendas, database, system, auditoria)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    with open(log_file, 'r', encoding='utf-8') as f:
        all_lines = f.readlines()
    return ''.join(all_lines[-lines:])
