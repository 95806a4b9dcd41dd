# farmacia/config.py
"""
Configurações globais e valores padrão do núcleo da farmácia.

Variáveis de ambiente aceitas:
- FARMACIA_DB:   caminho do banco SQLite (padrão: ./farmacia.db)
- FARMACIA_LOGS: diretório dos arquivos de log
- FARMACIA_LOG:  "1" habilita a escrita dos logs
"""

import os
from dataclasses import dataclass
from pathlib import Path


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("FARMACIA_DB", os.path.join(os.getcwd(), "farmacia.db"))

# Diretório de logs (na pasta do pacote, salvo override)
LOGS_DIR = Path(os.environ.get("FARMACIA_LOGS", str(Path(__file__).parent / "logs")))

ENABLE_LOGGING = os.environ.get("FARMACIA_LOG", "0").strip() == "1"


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    limiar_estoque_baixo: int = 10     # unidades
    janela_validade_dias: int = 30     # dias até o vencimento
    idade_minima: int = 18             # anos para constar em uma venda
    max_observacao: int = 500          # caracteres da observação de movimentação
    timeout_db: float = 5.0            # segundos de espera pelo lock do SQLite


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
