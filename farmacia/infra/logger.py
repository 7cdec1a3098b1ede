"""
Sistema de logging das operações do PDV.

Este módulo configura e fornece loggers para registrar as operações
críticas da venda: resolução de promoções, seleção de lotes, chamadas aos
serviços externos e finalização de vendas.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.environ.get("FARMACIA_LOG", "0") == "1"
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = os.environ.get("FARMACIA_OUTPUT", "0") == "1"

def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é aberto na primeira mensagem (``delay=True``), então
    importar o módulo com o logging desligado não cria arquivos.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers existentes (reimportação em testes)
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    if ENABLE_LOGGING or ENABLE_OUTPUT:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)
    else:
        logger.addHandler(logging.NullHandler())

    return logger

# Diretório base para logs (na pasta do pacote)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("FARMACIA_LOGS_DIR", BASE_DIR / "logs"))

transaction_logger = setup_logger('farmacia.transactions', str(LOGS_DIR / 'transactions.log'))
venda_logger = setup_logger('farmacia.vendas', str(LOGS_DIR / 'vendas.log'))
promocao_logger = setup_logger('farmacia.promocoes', str(LOGS_DIR / 'promocoes.log'))
lote_logger = setup_logger('farmacia.lotes', str(LOGS_DIR / 'lotes.log'))
api_logger = setup_logger('farmacia.api', str(LOGS_DIR / 'api.log'))
system_logger = setup_logger('farmacia.system', str(LOGS_DIR / 'system.log'))

def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (venda, importacao, etc.)
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

def log_venda(action: str, venda_id: Optional[str] = None, **kwargs) -> None:
    """
    Log específico para o ciclo da venda (carrinho, checkout, pagamento).

    Args:
        action: Ação realizada (item_adicionado, criada, pagamento...)
        venda_id: Id da venda, quando já existe
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"action": action, "venda_id": venda_id, **kwargs}
    venda_logger.info(f"VENDA_{action.upper()}: {log_data}")

def log_promocao(action: str, produto_id: str, promocao_id: Optional[str] = None, lote_id: Optional[str] = None, level: str = "info", **kwargs) -> None:
    """
    Log específico para resolução e aplicação de promoções.

    Args:
        action: Ação realizada (resolvida, nenhuma, sonda_falhou...)
        produto_id: Produto consultado
        promocao_id: Promoção escolhida (opcional)
        lote_id: Lote consultado (opcional)
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"action": action, "produto_id": produto_id, "promocao_id": promocao_id, "lote_id": lote_id, **kwargs}
    getattr(promocao_logger, level, promocao_logger.info)(f"PROMOCAO_{action.upper()}: {log_data}")

def log_lote(action: str, produto_id: str, lote_id: Optional[str] = None, **kwargs) -> None:
    """
    Log específico para o diálogo de seleção de lotes.

    Args:
        action: Ação realizada (carregados, fefo, confirmado, cancelado...)
        produto_id: Produto em seleção
        lote_id: Lote afetado (opcional)
        **kwargs: Dados adicionais
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"action": action, "produto_id": produto_id, "lote_id": lote_id, **kwargs}
    lote_logger.info(f"LOTE_{action.upper()}: {log_data}")

def log_api_call(method: str, path: str, status: Optional[int] = None, error: Optional[str] = None, **kwargs) -> None:
    """
    Log para chamadas aos serviços REST.

    Args:
        method: Verbo HTTP
        path: Caminho relativo à URL base
        status: Código HTTP (opcional)
        error: Mensagem de erro (opcional)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {"method": method, "path": path, "status": status, **kwargs}
    if error:
        api_logger.error(f"API_FAILED: {log_data} - {error}")
    else:
        api_logger.info(f"API_CALL: {log_data}")

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

def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, vendas, promocoes, lotes, api, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return None

    log_file = LOGS_DIR / f"{log_type}.log"
    if log_type not in {"transactions", "vendas", "promocoes", "lotes", "api", "system"} or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines
            return ''.join(recent_lines)
    except OSError as e:
        return f"Erro ao ler log {log_type}: {str(e)}"
