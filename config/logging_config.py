"""
Configuração de logging estruturado usando structlog.

Os eventos do structlog passam pelo logging padrão, de modo que o console,
o arquivo geral e o arquivo de falhas recebem as mesmas linhas (playwright e
aiosqlite inclusos). Em produção o formato é JSON.
"""

import logging
import sys
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

GENERAL_LOG_FILE = "price_scraper.log"
FAILURES_LOG_FILE = "scrape_failures.log"

# Handlers instalados por setup_logging (removidos na reconfiguração)
_installed_handlers: list[logging.Handler] = []


def _stringify_domain_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Preços (Decimal) e enums (ErrorKind, BrowserState) viram texto."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def reset_handlers() -> None:
    """Remove e fecha os handlers instalados por setup_logging."""
    root = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


def setup_logging(
    level: str = "INFO",
    log_path: Optional[Path] = None,
    json_format: bool = False,
    run_id: Optional[str] = None,
) -> structlog.stdlib.BoundLogger:
    """
    Configura o sistema de logging.

    Args:
        level: Nível de log (DEBUG, INFO, WARNING, ERROR)
        log_path: Diretório dos arquivos de log (None = apenas console)
        json_format: Se True, usa formato JSON (produção)
        run_id: Identificador da execução, vinculado a todos os logs

    Returns:
        Logger configurado
    """
    numeric_level = getattr(logging, level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _stringify_domain_values,
    ]

    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        # Cores apenas em terminal; o mesmo texto vai para os arquivos
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty() and log_path is None,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = logging.Formatter("%(message)s")
    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Reconfiguração (ex.: vários comandos no mesmo processo) não duplica linhas
    reset_handlers()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    _installed_handlers.append(console_handler)

    if log_path:
        log_path.mkdir(parents=True, exist_ok=True)
        _installed_handlers.append(
            _file_handler(log_path / GENERAL_LOG_FILE, numeric_level, formatter)
        )
        # Falhas de scraping (WARNING+) em arquivo próprio para triagem de seletores
        _installed_handlers.append(
            _file_handler(log_path / FAILURES_LOG_FILE, logging.WARNING, formatter)
        )

    for handler in _installed_handlers:
        root.addHandler(handler)

    structlog.contextvars.clear_contextvars()
    if run_id:
        structlog.contextvars.bind_contextvars(run_id=run_id)

    return structlog.get_logger("price_scraper")


def get_logger(name: str = "price_scraper", **context: Any) -> structlog.stdlib.BoundLogger:
    """
    Retorna um logger com contexto.

    Args:
        name: Nome do logger
        **context: Contexto adicional para bind

    Returns:
        Logger com contexto
    """
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


class LoggerMixin:
    """Mixin para adicionar logging a classes."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Logger nomeado pela classe."""
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger

    def log_operation(self, operation: str, **kwargs: Any) -> structlog.stdlib.BoundLogger:
        """Logger com a operação e seu contexto (url, seletor, ...) vinculados."""
        return self.logger.bind(operation=operation, **kwargs)
