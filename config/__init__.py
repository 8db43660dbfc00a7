"""
Módulo de configuração do sistema.
Exporta configurações e logging para uso em todo o projeto.
"""

from config.settings import Settings, get_settings
from config.logging_config import LoggerMixin, get_logger, reset_handlers, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "LoggerMixin",
    "get_logger",
    "reset_handlers",
    "setup_logging",
]
