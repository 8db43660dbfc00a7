"""
Tipos customizados e enumerações do sistema.
"""

from enum import Enum
from typing import Annotated

from pydantic import StringConstraints


# ENUMERAÇÕES

class ErrorKind(str, Enum):
    """Classificação das falhas de uma tentativa de scraping."""

    NAVIGATION_TIMEOUT = "navigation_timeout"
    SELECTOR_NOT_FOUND = "selector_not_found"
    NETWORK_FAILURE = "network_failure"
    PARSE_FAILURE = "parse_failure"
    BROWSER_UNAVAILABLE = "browser_unavailable"

    @classmethod
    def transient_kinds(cls) -> list["ErrorKind"]:
        """Falhas que costumam se resolver com nova tentativa."""
        return [cls.NAVIGATION_TIMEOUT, cls.NETWORK_FAILURE, cls.BROWSER_UNAVAILABLE]

    @classmethod
    def permanent_kinds(cls) -> list["ErrorKind"]:
        """Falhas de configuração/estrutura da página (retry não resolve)."""
        return [cls.SELECTOR_NOT_FOUND, cls.PARSE_FAILURE]

    @property
    def is_transient(self) -> bool:
        return self in self.transient_kinds()


class ScrapeStatus(str, Enum):
    """Status final de uma requisição."""

    SUCCESS = "success"
    FAILURE = "failure"


class BrowserState(str, Enum):
    """Estados do ciclo de vida do browser compartilhado."""

    UNINITIALIZED = "uninitialized"
    STARTING = "starting"
    READY = "ready"
    CRASHED = "crashed"         # Relança na próxima demanda
    CLOSING = "closing"
    CLOSED = "closed"


# TIPOS ANOTADOS

# Seletor CSS/DOM (não vazio)
Selector = Annotated[
    str,
    StringConstraints(
        min_length=1,
        strip_whitespace=True,
    ),
]
