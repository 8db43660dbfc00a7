"""
Hierarquia de exceções do sistema.
Todas as exceções herdam de PriceScraperError para facilitar tratamento.

Exceções circulam apenas dentro dos componentes; a fronteira da RenderSession
converte tudo em ScrapeResult.
"""

from typing import Any, Optional


class PriceScraperError(Exception):
    """
    Exceção base do sistema.
    Todas as exceções customizadas herdam desta classe.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.cause:
            base += f" | Caused by: {self.cause}"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Serializa exceção para dicionário."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


# EXCEÇÕES DO BROWSER

class BrowserUnavailableError(PriceScraperError):
    """Falha ao lançar o browser ou browser já encerrado."""

    def __init__(
        self,
        message: str = "Browser indisponível",
        *,
        state: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if state:
            details["state"] = state
        super().__init__(message, details=details, **kwargs)
        self.state = state


# EXCEÇÕES DE VALIDAÇÃO

class InvalidRequestError(PriceScraperError):
    """Requisição ou produto com dados inválidos."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["invalid_value"] = str(value)
        super().__init__(message, details=details, **kwargs)


# EXCEÇÕES DE STORAGE

class StorageError(PriceScraperError):
    """Erro de persistência de dados."""

    def __init__(
        self,
        message: str,
        *,
        storage_type: Optional[str] = None,
        path: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if storage_type:
            details["storage_type"] = storage_type
        if path:
            details["path"] = path
        super().__init__(message, details=details, **kwargs)
