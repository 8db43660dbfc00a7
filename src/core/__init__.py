"""
Módulo core: modelos de dados, exceções, tipos e constantes.
"""

from src.core.models import (
    ScrapeRequest,
    ScrapeResult,
    ScrapeError,
    BatchMetadata,
)
from src.core.exceptions import (
    PriceScraperError,
    BrowserUnavailableError,
    InvalidRequestError,
    StorageError,
)
from src.core.types import (
    ErrorKind,
    ScrapeStatus,
    BrowserState,
)
from src.core.constants import (
    CHROMIUM_LAUNCH_ARGS,
    MAX_PRICE,
    PRICE_TOKEN_PATTERN,
)

__all__ = [
    # Models
    "ScrapeRequest",
    "ScrapeResult",
    "ScrapeError",
    "BatchMetadata",
    # Exceptions
    "PriceScraperError",
    "BrowserUnavailableError",
    "InvalidRequestError",
    "StorageError",
    # Types
    "ErrorKind",
    "ScrapeStatus",
    "BrowserState",
    # Constants
    "CHROMIUM_LAUNCH_ARGS",
    "MAX_PRICE",
    "PRICE_TOKEN_PATTERN",
]
