"""
Módulo de storage: persistência do histórico de preços.
"""

from src.storage.base import BasePriceStorage, StorageType
from src.storage.sqlite_storage import SQLitePriceStorage

__all__ = [
    "BasePriceStorage",
    "StorageType",
    "SQLitePriceStorage",
]
