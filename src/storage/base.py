"""
Classe base abstrata para storage.
Define a interface do destino dos preços coletados.
"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from config.logging_config import LoggerMixin
from src.core.models import ScrapeResult


class StorageType(str, Enum):
    """Tipos de storage disponíveis."""
    SQLITE = "sqlite"


class BasePriceStorage(ABC, LoggerMixin):
    """
    Classe base abstrata para backends de storage.
    Recebe resultados finais e responde consultas de histórico.
    """

    def __init__(self, base_path: Path):
        """
        Inicializa o storage.

        Args:
            base_path: Diretório base para armazenamento
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    @property
    @abstractmethod
    def storage_type(self) -> StorageType:
        """Retorna o tipo de storage."""
        pass

    @abstractmethod
    async def save_results(self, results: Iterable[ScrapeResult]) -> str:
        """
        Persiste resultados: preços de sucesso e falhas classificadas.

        Args:
            results: Resultados finais do lote

        Returns:
            Identificador/path do destino
        """
        pass

    @abstractmethod
    async def get_price_history(
        self,
        url: Optional[str] = None,
        product_id: Optional[str] = None,
        days: int = 30,
    ) -> list[dict]:
        """
        Retorna histórico de preços.

        Args:
            url: Filtrar por URL
            product_id: Filtrar por produto
            days: Período em dias

        Returns:
            Lista de registros, do mais antigo ao mais recente
        """
        pass

    @abstractmethod
    async def get_stale_selectors(self, threshold: int = 3) -> list[dict]:
        """
        Lista pares URL/seletor com falhas repetidas de seletor
        desde o último preço obtido.

        Args:
            threshold: Mínimo de falhas consecutivas

        Returns:
            Lista com url, selector, product_id, misses e last_miss
        """
        pass
