"""
Storage SQLite para histórico de preços e falhas de scraping.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional
from uuid import uuid4

import aiosqlite

from src.core.exceptions import StorageError
from src.core.models import ScrapeResult
from src.core.types import ErrorKind
from src.storage.base import BasePriceStorage, StorageType


def _timestamp(value: datetime) -> str:
    # Precisão fixa para comparação lexicográfica no SQLite
    return value.isoformat(timespec="microseconds")


class SQLitePriceStorage(BasePriceStorage):
    """
    Storage usando SQLite.
    Guarda preços em price_history e falhas em scrape_failures.
    """

    def __init__(self, base_path: Path, db_name: str = "price_scraper.db"):
        """
        Inicializa o storage SQLite.

        Args:
            base_path: Diretório base
            db_name: Nome do arquivo do banco
        """
        super().__init__(base_path)
        self.db_path = self.base_path / db_name
        self._initialized = False

    @property
    def storage_type(self) -> StorageType:
        return StorageType.SQLITE

    async def _ensure_initialized(self) -> None:
        """Garante que as tabelas existem."""
        if self._initialized:
            return

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS price_history (
                    id TEXT PRIMARY KEY,
                    product_id TEXT,
                    url TEXT NOT NULL,
                    selector TEXT NOT NULL,
                    price TEXT NOT NULL,
                    attempts INTEGER NOT NULL DEFAULT 1,
                    scraped_at TIMESTAMP NOT NULL
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS scrape_failures (
                    id TEXT PRIMARY KEY,
                    product_id TEXT,
                    url TEXT NOT NULL,
                    selector TEXT NOT NULL,
                    error_kind TEXT NOT NULL,
                    message TEXT,
                    attempts INTEGER NOT NULL DEFAULT 1,
                    failed_at TIMESTAMP NOT NULL
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_history_url
                ON price_history(url, selector, scraped_at)
            """)
            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_history_product
                ON price_history(product_id)
            """)
            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_failures_url
                ON scrape_failures(url, selector, failed_at)
            """)

            await db.commit()

        self._initialized = True
        self.logger.debug("SQLite inicializado", db_path=str(self.db_path))

    async def save_results(self, results: Iterable[ScrapeResult]) -> str:
        """
        Salva resultados no SQLite.

        Args:
            results: Resultados finais

        Returns:
            Path do banco de dados
        """
        await self._ensure_initialized()

        prices = 0
        failures = 0

        try:
            async with aiosqlite.connect(self.db_path) as db:
                for result in results:
                    request = result.request

                    if result.is_success:
                        await db.execute("""
                            INSERT INTO price_history
                            (id, product_id, url, selector, price, attempts, scraped_at)
                            VALUES (?, ?, ?, ?, ?, ?, ?)
                        """, (
                            str(uuid4()),
                            request.product_id,
                            request.url,
                            request.selector,
                            str(result.price),
                            result.attempts,
                            _timestamp(result.finished_at),
                        ))
                        prices += 1
                    else:
                        await db.execute("""
                            INSERT INTO scrape_failures
                            (id, product_id, url, selector, error_kind, message,
                             attempts, failed_at)
                            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """, (
                            str(uuid4()),
                            request.product_id,
                            request.url,
                            request.selector,
                            result.error.kind.value,
                            result.error.message,
                            result.attempts,
                            _timestamp(result.finished_at),
                        ))
                        failures += 1

                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(
                "Erro ao salvar resultados",
                storage_type=self.storage_type.value,
                path=str(self.db_path),
                cause=e,
            ) from e

        self.logger.info(
            "Resultados salvos no SQLite",
            prices=prices,
            failures=failures,
            db_path=str(self.db_path),
        )

        return str(self.db_path)

    async def get_price_history(
        self,
        url: Optional[str] = None,
        product_id: Optional[str] = None,
        days: int = 30,
    ) -> list[dict]:
        """
        Retorna histórico de preços.
        """
        await self._ensure_initialized()

        cutoff_date = datetime.now() - timedelta(days=days)

        query = """
            SELECT product_id, url, selector, price, attempts, scraped_at
            FROM price_history
            WHERE scraped_at >= ?
        """
        params: list = [_timestamp(cutoff_date)]

        if url:
            query += " AND url = ?"
            params.append(url)

        if product_id:
            query += " AND product_id = ?"
            params.append(product_id)

        query += " ORDER BY scraped_at"

        history = []

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cursor:
                async for row in cursor:
                    history.append(dict(row))

        self.logger.debug(
            "Histórico carregado",
            count=len(history),
            filters={"url": url, "product_id": product_id},
        )

        return history

    async def get_stale_selectors(self, threshold: int = 3) -> list[dict]:
        """
        Retorna seletores com falhas repetidas desde o último preço.
        """
        await self._ensure_initialized()

        query = """
            SELECT
                f.url AS url,
                f.selector AS selector,
                MAX(f.product_id) AS product_id,
                COUNT(*) AS misses,
                MAX(f.failed_at) AS last_miss
            FROM scrape_failures f
            WHERE f.error_kind = ?
              AND f.failed_at > COALESCE(
                  (SELECT MAX(h.scraped_at) FROM price_history h
                   WHERE h.url = f.url AND h.selector = f.selector),
                  ''
              )
            GROUP BY f.url, f.selector
            HAVING COUNT(*) >= ?
            ORDER BY misses DESC, last_miss DESC
        """

        stale = []

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                query, (ErrorKind.SELECTOR_NOT_FOUND.value, threshold)
            ) as cursor:
                async for row in cursor:
                    stale.append(dict(row))

        return stale
