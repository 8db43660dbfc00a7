"""
Testes de integração para o storage SQLite.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from src.core.models import ScrapeResult
from src.core.types import ErrorKind
from src.storage import SQLitePriceStorage, StorageType


BASE_TIME = datetime(2026, 1, 10, 12, 0, 0)


def at(result: ScrapeResult, minutes: int) -> ScrapeResult:
    """Fixa o horário de término do resultado."""
    result.finished_at = BASE_TIME + timedelta(minutes=minutes)
    return result


@pytest.fixture
def storage(temp_data_dir) -> SQLitePriceStorage:
    return SQLitePriceStorage(temp_data_dir)


@pytest_asyncio.fixture
async def missing_selector_storage(storage, request_laptop) -> SQLitePriceStorage:
    """Storage com três falhas de seletor consecutivas para o notebook."""
    failures = [
        at(ScrapeResult.failure(request_laptop, ErrorKind.SELECTOR_NOT_FOUND), m)
        for m in range(3)
    ]
    await storage.save_results(failures)
    return storage


class TestSQLitePriceStorage:
    """Testes para SQLitePriceStorage."""

    def test_tipo(self, storage):
        assert storage.storage_type == StorageType.SQLITE

    @pytest.mark.asyncio
    async def test_salva_e_consulta_historico(self, storage, request_iphone, request_laptop):
        first = ScrapeResult.success(request_iphone, Decimal("999"))
        second = ScrapeResult.success(request_iphone, Decimal("949.90"))
        second.finished_at = first.finished_at + timedelta(seconds=1)
        other = ScrapeResult.success(request_laptop, Decimal("4500"))

        path = await storage.save_results([first, second, other])

        assert path == str(storage.db_path)
        assert storage.db_path.exists()

        history = await storage.get_price_history(url=request_iphone.url)
        assert [h["price"] for h in history] == ["999", "949.90"]
        assert history[0]["product_id"] == "prod-1"

        by_product = await storage.get_price_history(product_id="prod-2")
        assert len(by_product) == 1

    @pytest.mark.asyncio
    async def test_historico_respeita_periodo(self, storage, request_iphone):
        old = ScrapeResult.success(request_iphone, Decimal("999"))
        old.finished_at = datetime.now() - timedelta(days=40)

        await storage.save_results([old])

        assert await storage.get_price_history(days=30) == []
        assert len(await storage.get_price_history(days=60)) == 1

    @pytest.mark.asyncio
    async def test_falhas_nao_entram_no_historico(self, storage, selector_failure):
        await storage.save_results([selector_failure])

        assert await storage.get_price_history() == []


class TestStaleSelectors:
    """Detecção de seletores desatualizados."""

    @pytest.mark.asyncio
    async def test_falhas_repetidas_de_seletor(self, missing_selector_storage, request_laptop):
        stale = await missing_selector_storage.get_stale_selectors(threshold=3)

        assert len(stale) == 1
        assert stale[0]["url"] == request_laptop.url
        assert stale[0]["selector"] == request_laptop.selector
        assert stale[0]["product_id"] == "prod-2"
        assert stale[0]["misses"] == 3

    @pytest.mark.asyncio
    async def test_abaixo_do_limite(self, storage, request_laptop):
        failures = [
            at(ScrapeResult.failure(request_laptop, ErrorKind.SELECTOR_NOT_FOUND), m)
            for m in range(2)
        ]
        await storage.save_results(failures)

        assert await storage.get_stale_selectors(threshold=3) == []

    @pytest.mark.asyncio
    async def test_sucesso_posterior_limpa(self, missing_selector_storage, request_laptop):
        success = at(ScrapeResult.success(request_laptop, Decimal("4500")), 10)
        await missing_selector_storage.save_results([success])

        assert await missing_selector_storage.get_stale_selectors(threshold=3) == []

    @pytest.mark.asyncio
    async def test_falhas_transitorias_ignoradas(self, storage, request_laptop):
        failures = [
            at(ScrapeResult.failure(request_laptop, ErrorKind.NETWORK_FAILURE), m)
            for m in range(5)
        ]
        await storage.save_results(failures)

        assert await storage.get_stale_selectors(threshold=3) == []
