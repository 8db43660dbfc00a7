"""
Testes de integração do PriceTracker: browser fake + SQLite real.
"""

from decimal import Decimal

import pytest
from tenacity import wait_none

from playwright.async_api import TimeoutError as PlaywrightTimeout

from src.core.exceptions import InvalidRequestError
from src.core.types import BrowserState, ErrorKind
from src.products import TrackedProduct
from src.scrapers import BrowserManager, RenderSession, ScrapeOrchestrator
from src.storage import SQLitePriceStorage
from src.tracker import PriceTracker


@pytest.fixture
def make_tracker(settings, temp_data_dir, fake_browser, fake_launcher):
    """Monta o tracker completo sobre um browser fake."""

    def _make(*behaviors):
        launcher = fake_launcher(fake_browser(*behaviors))
        manager = BrowserManager(settings=settings, launcher=launcher)
        orchestrator = ScrapeOrchestrator(
            RenderSession(manager, settings=settings),
            settings=settings,
            backoff=wait_none(),
        )
        tracker = PriceTracker(
            settings=settings,
            storage=SQLitePriceStorage(temp_data_dir),
            browser_manager=manager,
            orchestrator=orchestrator,
        )
        return tracker, launcher

    return _make


@pytest.fixture
def products():
    return [
        TrackedProduct(id="1", name="iPhone", url="https://www.apple.com/iphone", selector=".current-price"),
        TrackedProduct(id="2", name="Notebook", url="https://shop.example.com/laptop", selector="#price"),
        TrackedProduct(id="3", name="Antigo", url="https://old.example.com/p", selector=".p", is_active=False),
    ]


class TestPriceTracker:
    """Ciclo completo de monitoramento."""

    @pytest.mark.asyncio
    async def test_track_persiste_resultados(self, make_tracker, page_behavior, products):
        tracker, launcher = make_tracker(page_behavior(text="$1,299.99"))

        async with tracker:
            report = await tracker.track(products)
            history = await tracker.get_price_history()

        assert report.metadata.total_requests == 2
        assert report.metadata.succeeded == 2
        assert report.skipped_inactive == 1
        assert report.saved_to is not None
        assert {h["product_id"] for h in history} == {"1", "2"}
        assert all(h["price"] == "1299.99" for h in history)

        # contexto do tracker libera o browser
        assert tracker.browser_manager.state == BrowserState.CLOSED
        assert launcher.launched[0].close_calls == 1

    @pytest.mark.asyncio
    async def test_track_sem_persistencia(self, make_tracker, page_behavior, products):
        tracker, _ = make_tracker(page_behavior())

        async with tracker:
            report = await tracker.track(products, save_results=False)
            history = await tracker.get_price_history()

        assert len(report.successes()) == 2
        assert report.saved_to is None
        assert history == []

    @pytest.mark.asyncio
    async def test_seletor_desatualizado(self, make_tracker, page_behavior, products):
        tracker, _ = make_tracker(
            page_behavior(selector_error=PlaywrightTimeout("Timeout 10000ms exceeded"))
        )

        async with tracker:
            for _ in range(3):
                report = await tracker.track(products[:1])
            stale = await tracker.get_stale_selectors(threshold=3)

        assert report.failures()[0].error_kind == ErrorKind.SELECTOR_NOT_FOUND
        assert len(stale) == 1
        assert stale[0]["product_id"] == "1"

    @pytest.mark.asyncio
    async def test_scrape_once(self, make_tracker, page_behavior, fast_budget):
        tracker, launcher = make_tracker(page_behavior(text="£499.00"))

        async with tracker:
            result = await tracker.scrape_once(
                "https://shop.example.co.uk/p", ".price", fast_budget
            )
            history = await tracker.get_price_history()

        assert result.price == Decimal("499")
        assert result.attempts == 1
        assert history == []

    @pytest.mark.asyncio
    async def test_scrape_once_url_invalida(self, make_tracker):
        tracker, launcher = make_tracker()

        async with tracker:
            with pytest.raises(InvalidRequestError) as exc_info:
                await tracker.scrape_once("not-a-url", ".price")

        assert exc_info.value.details["field"] == "url"
        assert launcher.calls == 0

    @pytest.mark.asyncio
    async def test_close_sem_uso(self, make_tracker):
        tracker, launcher = make_tracker()

        await tracker.close()
        await tracker.close()

        assert launcher.calls == 0
        assert tracker.browser_manager.state == BrowserState.CLOSED
