"""
PriceTracker: fachada principal do sistema.
Coordena browser, orquestrador e storage para o ciclo completo de
monitoramento de preços.
"""

from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field, ValidationError

from config.logging_config import LoggerMixin
from config.settings import Settings, get_settings
from src.core.exceptions import InvalidRequestError
from src.core.models import BatchMetadata, ScrapeRequest, ScrapeResult
from src.products import TrackedProduct, active_requests
from src.scrapers import BrowserManager, RenderSession, ScrapeOrchestrator
from src.scrapers.session import TimeoutBudget
from src.storage import BasePriceStorage, SQLitePriceStorage


class TrackingReport(BaseModel):
    """Resultado de uma rodada de monitoramento."""

    metadata: BatchMetadata
    results: list[ScrapeResult] = Field(default_factory=list)
    skipped_inactive: int = 0
    saved_to: Optional[str] = None

    def successes(self) -> list[ScrapeResult]:
        return [r for r in self.results if r.is_success]

    def failures(self) -> list[ScrapeResult]:
        return [r for r in self.results if not r.is_success]


class PriceTracker(LoggerMixin):
    """
    Orquestrador principal do monitoramento de preços.

    Responsabilidades:
    - Manter o browser compartilhado e liberá-lo ao final
    - Executar lotes de produtos ativos
    - Persistir preços e falhas

    Use como context manager assíncrono para garantir a liberação do browser:

        async with PriceTracker() as tracker:
            report = await tracker.track(products)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[BasePriceStorage] = None,
        data_path: Optional[Path] = None,
        browser_manager: Optional[BrowserManager] = None,
        orchestrator: Optional[ScrapeOrchestrator] = None,
    ):
        """
        Inicializa o tracker.

        Args:
            settings: Configurações (None = globais)
            storage: Destino dos resultados (None = SQLite em data_path)
            data_path: Diretório para dados (None = config)
            browser_manager: Gerenciador do browser (None = Chromium)
            orchestrator: Orquestrador (None = construído a partir do browser)
        """
        self.settings = settings or get_settings()

        self.browser_manager = browser_manager or BrowserManager(self.settings)
        self.orchestrator = orchestrator or ScrapeOrchestrator(
            RenderSession(self.browser_manager, settings=self.settings),
            settings=self.settings,
        )
        self.storage = storage or SQLitePriceStorage(
            data_path or self.settings.data_path,
        )

    async def __aenter__(self) -> "PriceTracker":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def track(
        self,
        products: Iterable[TrackedProduct],
        save_results: bool = True,
    ) -> TrackingReport:
        """
        Executa scraping de todos os produtos ativos.

        Args:
            products: Produtos do registro
            save_results: Se deve persistir os resultados

        Returns:
            TrackingReport com um resultado por produto ativo
        """
        products = list(products)
        requests = active_requests(products)

        self.logger.info(
            "Iniciando monitoramento",
            products=len(products),
            active=len(requests),
        )

        return await self.scrape(
            requests,
            save_results=save_results,
            skipped_inactive=len(products) - len(requests),
        )

    async def scrape(
        self,
        requests: Iterable[ScrapeRequest],
        save_results: bool = True,
        budget: Optional[TimeoutBudget] = None,
        skipped_inactive: int = 0,
    ) -> TrackingReport:
        """Executa um lote de requisições e opcionalmente persiste."""
        metadata = BatchMetadata()
        results = list((await self.orchestrator.run_batch(requests, budget)).values())
        metadata.record(results)
        metadata.mark_finished()

        report = TrackingReport(
            metadata=metadata,
            results=results,
            skipped_inactive=skipped_inactive,
        )

        if save_results and results:
            report.saved_to = await self.storage.save_results(results)

        return report

    async def scrape_once(
        self,
        url: str,
        selector: str,
        budget: Optional[TimeoutBudget] = None,
    ) -> ScrapeResult:
        """
        Scraping manual de uma URL, útil para testar seletores.
        Não persiste e não aplica retry.

        Raises:
            InvalidRequestError: Se a URL ou o seletor forem inválidos
        """
        try:
            request = ScrapeRequest(url=url, selector=selector)
        except ValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else None
            raise InvalidRequestError(
                f"Requisição inválida: {field or 'dados'}",
                field=field,
                value=url if field == "url" else selector,
                cause=e,
            ) from e

        self.logger.info("Teste de scraping", url=url, selector=selector)
        return await self.orchestrator.session.run(request, budget)

    async def get_price_history(
        self,
        url: Optional[str] = None,
        product_id: Optional[str] = None,
        days: int = 30,
    ) -> list[dict]:
        return await self.storage.get_price_history(
            url=url,
            product_id=product_id,
            days=days,
        )

    async def get_stale_selectors(self, threshold: int = 3) -> list[dict]:
        return await self.storage.get_stale_selectors(threshold=threshold)

    async def close(self) -> None:
        """Libera o browser compartilhado."""
        await self.browser_manager.release()
