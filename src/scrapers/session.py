"""
Sessão de renderização: uma aba isolada por tentativa de scraping.

Navega até a URL, aguarda o seletor, extrai o texto visível e delega ao
normalizador. A aba (contexto + página) é fechada em todos os caminhos de
saída e nenhuma exceção atravessa run(): o chamador recebe sempre um
ScrapeResult.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from playwright.async_api import (
    BrowserContext,
    Page,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeout,
)

from config.logging_config import LoggerMixin
from config.settings import Settings, get_settings
from src.core.constants import (
    NAVIGATION_WAIT_UNTIL,
    RETRYABLE_HTTP_STATUSES,
    SELECTOR_SYNTAX_MARKERS,
)
from src.core.exceptions import BrowserUnavailableError
from src.core.models import ScrapeRequest, ScrapeResult
from src.core.types import ErrorKind
from src.pipeline.normalizer import PriceNormalizer
from src.scrapers.browser import BrowserHandle, BrowserManager


# Folga sobre a soma dos timeouts antes de abortar a tentativa inteira
DEADLINE_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class TimeoutBudget:
    """Timeouts de cada etapa, em segundos."""

    navigation: float = 30.0
    selector: float = 10.0
    extraction: float = 5.0
    grace: float = DEADLINE_GRACE_SECONDS

    @classmethod
    def from_settings(cls, settings: Settings) -> "TimeoutBudget":
        return cls(
            navigation=settings.navigation_timeout / 1000,
            selector=settings.selector_timeout / 1000,
            extraction=settings.extraction_timeout / 1000,
        )

    @property
    def deadline(self) -> float:
        """Prazo total da tentativa."""
        return self.navigation + self.selector + self.extraction + self.grace

    @staticmethod
    def to_ms(seconds: float) -> int:
        return int(seconds * 1000)


@dataclass
class _Attempt:
    """Relógio e construtores de resultado de uma tentativa."""

    request: ScrapeRequest
    started_at: datetime = field(default_factory=datetime.now)
    clock: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.clock

    def fail(self, kind: ErrorKind, message: Optional[str] = None) -> ScrapeResult:
        return ScrapeResult.failure(
            self.request,
            kind,
            elapsed_seconds=self.elapsed,
            message=message,
            started_at=self.started_at,
        )

    def succeed(self, price: Decimal) -> ScrapeResult:
        return ScrapeResult.success(self.request, price, started_at=self.started_at)


def _is_selector_syntax_error(error: PlaywrightError) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in SELECTOR_SYNTAX_MARKERS)


class RenderSession(LoggerMixin):
    """
    Executa uma tentativa de scraping em uma aba isolada do browser compartilhado.
    """

    def __init__(
        self,
        browser_manager: BrowserManager,
        normalizer: Optional[PriceNormalizer] = None,
        settings: Optional[Settings] = None,
    ):
        self.browser_manager = browser_manager
        self.normalizer = normalizer or PriceNormalizer()
        self.settings = settings or get_settings()
        self.default_budget = TimeoutBudget.from_settings(self.settings)

    async def run(
        self,
        request: ScrapeRequest,
        budget: Optional[TimeoutBudget] = None,
    ) -> ScrapeResult:
        """
        Executa a tentativa e classifica o resultado.

        Args:
            request: URL e seletor a extrair
            budget: Timeouts por etapa (None = configurações)

        Returns:
            ScrapeResult de sucesso ou falha; nunca levanta exceção
        """
        budget = budget or self.default_budget
        attempt = _Attempt(request)
        log = self.log_operation("render", url=request.url, selector=request.selector)

        try:
            handle = await self.browser_manager.acquire()
        except BrowserUnavailableError as e:
            result = attempt.fail(ErrorKind.BROWSER_UNAVAILABLE, e.message)
        else:
            try:
                result = await asyncio.wait_for(
                    self._render(attempt, handle, budget),
                    timeout=budget.deadline,
                )
            except asyncio.TimeoutError:
                result = attempt.fail(
                    ErrorKind.NAVIGATION_TIMEOUT,
                    f"Prazo da tentativa excedido ({budget.deadline:.1f}s)",
                )
            except Exception as e:
                log.error("Falha inesperada na sessão", error=str(e), exc_info=True)
                result = attempt.fail(ErrorKind.NETWORK_FAILURE, str(e))

        result.finished_at = datetime.now()

        if result.is_success:
            log.info("Preço extraído", price=str(result.price), elapsed=f"{attempt.elapsed:.2f}s")
        else:
            log.warning(
                "Falha no scraping",
                kind=result.error.kind.value,
                reason=result.error.message,
                elapsed=f"{result.error.elapsed_seconds:.2f}s",
            )

        return result

    async def _render(
        self,
        attempt: _Attempt,
        handle: BrowserHandle,
        budget: TimeoutBudget,
    ) -> ScrapeResult:
        """Abre a aba, extrai o preço e fecha a aba em qualquer saída."""
        context: Optional[BrowserContext] = None
        page: Optional[Page] = None

        try:
            # Contexto próprio: sem cookies/storage compartilhados entre requisições
            context = await handle.browser.new_context(
                user_agent=self.settings.user_agent,
                viewport=self.settings.viewport,
                java_script_enabled=True,
                accept_downloads=False,
            )
            page = await context.new_page()
            return await self._extract(attempt, handle, page, budget)

        except PlaywrightError as e:
            return self._classify_error(attempt, handle, e)

        finally:
            await self._close_tab(page, context)

    async def _extract(
        self,
        attempt: _Attempt,
        handle: BrowserHandle,
        page: Page,
        budget: TimeoutBudget,
    ) -> ScrapeResult:
        request = attempt.request

        self.logger.debug("Carregando página", url=request.url)
        try:
            response = await page.goto(
                request.url,
                wait_until=NAVIGATION_WAIT_UNTIL,
                timeout=budget.to_ms(budget.navigation),
            )
        except PlaywrightTimeout as e:
            return attempt.fail(ErrorKind.NAVIGATION_TIMEOUT, str(e))

        if response is not None and response.status in RETRYABLE_HTTP_STATUSES:
            return attempt.fail(ErrorKind.NETWORK_FAILURE, f"HTTP {response.status}")

        self.logger.debug("Aguardando elemento de preço", selector=request.selector)
        try:
            element = await page.wait_for_selector(
                request.selector,
                timeout=budget.to_ms(budget.selector),
            )
        except PlaywrightTimeout as e:
            return attempt.fail(ErrorKind.SELECTOR_NOT_FOUND, str(e))
        except PlaywrightError as e:
            if not _is_selector_syntax_error(e):
                # Ex.: contexto destruído por redirect; não é culpa do seletor
                raise
            return attempt.fail(ErrorKind.SELECTOR_NOT_FOUND, str(e))

        if element is None:
            return attempt.fail(ErrorKind.SELECTOR_NOT_FOUND, "Elemento não encontrado")

        try:
            text = await element.inner_text(timeout=budget.to_ms(budget.extraction))
        except PlaywrightTimeout as e:
            return attempt.fail(ErrorKind.SELECTOR_NOT_FOUND, f"Elemento desanexado: {e}")

        self.logger.debug("Elemento de preço encontrado", text=text[:100])

        price = self.normalizer.normalize(text)
        if price is None:
            return attempt.fail(
                ErrorKind.PARSE_FAILURE,
                f"Texto sem preço válido: {text.strip()[:100]!r}",
            )

        return attempt.succeed(price)

    def _classify_error(
        self,
        attempt: _Attempt,
        handle: BrowserHandle,
        error: PlaywrightError,
    ) -> ScrapeResult:
        """Converte erro do Playwright em falha classificada."""
        if self._is_browser_crash(handle):
            self.browser_manager.mark_crashed(handle)
            return attempt.fail(ErrorKind.BROWSER_UNAVAILABLE, str(error))

        return attempt.fail(ErrorKind.NETWORK_FAILURE, str(error))

    def _is_browser_crash(self, handle: BrowserHandle) -> bool:
        """
        Browser morto ou desconectado.
        Página ou contexto fechados com o browser conectado não contam.
        """
        return not handle.is_connected()

    async def _close_tab(
        self,
        page: Optional[Page],
        context: Optional[BrowserContext],
    ) -> None:
        """Fecha página e contexto uma única vez; nunca fecha o browser."""
        if page is not None:
            try:
                await page.close()
            except PlaywrightError as e:
                self.logger.debug("Erro ao fechar página", error=str(e))

        if context is not None:
            try:
                await context.close()
            except PlaywrightError as e:
                self.logger.debug("Erro ao fechar contexto", error=str(e))

        self.logger.debug("Aba fechada")
