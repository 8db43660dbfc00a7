"""
Configurações e fixtures compartilhadas para pytest.

O browser do Playwright é substituído por fakes em memória que registram
aberturas e fechamentos de contexto/página, permitindo verificar o ciclo de
vida sem um Chromium real.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pytest

from playwright.async_api import Error as PlaywrightError

from config.settings import Settings
from src.core.models import ScrapeRequest, ScrapeResult
from src.core.types import ErrorKind
from src.scrapers.browser import BrowserManager
from src.scrapers.session import RenderSession, TimeoutBudget


# FAKES DO PLAYWRIGHT

@dataclass
class PageBehavior:
    """Roteiro de uma aba fake."""

    text: str = "$999"
    status: int = 200
    goto_error: Optional[BaseException] = None
    goto_delay: float = 0.0
    selector_error: Optional[BaseException] = None
    element_missing: bool = False
    crash_on_goto: bool = False


class FakeResponse:
    def __init__(self, status: int):
        self.status = status


class FakeElement:
    def __init__(self, text: str):
        self._text = text

    async def inner_text(self, timeout=None) -> str:
        return self._text


class FakePage:
    def __init__(self, browser: "FakeBrowser", behavior: PageBehavior):
        self.browser = browser
        self.behavior = behavior
        self.close_calls = 0
        self.visited: list[str] = []

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        self.behavior = self.browser.routes.get(url, self.behavior)
        if self.behavior.goto_delay:
            await asyncio.sleep(self.behavior.goto_delay)
        if self.behavior.crash_on_goto:
            self.browser.connected = False
            raise PlaywrightError("Target page, context or browser has been closed")
        if self.behavior.goto_error is not None:
            raise self.behavior.goto_error
        return FakeResponse(self.behavior.status)

    async def wait_for_selector(self, selector, timeout=None):
        if self.behavior.selector_error is not None:
            raise self.behavior.selector_error
        if self.behavior.element_missing:
            return None
        return FakeElement(self.behavior.text)

    async def close(self):
        self.close_calls += 1
        self.browser.open_pages -= 1


class FakeContext:
    def __init__(self, browser: "FakeBrowser", behavior: PageBehavior, options: dict):
        self.browser = browser
        self.behavior = behavior
        self.options = options
        self.pages: list[FakePage] = []
        self.close_calls = 0

    async def new_page(self) -> FakePage:
        page = FakePage(self.browser, self.behavior)
        self.pages.append(page)
        self.browser.open_pages += 1
        self.browser.peak_open_pages = max(
            self.browser.peak_open_pages, self.browser.open_pages
        )
        return page

    async def close(self):
        self.close_calls += 1


class FakeBrowser:
    """
    Browser fake. Cada new_context consome o próximo PageBehavior do
    roteiro; o último se repete. Rotas por URL têm precedência no goto.
    """

    def __init__(self, *behaviors: PageBehavior, routes: Optional[dict[str, PageBehavior]] = None):
        self.routes = routes or {}
        self._script = list(behaviors) or [PageBehavior()]
        self.contexts: list[FakeContext] = []
        self.connected = True
        self.close_calls = 0
        self.open_pages = 0
        self.peak_open_pages = 0

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **options) -> FakeContext:
        if not self.connected:
            raise PlaywrightError("Browser has been closed")
        behavior = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        context = FakeContext(self, behavior, options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.close_calls += 1
        self.connected = False

    @property
    def pages(self) -> list[FakePage]:
        return [page for context in self.contexts for page in context.pages]


class FakeLauncher:
    """Launcher contável; cada chamada entrega o próximo browser."""

    def __init__(self, *browsers: FakeBrowser, delay: float = 0.0, error: Optional[Exception] = None):
        self._browsers = list(browsers)
        self.delay = delay
        self.error = error
        self.calls = 0
        self.launched: list[FakeBrowser] = []

    async def __call__(self) -> FakeBrowser:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        browser = self._browsers.pop(0) if self._browsers else FakeBrowser()
        self.launched.append(browser)
        return browser


# FIXTURES DE CONFIGURAÇÃO

@pytest.fixture
def temp_data_dir(tmp_path) -> Path:
    """Cria diretório temporário para dados de teste."""
    data_dir = tmp_path / "data"
    data_dir.mkdir(exist_ok=True)
    return data_dir


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Configurações isoladas, sem espera entre retries."""
    return Settings(
        env="testing",
        data_path=tmp_path / "data",
        log_path=tmp_path / "logs",
        max_concurrent_sessions=3,
        max_retries=2,
        retry_backoff_multiplier=0,
        retry_backoff_min=0,
        retry_backoff_max=0,
        requests_per_minute_per_host=600,
    )


@pytest.fixture
def fast_budget() -> TimeoutBudget:
    """Timeouts curtos para testes."""
    return TimeoutBudget(navigation=0.05, selector=0.05, extraction=0.05, grace=0.1)


# FIXTURES DE FAKES

@pytest.fixture
def page_behavior():
    """Construtor de PageBehavior."""
    return PageBehavior


@pytest.fixture
def fake_browser():
    """Construtor de FakeBrowser a partir de PageBehaviors."""
    return FakeBrowser


@pytest.fixture
def fake_launcher():
    """Construtor de FakeLauncher."""
    return FakeLauncher


@pytest.fixture
def make_session(settings):
    """Cria RenderSession sobre um browser fake; retorna (sessão, launcher)."""

    def _make(*behaviors: PageBehavior, launcher: Optional[FakeLauncher] = None):
        launcher = launcher or FakeLauncher(FakeBrowser(*behaviors))
        manager = BrowserManager(settings=settings, launcher=launcher)
        return RenderSession(manager, settings=settings), launcher

    return _make


# FIXTURES DE MODELOS

@pytest.fixture
def request_iphone() -> ScrapeRequest:
    return ScrapeRequest(
        url="https://www.apple.com/iphone",
        selector=".current-price",
        product_id="prod-1",
    )


@pytest.fixture
def request_laptop() -> ScrapeRequest:
    return ScrapeRequest(
        url="https://shop.example.com/laptop",
        selector="#price",
        product_id="prod-2",
    )


@pytest.fixture
def success_result(request_iphone) -> ScrapeResult:
    return ScrapeResult.success(request_iphone, Decimal("999"))


@pytest.fixture
def selector_failure(request_laptop) -> ScrapeResult:
    return ScrapeResult.failure(
        request_laptop,
        ErrorKind.SELECTOR_NOT_FOUND,
        elapsed_seconds=10.2,
        message="Timeout 10000ms exceeded",
    )
