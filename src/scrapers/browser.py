"""
Gerenciador do browser compartilhado.
Mantém no máximo um processo Chromium vivo: lançamento sob demanda
(single-flight), relançamento após crash e encerramento idempotente.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import (
    async_playwright,
    Browser,
    Playwright,
    Error as PlaywrightError,
)

from config.logging_config import LoggerMixin
from config.settings import Settings, get_settings
from src.core.constants import CHROMIUM_LAUNCH_ARGS
from src.core.exceptions import BrowserUnavailableError
from src.core.types import BrowserState


# Função que lança e retorna um browser (substituível em testes)
BrowserLauncher = Callable[[], Awaitable[Any]]


@dataclass
class BrowserHandle:
    """Referência ao browser vivo, compartilhada entre as sessões."""

    browser: Browser
    generation: int
    launched_at: datetime = field(default_factory=datetime.now)

    def is_connected(self) -> bool:
        try:
            return self.browser.is_connected()
        except PlaywrightError:
            return False


class BrowserManager(LoggerMixin):
    """
    Dono do ciclo de vida do browser.

    Estados: uninitialized -> starting -> ready -> closing -> closed,
    com crashed (a partir de ready) levando de volta a starting na
    próxima chamada de acquire().
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        launcher: Optional[BrowserLauncher] = None,
    ):
        """
        Inicializa o gerenciador sem lançar o browser.

        Args:
            settings: Configurações (None = globais)
            launcher: Corrotina de lançamento (None = Chromium via Playwright)
        """
        self.settings = settings or get_settings()
        self._launcher = launcher or self._launch_chromium

        self._state = BrowserState.UNINITIALIZED
        self._handle: Optional[BrowserHandle] = None
        self._generation = 0
        self._playwright: Optional[Playwright] = None

        # Protege o lançamento: chamadas concorrentes aguardam o mesmo
        self._lock = asyncio.Lock()

    @property
    def state(self) -> BrowserState:
        return self._state

    @property
    def launch_count(self) -> int:
        """Quantidade de browsers lançados por este gerenciador."""
        return self._generation

    async def acquire(self) -> BrowserHandle:
        """
        Retorna o browser pronto, lançando-o se necessário.

        Raises:
            BrowserUnavailableError: Se o lançamento falhar
        """
        handle = self._ready_handle()
        if handle:
            return handle

        async with self._lock:
            # Outro chamador pode ter concluído o lançamento enquanto esperávamos
            handle = self._ready_handle()
            if handle:
                return handle

            if self._state == BrowserState.READY:
                # Handle pronto porém desconectado: crash detectado no acquire
                self.logger.warning(
                    "Browser desconectado, relançando",
                    generation=self._generation,
                )
                self._state = BrowserState.CRASHED

            if self._state == BrowserState.CRASHED:
                await self._dispose()

            return await self._start()

    async def release(self) -> None:
        """Fecha o browser. Idempotente."""
        async with self._lock:
            if self._state in (BrowserState.CLOSED, BrowserState.UNINITIALIZED):
                self._state = BrowserState.CLOSED
                return

            self._state = BrowserState.CLOSING
            await self._dispose()
            self._state = BrowserState.CLOSED

        self.logger.info("Browser fechado", generation=self._generation)

    def mark_crashed(self, handle: BrowserHandle) -> None:
        """
        Registra que o browser do handle morreu.
        Ignora handles de gerações anteriores (já substituídos).
        """
        if self._handle is None or handle.generation != self._handle.generation:
            return
        if self._state != BrowserState.READY:
            return

        self._state = BrowserState.CRASHED
        self.logger.warning(
            "Browser marcado como crashed",
            generation=handle.generation,
        )

    def _ready_handle(self) -> Optional[BrowserHandle]:
        if (
            self._state == BrowserState.READY
            and self._handle is not None
            and self._handle.is_connected()
        ):
            return self._handle
        return None

    async def _start(self) -> BrowserHandle:
        """Lança o browser. Deve ser chamado com o lock adquirido."""
        self._state = BrowserState.STARTING
        self.logger.debug("Lançando browser", headless=self.settings.headless)

        try:
            browser = await self._launcher()
        except Exception as e:
            self._state = BrowserState.UNINITIALIZED
            await self._stop_playwright()
            self.logger.error("Falha ao lançar browser", error=str(e))
            raise BrowserUnavailableError(
                "Falha ao lançar o browser",
                state=BrowserState.STARTING.value,
                cause=e,
            ) from e

        self._generation += 1
        self._handle = BrowserHandle(browser=browser, generation=self._generation)
        self._state = BrowserState.READY

        self.logger.info("Browser inicializado", generation=self._generation)
        return self._handle

    async def _dispose(self) -> None:
        """Fecha browser e Playwright atuais, tolerando browser já morto."""
        handle, self._handle = self._handle, None

        if handle is not None:
            try:
                await handle.browser.close()
            except PlaywrightError as e:
                self.logger.debug(
                    "Browser já encerrado ao fechar",
                    generation=handle.generation,
                    error=str(e),
                )

        await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        if self._playwright is None:
            return
        playwright, self._playwright = self._playwright, None
        try:
            await playwright.stop()
        except PlaywrightError as e:
            self.logger.debug("Erro ao parar Playwright", error=str(e))

    async def _launch_chromium(self) -> Browser:
        """Inicia o Playwright e lança o Chromium headless."""
        self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(
            headless=self.settings.headless,
            args=CHROMIUM_LAUNCH_ARGS,
        )
