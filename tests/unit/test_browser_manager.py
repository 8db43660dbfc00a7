"""
Testes unitários para o gerenciador do browser compartilhado.
"""

import asyncio

import pytest

from src.core.exceptions import BrowserUnavailableError
from src.core.types import BrowserState
from src.scrapers.browser import BrowserManager


class TestAcquire:
    """Lançamento sob demanda."""

    @pytest.mark.asyncio
    async def test_lancamento_unico_concorrente(self, settings, fake_launcher):
        """Chamadas simultâneas compartilham um único lançamento."""
        launcher = fake_launcher(delay=0.05)
        manager = BrowserManager(settings=settings, launcher=launcher)

        handles = await asyncio.gather(*(manager.acquire() for _ in range(10)))

        assert launcher.calls == 1
        assert len({id(h) for h in handles}) == 1
        assert manager.state == BrowserState.READY
        assert manager.launch_count == 1

    @pytest.mark.asyncio
    async def test_reutiliza_browser_pronto(self, settings, fake_launcher):
        launcher = fake_launcher()
        manager = BrowserManager(settings=settings, launcher=launcher)

        first = await manager.acquire()
        second = await manager.acquire()

        assert first is second
        assert launcher.calls == 1

    @pytest.mark.asyncio
    async def test_falha_no_lancamento(self, settings, fake_launcher):
        launcher = fake_launcher(error=RuntimeError("chromium not installed"))
        manager = BrowserManager(settings=settings, launcher=launcher)

        with pytest.raises(BrowserUnavailableError) as exc_info:
            await manager.acquire()

        assert manager.state == BrowserState.UNINITIALIZED
        assert isinstance(exc_info.value.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_nova_tentativa_apos_falha_no_lancamento(self, settings, fake_launcher):
        """Falha de lançamento não é permanente."""
        launcher = fake_launcher(error=RuntimeError("boom"))
        manager = BrowserManager(settings=settings, launcher=launcher)

        with pytest.raises(BrowserUnavailableError):
            await manager.acquire()

        launcher.error = None
        handle = await manager.acquire()

        assert handle.generation == 1
        assert launcher.calls == 2
        assert manager.state == BrowserState.READY

    @pytest.mark.asyncio
    async def test_browser_desconectado_e_relancado(self, settings, fake_launcher):
        launcher = fake_launcher()
        manager = BrowserManager(settings=settings, launcher=launcher)

        first = await manager.acquire()
        first.browser.connected = False

        second = await manager.acquire()

        assert second is not first
        assert second.generation == 2
        assert launcher.calls == 2


class TestCrash:
    """Detecção de crash e relançamento."""

    @pytest.mark.asyncio
    async def test_mark_crashed_provoca_relancamento(self, settings, fake_launcher):
        launcher = fake_launcher()
        manager = BrowserManager(settings=settings, launcher=launcher)

        first = await manager.acquire()
        manager.mark_crashed(first)
        assert manager.state == BrowserState.CRASHED

        second = await manager.acquire()

        assert second.generation == 2
        assert manager.state == BrowserState.READY
        assert first.browser.close_calls == 1
        assert launcher.calls == 2

    @pytest.mark.asyncio
    async def test_handle_antigo_ignorado(self, settings, fake_launcher):
        """Relato de crash de geração anterior não derruba o browser novo."""
        launcher = fake_launcher()
        manager = BrowserManager(settings=settings, launcher=launcher)

        stale = await manager.acquire()
        manager.mark_crashed(stale)
        current = await manager.acquire()

        manager.mark_crashed(stale)

        assert manager.state == BrowserState.READY
        assert await manager.acquire() is current
        assert launcher.calls == 2


class TestRelease:
    """Encerramento idempotente."""

    @pytest.mark.asyncio
    async def test_release_idempotente(self, settings, fake_launcher):
        launcher = fake_launcher()
        manager = BrowserManager(settings=settings, launcher=launcher)

        handle = await manager.acquire()
        await manager.release()
        await manager.release()

        assert handle.browser.close_calls == 1
        assert manager.state == BrowserState.CLOSED

    @pytest.mark.asyncio
    async def test_release_sem_browser(self, settings, fake_launcher):
        launcher = fake_launcher()
        manager = BrowserManager(settings=settings, launcher=launcher)

        await manager.release()

        assert launcher.calls == 0
        assert manager.state == BrowserState.CLOSED

    @pytest.mark.asyncio
    async def test_release_de_browser_morto(self, settings, fake_launcher):
        launcher = fake_launcher()
        manager = BrowserManager(settings=settings, launcher=launcher)

        handle = await manager.acquire()
        manager.mark_crashed(handle)
        await manager.release()

        assert manager.state == BrowserState.CLOSED

    @pytest.mark.asyncio
    async def test_acquire_apos_release_relanca(self, settings, fake_launcher):
        launcher = fake_launcher()
        manager = BrowserManager(settings=settings, launcher=launcher)

        await manager.acquire()
        await manager.release()
        handle = await manager.acquire()

        assert handle.generation == 2
        assert manager.state == BrowserState.READY
