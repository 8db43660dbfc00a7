"""
Orquestrador de scraping em lote.
Limita sessões concorrentes, aplica retry com backoff exponencial para
falhas transitórias e agrega um resultado por requisição.
"""

import asyncio
from typing import Iterable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from config.logging_config import LoggerMixin
from config.settings import Settings, get_settings
from src.core.models import BatchMetadata, ScrapeRequest, ScrapeResult
from src.core.types import ErrorKind
from src.scrapers.rate_limiter import RateLimiter
from src.scrapers.session import RenderSession, TimeoutBudget


def _should_retry(result: ScrapeResult) -> bool:
    return not result.is_success and result.is_retryable


def _return_last_result(retry_state: RetryCallState) -> ScrapeResult:
    """Retries esgotados: devolve a última falha classificada."""
    return retry_state.outcome.result()


class ScrapeOrchestrator(LoggerMixin):
    """
    Executa lotes de ScrapeRequest sobre uma RenderSession compartilhada.
    """

    def __init__(
        self,
        session: RenderSession,
        settings: Optional[Settings] = None,
        max_workers: Optional[int] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[wait_base] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Inicializa o orquestrador.

        Args:
            session: Sessão de renderização
            settings: Configurações (None = globais)
            max_workers: Sessões simultâneas (None = configurações)
            max_retries: Tentativas extras para falhas transitórias
            backoff: Estratégia de espera do tenacity entre tentativas
            rate_limiter: Limitador por host (None = configurações)
        """
        self.session = session
        self.settings = settings or get_settings()

        self.max_workers = max_workers or self.settings.max_concurrent_sessions
        self.max_retries = (
            self.settings.max_retries if max_retries is None else max_retries
        )
        self.backoff = backoff or wait_exponential(
            multiplier=self.settings.retry_backoff_multiplier,
            min=self.settings.retry_backoff_min,
            max=self.settings.retry_backoff_max,
        )
        self.rate_limiter = rate_limiter or RateLimiter(
            default_limit=self.settings.requests_per_minute_per_host,
        )

        self._semaphore = asyncio.Semaphore(self.max_workers)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    async def run_batch(
        self,
        requests: Iterable[ScrapeRequest],
        budget: Optional[TimeoutBudget] = None,
    ) -> dict[ScrapeRequest, ScrapeResult]:
        """
        Executa todas as requisições com concorrência limitada.

        Args:
            requests: Requisições (duplicadas são executadas uma vez)
            budget: Timeouts por etapa (None = configurações)

        Returns:
            Mapa requisição -> resultado final, com uma entrada por requisição
        """
        unique = list(dict.fromkeys(requests))
        if not unique:
            return {}

        metadata = BatchMetadata()
        self.logger.info(
            "Iniciando lote",
            batch_id=str(metadata.batch_id),
            requests=len(unique),
            workers=self.max_workers,
        )

        tasks = [self.run_one(request, budget) for request in unique]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: dict[ScrapeRequest, ScrapeResult] = {}
        for request, outcome in zip(unique, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                # run_one não deveria levantar; mantém a garantia N -> N
                self.logger.error(
                    "Erro inesperado no lote",
                    url=request.url,
                    error=str(outcome),
                )
                outcome = ScrapeResult.failure(
                    request,
                    ErrorKind.NETWORK_FAILURE,
                    message=str(outcome),
                )
            results[request] = outcome

        metadata.record(list(results.values()))
        metadata.mark_finished()

        self.logger.info(
            "Lote finalizado",
            batch_id=str(metadata.batch_id),
            succeeded=metadata.succeeded,
            failed=metadata.failed,
            attempts=metadata.total_attempts,
            failures=metadata.failures_by_kind,
            duration=f"{metadata.duration_seconds:.2f}s" if metadata.duration_seconds else "N/A",
        )

        return results

    async def run_one(
        self,
        request: ScrapeRequest,
        budget: Optional[TimeoutBudget] = None,
    ) -> ScrapeResult:
        """
        Executa uma requisição com retry, respeitando o limite de workers.

        Falhas permanentes (seletor/parsing) retornam após uma tentativa.
        A vaga de worker é ocupada só durante a sessão: esperas do rate
        limiter e do backoff não bloqueiam requisições de outros hosts.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.backoff,
            retry=retry_if_result(_should_retry),
            retry_error_callback=_return_last_result,
            before_sleep=self._log_retry,
        )

        attempts = 0

        async def attempt() -> ScrapeResult:
            nonlocal attempts
            attempts += 1
            await self.rate_limiter.acquire(request.host)
            async with self._semaphore:
                return await self.session.run(request, budget)

        result = await retrying(attempt)

        result.attempts = attempts
        return result

    def _log_retry(self, retry_state: RetryCallState) -> None:
        result: ScrapeResult = retry_state.outcome.result()
        self.logger.info(
            "Falha transitória, nova tentativa",
            url=result.request.url,
            kind=result.error.kind.value,
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            wait_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
        )
