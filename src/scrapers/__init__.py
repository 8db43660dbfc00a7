"""
Módulo de scrapers: browser compartilhado, sessões de renderização
e orquestração em lote.
"""

from src.scrapers.browser import BrowserHandle, BrowserManager
from src.scrapers.rate_limiter import RateLimiter
from src.scrapers.session import RenderSession, TimeoutBudget
from src.scrapers.orchestrator import ScrapeOrchestrator

__all__ = [
    "BrowserHandle",
    "BrowserManager",
    "RateLimiter",
    "RenderSession",
    "TimeoutBudget",
    "ScrapeOrchestrator",
]
