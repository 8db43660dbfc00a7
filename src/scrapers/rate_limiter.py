"""
Rate limiter para controle de requisições por host.
Evita que retries e requisições irmãs sobrecarreguem o mesmo site.
"""

import asyncio
import time
from typing import Optional

from config.logging_config import LoggerMixin

WINDOW_SECONDS = 60.0


class RateLimiter(LoggerMixin):
    """
    Rate limiter de janela deslizante por host.

    Cada acquire reserva o próximo horário livre do host e só então aguarda,
    sem lock: quem espera por um host não bloqueia requisições de outros.
    """

    def __init__(self, default_limit: int = 30, window_seconds: float = WINDOW_SECONDS):
        """
        Inicializa o rate limiter.

        Args:
            default_limit: Requisições por janela para hosts sem limite próprio
            window_seconds: Tamanho da janela deslizante
        """
        self.default_limit = default_limit
        self.window_seconds = window_seconds
        # Horários (monotônicos) concedidos por host, em ordem crescente;
        # podem estar no futuro quando reservados por quem ainda aguarda
        self._slots: dict[str, list[float]] = {}
        self._limits: dict[str, int] = {}

    @property
    def hosts(self) -> list[str]:
        """Hosts com requisições dentro da janela."""
        return list(self._slots)

    def configure(self, host: str, requests_per_minute: int) -> None:
        """
        Define limite específico para um host.

        Args:
            host: Host (netloc) da URL
            requests_per_minute: Máximo de requisições por janela
        """
        self._limits[host] = requests_per_minute
        self.logger.debug("Rate limit configurado", host=host, limit=requests_per_minute)

    def get_limit(self, host: str) -> int:
        return self._limits.get(host, self.default_limit)

    async def acquire(self, host: str) -> None:
        """
        Aguarda até ter permissão para requisitar o host.

        Args:
            host: Host (netloc) da URL
        """
        now = time.monotonic()
        slots = self._prune(host, now)
        limit = self.get_limit(host)

        start = now
        if len(slots) >= limit:
            start = max(now, slots[-limit] + self.window_seconds)
        self._slots.setdefault(host, slots).append(start)

        wait_time = start - now
        if wait_time > 0:
            self.logger.debug(
                "Rate limit atingido, aguardando",
                host=host,
                wait_seconds=round(wait_time, 2),
            )
            await asyncio.sleep(wait_time)

    def get_current_usage(self, host: str) -> dict:
        """
        Retorna uso atual do rate limit.

        Args:
            host: Host consultado

        Returns:
            Dicionário com estatísticas de uso
        """
        current = len(self._prune(host, time.monotonic()))
        limit = self.get_limit(host)

        return {
            "host": host,
            "current": current,
            "limit": limit,
            "available": max(0, limit - current),
        }

    def reset(self, host: Optional[str] = None) -> None:
        """
        Reseta contadores do rate limiter.

        Args:
            host: Host específico ou None para todos
        """
        if host:
            self._slots.pop(host, None)
        else:
            self._slots.clear()

    def _prune(self, host: str, now: float) -> list[float]:
        """Descarta horários fora da janela; host sem horários sai do mapa."""
        window_start = now - self.window_seconds
        slots = [ts for ts in self._slots.get(host, ()) if ts > window_start]
        if slots:
            self._slots[host] = slots
        else:
            self._slots.pop(host, None)
        return slots
