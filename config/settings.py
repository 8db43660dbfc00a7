"""
Configurações globais do sistema usando Pydantic Settings.
Carrega variáveis de ambiente e define valores padrão.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configurações principais do sistema."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Ambiente
    env: Literal["development", "production", "testing"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    # Timeouts do browser (milissegundos)
    navigation_timeout: int = Field(default=30000, ge=1000, le=180000)
    selector_timeout: int = Field(default=10000, ge=500, le=120000)
    extraction_timeout: int = Field(default=5000, ge=500, le=60000)

    # Concorrência
    max_concurrent_sessions: int = Field(default=3, ge=1, le=16)

    # Retries (tentativas extras para falhas transitórias)
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_backoff_multiplier: float = Field(default=1.0, ge=0)
    retry_backoff_min: float = Field(default=1.0, ge=0)
    retry_backoff_max: float = Field(default=10.0, ge=0)

    # Rate limiting por host (requisições por minuto)
    requests_per_minute_per_host: int = Field(default=30, ge=1, le=600)

    # Paths
    data_path: Path = Field(default=Path("./data"))
    log_path: Path = Field(default=Path("./logs"))

    # User Agent
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        )
    )

    # Playwright
    headless: bool = True
    viewport_width: int = Field(default=1920, ge=320, le=7680)
    viewport_height: int = Field(default=1080, ge=240, le=4320)

    @field_validator("data_path", "log_path", mode="after")
    @classmethod
    def ensure_path_exists(cls, v: Path) -> Path:
        """Garante que os diretórios existam."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def viewport(self) -> dict[str, int]:
        """Viewport de desktop usado em cada aba."""
        return {"width": self.viewport_width, "height": self.viewport_height}


@lru_cache
def get_settings() -> Settings:
    """
    Retorna instância singleton das configurações.
    Usa cache para evitar recarregar .env múltiplas vezes.
    """
    return Settings()
