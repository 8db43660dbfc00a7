"""
Modelos de dados Pydantic para o sistema.
Define requisições de scraping, resultados e metadados de lote.
"""

from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Optional
from urllib.parse import urlparse
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from src.core.constants import MAX_PRICE
from src.core.types import ErrorKind, ScrapeStatus, Selector


def is_absolute_url(value: str) -> bool:
    """Verifica se a string é uma URL http(s) absoluta."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ScrapeRequest(BaseModel):
    """
    Item de trabalho vindo do registro de produtos.
    Imutável e hashable: serve de chave no resultado do lote.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    selector: Selector
    product_id: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Exige URL absoluta."""
        v = v.strip()
        if not is_absolute_url(v):
            raise ValueError(f"URL inválida: {v!r}")
        return v

    @property
    def host(self) -> str:
        """Host da URL (chave do rate limiter)."""
        return urlparse(self.url).netloc.lower()


class ScrapeError(BaseModel):
    """
    Contexto de uma falha classificada.
    Carrega apenas texto, nunca o objeto da exceção original.
    """

    kind: ErrorKind
    url: str
    selector: str
    elapsed_seconds: float = Field(default=0.0, ge=0)
    message: Optional[str] = None


class ScrapeResult(BaseModel):
    """
    Resultado de uma requisição: sucesso com preço ou falha com motivo.
    """

    request: ScrapeRequest
    status: ScrapeStatus

    # Variante SUCCESS
    price: Optional[Decimal] = Field(default=None, gt=0, le=MAX_PRICE)

    # Variante FAILURE
    error: Optional[ScrapeError] = None

    attempts: int = Field(default=1, ge=1)
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_variant(self):
        """Garante consistência entre status, preço e erro."""
        if self.status == ScrapeStatus.SUCCESS:
            if self.price is None or self.error is not None:
                raise ValueError("Sucesso exige preço e nenhum erro")
        else:
            if self.error is None or self.price is not None:
                raise ValueError("Falha exige erro e nenhum preço")
        return self

    @classmethod
    def success(
        cls,
        request: ScrapeRequest,
        price: Decimal,
        started_at: Optional[datetime] = None,
    ) -> "ScrapeResult":
        return cls(
            request=request,
            status=ScrapeStatus.SUCCESS,
            price=price,
            started_at=started_at or datetime.now(),
        )

    @classmethod
    def failure(
        cls,
        request: ScrapeRequest,
        kind: ErrorKind,
        *,
        elapsed_seconds: float = 0.0,
        message: Optional[str] = None,
        started_at: Optional[datetime] = None,
    ) -> "ScrapeResult":
        return cls(
            request=request,
            status=ScrapeStatus.FAILURE,
            error=ScrapeError(
                kind=kind,
                url=request.url,
                selector=request.selector,
                elapsed_seconds=round(max(elapsed_seconds, 0.0), 3),
                message=message,
            ),
            started_at=started_at or datetime.now(),
        )

    @property
    def is_success(self) -> bool:
        return self.status == ScrapeStatus.SUCCESS

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @property
    def is_retryable(self) -> bool:
        """Falha transitória que merece nova tentativa."""
        return self.error is not None and self.error.kind.is_transient

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


class BatchMetadata(BaseModel):
    """Metadados de uma execução em lote."""

    batch_id: UUID = Field(default_factory=uuid4)
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    total_requests: int = 0
    succeeded: int = 0
    failed: int = 0
    total_attempts: int = 0
    failures_by_kind: dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def duration_seconds(self) -> Optional[float]:
        """Duração em segundos."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def mark_finished(self):
        """Marca como finalizado."""
        self.finished_at = datetime.now()

    def record(self, results: list[ScrapeResult]) -> None:
        """Contabiliza os resultados finais do lote."""
        self.total_requests = len(results)
        self.succeeded = sum(1 for r in results if r.is_success)
        self.failed = self.total_requests - self.succeeded
        self.total_attempts = sum(r.attempts for r in results)
        self.failures_by_kind = dict(
            Counter(r.error.kind.value for r in results if r.error)
        )
