"""
Feed de produtos monitorados.
Lê produtos cadastrados (JSON exportado do registro) e gera as
requisições de scraping dos produtos ativos.
"""

import json
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.core.exceptions import InvalidRequestError
from src.core.models import ScrapeRequest, is_absolute_url
from src.core.types import Selector


class TrackedProduct(BaseModel):
    """Produto cadastrado para monitoramento de preço."""

    id: str
    name: str = Field(..., min_length=1, max_length=300)
    url: str
    selector: Selector
    is_active: bool = True
    user_id: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not is_absolute_url(v):
            raise ValueError("Invalid URL format")
        return v

    def to_request(self) -> ScrapeRequest:
        return ScrapeRequest(url=self.url, selector=self.selector, product_id=self.id)


def load_tracked_products(path: Path) -> list[TrackedProduct]:
    """
    Carrega produtos de um arquivo JSON (lista de objetos).

    Aceita as chaves camelCase do registro de produtos (isActive, userId).

    Raises:
        InvalidRequestError: Se o arquivo ou algum produto for inválido
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidRequestError(
            "Arquivo de produtos ilegível",
            field="path",
            value=str(path),
            cause=e,
        ) from e

    if not isinstance(raw, list):
        raise InvalidRequestError(
            "Arquivo de produtos deve conter uma lista",
            field="path",
            value=str(path),
        )

    products = []
    for index, item in enumerate(raw):
        if isinstance(item, dict):
            item = _from_registry_keys(item)
        try:
            products.append(TrackedProduct.model_validate(item))
        except ValidationError as e:
            raise InvalidRequestError(
                f"Produto inválido na posição {index}",
                field="products",
                value=item,
                cause=e,
            ) from e

    return products


def active_requests(products: Iterable[TrackedProduct]) -> list[ScrapeRequest]:
    """Requisições apenas dos produtos ativos."""
    return [product.to_request() for product in products if product.is_active]


def _from_registry_keys(item: dict) -> dict:
    """Converte chaves camelCase do registro para os campos do modelo."""
    aliases = {"isActive": "is_active", "userId": "user_id"}
    converted = {aliases.get(key, key): value for key, value in item.items()}
    if "id" in converted:
        converted["id"] = str(converted["id"])
    return converted
