"""
Normalizador de preços.
Converte o texto extraído do elemento de preço em um Decimal validado.

Regras aplicadas em ordem, cada uma pura e testável isoladamente:
    1. rejeita texto vazio
    2. remove símbolos monetários
    3. remove espaços e separadores de milhar
    4. extrai o primeiro token numérico
    5. converte para Decimal
    6. valida a faixa plausível (0 < preço <= 1.000.000)

Exemplos:
    "$999"           -> 999
    "€1,299.99"      -> 1299.99
    "From $799"      -> 799
    "£499.00"        -> 499
    "Price: ₹29,999" -> 29999
"""

import unicodedata
from decimal import Decimal, InvalidOperation
from typing import Optional

from config.logging_config import LoggerMixin
from src.core.constants import (
    CURRENCY_SYMBOLS,
    MAX_PRICE,
    MIN_PRICE_EXCLUSIVE,
    PRICE_TOKEN_PATTERN,
    THOUSANDS_SEPARATORS,
)


# REGRAS

def is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


def strip_currency_symbols(text: str) -> str:
    """Remove símbolos monetários conhecidos e qualquer caractere Unicode 'Sc'."""
    return "".join(
        ch for ch in text
        if ch not in CURRENCY_SYMBOLS and unicodedata.category(ch) != "Sc"
    )


def strip_separators(text: str) -> str:
    """Remove espaços (inclusive NBSP) e separadores de milhar."""
    return "".join(
        ch for ch in text
        if not ch.isspace() and ch not in THOUSANDS_SEPARATORS
    )


def extract_numeric_token(text: str) -> Optional[str]:
    """Primeiro token numérico do texto limpo, ou None."""
    match = PRICE_TOKEN_PATTERN.search(text)
    return match.group(0) if match else None


def parse_decimal(token: str) -> Optional[Decimal]:
    try:
        value = Decimal(token)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def within_bounds(
    value: Decimal,
    minimum: Decimal = MIN_PRICE_EXCLUSIVE,
    maximum: Decimal = MAX_PRICE,
) -> bool:
    """Faixa plausível: descarta SKUs, anos e outros números que não são preço."""
    return minimum < value <= maximum


class PriceNormalizer(LoggerMixin):
    """
    Normalizador de texto de preço.
    Permissivo quanto a moeda e separadores, estrito quanto à faixa.
    """

    def __init__(
        self,
        minimum: Decimal = MIN_PRICE_EXCLUSIVE,
        maximum: Decimal = MAX_PRICE,
    ):
        """
        Inicializa o normalizador.

        Args:
            minimum: Limite inferior exclusivo
            maximum: Limite superior inclusivo
        """
        self.minimum = minimum
        self.maximum = maximum

    def normalize(self, text: Optional[str]) -> Optional[Decimal]:
        """
        Converte texto de preço para Decimal.

        Args:
            text: Texto visível do elemento de preço

        Returns:
            Preço validado, ou None em caso de falha de parsing
        """
        if is_blank(text):
            self.logger.debug("Texto de preço vazio")
            return None

        cleaned = strip_separators(strip_currency_symbols(text))

        token = extract_numeric_token(cleaned)
        if token is None:
            self.logger.debug("Nenhum token numérico encontrado", text=text[:100])
            return None

        value = parse_decimal(token)
        if value is None:
            self.logger.debug("Token não numérico", token=token)
            return None

        if not within_bounds(value, self.minimum, self.maximum):
            self.logger.debug(
                "Preço fora da faixa plausível",
                value=str(value),
                minimum=str(self.minimum),
                maximum=str(self.maximum),
            )
            return None

        return value
