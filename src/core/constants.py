"""
Constantes e padrões regex para extração de preços e controle do browser.
"""

import re
from decimal import Decimal
from typing import Final

# =============================================================================
# NORMALIZAÇÃO DE PREÇOS
# =============================================================================

# Símbolos explícitos; demais símbolos monetários são detectados pela
# categoria Unicode "Sc"
CURRENCY_SYMBOLS: Final[frozenset[str]] = frozenset("$€£₹¥₩₽₺₫₪¢")

THOUSANDS_SEPARATORS: Final[frozenset[str]] = frozenset(",")

# Primeiro token numérico: dígitos, ponto decimal opcional, dígitos opcionais
PRICE_TOKEN_PATTERN: Final[re.Pattern] = re.compile(r"\d+\.?\d*")

MIN_PRICE_EXCLUSIVE: Final[Decimal] = Decimal("0")
MAX_PRICE: Final[Decimal] = Decimal("1000000")


# =============================================================================
# BROWSER
# =============================================================================

# Flags seguras para execução em container
CHROMIUM_LAUNCH_ARGS: Final[list[str]] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

# Espera de navegação: rede ociosa
NAVIGATION_WAIT_UNTIL: Final[str] = "networkidle"

# Mensagens do Playwright para seletor malformado (falha permanente)
SELECTOR_SYNTAX_MARKERS: Final[tuple[str, ...]] = (
    "while parsing selector",
    "is not a valid selector",
    "unexpected token",
    "unknown engine",
    "failed to parse selector",
)

# Status HTTP tratados como falha de rede na navegação
RETRYABLE_HTTP_STATUSES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})
