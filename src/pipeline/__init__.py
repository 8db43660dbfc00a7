"""
Módulo de pipeline: normalização do texto de preço.
"""

from src.pipeline.normalizer import PriceNormalizer

__all__ = [
    "PriceNormalizer",
]
