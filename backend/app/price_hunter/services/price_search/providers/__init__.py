"""Store adapters for the price search."""

from .amazon import AmazonPriceProvider
from .base import BasePriceProvider, SinglePhasePriceProvider, TwoPhasePriceProvider
from .noon import NoonPriceProvider
from .sharaf_dg import SharafDGPriceProvider

__all__ = [
    "BasePriceProvider",
    "SinglePhasePriceProvider",
    "TwoPhasePriceProvider",
    "AmazonPriceProvider",
    "NoonPriceProvider",
    "SharafDGPriceProvider",
]
