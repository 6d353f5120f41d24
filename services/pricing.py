# services/pricing.py
from decimal import Decimal
from typing import Mapping

from config.settings import settings
from core.exceptions import NotFound
from models.subscription import ProductType


class PricingTable:
    """Read-only per-litre price lookup."""

    def __init__(self, prices: Mapping[ProductType, Decimal]):
        self._prices = {ProductType(k): Decimal(str(v)) for k, v in prices.items()}

    @classmethod
    def from_settings(cls, cfg=settings) -> "PricingTable":
        return cls({ProductType.BUFFALO: cfg.BUFFALO_PRICE, ProductType.COW: cfg.COW_PRICE})

    def unit_price(self, product_type: ProductType) -> Decimal:
        try:
            return self._prices[ProductType(product_type)]
        except (KeyError, ValueError):
            raise NotFound(f"no price configured for product {product_type!r}")

    def as_dict(self) -> dict:
        return {k.value: v for k, v in self._prices.items()}
