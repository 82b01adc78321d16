"""
Domain: Product read model.

Products come from the external catalog service. The engine never mutates them;
it only needs the price and the variant list to build cart lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

# Largest unit price accepted; keeps cart totals well inside Decimal precision
MAX_PRICE = Decimal("9999999999.99")


@dataclass(frozen=True, slots=True)
class ProductVariant:
    variant_id: str
    in_stock: bool = True
    size: Optional[str] = None
    color: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Product:
    """
    Immutable catalog product as seen by the cart.

    price is the base unit price in dollars, between 0 and MAX_PRICE.
    """

    product_id: str
    price: Decimal
    variants: Tuple[ProductVariant, ...] = ()
    name: Optional[str] = None
    slug: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.price.is_finite() or self.price < 0:
            raise ValueError("price must be a finite amount >= 0")
        if self.price > MAX_PRICE:
            raise ValueError(f"price must be <= {MAX_PRICE}")

    def find_variant(self, variant_id: str) -> Optional[ProductVariant]:
        for variant in self.variants:
            if variant.variant_id == variant_id:
                return variant
        return None
