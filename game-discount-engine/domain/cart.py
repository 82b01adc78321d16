"""
Domain: Cart, cart lines and earned discounts.

Rules implemented here and enforced by domain/cart_reducer.py:
- A cart line is identified by item_id, never by product_id. The same product at
  two different earned-discount levels is two separate lines.
- Quantity per line is clamped to [1, 99].
- A line's earned discount is clamped to [0, 15] percent and is captured on the
  line itself; later ledger changes never rewrite it.
- Discounts live for 30 minutes from earned_at. A discount is expired iff
  now > expires_at.

This module contains only pure domain entities/value objects: no I/O, no frameworks.
All timestamps must be passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional, Tuple

from .games import GameIdentifier
from .product import Product, ProductVariant
from .time import require_utc_timestamp

MIN_QUANTITY = 1
MAX_QUANTITY = 99
MAX_LINE_DISCOUNT_PERCENT = 15
DISCOUNT_LIFETIME = timedelta(minutes=30)


def clamp_quantity(quantity: int) -> int:
    return max(MIN_QUANTITY, min(MAX_QUANTITY, int(quantity)))


def clamp_line_discount(percent: int) -> int:
    return max(0, min(MAX_LINE_DISCOUNT_PERCENT, int(percent)))


@dataclass(frozen=True, slots=True)
class CartItem:
    """
    One cart line.

    product is the shared read model from the catalog; variant_id selects the
    size/colour the shopper picked.
    """

    item_id: str
    product: Product
    variant_id: str
    quantity: int
    earned_discount: int
    added_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("added_at", self.added_at)

    @property
    def product_id(self) -> str:
        return self.product.product_id

    @property
    def variant(self) -> Optional[ProductVariant]:
        return self.product.find_variant(self.variant_id)

    def with_quantity(self, quantity: int) -> "CartItem":
        return replace(self, quantity=clamp_quantity(quantity))

    def with_earned_discount(self, percent: int) -> "CartItem":
        return replace(self, earned_discount=clamp_line_discount(percent))


@dataclass(frozen=True, slots=True)
class Discount:
    """
    Discount earned by playing a game for one product.

    applied is True while the discount is reflected in a cart line.
    """

    discount_id: str
    product_id: str
    game_type: GameIdentifier
    discount_percent: int
    earned_at: datetime
    expires_at: datetime
    applied: bool = False

    def __post_init__(self) -> None:
        require_utc_timestamp("earned_at", self.earned_at)
        require_utc_timestamp("expires_at", self.expires_at)
        if self.expires_at < self.earned_at:
            raise ValueError("expires_at must be >= earned_at")

    @staticmethod
    def earned(
        *,
        discount_id: str,
        product_id: str,
        game_type: GameIdentifier,
        discount_percent: int,
        earned_at: datetime,
        lifetime: timedelta = DISCOUNT_LIFETIME,
    ) -> "Discount":
        """Build a fresh, unapplied discount expiring `lifetime` after earned_at."""

        return Discount(
            discount_id=discount_id,
            product_id=product_id,
            game_type=game_type,
            discount_percent=max(0, int(discount_percent)),
            earned_at=earned_at,
            expires_at=earned_at + lifetime,
            applied=False,
        )

    def is_expired(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        return now > self.expires_at

    def is_live(self, now: datetime) -> bool:
        return not self.is_expired(now)


@dataclass(frozen=True, slots=True)
class Cart:
    """
    Shopper cart: ordered lines plus every discount earned this session.

    Expired discounts stay in `discounts` until the cart is cleared; they are
    only filtered out for display.
    """

    items: Tuple[CartItem, ...]
    discounts: Tuple[Discount, ...]
    last_updated: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("last_updated", self.last_updated)

    @staticmethod
    def empty(now: datetime) -> "Cart":
        return Cart(items=(), discounts=(), last_updated=now)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, item_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def find_discount(self, discount_id: str) -> Optional[Discount]:
        for discount in self.discounts:
            if discount.discount_id == discount_id:
                return discount
        return None


__all__ = [
    "Cart",
    "CartItem",
    "DISCOUNT_LIFETIME",
    "Discount",
    "MAX_LINE_DISCOUNT_PERCENT",
    "MAX_QUANTITY",
    "MIN_QUANTITY",
    "clamp_line_discount",
    "clamp_quantity",
]
