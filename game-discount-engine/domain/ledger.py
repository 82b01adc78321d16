"""
Domain: Discount ledger.

The ledger is the tuple of discounts held by the Cart. These functions are the
only way it changes:

- add_discount: ignored if the id already exists; otherwise evicts any other
  live discount for the same product and appends the new one unapplied. The
  most recent play always supersedes, win or lose.
- apply_discount: succeeds only for an existing, unexpired discount whose
  product matches the target line; sets the line's earned discount.
- remove_discount: marks a discount unapplied. Cart lines keep the percent
  they captured.

Expiration is evaluated lazily against an explicit `now`. Nothing sweeps the
ledger; expired entries stay until the cart is cleared.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, Tuple

from .cart import Cart, Discount

logger = logging.getLogger(__name__)


def add_discount(discounts: Tuple[Discount, ...], discount: Discount, now: datetime) -> Tuple[Discount, ...]:
    if any(existing.discount_id == discount.discount_id for existing in discounts):
        logger.debug("Discount already recorded", extra={"discount_id": discount.discount_id})
        return discounts

    kept = tuple(
        existing
        for existing in discounts
        if not (existing.product_id == discount.product_id and existing.is_live(now))
    )
    return kept + (replace(discount, applied=False),)


def apply_discount(cart: Cart, discount_id: str, item_id: str, now: datetime) -> Cart:
    discount = cart.find_discount(discount_id)
    if discount is None:
        logger.warning("apply_discount: discount not found", extra={"discount_id": discount_id})
        return cart

    if discount.is_expired(now):
        logger.info(
            "apply_discount: discount has expired",
            extra={"discount_id": discount_id, "expires_at": discount.expires_at.isoformat()},
        )
        return cart

    item = cart.find_item(item_id)
    if item is None:
        logger.warning("apply_discount: cart item not found", extra={"item_id": item_id})
        return cart

    if discount.product_id != item.product_id:
        logger.warning(
            "apply_discount: discount does not apply to this product",
            extra={"discount_id": discount_id, "product_id": item.product_id},
        )
        return cart

    items = tuple(
        line.with_earned_discount(discount.discount_percent) if line.item_id == item_id else line
        for line in cart.items
    )
    discounts = tuple(
        replace(entry, applied=True) if entry.discount_id == discount_id else entry
        for entry in cart.discounts
    )
    return replace(cart, items=items, discounts=discounts, last_updated=now)


def remove_discount(discounts: Tuple[Discount, ...], discount_id: str) -> Tuple[Discount, ...]:
    if not any(entry.discount_id == discount_id for entry in discounts):
        logger.warning("remove_discount: discount not found", extra={"discount_id": discount_id})
        return discounts

    return tuple(
        replace(entry, applied=False) if entry.discount_id == discount_id else entry
        for entry in discounts
    )


def live_discounts(discounts: Tuple[Discount, ...], now: datetime) -> Tuple[Discount, ...]:
    """Discounts still usable at `now`, for display."""

    return tuple(entry for entry in discounts if entry.is_live(now))


def discount_for_product(discounts: Tuple[Discount, ...], product_id: str, now: datetime) -> Optional[Discount]:
    for entry in discounts:
        if entry.product_id == product_id and entry.is_live(now):
            return entry
    return None


__all__ = [
    "add_discount",
    "apply_discount",
    "discount_for_product",
    "live_discounts",
    "remove_discount",
]
