"""
Domain: Cart totals.

compute_totals(cart) is side-effect free and derives everything from the cart
lines:

    subtotal        = sum(price * quantity)
    raw_discount    = sum(price * quantity * earned_discount / 100)
    cap             = subtotal * 0.15
    total_discount  = min(raw_discount, cap)
    effective %     = total_discount / subtotal * 100   (0 for an empty cart)
    total           = subtotal - total_discount

Each line's discount comes from its own captured earned_discount, not from the
ledger, so expired ledger entries never change a total.

Intermediate math keeps full Decimal precision. Only the final values are
quantized: money to cents (subtotal HALF_UP, discount toward zero so the cap
still holds after rounding), the effective percent to one decimal place.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import List

from .cart import Cart, CartItem

CART_DISCOUNT_CAP = Decimal("0.15")

_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")
_HUNDRED = Decimal("100")
_ZERO = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class CartTotals:
    subtotal: Decimal
    total_discount: Decimal
    effective_discount_percent: Decimal
    total: Decimal
    item_count: int
    savings: Decimal


@dataclass(frozen=True, slots=True)
class LinePrice:
    """Per-line price breakdown before the cart-level cap."""

    item_id: str
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal


def _line_subtotal(item: CartItem) -> Decimal:
    return item.product.price * item.quantity


def _line_discount(item: CartItem) -> Decimal:
    return _line_subtotal(item) * item.earned_discount / _HUNDRED


def compute_totals(cart: Cart) -> CartTotals:
    if not cart.items:
        return CartTotals(
            subtotal=_ZERO,
            total_discount=_ZERO,
            effective_discount_percent=Decimal("0.0"),
            total=_ZERO,
            item_count=0,
            savings=_ZERO,
        )

    subtotal = sum((_line_subtotal(item) for item in cart.items), Decimal(0))
    raw_discount = sum((_line_discount(item) for item in cart.items), Decimal(0))
    cap = subtotal * CART_DISCOUNT_CAP
    total_discount = min(raw_discount, cap)

    if subtotal > 0:
        effective = total_discount / subtotal * _HUNDRED
    else:
        effective = Decimal(0)

    rounded_subtotal = subtotal.quantize(_CENT, rounding=ROUND_HALF_UP)
    rounded_discount = total_discount.quantize(_CENT, rounding=ROUND_DOWN)

    return CartTotals(
        subtotal=rounded_subtotal,
        total_discount=rounded_discount,
        effective_discount_percent=effective.quantize(_TENTH, rounding=ROUND_HALF_UP),
        total=rounded_subtotal - rounded_discount,
        item_count=sum(item.quantity for item in cart.items),
        savings=rounded_discount,
    )


def line_prices(cart: Cart) -> List[LinePrice]:
    prices: List[LinePrice] = []
    for item in cart.items:
        original = _line_subtotal(item).quantize(_CENT, rounding=ROUND_HALF_UP)
        discount = _line_discount(item).quantize(_CENT, rounding=ROUND_DOWN)
        prices.append(LinePrice(
            item_id=item.item_id,
            original_price=original,
            discount_amount=discount,
            final_price=original - discount,
        ))
    return prices


__all__ = [
    "CART_DISCOUNT_CAP",
    "CartTotals",
    "LinePrice",
    "compute_totals",
    "line_prices",
]
