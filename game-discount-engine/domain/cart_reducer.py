"""
Domain: Cart state transitions.

reduce_cart(cart, action, now) -> cart is the single pure transition function
for the Cart and its discount ledger. It performs no I/O and reads no clock;
callers pass `now` explicitly. Misuse (unknown ids, expired discounts,
out-of-range quantities) never raises: the transition is a no-op or the value
is clamped, and the miss is logged.

A no-op returns the very same Cart instance, so callers can compare with `is`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Union
from uuid import uuid4

from . import ledger
from .cart import Cart, CartItem, Discount, clamp_line_discount, clamp_quantity
from .product import Product
from .time import require_utc_timestamp

logger = logging.getLogger(__name__)


def _new_item_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class AddItem:
    product: Product
    variant_id: str
    quantity: int = 1
    earned_discount: int = 0
    item_id: str = field(default_factory=_new_item_id)


@dataclass(frozen=True, slots=True)
class RemoveItem:
    item_id: str


@dataclass(frozen=True, slots=True)
class UpdateQuantity:
    item_id: str
    quantity: int


@dataclass(frozen=True, slots=True)
class AddDiscount:
    discount: Discount


@dataclass(frozen=True, slots=True)
class ApplyDiscount:
    discount_id: str
    item_id: str


@dataclass(frozen=True, slots=True)
class RemoveDiscount:
    discount_id: str


@dataclass(frozen=True, slots=True)
class ClearCart:
    pass


@dataclass(frozen=True, slots=True)
class LoadCart:
    cart: Cart


CartAction = Union[
    AddItem,
    RemoveItem,
    UpdateQuantity,
    AddDiscount,
    ApplyDiscount,
    RemoveDiscount,
    ClearCart,
    LoadCart,
]


def reduce_cart(cart: Cart, action: CartAction, now: datetime) -> Cart:
    require_utc_timestamp("now", now)

    if isinstance(action, AddItem):
        return _add_item(cart, action, now)

    if isinstance(action, RemoveItem):
        if cart.find_item(action.item_id) is None:
            logger.warning("remove_item: cart item not found", extra={"item_id": action.item_id})
            return cart
        items = tuple(item for item in cart.items if item.item_id != action.item_id)
        return replace(cart, items=items, last_updated=now)

    if isinstance(action, UpdateQuantity):
        if cart.find_item(action.item_id) is None:
            logger.warning("update_quantity: cart item not found", extra={"item_id": action.item_id})
            return cart
        items = tuple(
            item.with_quantity(action.quantity) if item.item_id == action.item_id else item
            for item in cart.items
        )
        return replace(cart, items=items, last_updated=now)

    if isinstance(action, AddDiscount):
        discounts = ledger.add_discount(cart.discounts, action.discount, now)
        if discounts is cart.discounts:
            return cart
        return replace(cart, discounts=discounts, last_updated=now)

    if isinstance(action, ApplyDiscount):
        return ledger.apply_discount(cart, action.discount_id, action.item_id, now)

    if isinstance(action, RemoveDiscount):
        discounts = ledger.remove_discount(cart.discounts, action.discount_id)
        if discounts is cart.discounts:
            return cart
        return replace(cart, discounts=discounts, last_updated=now)

    if isinstance(action, ClearCart):
        return Cart.empty(now)

    if isinstance(action, LoadCart):
        return action.cart

    raise TypeError(f"Unknown cart action: {type(action).__name__}")


def _add_item(cart: Cart, action: AddItem, now: datetime) -> Cart:
    product = action.product
    if product.find_variant(action.variant_id) is None:
        logger.warning(
            "add_item: variant not found",
            extra={"product_id": product.product_id, "variant_id": action.variant_id},
        )
        return cart

    earned = clamp_line_discount(action.earned_discount)
    quantity = clamp_quantity(action.quantity)

    # Lines merge only when product, variant and earned discount all match.
    for index, item in enumerate(cart.items):
        if (
            item.product_id == product.product_id
            and item.variant_id == action.variant_id
            and item.earned_discount == earned
        ):
            items = list(cart.items)
            items[index] = item.with_quantity(item.quantity + quantity)
            return replace(cart, items=tuple(items), last_updated=now)

    new_item = CartItem(
        item_id=action.item_id,
        product=product,
        variant_id=action.variant_id,
        quantity=quantity,
        earned_discount=earned,
        added_at=now,
    )
    return replace(cart, items=cart.items + (new_item,), last_updated=now)


__all__ = [
    "AddDiscount",
    "AddItem",
    "ApplyDiscount",
    "CartAction",
    "ClearCart",
    "LoadCart",
    "RemoveDiscount",
    "RemoveItem",
    "UpdateQuantity",
    "reduce_cart",
]
