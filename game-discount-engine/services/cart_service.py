"""
Cart service.

CartService is the single owner of a shopper's Cart. Every mutation:
1. runs as one whole reduce_cart transition under a lock (no interleaving of
   concurrent requests),
2. is mirrored to storage through CartRepository when the cart changed.

clear_cart() starts a new cart session; listeners registered with
on_new_session() are told the new session id.

Totals are computed on every read and never stored.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from domain import ledger
from domain.cart import Cart, Discount, clamp_line_discount
from domain.cart_reducer import (
    AddDiscount,
    AddItem,
    ApplyDiscount,
    CartAction,
    ClearCart,
    RemoveDiscount,
    RemoveItem,
    UpdateQuantity,
    reduce_cart,
)
from domain.product import Product
from domain.time import utc_now
from domain.totals import CartTotals, compute_totals
from repositories.cart_repository import CartRepository


class CartService:
    def __init__(self, repository: CartRepository, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._repository = repository
        self._clock = clock
        self._lock = threading.RLock()
        self._cart = repository.load_cart(clock())
        self._session_id = repository.get_or_create_session_id()
        self._session_listeners: List[Callable[[str], None]] = []

    @property
    def cart(self) -> Cart:
        with self._lock:
            return self._cart

    @property
    def session_id(self) -> str:
        with self._lock:
            return self._session_id

    def on_new_session(self, listener: Callable[[str], None]) -> None:
        with self._lock:
            self._session_listeners.append(listener)

    def dispatch(self, action: CartAction) -> Cart:
        with self._lock:
            return self._apply(action)

    def _apply(self, action: CartAction) -> Cart:
        previous = self._cart
        self._cart = reduce_cart(previous, action, self._clock())
        if self._cart is not previous:
            self._repository.save_cart(self._cart)
        return self._cart

    # -- cart lines ----------------------------------------------------------

    def add_to_cart(
        self,
        product: Product,
        variant_id: str,
        quantity: int = 1,
        earned_discount: Optional[int] = None,
    ) -> Cart:
        """
        Add a line for product/variant.

        When earned_discount is None the product's live ledger discount (if any)
        is captured on the line and marked applied, in one transition.
        """

        with self._lock:
            discount: Optional[Discount] = None
            if earned_discount is None:
                discount = self._live_discount_for(product)
                earned_discount = discount.discount_percent if discount is not None else 0

            action = AddItem(
                product=product,
                variant_id=variant_id,
                quantity=quantity,
                earned_discount=earned_discount,
            )
            before = self._cart
            after = reduce_cart(before, action, self._clock())

            if discount is not None and after is not before:
                line = self._line_for(after, product, variant_id, earned_discount)
                if line is not None:
                    after = reduce_cart(after, ApplyDiscount(discount.discount_id, line), self._clock())

            if after is not before:
                self._cart = after
                self._repository.save_cart(after)
            return self._cart

    def remove_from_cart(self, item_id: str) -> Cart:
        return self.dispatch(RemoveItem(item_id))

    def update_quantity(self, item_id: str, quantity: int) -> Cart:
        return self.dispatch(UpdateQuantity(item_id, quantity))

    def clear_cart(self) -> Cart:
        """Empty the cart, drop stored state and start a new session id."""

        with self._lock:
            self._cart = reduce_cart(self._cart, ClearCart(), self._clock())
            self._repository.clear()
            self._session_id = self._repository.get_or_create_session_id()
            cart, session_id = self._cart, self._session_id
            listeners = list(self._session_listeners)

        for listener in listeners:
            listener(session_id)
        return cart

    # -- discount ledger -----------------------------------------------------

    def add_discount(self, discount: Discount) -> Cart:
        return self.dispatch(AddDiscount(discount))

    def apply_discount(self, discount_id: str, item_id: str) -> Cart:
        return self.dispatch(ApplyDiscount(discount_id, item_id))

    def remove_discount(self, discount_id: str) -> Cart:
        return self.dispatch(RemoveDiscount(discount_id))

    def live_discounts(self) -> Tuple[Discount, ...]:
        with self._lock:
            return ledger.live_discounts(self._cart.discounts, self._clock())

    def snapshot(self) -> Tuple[str, Cart, Tuple[Discount, ...]]:
        """Session id, cart and its live discounts, read together."""

        with self._lock:
            return self._session_id, self._cart, ledger.live_discounts(self._cart.discounts, self._clock())

    # -- read models ---------------------------------------------------------

    def totals(self) -> CartTotals:
        return compute_totals(self.cart)

    # -- internals -----------------------------------------------------------

    def _live_discount_for(self, product: Product) -> Optional[Discount]:
        return ledger.discount_for_product(self._cart.discounts, product.product_id, self._clock())

    @staticmethod
    def _line_for(cart: Cart, product: Product, variant_id: str, earned_discount: int) -> Optional[str]:
        for item in cart.items:
            if (
                item.product_id == product.product_id
                and item.variant_id == variant_id
                and item.earned_discount == clamp_line_discount(earned_discount)
            ):
                return item.item_id
        return None


__all__ = ["CartService"]
