"""
Tests for `domain/cart_reducer.py`.

Covers:
- Lines merge only when product, variant and earned discount all match.
- Quantity is always kept within [1, 99] whatever the input.
- Misses (unknown item, unknown variant) are no-ops that return the same cart.
- ClearCart empties lines and the discount ledger.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import T0, make_product
from domain.cart import MAX_QUANTITY, MIN_QUANTITY, Cart, Discount
from domain.cart_reducer import (
    AddDiscount,
    AddItem,
    ClearCart,
    LoadCart,
    RemoveItem,
    UpdateQuantity,
    reduce_cart,
)


def test_same_product_variant_and_discount_merge(product) -> None:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m", 2, item_id="a"), T0)
    cart = reduce_cart(cart, AddItem(product, "cursed-tee-m", 3, item_id="b"), T0)

    assert len(cart.items) == 1
    assert cart.items[0].item_id == "a"
    assert cart.items[0].quantity == 5


def test_different_discount_makes_separate_line(product) -> None:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m", earned_discount=9), T0)
    cart = reduce_cart(cart, AddItem(product, "cursed-tee-m", earned_discount=12), T0)

    assert [item.earned_discount for item in cart.items] == [9, 12]


def test_different_variant_makes_separate_line(product) -> None:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m"), T0)
    cart = reduce_cart(cart, AddItem(product, "cursed-tee-l"), T0)

    assert [item.variant_id for item in cart.items] == ["cursed-tee-m", "cursed-tee-l"]


def test_earned_discount_is_clamped_before_merging(product) -> None:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m", earned_discount=15), T0)
    cart = reduce_cart(cart, AddItem(product, "cursed-tee-m", earned_discount=40), T0)

    assert len(cart.items) == 1
    assert cart.items[0].earned_discount == 15
    assert cart.items[0].quantity == 2


def test_unknown_variant_is_a_no_op(product) -> None:
    cart = Cart.empty(T0)

    assert reduce_cart(cart, AddItem(product, "cursed-tee-xxl"), T0) is cart


@pytest.mark.parametrize(
    "requested, expected",
    [(-5, 1), (0, 1), (1, 1), (50, 50), (99, 99), (100, 99), (10_000, 99)],
)
def test_update_quantity_is_clamped(product, requested: int, expected: int) -> None:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m", item_id="a"), T0)

    cart = reduce_cart(cart, UpdateQuantity("a", requested), T0)

    assert cart.find_item("a").quantity == expected


def test_quantity_stays_in_range_over_any_sequence(product) -> None:
    deltas = [1, 98, 5, -300, 42, 0, 64, 64, -1, 7]
    cart = Cart.empty(T0)
    for step, delta in enumerate(deltas):
        now = T0 + timedelta(seconds=step)
        cart = reduce_cart(cart, AddItem(product, "cursed-tee-m", delta, item_id="a"), now)
        cart = reduce_cart(cart, UpdateQuantity("a", cart.find_item("a").quantity + delta), now)
        for item in cart.items:
            assert MIN_QUANTITY <= item.quantity <= MAX_QUANTITY


def test_update_and_remove_unknown_item_are_no_ops(product) -> None:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m"), T0)

    assert reduce_cart(cart, UpdateQuantity("missing", 3), T0) is cart
    assert reduce_cart(cart, RemoveItem("missing"), T0) is cart


def test_remove_item_drops_only_that_line(product) -> None:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m", item_id="a"), T0)
    cart = reduce_cart(cart, AddItem(product, "cursed-tee-l", item_id="b"), T0)

    cart = reduce_cart(cart, RemoveItem("a"), T0 + timedelta(seconds=1))

    assert [item.item_id for item in cart.items] == ["b"]
    assert cart.last_updated == T0 + timedelta(seconds=1)


def test_clear_cart_drops_lines_and_ledger(product) -> None:
    discount = Discount.earned(
        discount_id="d1", product_id=product.product_id, game_type="pulse", discount_percent=6, earned_at=T0
    )
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m"), T0)
    cart = reduce_cart(cart, AddDiscount(discount), T0)

    cleared = reduce_cart(cart, ClearCart(), T0 + timedelta(minutes=1))

    assert cleared.items == ()
    assert cleared.discounts == ()
    assert cleared.last_updated == T0 + timedelta(minutes=1)


def test_load_cart_replaces_state() -> None:
    loaded = reduce_cart(Cart.empty(T0), AddItem(make_product("mug"), "mug-m"), T0)

    assert reduce_cart(Cart.empty(T0), LoadCart(loaded), T0) is loaded


def test_input_cart_is_not_mutated(product) -> None:
    original = Cart.empty(T0)

    reduce_cart(original, AddItem(product, "cursed-tee-m"), T0)

    assert original.items == ()


def test_unknown_action_raises() -> None:
    with pytest.raises(TypeError):
        reduce_cart(Cart.empty(T0), object(), T0)
