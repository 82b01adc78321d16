"""
Tests for `domain/ledger.py`.

Covers:
- The 30-minute window: live up to and including expires_at, expired after.
- At most one live discount per product; the latest play supersedes.
- Expired discounts are not evicted and stay until the cart is cleared.
- apply/remove keep cart lines and ledger flags consistent.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from domain.cart import Cart, Discount
from domain.cart_reducer import AddDiscount, AddItem, ApplyDiscount, RemoveDiscount, reduce_cart
from domain.ledger import add_discount, discount_for_product, live_discounts
from conftest import T0, make_product


def _discount(discount_id: str, percent: int, product_id: str = "cursed-tee", earned_at=T0) -> Discount:
    return Discount.earned(
        discount_id=discount_id,
        product_id=product_id,
        game_type="culling",
        discount_percent=percent,
        earned_at=earned_at,
    )


def _cart_with_line(product) -> Cart:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m", item_id="line-1"), T0)
    return reduce_cart(cart, AddDiscount(_discount("d1", 12)), T0)


@pytest.mark.parametrize(
    "offset, applies",
    [
        (timedelta(minutes=29, seconds=59), True),
        (timedelta(minutes=30), True),
        (timedelta(minutes=30, seconds=1), False),
    ],
)
def test_discount_window(product, offset: timedelta, applies: bool) -> None:
    cart = _cart_with_line(product)

    result = reduce_cart(cart, ApplyDiscount("d1", "line-1"), T0 + offset)

    if applies:
        assert result.find_item("line-1").earned_discount == 12
        assert result.find_discount("d1").applied is True
    else:
        assert result is cart
        assert result.find_item("line-1").earned_discount == 0


def test_new_discount_supersedes_live_one_for_same_product() -> None:
    discounts = add_discount((), _discount("d1", 9), T0)
    discounts = add_discount(discounts, _discount("d2", 12), T0 + timedelta(minutes=5))

    assert [d.discount_id for d in discounts] == ["d2"]
    assert discounts[0].discount_percent == 12


def test_zero_percent_play_also_supersedes() -> None:
    discounts = add_discount((), _discount("d1", 15), T0)
    discounts = add_discount(discounts, _discount("d2", 0), T0 + timedelta(minutes=1))

    assert [d.discount_percent for d in discounts] == [0]


def test_discounts_for_other_products_are_kept() -> None:
    discounts = add_discount((), _discount("d1", 9, product_id="a"), T0)
    discounts = add_discount(discounts, _discount("d2", 6, product_id="b"), T0)

    assert {d.product_id for d in discounts} == {"a", "b"}


def test_expired_discount_is_not_evicted_but_hidden() -> None:
    later = T0 + timedelta(minutes=45)
    discounts = add_discount((), _discount("old", 9), T0)
    discounts = add_discount(discounts, _discount("new", 3, earned_at=later), later)

    assert [d.discount_id for d in discounts] == ["old", "new"]
    assert [d.discount_id for d in live_discounts(discounts, later)] == ["new"]
    assert discount_for_product(discounts, "cursed-tee", later).discount_id == "new"


def test_duplicate_discount_id_is_ignored() -> None:
    discounts = add_discount((), _discount("d1", 9), T0)

    assert add_discount(discounts, _discount("d1", 15), T0) is discounts


def test_at_most_one_live_discount_per_product() -> None:
    discounts = ()
    now = T0
    for index, percent in enumerate([3, 6, 0, 15, 9, 12, 3]):
        for product_id in ("a", "b"):
            discounts = add_discount(
                discounts, _discount(f"{product_id}{index}", percent, product_id, earned_at=now), now
            )
        now += timedelta(minutes=7)

        live = live_discounts(discounts, now)
        assert len([d for d in live if d.product_id == "a"]) <= 1
        assert len([d for d in live if d.product_id == "b"]) <= 1


def test_added_discount_is_stored_unapplied() -> None:
    stored = add_discount((), replace(_discount("d1", 9), applied=True), T0)

    assert stored[0].applied is False


def test_apply_to_other_product_is_a_no_op(product) -> None:
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m", item_id="line-1"), T0)
    cart = reduce_cart(cart, AddDiscount(_discount("other", 12, product_id="mug")), T0)

    assert reduce_cart(cart, ApplyDiscount("other", "line-1"), T0) is cart


def test_apply_unknown_ids_is_a_no_op(product) -> None:
    cart = _cart_with_line(product)

    assert reduce_cart(cart, ApplyDiscount("missing", "line-1"), T0) is cart
    assert reduce_cart(cart, ApplyDiscount("d1", "missing"), T0) is cart


def test_remove_discount_keeps_captured_line_percent(product) -> None:
    cart = reduce_cart(_cart_with_line(product), ApplyDiscount("d1", "line-1"), T0)

    cart = reduce_cart(cart, RemoveDiscount("d1"), T0)

    assert cart.find_discount("d1").applied is False
    assert cart.find_item("line-1").earned_discount == 12


def test_discount_percent_above_line_cap_is_clamped_on_apply() -> None:
    product = make_product()
    cart = reduce_cart(Cart.empty(T0), AddItem(product, "cursed-tee-m", item_id="line-1"), T0)
    cart = reduce_cart(cart, AddDiscount(_discount("big", 40)), T0)

    cart = reduce_cart(cart, ApplyDiscount("big", "line-1"), T0)

    assert cart.find_item("line-1").earned_discount == 15
