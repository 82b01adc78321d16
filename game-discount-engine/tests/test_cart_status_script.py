"""
Tests for `scripts/cart_status.py`.

Covers:
- Report lines show capped totals and only live discounts.
- main() reads a file store and --clear removes it.
"""

from __future__ import annotations

from datetime import timedelta

from conftest import T0, make_product
from domain.cart import Cart, Discount
from domain.cart_reducer import AddDiscount, AddItem, reduce_cart
from repositories.cart_repository import CART_STORAGE_KEY, CartRepository
from repositories.key_value_store import FileKeyValueStore
from scripts.cart_status import format_cart_report, main


def _cart() -> Cart:
    cart = reduce_cart(Cart.empty(T0), AddItem(make_product(), "cursed-tee-m", 2, earned_discount=15), T0)
    live = Discount.earned(
        discount_id="live", product_id="cursed-tee", game_type="culling", discount_percent=15, earned_at=T0
    )
    stale = Discount.earned(
        discount_id="stale", product_id="mug", game_type="pulse", discount_percent=6,
        earned_at=T0 - timedelta(hours=1),
    )
    cart = reduce_cart(cart, AddDiscount(stale), T0)
    return reduce_cart(cart, AddDiscount(live), T0)


def test_report_shows_totals_and_live_discounts() -> None:
    report = "\n".join(format_cart_report(_cart(), T0 + timedelta(minutes=10)))

    assert "cursed-tee / cursed-tee-m x2" in report
    assert "Subtotal:  $40.00" in report
    assert "Discount:  $6.00 (15.0%)" in report
    assert "Total:     $34.00" in report
    assert "Live discounts: 1" in report
    assert "cursed-tee: 15% off, unapplied, 20 min left" in report
    assert "mug:" not in report


def test_report_for_empty_cart() -> None:
    report = format_cart_report(Cart.empty(T0), T0)

    assert "Cart is empty" in report
    assert "Total:     $0.00" in report


def test_main_reads_and_clears_file_store(tmp_path, capsys) -> None:
    store = FileKeyValueStore(tmp_path)
    CartRepository(store).save_cart(_cart())

    assert main(["--backend", "file", "--store-dir", str(tmp_path)]) == 0
    assert "CART STATUS" in capsys.readouterr().out

    assert main(["--backend", "file", "--store-dir", str(tmp_path), "--clear"]) == 0
    assert store.get(CART_STORAGE_KEY) is None
