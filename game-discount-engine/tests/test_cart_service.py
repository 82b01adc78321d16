"""
Tests for `services/cart_service.py` and `services/played_games_tracker.py`.

Covers:
- Every changing mutation is mirrored to storage; no-ops are not.
- A restarted service restores the stored cart and session id.
- Adding a product with a live ledger discount captures and applies it.
- clear_cart() drops stored state, issues a new session id and tells listeners.
- An unreadable stored cart starts the service empty.
"""

from __future__ import annotations

from decimal import Decimal

from conftest import make_product
from domain import ledger
from domain.cart import Discount
from domain.totals import line_prices
from repositories.cart_repository import CART_STORAGE_KEY, CartRepository
from repositories.key_value_store import FileKeyValueStore, InMemoryKeyValueStore
from repositories.played_games_repository import PlayedGamesRepository
from services.cart_service import CartService
from services.played_games_tracker import PlayedGamesTracker


class CountingStore(InMemoryKeyValueStore):
    def __init__(self) -> None:
        super().__init__()
        self.writes = 0

    def set(self, key: str, value: str) -> None:
        if key == CART_STORAGE_KEY:
            self.writes += 1
        super().set(key, value)


def _discount(clock, discount_id: str, percent: int, product_id: str = "cursed-tee") -> Discount:
    return Discount.earned(
        discount_id=discount_id,
        product_id=product_id,
        game_type="culling",
        discount_percent=percent,
        earned_at=clock(),
    )


def test_mutations_are_persisted(clock, product) -> None:
    store = CountingStore()
    service = CartService(CartRepository(store), clock=clock)

    service.add_to_cart(product, "cursed-tee-m", 2)
    item_id = service.cart.items[0].item_id
    service.update_quantity(item_id, 4)

    assert store.writes == 2

    restored = CartService(CartRepository(store), clock=clock)
    assert restored.cart == service.cart
    assert restored.session_id == service.session_id


def test_no_op_is_not_persisted(clock, product) -> None:
    store = CountingStore()
    service = CartService(CartRepository(store), clock=clock)

    service.remove_from_cart("missing")
    service.add_to_cart(product, "no-such-variant")

    assert store.writes == 0


def test_add_to_cart_applies_live_discount(clock, product) -> None:
    service = CartService(CartRepository(InMemoryKeyValueStore()), clock=clock)
    service.add_discount(_discount(clock, "d1", 9))

    cart = service.add_to_cart(product, "cursed-tee-m")

    assert cart.items[0].earned_discount == 9
    assert cart.find_discount("d1").applied is True
    assert service.totals().total_discount == Decimal("1.80")


def test_add_to_cart_ignores_expired_discount(clock, product) -> None:
    service = CartService(CartRepository(InMemoryKeyValueStore()), clock=clock)
    service.add_discount(_discount(clock, "d1", 9))
    clock.advance(minutes=31)

    cart = service.add_to_cart(product, "cursed-tee-m")

    assert cart.items[0].earned_discount == 0
    assert cart.find_discount("d1").applied is False
    assert service.live_discounts() == ()


def test_explicit_earned_discount_wins(clock, product) -> None:
    service = CartService(CartRepository(InMemoryKeyValueStore()), clock=clock)
    service.add_discount(_discount(clock, "d1", 9))

    cart = service.add_to_cart(product, "cursed-tee-m", earned_discount=3)

    assert cart.items[0].earned_discount == 3
    assert cart.find_discount("d1").applied is False


def test_apply_discount_later(clock, product) -> None:
    service = CartService(CartRepository(InMemoryKeyValueStore()), clock=clock)
    service.add_to_cart(product, "cursed-tee-m")
    service.add_discount(_discount(clock, "d1", 15))
    item_id = service.cart.items[0].item_id

    clock.advance(minutes=29, seconds=59)
    service.apply_discount("d1", item_id)

    [line] = line_prices(service.cart)
    assert line.discount_amount == Decimal("3.00")
    assert ledger.discount_for_product(service.cart.discounts, product.product_id, clock()).discount_id == "d1"

    service.remove_discount("d1")
    assert service.cart.find_item(item_id).earned_discount == 15


def test_clear_cart_resets_everything(clock, product) -> None:
    store = InMemoryKeyValueStore()
    service = CartService(CartRepository(store), clock=clock)
    service.add_to_cart(product, "cursed-tee-m")
    service.add_discount(_discount(clock, "d1", 6))
    old_session = service.session_id

    cart = service.clear_cart()

    assert cart.is_empty
    assert cart.discounts == ()
    assert service.session_id != old_session
    assert store.get(CART_STORAGE_KEY) is None
    assert service.totals().total == Decimal("0")


def test_clear_cart_notifies_new_session_listeners(clock, product) -> None:
    service = CartService(CartRepository(InMemoryKeyValueStore()), clock=clock)
    seen = []
    service.on_new_session(seen.append)
    service.add_to_cart(product, "cursed-tee-m")

    service.clear_cart()

    assert seen == [service.session_id]


def test_unreadable_stored_cart_starts_empty(tmp_path, clock, product) -> None:
    (tmp_path / f"{CART_STORAGE_KEY}.json").write_bytes(b"\xff\xfe{bad")

    service = CartService(CartRepository(FileKeyValueStore(tmp_path)), clock=clock)
    assert service.cart.is_empty

    service.add_to_cart(product, "cursed-tee-m")
    restored = CartService(CartRepository(FileKeyValueStore(tmp_path)), clock=clock)
    assert restored.cart == service.cart


def test_same_product_two_discount_levels_are_two_lines(clock) -> None:
    product = make_product(price="50")
    service = CartService(CartRepository(InMemoryKeyValueStore()), clock=clock)
    service.add_discount(_discount(clock, "d1", 6))
    service.add_to_cart(product, "cursed-tee-m")

    clock.advance(minutes=1)
    service.add_discount(_discount(clock, "d2", 12))
    service.add_to_cart(product, "cursed-tee-m")

    assert [item.earned_discount for item in service.cart.items] == [6, 12]
    assert service.totals().total_discount == Decimal("9.00")


def test_played_games_tracker() -> None:
    store = InMemoryKeyValueStore()
    tracker = PlayedGamesTracker(PlayedGamesRepository(store))

    assert tracker.was_played("cursed-tee") is False
    tracker.mark_played("cursed-tee")
    assert tracker.was_played("cursed-tee") is True

    restored = PlayedGamesTracker(PlayedGamesRepository(store))
    assert restored.played_products() == frozenset({"cursed-tee"})

    restored.reset()
    assert restored.was_played("cursed-tee") is False
    assert PlayedGamesTracker(PlayedGamesRepository(store)).played_products() == frozenset()


def test_expired_discount_stays_in_ledger_until_clear(clock, product) -> None:
    service = CartService(CartRepository(InMemoryKeyValueStore()), clock=clock)
    service.add_discount(_discount(clock, "d1", 9))

    clock.advance(hours=1)

    assert service.cart.find_discount("d1") is not None
    assert service.live_discounts() == ()
