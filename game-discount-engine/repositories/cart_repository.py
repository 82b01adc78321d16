"""
Cart repository (persistence).

Mirrors the in-memory Cart into a key-value store so it survives reloads.
This module provides *only* persistence; it does not enforce cart rules beyond
clamping out-of-range values read back from storage.

Persistence is best-effort:
- load_cart() returns an empty cart when nothing is stored or the stored record
  cannot be read or parsed.
- save_cart() and clear() log failures and never raise.

Stored record (JSON, under CART_STORAGE_KEY):
    {"version": 1, "items": [...], "discounts": [...], "lastUpdated": "<ISO-8601>"}
Records without a version field are read as version 1.

The opaque session id lives under SESSION_ID_KEY.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from domain.cart import Cart, CartItem, Discount, clamp_line_discount, clamp_quantity
from domain.games import GameType
from domain.product import Product, ProductVariant
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.key_value_store import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

CART_STORAGE_KEY: str = "game-discount-cart"
SESSION_ID_KEY: str = "game-discount-session"
RECORD_VERSION: int = 1


# ----------------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------------

def _product_to_dict(product: Product) -> Dict[str, Any]:
    return {
        "id": product.product_id,
        "price": str(product.price),
        "name": product.name,
        "slug": product.slug,
        "variants": [
            {"id": v.variant_id, "inStock": v.in_stock, "size": v.size, "color": v.color}
            for v in product.variants
        ],
    }


def _product_from_dict(row: Mapping[str, Any]) -> Product:
    return Product(
        product_id=str(row["id"]),
        price=Decimal(str(row["price"])),
        name=row.get("name"),
        slug=row.get("slug"),
        variants=tuple(
            ProductVariant(
                variant_id=str(v["id"]),
                in_stock=bool(v.get("inStock", True)),
                size=v.get("size"),
                color=v.get("color"),
            )
            for v in row.get("variants", [])
        ),
    )


def _item_to_dict(item: CartItem) -> Dict[str, Any]:
    return {
        "id": item.item_id,
        "product": _product_to_dict(item.product),
        "variantId": item.variant_id,
        "quantity": item.quantity,
        "earnedDiscount": item.earned_discount,
        "addedAt": to_iso_utc(item.added_at, name="added_at"),
    }


def _item_from_dict(row: Mapping[str, Any]) -> CartItem:
    return CartItem(
        item_id=str(row["id"]),
        product=_product_from_dict(row["product"]),
        variant_id=str(row["variantId"]),
        quantity=clamp_quantity(int(row["quantity"])),
        earned_discount=clamp_line_discount(int(row.get("earnedDiscount", 0))),
        added_at=parse_utc_datetime(row["addedAt"]),
    )


def _discount_to_dict(discount: Discount) -> Dict[str, Any]:
    game_type = discount.game_type
    return {
        "id": discount.discount_id,
        "productId": discount.product_id,
        "gameType": game_type.value if isinstance(game_type, GameType) else str(game_type),
        "discountPercent": discount.discount_percent,
        "earnedAt": to_iso_utc(discount.earned_at, name="earned_at"),
        "expiresAt": to_iso_utc(discount.expires_at, name="expires_at"),
        "applied": discount.applied,
    }


def _discount_from_dict(row: Mapping[str, Any]) -> Discount:
    return Discount(
        discount_id=str(row["id"]),
        product_id=str(row["productId"]),
        game_type=GameType.parse(str(row["gameType"])),
        discount_percent=max(0, int(row["discountPercent"])),
        earned_at=parse_utc_datetime(row["earnedAt"]),
        expires_at=parse_utc_datetime(row["expiresAt"]),
        applied=bool(row.get("applied", False)),
    )


def cart_to_dict(cart: Cart) -> Dict[str, Any]:
    return {
        "version": RECORD_VERSION,
        "items": [_item_to_dict(item) for item in cart.items],
        "discounts": [_discount_to_dict(d) for d in cart.discounts],
        "lastUpdated": to_iso_utc(cart.last_updated, name="last_updated"),
    }


def cart_from_dict(record: Mapping[str, Any]) -> Cart:
    """
    Rebuild a Cart from a stored record.

    Raises ValueError for unsupported versions; KeyError/TypeError/ValueError for
    malformed records.
    """

    version = record.get("version", RECORD_VERSION)
    if version != RECORD_VERSION:
        raise ValueError(f"Unsupported cart record version: {version!r}")

    items: List[CartItem] = [_item_from_dict(row) for row in record["items"]]
    discounts: List[Discount] = [_discount_from_dict(row) for row in record["discounts"]]
    return Cart(
        items=tuple(items),
        discounts=tuple(discounts),
        last_updated=parse_utc_datetime(record["lastUpdated"]),
    )


# ----------------------------------------------------------------------------
# Repository
# ----------------------------------------------------------------------------

class CartRepository:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load_cart(self, now: datetime) -> Cart:
        """Stored cart, or an empty cart stamped `now` when none can be restored."""

        try:
            raw = self._store.get(CART_STORAGE_KEY)
        except StorageError as e:
            logger.warning("Failed to read stored cart; starting empty", extra={"error": str(e)})
            return Cart.empty(now)

        if raw is None:
            return Cart.empty(now)

        try:
            record = json.loads(raw)
            if not isinstance(record, dict):
                raise TypeError("cart record must be a JSON object")
            return cart_from_dict(record)
        except (KeyError, TypeError, ValueError, InvalidOperation, RecursionError) as e:
            logger.warning(
                "Discarding corrupt stored cart",
                extra={"error": f"{type(e).__name__}: {e}", "raw_length": len(raw)},
            )
            return Cart.empty(now)

    def save_cart(self, cart: Cart) -> bool:
        try:
            payload = json.dumps(cart_to_dict(cart))
            self._store.set(CART_STORAGE_KEY, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.warning("Failed to save cart", extra={"error": str(e)})
            return False
        return True

    def get_or_create_session_id(self) -> str:
        """
        Opaque per-shopper identifier, generated once and persisted.

        If storage is unavailable a fresh id is returned without being stored.
        """

        try:
            existing = self._store.get(SESSION_ID_KEY)
        except StorageError as e:
            logger.warning("Failed to read session id", extra={"error": str(e)})
            existing = None

        if existing:
            return existing

        session_id = uuid4().hex
        try:
            self._store.set(SESSION_ID_KEY, session_id)
        except StorageError as e:
            logger.warning("Failed to persist session id", extra={"error": str(e)})
        return session_id

    def clear(self) -> None:
        for key in (CART_STORAGE_KEY, SESSION_ID_KEY):
            try:
                self._store.delete(key)
            except StorageError as e:
                logger.warning("Failed to clear stored key", extra={"key": key, "error": str(e)})


__all__ = [
    "CART_STORAGE_KEY",
    "CartRepository",
    "RECORD_VERSION",
    "SESSION_ID_KEY",
    "cart_from_dict",
    "cart_to_dict",
]
