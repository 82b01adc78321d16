#!/usr/bin/env python3
"""
Cart Status Script

Prints the cart stored by the configured backend: lines, live discounts and
totals with the cart-level cap applied. Optionally clears the stored cart.

Usage:
    python cart_status.py
    python cart_status.py --backend file --store-dir .cart-store
    python cart_status.py --clear
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.cart import Cart
from domain.ledger import live_discounts
from domain.scoring import format_discount
from domain.time import utc_now
from domain.totals import compute_totals, line_prices
from repositories.cart_repository import CartRepository
from repositories.key_value_store import create_store
from repositories.played_games_repository import PlayedGamesRepository
from repositories.settings import load_settings


def format_cart_report(cart: Cart, now: datetime) -> List[str]:
    """Human-readable report lines for a cart as of `now`."""

    totals = compute_totals(cart)
    prices = {price.item_id: price for price in line_prices(cart)}

    lines = ["=" * 60, "CART STATUS", "=" * 60]
    if cart.is_empty:
        lines.append("Cart is empty")
    for item in cart.items:
        price = prices[item.item_id]
        lines.append(
            f"{item.product_id} / {item.variant_id} x{item.quantity}  "
            f"${price.original_price} -> ${price.final_price}  ({format_discount(item.earned_discount)})"
        )

    live = live_discounts(cart.discounts, now)
    lines.append("-" * 60)
    lines.append(f"Live discounts: {len(live)}")
    for discount in live:
        minutes_left = int((discount.expires_at - now).total_seconds() // 60)
        state = "applied" if discount.applied else "unapplied"
        lines.append(
            f"  {discount.product_id}: {format_discount(discount.discount_percent)}, "
            f"{state}, {minutes_left} min left"
        )

    lines.append("-" * 60)
    lines.append(f"Items:     {totals.item_count}")
    lines.append(f"Subtotal:  ${totals.subtotal}")
    lines.append(f"Discount:  ${totals.total_discount} ({totals.effective_discount_percent}%)")
    lines.append(f"Total:     ${totals.total}")
    lines.append("=" * 60)
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Show or clear the stored game discount cart",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the cart stored by the configured backend
  python cart_status.py

  # Inspect a specific file store
  python cart_status.py --backend file --store-dir /tmp/cart-store

  # Drop the stored cart, session id and played games
  python cart_status.py --clear
        """
    )

    parser.add_argument(
        "--backend",
        "-b",
        choices=["file", "supabase"],
        help="Storage backend (defaults to CART_STORE_BACKEND)"
    )

    parser.add_argument(
        "--store-dir",
        "-d",
        help="Directory for the file backend (defaults to CART_STORE_DIR)"
    )

    parser.add_argument(
        "--clear",
        action="store_true",
        help="Clear the stored cart instead of printing it"
    )

    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        if args.backend:
            settings = replace(settings, cart_store_backend=args.backend)
        if args.store_dir:
            settings = replace(settings, cart_store_dir=Path(args.store_dir))

        store = create_store(settings)
        repository = CartRepository(store)

        if args.clear:
            repository.clear()
            PlayedGamesRepository(store).clear()
            print("✓ Cleared stored cart")
            return 0

        now = utc_now()
        for line in format_cart_report(repository.load_cart(now), now):
            print(line)
        return 0

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
