"""
Pytest configuration for the game discount engine.

This file adds the project directory to the Python path so that tests
can import from the domain, repositories, services and api modules, and
provides deterministic clocks and schedulers.
"""

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

# Add the game-discount-engine directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.product import Product, ProductVariant  # noqa: E402

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class ManualHandle:
    def __init__(self, callback) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """TickScheduler whose ticks fire only when fire() is called."""

    def __init__(self) -> None:
        self.handles = []

    def schedule_repeating(self, interval, callback):
        handle = ManualHandle(callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]

    def fire(self) -> None:
        for handle in self.active:
            handle.callback()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


def make_product(product_id: str = "cursed-tee", price: str = "20.00", variants=("m", "l")) -> Product:
    return Product(
        product_id=product_id,
        price=Decimal(price),
        variants=tuple(ProductVariant(variant_id=f"{product_id}-{v}") for v in variants),
    )


@pytest.fixture
def product() -> Product:
    return make_product()
