"""
Service wiring for the API.

One CartService and one GameService exist per process; they are created on
first use from the environment settings and injected into routers with
FastAPI's Depends. Tests replace them through app.dependency_overrides.

Game outcomes are written to the cart on a single ledger-writer thread so a
slow storage backend never stalls the event loop that runs the game clocks.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Optional

from repositories.cart_repository import CartRepository
from repositories.key_value_store import create_store
from repositories.played_games_repository import PlayedGamesRepository
from repositories.settings import load_settings
from services.cart_service import CartService
from services.game_service import GameService
from services.played_games_tracker import PlayedGamesTracker

_lock = threading.Lock()
_cart_service: Optional[CartService] = None
_game_service: Optional[GameService] = None
_ledger_executor: Optional[ThreadPoolExecutor] = None


def _build_services() -> None:
    global _cart_service, _game_service, _ledger_executor

    settings = load_settings()
    store = create_store(settings)
    _cart_service = CartService(CartRepository(store))
    _ledger_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledger-writer")
    _game_service = GameService(
        _cart_service,
        played_games=PlayedGamesTracker(PlayedGamesRepository(store)),
        tick_interval=timedelta(milliseconds=settings.game_tick_ms),
        ledger_executor=_ledger_executor,
    )


def get_cart_service() -> CartService:
    with _lock:
        if _cart_service is None:
            _build_services()
        return _cart_service


def get_game_service() -> GameService:
    with _lock:
        if _game_service is None:
            _build_services()
        return _game_service


def shutdown_services() -> None:
    """Dispose every open game session and drain pending ledger writes."""

    global _cart_service, _game_service, _ledger_executor

    with _lock:
        game_service, executor = _game_service, _ledger_executor
        _cart_service = _game_service = _ledger_executor = None
    if game_service is not None:
        game_service.close_all()
    if executor is not None:
        executor.shutdown(wait=True)


__all__ = ["get_cart_service", "get_game_service", "shutdown_services"]
