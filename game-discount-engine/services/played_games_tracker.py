"""
Tracks which products had a game played during the current browsing session.

The storefront uses this to stop immediate replays of the same product's game
while still allowing a replay on a later visit (reset() on a new session).
"""

from __future__ import annotations

import threading
from typing import FrozenSet, Set

from repositories.played_games_repository import PlayedGamesRepository


class PlayedGamesTracker:
    def __init__(self, repository: PlayedGamesRepository) -> None:
        self._repository = repository
        self._lock = threading.Lock()
        self._played: Set[str] = set(repository.load())

    def was_played(self, product_id: str) -> bool:
        with self._lock:
            return product_id in self._played

    def mark_played(self, product_id: str) -> None:
        with self._lock:
            if product_id in self._played:
                return
            self._played.add(product_id)
            self._repository.save(self._played)

    def played_products(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._played)

    def reset(self) -> None:
        with self._lock:
            self._played.clear()
            self._repository.clear()


__all__ = ["PlayedGamesTracker"]
