"""
Played-games repository (persistence).

Stores the set of product ids that had a game played during the current
browsing session as a JSON array under PLAYED_GAMES_KEY. Best-effort: read
failures yield an empty set, write failures are logged.
"""

from __future__ import annotations

import json
import logging
from typing import FrozenSet, Iterable

from repositories.key_value_store import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

PLAYED_GAMES_KEY: str = "game-discount-played-games"


class PlayedGamesRepository:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> FrozenSet[str]:
        try:
            raw = self._store.get(PLAYED_GAMES_KEY)
        except StorageError as e:
            logger.warning("Failed to read played games", extra={"error": str(e)})
            return frozenset()

        if raw is None:
            return frozenset()

        try:
            values = json.loads(raw)
            if not isinstance(values, list):
                raise TypeError("played games record must be a JSON array")
            return frozenset(str(value) for value in values)
        except (TypeError, ValueError, RecursionError) as e:
            logger.warning("Discarding corrupt played games record", extra={"error": str(e)})
            return frozenset()

    def save(self, product_ids: Iterable[str]) -> None:
        try:
            self._store.set(PLAYED_GAMES_KEY, json.dumps(sorted(product_ids)))
        except StorageError as e:
            logger.warning("Failed to save played games", extra={"error": str(e)})

    def clear(self) -> None:
        try:
            self._store.delete(PLAYED_GAMES_KEY)
        except StorageError as e:
            logger.warning("Failed to clear played games", extra={"error": str(e)})


__all__ = ["PLAYED_GAMES_KEY", "PlayedGamesRepository"]
