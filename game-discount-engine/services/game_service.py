"""
Game service.

Owns the live game sessions of one shopper and performs the Game -> Ledger
handoff:

    open_session()  -> session starts its clock
    ...points...    -> session reaches completed/gameover exactly once
    handoff         -> final score converted with the game's tier table,
                       Discount(expires in 30 minutes) added to the cart ledger

Every terminal outcome is handed off, including 0% results: the most recent
play for a product always supersedes the previous one.

Sessions are never persisted. close_session() disposes a session (cancelling
its clock) when the shopper leaves the game screen. Finished sessions that are
never closed are dropped once they are older than the discount lifetime.

With a ledger_executor the ledger write runs on that executor instead of the
caller's thread (the asyncio loop, for clock ticks). pending_handoff() returns
the Future of that write until the session is restarted, closed or dropped.
Leaving a cart session (CartService.clear_cart) forgets which products were
played.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from domain.cart import DISCOUNT_LIFETIME, Discount
from domain.game_session import (
    DEFAULT_TICK_INTERVAL,
    GameSession,
    GameStatus,
    LivesGameSession,
    SessionOutcome,
    TickScheduler,
)
from domain.games import GAME_CATALOG, GameDefinition, GameIdentifier, get_game_definition
from domain.scoring import DiscountResult, TierTable, convert_score
from domain.time import utc_now
from services.cart_service import CartService
from services.played_games_tracker import PlayedGamesTracker

logger = logging.getLogger(__name__)

SESSION_RETENTION = DISCOUNT_LIFETIME


class UnknownGameError(LookupError):
    """Raised when a session is requested for a game outside the catalog."""


@dataclass(frozen=True, slots=True)
class GameAward:
    session_id: str
    product_id: str
    status: GameStatus
    score: int
    result: DiscountResult
    discount: Discount


def discount_from_score(
    *,
    product_id: str,
    game_type: GameIdentifier,
    score: int,
    tier_table: TierTable,
    earned_at: datetime,
) -> Tuple[DiscountResult, Discount]:
    """Convert a final score into the presentation result and the ledger entry."""

    result = convert_score(score, tier_table)
    discount = Discount.earned(
        discount_id=uuid4().hex,
        product_id=product_id,
        game_type=game_type,
        discount_percent=result.discount_percent,
        earned_at=earned_at,
    )
    return result, discount


def build_session(
    definition: GameDefinition,
    *,
    clock: Callable[[], datetime] = utc_now,
    scheduler: Optional[TickScheduler] = None,
    tick_interval: timedelta = DEFAULT_TICK_INTERVAL,
) -> GameSession:
    if definition.lives is not None:
        return LivesGameSession(
            definition.duration,
            lives=definition.lives,
            completion_bonus=definition.completion_bonus,
            clock=clock,
            scheduler=scheduler,
            tick_interval=tick_interval,
        )
    return GameSession(definition.duration, clock=clock, scheduler=scheduler, tick_interval=tick_interval)


class GameService:
    def __init__(
        self,
        cart_service: CartService,
        *,
        played_games: Optional[PlayedGamesTracker] = None,
        clock: Callable[[], datetime] = utc_now,
        tick_interval: timedelta = DEFAULT_TICK_INTERVAL,
        ledger_executor: Optional[Executor] = None,
        retention: timedelta = SESSION_RETENTION,
    ) -> None:
        self._cart_service = cart_service
        self._played_games = played_games
        self._clock = clock
        self._tick_interval = tick_interval
        self._ledger_executor = ledger_executor
        self._retention = retention
        self._lock = threading.Lock()
        self._sessions: Dict[str, GameSession] = {}
        self._products: Dict[str, str] = {}
        self._definitions: Dict[str, GameDefinition] = {}
        self._awards: Dict[str, GameAward] = {}
        self._pending: Dict[str, Future] = {}

        cart_service.on_new_session(self._on_new_cart_session)

    @staticmethod
    def list_games() -> List[GameDefinition]:
        return list(GAME_CATALOG.values())

    def open_session(
        self,
        game_type: GameIdentifier,
        product_id: str,
        *,
        scheduler: Optional[TickScheduler] = None,
    ) -> GameSession:
        definition = get_game_definition(game_type)
        if definition is None:
            raise UnknownGameError(f"Unknown game: {game_type!r}")

        self.purge_finished_sessions()

        session = build_session(
            definition,
            clock=self._clock,
            scheduler=scheduler,
            tick_interval=self._tick_interval,
        )
        session.subscribe(self._handoff)

        with self._lock:
            self._sessions[session.session_id] = session
            self._products[session.session_id] = product_id
            self._definitions[session.session_id] = definition

        if self._played_games is not None:
            self._played_games.mark_played(product_id)

        session.start()
        logger.info(
            "Game session opened",
            extra={
                "session_id": session.session_id,
                "game_type": definition.game_type.value,
                "product_id": product_id,
            },
        )
        return session

    def was_played(self, product_id: str) -> bool:
        if self._played_games is None:
            return False
        return self._played_games.was_played(product_id)

    def get_session(self, session_id: str) -> Optional[GameSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def product_for(self, session_id: str) -> Optional[str]:
        with self._lock:
            return self._products.get(session_id)

    def definition_for(self, session_id: str) -> Optional[GameDefinition]:
        with self._lock:
            return self._definitions.get(session_id)

    def award_for(self, session_id: str) -> Optional[GameAward]:
        with self._lock:
            return self._awards.get(session_id)

    def pending_handoff(self, session_id: str) -> Optional[Future]:
        with self._lock:
            return self._pending.get(session_id)

    def restart_session(self, session_id: str) -> Optional[GameSession]:
        """reset() then start() a session for another attempt."""

        session = self.get_session(session_id)
        if session is None:
            logger.warning("restart_session: session not found", extra={"session_id": session_id})
            return None

        with self._lock:
            self._awards.pop(session_id, None)
            self._pending.pop(session_id, None)
        session.reset()
        session.start()
        return session

    def close_session(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._products.pop(session_id, None)
            self._definitions.pop(session_id, None)
            self._awards.pop(session_id, None)
            self._pending.pop(session_id, None)

        if session is None:
            logger.warning("close_session: session not found", extra={"session_id": session_id})
            return False

        session.dispose()
        return True

    def close_all(self) -> None:
        with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            self.close_session(session_id)

    def purge_finished_sessions(self) -> int:
        """Close finished sessions older than the retention window. Returns how many were closed."""

        now = self._clock()
        with self._lock:
            stale = [
                session_id
                for session_id, session in self._sessions.items()
                if session.status.is_terminal
                and session.finished_at is not None
                and now - session.finished_at > self._retention
            ]
        for session_id in stale:
            self.close_session(session_id)

        if stale:
            logger.info("Purged finished game sessions", extra={"count": len(stale)})
        return len(stale)

    def _on_new_cart_session(self, cart_session_id: str) -> None:
        if self._played_games is not None:
            self._played_games.reset()
        logger.info("Played games reset for new cart session", extra={"cart_session_id": cart_session_id})

    def _handoff(self, outcome: SessionOutcome) -> None:
        with self._lock:
            product_id = self._products.get(outcome.session_id)
            definition = self._definitions.get(outcome.session_id)

        if product_id is None or definition is None:
            logger.warning("Outcome for unregistered session", extra={"session_id": outcome.session_id})
            return

        result, discount = discount_from_score(
            product_id=product_id,
            game_type=definition.game_type,
            score=outcome.score,
            tier_table=definition.tier_table,
            earned_at=outcome.finished_at,
        )
        pending: Optional[Future] = None
        if self._ledger_executor is None:
            self._cart_service.add_discount(discount)
        else:
            pending = self._ledger_executor.submit(self._cart_service.add_discount, discount)

        with self._lock:
            if pending is not None:
                self._pending[outcome.session_id] = pending
            self._awards[outcome.session_id] = GameAward(
                session_id=outcome.session_id,
                product_id=product_id,
                status=outcome.status,
                score=outcome.score,
                result=result,
                discount=discount,
            )
        logger.info(
            "Discount earned",
            extra={
                "session_id": outcome.session_id,
                "product_id": product_id,
                "discount_percent": discount.discount_percent,
            },
        )


__all__ = [
    "GameAward",
    "GameService",
    "SESSION_RETENTION",
    "UnknownGameError",
    "build_session",
    "discount_from_score",
]
