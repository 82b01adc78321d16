"""
Domain: Game session timing and scoring.

A GameSession is one timed attempt at a single mini-game:

    idle -> playing -> completed
    idle -> playing -> {completed | gameover}    (LivesGameSession)

Rules:
- Remaining time is derived on every tick as duration - (now - started_at);
  it is never decremented, so slow or paused ticks cannot drift the clock.
- The terminal transition happens exactly once per play and notifies every
  subscribed listener with a SessionOutcome.
- Point changes and life losses are rejected once the session is no longer
  playing. Every mutation evaluates the clock first, so an expired clock wins
  even if the scheduled tick has not fired yet.
- The scheduled tick is cancelled on the terminal transition, on reset() and on
  dispose(). A disposed session ignores every later call.
- The running score is not floored at zero; conversion treats anything below
  the lowest tier as 0%.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Protocol
from uuid import uuid4

from .time import require_utc_timestamp, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = timedelta(milliseconds=100)


class GameStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    COMPLETED = "completed"
    GAMEOVER = "gameover"

    @property
    def is_terminal(self) -> bool:
        return self in (GameStatus.COMPLETED, GameStatus.GAMEOVER)


class TickHandle(Protocol):
    def cancel(self) -> None:
        ...


class TickScheduler(Protocol):
    def schedule_repeating(self, interval: timedelta, callback: Callable[[], None]) -> TickHandle:
        ...


@dataclass(frozen=True, slots=True)
class SessionOutcome:
    session_id: str
    status: GameStatus
    score: int
    finished_at: datetime


SessionListener = Callable[[SessionOutcome], None]


class GameSession:
    """Fixed-duration game attempt that accumulates points from explicit deltas."""

    def __init__(
        self,
        duration: timedelta,
        *,
        clock: Callable[[], datetime] = utc_now,
        scheduler: Optional[TickScheduler] = None,
        tick_interval: timedelta = DEFAULT_TICK_INTERVAL,
        session_id: Optional[str] = None,
    ) -> None:
        if duration <= timedelta(0):
            raise ValueError("duration must be positive")
        if tick_interval <= timedelta(0):
            raise ValueError("tick_interval must be positive")

        self.session_id = session_id or uuid4().hex
        self._duration = duration
        self._clock = clock
        self._scheduler = scheduler
        self._tick_interval = tick_interval

        self._status = GameStatus.IDLE
        self._score = 0
        self._started_at: Optional[datetime] = None
        self._finished_at: Optional[datetime] = None
        self._timer: Optional[TickHandle] = None
        self._listeners: List[SessionListener] = []
        self._disposed = False

    # -- read side -----------------------------------------------------------

    @property
    def status(self) -> GameStatus:
        return self._status

    @property
    def score(self) -> int:
        return self._score

    @property
    def duration(self) -> timedelta:
        return self._duration

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at

    @property
    def finished_at(self) -> Optional[datetime]:
        return self._finished_at

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def final_score(self) -> Optional[int]:
        """Score once the session is terminal, None while idle or playing."""

        return self._score if self._status.is_terminal else None

    def elapsed(self) -> timedelta:
        if self._started_at is None:
            return timedelta(0)
        until = self._finished_at if self._finished_at is not None else self._clock()
        return max(timedelta(0), min(until - self._started_at, self._duration))

    def remaining(self) -> timedelta:
        return self._duration - self.elapsed()

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    # -- transitions ---------------------------------------------------------

    def start(self) -> bool:
        if self._disposed:
            logger.warning("start() on disposed session", extra={"session_id": self.session_id})
            return False
        if self._status is not GameStatus.IDLE:
            logger.warning(
                "start() ignored: session is not idle",
                extra={"session_id": self.session_id, "status": self._status.value},
            )
            return False

        started_at = self._clock()
        require_utc_timestamp("started_at", started_at)
        self._started_at = started_at
        self._finished_at = None
        self._score = 0
        self._status = GameStatus.PLAYING
        self._on_start()

        if self._scheduler is not None:
            self._timer = self._scheduler.schedule_repeating(self._tick_interval, self.tick)
        return True

    def tick(self) -> None:
        """Evaluate the clock; fires the completion transition once time runs out."""

        if self._disposed or self._status is not GameStatus.PLAYING:
            return
        now = self._clock()
        if now - self._started_at >= self._duration:
            self._on_clock_expired(now)

    def add_points(self, points: int) -> bool:
        if not self._accepts_delta("add_points", points):
            return False
        self._score += points
        return True

    def subtract_points(self, points: int) -> bool:
        if not self._accepts_delta("subtract_points", points):
            return False
        self._score -= points
        return True

    def end(self) -> bool:
        """End the attempt early; counts as a normal completion."""

        self.tick()
        if self._disposed or self._status is not GameStatus.PLAYING:
            return False
        self._finish(GameStatus.COMPLETED, self._clock())
        return True

    def reset(self) -> None:
        self._cancel_timer()
        if self._disposed:
            return
        self._status = GameStatus.IDLE
        self._score = 0
        self._started_at = None
        self._finished_at = None
        self._on_reset()

    def dispose(self) -> None:
        """Abandon the session: cancels the clock and silences listeners for good."""

        self._cancel_timer()
        self._disposed = True
        self._listeners.clear()

    # -- hooks for specializations -------------------------------------------

    def _on_start(self) -> None:
        pass

    def _on_reset(self) -> None:
        pass

    def _on_clock_expired(self, now: datetime) -> None:
        self._finish(GameStatus.COMPLETED, self._started_at + self._duration)

    # -- internals -----------------------------------------------------------

    def _accepts_delta(self, operation: str, points: int) -> bool:
        if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
            logger.warning(
                f"{operation} ignored: points must be a positive integer",
                extra={"session_id": self.session_id, "points": points},
            )
            return False

        self.tick()
        if self._disposed or self._status is not GameStatus.PLAYING:
            logger.debug(
                f"{operation} dropped: session is not playing",
                extra={"session_id": self.session_id, "status": self._status.value},
            )
            return False
        return True

    def _finish(self, status: GameStatus, finished_at: datetime) -> None:
        if self._disposed or self._status is not GameStatus.PLAYING:
            return

        self._cancel_timer()
        self._status = status
        self._finished_at = finished_at

        outcome = SessionOutcome(
            session_id=self.session_id,
            status=status,
            score=self._score,
            finished_at=finished_at,
        )
        logger.info(
            "Game session finished",
            extra={"session_id": self.session_id, "status": status.value, "score": self._score},
        )
        for listener in list(self._listeners):
            listener(outcome)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class LivesGameSession(GameSession):
    """
    Game attempt with a limited number of lives.

    Losing the last life before the clock runs out ends the attempt as gameover.
    Surviving the full duration adds completion_bonus before completing.
    """

    def __init__(self, duration: timedelta, *, lives: int, completion_bonus: int = 0, **kwargs) -> None:
        if lives < 1:
            raise ValueError("lives must be >= 1")
        if completion_bonus < 0:
            raise ValueError("completion_bonus must be >= 0")
        super().__init__(duration, **kwargs)
        self._initial_lives = lives
        self._lives = lives
        self._completion_bonus = completion_bonus

    @property
    def lives(self) -> int:
        return self._lives

    @property
    def completion_bonus(self) -> int:
        return self._completion_bonus

    def lose_life(self, count: int = 1) -> bool:
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            logger.warning(
                "lose_life ignored: count must be a positive integer",
                extra={"session_id": self.session_id, "count": count},
            )
            return False

        self.tick()
        if self._disposed or self._status is not GameStatus.PLAYING:
            logger.debug(
                "lose_life dropped: session is not playing",
                extra={"session_id": self.session_id, "status": self._status.value},
            )
            return False

        self._lives = max(0, self._lives - count)
        if self._lives == 0:
            self._finish(GameStatus.GAMEOVER, self._clock())
        return True

    def _on_start(self) -> None:
        self._lives = self._initial_lives

    def _on_reset(self) -> None:
        self._lives = self._initial_lives

    def _on_clock_expired(self, now: datetime) -> None:
        self._score += self._completion_bonus
        super()._on_clock_expired(now)
