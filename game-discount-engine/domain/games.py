"""
Domain: Game identifiers and the game catalog.

GameType is the closed set of mini-games that can grant a discount. Discounts
recorded with an identifier outside this set are still accepted; they simply
carry the raw string.

Each catalog entry fixes:
- duration of one attempt
- tier table used to convert the final score
- lives (lives-based games only) and the bonus awarded for surviving the clock
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional, Union

from .scoring import CLASSIC_TIERS, SPRINT_TIERS, TierTable


class GameType(str, Enum):
    CULLING = "culling"
    HARVEST = "harvest"
    LARVA_LAUNCH = "larva-launch"
    PATH_OF_THE_PUPA = "path-of-the-pupa"
    GARDEN = "garden"
    METAMORPHOSIS = "metamorphosis"
    LAST_RESORT = "last-resort"
    PULSE = "pulse"
    SNAKE = "snake"
    TELEGRAM = "telegram"

    @staticmethod
    def parse(value: Union["GameType", str]) -> Union["GameType", str]:
        """Return the matching GameType, or the raw string when unrecognized."""

        if isinstance(value, GameType):
            return value
        try:
            return GameType(value)
        except ValueError:
            return value


GameIdentifier = Union[GameType, str]


@dataclass(frozen=True, slots=True)
class GameDefinition:
    game_type: GameType
    title: str
    duration: timedelta
    tier_table: TierTable
    lives: Optional[int] = None
    completion_bonus: int = 0

    def __post_init__(self) -> None:
        if self.duration <= timedelta(0):
            raise ValueError("duration must be positive")
        if self.lives is not None and self.lives < 1:
            raise ValueError("lives must be >= 1")
        if self.completion_bonus < 0:
            raise ValueError("completion_bonus must be >= 0")

    @property
    def is_lives_based(self) -> bool:
        return self.lives is not None


GAME_CATALOG: Dict[GameType, GameDefinition] = {
    definition.game_type: definition
    for definition in (
        GameDefinition(GameType.CULLING, "The Culling", timedelta(seconds=25), CLASSIC_TIERS),
        GameDefinition(GameType.HARVEST, "Cursed Harvest", timedelta(seconds=20), SPRINT_TIERS),
        GameDefinition(GameType.LARVA_LAUNCH, "Larva Launch", timedelta(seconds=20), SPRINT_TIERS),
        GameDefinition(GameType.PATH_OF_THE_PUPA, "Path of the Pupa", timedelta(seconds=20), SPRINT_TIERS),
        GameDefinition(GameType.GARDEN, "Midnight Garden", timedelta(seconds=25), CLASSIC_TIERS),
        GameDefinition(GameType.METAMORPHOSIS, "Metamorphosis Queue", timedelta(seconds=25), CLASSIC_TIERS),
        GameDefinition(GameType.LAST_RESORT, "Last Resort", timedelta(seconds=30), CLASSIC_TIERS),
        GameDefinition(GameType.PULSE, "Chrysalis Pulse", timedelta(seconds=25), CLASSIC_TIERS),
        GameDefinition(
            GameType.SNAKE,
            "Hungry Caterpillar",
            timedelta(seconds=45),
            CLASSIC_TIERS,
            lives=1,
            completion_bonus=20,
        ),
        GameDefinition(GameType.TELEGRAM, "Bug Telegram", timedelta(seconds=30), CLASSIC_TIERS),
    )
}


def get_game_definition(game_type: GameIdentifier) -> Optional[GameDefinition]:
    parsed = GameType.parse(game_type)
    if not isinstance(parsed, GameType):
        return None
    return GAME_CATALOG.get(parsed)
