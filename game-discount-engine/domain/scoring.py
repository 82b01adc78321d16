"""
Domain: Score to discount conversion.

Every game converts its final score through a tier table:

- A tier table is an ordered list of (minimum_score, discount_percent) pairs.
- Tiers are evaluated highest-to-lowest; the first tier whose minimum_score is
  <= score wins.
- Scores below the lowest threshold (including negative scores) earn 0% and
  may retry. Every other tier has can_retry = False.

Tables are data. Adding a game never requires touching the conversion algorithm.

Tables shipped with the storefront:
- CLASSIC_TIERS: 20/30/40/50/60 points -> 3/6/9/12/15%
- SPRINT_TIERS:  10/20/35/45 points    -> 4/8/12/15%
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class TierMessage:
    message: str
    subtext: str = ""
    emoji: str = ""


@dataclass(frozen=True, slots=True)
class Tier:
    minimum_score: int
    discount_percent: int
    copy: TierMessage


@dataclass(frozen=True, slots=True)
class TierTable:
    """
    Named, validated tier table.

    Invariants:
    - At least one tier.
    - minimum_score strictly increasing.
    - discount_percent strictly increasing and within (0, 100].
    """

    name: str
    tiers: Tuple[Tier, ...]
    failure: TierMessage

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError(f"tier table {self.name!r} must define at least one tier")

        previous: Optional[Tier] = None
        for tier in self.tiers:
            if not 0 < tier.discount_percent <= 100:
                raise ValueError(f"tier table {self.name!r}: discount_percent must be in (0, 100]")
            if previous is not None:
                if tier.minimum_score <= previous.minimum_score:
                    raise ValueError(f"tier table {self.name!r}: thresholds must be strictly increasing")
                if tier.discount_percent <= previous.discount_percent:
                    raise ValueError(f"tier table {self.name!r}: discounts must be strictly increasing")
            previous = tier

    @property
    def max_discount_percent(self) -> int:
        return self.tiers[-1].discount_percent

    @property
    def lowest_threshold(self) -> int:
        return self.tiers[0].minimum_score

    def tier_for(self, score: int) -> Optional[Tier]:
        """Resolve the winning tier for a score, or None when below every threshold."""

        for tier in reversed(self.tiers):
            if score >= tier.minimum_score:
                return tier
        return None


@dataclass(frozen=True, slots=True)
class DiscountResult:
    discount_percent: int
    message: str
    subtext: str
    emoji: str
    can_retry: bool


@dataclass(frozen=True, slots=True)
class NextThreshold:
    threshold: int
    points_needed: int
    discount_percent: int


CLASSIC_TIERS = TierTable(
    name="classic",
    tiers=(
        Tier(20, 3, TierMessage(
            "They emerged. Something is wrong with their wings.",
            "They try to fly. They cannot. But they are alive.",
            "👁️",
        )),
        Tier(30, 6, TierMessage(
            "The transformation was incomplete.",
            "They fly, but they remember the pain more than the beauty.",
            "🕯️",
        )),
        Tier(40, 9, TierMessage(
            "They emerged. Some scars, but whole.",
            "The chrysalis was dark, but they made it through.",
            "🌙",
        )),
        Tier(50, 12, TierMessage(
            "Strong guidance. They will fly.",
            "The transformation was nearly perfect. Their wings catch the light.",
            "✨",
        )),
        Tier(60, 15, TierMessage(
            "Perfect care. They emerged exactly as they dreamed.",
            "You guided them through dissolution, terror, and remaking. They fly now. Because of you.",
            "🦋",
        )),
    ),
    failure=TierMessage(
        "The chrysalis failed.",
        "They trusted you to guide them through the dark. You were not ready.",
        "💀",
    ),
)

SPRINT_TIERS = TierTable(
    name="sprint",
    tiers=(
        Tier(10, 4, TierMessage("A few slipped through.", "The harvest is thin, but it is yours.", "🌱")),
        Tier(20, 8, TierMessage("A respectable harvest.", "The garden remembers your hands.", "🌿")),
        Tier(35, 12, TierMessage("The rows are clean.", "Very little escaped you tonight.", "🌕")),
        Tier(45, 15, TierMessage("Nothing escaped.", "The ranch has never been this quiet.", "🐛")),
    ),
    failure=TierMessage("The harvest rotted.", "Try again before the frost.", "🥀"),
)


def convert_score(score: int, table: TierTable = CLASSIC_TIERS) -> DiscountResult:
    """
    Convert a final game score into a discount result.

    Below the lowest threshold the result is the 0% failure tier with can_retry = True.
    """

    tier = table.tier_for(score)
    if tier is None:
        return DiscountResult(
            discount_percent=0,
            message=table.failure.message,
            subtext=table.failure.subtext,
            emoji=table.failure.emoji,
            can_retry=True,
        )
    return DiscountResult(
        discount_percent=tier.discount_percent,
        message=tier.copy.message,
        subtext=tier.copy.subtext,
        emoji=tier.copy.emoji,
        can_retry=False,
    )


def calculate_discount(score: int, table: TierTable = CLASSIC_TIERS) -> int:
    return convert_score(score, table).discount_percent


def next_threshold(current_score: int, table: TierTable = CLASSIC_TIERS) -> Optional[NextThreshold]:
    """
    Next unmet tier for progress displays, or None when already at the top tier.

    The returned tier is always the lowest tier the score has not reached yet, so
    progress never skips a tier.
    """

    for tier in table.tiers:
        if current_score < tier.minimum_score:
            return NextThreshold(
                threshold=tier.minimum_score,
                points_needed=tier.minimum_score - current_score,
                discount_percent=tier.discount_percent,
            )
    return None


def progress_message(current_score: int, table: TierTable = CLASSIC_TIERS) -> str:
    """Mid-game progress line, e.g. "7 more for 9% off"."""

    upcoming = next_threshold(current_score, table)
    if upcoming is None:
        return "Maximum discount reached."

    if calculate_discount(current_score, table) == 0:
        return f"{upcoming.points_needed} more to earn a discount"
    return f"{upcoming.points_needed} more for {upcoming.discount_percent}% off"


def format_discount(discount_percent: int) -> str:
    if discount_percent == 0:
        return "No discount earned"
    return f"{discount_percent}% off"


__all__ = [
    "CLASSIC_TIERS",
    "SPRINT_TIERS",
    "DiscountResult",
    "NextThreshold",
    "Tier",
    "TierMessage",
    "TierTable",
    "calculate_discount",
    "convert_score",
    "format_discount",
    "next_threshold",
    "progress_message",
]
