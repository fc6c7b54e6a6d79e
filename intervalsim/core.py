from __future__ import annotations

import abc
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

from tqdm import tqdm

from intervalsim.config import DEFAULT_CONFIG, SimConfig

SECONDS_PER_HOUR = 3600.0
DEFAULT_MATURE_INTERVAL = 365.0


@dataclass(slots=True)
class Card:
    """One simulated flashcard."""

    retention_ratio: float
    interval: float = 1.0
    days_since_last_review: float = 0.0
    lapses: int = 0


@dataclass(slots=True)
class CardCluster:
    """Fractional population of cards sharing one scheduling state."""

    card_count: float
    interval: float = 1.0
    days_since_last_review: float = 0.0
    lapses: int = 0

    def state_key(self) -> tuple[float, float, int]:
        return (self.interval, self.days_since_last_review, self.lapses)


@dataclass(frozen=True)
class SimulationSummary:
    engine: str
    days: int
    cards_added: float
    review_count: float
    lapse_count: float
    removed_count: float
    average_retention_ratio: float
    known_cards: float
    cards_learned_per_hour: float
    review_hours: float
    new_hours: float
    lapses_per_review: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "engine": self.engine,
            "days": self.days,
            "cards_added": _json_number(self.cards_added),
            "review_count": _json_number(self.review_count),
            "lapse_count": _json_number(self.lapse_count),
            "removed_count": _json_number(self.removed_count),
            "average_retention_ratio": _json_number(self.average_retention_ratio),
            "known_cards": _json_number(self.known_cards),
            "cards_learned_per_hour": _json_number(self.cards_learned_per_hour),
            "review_hours": _json_number(self.review_hours),
            "new_hours": _json_number(self.new_hours),
            "lapses_per_review": _json_number(self.lapses_per_review),
        }


def ratio(numerator: float, denominator: float) -> float:
    """IEEE-style division: 0/0 is nan and x/0 is a signed infinity."""
    if denominator == 0.0:
        if numerator == 0.0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


class Simulator(abc.ABC):
    """Day-by-day scheduler simulation with running time/review/lapse counters."""

    engine_name = "base"

    def __init__(self, config: Optional[SimConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.days_simulated = 0
        self.cards_added: float = 0
        self.time_spent_on_new = 0.0
        self.time_spent_on_review = 0.0
        self.review_count: float = 0
        self.lapse_count: float = 0
        self.removed_count: float = 0

    @abc.abstractmethod
    def simulate_day(self) -> None:
        """Advance every card (or cluster) by one day."""

    @abc.abstractmethod
    def known_cards(self) -> float:
        """Number of cards counted as durably learned."""

    def average_retention_ratio(self) -> float:
        return self.config.retention_ratio

    def _learned_per_hour(self, known: float) -> float:
        elapsed = self.time_spent_on_new + self.time_spent_on_review
        return ratio(known, elapsed) * SECONDS_PER_HOUR

    def review_time(self) -> float:
        """In hours."""
        return self.time_spent_on_review / SECONDS_PER_HOUR

    def new_time(self) -> float:
        """In hours."""
        return self.time_spent_on_new / SECONDS_PER_HOUR

    def lapses_per_review(self) -> float:
        return ratio(self.lapse_count, self.review_count)

    def _summary(self, known: float) -> SimulationSummary:
        return SimulationSummary(
            engine=self.engine_name,
            days=self.days_simulated,
            cards_added=self.cards_added,
            review_count=self.review_count,
            lapse_count=self.lapse_count,
            removed_count=self.removed_count,
            average_retention_ratio=self.average_retention_ratio(),
            known_cards=known,
            cards_learned_per_hour=self._learned_per_hour(known),
            review_hours=self.review_time(),
            new_hours=self.new_time(),
            lapses_per_review=self.lapses_per_review(),
        )

    def _run_days(
        self,
        n: int,
        step: Callable[[], None],
        *,
        progress: bool,
        progress_callback: Optional[Callable[[int, int], None]],
    ) -> None:
        bar: Optional[tqdm] = None
        if progress and n > 0:
            bar = tqdm(total=n, desc=self.engine_name, unit="day", leave=False)
        try:
            for day in range(n):
                step()
                if progress_callback is not None:
                    progress_callback(day + 1, n)
                if bar is not None:
                    bar.update(1)
        finally:
            if bar is not None:
                bar.close()


def _json_number(value: float) -> float | None:
    return value if math.isfinite(value) else None
