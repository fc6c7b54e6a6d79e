from __future__ import annotations

import random
from typing import Callable, List, Optional

from intervalsim.config import SimConfig
from intervalsim.core import DEFAULT_MATURE_INTERVAL, Card, SimulationSummary, Simulator

MIN_CARD_RETENTION = 0.01
MAX_CARD_RETENTION = 0.99
REVIEW_JITTER = 0.2


class StochasticSimulator(Simulator):
    """Monte Carlo simulation of individually sampled cards."""

    engine_name = "stochastic"

    def __init__(
        self,
        config: Optional[SimConfig] = None,
        *,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(config)
        self.rng = rng or random.Random(seed)
        self.deck: List[Card] = []
        self.cards_added = 0
        self.review_count = 0
        self.lapse_count = 0
        self.removed_count = 0

    def add_new_cards(self, n: int) -> None:
        mean = self.config.retention_ratio
        spread = self.config.difficulty_variance
        for _ in range(n):
            sampled = self.rng.gauss(mean, spread)
            self.deck.append(
                Card(
                    retention_ratio=min(
                        MAX_CARD_RETENTION, max(MIN_CARD_RETENTION, sampled)
                    )
                )
            )
            self.time_spent_on_new += self.config.seconds_per_new_card
            self.cards_added += 1

    def simulate_day(self) -> None:
        cfg = self.config
        survivors: List[Card] = []
        self.days_simulated += 1
        for card in self.deck:
            if card.days_since_last_review < card.interval:
                card.days_since_last_review += 1.0
                survivors.append(card)
                continue

            self.review_count += 1
            self.time_spent_on_review += cfg.seconds_per_review_card
            if self.rng.random() < card.retention_ratio:
                interval = card.interval * cfg.interval_factor
                interval += (self.rng.random() - 0.5) * interval * REVIEW_JITTER
                card.interval = max(interval, 1.0)
                card.days_since_last_review = 0.0
                survivors.append(card)
            elif card.lapses < cfg.max_lapses:
                card.interval = max(card.interval * cfg.lapse_interval_factor, 1.0)
                card.days_since_last_review = 0.0
                card.lapses += 1
                self.lapse_count += 1
                self.time_spent_on_review += cfg.seconds_per_lapsed_card
                survivors.append(card)
            else:
                # Lapsed past max lapses: the card leaves the deck for good.
                self.lapse_count += 1
                self.removed_count += 1
        self.deck = survivors

    def simulate_n_days(
        self,
        n: int,
        new_cards_per_day: Optional[int] = None,
        *,
        progress: bool = False,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        if new_cards_per_day is None:
            new_cards_per_day = self.config.new_cards_per_day

        def _step() -> None:
            self.add_new_cards(new_cards_per_day)
            self.simulate_day()

        self._run_days(
            n, _step, progress=progress, progress_callback=progress_callback
        )

    def cards_with_interval_or_greater(self, interval: float) -> int:
        return sum(1 for card in self.deck if card.interval >= interval)

    def known_cards(self, mature_interval: float = DEFAULT_MATURE_INTERVAL) -> float:
        return float(self.cards_with_interval_or_greater(mature_interval))

    def cards_learned_per_hour(
        self, mature_interval: float = DEFAULT_MATURE_INTERVAL
    ) -> float:
        """Mature cards per hour spent on new cards and reviews.

        Only cards whose interval reached `mature_interval` days are counted.
        """
        return self._learned_per_hour(self.known_cards(mature_interval))

    def summary(
        self, mature_interval: float = DEFAULT_MATURE_INTERVAL
    ) -> SimulationSummary:
        return self._summary(self.known_cards(mature_interval))
