from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from intervalsim.config import SimConfig
from intervalsim.core import CardCluster, SimulationSummary, Simulator
from intervalsim.retention import retained_fraction


@dataclass(slots=True)
class ClusterSplit:
    """Outcome of reviewing one due cluster."""

    remembered: CardCluster
    lapsed: Optional[CardCluster]
    reviewed_mass: float
    lapsed_mass: float
    removed_mass: float


def split_cluster(
    cluster: CardCluster, config: SimConfig, retention_ratio: float
) -> ClusterSplit:
    """Split a due cluster into its remembered and lapsed branches.

    The remembered branch reuses `cluster` in place. The lapsed branch is a new
    cluster, or removed mass once `cluster.lapses` has reached `max_lapses`.
    """
    reviewed = cluster.card_count
    good_interval = max(cluster.interval * config.interval_factor, 1.0)
    lapse_interval = max(cluster.interval * config.lapse_interval_factor, 1.0)
    good_count = reviewed * retention_ratio
    lapse_count = reviewed - good_count
    lapses = cluster.lapses

    cluster.interval = good_interval
    cluster.card_count = good_count
    cluster.days_since_last_review = 0.0

    if lapses < config.max_lapses:
        lapsed = CardCluster(
            card_count=lapse_count,
            interval=lapse_interval,
            days_since_last_review=0.0,
            lapses=lapses + 1,
        )
        return ClusterSplit(cluster, lapsed, reviewed, lapse_count, 0.0)
    return ClusterSplit(cluster, None, reviewed, lapse_count, lapse_count)


def consolidate_clusters(clusters: Iterable[CardCluster]) -> List[CardCluster]:
    """Merge clusters with identical scheduling state by summing their mass."""
    merged: Dict[tuple[float, float, int], CardCluster] = {}
    for cluster in clusters:
        key = cluster.state_key()
        existing = merged.get(key)
        if existing is None:
            merged[key] = cluster
        else:
            existing.card_count += cluster.card_count
    return list(merged.values())


class AnalyticalSimulator(Simulator):
    """Deterministic simulation that splits cluster mass by expected value.

    A single seed cohort of mass 1.0 is advanced through the schedule. Since
    every daily unit of new cards starts in the same state and the dynamics
    are linear in mass, the population totals after day n are the sum of the
    cohort's cumulative totals at ages 1..n.
    """

    engine_name = "analytical"

    def __init__(self, config: Optional[SimConfig] = None) -> None:
        super().__init__(config)
        self.clusters: List[CardCluster] = []
        self.cohort_review_count = 0.0
        self.cohort_review_time = 0.0
        self.cohort_lapse_count = 0.0
        self.cohort_removed_count = 0.0
        self.cards_added = 0.0
        self.review_count = 0.0
        self.lapse_count = 0.0
        self.removed_count = 0.0

    @property
    def cluster_count(self) -> int:
        return len(self.clusters)

    def cohort_mass(self) -> float:
        """Live plus removed mass of the seed cohort; stays at 1.0 once seeded."""
        return sum(c.card_count for c in self.clusters) + self.cohort_removed_count

    def simulate_day(self) -> None:
        self._ensure_seed()
        self.days_simulated += 1
        self.cards_added += 1.0
        self.time_spent_on_new += self.config.seconds_per_new_card
        self._advance_cohort()
        self.time_spent_on_review += self.cohort_review_time
        self.review_count += self.cohort_review_count
        self.lapse_count += self.cohort_lapse_count
        self.removed_count += self.cohort_removed_count

    def simulate_n_days(
        self,
        n: int,
        *,
        progress: bool = False,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        self._ensure_seed()
        self._run_days(
            n, self.simulate_day, progress=progress, progress_callback=progress_callback
        )

    def known_cards(self) -> float:
        retained = retained_fraction(self.config.retention_ratio)
        return (self.cards_added - self.removed_count) * retained

    def cards_learned_per_hour(self) -> float:
        """Estimated known cards per hour spent on new cards and reviews."""
        return self._learned_per_hour(self.known_cards())

    def summary(self) -> SimulationSummary:
        return self._summary(self.known_cards())

    def _ensure_seed(self) -> None:
        if self.clusters or self.cards_added:
            return
        self.clusters.append(CardCluster(card_count=1.0))

    def _advance_cohort(self) -> None:
        cfg = self.config
        retention = cfg.retention_ratio
        spawned: List[CardCluster] = []
        for cluster in self.clusters:
            if cluster.days_since_last_review < cluster.interval:
                cluster.days_since_last_review += 1.0
                continue
            split = split_cluster(cluster, cfg, retention)
            self.cohort_review_count += split.reviewed_mass
            self.cohort_review_time += cfg.seconds_per_review_card * split.reviewed_mass
            self.cohort_lapse_count += split.lapsed_mass
            if split.lapsed is not None:
                spawned.append(split.lapsed)
                self.cohort_review_time += cfg.seconds_per_lapsed_card * split.lapsed_mass
            else:
                self.cohort_removed_count += split.removed_mass
        self.clusters = consolidate_clusters(self.clusters + spawned)
        if cfg.min_cluster_mass > 0.0:
            self._prune(cfg.min_cluster_mass)

    def _prune(self, min_mass: float) -> None:
        kept: List[CardCluster] = []
        pruned = 0.0
        for cluster in self.clusters:
            if cluster.card_count < min_mass:
                pruned += cluster.card_count
            else:
                kept.append(cluster)
        if len(kept) != len(self.clusters):
            logging.debug(
                "Pruned %d clusters (mass %.3g) below %.3g.",
                len(self.clusters) - len(kept),
                pruned,
                min_mass,
            )
        self.clusters = kept
        self.cohort_removed_count += pruned
