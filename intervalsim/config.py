from __future__ import annotations

import dataclasses
import json
import logging
import math
from dataclasses import dataclass, replace
from functools import cached_property
from pathlib import Path
from typing import Any, Tuple

from intervalsim.retention import retention_ratio


@dataclass(frozen=True)
class SimConfig:
    """Scheduler and study-cost settings shared by both engines.

    Each ``with_*`` option returns a new record; the retention ratio is derived
    on first read so options can be applied in any order.
    """

    interval_factor: float = 2.5
    lapse_interval_factor: float = 0.0
    measured_retention: Tuple[float, float] = (0.9, 2.5)
    difficulty_variance: float = 0.05
    max_lapses: int = 8
    new_cards_per_day: int = 100
    seconds_per_new_card: float = 90.0
    seconds_per_review_card: float = 20.0
    seconds_per_lapsed_card: float = 40.0
    min_cluster_mass: float = 0.0

    @cached_property
    def retention_ratio(self) -> float:
        ratio, measured_factor = self.measured_retention
        if not (0.0 < ratio < 1.0) or measured_factor <= 0.0:
            logging.warning(
                "Measured retention (%s, %s) is outside (0, 1) x (0, inf); "
                "derived metrics will be degenerate.",
                ratio,
                measured_factor,
            )
        return retention_ratio(ratio, measured_factor, self.interval_factor)

    def with_interval_factor(self, factor: float) -> "SimConfig":
        return replace(self, interval_factor=float(factor))

    def with_lapse_interval_factor(self, factor: float) -> "SimConfig":
        return replace(self, lapse_interval_factor=float(factor))

    def with_measured_retention_ratio(
        self, ratio: float, interval_factor: float
    ) -> "SimConfig":
        return replace(
            self, measured_retention=(float(ratio), float(interval_factor))
        )

    def with_difficulty_variance(self, variance: float) -> "SimConfig":
        return replace(self, difficulty_variance=float(variance))

    def with_max_lapses(self, lapses: int) -> "SimConfig":
        return replace(self, max_lapses=int(lapses))

    def with_new_cards_per_day(self, new_cards: int) -> "SimConfig":
        return replace(self, new_cards_per_day=int(new_cards))

    def with_seconds_per_new_card(self, seconds: float) -> "SimConfig":
        """Average seconds spent on a new card before it becomes a review card."""
        return replace(self, seconds_per_new_card=float(seconds))

    def with_seconds_per_review_card(self, seconds: float) -> "SimConfig":
        """Average seconds spent on each review."""
        return replace(self, seconds_per_review_card=float(seconds))

    def with_seconds_per_lapsed_card(self, seconds: float) -> "SimConfig":
        """Extra seconds spent relearning a forgotten card."""
        return replace(self, seconds_per_lapsed_card=float(seconds))

    def with_min_cluster_mass(self, mass: float) -> "SimConfig":
        return replace(self, min_cluster_mass=float(mass))

    def to_dict(self) -> dict[str, Any]:
        return {
            "interval_factor": self.interval_factor,
            "lapse_interval_factor": self.lapse_interval_factor,
            "measured_retention": list(self.measured_retention),
            "difficulty_variance": self.difficulty_variance,
            "max_lapses": self.max_lapses,
            "new_cards_per_day": self.new_cards_per_day,
            "seconds_per_new_card": self.seconds_per_new_card,
            "seconds_per_review_card": self.seconds_per_review_card,
            "seconds_per_lapsed_card": self.seconds_per_lapsed_card,
            "min_cluster_mass": self.min_cluster_mass,
            "retention_ratio": _json_float(self.retention_ratio),
        }


DEFAULT_CONFIG = SimConfig()

_FIELD_NAMES = {f.name for f in dataclasses.fields(SimConfig) if f.init}


def config_from_dict(
    data: dict[str, Any], *, base: SimConfig = DEFAULT_CONFIG
) -> SimConfig:
    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}.")
    overrides = dict(data)
    if "measured_retention" in overrides:
        pair = overrides["measured_retention"]
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ValueError("measured_retention must be a [ratio, interval_factor] pair.")
        overrides["measured_retention"] = (float(pair[0]), float(pair[1]))
    if "max_lapses" in overrides:
        overrides["max_lapses"] = int(overrides["max_lapses"])
    if "new_cards_per_day" in overrides:
        overrides["new_cards_per_day"] = int(overrides["new_cards_per_day"])
    for key, value in overrides.items():
        if key not in {"measured_retention", "max_lapses", "new_cards_per_day"}:
            overrides[key] = float(value)
    return replace(base, **overrides)


def load_sim_config(path: Path, *, base: SimConfig = DEFAULT_CONFIG) -> SimConfig:
    """
    Load config overrides from a JSON object file.
    """
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object.")
    return config_from_dict(data, base=base)


def _json_float(value: float) -> float | None:
    return value if math.isfinite(value) else None


__all__ = ["DEFAULT_CONFIG", "SimConfig", "config_from_dict", "load_sim_config"]
