from __future__ import annotations

import logging
import math
from concurrent import futures
from typing import Callable, List, Optional, Sequence

import numpy as np
from tqdm import tqdm

from intervalsim.analytical import AnalyticalSimulator
from intervalsim.config import DEFAULT_CONFIG, SimConfig
from intervalsim.core import DEFAULT_MATURE_INTERVAL, SimulationSummary
from intervalsim.stochastic import StochasticSimulator

ENGINES = ("stochastic", "analytical")
MEASURED_INTERVAL_FACTOR = 2.5


def grid_values(start: float, end: float, cells: int) -> list[float]:
    """Evenly spaced values from `start` to `end`, both included."""
    if cells < 1:
        raise ValueError("cells must be >= 1.")
    if cells == 1:
        return [float(start)]
    step = (end - start) / (cells - 1)
    return [start + step * i for i in range(cells)]


def default_lapse_interval_factor(interval_factor: float) -> float:
    return math.sqrt(1.0 / interval_factor)


def point_config(
    base_config: SimConfig,
    interval_factor: float,
    measured_retention: float,
    *,
    lapse_interval_factor: Optional[float] = None,
    measured_interval_factor: float = MEASURED_INTERVAL_FACTOR,
) -> SimConfig:
    if lapse_interval_factor is None:
        lapse_interval_factor = default_lapse_interval_factor(interval_factor)
    return (
        base_config.with_interval_factor(interval_factor)
        .with_measured_retention_ratio(measured_retention, measured_interval_factor)
        .with_lapse_interval_factor(lapse_interval_factor)
    )


def run_point(
    engine: str,
    config: SimConfig,
    *,
    days: int,
    new_cards_per_day: Optional[int] = None,
    seed: Optional[int] = None,
    mature_interval: float = DEFAULT_MATURE_INTERVAL,
    progress: bool = False,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> SimulationSummary:
    """Build one simulator for `config`, run it for `days` and summarize it."""
    if engine == "stochastic":
        sim = StochasticSimulator(config, seed=seed)
        sim.simulate_n_days(
            days,
            new_cards_per_day,
            progress=progress,
            progress_callback=progress_callback,
        )
        return sim.summary(mature_interval)
    if engine == "analytical":
        sim = AnalyticalSimulator(config)
        sim.simulate_n_days(
            days, progress=progress, progress_callback=progress_callback
        )
        return sim.summary()
    raise ValueError(f"Unknown engine '{engine}'. Expected one of {ENGINES}.")


def _learned_per_hour_task(args: tuple) -> float:
    engine, config, days, new_cards_per_day, seed, mature_interval = args
    summary = run_point(
        engine,
        config,
        days=days,
        new_cards_per_day=new_cards_per_day,
        seed=seed,
        mature_interval=mature_interval,
    )
    return summary.cards_learned_per_hour


def sweep_grid(
    interval_factors: Sequence[float],
    measured_retentions: Sequence[float],
    *,
    engine: str = "analytical",
    base_config: SimConfig = DEFAULT_CONFIG,
    days: int = 365,
    new_cards_per_day: Optional[int] = None,
    seed: Optional[int] = None,
    mature_interval: float = DEFAULT_MATURE_INTERVAL,
    lapse_interval_factor: Optional[float] = None,
    max_workers: int = 1,
    progress: bool = False,
) -> np.ndarray:
    """Cards learned per hour over an (interval factor x measured retention) grid.

    Row y holds `interval_factors[y]`, column x holds `measured_retentions[x]`.
    Each point runs an independent simulator; with `max_workers > 1` the points
    are spread over worker processes.
    """
    if engine not in ENGINES:
        raise ValueError(f"Unknown engine '{engine}'. Expected one of {ENGINES}.")
    height = len(interval_factors)
    width = len(measured_retentions)
    tasks = []
    for y, interval_factor in enumerate(interval_factors):
        for x, retention in enumerate(measured_retentions):
            config = point_config(
                base_config,
                interval_factor,
                retention,
                lapse_interval_factor=lapse_interval_factor,
            )
            point_seed = None if seed is None else seed + y * width + x
            tasks.append(
                (engine, config, days, new_cards_per_day, point_seed, mature_interval)
            )

    bar = (
        tqdm(total=len(tasks), desc=f"{engine} sweep", unit="point", leave=False)
        if progress
        else None
    )
    try:
        if max_workers > 1:
            with futures.ProcessPoolExecutor(max_workers=max_workers) as pool:
                values = []
                for value in pool.map(_learned_per_hour_task, tasks):
                    values.append(value)
                    if bar is not None:
                        bar.update(1)
        else:
            values = []
            for task in tasks:
                values.append(_learned_per_hour_task(task))
                if bar is not None:
                    bar.update(1)
    finally:
        if bar is not None:
            bar.close()

    chart = np.asarray(values, dtype=np.float64).reshape(height, width)
    bad = int(np.count_nonzero(~np.isfinite(chart)))
    if bad:
        logging.warning("%d of %d sweep points are non-finite.", bad, chart.size)
    return chart


def vertical_slice(
    interval_factors: Sequence[float],
    measured_retention: float,
    *,
    engine: str = "stochastic",
    base_config: SimConfig = DEFAULT_CONFIG,
    days: int = 365,
    new_cards_per_day: Optional[int] = None,
    seed: Optional[int] = None,
    mature_interval: float = DEFAULT_MATURE_INTERVAL,
    lapse_interval_factor: Optional[float] = None,
) -> List[SimulationSummary]:
    summaries: List[SimulationSummary] = []
    for interval_factor in interval_factors:
        config = point_config(
            base_config,
            interval_factor,
            measured_retention,
            lapse_interval_factor=lapse_interval_factor,
        )
        summaries.append(
            run_point(
                engine,
                config,
                days=days,
                new_cards_per_day=new_cards_per_day,
                seed=seed,
                mature_interval=mature_interval,
            )
        )
    return summaries


__all__ = [
    "ENGINES",
    "default_lapse_interval_factor",
    "grid_values",
    "point_config",
    "run_point",
    "sweep_grid",
    "vertical_slice",
]
