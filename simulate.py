from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from intervalsim.config import DEFAULT_CONFIG, SimConfig, load_sim_config
from intervalsim.core import DEFAULT_MATURE_INTERVAL, SimulationSummary
from intervalsim.sweep import ENGINES, run_point


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Simulate interval-factor scheduling and report learning throughput.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--engine",
        choices=ENGINES,
        default="stochastic",
        help="Simulation engine: stochastic (per-card sampling) or analytical (cluster mass).",
    )
    parser.add_argument(
        "--days", type=int, default=365, help="Number of simulated days."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file with config overrides (applied before the flags below).",
    )
    parser.add_argument(
        "--interval-factor",
        type=float,
        default=None,
        help="Interval multiplier on a good answer.",
    )
    parser.add_argument(
        "--lapse-interval-factor",
        type=float,
        default=None,
        help="Interval multiplier on a failed review.",
    )
    parser.add_argument(
        "--measured-retention",
        type=float,
        default=None,
        help="Measured retention ratio at --measured-interval-factor.",
    )
    parser.add_argument(
        "--measured-interval-factor",
        type=float,
        default=None,
        help="Interval factor the measured retention was observed at.",
    )
    parser.add_argument(
        "--difficulty-variance",
        type=float,
        default=None,
        help="Std-dev of per-card recall probability (stochastic engine only).",
    )
    parser.add_argument(
        "--max-lapses",
        type=int,
        default=None,
        help="Lapse count after which a failed card is dropped.",
    )
    parser.add_argument(
        "--new-cards-per-day",
        type=int,
        default=None,
        help="New cards per day (stochastic engine only).",
    )
    parser.add_argument(
        "--seconds-per-new-card", type=float, default=None, help="Seconds per new card."
    )
    parser.add_argument(
        "--seconds-per-review-card",
        type=float,
        default=None,
        help="Seconds per review.",
    )
    parser.add_argument(
        "--seconds-per-lapsed-card",
        type=float,
        default=None,
        help="Extra seconds per failed review.",
    )
    parser.add_argument(
        "--min-cluster-mass",
        type=float,
        default=None,
        help="Prune analytical clusters lighter than this (0 disables pruning).",
    )
    parser.add_argument(
        "--mature-interval",
        type=float,
        default=DEFAULT_MATURE_INTERVAL,
        help="Interval (days) at which a stochastic card counts as known.",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed.")
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=Path("logs"),
        help="Directory to store simulation logs.",
    )
    parser.add_argument(
        "--no-log",
        action="store_true",
        help="Disable writing simulation logs (meta + totals) to disk.",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the simulation progress bar.",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> SimConfig:
    config = DEFAULT_CONFIG
    if args.config is not None:
        try:
            config = load_sim_config(args.config)
        except (OSError, ValueError) as exc:
            raise SystemExit(str(exc)) from exc
    if args.interval_factor is not None:
        config = config.with_interval_factor(args.interval_factor)
    if args.lapse_interval_factor is not None:
        config = config.with_lapse_interval_factor(args.lapse_interval_factor)
    if args.measured_retention is not None or args.measured_interval_factor is not None:
        ratio, measured_factor = config.measured_retention
        config = config.with_measured_retention_ratio(
            args.measured_retention if args.measured_retention is not None else ratio,
            args.measured_interval_factor
            if args.measured_interval_factor is not None
            else measured_factor,
        )
    if args.difficulty_variance is not None:
        config = config.with_difficulty_variance(args.difficulty_variance)
    if args.max_lapses is not None:
        config = config.with_max_lapses(args.max_lapses)
    if args.new_cards_per_day is not None:
        config = config.with_new_cards_per_day(args.new_cards_per_day)
    if args.seconds_per_new_card is not None:
        config = config.with_seconds_per_new_card(args.seconds_per_new_card)
    if args.seconds_per_review_card is not None:
        config = config.with_seconds_per_review_card(args.seconds_per_review_card)
    if args.seconds_per_lapsed_card is not None:
        config = config.with_seconds_per_lapsed_card(args.seconds_per_lapsed_card)
    if args.min_cluster_mass is not None:
        config = config.with_min_cluster_mass(args.min_cluster_mass)
    return config


def format_summary(summary: SimulationSummary, interval_factor: float) -> str:
    return (
        f"Interval Factor: {interval_factor:.2f}  |  "
        f"Cards learned per hour: {summary.cards_learned_per_hour:.2f}  |  "
        f"Lapse ratio: {summary.lapses_per_review:.2f}"
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.days < 0:
        raise SystemExit("--days must be >= 0.")

    config = resolve_config(args)
    start_time = time.perf_counter()
    summary = run_point(
        args.engine,
        config,
        days=args.days,
        seed=args.seed,
        mature_interval=args.mature_interval,
        progress=not args.no_progress,
    )
    elapsed = time.perf_counter() - start_time
    sys.stderr.write(f"Simulation time: {elapsed:.2f}s\n")
    print(format_summary(summary, config.interval_factor))
    print(
        f"Review time: {summary.review_hours:.2f}h  |  "
        f"New time: {summary.new_hours:.2f}h  |  "
        f"Known cards: {summary.known_cards:.1f}  |  "
        f"Retention ratio: {summary.average_retention_ratio:.3f}"
    )
    if not args.no_log:
        _write_log(args, config, summary)


def _write_log(
    args: argparse.Namespace, config: SimConfig, summary: SimulationSummary
) -> Path:
    args.log_dir.mkdir(parents=True, exist_ok=True)
    ratio, measured_factor = config.measured_retention
    parts = [
        f"engine={args.engine}",
        f"ivlf={config.interval_factor:.2f}",
        f"lapsef={config.lapse_interval_factor:.2f}",
        f"ret={ratio:.2f}@{measured_factor:.2f}",
        f"maxl={config.max_lapses}",
        f"days={args.days}",
        f"seed={args.seed}",
    ]
    filename = args.log_dir / f"log_{'_'.join(parts)}.jsonl"
    meta = {
        "engine": args.engine,
        "days": args.days,
        "seed": args.seed,
        "mature_interval": args.mature_interval,
        "config": config.to_dict(),
    }
    with filename.open("w", encoding="utf-8") as fh:
        fh.write(json.dumps({"type": "meta", "data": meta}) + "\n")
        fh.write(json.dumps({"type": "totals", "data": summary.to_dict()}) + "\n")
    return filename


if __name__ == "__main__":
    main()
