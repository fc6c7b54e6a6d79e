from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from intervalsim.chart import NORMALIZE_MODES, write_chart
from intervalsim.config import DEFAULT_CONFIG, SimConfig
from intervalsim.core import DEFAULT_MATURE_INTERVAL
from intervalsim.sweep import ENGINES, grid_values, sweep_grid, vertical_slice


def add_interval_range_args(
    parser: argparse.ArgumentParser,
    *,
    start_default: float,
    end_default: float,
    cells_default: int,
) -> None:
    parser.add_argument(
        "--start-interval-factor",
        type=float,
        default=start_default,
        help="First interval factor of the sweep.",
    )
    parser.add_argument(
        "--end-interval-factor",
        type=float,
        default=end_default,
        help="Last interval factor of the sweep (inclusive).",
    )
    parser.add_argument(
        "--interval-cells",
        type=int,
        default=cells_default,
        help="Number of interval factors between start and end.",
    )


def add_common_args(
    parser: argparse.ArgumentParser, *, engine_default: str, samples_default: int
) -> None:
    parser.add_argument(
        "--engine", choices=ENGINES, default=engine_default, help="Simulation engine."
    )
    parser.add_argument("--days", type=int, default=365, help="Simulated days.")
    parser.add_argument(
        "--samples",
        type=int,
        default=samples_default,
        help="New cards per day (stochastic engine sample size).",
    )
    parser.add_argument(
        "--difficulty-variance",
        type=float,
        default=DEFAULT_CONFIG.difficulty_variance,
        help="Std-dev of per-card recall probability.",
    )
    parser.add_argument(
        "--max-lapses",
        type=int,
        default=DEFAULT_CONFIG.max_lapses,
        help="Lapse count after which a failed card is dropped.",
    )
    parser.add_argument(
        "--seconds-per-new-card",
        type=float,
        default=DEFAULT_CONFIG.seconds_per_new_card,
        help="Seconds per new card.",
    )
    parser.add_argument(
        "--seconds-per-review-card",
        type=float,
        default=DEFAULT_CONFIG.seconds_per_review_card,
        help="Seconds per review.",
    )
    parser.add_argument(
        "--seconds-per-lapsed-card",
        type=float,
        default=DEFAULT_CONFIG.seconds_per_lapsed_card,
        help="Extra seconds per failed review.",
    )
    parser.add_argument(
        "--mature-interval",
        type=float,
        default=DEFAULT_MATURE_INTERVAL,
        help="Interval (days) at which a stochastic card counts as known.",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed.")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Sweep interval factors (and measured retention) for throughput.",
        allow_abbrev=False,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    slice_parser = sub.add_parser(
        "slice", help="Print throughput along a range of interval factors."
    )
    add_interval_range_args(
        slice_parser, start_default=2.0, end_default=10.0, cells_default=33
    )
    add_common_args(slice_parser, engine_default="stochastic", samples_default=100)
    slice_parser.add_argument(
        "--measured-retention",
        type=float,
        default=0.9,
        help="Measured retention ratio at interval factor 2.5.",
    )

    chart_parser = sub.add_parser(
        "chart", help="Render an interval factor x retention throughput heat map."
    )
    add_interval_range_args(
        chart_parser, start_default=2.0, end_default=19.75, cells_default=18 * 4
    )
    add_common_args(chart_parser, engine_default="analytical", samples_default=10)
    chart_parser.add_argument(
        "--start-retention", type=float, default=0.01, help="First measured retention."
    )
    chart_parser.add_argument(
        "--end-retention", type=float, default=1.0, help="Last measured retention."
    )
    chart_parser.add_argument(
        "--retention-cells",
        type=int,
        default=100,
        help="Number of measured retention values between start and end.",
    )
    chart_parser.add_argument(
        "--normalize",
        choices=NORMALIZE_MODES,
        default="column",
        help="Normalize each retention column, or the whole chart.",
    )
    chart_parser.add_argument(
        "--magnify", type=int, default=1, help="Integer bilinear magnification."
    )
    chart_parser.add_argument(
        "--workers", type=int, default=1, help="Worker processes for the sweep."
    )
    chart_parser.add_argument(
        "--out", type=Path, default=Path("chart.png"), help="Output PNG path."
    )
    chart_parser.add_argument(
        "--no-progress", action="store_true", help="Disable the sweep progress bar."
    )
    return parser.parse_args(argv)


def _base_config(args: argparse.Namespace) -> SimConfig:
    return (
        DEFAULT_CONFIG.with_difficulty_variance(args.difficulty_variance)
        .with_max_lapses(args.max_lapses)
        .with_new_cards_per_day(args.samples)
        .with_seconds_per_new_card(args.seconds_per_new_card)
        .with_seconds_per_review_card(args.seconds_per_review_card)
        .with_seconds_per_lapsed_card(args.seconds_per_lapsed_card)
    )


def _interval_factors(args: argparse.Namespace) -> list[float]:
    try:
        return grid_values(
            args.start_interval_factor, args.end_interval_factor, args.interval_cells
        )
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc


def run_slice(args: argparse.Namespace) -> None:
    factors = _interval_factors(args)
    summaries = vertical_slice(
        factors,
        args.measured_retention,
        engine=args.engine,
        base_config=_base_config(args),
        days=args.days,
        seed=args.seed,
        mature_interval=args.mature_interval,
    )
    for factor, summary in zip(factors, summaries):
        print(
            f"Interval Factor: {factor:.2f}  |  "
            f"Cards learned per hour: {summary.cards_learned_per_hour:.2f}  |  "
            f"Lapse ratio: {summary.lapses_per_review:.2f}"
        )


def run_chart(args: argparse.Namespace) -> None:
    factors = _interval_factors(args)
    try:
        retentions = grid_values(
            args.start_retention, args.end_retention, args.retention_cells
        )
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    if args.magnify < 1:
        raise SystemExit("--magnify must be >= 1.")
    chart = sweep_grid(
        factors,
        retentions,
        engine=args.engine,
        base_config=_base_config(args),
        days=args.days,
        seed=args.seed,
        mature_interval=args.mature_interval,
        max_workers=args.workers,
        progress=not args.no_progress,
    )
    write_chart(args.out, chart, normalize_mode=args.normalize, magnify=args.magnify)
    print(f"Wrote {args.out} ({chart.shape[1]}x{chart.shape[0]} cells).")


def main(argv: Optional[Sequence[str]] = None) -> None:
    start_time = time.perf_counter()
    args = parse_args(argv)
    try:
        if args.command == "slice":
            run_slice(args)
        else:
            run_chart(args)
    finally:
        elapsed = time.perf_counter() - start_time
        print(f"Total sweep time: {elapsed:.2f}s", file=sys.stderr)


if __name__ == "__main__":
    main()
