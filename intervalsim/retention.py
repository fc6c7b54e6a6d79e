from __future__ import annotations

import math


def _log(value: float) -> float:
    if value > 0.0:
        return math.log(value)
    if value == 0.0:
        return -math.inf
    return math.nan


def retention_ratio(
    measured_ratio: float,
    measured_interval_factor: float,
    interval_factor: float,
) -> float:
    """Recall probability at `interval_factor` given a measured reference point.

    Recall follows a power law in the interval factor:
    ``exp((interval_factor / measured_interval_factor) * ln(measured_ratio))``.
    Out-of-domain references propagate as non-finite floats instead of raising.
    """
    if measured_interval_factor == 0.0:
        return math.nan
    exponent = interval_factor / measured_interval_factor * _log(measured_ratio)
    if math.isnan(exponent):
        return math.nan
    try:
        return math.exp(exponent)
    except OverflowError:
        return math.inf


def retained_fraction(ratio: float) -> float:
    """Long-run fraction of cards kept for a constant per-review recall probability."""
    log_ratio = _log(ratio)
    if log_ratio == 0.0:
        return math.nan
    return -(1.0 - ratio) / log_ratio
