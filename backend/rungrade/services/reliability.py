"""Bin reliability filter.

Drops bins whose metrics are physically implausible and, optionally, bins
outside a heart-rate window. Every dropped bin is counted under exactly
one reason: the first failing check in the order speed, gradient,
duration, distance, heart rate.
"""

import logging
from typing import Optional, Sequence

from rungrade.core.constants import (
    MAX_ABS_GRADIENT_PCT,
    MAX_SPEED_KMH,
    MIN_BIN_DURATION_S,
    MIN_SPEED_KMH,
)
from rungrade.schemas.bin import Bin
from rungrade.schemas.filtering import ExclusionCounts, FilterOptions, FilterResult, HeartRateRange

log = logging.getLogger(__name__)


def bin_speed_kmh(b: Bin) -> float:
    if b.avg_speed_kmh is not None:
        return b.avg_speed_kmh
    if b.velocity_mps is not None:
        return b.velocity_mps * 3.6
    return 0.0


def exclusion_reason(b: Bin, options: FilterOptions) -> Optional[str]:
    """Name of the first failed check, or None if the bin is kept."""
    if options.remove_unreliable_bins:
        speed = bin_speed_kmh(b)
        # `not (lo <= x <= hi)` also rejects NaN
        if not (MIN_SPEED_KMH <= speed <= MAX_SPEED_KMH):
            return "speed"
        if not (-MAX_ABS_GRADIENT_PCT <= b.gradient_pct <= MAX_ABS_GRADIENT_PCT):
            return "gradient"
        if not (b.duration_s is not None and b.duration_s >= MIN_BIN_DURATION_S):
            return "duration"
        if not (b.distance_m > 0):
            return "distance"

    hr_range: Optional[HeartRateRange] = options.heart_rate_range
    if hr_range is not None and hr_range.active:
        hr = b.avg_heart_rate
        if (
            hr is None
            or (hr_range.min_hr and hr < hr_range.min_hr)
            or (hr_range.max_hr and hr > hr_range.max_hr)
        ):
            return "heart_rate"
    return None


def filter_bins(bins: Sequence[Bin], options: FilterOptions) -> FilterResult:
    counts = ExclusionCounts()
    kept: list[Bin] = []
    for b in bins:
        reason = exclusion_reason(b, options)
        if reason is None:
            kept.append(b)
            continue
        setattr(counts, reason, getattr(counts, reason) + 1)
        counts.total += 1
    return FilterResult(kept_bins=kept, exclusion_counts=counts)


def filter_runs(runs: Sequence, options: FilterOptions):
    """Filter each run's bins independently.

    Returns (filtered_runs, combined_counts); each filtered run is a copy of
    the input run with only its kept bins.
    """
    counts = ExclusionCounts()
    filtered = []
    for run in runs:
        result = filter_bins(run.bins, options)
        counts = counts.merge(result.exclusion_counts)
        filtered.append(run.model_copy(update={"bins": result.kept_bins}))
    log.info(
        "Filtered %d runs: excluded %d bins (speed=%d gradient=%d duration=%d distance=%d heart_rate=%d)",
        len(filtered), counts.total, counts.speed, counts.gradient,
        counts.duration, counts.distance, counts.heart_rate,
    )
    return filtered, counts
