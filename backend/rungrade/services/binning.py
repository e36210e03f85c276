"""Distance binning engine.

Splits a point sequence into consecutive bins of (at least) a fixed
distance and derives gradient, pace, heart-rate and grade-adjusted
metrics for each one. Consecutive bins share their boundary point, so
the index ranges always cover ``[0, n-1]``.
"""

import math
from typing import Optional, Sequence

from rungrade.core.geo import segment_distance
from rungrade.core.time_utils import elapsed_seconds, seconds_to_hhmmss
from rungrade.models.point import Point
from rungrade.schemas.bin import Bin, RunSummary
from rungrade.services.grade_model import GradeModel, clamp_gradient
from rungrade.services.stats import is_positive_number, round_half_up


def bin_points(
    points: Sequence[Point],
    bin_length: float = 50.0,
    grade_model: Optional[GradeModel] = None,
    reference_velocity: Optional[float] = None,
) -> list[Bin]:
    """Split `points` into bins of at least `bin_length` meters.

    A bin closes at the first point where the accumulated distance reaches
    `bin_length`; its distance is the accumulated value and is not clamped.
    Whatever is left after the last closed bin becomes a shorter remainder
    bin. Grade-adjusted metrics are only derived when both `grade_model` and
    a positive `reference_velocity` are given.
    """
    if points is None or len(points) < 2:
        return []
    if not bin_length or bin_length <= 0:
        raise ValueError("bin_length must be > 0")

    bins: list[Bin] = []
    start_idx = 0
    acc_m = 0.0

    for i in range(1, len(points)):
        acc_m += segment_distance(points[i - 1], points[i])
        if acc_m >= bin_length:
            bins.append(_build_bin(points, start_idx, i, acc_m, grade_model, reference_velocity))
            start_idx = i
            acc_m = 0.0

    # Remainder: may be shorter than bin_length, or even 0 m
    last = len(points) - 1
    if start_idx < last:
        bins.append(_build_bin(points, start_idx, last, acc_m, grade_model, reference_velocity))

    return bins


def _build_bin(
    points: Sequence[Point],
    start_idx: int,
    end_idx: int,
    distance: float,
    grade_model: Optional[GradeModel],
    reference_velocity: Optional[float],
) -> Bin:
    start, end = points[start_idx], points[end_idx]
    elevation_change = (end.elevation or 0.0) - (start.elevation or 0.0)
    if not math.isfinite(elevation_change):
        elevation_change = 0.0
    gradient = (elevation_change / distance) * 100 if distance > 0 else 0.0

    duration = elapsed_seconds(start.timestamp, end.timestamp)
    velocity = None
    pace = None
    if duration is not None:
        velocity = distance / duration
        pace = (1000 / velocity) / 60 if velocity > 0 else None

    adjusted_duration = 0.0
    grade_adjusted_distance = None
    if grade_model is not None and is_positive_number(reference_velocity):
        factor = grade_model(clamp_gradient(gradient))
        if is_positive_number(factor):
            adjusted_duration = distance * factor / reference_velocity
            grade_adjusted_distance = distance * factor

    heart_rates = [
        p.heart_rate for p in points[start_idx:end_idx + 1] if is_positive_number(p.heart_rate)
    ]
    avg_hr = max_hr = min_hr = None
    if heart_rates:
        avg_hr = round_half_up(sum(heart_rates) / len(heart_rates))
        max_hr = int(max(heart_rates))
        min_hr = int(min(heart_rates))

    return Bin(
        distance_m=distance,
        elevation_change_m=round(elevation_change, 2),
        gradient_pct=round(gradient, 2),
        duration_s=duration,
        time_taken=seconds_to_hhmmss(duration),
        velocity_mps=velocity,
        pace_min_per_km=pace,
        adjusted_duration_s=adjusted_duration,
        grade_adjusted_distance_m=grade_adjusted_distance,
        start_index=start_idx,
        end_index=end_idx,
        start_time=start.timestamp,
        end_time=end.timestamp,
        avg_heart_rate=avg_hr,
        max_heart_rate=max_hr,
        min_heart_rate=min_hr,
        heart_rate_samples=len(heart_rates),
    )


def summarize(bins: Sequence[Bin]) -> Optional[RunSummary]:
    """Aggregate one activity's bins; None when no bin has a positive distance."""
    if not bins:
        return None

    valid = [b for b in bins if is_positive_number(b.distance_m)]
    if not valid:
        return None

    total_distance = sum(b.distance_m for b in valid)
    total_time = sum(b.duration_s or 0.0 for b in valid)
    total_gain = sum(max(0.0, b.elevation_change_m) for b in valid)

    with_hr = [b for b in valid if b.avg_heart_rate]
    avg_hr = None
    max_hr = None
    if with_hr:
        avg_hr = round_half_up(sum(b.avg_heart_rate for b in with_hr) / len(with_hr))
        max_hr = max(b.max_heart_rate or b.avg_heart_rate for b in with_hr)

    avg_pace = None
    if total_distance > 0 and total_time > 0:
        avg_pace = (total_time / 60) / (total_distance / 1000)
        if not math.isfinite(avg_pace):
            avg_pace = None

    return RunSummary(
        total_bins=len(bins),
        valid_bins=len(valid),
        total_distance_km=round(total_distance / 1000, 2),
        total_time_s=total_time,
        total_elevation_gain_m=round_half_up(total_gain),
        avg_pace_min_per_km=avg_pace,
        avg_heart_rate=avg_hr,
        max_heart_rate=max_hr,
        heart_rate_coverage=len(with_hr) / len(valid),
    )
