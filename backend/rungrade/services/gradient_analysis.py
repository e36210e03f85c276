"""Cross-run gradient / pace statistics.

Bins from many runs are pooled and looked at in four ways:

* range buckets: 5%-wide gradient ranges, mean and median of per-bin pace;
* per-degree chart: bins grouped by whole-degree gradient, one
  distance/time weighted pace per group (not a mean of per-bin paces);
* grade adjustment: per-degree paces relative to the flat baseline,
  next to the literature model;
* adjustment profile: the same comparison computed from individual bins,
  with a selectable mean or median statistic.

The range and per-degree methods intentionally disagree for groups whose
bins have very different durations; both are reported.
"""

import logging
import math
from collections import defaultdict
from typing import Callable, Optional, Sequence

from rungrade.core.constants import BASELINE_SEARCH_DEGREES, GRADIENT_RANGE_EDGES
from rungrade.core.errors import AnalysisInputError
from rungrade.core.time_utils import format_pace
from rungrade.models.gradient_key import GradientKey
from rungrade.schemas.analysis import (
    AdjustmentProfile,
    AdjustmentProfileEntry,
    AnalysisReport,
    GradeAdjustmentEntry,
    GradeAdjustmentReport,
    GradientBucket,
    GradientPaceReport,
    PaceChartEntry,
)
from rungrade.schemas.bin import Bin
from rungrade.services.grade_model import GradeModel, polynomial_grade_adjustment
from rungrade.services.stats import get_statistic, is_positive_number, mean, median, positive_values

log = logging.getLogger(__name__)


def collect_bins(runs) -> list[Bin]:
    if runs is None:
        raise AnalysisInputError("No results provided")
    pooled: list[Bin] = []
    for run in runs:
        bins = getattr(run, "bins", None)
        if bins:
            pooled.extend(bins)
    return pooled


def _range_label(lo: Optional[float], hi: Optional[float]) -> str:
    if lo is None:
        return f"≤{hi:g}%"
    if hi is None:
        return f"≥{lo:g}%"
    return f"{lo:g} to {hi:g}%"


def gradient_ranges() -> list[tuple[Optional[float], Optional[float]]]:
    """(lo, hi] pairs covering the whole line; None is an open end."""
    edges = [None] + list(GRADIENT_RANGE_EDGES) + [None]
    return list(zip(edges[:-1], edges[1:]))


def _in_range(gradient: float, lo: Optional[float], hi: Optional[float]) -> bool:
    if lo is None:
        return gradient <= hi
    if hi is None:
        return gradient > lo
    return lo < gradient <= hi


def gradient_pace_buckets(runs) -> GradientPaceReport:
    bins = collect_bins(runs)
    if not bins:
        return GradientPaceReport(buckets=[], total_bins_analyzed=0, summary="No bins found in results")

    buckets: list[GradientBucket] = []
    for lo, hi in gradient_ranges():
        in_range = [b for b in bins if _has_gradient(b) and _in_range(b.gradient_pct, lo, hi)]
        if not in_range:
            continue
        paces = positive_values(b.pace_min_per_km for b in in_range)
        if not paces:
            continue
        heart_rates = positive_values(b.avg_heart_rate for b in in_range)
        avg_pace = mean(paces)
        median_pace = median(paces)
        label = _range_label(lo, hi)
        log.debug("Bucket %s: %d paces, mean=%.2f median=%.2f", label, len(paces), avg_pace, median_pace)
        buckets.append(GradientBucket(
            label=label,
            min=lo,
            max=hi,
            bin_count=len(in_range),
            avg_pace=avg_pace,
            median_pace=median_pace,
            avg_heart_rate=mean(heart_rates),
            median_heart_rate=median(heart_rates),
            pace_label=format_pace(avg_pace),
            median_pace_label=format_pace(median_pace),
        ))

    return GradientPaceReport(
        buckets=buckets,
        total_bins_analyzed=len(bins),
        summary=f"Analyzed {len(buckets)} gradient ranges with {len(bins)} total bins",
    )


def _has_gradient(b: Bin) -> bool:
    # NaN/inf can arrive through posted JSON; such bins have no gradient key
    return math.isfinite(b.gradient_pct)


def _timed(b: Bin) -> bool:
    return is_positive_number(b.distance_m) and is_positive_number(b.duration_s)


def _pace_chart(runs) -> dict[GradientKey, PaceChartEntry]:
    totals = defaultdict(lambda: [0.0, 0.0, 0])  # distance, time, count
    for b in collect_bins(runs):
        if not (_timed(b) and _has_gradient(b)):
            continue
        group = totals[GradientKey.for_gradient(b.gradient_pct)]
        group[0] += b.distance_m
        group[1] += b.duration_s
        group[2] += 1

    chart = {}
    for key, (distance, time_s, count) in totals.items():
        pace = (time_s / 60) / (distance / 1000)
        chart[key] = PaceChartEntry(
            gradient=key.label,
            gradient_value=key.value,
            bin_count=count,
            total_distance_m=distance,
            total_time_s=time_s,
            avg_pace=pace,
            pace_label=format_pace(pace),
        )
    return chart


def pace_by_gradient(runs) -> list[PaceChartEntry]:
    chart = _pace_chart(runs)
    return [chart[key] for key in sorted(chart)]


def _baseline(groups: dict, pick: Callable[[object], Optional[float]]) -> Optional[float]:
    """Value at 0%, else the nearest exact key within the search window,
    else None (callers decide the final fallback)."""
    flat = GradientKey.exact(0)
    if flat in groups:
        return pick(groups[flat])
    near = sorted(
        (k for k in groups if k.is_exact and abs(k.value) <= BASELINE_SEARCH_DEGREES),
        key=lambda k: (abs(k.value), k.value),
    )
    if near:
        return pick(groups[near[0]])
    return None


def grade_adjustment_analysis(
    runs,
    grade_model: GradeModel = polynomial_grade_adjustment,
) -> GradeAdjustmentReport:
    by_key = _pace_chart(runs)

    base_pace = _baseline(by_key, lambda entry: entry.avg_pace)
    if base_pace is None:
        base_pace = mean([entry.avg_pace for entry in by_key.values() if entry.avg_pace])

    data = []
    for key in sorted(by_key):
        entry = by_key[key]
        personal = entry.avg_pace / base_pace if base_pace and base_pace > 0 else 1.0
        data.append(GradeAdjustmentEntry(
            gradient=entry.gradient,
            gradient_value=float(key.value),
            personal_adjustment=round(personal, 4),
            literature_adjustment=round(grade_model(float(key.value)), 4),
            avg_pace=entry.avg_pace,
            pace_label=entry.pace_label,
            bin_count=entry.bin_count,
        ))

    return GradeAdjustmentReport(
        adjustment_data=data,
        base_pace=base_pace,
        base_pace_label=format_pace(base_pace),
    )


def bin_adjustment_profile(
    runs,
    statistic: str = "mean",
    grade_model: GradeModel = polynomial_grade_adjustment,
) -> AdjustmentProfile:
    """Per-bin actual pace ratio vs the model's expected ratio.

    Bins are bucketed with the per-degree keys. The baseline is the chosen
    statistic over the flat bucket's per-bin paces (nearest bucket within
    the search window, then all bins, as fallbacks).
    """
    stat = get_statistic(statistic)

    groups: dict[GradientKey, list[float]] = defaultdict(list)
    for b in collect_bins(runs):
        if _timed(b) and _has_gradient(b) and is_positive_number(b.pace_min_per_km):
            groups[GradientKey.for_gradient(b.gradient_pct)].append(b.pace_min_per_km)

    base_pace = _baseline(groups, stat)
    if base_pace is None:
        base_pace = stat([p for paces in groups.values() for p in paces])

    entries = []
    if base_pace and base_pace > 0:
        for key in sorted(groups):
            paces = groups[key]
            actual = stat([p / base_pace for p in paces])
            expected = grade_model(float(key.value))
            entries.append(AdjustmentProfileEntry(
                gradient=key.label,
                gradient_value=float(key.value),
                bin_count=len(paces),
                actual_ratio=round(actual, 4),
                expected_ratio=round(expected, 4),
                deviation=round(actual - expected, 4),
            ))

    return AdjustmentProfile(
        statistic=statistic,
        base_pace=base_pace,
        base_pace_label=format_pace(base_pace),
        entries=entries,
    )


def analyze_gradient_pace(
    runs: Optional[Sequence],
    statistic: str = "mean",
    grade_model: GradeModel = polynomial_grade_adjustment,
) -> AnalysisReport:
    if runs is None:
        raise AnalysisInputError("No results provided")
    # validate before doing any work so a bad statistic yields no partial output
    get_statistic(statistic)
    report = AnalysisReport(
        gradient_pace=gradient_pace_buckets(runs),
        pace_by_gradient_chart=pace_by_gradient(runs),
        grade_adjustment=grade_adjustment_analysis(runs, grade_model),
        adjustment_profile=bin_adjustment_profile(runs, statistic, grade_model),
    )
    log.info(
        "Gradient analysis: %d bins, %d ranges, %d degree groups",
        report.gradient_pace.total_bins_analyzed,
        len(report.gradient_pace.buckets),
        len(report.pace_by_gradient_chart),
    )
    return report
