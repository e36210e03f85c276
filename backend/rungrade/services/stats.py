import math
import statistics
from typing import Iterable, Optional


def round_half_up(value: float) -> int:
    # round() is banker's rounding; 152.5 bpm should read as 153
    return int(math.floor(value + 0.5))


def is_positive_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def positive_values(values: Iterable) -> list[float]:
    return [v for v in values if is_positive_number(v)]


def mean(values: list[float]) -> Optional[float]:
    return statistics.fmean(values) if values else None


def median(values: list[float]) -> Optional[float]:
    """Middle value, or the mean of the two middle values for even counts."""
    return statistics.median(values) if values else None


STATISTICS = {"mean": mean, "median": median}


def get_statistic(name: str):
    try:
        return STATISTICS[name]
    except KeyError:
        raise ValueError(f"statistic must be one of {sorted(STATISTICS)}, got {name!r}") from None
