import math


def seconds_to_hhmmss(total_seconds: float | None) -> str | None:
    """
    Convert seconds -> 'HH:MM:SS', truncating fractional seconds.
    Example: 2732.6 -> '00:45:32'. Returns None for None.
    """
    if total_seconds is None:
        return None
    total = int(total_seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    seconds = total % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_pace(pace_min_per_km: float | None) -> str:
    """
    Format a decimal pace (min/km) as 'M:SS'.
    Example: 5.5 -> '5:30'. Missing or non-finite paces render as 'N/A'.
    """
    if pace_min_per_km is None or not math.isfinite(pace_min_per_km) or pace_min_per_km < 0:
        return "N/A"
    total_sec = int(math.floor(pace_min_per_km * 60 + 0.5))
    minutes, seconds = divmod(total_sec, 60)
    return f"{minutes}:{seconds:02d}"


def elapsed_seconds(start, end) -> float | None:
    """Seconds between two datetimes, or None when either is missing or
    the difference is not a finite positive number."""
    if start is None or end is None:
        return None
    try:
        seconds = (end - start).total_seconds()
    except (TypeError, AttributeError):
        # naive/aware mix or non-datetime values
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    return seconds
