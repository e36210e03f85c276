from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Bin(BaseModel):
    """One fixed-distance segment of a route with its derived metrics."""

    # Clients post bins back to the analysis endpoints; tolerate extras
    model_config = ConfigDict(extra="ignore")

    distance_m: float
    elevation_change_m: float = 0.0
    gradient_pct: float = 0.0

    # Time-derived metrics stay None unless both endpoints carry timestamps
    duration_s: Optional[float] = None
    time_taken: Optional[str] = None  # 'HH:MM:SS'
    velocity_mps: Optional[float] = None
    pace_min_per_km: Optional[float] = None

    adjusted_duration_s: float = 0.0
    grade_adjusted_distance_m: Optional[float] = None

    start_index: int = 0
    end_index: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    avg_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    min_heart_rate: Optional[int] = None
    heart_rate_samples: int = 0

    # Pre-supplied average speed (km/h); preferred by the reliability filter
    avg_speed_kmh: Optional[float] = None


class RunSummary(BaseModel):
    total_bins: int
    valid_bins: int
    total_distance_km: float
    total_time_s: float
    total_elevation_gain_m: int
    avg_pace_min_per_km: Optional[float] = None
    avg_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    heart_rate_coverage: float
