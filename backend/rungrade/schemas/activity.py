from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from rungrade.schemas.bin import Bin, RunSummary


class ActivityStats(BaseModel):
    """Whole-file statistics reported alongside the bins."""

    filename: str
    file_type: str  # 'GPX' or 'FIT'
    total_time_s: float = 0.0
    distance_km: float = 0.0
    elevation_gain_m: float = 0.0
    point_count: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    # FIT session fields; GPX leaves them empty
    avg_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    avg_cadence: Optional[int] = None
    calories: Optional[int] = None
    sport: str = "unknown"
    avg_speed_kmh: Optional[float] = None
    max_speed_kmh: Optional[float] = None


class RunBins(BaseModel):
    """Minimal run shape the analyzer and filter consume."""

    model_config = ConfigDict(extra="allow")

    bins: list[Bin] = []


class RunResult(ActivityStats):
    """One successfully processed activity."""

    model_config = ConfigDict(extra="allow")

    bin_length: float
    bins: list[Bin] = []
    bin_summary: Optional[RunSummary] = None
    route_point_count: int = 0
    has_heart_rate_data: bool = False
    file_index: int = 0


class FileError(BaseModel):
    filename: str
    error: str
