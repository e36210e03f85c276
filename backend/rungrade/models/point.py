from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Point:
    """One normalized trackpoint: degrees, meters and datetime instants."""

    lat: Optional[float]
    lon: Optional[float]
    elevation: float = 0.0
    timestamp: Optional[datetime] = None
    heart_rate: Optional[int] = None
    cadence: Optional[int] = None
    speed: Optional[float] = None  # m/s as reported by the device
