import math

from rungrade.core.constants import EARTH_RADIUS_M


def haversine(lat1, lon1, lat2, lon2):
    """Return great‑circle distance in meters between two WGS84 points.

    Uses the standard haversine formula; sufficient for per‑point distances
    over a typical GPS activity track.
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_finite_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def segment_distance(a, b) -> float:
    """Distance between two points; 0.0 if either lacks usable coordinates."""
    if not all(is_finite_number(v) for v in (a.lat, a.lon, b.lat, b.lon)):
        return 0.0
    return haversine(a.lat, a.lon, b.lat, b.lon)


def path_length(points) -> float:
    """Total path length (meters) over consecutive points."""
    return sum(segment_distance(points[i - 1], points[i]) for i in range(1, len(points)))
