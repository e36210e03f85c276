"""GPX / FIT adapters.

Each adapter turns raw upload bytes into the normalized point sequence plus
whole-file stats. All source-format quirks (semicircle coordinates,
enhanced vs legacy FIT fields, GPX tracks vs routes, heart rate hidden in
GPX extensions) are handled here so the binning engine only ever sees
``Point`` objects.
"""

import io
import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime

import gpxpy
import gpxpy.gpx
from fitparse import FitFile, FitParseError

from rungrade.core.constants import SEMICIRCLES_TO_DEGREES, SUPPORTED_EXTENSIONS
from rungrade.core.errors import ActivityParseError, EmptyTrackError, UnsupportedFileTypeError
from rungrade.core.geo import is_finite_number, path_length
from rungrade.core.time_utils import elapsed_seconds
from rungrade.models.point import Point
from rungrade.schemas.activity import ActivityStats

log = logging.getLogger(__name__)


@dataclass
class ParsedActivity:
    points: list[Point]
    stats: ActivityStats


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def load_activity(filename: str, data: bytes) -> ParsedActivity:
    """Dispatch on extension; raises an ActivityError subclass on failure."""
    ext = file_extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(
            filename, "Unsupported file type. Only GPX and FIT files are supported."
        )
    if ext == ".gpx":
        parsed = parse_gpx(filename, data)
    else:
        parsed = parse_fit(filename, data)
    if not parsed.points:
        raise EmptyTrackError(filename, "No track data found")
    log.info("Extracted %d points from %s", len(parsed.points), filename)
    return parsed


# --------- Shared track totals --------- #

def _elevation(val) -> float:
    """Missing, unparsable or non-finite altitude reads as 0 m."""
    try:
        val = float(val)
    except (TypeError, ValueError):
        return 0.0
    return val if is_finite_number(val) else 0.0


def total_time_s(points: list[Point]) -> float:
    if not points:
        return 0.0
    return elapsed_seconds(points[0].timestamp, points[-1].timestamp) or 0.0


def total_elevation_gain(points: list[Point]) -> float:
    gain = 0.0
    for i in range(1, len(points)):
        de = points[i].elevation - points[i - 1].elevation
        if de > 0:
            gain += de
    return float(round(gain))


# --------- GPX --------- #

def _gpx_heart_rate(point):
    """Garmin TrackPointExtension <gpxtpx:hr>, if present."""
    for ext in getattr(point, "extensions", None) or []:
        for el in ext.iter():
            tag = el.tag.rsplit("}", 1)[-1].lower()
            if tag in ("hr", "heartrate") and el.text:
                try:
                    return int(float(el.text))
                except ValueError:
                    return None
    return None


def parse_gpx(filename: str, data: bytes) -> ParsedActivity:
    try:
        text = data.decode("utf-8-sig") if isinstance(data, (bytes, bytearray)) else data
        gpx = gpxpy.parse(text)
    except (UnicodeDecodeError, gpxpy.gpx.GPXException, ValueError) as e:
        raise ActivityParseError(filename, f"GPX parsing failed: {e}") from e

    # First track; fall back to the first route when the file has no track points
    raw = []
    if gpx.tracks:
        for segment in gpx.tracks[0].segments:
            raw.extend(segment.points)
    if not raw and gpx.routes:
        raw = list(gpx.routes[0].points)

    points = []
    for p in raw:
        points.append(Point(
            lat=p.latitude,
            lon=p.longitude,
            elevation=_elevation(p.elevation),
            timestamp=p.time,
            heart_rate=_gpx_heart_rate(p),
        ))

    stats = ActivityStats(
        filename=filename,
        file_type="GPX",
        total_time_s=total_time_s(points),
        distance_km=path_length(points) / 1000,
        elevation_gain_m=total_elevation_gain(points),
        point_count=len(points),
        start_time=points[0].timestamp if points else None,
        end_time=points[-1].timestamp if points else None,
    )
    return ParsedActivity(points=points, stats=stats)


# --------- FIT --------- #

def _semicircles_to_degrees(val):
    if val is None:
        return None
    # Some exporters already store degrees
    return val * SEMICIRCLES_TO_DEGREES if abs(val) > 180 else float(val)


def _first(fields: dict, *names):
    """First non-None field; enhanced_* names are listed before legacy ones."""
    for name in names:
        val = fields.get(name)
        if val is not None:
            return val
    return None


def _int_or_none(val):
    if val is None:
        return None
    try:
        val = float(val)
    except (TypeError, ValueError):
        return None
    return int(val) if math.isfinite(val) else None


def parse_fit(filename: str, data: bytes) -> ParsedActivity:
    try:
        ff = FitFile(io.BytesIO(data))
        sessions = [{f.name: f.value for f in m} for m in ff.get_messages("session")]
        records = [{f.name: f.value for f in m} for m in ff.get_messages("record")]
    except (FitParseError, ValueError, KeyError, EOFError) as e:
        raise ActivityParseError(filename, f"FIT parsing failed: {e}") from e

    points = []
    for fields in records:
        lat = _semicircles_to_degrees(fields.get("position_lat"))
        lon = _semicircles_to_degrees(fields.get("position_long"))
        if lat is None or lon is None:
            continue  # indoor / pre-lock records
        ele = _first(fields, "enhanced_altitude", "altitude")
        ts = fields.get("timestamp")
        points.append(Point(
            lat=lat,
            lon=lon,
            elevation=_elevation(ele),
            timestamp=ts if isinstance(ts, datetime) else None,
            heart_rate=_int_or_none(fields.get("heart_rate")),
            cadence=_int_or_none(fields.get("cadence")),
            speed=_first(fields, "enhanced_speed", "speed"),
        ))

    session = sessions[0] if sessions else {}
    if not sessions and records:
        log.info("%s has no session message, deriving stats from %d records", filename, len(records))

    # Prefer session totals when present (covers pauses and treadmill runs)
    total_time = session.get("total_timer_time")
    total_distance = session.get("total_distance")
    total_ascent = session.get("total_ascent")
    avg_speed = _first(session, "enhanced_avg_speed", "avg_speed")
    max_speed = _first(session, "enhanced_max_speed", "max_speed")
    start_time = points[0].timestamp if points else session.get("start_time")

    stats = ActivityStats(
        filename=filename,
        file_type="FIT",
        total_time_s=float(total_time) if total_time is not None else total_time_s(points),
        distance_km=(float(total_distance) / 1000) if total_distance is not None else path_length(points) / 1000,
        elevation_gain_m=float(total_ascent) if total_ascent is not None else total_elevation_gain(points),
        point_count=len(points),
        start_time=start_time if isinstance(start_time, datetime) else None,
        end_time=points[-1].timestamp if points else None,
        avg_heart_rate=_int_or_none(session.get("avg_heart_rate")),
        max_heart_rate=_int_or_none(session.get("max_heart_rate")),
        avg_cadence=_int_or_none(session.get("avg_cadence")),
        calories=_int_or_none(session.get("total_calories")),
        sport=str(session.get("sport") or "unknown"),
        avg_speed_kmh=float(avg_speed) * 3.6 if avg_speed is not None else None,
        max_speed_kmh=float(max_speed) * 3.6 if max_speed is not None else None,
    )
    return ParsedActivity(points=points, stats=stats)
