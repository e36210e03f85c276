import math

import pytest

from rungrade.core.errors import (
    ActivityError,
    ActivityParseError,
    EmptyTrackError,
    UnsupportedFileTypeError,
)
from rungrade.services.activity_io import _semicircles_to_degrees, load_activity

from track_factory import CORRUPT_GPX, EMPTY_GPX, gpx_bytes


def test_gpx_points_and_stats():
    parsed = load_activity("morning.gpx", gpx_bytes(n=5, ele_step=1.0, dt=12, heart_rate=140))

    assert len(parsed.points) == 5
    first = parsed.points[0]
    assert first.lat == 0.0
    assert first.elevation == 100.0
    assert first.heart_rate == 140
    assert parsed.points[-1].heart_rate == 144

    stats = parsed.stats
    assert stats.file_type == "GPX"
    assert stats.point_count == 5
    assert stats.total_time_s == 48
    assert stats.elevation_gain_m == 4
    assert stats.distance_km == pytest.approx(0.2, abs=0.001)
    assert stats.start_time is not None


def test_gpx_without_heart_rate():
    parsed = load_activity("plain.gpx", gpx_bytes(n=3))
    assert all(p.heart_rate is None for p in parsed.points)


def test_extension_match_is_case_insensitive():
    parsed = load_activity("UPPER.GPX", gpx_bytes(n=3))
    assert parsed.stats.filename == "UPPER.GPX"


def test_unsupported_extension():
    with pytest.raises(UnsupportedFileTypeError) as exc:
        load_activity("notes.txt", b"hello")
    assert exc.value.filename == "notes.txt"
    assert "Only GPX and FIT" in exc.value.message


def test_gpx_without_points():
    with pytest.raises(EmptyTrackError):
        load_activity("empty.gpx", EMPTY_GPX)


def test_malformed_gpx():
    with pytest.raises(ActivityParseError):
        load_activity("broken.gpx", CORRUPT_GPX)


def test_malformed_fit():
    with pytest.raises(ActivityError):
        load_activity("broken.fit", b"definitely not a fit file")


def test_semicircle_conversion():
    assert _semicircles_to_degrees(2**30) == pytest.approx(90.0)
    assert _semicircles_to_degrees(-(2**29)) == pytest.approx(-45.0)
    # already in degrees
    assert _semicircles_to_degrees(51.5) == 51.5
    assert _semicircles_to_degrees(None) is None


def test_gpx_non_finite_elevation_reads_as_zero():
    data = gpx_bytes(n=6).replace(b"<ele>102.0</ele>", b"<ele>nan</ele>")
    parsed = load_activity("nan.gpx", data)

    assert parsed.points[2].elevation == 0.0
    assert all(math.isfinite(p.elevation) for p in parsed.points)
    assert math.isfinite(parsed.stats.elevation_gain_m)
