from rungrade.schemas.activity import RunBins
from rungrade.schemas.bin import Bin
from rungrade.schemas.filtering import FilterOptions, HeartRateRange
from rungrade.services.reliability import exclusion_reason, filter_bins, filter_runs

UNRELIABLE = FilterOptions(remove_unreliable_bins=True)


def make_bin(speed_kmh=10.0, gradient=2.0, duration=18.0, distance=50.0, hr=None):
    return Bin(
        distance_m=distance,
        gradient_pct=gradient,
        duration_s=duration,
        velocity_mps=speed_kmh / 3.6 if speed_kmh is not None else None,
        avg_heart_rate=hr,
    )


def test_plausible_bin_is_kept():
    assert exclusion_reason(make_bin(), UNRELIABLE) is None


def test_too_fast_bin_counted_once_under_speed():
    result = filter_bins([make_bin(speed_kmh=35.0)], UNRELIABLE)

    assert result.kept_bins == []
    counts = result.exclusion_counts
    assert counts.speed == 1
    assert counts.total == 1
    assert counts.gradient == counts.duration == counts.distance == counts.heart_rate == 0


def test_first_failing_check_wins():
    # fails speed, gradient and duration at once
    b = make_bin(speed_kmh=0.5, gradient=45.0, duration=0.5)
    assert exclusion_reason(b, UNRELIABLE) == "speed"
    assert exclusion_reason(make_bin(gradient=-31.0, duration=0.2), UNRELIABLE) == "gradient"
    assert exclusion_reason(make_bin(duration=0.5), UNRELIABLE) == "duration"
    assert exclusion_reason(make_bin(duration=None), UNRELIABLE) == "duration"
    assert exclusion_reason(make_bin(speed_kmh=None), UNRELIABLE) == "speed"


def test_zero_distance_bin_excluded():
    b = Bin(distance_m=0.0, gradient_pct=0.0, duration_s=5.0, avg_speed_kmh=8.0)
    assert exclusion_reason(b, UNRELIABLE) == "distance"


def test_pre_supplied_speed_takes_precedence():
    b = make_bin(speed_kmh=50.0)
    b.avg_speed_kmh = 12.0
    assert exclusion_reason(b, UNRELIABLE) is None


def test_limits_are_inclusive():
    assert exclusion_reason(make_bin(speed_kmh=30.0, gradient=30.0, duration=1.0), UNRELIABLE) is None
    assert exclusion_reason(make_bin(speed_kmh=1.0, gradient=-30.0), UNRELIABLE) is None


def test_heart_rate_window_alone():
    options = FilterOptions(heart_rate_range=HeartRateRange(min_hr=140, max_hr=160))
    bins = [make_bin(hr=150), make_bin(hr=130), make_bin(hr=170), make_bin(hr=None), make_bin(speed_kmh=80, hr=150)]

    result = filter_bins(bins, options)

    # unreliable checks are off, so the 80 km/h bin stays
    assert len(result.kept_bins) == 2
    assert result.exclusion_counts.heart_rate == 3
    assert result.exclusion_counts.total == 3


def test_heart_rate_check_skipped_when_bin_already_excluded():
    options = FilterOptions(
        remove_unreliable_bins=True,
        heart_rate_range=HeartRateRange(min_hr=140),
    )
    result = filter_bins([make_bin(speed_kmh=40.0, hr=100)], options)

    assert result.exclusion_counts.speed == 1
    assert result.exclusion_counts.heart_rate == 0
    assert result.exclusion_counts.total == 1


def test_empty_heart_rate_range_is_inactive():
    options = FilterOptions(heart_rate_range=HeartRateRange())
    assert exclusion_reason(make_bin(hr=None), options) is None


def test_filter_runs_combines_counts_per_run():
    runs = [
        RunBins(bins=[make_bin(), make_bin(speed_kmh=40.0)], filename="a.gpx"),
        RunBins(bins=[make_bin(gradient=50.0), make_bin()], filename="b.gpx"),
    ]

    filtered, counts = filter_runs(runs, UNRELIABLE)

    assert [len(r.bins) for r in filtered] == [1, 1]
    assert filtered[0].filename == "a.gpx"
    assert counts.speed == 1
    assert counts.gradient == 1
    assert counts.total == 2
    # inputs are left untouched
    assert len(runs[0].bins) == 2
