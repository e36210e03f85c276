"""Synthetic tracks for tests.

Points walk east along the equator, where 0.00045° of longitude is about
50.04 m, so distances are easy to reason about.
"""

from datetime import datetime, timedelta, timezone

from rungrade.models.point import Point

T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)
STEP_DEG = 0.00045


def make_points(n, step_deg=STEP_DEG, ele_step=0.0, dt=10, heart_rates=None, timed=True):
    points = []
    for i in range(n):
        points.append(Point(
            lat=0.0,
            lon=i * step_deg,
            elevation=i * ele_step,
            timestamp=T0 + timedelta(seconds=i * dt) if timed else None,
            heart_rate=heart_rates[i] if heart_rates else None,
        ))
    return points


def gpx_bytes(n=12, step_deg=STEP_DEG, ele_step=1.0, dt=12, heart_rate=None) -> bytes:
    rows = []
    for i in range(n):
        ts = (T0 + timedelta(seconds=i * dt)).strftime("%Y-%m-%dT%H:%M:%SZ")
        ext = ""
        if heart_rate is not None:
            ext = (
                "<extensions><gpxtpx:TrackPointExtension>"
                f"<gpxtpx:hr>{heart_rate + i}</gpxtpx:hr>"
                "</gpxtpx:TrackPointExtension></extensions>"
            )
        rows.append(
            f'<trkpt lat="0.0" lon="{i * step_deg:.6f}">'
            f"<ele>{100 + i * ele_step:.1f}</ele><time>{ts}</time>{ext}</trkpt>"
        )
    xml = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<gpx version="1.1" creator="tests" '
        'xmlns="http://www.topografix.com/GPX/1/1" '
        'xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1">'
        "<trk><name>Test Run</name><trkseg>"
        + "".join(rows)
        + "</trkseg></trk></gpx>"
    )
    return xml.encode("utf-8")


EMPTY_GPX = (
    b'<?xml version="1.0" encoding="UTF-8"?>'
    b'<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">'
    b"<trk><name>Empty</name><trkseg></trkseg></trk></gpx>"
)

CORRUPT_GPX = b"<gpx><trk><trkseg><trkpt lat="
