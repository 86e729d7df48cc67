import math

from field_tracker.models import LatestReport, Point
from field_tracker.normalize import (
    normalize_latest,
    normalize_points,
    to_timestamp,
)


def test_coerces_strings_and_keeps_order():
    raw = [
        {"lat": "10.5", "lon": " 20.25 ", "ts": "1700000000"},
        {"lat": 11, "lon": 21, "timestamp": 1700000010.9},
    ]
    assert normalize_points(raw) == [
        Point(lat=10.5, lon=20.25, ts=1700000000),
        Point(lat=11.0, lon=21.0, ts=1700000010),
    ]


def test_drops_non_finite_coordinates():
    raw = [
        {"lat": None, "lon": 20, "ts": 1},
        {"lat": "abc", "lon": 20, "ts": 2},
        {"lat": float("nan"), "lon": 20, "ts": 3},
        {"lat": 10, "lon": float("inf"), "ts": 4},
        {"lon": 20, "ts": 5},
        "not-a-mapping",
        None,
        {"lat": 1, "lon": 2, "ts": 6},
    ]
    points = normalize_points(raw)
    assert points == [Point(lat=1.0, lon=2.0, ts=6)]
    assert all(math.isfinite(p.lat) and math.isfinite(p.lon) for p in points)


def test_ts_takes_precedence_over_timestamp():
    raw = [{"lat": 1, "lon": 2, "ts": 100, "timestamp": 200}]
    assert normalize_points(raw)[0].ts == 100


def test_null_ts_falls_back_to_timestamp():
    raw = [{"lat": 1, "lon": 2, "ts": None, "timestamp": 200}]
    assert normalize_points(raw)[0].ts == 200


def test_unusable_timestamp_becomes_none():
    raw = [
        {"lat": 1, "lon": 2, "ts": "yesterday"},
        {"lat": 1, "lon": 2},
        {"lat": 1, "lon": 2, "ts": float("nan")},
    ]
    assert [p.ts for p in normalize_points(raw)] == [None, None, None]


def test_to_timestamp_rejects_booleans():
    assert to_timestamp(True) is None
    assert to_timestamp(1700000000) == 1700000000


def test_normalize_points_handles_none():
    assert normalize_points(None) == []


def test_normalize_latest_defaults():
    raw = {"lat": "12.5", "lon": 77.1, "sos": 1}
    latest = normalize_latest(raw, "esp01", now=1234)
    assert latest == LatestReport(
        device_id="esp01",
        lat=12.5,
        lon=77.1,
        timestamp=1234,
        speed=None,
        battery=None,
        sos=True,
    )


def test_normalize_latest_keeps_reported_fields():
    raw = {
        "device_id": "unit-7",
        "lat": 1,
        "lon": 2,
        "speed": "3.5",
        "battery": 88,
        "sos": 0,
        "timestamp": 1700000000,
    }
    latest = normalize_latest(raw, "esp01", now=1)
    assert latest.device_id == "unit-7"
    assert latest.speed == 3.5
    assert latest.battery == 88.0
    assert latest.sos is False
    assert latest.timestamp == 1700000000


def test_normalize_latest_absent_or_unusable():
    assert normalize_latest(None, "esp01") is None
    assert normalize_latest({}, "esp01") is None
    assert normalize_latest({"lat": None, "lon": 1}, "esp01") is None
