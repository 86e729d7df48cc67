"""Tests for timestamp validation, ordering and spike removal."""

from __future__ import annotations

import logging

import pytest

from field_tracker.geo import distance_km
from field_tracker.models import Point
from field_tracker.normalize import normalize_points
from field_tracker.sanitizer import SanitizeOptions, min_timestamp, sanitize
from field_tracker.stats import path_distance_km

from conftest import NOW, make_point, make_raw

T0 = 1700000000


def _messy_trace() -> list[Point]:
    return [
        make_point(10.02, 20.02, T0 + 120),
        make_point(10.0, 20.0, T0),
        make_point(45.0, 80.0, T0 + 20),  # spike
        make_point(10.01, 20.01, T0 + 60),
        make_point(10.01, 20.01, None),
        make_point(10.03, 20.03, 5),  # before the cutoff year
        make_point(10.04, 20.04, NOW + 3 * 86400),  # far future
        make_point(10.015, 20.015, T0 + 60),  # same second as an earlier point
    ]


def test_scenario_small_displacement_is_kept():
    raw = [make_raw(10, 20, T0), make_raw(10.001, 20.001, T0 + 5)]
    trace = sanitize(normalize_points(raw), now=NOW)
    assert len(trace) == 2
    assert path_distance_km(trace) == pytest.approx(0.156, abs=2e-3)


def test_scenario_fast_long_jump_is_rejected():
    raw = [make_raw(10, 20, T0), make_raw(50, 90, T0 + 30)]
    trace = sanitize(normalize_points(raw), now=NOW)
    assert trace == [Point(lat=10.0, lon=20.0, ts=T0)]


def test_scenario_millisecond_timestamp_is_rejected_as_future():
    raw = [make_raw(10, 20, T0), make_raw(10.001, 20.001, 1000000000000)]
    trace = sanitize(normalize_points(raw))
    assert [p.ts for p in trace] == [T0]


def test_points_without_timestamp_are_dropped():
    assert sanitize([make_point(1.0, 2.0, None)], now=NOW) == []


def test_min_year_cutoff_uses_365_day_years():
    cutoff = min_timestamp(2009)
    assert cutoff == 39 * 365 * 86400
    points = [make_point(1.0, 1.0, cutoff - 1), make_point(1.0, 1.0, cutoff)]
    assert [p.ts for p in sanitize(points, now=NOW)] == [cutoff]


def test_future_limit_is_inclusive():
    points = [
        make_point(1.0, 1.0, NOW + 86400),
        make_point(1.0, 1.0, NOW + 86401),
    ]
    assert [p.ts for p in sanitize(points, now=NOW)] == [NOW + 86400]


def test_output_is_sorted_and_ties_keep_input_order():
    first = make_point(10.0, 20.0, T0 + 10)
    second = make_point(10.0005, 20.0005, T0 + 10)
    earlier = make_point(10.0001, 20.0001, T0)
    assert sanitize([first, second, earlier], now=NOW) == [earlier, first, second]


def test_slow_long_jump_is_accepted():
    points = [make_point(10.0, 20.0, T0), make_point(50.0, 90.0, T0 + 60)]
    assert len(sanitize(points, now=NOW)) == 2


def test_rejected_point_is_not_used_as_reference():
    anchor = make_point(10.0, 20.0, T0)
    spike = make_point(50.0, 90.0, T0 + 30)
    follow = make_point(10.001, 20.001, T0 + 40)
    assert sanitize([anchor, spike, follow], now=NOW) == [anchor, follow]


def test_repeated_wrong_point_survives_once_enough_time_passes():
    anchor = make_point(10.0, 20.0, T0)
    spike = make_point(50.0, 90.0, T0 + 30)
    second_spike = make_point(50.0, 90.0, T0 + 90)
    # Compared against the anchor (dt=90s), the second wrong fix is a "jump".
    assert sanitize([anchor, spike, second_spike], now=NOW) == [anchor, second_spike]


def test_custom_threshold():
    points = [make_point(10.0, 20.0, T0), make_point(10.1, 20.0, T0 + 10)]
    options = SanitizeOptions(jump_km_threshold=5.0)
    assert len(sanitize(points, options, now=NOW)) == 1
    assert len(sanitize(points, now=NOW)) == 2


def test_idempotent():
    once = sanitize(_messy_trace(), now=NOW)
    assert sanitize(once, now=NOW) == once


def test_monotonic_and_spike_free():
    trace = sanitize(_messy_trace(), now=NOW)
    assert len(trace) == 4
    for prev, point in zip(trace, trace[1:]):
        assert prev.ts <= point.ts
        km = distance_km(prev.lat, prev.lon, point.lat, point.lon)
        assert not (km > 200 and point.ts - prev.ts < 60)


def test_spike_is_logged(caplog: pytest.LogCaptureFixture):
    raw = [make_raw(10, 20, T0), make_raw(50, 90, T0 + 30)]
    with caplog.at_level(logging.WARNING, logger="field_tracker.sanitizer"):
        sanitize(normalize_points(raw), now=NOW)
    assert "spike" in caplog.text.lower()


def test_empty_input():
    assert sanitize([], now=NOW) == []
