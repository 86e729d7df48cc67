"""Statistics derived from a sanitized trace.

Pure transformation: given a trace (and optionally the latest fix) it
produces the scalar figures shown next to the map. Nothing here raises on
degenerate input; empty or single-point traces yield zeros or ``None``.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from .config import RECENT_TRAIL_SIZE
from .geo import pairwise_distances_km
from .models import LatestReport, Point, Trace, TraceStats


def point_count(trace: Sequence[Point], latest: Optional[LatestReport]) -> int:
    if trace:
        return len(trace)
    return 1 if latest is not None else 0


def _segment_distances_km(trace: Sequence[Point]) -> np.ndarray:
    return pairwise_distances_km([p.lat for p in trace], [p.lon for p in trace])


def path_distance_km(trace: Sequence[Point]) -> float:
    """Cumulative haversine distance along the trace in kilometres."""

    if len(trace) < 2:
        return 0.0
    return float(np.sum(_segment_distances_km(trace)))


def average_speed_mps(
    trace: Sequence[Point], latest: Optional[LatestReport]
) -> Optional[float]:
    """Mean of per-segment speeds, falling back to the reported speed.

    The figure is only shown when the unit reports a speed at all, so a
    missing ``latest.speed`` yields None regardless of the trace.
    """

    if latest is None or latest.speed is None:
        return None
    if len(trace) < 2:
        return latest.speed
    distances_km = _segment_distances_km(trace)
    speeds: List[float] = []
    for (prev, point), km in zip(zip(trace, trace[1:]), distances_km):
        if prev.ts is None or point.ts is None:
            continue
        dt = point.ts - prev.ts
        if dt <= 0:
            continue
        speeds.append(float(km) * 1000.0 / dt)
    if not speeds:
        return latest.speed
    return float(np.mean(speeds))


def tracking_duration_sec(trace: Sequence[Point]) -> Optional[int]:
    """Seconds between the first and last point.

    A timestamp of exactly 0 counts as missing and yields None.
    """

    if len(trace) < 2:
        return None
    first, last = trace[0].ts, trace[-1].ts
    if not first or not last:
        return None
    return last - first


def compute_stats(
    trace: Sequence[Point], latest: Optional[LatestReport] = None
) -> TraceStats:
    return TraceStats(
        point_count=point_count(trace, latest),
        path_distance_km=path_distance_km(trace),
        average_speed_mps=average_speed_mps(trace, latest),
        tracking_duration_sec=tracking_duration_sec(trace),
    )


def recent_trail(trace: Sequence[Point], size: int = RECENT_TRAIL_SIZE) -> Trace:
    """Return the last ``size`` points, newest first."""

    if size <= 0 or not trace:
        return ()
    return tuple(reversed(tuple(trace)[-size:]))


def last_update_epoch(
    latest: Optional[LatestReport], trace: Sequence[Point]
) -> Optional[int]:
    """Timestamp of the most recent fix, preferring the reported latest one."""

    if latest is not None and latest.timestamp is not None:
        return latest.timestamp
    if trace:
        return trace[-1].ts
    return None


__all__ = [
    "average_speed_mps",
    "compute_stats",
    "last_update_epoch",
    "path_distance_km",
    "point_count",
    "recent_trail",
    "tracking_duration_sec",
]
