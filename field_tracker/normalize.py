"""Coerce untrusted location reports into canonical points."""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Iterable, List, Mapping, Optional

from .models import LatestReport, Point

LOGGER = logging.getLogger(__name__)


def to_float(value: Any) -> float:
    """Best-effort float conversion; anything unusable becomes NaN."""

    if value is None:
        return math.nan
    if isinstance(value, str):
        value = value.strip()
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def to_optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    number = to_float(value)
    return number if math.isfinite(number) else None


def to_timestamp(value: Any) -> Optional[int]:
    """Return epoch seconds as ``int`` or None when the value is not numeric."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    number = to_float(value)
    if not math.isfinite(number):
        return None
    return int(number)


def raw_timestamp(raw: Mapping[str, Any]) -> Any:
    """Return the ``ts`` field, falling back to ``timestamp`` when absent."""

    value = raw.get("ts")
    if value is None:
        value = raw.get("timestamp")
    return value


def normalize_point(raw: Any) -> Optional[Point]:
    if not isinstance(raw, Mapping):
        return None
    lat = to_float(raw.get("lat"))
    lon = to_float(raw.get("lon"))
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return Point(lat=lat, lon=lon, ts=to_timestamp(raw_timestamp(raw)))


def normalize_points(raw_points: Iterable[Any] | None) -> List[Point]:
    """Map raw reports to :class:`Point`, dropping non-finite coordinates.

    Order of the surviving points matches the input order.
    """

    if raw_points is None:
        return []
    points: List[Point] = []
    dropped = 0
    for raw in raw_points:
        point = normalize_point(raw)
        if point is None:
            dropped += 1
            continue
        points.append(point)
    if dropped:
        LOGGER.debug("Dropped %d reports without finite coordinates", dropped)
    return points


def normalize_latest(
    raw: Any, device_id: str, now: Optional[int] = None
) -> Optional[LatestReport]:
    """Build a :class:`LatestReport` from a remote latest-fix record.

    Missing ``speed``/``battery`` become None, ``sos`` is truth-coerced and a
    missing timestamp defaults to ``now``. Records that are not mappings, or
    whose coordinates are not finite, are treated as "no latest fix".
    """

    if not isinstance(raw, Mapping) or not raw:
        return None
    lat = to_float(raw.get("lat"))
    lon = to_float(raw.get("lon"))
    if not (math.isfinite(lat) and math.isfinite(lon)):
        LOGGER.warning(
            "Ignoring latest fix for device=%s with unusable coordinates lat=%r lon=%r",
            device_id,
            raw.get("lat"),
            raw.get("lon"),
        )
        return None
    timestamp = to_timestamp(raw.get("timestamp"))
    if timestamp is None:
        timestamp = int(time.time()) if now is None else now
    reported_id = raw.get("device_id")
    return LatestReport(
        device_id=str(reported_id) if reported_id is not None else device_id,
        lat=lat,
        lon=lon,
        timestamp=timestamp,
        speed=to_optional_float(raw.get("speed")),
        battery=to_optional_float(raw.get("battery")),
        sos=bool(raw.get("sos")),
    )


__all__ = [
    "normalize_latest",
    "normalize_point",
    "normalize_points",
    "to_float",
    "to_optional_float",
    "to_timestamp",
]
