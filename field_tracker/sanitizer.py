"""Timestamp validation, ordering and de-spiking of location traces.

The filter is a single greedy pass: every candidate is compared against the
last *accepted* point, and a rejected point is dropped for good. A spike
followed by a second, equally wrong point can therefore survive as a "jump"
once enough time has elapsed; only spikes bracketed by plausible motion are
caught.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Iterable, List, Optional

from .config import (
    SANITIZE_JUMP_KM_THRESHOLD,
    SANITIZE_MAX_FUTURE_SEC,
    SANITIZE_MIN_YEAR,
    SPIKE_MAX_DT_SEC,
)
from .geo import distance_km
from .models import Point

LOGGER = logging.getLogger(__name__)

EPOCH_YEAR = 1970
SECONDS_PER_YEAR = 365 * 24 * 3600


@dataclass(frozen=True, slots=True)
class SanitizeOptions:
    min_year: int = SANITIZE_MIN_YEAR
    jump_km_threshold: float = SANITIZE_JUMP_KM_THRESHOLD
    max_future_sec: int = SANITIZE_MAX_FUTURE_SEC


def min_timestamp(min_year: int) -> int:
    """Earliest accepted epoch second for ``min_year`` (365-day years, no leap days)."""

    return (min_year - EPOCH_YEAR) * SECONDS_PER_YEAR


def is_plausible_timestamp(
    ts: Optional[int], options: SanitizeOptions, now: int
) -> bool:
    if ts is None:
        return False
    if ts < min_timestamp(options.min_year):
        return False
    if ts > now + options.max_future_sec:
        return False
    return True


def is_spike(prev: Point, candidate: Point, jump_km_threshold: float) -> bool:
    """Return True when ``candidate`` implies an implausible jump from ``prev``."""

    km = distance_km(prev.lat, prev.lon, candidate.lat, candidate.lon)
    dt = candidate.ts - prev.ts  # type: ignore[operator]
    return km > jump_km_threshold and dt < SPIKE_MAX_DT_SEC


def sanitize(
    points: Iterable[Point],
    options: Optional[SanitizeOptions] = None,
    *,
    now: Optional[int] = None,
) -> List[Point]:
    """Return a chronologically ordered, de-spiked copy of ``points``.

    Points without a plausible timestamp are discarded, the rest are stably
    sorted by ``ts`` (equal timestamps keep their input order) and then
    filtered for spikes.
    """

    opts = options or SanitizeOptions()
    now_sec = int(time.time()) if now is None else now
    incoming = list(points)

    timed = [p for p in incoming if is_plausible_timestamp(p.ts, opts, now_sec)]
    timed.sort(key=lambda p: p.ts)

    cleaned: List[Point] = []
    for candidate in timed:
        if not cleaned:
            cleaned.append(candidate)
            continue
        prev = cleaned[-1]
        if is_spike(prev, candidate, opts.jump_km_threshold):
            LOGGER.warning(
                "Dropping spike point prev=%s candidate=%s km=%.1f dt=%s",
                prev,
                candidate,
                distance_km(prev.lat, prev.lon, candidate.lat, candidate.lon),
                candidate.ts - prev.ts,  # type: ignore[operator]
            )
            continue
        cleaned.append(candidate)

    LOGGER.debug("Sanitized trace before=%d after=%d", len(incoming), len(cleaned))
    return cleaned


__all__ = [
    "SanitizeOptions",
    "is_plausible_timestamp",
    "is_spike",
    "min_timestamp",
    "sanitize",
]
