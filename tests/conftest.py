"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable fakes for the location source
and cache store so reconciliation tests avoid network and disk access.
"""
from __future__ import annotations

import os
import sys
import threading
from typing import Any, Dict, List, Optional

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from field_tracker.cache_store import MemoryCacheStore
from field_tracker.models import Point


# Fixed "now" used by tests that pass an explicit clock (2025-01-01T00:00:00Z).
NOW = 1735689600


# --- Factory helpers -------------------------------------------------
def make_raw(lat, lon, ts):
    return {"lat": lat, "lon": lon, "ts": ts}


def make_point(lat: float, lon: float, ts: Optional[int]) -> Point:
    return Point(lat=lat, lon=lon, ts=ts)


class FakeSource:
    """In-memory stand-in for the tracking backend."""

    def __init__(
        self,
        latest: Optional[Dict[str, Any]] = None,
        history: Optional[List[Any]] = None,
        latest_error: Optional[Exception] = None,
        history_error: Optional[Exception] = None,
    ) -> None:
        self.latest = latest
        self.history = history if history is not None else []
        self.latest_error = latest_error
        self.history_error = history_error
        self.calls: List[tuple[str, str]] = []
        self._lock = threading.Lock()

    def fetch_latest_location(self, device_id: str):
        with self._lock:
            self.calls.append(("latest", device_id))
        if self.latest_error is not None:
            raise self.latest_error
        return self.latest

    def fetch_history(self, device_id: str):
        with self._lock:
            self.calls.append(("history", device_id))
        if self.history_error is not None:
            raise self.history_error
        return list(self.history)


class RecordingCacheStore(MemoryCacheStore):
    """Memory store that remembers every save/clear for assertions."""

    def __init__(self) -> None:
        super().__init__(max_devices=8)
        self.saved: List[tuple[str, tuple]] = []
        self.cleared: List[str] = []

    def save(self, device_id, points, *, guard=None):
        written = super().save(device_id, points, guard=guard)
        if written:
            self.saved.append((device_id, tuple(points)))
        return written

    def clear(self, device_id):
        self.cleared.append(device_id)
        super().clear(device_id)


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def cache_store() -> RecordingCacheStore:
    return RecordingCacheStore()


@pytest.fixture
def fixed_clock():
    return lambda: NOW
