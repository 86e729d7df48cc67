from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True, slots=True)
class Point:
    lat: float
    lon: float
    # Epoch seconds; None when the report carried no usable timestamp.
    ts: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"lat": self.lat, "lon": self.lon, "ts": self.ts}


Trace = Tuple[Point, ...]


@dataclass(frozen=True, slots=True)
class LatestReport:
    device_id: str
    lat: float
    lon: float
    timestamp: int
    speed: Optional[float] = None
    battery: Optional[float] = None
    sos: bool = False


class TraceSource(str, Enum):
    """Where the candidate points of a reconciliation cycle came from."""

    REMOTE = "remote"
    CACHED = "cached"


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    latest: Optional[LatestReport]
    trace: Trace
    source: TraceSource


@dataclass(frozen=True, slots=True)
class TraceStats:
    point_count: int = 0
    path_distance_km: float = 0.0
    average_speed_mps: Optional[float] = None
    tracking_duration_sec: Optional[int] = None


@dataclass(frozen=True, slots=True)
class TraceSnapshot:
    """Immutable state handed to the presentation layer after each cycle."""

    device_id: str
    latest: Optional[LatestReport] = None
    trace: Trace = ()
    stats: TraceStats = field(default_factory=TraceStats)
    error: Optional[str] = None
    generation: int = 0
    source: Optional[TraceSource] = None
    last_update_epoch: Optional[int] = None
    recent_trail: Trace = ()
