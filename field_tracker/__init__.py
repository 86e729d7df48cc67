"""Field unit trace reconciliation and sanitization package."""

from .main import main
from .models import LatestReport, Point, ReconcileResult, TraceSnapshot, TraceStats
from .errors import FetchError, PersistenceError, TrackerError, ValidationError

__all__ = [
    "main",
    "LatestReport",
    "Point",
    "ReconcileResult",
    "TraceSnapshot",
    "TraceStats",
    "FetchError",
    "PersistenceError",
    "TrackerError",
    "ValidationError",
]
