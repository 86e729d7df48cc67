"""Central error types used across the application."""

from __future__ import annotations


class TrackerError(RuntimeError):
    """Base error for field tracker failures."""


class ValidationError(TrackerError):
    """Raised when a device identifier is empty or otherwise unusable."""


class FetchError(TrackerError):
    """Raised when fetching the latest fix or the history list fails."""


class TrackerAPIError(FetchError):
    """Raised when the tracking backend answers with an error status."""


class TrackerPermissionError(TrackerAPIError):
    """Raised when the backend rejects the request (401/403)."""


class TrackerNotFoundError(TrackerAPIError):
    """Raised when the requested device or resource does not exist."""


class PersistenceError(TrackerError):
    """Raised by cache backends when a read or write fails.

    Never escapes a :class:`~field_tracker.cache_store.CacheStore`; the store
    logs it and degrades to a cache miss or a no-op.
    """


__all__ = [
    "TrackerError",
    "ValidationError",
    "FetchError",
    "TrackerAPIError",
    "TrackerPermissionError",
    "TrackerNotFoundError",
    "PersistenceError",
]
