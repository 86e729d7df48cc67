"""Reconciliation of remote reports with the locally cached trace.

One call to :meth:`ReconciliationEngine.reconcile` is one cycle:
fetch latest + history concurrently, pick the candidate pool (remote history,
or the cache when the remote list is empty), sanitize, persist, and derive the
latest fix from the trace when the backend supplied none.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
import time
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence, Tuple

from .cache_store import CacheStore
from .errors import FetchError, ValidationError
from .models import LatestReport, Point, ReconcileResult, Trace, TraceSource
from .normalize import normalize_latest, normalize_points
from .sanitizer import SanitizeOptions, sanitize


class LocationSource(Protocol):
    def fetch_latest_location(self, device_id: str) -> Optional[Mapping[str, Any]]:
        ...

    def fetch_history(self, device_id: str) -> Sequence[Any]:
        ...


def validate_device_id(device_id: Any) -> str:
    """Return the trimmed device id or raise :class:`ValidationError`."""

    if not isinstance(device_id, str) or not device_id.strip():
        raise ValidationError("Please enter a device ID")
    return device_id.strip()


def select_candidates(
    remote_history: Sequence[Any] | None,
    load_cached: Callable[[], List[Point]],
) -> Tuple[TraceSource, List[Point]]:
    """Choose the candidate pool for a cycle and tag where it came from.

    A non-empty remote history always wins, even when none of its entries
    survive normalization; the cache is consulted only for an empty list.
    """

    if remote_history:
        return TraceSource.REMOTE, normalize_points(remote_history)
    return TraceSource.CACHED, load_cached()


def latest_from_trace(device_id: str, trace: Sequence[Point]) -> Optional[LatestReport]:
    if not trace:
        return None
    last = trace[-1]
    return LatestReport(
        device_id=device_id,
        lat=last.lat,
        lon=last.lon,
        timestamp=last.ts,  # type: ignore[arg-type]
        speed=None,
        battery=None,
        sos=False,
    )


@dataclass(slots=True)
class ReconciliationConfig:
    options: SanitizeOptions | None = None
    clock: Callable[[], int] | None = None
    logger: logging.Logger | None = None


class ReconciliationEngine:
    def __init__(
        self,
        source: LocationSource,
        cache: CacheStore,
        config: ReconciliationConfig | None = None,
    ) -> None:
        self.source = source
        self.cache = cache
        self.config = config or ReconciliationConfig()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)

    def _now(self) -> int:
        if self.config.clock is not None:
            return int(self.config.clock())
        return int(time.time())

    def _fetch_remote(
        self, device_id: str
    ) -> Tuple[Optional[Mapping[str, Any]], Sequence[Any]]:
        """Fetch latest fix and history in parallel; any failure aborts both."""

        with ThreadPoolExecutor(max_workers=2) as executor:
            latest_future = executor.submit(
                self.source.fetch_latest_location, device_id
            )
            history_future = executor.submit(self.source.fetch_history, device_id)
            failures: List[BaseException] = []
            latest: Optional[Mapping[str, Any]] = None
            history: Sequence[Any] = []
            try:
                latest = latest_future.result()
            except Exception as exc:
                failures.append(exc)
            try:
                history = history_future.result() or []
            except Exception as exc:
                failures.append(exc)

        if len(failures) == 1 and isinstance(failures[0], FetchError):
            raise failures[0]
        if failures:
            message = "; ".join(str(exc) or exc.__class__.__name__ for exc in failures)
            raise FetchError(message) from failures[0]
        return latest, history

    def reconcile(
        self,
        device_id: str,
        *,
        persist_guard: Optional[Callable[[], bool]] = None,
    ) -> ReconcileResult:
        """Run one reconciliation cycle for ``device_id``.

        ``persist_guard`` is checked under the device's cache lock just before
        the trace is written; returning False skips the write (the cycle was
        superseded). The result is returned either way.

        Raises:
            ValidationError: ``device_id`` is empty; nothing is fetched.
            FetchError: either remote request failed; the cache is untouched.
        """

        device_id = validate_device_id(device_id)
        now = self._now()

        raw_latest, raw_history = self._fetch_remote(device_id)
        latest = normalize_latest(raw_latest, device_id, now=now)

        source, candidates = select_candidates(
            raw_history, lambda: self.cache.load(device_id)
        )
        trace: Trace = tuple(sanitize(candidates, self.config.options, now=now))
        if trace:
            self.cache.save(device_id, trace, guard=persist_guard)

        if latest is None and trace:
            latest = latest_from_trace(device_id, trace)

        self._log.info(
            "Reconciled device=%s source=%s candidates=%d trace=%d latest=%s",
            device_id,
            source.value,
            len(candidates),
            len(trace),
            "yes" if latest is not None else "no",
        )
        return ReconcileResult(latest=latest, trace=trace, source=source)

    def clear(self, device_id: str) -> None:
        """Delete the cached trace for ``device_id`` (explicit user reset)."""

        self.cache.clear(validate_device_id(device_id))


__all__ = [
    "LocationSource",
    "ReconciliationConfig",
    "ReconciliationEngine",
    "latest_from_trace",
    "select_candidates",
    "validate_device_id",
]
