"""Tracking service.

Holds the presentation state for one tracked unit and runs reconciliation
cycles against it. Cycles may overlap (a manual refresh while a timer tick is
outstanding); each is tagged with a generation number and a completion is only
applied when it is newer than the last applied one. Switching device,
clearing, or closing the service invalidates every cycle still in flight.
The same rule gates cache writes: a cycle persists its trace only while no
newer or invalidating cycle has claimed the device, so a superseded cycle
cannot overwrite a newer trace or resurrect a cleared entry.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from ..config import DEFAULT_DEVICE_ID, RECENT_TRAIL_SIZE
from ..errors import FetchError, ValidationError
from ..models import ReconcileResult, TraceSnapshot
from ..reconcile import ReconciliationEngine
from ..stats import compute_stats, last_update_epoch, recent_trail

SnapshotListener = Callable[[TraceSnapshot], None]


def build_snapshot(
    device_id: str,
    result: ReconcileResult,
    generation: int,
    *,
    trail_size: int = RECENT_TRAIL_SIZE,
) -> TraceSnapshot:
    return TraceSnapshot(
        device_id=device_id,
        latest=result.latest,
        trace=result.trace,
        stats=compute_stats(result.trace, result.latest),
        error=None,
        generation=generation,
        source=result.source,
        last_update_epoch=last_update_epoch(result.latest, result.trace),
        recent_trail=recent_trail(result.trace, trail_size),
    )


class TrackingService:
    def __init__(
        self,
        engine: ReconciliationEngine,
        device_id: str = DEFAULT_DEVICE_ID,
        *,
        trail_size: int = RECENT_TRAIL_SIZE,
        logger: logging.Logger | None = None,
    ) -> None:
        self.engine = engine
        self._trail_size = trail_size
        self._log = logger or logging.getLogger(self.__class__.__name__)
        self._lock = threading.Lock()
        self._device_id = device_id
        self._issued = 0
        self._applied = 0
        self._persisted = 0
        self._closed = False
        self._listeners: List[SnapshotListener] = []
        self._snapshot = TraceSnapshot(device_id=device_id)

    # --- Accessors --------------------------------------------------------
    @property
    def device_id(self) -> str:
        with self._lock:
            return self._device_id

    @property
    def snapshot(self) -> TraceSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def add_listener(self, listener: SnapshotListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    # --- Cycle lifecycle ----------------------------------------------------
    def _begin_cycle(self) -> Optional[tuple[int, str]]:
        with self._lock:
            if self._closed:
                return None
            self._issued += 1
            return self._issued, self._device_id

    def _may_persist(self, generation: int) -> bool:
        """Claim the cache write for ``generation`` unless a newer cycle owns it.

        Called under the device's cache lock, so claims for one device are
        ordered with the writes they guard.
        """

        with self._lock:
            if self._closed or generation <= max(self._applied, self._persisted):
                self._log.debug(
                    "Skipping cache write for superseded generation=%d", generation
                )
                return False
            self._persisted = generation
            return True

    def _apply(self, generation: int, snapshot: TraceSnapshot) -> bool:
        with self._lock:
            if self._closed or generation <= self._applied:
                self._log.debug(
                    "Discarding stale cycle generation=%d (applied=%d closed=%s)",
                    generation,
                    self._applied,
                    self._closed,
                )
                return False
            self._applied = generation
            self._snapshot = snapshot
            listeners = list(self._listeners)
        self._notify(listeners, snapshot)
        return True

    def _notify(self, listeners: List[SnapshotListener], snapshot: TraceSnapshot) -> None:
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as exc:
                self._log.error("Snapshot listener failed: %s", exc, exc_info=True)

    def _invalidate(self, snapshot_factory: Callable[[str, int], TraceSnapshot]) -> None:
        """Drop in-flight cycles and install a fresh snapshot for the device."""

        with self._lock:
            self._issued += 1
            self._applied = self._issued
            self._snapshot = snapshot_factory(self._device_id, self._issued)
            snapshot = self._snapshot
            listeners = list(self._listeners) if not self._closed else []
        self._notify(listeners, snapshot)

    def refresh(self) -> TraceSnapshot:
        """Run one reconciliation cycle and return the current snapshot.

        The returned snapshot is the newest applied state, which is not this
        cycle's result when a newer cycle completed first.
        """

        started = self._begin_cycle()
        if started is None:
            return self.snapshot
        generation, device_id = started

        try:
            result = self.engine.reconcile(
                device_id, persist_guard=lambda: self._may_persist(generation)
            )
        except ValidationError as exc:
            previous = self.snapshot
            snapshot = TraceSnapshot(
                device_id=device_id,
                latest=previous.latest,
                trace=previous.trace,
                stats=previous.stats,
                error=str(exc),
                generation=generation,
                source=previous.source,
                last_update_epoch=previous.last_update_epoch,
                recent_trail=previous.recent_trail,
            )
        except FetchError as exc:
            self._log.error("Reconciliation failed for device=%s: %s", device_id, exc)
            snapshot = TraceSnapshot(
                device_id=device_id,
                error=f"Failed to load data: {exc}",
                generation=generation,
            )
        except Exception as exc:
            self._log.error(
                "Reconciliation failed for device=%s due to unexpected error: %s",
                device_id,
                exc,
                exc_info=True,
            )
            snapshot = TraceSnapshot(
                device_id=device_id,
                error=f"Failed to load data: {exc}",
                generation=generation,
            )
        else:
            snapshot = build_snapshot(
                device_id, result, generation, trail_size=self._trail_size
            )

        self._apply(generation, snapshot)
        return self.snapshot

    def set_device(self, device_id: str) -> None:
        """Switch the tracked unit; the display state starts empty."""

        with self._lock:
            self._device_id = device_id
        self._invalidate(
            lambda dev, gen: TraceSnapshot(device_id=dev, generation=gen)
        )
        self._log.info("Tracking device=%r", device_id)

    def clear(self) -> None:
        """Reset the display state and delete the device's cached trace."""

        self._invalidate(
            lambda dev, gen: TraceSnapshot(device_id=dev, generation=gen)
        )
        device_id = self.device_id
        try:
            self.engine.clear(device_id)
        except ValidationError:
            self._log.debug("No device selected; nothing to clear")

    def close(self) -> None:
        """Suppress completions of any cycle still running."""

        with self._lock:
            self._closed = True
            self._listeners.clear()


__all__ = ["SnapshotListener", "TrackingService", "build_snapshot"]
