"""Recurring timer that triggers reconciliation cycles."""

from __future__ import annotations

import logging
import threading

from ..config import (
    REFRESH_INTERVAL_MAX_MS,
    REFRESH_INTERVAL_MIN_MS,
    REFRESH_INTERVAL_MS,
)
from ..utils import clamp
from .tracking_service import TrackingService


def clamp_interval_ms(interval_ms: int) -> int:
    return clamp(int(interval_ms), REFRESH_INTERVAL_MIN_MS, REFRESH_INTERVAL_MAX_MS)


class AutoRefresher:
    """Call ``service.refresh()`` every ``interval_ms`` on a daemon thread.

    A failing cycle is logged and the timer keeps running. ``set_interval``
    takes effect from the next tick.
    """

    def __init__(
        self,
        service: TrackingService,
        interval_ms: int = REFRESH_INTERVAL_MS,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.service = service
        self._interval_ms = clamp_interval_ms(interval_ms)
        self._log = logger or logging.getLogger(self.__class__.__name__)
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: threading.Thread | None = None
        self._ticks = 0

    @property
    def interval_ms(self) -> int:
        with self._lock:
            return self._interval_ms

    @property
    def ticks(self) -> int:
        """Number of cycles the timer has triggered."""

        with self._lock:
            return self._ticks

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def set_interval(self, interval_ms: int) -> int:
        clamped = clamp_interval_ms(interval_ms)
        with self._lock:
            old = self._interval_ms
            self._interval_ms = clamped
        self._wake.set()
        self._log.info("Auto-refresh interval changed from %sms to %sms", old, clamped)
        return clamped

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._wake.clear()
        self._thread = threading.Thread(
            target=self._run, name="field-tracker-refresh", daemon=True
        )
        self._thread.start()
        self._log.info("Auto-refresh started every %sms", self.interval_ms)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        self._wake.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None
        self._log.info("Auto-refresh stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            self._wake.wait(self.interval_ms / 1000.0)
            if self._stop.is_set():
                break
            if self._wake.is_set():
                # Interval changed: restart the wait with the new value.
                self._wake.clear()
                continue
            self._tick()

    def _tick(self) -> None:
        with self._lock:
            self._ticks += 1
        try:
            snapshot = self.service.refresh()
        except Exception as exc:
            self._log.error("Auto-refresh cycle failed: %s", exc, exc_info=True)
            return
        if snapshot.error:
            self._log.warning("Auto-refresh cycle reported: %s", snapshot.error)


__all__ = ["AutoRefresher", "clamp_interval_ms"]
