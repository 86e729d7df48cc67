"""Command line entry point: reconcile a unit's trace once or keep polling."""

from __future__ import annotations

import argparse
import logging
import threading
from typing import Sequence

from .cache_store import create_cache_store
from .config import (
    AUTO_REFRESH_ENABLED,
    DEFAULT_DEVICE_ID,
    REFRESH_INTERVAL_MS,
    TRACKER_BASE_URL,
    TRACKER_CACHE_BACKEND,
)
from .export import write_trace_workbook
from .models import TraceSnapshot
from .reconcile import ReconciliationEngine
from .services import AutoRefresher, TrackingService
from .tracker_client import TrackerClient
from .utils import format_hhmmss

LOGGER = logging.getLogger("field_tracker")


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )
    else:
        logging.getLogger().setLevel(getattr(logging, level))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reconcile and sanitize the location trace of a tracked unit"
    )
    parser.add_argument(
        "--device-id",
        default=DEFAULT_DEVICE_ID,
        help=f"Device identifier to track (default: {DEFAULT_DEVICE_ID})",
    )
    parser.add_argument(
        "--base-url",
        default=TRACKER_BASE_URL,
        help="Tracking backend base URL",
    )
    parser.add_argument(
        "--cache-backend",
        choices=["file", "memory"],
        default=TRACKER_CACHE_BACKEND,
        help="Where the last good trace is kept between cycles",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        default=AUTO_REFRESH_ENABLED,
        help="Keep polling until interrupted",
    )
    parser.add_argument(
        "--no-watch",
        dest="watch",
        action="store_false",
        help="Run a single cycle even when TRACKER_AUTO_REFRESH is set",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=REFRESH_INTERVAL_MS,
        help="Polling interval in milliseconds (clamped to 2000..30000)",
    )
    parser.add_argument(
        "--output",
        help="Write the final trace and summary to this .xlsx file",
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Delete the cached trace for the device and exit",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    return parser


def _log_snapshot(snapshot: TraceSnapshot) -> None:
    if snapshot.error:
        LOGGER.error("device=%s %s", snapshot.device_id, snapshot.error)
        return
    stats = snapshot.stats
    speed = stats.average_speed_mps
    LOGGER.info(
        "device=%s points=%d distance=%.3fkm avg_speed=%s duration=%ss last_update=%s source=%s",
        snapshot.device_id,
        stats.point_count,
        stats.path_distance_km,
        f"{speed:.2f}m/s" if speed is not None else "n/a",
        stats.tracking_duration_sec if stats.tracking_duration_sec is not None else "n/a",
        format_hhmmss(snapshot.last_update_epoch),
        snapshot.source.value if snapshot.source else "n/a",
    )
    if snapshot.latest is not None and snapshot.latest.sos:
        LOGGER.warning("Unit %s reported SOS", snapshot.latest.device_id)


def build_service(base_url: str, device_id: str, cache_backend: str) -> TrackingService:
    engine = ReconciliationEngine(
        TrackerClient(base_url), create_cache_store(cache_backend)
    )
    return TrackingService(engine, device_id)


def _watch(service: TrackingService, interval_ms: int) -> None:
    refresher = AutoRefresher(service, interval_ms)
    stop = threading.Event()
    refresher.start()
    try:
        while refresher.running:
            stop.wait(1.0)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; stopping auto-refresh")
    finally:
        refresher.stop()


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    service = build_service(args.base_url, args.device_id, args.cache_backend)

    if args.clear:
        service.clear()
        LOGGER.info("Cleared local data for device=%s", service.device_id)
        return 0

    service.add_listener(_log_snapshot)
    snapshot = service.refresh()

    if args.watch:
        _watch(service, args.interval_ms)
        snapshot = service.snapshot

    service.close()

    if args.output:
        write_trace_workbook(args.output, snapshot)

    return 1 if snapshot.error else 0


if __name__ == "__main__":
    raise SystemExit(main())
