"""Central configuration for the field tracker.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Every setting can be overridden through environment
variables (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Tracking backend
# ---------------------------------------------------------------------------
# Base URL of the tracking backend that receives unit reports.
TRACKER_BASE_URL = os.getenv("TRACKER_BASE_URL", "http://localhost:8000/api")

# Endpoint templates relative to the base URL. ``{device_id}`` is substituted.
TRACKER_LATEST_PATH = os.getenv(
    "TRACKER_LATEST_PATH", "/location/latest/{device_id}"
)
TRACKER_HISTORY_PATH = os.getenv(
    "TRACKER_HISTORY_PATH", "/location/history/{device_id}"
)

# Request timeout in seconds.
REQUEST_TIMEOUT = _env_float("TRACKER_REQUEST_TIMEOUT", 10.0)

# HTTP session pool sizes. Two requests run per reconciliation cycle.
HTTP_POOL_CONNECTIONS = _env_int("TRACKER_HTTP_POOL_CONNECTIONS", 4)
HTTP_POOL_MAXSIZE = _env_int("TRACKER_HTTP_POOL_MAXSIZE", 4)

# Adapter-level retries for 5xx responses and connection errors.
TRACKER_MAX_RETRIES = _env_int("TRACKER_MAX_RETRIES", 2)


# ---------------------------------------------------------------------------
# Local trace cache
# ---------------------------------------------------------------------------
# Backend used to persist the last good trace: "file" or "memory".
TRACKER_CACHE_BACKEND = os.getenv("TRACKER_CACHE_BACKEND", "file").strip().lower()

# Directory (absolute or relative) holding one JSON file per device.
TRACKER_CACHE_DIR = os.getenv("TRACKER_CACHE_DIR", "track_cache")

# Prefix prepended to the device identifier to build a cache key.
CACHE_KEY_PREFIX = os.getenv("TRACKER_CACHE_KEY_PREFIX", "track_history_")

# Maximum number of devices kept by the in-memory backend (LRU eviction).
MEMORY_CACHE_MAX_DEVICES = _env_int("TRACKER_MEMORY_CACHE_MAX_DEVICES", 64)


# ---------------------------------------------------------------------------
# Trace sanitization
# ---------------------------------------------------------------------------
# Points stamped before this calendar year (365-day years) are rejected.
SANITIZE_MIN_YEAR = _env_int("SANITIZE_MIN_YEAR", 2009)

# Displacement (km) above which a fast transition is treated as a spike.
SANITIZE_JUMP_KM_THRESHOLD = _env_float("SANITIZE_JUMP_KM_THRESHOLD", 200.0)

# Points stamped further than this into the future are rejected.
SANITIZE_MAX_FUTURE_SEC = _env_int("SANITIZE_MAX_FUTURE_SEC", 24 * 3600)

# A displacement above the jump threshold is only a spike within this window.
SPIKE_MAX_DT_SEC = 60


# ---------------------------------------------------------------------------
# Session / refresh behaviour
# ---------------------------------------------------------------------------
DEFAULT_DEVICE_ID = os.getenv("TRACKER_DEFAULT_DEVICE_ID", "esp01")

# Keep polling after the first CLI cycle unless --no-watch is given.
AUTO_REFRESH_ENABLED = _env_bool("TRACKER_AUTO_REFRESH", False)

# Poll interval bounds in milliseconds.
REFRESH_INTERVAL_MIN_MS = 2000
REFRESH_INTERVAL_MAX_MS = 30000
REFRESH_INTERVAL_MS = _env_int("TRACKER_REFRESH_INTERVAL_MS", 5000)

# Number of points exposed as the "recent trail" (newest first).
RECENT_TRAIL_SIZE = _env_int("TRACKER_RECENT_TRAIL_SIZE", 6)
