"""Per-device persistence of the last known-good trace.

Every public operation is best effort: backend failures surface as
:class:`PersistenceError` internally, are logged, and degrade to a cache miss
(``load``) or a no-op (``save``/``clear``). Callers never see them.
"""

from __future__ import annotations

import json
import logging
import threading
import weakref
from datetime import datetime, timezone
from hashlib import sha256
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from cachetools import LRUCache

from .config import (
    CACHE_KEY_PREFIX,
    MEMORY_CACHE_MAX_DEVICES,
    TRACKER_CACHE_BACKEND,
    TRACKER_CACHE_DIR,
)
from .errors import PersistenceError
from .models import Point
from .normalize import normalize_points

_LOGGER = logging.getLogger(__name__)


class CacheStore:
    """Key-value store of traces keyed by ``prefix + device_id``."""

    def __init__(self, prefix: str = CACHE_KEY_PREFIX) -> None:
        self._prefix = prefix
        # A key's lock lives only while some caller holds a reference to it.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_lock = threading.Lock()

    def key_for(self, device_id: str) -> str:
        return f"{self._prefix}{device_id}"

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    # --- Backend hooks ----------------------------------------------------
    def _read(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def _write(self, key: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError

    # --- Public API -------------------------------------------------------
    def load(self, device_id: str) -> List[Point]:
        """Return cached points for ``device_id`` (empty on miss or corruption)."""

        if not device_id:
            return []
        key = self.key_for(device_id)
        try:
            with self._lock_for(key):
                payload = self._read(key)
        except PersistenceError as exc:
            _LOGGER.warning("Cache load failed key=%s: %s", key, exc)
            return []
        if payload is None:
            return []
        raw_points = payload.get("points") if isinstance(payload, dict) else None
        if not isinstance(raw_points, list):
            _LOGGER.warning("Ignoring corrupt cache entry key=%s", key)
            return []
        points = normalize_points(raw_points)
        _LOGGER.debug("Loaded %d cached points key=%s", len(points), key)
        return points

    def save(
        self,
        device_id: str,
        points: Sequence[Point],
        *,
        guard: Optional[Callable[[], bool]] = None,
    ) -> bool:
        """Overwrite the cache entry for ``device_id`` with ``points``.

        ``guard`` is evaluated while the device's lock is held; a false result
        skips the write. Returns True when the entry was written.
        """

        if not device_id:
            return False
        key = self.key_for(device_id)
        payload = {
            "key": key,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "points": [point.to_dict() for point in points],
        }
        try:
            with self._lock_for(key):
                if guard is not None and not guard():
                    _LOGGER.debug("Skipping superseded cache save key=%s", key)
                    return False
                self._write(key, payload)
        except PersistenceError as exc:
            _LOGGER.warning("Cache save failed key=%s: %s", key, exc)
            return False
        _LOGGER.info("Saved history device=%s points=%d", device_id, len(points))
        return True

    def clear(self, device_id: str) -> None:
        if not device_id:
            return
        key = self.key_for(device_id)
        try:
            with self._lock_for(key):
                self._delete(key)
        except PersistenceError as exc:
            _LOGGER.warning("Cache clear failed key=%s: %s", key, exc)
            return
        _LOGGER.info("Cleared cached history device=%s", device_id)


class JsonFileCacheStore(CacheStore):
    """One JSON document per key, named by the sha256 of the key."""

    def __init__(
        self, base_dir: str | Path = TRACKER_CACHE_DIR, prefix: str = CACHE_KEY_PREFIX
    ) -> None:
        super().__init__(prefix)
        base = Path(base_dir)
        self._base_dir = base if base.is_absolute() else Path.cwd() / base

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, key: str) -> Path:
        # Device ids may contain path separators; only their digest reaches disk.
        signature = sha256(key.encode("utf-8")).hexdigest()
        return self._base_dir / signature[0:2] / f"{signature}.json"

    def _read(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"unable to read {path}: {exc}") from exc

    def _write(self, key: str, payload: Dict[str, Any]) -> None:
        path = self.path_for(key)
        temp_path = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=True, indent=2)
            temp_path.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"unable to write {path}: {exc}") from exc

    def _delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"unable to delete {path}: {exc}") from exc


class MemoryCacheStore(CacheStore):
    """Bounded in-process store; least recently used devices are evicted."""

    def __init__(
        self,
        max_devices: int = MEMORY_CACHE_MAX_DEVICES,
        prefix: str = CACHE_KEY_PREFIX,
    ) -> None:
        super().__init__(prefix)
        self._store: LRUCache[str, str] = LRUCache(maxsize=max(1, max_devices))
        self._store_lock = threading.RLock()

    def _read(self, key: str) -> Optional[Any]:
        with self._store_lock:
            raw = self._store.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise PersistenceError(f"corrupt entry {key}: {exc}") from exc

    def _write(self, key: str, payload: Dict[str, Any]) -> None:
        # Entries are held as JSON text, never as live objects.
        try:
            raw = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"unable to serialise {key}: {exc}") from exc
        with self._store_lock:
            self._store[key] = raw

    def _delete(self, key: str) -> None:
        with self._store_lock:
            self._store.pop(key, None)


def create_cache_store(backend: str | None = None) -> CacheStore:
    """Return the cache store selected by ``backend`` or configuration."""

    choice = (backend or TRACKER_CACHE_BACKEND).strip().lower()
    if choice == "memory":
        return MemoryCacheStore(MEMORY_CACHE_MAX_DEVICES)
    if choice == "file":
        return JsonFileCacheStore(TRACKER_CACHE_DIR)
    raise ValueError(f"Unknown cache backend: {choice!r}")


__all__ = [
    "CacheStore",
    "JsonFileCacheStore",
    "MemoryCacheStore",
    "create_cache_store",
]
