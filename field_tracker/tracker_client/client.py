"""HTTP implementation of the location source consumed by reconciliation."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests import Session

from ..config import (
    REQUEST_TIMEOUT,
    TRACKER_BASE_URL,
    TRACKER_HISTORY_PATH,
    TRACKER_LATEST_PATH,
)
from ..errors import FetchError, TrackerNotFoundError
from .response_handling import error_for_status
from .session import get_default_session

LOGGER = logging.getLogger(__name__)

JSONObj = Dict[str, Any]

_HISTORY_KEYS = ("history", "points")


class TrackerClient:
    """Fetch latest fixes and history lists from the tracking backend.

    A 404 or an empty body means "nothing reported yet" and maps to ``None``
    (latest) or ``[]`` (history). Every other failure raises
    :class:`~field_tracker.errors.FetchError` or one of its subclasses.
    """

    def __init__(
        self,
        base_url: str = TRACKER_BASE_URL,
        *,
        session: Session | None = None,
        timeout: float = REQUEST_TIMEOUT,
        latest_path: str = TRACKER_LATEST_PATH,
        history_path: str = TRACKER_HISTORY_PATH,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or get_default_session()
        self._timeout = timeout
        self._latest_path = latest_path
        self._history_path = history_path

    def _url(self, template: str, device_id: str) -> str:
        path = template.format(device_id=quote(device_id, safe=""))
        return f"{self._base_url}/{path.lstrip('/')}"

    def _get_json(self, url: str, context: str) -> Optional[Any]:
        LOGGER.debug("GET %s", url)
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.exceptions.RequestException as exc:
            raise FetchError(f"{context} failed: {exc}") from exc
        error = error_for_status(response, context)
        if isinstance(error, TrackerNotFoundError):
            return None
        if error is not None:
            raise error
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(f"{context} returned invalid JSON: {exc}") from exc

    def fetch_latest_location(self, device_id: str) -> Optional[JSONObj]:
        """Return the raw latest-fix record for ``device_id`` or None."""

        payload = self._get_json(
            self._url(self._latest_path, device_id), f"Latest location {device_id}"
        )
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise FetchError(
                f"Latest location {device_id} has unexpected type {type(payload).__name__}"
            )
        return payload

    def fetch_history(self, device_id: str) -> List[Any]:
        """Return the raw history list for ``device_id`` (possibly empty)."""

        payload = self._get_json(
            self._url(self._history_path, device_id), f"History {device_id}"
        )
        if payload is None:
            return []
        if isinstance(payload, dict):
            for key in _HISTORY_KEYS:
                if isinstance(payload.get(key), list):
                    payload = payload[key]
                    break
        if not isinstance(payload, list):
            raise FetchError(
                f"History {device_id} has unexpected type {type(payload).__name__}"
            )
        LOGGER.debug("History %s returned %d raw points", device_id, len(payload))
        return payload


__all__ = ["TrackerClient"]
