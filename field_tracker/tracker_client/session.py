"""Pooled ``requests`` session used for tracking backend reads."""

from __future__ import annotations

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import HTTP_POOL_CONNECTIONS, HTTP_POOL_MAXSIZE, TRACKER_MAX_RETRIES

__all__ = ["create_default_session", "get_default_session"]

USER_AGENT = "field-tracker/0.1"

# Only idempotent reads are issued; 4xx answers are classified by the caller.
RETRY_STATUSES = (500, 502, 503, 504)


def _build_retry(total: int) -> Retry:
    return Retry(
        total=total,
        connect=total,
        read=total,
        backoff_factor=0.5,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=["GET"],
        raise_on_status=False,
    )


def create_default_session(
    *,
    max_retries: int = TRACKER_MAX_RETRIES,
    pool_connections: int = HTTP_POOL_CONNECTIONS,
    pool_maxsize: int = HTTP_POOL_MAXSIZE,
) -> Session:
    """Build a session whose adapter retries transient 5xx and connection errors.

    Once retries are exhausted the last response is returned unchanged, so
    status handling stays in one place (``response_handling``).
    """

    adapter = HTTPAdapter(
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
        max_retries=_build_retry(max(0, max_retries)),
    )
    session = requests.Session()
    for prefix in ("http://", "https://"):
        session.mount(prefix, adapter)
    session.headers.update({"Accept": "application/json", "User-Agent": USER_AGENT})
    return session


_DEFAULT_SESSION = create_default_session()


def get_default_session() -> Session:
    """Return the process-wide session shared by every :class:`TrackerClient`."""

    return _DEFAULT_SESSION
