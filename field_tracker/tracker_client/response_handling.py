"""Map tracking backend HTTP statuses to package exceptions."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

import requests

from ..errors import (
    TrackerAPIError,
    TrackerNotFoundError,
    TrackerPermissionError,
)

LOGGER = logging.getLogger(__name__)

__all__ = [
    "error_for_status",
    "extract_error",
]

MAX_ERROR_TEXT = 300
_MESSAGE_KEYS = ("error", "message", "detail")


def error_for_status(
    response: requests.Response, context: str
) -> Optional[TrackerAPIError]:
    """Return the exception matching ``response``'s status, or None below 400.

    The exception is returned rather than raised; a 404 is an expected
    "nothing reported yet" answer for the caller to absorb.
    """

    status = response.status_code
    if status < 400:
        return None

    detail = extract_error(response)
    if status in (401, 403):
        error_cls, level, summary = (
            TrackerPermissionError,
            logging.WARNING,
            f"{context} forbidden (status {status})",
        )
    elif status == 404:
        error_cls, level, summary = TrackerNotFoundError, logging.INFO, f"{context} not found"
    else:
        error_cls, level, summary = (
            TrackerAPIError,
            logging.ERROR,
            f"{context} request failed (status {status})",
        )
    message = f"{summary} | {detail}" if detail else summary
    LOGGER.log(level, message)
    return error_cls(message)


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return the backend's error text, joined with `` | `` when there are several.

    JSON bodies contribute their ``error``/``message``/``detail`` strings and
    any ``errors`` list; other bodies are returned as trimmed text.
    """

    if resp is None:
        return None
    try:
        data = resp.json()
    except ValueError:
        return _plain_text(getattr(resp, "text", ""))
    if not isinstance(data, dict):
        return None
    parts = [
        data[key]
        for key in _MESSAGE_KEYS
        if isinstance(data.get(key), str) and data[key]
    ]
    parts.extend(_nested_messages(data.get("errors")))
    return " | ".join(parts) if parts else None


def _nested_messages(errors: Any) -> Iterable[str]:
    if not isinstance(errors, list):
        return []
    messages: List[str] = []
    for item in errors:
        if isinstance(item, str) and item:
            messages.append(item)
        elif isinstance(item, dict):
            text = item.get("message") or item.get("detail")
            if isinstance(text, str) and text:
                messages.append(text)
    return messages


def _plain_text(text: Any) -> Optional[str]:
    if not isinstance(text, str) or not text.strip():
        return None
    trimmed = text.strip()
    if len(trimmed) > MAX_ERROR_TEXT:
        return trimmed[: MAX_ERROR_TEXT - 3] + "..."
    return trimmed
