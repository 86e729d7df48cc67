"""General utility helpers shared across modules."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


def format_hhmmss(epoch_seconds: Optional[int]) -> str:
    """Format epoch seconds as local ``HH:MM:SS`` (``--:--:--`` when missing)."""

    if epoch_seconds is None:
        return "--:--:--"
    try:
        moment = datetime.fromtimestamp(epoch_seconds)
    except (OverflowError, OSError, ValueError):
        return "--:--:--"
    return moment.strftime("%H:%M:%S")


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))
