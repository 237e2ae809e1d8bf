"""Timestamp coercion for remote payloads (ISO strings, epoch numbers, {seconds, nanoseconds})."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional, Tuple, Union


def _finite(seconds: float) -> Optional[float]:
    return seconds if math.isfinite(seconds) else None


def to_epoch_seconds(value: Any) -> Optional[float]:
    """
    Convert a remote timestamp to epoch seconds.

    Accepts datetimes, numbers (seconds), ISO-8601 strings and document-store
    timestamp maps ({"seconds": ..., "nanoseconds": ...}). Returns None for
    anything else, including an absent value or a non-finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, (int, float)):
        try:
            return _finite(float(value))
        except OverflowError:
            return None
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        try:
            return _finite(float(seconds) + float(nanos) / 1e9)
        except (TypeError, ValueError, OverflowError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _finite(float(text))
        except ValueError:
            pass
        try:
            return to_epoch_seconds(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def to_datetime(value: Any) -> Optional[datetime]:
    """Like to_epoch_seconds, but returns an aware UTC datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    seconds = to_epoch_seconds(value)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, timezone.utc)
    except (OverflowError, OSError, ValueError):
        # Outside the datetime range, e.g. a millisecond epoch
        return None


def sort_key(value: Any) -> Tuple[int, Union[float, str]]:
    """
    Ordering key for an arbitrary field value.

    Missing values order as 0, so they come first in ascending order.
    Values that are not timestamps or numbers order after all of them, by text.
    """
    if value is None:
        return (0, 0.0)
    seconds = to_epoch_seconds(value)
    if seconds is not None:
        return (0, seconds)
    return (1, str(value))
