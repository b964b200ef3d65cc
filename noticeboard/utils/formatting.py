"""
Noticeboard Formatting Utilities

Conversions between stored microsecond timestamps and ISO-8601 strings.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_us() -> int:
    """Current time in microseconds since the epoch."""
    return int(time.time() * 1_000_000)


def format_timestamp(timestamp_us: Optional[int]) -> Optional[str]:
    """
    Format microsecond timestamp as an ISO-8601 UTC string.

    Args:
        timestamp_us: Microseconds since epoch, or None

    Returns:
        String like "2025-12-10T14:32:00.000Z", or None
    """
    if timestamp_us is None:
        return None

    dt = _EPOCH + timedelta(microseconds=timestamp_us)
    return f"{dt.year:04d}-" + dt.strftime("%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value) -> Optional[int]:
    """
    Parse an ISO-8601 string (or datetime) into microseconds since epoch.

    A trailing "Z" and naive values are taken as UTC.

    Raises:
        ValueError: value is not a recognizable timestamp, or its UTC
            instant falls outside years 1-9999
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"unsupported timestamp type: {type(value).__name__}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    timestamp_us = (dt - _EPOCH) // timedelta(microseconds=1)

    # An offset can push the UTC instant past what datetime can hold
    try:
        _EPOCH + timedelta(microseconds=timestamp_us)
    except OverflowError:
        raise ValueError(f"timestamp out of range: {value}")

    return timestamp_us
