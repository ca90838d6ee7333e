"""Time helpers. All audit timestamps are naive UTC."""

from __future__ import annotations

from datetime import datetime, timezone


def as_naive_utc(dt: datetime) -> datetime:
    """Convert a datetime to naive UTC.

    Args:
        dt: Any datetime. Naive values are taken to already be UTC.

    Returns:
        The same instant without tzinfo.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
