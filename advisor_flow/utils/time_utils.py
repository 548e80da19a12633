"""
Timestamp helpers.

Decision path entries are stamped in UTC and persisted as ISO-8601 strings
with a trailing ``Z``. Parsing accepts both ``Z`` and ``+00:00`` suffixes;
naive strings are assumed to be UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


def to_iso(dt: datetime) -> str:
    """Serialize ``dt`` as a UTC ISO-8601 string ending in ``Z``.

    Naive datetimes are treated as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(ISO_FORMAT)


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 string produced by ``to_iso()`` (or any offset form).

    Returns:
        A timezone-aware UTC datetime.
    """
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
