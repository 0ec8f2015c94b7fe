"""Datetime helpers.

The ledger stores naive UTC timestamps; these helpers keep every write on the
same convention.
"""

from datetime import datetime, timezone


def utc_now_naive() -> datetime:
    """Current UTC time without tzinfo, for naive ``DateTime`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
