"""Shared date utilities."""

from datetime import datetime, timezone
from typing import Optional


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already.

    Review dates are stored naive so they compare cleanly on both Postgres
    and SQLite.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now(now: Optional[datetime] = None) -> datetime:
    """Return `now` normalized to naive UTC, or the current time if not given."""
    if now is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    return to_naive_utc(now)


def parse_review_date(raw: str) -> datetime:
    """Parse an ISO-8601 date string from the dataset (e.g. '2018-07-07 22:09:11').

    Raises:
        ValueError: If the value is empty or not ISO-8601 parseable.
    """
    if not raw or not isinstance(raw, str):
        raise ValueError(f"Invalid review date: {raw!r}")
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(value))
