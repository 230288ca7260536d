"""Naive-UTC timestamps as stored in the database, and their JSON form."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Return a naive UTC datetime for storage in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def is_past(value: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True when ``value`` lies before ``now``. A missing deadline never passes."""
    if value is None:
        return False
    return value < (now or utcnow())


def isoformat(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value else None
