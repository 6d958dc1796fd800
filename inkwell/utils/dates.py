"""Timestamp helpers shared by models, scope predicates and stats."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a timestamp to an aware UTC datetime.

    SQLite hands back naive datetimes for DateTime(timezone=True) columns;
    everything is stored in UTC, so naive values are read as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
