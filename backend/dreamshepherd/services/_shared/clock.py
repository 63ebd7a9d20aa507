"""Timezone-aware clock helper shared by services, ports and models."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current time as an aware UTC ``datetime``."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Coerce ``value`` to aware UTC, labelling naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
