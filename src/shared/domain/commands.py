"""Base command and event interfaces shared across services."""

from dataclasses import dataclass
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


@dataclass
class Command:
    """Base class for all commands."""
    pass


@dataclass
class Event:
    """Base class for all domain events.

    Domain events that leave the service set ``event_type`` to the
    UPPER_SNAKE_CASE tag carried on the wire.
    """
    pass


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as some drivers return them) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
