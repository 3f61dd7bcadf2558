from datetime import datetime, timezone
from typing import Protocol, Union


Instant = Union[datetime, int, float]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: Instant) -> float:
    """Convert an instant to Unix seconds.

    Naive datetimes are taken to be UTC, never local time.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a valid instant")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, (int, float)):
        return float(value)
    raise TypeError(f"Unsupported instant type: {type(value).__name__}")


def from_timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, timezone.utc)


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return utc_now()
