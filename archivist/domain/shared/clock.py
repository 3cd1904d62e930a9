"""Time source shared by services and schedules."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

Clock = Callable[[], datetime]

_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(UTC)


def advance(previous: datetime, now: datetime) -> datetime:
    """Return a timestamp strictly after ``previous``, preferring ``now``.

    Two mutations within the same clock tick (or a clock that stepped back)
    still produce increasing ``updated_at`` values.
    """
    return now if now > previous else previous + _TICK
