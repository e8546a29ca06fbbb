"""Busyness — Temporal Utilities.

Relative time arithmetic around a reference instant and key-based searches
over record sequences. Every function here is pure.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


class TimeUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"


class Direction(str, Enum):
    BEFORE = "before"
    AFTER = "after"


def offset(
    when: datetime, amount: int, unit: TimeUnit, direction: Direction
) -> datetime:
    """Shift ``when`` by ``amount`` units before or after it."""
    delta = timedelta(**{unit.value: amount})
    if direction is Direction.BEFORE:
        return when - delta
    return when + delta


def n_minutes_after(when: datetime, n: int) -> datetime:
    return offset(when, n, TimeUnit.MINUTES, Direction.AFTER)


def n_hours_after(when: datetime, n: int) -> datetime:
    return offset(when, n, TimeUnit.HOURS, Direction.AFTER)


def n_days_before(when: datetime, n: int) -> datetime:
    return offset(when, n, TimeUnit.DAYS, Direction.BEFORE)


def n_weeks_before(when: datetime, n: int) -> datetime:
    return offset(when, n, TimeUnit.WEEKS, Direction.BEFORE)


def to_epoch_millis(when: datetime) -> int:
    """Milliseconds since the epoch, the unit every backend timestamp uses."""
    return int(round(when.timestamp() * 1000))


def from_epoch_millis(millis: float) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def nearest(
    items: Iterable[T], key: Callable[[T], float], target: float
) -> Optional[T]:
    """Return the item whose key is closest to ``target``.

    Input order is not assumed sorted, so this is a linear scan. The first
    item wins ties. Returns None for an empty sequence.
    """
    found: Optional[T] = None
    best_diff: Optional[float] = None
    for item in items:
        diff = abs(key(item) - target)
        if best_diff is None or diff < best_diff:
            found = item
            best_diff = diff
    return found


def max_by(items: Iterable[T], key: Callable[[T], float]) -> Optional[T]:
    """Return the item with the largest key (first one on ties), or None."""
    found: Optional[T] = None
    best: Optional[float] = None
    for item in items:
        value = key(item)
        if best is None or value > best:
            found = item
            best = value
    return found

