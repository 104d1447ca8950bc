"""Clock-time windows during which reminders are suppressed."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional


@dataclass(frozen=True)
class IgnorePeriod:
    start: str   # "HH:MM", inclusive
    end: str     # "HH:MM", exclusive; may be earlier than start (crosses midnight)


def parse_time(value: str) -> tuple[int, int]:
    """Parse "HH:MM" into (hours, minutes). Raises ValueError if malformed."""
    try:
        hours_str, minutes_str = value.split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Expected a time as HH:MM, got {value!r}") from None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Time out of range: {value!r}")
    return hours, minutes


def _minutes(value: str) -> int:
    hours, minutes = parse_time(value)
    return hours * 60 + minutes


def is_weekend(now: datetime) -> bool:
    return now.weekday() >= 5


def is_in_period(period: IgnorePeriod, now: datetime) -> bool:
    """Half-open membership [start, end); start == end is an empty period."""
    start = _minutes(period.start)
    end = _minutes(period.end)
    current = now.hour * 60 + now.minute

    if start == end:
        return False
    if start < end:
        return start <= current < end
    return current >= start or current < end


def is_in_ignore_period(
    periods: Iterable[IgnorePeriod], weekend_ignore: bool, now: Optional[datetime] = None
) -> bool:
    """True if reminders should be suppressed at ``now`` (defaults to the local time)."""
    if now is None:
        now = datetime.now()
    if weekend_ignore and is_weekend(now):
        return True
    return any(is_in_period(period, now) for period in periods)
