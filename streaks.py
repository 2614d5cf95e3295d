"""
Consecutive-day streaks over sustainable (non-car) journeys.

Timestamps are bucketed by local calendar day. Aware datetimes are
converted to the process's local timezone first; naive datetimes and
plain dates are taken as already local. ISO-8601 strings (as stored by
models.py) are parsed.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Set, Union

Timestamp = Union[datetime, date, str]


def to_local_day(ts: Timestamp) -> date:
    """Normalise a timestamp to its local calendar day."""
    if isinstance(ts, str):
        ts = datetime.fromisoformat(ts)
    if isinstance(ts, datetime):
        if ts.tzinfo is not None:
            ts = ts.astimezone()
        return ts.date()
    if isinstance(ts, date):
        return ts
    raise TypeError(f"Unsupported timestamp type: {type(ts).__name__}")


def journey_days(timestamps: Iterable[Timestamp]) -> Set[date]:
    return {to_local_day(ts) for ts in timestamps}


def calculate_streak(timestamps: Iterable[Timestamp], today: Optional[date] = None) -> int:
    """Count consecutive days with a journey, ending today.

    If today has no journey the streak is 0, even when yesterday had one.
    """
    days = journey_days(timestamps)
    if not days:
        return 0

    current = today or date.today()
    streak = 0
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def longest_streak(timestamps: Iterable[Timestamp]) -> int:
    """Longest run of consecutive journey days anywhere in the history."""
    days = journey_days(timestamps)
    best = 0
    for day in days:
        # only start counting at the first day of a run
        if day - timedelta(days=1) in days:
            continue
        run = 1
        while day + timedelta(days=run) in days:
            run += 1
        best = max(best, run)
    return best
