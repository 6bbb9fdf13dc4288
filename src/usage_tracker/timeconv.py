"""Day-fraction timestamps used for every stored and queried time value.

A timestamp is a float whose integer part is the proleptic Gregorian ordinal
of the local calendar day (``date.toordinal()``) and whose fractional part is
the time of day as a fraction of 24 hours. One unit is one calendar day, so
durations are ``(t2 - t1) * SECONDS_PER_DAY``.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0
HOURS_PER_DAY = 24

DATE_FMT = "%Y-%m-%d"
DATETIME_FMT = "%Y-%m-%d %H:%M:%S"


def from_datetime(value: datetime) -> float:
    """Encode a wall-clock datetime as a day-fraction timestamp."""
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    midnight = datetime.combine(value.date(), time.min)
    return value.toordinal() + (value - midnight).total_seconds() / SECONDS_PER_DAY


def to_datetime(value: float) -> datetime:
    day = math.floor(value)
    seconds = (value - day) * SECONDS_PER_DAY
    return datetime.combine(date.fromordinal(day), time.min) + timedelta(seconds=seconds)


def now() -> float:
    return from_datetime(datetime.now())


def parse_date(value: str) -> date:
    return datetime.strptime(value, DATE_FMT).date()


def from_date(day: date) -> float:
    return float(day.toordinal())


def from_calendar_string(value: str) -> float:
    """Return the timestamp of local midnight for ``YYYY-MM-DD``.

    Raises ``ValueError`` if the string is not a valid date.
    """
    return from_date(parse_date(value))


def to_calendar_string(value: float) -> str:
    """Format a timestamp as ``YYYY-MM-DD HH:MM:SS``, rounded to the second."""
    day = math.floor(value)
    seconds = round((value - day) * SECONDS_PER_DAY)
    if seconds >= SECONDS_PER_DAY:
        day += 1
        seconds = 0
    moment = datetime.combine(date.fromordinal(day), time.min) + timedelta(seconds=seconds)
    return moment.strftime(DATETIME_FMT)


def next_day(value: str) -> str:
    return _shift_day(value, 1)


def previous_day(value: str) -> str:
    return _shift_day(value, -1)


def _shift_day(value: str, days: int) -> str:
    try:
        shifted = parse_date(value) + timedelta(days=days)
    except (ValueError, OverflowError):
        logger.debug("Cannot shift %r by %d day(s); returning it unchanged.", value, days)
        return value
    return shifted.strftime(DATE_FMT)


def today() -> str:
    return date.today().strftime(DATE_FMT)


def day_bounds(value: str) -> tuple[float, float]:
    """Half-open ``[start, end)`` timestamps covering a calendar day."""
    start = from_calendar_string(value)
    return start, start + 1.0


def hour_bounds(day_start: float, hour: int) -> tuple[float, float]:
    return (
        day_start + hour / HOURS_PER_DAY,
        day_start + (hour + 1) / HOURS_PER_DAY,
    )


def seconds_between(start: float, end: float) -> float:
    return (end - start) * SECONDS_PER_DAY


def overlap_seconds(
    start: float,
    end: float,
    window_start: Optional[float] = None,
    window_end: Optional[float] = None,
) -> float:
    """Seconds of ``[start, end)`` that fall inside ``[window_start, window_end)``.

    A missing window bound leaves that side unbounded.
    """
    lower = start if window_start is None else max(start, window_start)
    upper = end if window_end is None else min(end, window_end)
    return max(0.0, seconds_between(lower, upper))
