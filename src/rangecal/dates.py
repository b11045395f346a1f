"""Day-granularity date helpers.

A calendar day is a plain ``datetime.date``. Anything that may carry a time of
day is normalized through :func:`to_day` before it is compared.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterator

from dateutil.parser import parse as parse_dt

DAY_START = time(0, 0)
DAY_END = time(23, 59)


def to_day(value: date | datetime | str) -> date:
    """Strip any time-of-day component. Strings are parsed with dateutil."""
    if isinstance(value, str):
        value = parse_dt(value)
    if isinstance(value, datetime):
        return value.date()
    return value


def today() -> date:
    return date.today()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every day from start to end inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def parse_time(value: str) -> time:
    """Parse a 24h ``HH:MM`` string."""
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time '{value}', expected HH:MM") from None


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def at_time(day: date, hhmm: str | None, default: time) -> datetime:
    """Fold an optional ``HH:MM`` into a timestamp on the given day."""
    return datetime.combine(day, parse_time(hhmm) if hhmm else default)
