"""Month grid enumeration and navigation."""

from __future__ import annotations

import calendar
from datetime import date

SUNDAY = calendar.SUNDAY
MONDAY = calendar.MONDAY


def month_days(year: int, month: int) -> list[date]:
    days_in_month = calendar.monthrange(year, month)[1]
    return [date(year, month, d) for d in range(1, days_in_month + 1)]


def month_weeks(year: int, month: int, week_start: int = SUNDAY) -> list[list[date | None]]:
    """Weeks of the month; days outside the month are None."""
    cal = calendar.Calendar(firstweekday=week_start)
    return [
        [date(year, month, d) if d else None for d in week]
        for week in cal.monthdayscalendar(year, month)
    ]


def shift_month(day: date, delta: int) -> date:
    """First day of the month ``delta`` months away from ``day``."""
    index = day.year * 12 + (day.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def month_label(day: date) -> str:
    return f"{calendar.month_name[day.month]} {day.year}"


def weekday_headers(week_start: int = SUNDAY) -> list[str]:
    return [calendar.day_abbr[(week_start + i) % 7] for i in range(7)]


def format_day(day: date) -> str:
    """Short form, e.g. ``Jun 10, 2024``."""
    return f"{calendar.month_abbr[day.month]} {day.day}, {day.year}"


def format_day_long(day: date) -> str:
    """Long form, e.g. ``Monday, June 10, 2024``."""
    return f"{calendar.day_name[day.weekday()]}, {calendar.month_name[day.month]} {day.day}, {day.year}"
