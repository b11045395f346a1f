"""Tests for the event form, month grid and date helpers."""

from datetime import date, datetime

import pytest

from rangecal import grid
from rangecal.backends.base import CalendarEvent
from rangecal.dates import at_time, iter_days, parse_time, to_day, DAY_END
from rangecal.form import EventForm, FormError, add_one_hour


# ---------------------------------------------------------------------------
# Form
# ---------------------------------------------------------------------------

class TestEventForm:
    def test_defaults(self):
        form = EventForm()
        assert (form.start_time, form.end_time) == ("09:00", "10:00")
        assert form.each_day is False

    def test_start_time_pushes_end(self):
        form = EventForm()
        form.set_start_time("10:30")
        assert form.end_time == "11:30"

    def test_start_time_keeps_later_end(self):
        form = EventForm(end_time="18:00")
        form.set_start_time("10:30")
        assert form.end_time == "18:00"

    def test_add_one_hour_wraps(self):
        assert add_one_hour("23:15") == "00:15"

    def test_end_time_must_follow_start(self):
        form = EventForm()
        assert form.set_end_time("08:00") is False
        assert form.set_end_time("09:00") is False
        assert form.end_time == "10:00"
        assert form.set_end_time("11:00") is True
        assert form.end_time == "11:00"

    def test_bad_time_rejected(self):
        with pytest.raises(ValueError):
            EventForm().set_start_time("9am")

    def test_validated_trims(self):
        form = EventForm(title="  Standup ", description=" daily ")
        assert form.validated() == ("Standup", "daily")

    @pytest.mark.parametrize("title", ["", "   "])
    def test_empty_title(self, title):
        with pytest.raises(FormError, match="required"):
            EventForm(title=title).validated()

    def test_populate_and_reset(self):
        event = CalendarEvent(
            id="e1", title="Review", date=date(2024, 6, 10),
            start_time="14:00", end_time="15:30", description="Q2",
        )
        form = EventForm(each_day=True)
        form.populate(event)
        assert (form.title, form.description, form.start_time, form.end_time) == (
            "Review", "Q2", "14:00", "15:30",
        )
        assert form.each_day is False
        form.reset()
        assert (form.title, form.start_time, form.end_time) == ("", "09:00", "10:00")

    def test_populate_falls_back_to_defaults(self):
        event = CalendarEvent(id="e1", title="Review", date=date(2024, 6, 10))
        form = EventForm(default_start_time="08:00", default_end_time="08:30")
        form.populate(event)
        assert (form.start_time, form.end_time) == ("08:00", "08:30")


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------

class TestGrid:
    def test_month_days(self):
        days = grid.month_days(2024, 2)
        assert days[0] == date(2024, 2, 1)
        assert days[-1] == date(2024, 2, 29)

    def test_leading_blanks_sunday_start(self):
        # June 1, 2024 is a Saturday
        weeks = grid.month_weeks(2024, 6, grid.SUNDAY)
        assert weeks[0][:6] == [None] * 6
        assert weeks[0][6] == date(2024, 6, 1)

    def test_leading_blanks_monday_start(self):
        weeks = grid.month_weeks(2024, 6, grid.MONDAY)
        assert weeks[0][:5] == [None] * 5
        assert weeks[0][5] == date(2024, 6, 1)

    def test_shift_month(self):
        assert grid.shift_month(date(2024, 1, 31), -1) == date(2023, 12, 1)
        assert grid.shift_month(date(2024, 12, 15), 1) == date(2025, 1, 1)
        assert grid.shift_month(date(2024, 3, 31), 0) == date(2024, 3, 1)

    def test_labels(self):
        assert grid.month_label(date(2024, 6, 1)) == "June 2024"
        assert grid.weekday_headers(grid.SUNDAY) == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        assert grid.weekday_headers(grid.MONDAY)[0] == "Mon"
        assert grid.format_day(date(2024, 6, 10)) == "Jun 10, 2024"
        assert grid.format_day_long(date(2024, 6, 10)) == "Monday, June 10, 2024"


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

class TestDates:
    def test_to_day_strips_time(self):
        assert to_day(datetime(2024, 6, 10, 23, 59)) == date(2024, 6, 10)
        assert to_day("2024-06-10T08:00:00") == date(2024, 6, 10)
        assert to_day(date(2024, 6, 10)) == date(2024, 6, 10)

    def test_iter_days_inclusive(self):
        assert list(iter_days(date(2024, 6, 1), date(2024, 6, 3))) == [
            date(2024, 6, 1), date(2024, 6, 2), date(2024, 6, 3),
        ]
        assert list(iter_days(date(2024, 6, 3), date(2024, 6, 1))) == []

    def test_parse_time(self):
        assert parse_time("07:05").hour == 7
        with pytest.raises(ValueError, match="HH:MM"):
            parse_time("25:00")

    def test_at_time(self):
        assert at_time(date(2024, 6, 10), "13:45", DAY_END) == datetime(2024, 6, 10, 13, 45)
        assert at_time(date(2024, 6, 10), None, DAY_END) == datetime(2024, 6, 10, 23, 59)
