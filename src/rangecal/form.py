"""Event form state and validation."""

from __future__ import annotations

from dataclasses import dataclass

from .backends.base import CalendarEvent
from .dates import format_time, parse_time

DEFAULT_START_TIME = "09:00"
DEFAULT_END_TIME = "10:00"


class FormError(ValueError):
    """The form cannot be submitted as filled in."""


def add_one_hour(hhmm: str) -> str:
    """Add an hour, wrapping past midnight."""
    t = parse_time(hhmm)
    return format_time(t.replace(hour=(t.hour + 1) % 24))


@dataclass
class EventForm:
    title: str = ""
    description: str = ""
    start_time: str = DEFAULT_START_TIME
    end_time: str = DEFAULT_END_TIME
    each_day: bool = False
    default_start_time: str = DEFAULT_START_TIME
    default_end_time: str = DEFAULT_END_TIME

    def set_start_time(self, hhmm: str) -> None:
        """Set start time, moving end forward an hour if it no longer follows start."""
        parse_time(hhmm)
        self.start_time = hhmm
        if parse_time(self.end_time) <= parse_time(hhmm):
            self.end_time = add_one_hour(hhmm)

    def set_end_time(self, hhmm: str) -> bool:
        """Set end time if it is after start time. Returns whether it was applied."""
        if parse_time(hhmm) > parse_time(self.start_time):
            self.end_time = hhmm
            return True
        return False

    def populate(self, event: CalendarEvent) -> None:
        self.title = event.title
        self.description = event.description or ""
        self.start_time = event.start_time or self.default_start_time
        self.end_time = event.end_time or self.default_end_time
        self.each_day = False

    def reset(self) -> None:
        self.title = ""
        self.description = ""
        self.start_time = self.default_start_time
        self.end_time = self.default_end_time
        self.each_day = False

    def validated(self) -> tuple[str, str]:
        """Return trimmed (title, description) or raise FormError."""
        title = self.title.strip()
        if not title:
            raise FormError("Event name is required")
        try:
            start = parse_time(self.start_time)
            end = parse_time(self.end_time)
        except ValueError as e:
            raise FormError(str(e)) from None
        if end <= start:
            raise FormError(f"End time {self.end_time} must be after start time {self.start_time}")
        return title, self.description.strip()
