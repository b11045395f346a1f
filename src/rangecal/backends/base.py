"""Base types and protocol for event stores."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Protocol, runtime_checkable


class StoreError(Exception):
    """An event store call failed. Callers may retry."""


@dataclass
class CalendarEvent:
    """Calendar event as the view sees it.

    ``end_date`` is None for a single-day event.
    """

    id: str
    title: str
    date: date
    end_date: date | None = None
    start_time: str | None = None  # HH:MM
    end_time: str | None = None  # HH:MM
    description: str = ""
    owner_id: int | None = None

    @property
    def last_day(self) -> date:
        return self.end_date or self.date

    @property
    def is_multi_day(self) -> bool:
        return self.last_day != self.date


@dataclass
class EventDraft:
    """Payload for creating or updating an event.

    Time of day is folded into ``start`` and ``end``.
    """

    title: str
    start: datetime
    end: datetime
    description: str = ""


def event_from_span(
    event_id: str,
    title: str,
    start: datetime,
    end: datetime,
    description: str = "",
    owner_id: int | None = None,
    tz: tzinfo | None = None,
) -> CalendarEvent:
    """Build a CalendarEvent from the start/end timestamps a store keeps.

    Timestamps with an offset are moved into ``tz`` (the host's local zone
    when None) before the day and time of day are read off them.
    """
    if start.tzinfo:
        start = start.astimezone(tz).replace(tzinfo=None)
    if end.tzinfo:
        end = end.astimezone(tz).replace(tzinfo=None)
    end_date = end.date() if end.date() != start.date() else None
    return CalendarEvent(
        id=event_id,
        title=title,
        date=start.date(),
        end_date=end_date,
        start_time=start.strftime("%H:%M"),
        end_time=end.strftime("%H:%M"),
        description=description,
        owner_id=owner_id,
    )


@runtime_checkable
class CalendarBackend(Protocol):
    """Protocol that all event stores must satisfy."""

    async def list_events(self, owner_id: int) -> list[CalendarEvent]: ...

    async def create_event(self, owner_id: int, draft: EventDraft) -> CalendarEvent: ...

    async def update_event(self, event_id: str, owner_id: int, draft: EventDraft) -> CalendarEvent: ...
