"""CalDAV event store (Nextcloud, ownCloud, Radicale, etc.).

The owning user is stored on each VEVENT as ``X-RANGECAL-OWNER``; events
without it belong to nobody and are never listed.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from datetime import date, datetime, timedelta
from typing import Any

from .base import CalendarEvent, EventDraft, StoreError, event_from_span

logger = logging.getLogger("rangecal")

OWNER_PROPERTY = "X-RANGECAL-OWNER"


class CalDAVBackend:
    """Event store on a single CalDAV calendar."""

    def __init__(self, config: dict[str, Any]):
        self._config = config
        self._calendar = None  # Lazy init

    def _credentials(self) -> tuple[str, str]:
        user_var = self._config["username_env"]
        pass_var = self._config["password_env"]
        username = os.environ.get(user_var, "")
        password = os.environ.get(pass_var, "")
        if not (username and password):
            raise StoreError(f"CalDAV credentials missing: set {user_var} and {pass_var}")
        return username, password

    @staticmethod
    def _named_calendar(client: Any, name: str) -> Any:
        calendars = client.principal().calendars()
        match = next((c for c in calendars if c.name == name), None)
        if match is None:
            names = ", ".join(str(c.name) for c in calendars)
            raise StoreError(f"No CalDAV calendar named '{name}' (have: {names})")
        return match

    def _get_calendar(self):
        """The calendar events are stored in, opened on first use."""
        if self._calendar is None:
            username, password = self._credentials()

            import caldav

            url = self._config["url"]
            name = self._config.get("calendar_name")
            client = caldav.DAVClient(url=url, username=username, password=password)
            if name:
                self._calendar = self._named_calendar(client, name)
            else:
                self._calendar = caldav.Calendar(client=client, url=url)
            logger.info(
                "CalDAV calendar %s opened (events keyed by %s)", name or url, OWNER_PROPERTY
            )
        return self._calendar

    @staticmethod
    def _owner_of(vevent: Any) -> int | None:
        raw = vevent.get(OWNER_PROPERTY)
        if raw is None:
            return None
        try:
            return int(str(raw))
        except ValueError:
            return None

    @staticmethod
    def _as_datetime(value: date | datetime, end_of_day: bool = False) -> datetime:
        if isinstance(value, datetime):
            return value
        # All-day VEVENT; DTEND is exclusive so the event ends the minute before
        if end_of_day:
            return datetime(value.year, value.month, value.day) - timedelta(minutes=1)
        return datetime(value.year, value.month, value.day)

    def _parse_vevent(self, vevent: Any) -> CalendarEvent:
        dtstart = vevent.get("dtstart")
        dtend = vevent.get("dtend")
        ev_start = self._as_datetime(dtstart.dt)
        ev_end = self._as_datetime(dtend.dt, end_of_day=True) if dtend else ev_start

        return event_from_span(
            event_id=str(vevent.get("uid", "")),
            title=str(vevent.get("summary", "")),
            start=ev_start,
            end=ev_end,
            description=str(vevent.get("description", "")) if vevent.get("description") else "",
            owner_id=self._owner_of(vevent),
        )

    @staticmethod
    def _fill_vevent(vevent: Any, draft: EventDraft) -> None:
        for key in ("summary", "dtstart", "dtend", "description"):
            if key in vevent:
                del vevent[key]
        vevent.add("summary", draft.title)
        vevent.add("dtstart", draft.start)
        vevent.add("dtend", draft.end)
        if draft.description:
            vevent.add("description", draft.description)

    def _find_vevent(self, event_id: str, owner_id: int) -> tuple[Any, Any]:
        cal = self._get_calendar()
        event_obj = cal.event_by_uid(event_id)
        vevents = event_obj.icalendar_instance.walk("VEVENT")
        if not vevents or self._owner_of(vevents[0]) != owner_id:
            raise StoreError(f"Event not found: {event_id}")
        return event_obj, vevents[0]

    def _list_events_sync(self, owner_id: int) -> list[CalendarEvent]:
        cal = self._get_calendar()
        events = []
        for event_obj in cal.events():
            for vevent in event_obj.icalendar_instance.walk("VEVENT"):
                if self._owner_of(vevent) == owner_id:
                    events.append(self._parse_vevent(vevent))

        events.sort(key=lambda e: (e.date, e.start_time or ""))
        return events

    def _create_event_sync(self, owner_id: int, draft: EventDraft) -> CalendarEvent:
        from icalendar import Calendar, Event

        cal = self._get_calendar()
        uid = str(uuid.uuid4())

        vcal = Calendar()
        vcal.add("prodid", "-//rangecal//EN")
        vcal.add("version", "2.0")
        vevent = Event()
        vevent.add("uid", uid)
        vevent.add(OWNER_PROPERTY, str(owner_id))
        self._fill_vevent(vevent, draft)
        vcal.add_component(vevent)

        cal.save_event(vcal.to_ical().decode("utf-8"))
        logger.info("CalDAV event created: %s (%s)", draft.title, uid)
        return self._parse_vevent(vevent)

    def _update_event_sync(self, event_id: str, owner_id: int, draft: EventDraft) -> CalendarEvent:
        event_obj, vevent = self._find_vevent(event_id, owner_id)
        self._fill_vevent(vevent, draft)
        event_obj.save()
        logger.info("CalDAV event updated: %s", event_id)
        return self._parse_vevent(vevent)

    async def list_events(self, owner_id: int) -> list[CalendarEvent]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._list_events_sync, owner_id)

    async def create_event(self, owner_id: int, draft: EventDraft) -> CalendarEvent:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._create_event_sync, owner_id, draft)

    async def update_event(self, event_id: str, owner_id: int, draft: EventDraft) -> CalendarEvent:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._update_event_sync, event_id, owner_id, draft)
