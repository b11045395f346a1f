"""Google Calendar API event store.

The owning user is kept in the private extended property ``owner_id``.
Times are read and written in the configured ``time_zone``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import timedelta
from typing import Any

from dateutil import tz
from dateutil.parser import parse as parse_dt

from .base import CalendarEvent, EventDraft, StoreError, event_from_span

logger = logging.getLogger("rangecal")

SCOPES = ["https://www.googleapis.com/auth/calendar"]
DEFAULT_TOKEN_FILE = "/data/google_calendar_token.json"
OWNER_KEY = "owner_id"


def token_path(config: dict[str, Any]) -> str:
    return config.get("token_file", DEFAULT_TOKEN_FILE)


def save_token(creds, token_file: str) -> None:
    """Write OAuth credentials to the file the store reads them from."""
    os.makedirs(os.path.dirname(token_file) or ".", exist_ok=True)
    with open(token_file, "w") as f:
        f.write(creds.to_json())


def authorize(config: dict[str, Any]) -> str:
    """Run the browser consent flow and store the token. Returns its path."""
    from google_auth_oauthlib.flow import InstalledAppFlow

    client_secrets = config["credentials_file"]
    if not os.path.isfile(client_secrets):
        raise StoreError(f"Google client secrets not found: {client_secrets}")

    flow = InstalledAppFlow.from_client_secrets_file(client_secrets, SCOPES)
    token_file = token_path(config)
    save_token(flow.run_local_server(port=0), token_file)
    return token_file


class GoogleCalendarBackend:
    """Event store on one Google calendar."""

    def __init__(self, config: dict[str, Any]):
        self._config = config
        self._service = None  # Lazy init
        self._calendar_id = config.get("calendar_id", "primary")
        self._time_zone = config.get("time_zone", "UTC")
        self._tz = tz.gettz(self._time_zone)
        if self._tz is None:
            raise ValueError(f"Unknown time zone: {self._time_zone}")

    def _credentials(self):
        """Stored token for this calendar, refreshed if it has expired."""
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials

        token_file = token_path(self._config)
        if not os.path.isfile(token_file):
            raise StoreError(f"No Google token at {token_file}. Run: rangecal --auth google")

        creds = Credentials.from_authorized_user_file(token_file, SCOPES)
        if creds.valid:
            return creds
        if not (creds.expired and creds.refresh_token):
            raise StoreError(f"Google token at {token_file} is unusable. Run: rangecal --auth google")

        creds.refresh(Request())
        save_token(creds, token_file)
        logger.info("Google token refreshed for calendar %s", self._calendar_id)
        return creds

    def _get_service(self):
        if self._service is None:
            from googleapiclient.discovery import build

            self._service = build("calendar", "v3", credentials=self._credentials())
            logger.info(
                "Google calendar %s opened (%s time, events keyed by private %s)",
                self._calendar_id, self._time_zone, OWNER_KEY,
            )
        return self._service

    @staticmethod
    def _owner_of(item: dict[str, Any]) -> int | None:
        raw = item.get("extendedProperties", {}).get("private", {}).get(OWNER_KEY)
        return int(raw) if raw is not None and str(raw).isdigit() else None

    def _parse_item(self, item: dict[str, Any]) -> CalendarEvent:
        start_raw = item.get("start", {})
        end_raw = item.get("end", {})

        # All-day events use 'date', timed events use 'dateTime'
        if "date" in start_raw and "dateTime" not in start_raw:
            ev_start = parse_dt(start_raw["date"])
            ev_end = parse_dt(end_raw.get("date", start_raw["date"]))
            # End date is exclusive
            if ev_end > ev_start:
                ev_end -= timedelta(minutes=1)
        else:
            ev_start = parse_dt(start_raw.get("dateTime", ""))
            ev_end = parse_dt(end_raw.get("dateTime", ""))

        return event_from_span(
            event_id=item["id"],
            title=item.get("summary", ""),
            start=ev_start,
            end=ev_end,
            description=item.get("description", ""),
            owner_id=self._owner_of(item),
            tz=self._tz,
        )

    def _body(self, owner_id: int, draft: EventDraft) -> dict[str, Any]:
        body: dict[str, Any] = {
            "summary": draft.title,
            "start": {"dateTime": draft.start.isoformat(), "timeZone": self._time_zone},
            "end": {"dateTime": draft.end.isoformat(), "timeZone": self._time_zone},
            "extendedProperties": {"private": {OWNER_KEY: str(owner_id)}},
        }
        if draft.description:
            body["description"] = draft.description
        return body

    def _list_events_sync(self, owner_id: int) -> list[CalendarEvent]:
        service = self._get_service()
        events: list[CalendarEvent] = []
        page_token = None
        while True:
            result = (
                service.events()
                .list(
                    calendarId=self._calendar_id,
                    privateExtendedProperty=f"{OWNER_KEY}={owner_id}",
                    timeZone=self._time_zone,
                    singleEvents=True,
                    orderBy="startTime",
                    maxResults=250,
                    pageToken=page_token,
                )
                .execute()
            )
            events.extend(self._parse_item(item) for item in result.get("items", []))
            page_token = result.get("nextPageToken")
            if not page_token:
                return events

    def _create_event_sync(self, owner_id: int, draft: EventDraft) -> CalendarEvent:
        service = self._get_service()
        result = (
            service.events()
            .insert(calendarId=self._calendar_id, body=self._body(owner_id, draft))
            .execute()
        )
        logger.info("Google event created: %s (%s)", draft.title, result["id"])
        return self._parse_item(result)

    def _update_event_sync(self, event_id: str, owner_id: int, draft: EventDraft) -> CalendarEvent:
        service = self._get_service()
        current = service.events().get(calendarId=self._calendar_id, eventId=event_id).execute()
        if self._owner_of(current) != owner_id:
            raise StoreError(f"Event not found: {event_id}")

        current.update(self._body(owner_id, draft))
        if not draft.description:
            current.pop("description", None)
        result = (
            service.events()
            .update(calendarId=self._calendar_id, eventId=event_id, body=current)
            .execute()
        )
        logger.info("Google event updated: %s", event_id)
        return self._parse_item(result)

    async def list_events(self, owner_id: int) -> list[CalendarEvent]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._list_events_sync, owner_id)

    async def create_event(self, owner_id: int, draft: EventDraft) -> CalendarEvent:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._create_event_sync, owner_id, draft)

    async def update_event(self, event_id: str, owner_id: int, draft: EventDraft) -> CalendarEvent:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._update_event_sync, event_id, owner_id, draft)
