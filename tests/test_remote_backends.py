"""Offline tests for CalDAV and Google payload mapping."""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
from icalendar import Event

from rangecal.backends.base import EventDraft, StoreError
from rangecal.backends.caldav_backend import OWNER_PROPERTY, CalDAVBackend
from rangecal.backends.google import GoogleCalendarBackend, authorize


def _draft(title: str = "Review", description: str = "") -> EventDraft:
    return EventDraft(
        title=title,
        start=datetime(2024, 6, 12, 9, 0),
        end=datetime(2024, 6, 14, 17, 0),
        description=description,
    )


# ---------------------------------------------------------------------------
# CalDAV
# ---------------------------------------------------------------------------

class TestCalDAV:
    def _backend(self) -> CalDAVBackend:
        return CalDAVBackend({"url": "https://dav.example.com/cal/", "username_env": "U", "password_env": "P"})

    def test_fill_and_parse(self):
        vevent = Event()
        vevent.add("uid", "abc")
        vevent.add(OWNER_PROPERTY, "7")
        CalDAVBackend._fill_vevent(vevent, _draft(description="Q2"))

        event = self._backend()._parse_vevent(vevent)
        assert event.id == "abc"
        assert event.owner_id == 7
        assert event.title == "Review"
        assert event.description == "Q2"
        assert (event.date, event.end_date) == (date(2024, 6, 12), date(2024, 6, 14))
        assert (event.start_time, event.end_time) == ("09:00", "17:00")

    def test_refill_replaces_fields(self):
        vevent = Event()
        vevent.add("uid", "abc")
        CalDAVBackend._fill_vevent(vevent, _draft("First", "old"))
        CalDAVBackend._fill_vevent(vevent, _draft("Second"))
        event = self._backend()._parse_vevent(vevent)
        assert event.title == "Second"
        assert event.description == ""

    def test_all_day_vevent(self):
        vevent = Event()
        vevent.add("uid", "holiday")
        vevent.add("summary", "Holiday")
        vevent.add("dtstart", date(2024, 6, 12))
        vevent.add("dtend", date(2024, 6, 13))
        event = self._backend()._parse_vevent(vevent)
        assert event.date == date(2024, 6, 12)
        assert event.end_date is None
        assert event.owner_id is None

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("U", raising=False)
        monkeypatch.delenv("P", raising=False)
        with pytest.raises(StoreError, match="credentials"):
            self._backend()._get_calendar()

    def test_list_filters_owner(self):
        mine, theirs = Event(), Event()
        for vevent, owner in ((mine, "1"), (theirs, "2")):
            vevent.add("uid", f"u{owner}")
            vevent.add(OWNER_PROPERTY, owner)
            CalDAVBackend._fill_vevent(vevent, _draft())

        def _obj(vevent):
            obj = MagicMock()
            obj.icalendar_instance.walk.return_value = [vevent]
            return obj

        backend = self._backend()
        backend._calendar = MagicMock()
        backend._calendar.events.return_value = [_obj(mine), _obj(theirs)]
        assert [e.id for e in backend._list_events_sync(1)] == ["u1"]

    def test_named_calendar(self):
        home, work = MagicMock(), MagicMock()
        home.name, work.name = "Home", "Work"
        client = MagicMock()
        client.principal().calendars.return_value = [home, work]

        assert CalDAVBackend._named_calendar(client, "Work") is work
        with pytest.raises(StoreError, match="have: Home, Work"):
            CalDAVBackend._named_calendar(client, "Shared")


# ---------------------------------------------------------------------------
# Google
# ---------------------------------------------------------------------------

class TestGoogle:
    def _backend(self) -> GoogleCalendarBackend:
        return GoogleCalendarBackend({"credentials_file": "/x", "time_zone": "Europe/Berlin"})

    def test_body_carries_owner(self):
        body = self._backend()._body(3, _draft(description="Q2"))
        assert body["extendedProperties"] == {"private": {"owner_id": "3"}}
        assert body["start"] == {"dateTime": "2024-06-12T09:00:00", "timeZone": "Europe/Berlin"}
        assert body["description"] == "Q2"

    def test_parse_timed_item(self):
        item = {
            "id": "g1",
            "summary": "Review",
            "start": {"dateTime": "2024-06-12T09:00:00+02:00"},
            "end": {"dateTime": "2024-06-14T17:00:00+02:00"},
            "extendedProperties": {"private": {"owner_id": "3"}},
        }
        event = self._backend()._parse_item(item)
        assert event.owner_id == 3
        assert (event.date, event.end_date) == (date(2024, 6, 12), date(2024, 6, 14))
        assert event.start_time == "09:00"

    def test_parse_all_day_item(self):
        item = {"id": "g2", "start": {"date": "2024-06-12"}, "end": {"date": "2024-06-14"}}
        event = self._backend()._parse_item(item)
        assert (event.date, event.end_date) == (date(2024, 6, 12), date(2024, 6, 13))
        assert event.owner_id is None

    def test_update_rejects_other_owner(self):
        backend = self._backend()
        service = MagicMock()
        service.events().get().execute.return_value = {
            "id": "g1", "extendedProperties": {"private": {"owner_id": "9"}},
        }
        backend._service = service
        with pytest.raises(StoreError, match="not found"):
            backend._update_event_sync("g1", 3, _draft())

    def test_offset_moved_into_calendar_zone(self):
        backend = GoogleCalendarBackend({"credentials_file": "/x", "time_zone": "UTC"})
        item = {
            "id": "g3",
            "summary": "Late call",
            "start": {"dateTime": "2024-06-10T23:30:00-04:00"},
            "end": {"dateTime": "2024-06-11T00:30:00-04:00"},
        }
        event = backend._parse_item(item)
        assert event.date == date(2024, 6, 11)
        assert event.end_date is None
        assert (event.start_time, event.end_time) == ("03:30", "04:30")

    def test_create_reads_back_in_calendar_zone(self):
        backend = GoogleCalendarBackend({"credentials_file": "/x", "time_zone": "UTC"})
        service = MagicMock()
        service.events().insert().execute.return_value = {
            "id": "g4",
            "summary": "Late call",
            "start": {"dateTime": "2024-06-10T23:30:00-04:00", "timeZone": "America/New_York"},
            "end": {"dateTime": "2024-06-11T00:30:00-04:00", "timeZone": "America/New_York"},
            "extendedProperties": {"private": {"owner_id": "1"}},
        }
        backend._service = service
        draft = EventDraft("Late call", datetime(2024, 6, 11, 3, 30), datetime(2024, 6, 11, 4, 30))

        event = backend._create_event_sync(1, draft)
        assert (event.date, event.last_day) == (date(2024, 6, 11), date(2024, 6, 11))
        assert event.start_time == "03:30"

    def test_list_requests_calendar_zone(self):
        backend = self._backend()
        service = MagicMock()
        service.events().list().execute.return_value = {"items": []}
        backend._service = service
        assert backend._list_events_sync(3) == []
        kwargs = service.events().list.call_args.kwargs
        assert kwargs["timeZone"] == "Europe/Berlin"
        assert kwargs["privateExtendedProperty"] == "owner_id=3"

    def test_unknown_time_zone(self):
        with pytest.raises(ValueError, match="Unknown time zone"):
            GoogleCalendarBackend({"credentials_file": "/x", "time_zone": "Mars/Olympus"})

    def test_missing_token(self, tmp_path):
        backend = GoogleCalendarBackend(
            {"credentials_file": "/x", "token_file": str(tmp_path / "token.json")}
        )
        with pytest.raises(StoreError, match="--auth google"):
            backend._get_service()

    def test_authorize_needs_client_secrets(self, tmp_path):
        with pytest.raises(StoreError, match="client secrets"):
            authorize({"credentials_file": str(tmp_path / "missing.json")})
