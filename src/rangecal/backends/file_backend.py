"""JSON file event store, for single-machine use and local development."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from .base import CalendarEvent, EventDraft, StoreError, event_from_span

logger = logging.getLogger("rangecal")


class FileBackend:
    """Events kept as a list of records in one JSON file.

    Each record holds id, owner_id, title, description, start and end (ISO).
    """

    def __init__(self, config: dict[str, Any]):
        self._path = Path(config["path"])

    def _read(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            decoded = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read {self._path}: {e}") from e
        if not isinstance(decoded, list):
            raise StoreError(f"Cannot read {self._path}: expected a list of events")
        return [item for item in decoded if isinstance(item, dict)]

    def _write(self, records: list[dict[str, Any]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(records, ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=".events-", suffix=".json", dir=str(self._path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
            os.replace(tmp_name, self._path)
        except OSError as e:
            raise StoreError(f"Cannot write {self._path}: {e}") from e
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)

    @staticmethod
    def _to_event(record: dict[str, Any]) -> CalendarEvent:
        return event_from_span(
            event_id=record["id"],
            title=record.get("title", ""),
            start=datetime.fromisoformat(record["start"]),
            end=datetime.fromisoformat(record["end"]),
            description=record.get("description", ""),
            owner_id=record.get("owner_id"),
        )

    @staticmethod
    def _fill(record: dict[str, Any], draft: EventDraft) -> dict[str, Any]:
        record["title"] = draft.title
        record["description"] = draft.description
        record["start"] = draft.start.isoformat()
        record["end"] = draft.end.isoformat()
        return record

    def _list_events_sync(self, owner_id: int) -> list[CalendarEvent]:
        events = [self._to_event(r) for r in self._read() if r.get("owner_id") == owner_id]
        events.sort(key=lambda e: (e.date, e.start_time or ""))
        return events

    def _create_event_sync(self, owner_id: int, draft: EventDraft) -> CalendarEvent:
        records = self._read()
        record = self._fill({"id": uuid.uuid4().hex, "owner_id": owner_id}, draft)
        records.append(record)
        self._write(records)
        logger.info("File event created: %s (%s)", draft.title, record["id"])
        return self._to_event(record)

    def _update_event_sync(self, event_id: str, owner_id: int, draft: EventDraft) -> CalendarEvent:
        records = self._read()
        for record in records:
            if record.get("id") == event_id and record.get("owner_id") == owner_id:
                self._fill(record, draft)
                self._write(records)
                logger.info("File event updated: %s", event_id)
                return self._to_event(record)
        raise StoreError(f"Event not found: {event_id}")

    async def list_events(self, owner_id: int) -> list[CalendarEvent]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._list_events_sync, owner_id)

    async def create_event(self, owner_id: int, draft: EventDraft) -> CalendarEvent:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._create_event_sync, owner_id, draft)

    async def update_event(self, event_id: str, owner_id: int, draft: EventDraft) -> CalendarEvent:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._update_event_sync, event_id, owner_id, draft)
