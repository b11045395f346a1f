"""Turn a selected date range into event drafts and persist them.

Per-day mode creates one record per day with independent store calls. There
is no rollback: if a create fails midway, the records created before it stay
persisted and are reported through :class:`PartialCreateError`.
"""

from __future__ import annotations

import enum
import logging
from datetime import date

from .backends.base import CalendarBackend, CalendarEvent, EventDraft
from .dates import DAY_END, DAY_START, at_time, iter_days

logger = logging.getLogger("rangecal")


class SplitMode(enum.Enum):
    SPANNING = "spanning"
    PER_DAY = "per_day"


class PartialCreateError(Exception):
    """A create failed after some drafts were already persisted."""

    def __init__(self, created: list[CalendarEvent], failed: EventDraft, cause: Exception):
        self.created = created
        self.failed = failed
        self.cause = cause
        super().__init__(
            f"Failed to create event on {failed.start.date().isoformat()} "
            f"({len(created)} already created): {cause}"
        )


def build_drafts(
    title: str,
    description: str,
    start_day: date,
    end_day: date,
    start_time: str | None,
    end_time: str | None,
    mode: SplitMode = SplitMode.SPANNING,
) -> list[EventDraft]:
    """Expand a selection into one spanning draft or one draft per day."""
    if mode is SplitMode.PER_DAY and end_day > start_day:
        return [
            EventDraft(
                title=title,
                description=description,
                start=at_time(day, start_time, DAY_START),
                end=at_time(day, end_time, DAY_END),
            )
            for day in iter_days(start_day, end_day)
        ]
    return [
        EventDraft(
            title=title,
            description=description,
            start=at_time(start_day, start_time, DAY_START),
            end=at_time(end_day, end_time, DAY_END),
        )
    ]


async def create_all(
    backend: CalendarBackend, owner_id: int, drafts: list[EventDraft]
) -> list[CalendarEvent]:
    """Create drafts one at a time, in order."""
    created: list[CalendarEvent] = []
    for draft in drafts:
        try:
            created.append(await backend.create_event(owner_id, draft))
        except Exception as e:
            if not created:
                raise
            logger.warning(
                "Per-day create stopped after %d of %d events: %s", len(created), len(drafts), e
            )
            raise PartialCreateError(created, draft, e) from e
    logger.info("Created %d event(s) for owner %s", len(created), owner_id)
    return created
