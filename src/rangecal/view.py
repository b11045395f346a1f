"""Calendar view: month grid, selection, event list and form wiring.

The view owns one :class:`SelectionMachine` and forwards day clicks and hovers
to it. Rendering evaluates the matcher predicates for every visible day.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from . import grid, matcher
from .backends.base import CalendarBackend, CalendarEvent
from .dates import today as current_day
from .form import DEFAULT_END_TIME, DEFAULT_START_TIME, EventForm
from .selection import EditingEvent, Range, SelectionMachine, SelectionState, SingleStart
from .split import PartialCreateError, SplitMode, build_drafts, create_all

logger = logging.getLogger("rangecal")


@dataclass
class DayCell:
    day: date
    today: bool = False
    selected: bool = False
    range_start: bool = False
    range_end: bool = False
    in_range: bool = False
    in_preview: bool = False
    event_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "day": self.day.day,
            "today": self.today,
            "selected": self.selected,
            "range_start": self.range_start,
            "range_end": self.range_end,
            "in_range": self.in_range,
            "in_preview": self.in_preview,
            "event_count": self.event_count,
        }


class CalendarView:
    def __init__(
        self,
        backend: CalendarBackend,
        owner_id: int,
        today: date | None = None,
        week_start: int = grid.SUNDAY,
        default_start_time: str = DEFAULT_START_TIME,
        default_end_time: str = DEFAULT_END_TIME,
    ):
        self._backend = backend
        self.owner_id = owner_id
        self._today = today
        self.week_start = week_start
        self.month = grid.shift_month(self.today, 0)
        self.selection = SelectionMachine()
        self.form = EventForm(
            start_time=default_start_time,
            end_time=default_end_time,
            default_start_time=default_start_time,
            default_end_time=default_end_time,
        )
        self.events: list[CalendarEvent] = []

    @property
    def today(self) -> date:
        return self._today or current_day()

    @property
    def state(self) -> SelectionState:
        return self.selection.state

    # -- navigation --------------------------------------------------------

    def previous_month(self) -> date:
        self.month = grid.shift_month(self.month, -1)
        return self.month

    def next_month(self) -> date:
        self.month = grid.shift_month(self.month, 1)
        return self.month

    def go_today(self) -> date:
        self.month = grid.shift_month(self.today, 0)
        return self.month

    # -- events ------------------------------------------------------------

    async def load_events(self) -> list[CalendarEvent]:
        self.events = await self._backend.list_events(self.owner_id)
        logger.info("Loaded %d event(s) for owner %s", len(self.events), self.owner_id)
        return self.events

    def find_event(self, event_id: str) -> CalendarEvent | None:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def _merge(self, saved: list[CalendarEvent]) -> None:
        by_id = {e.id: i for i, e in enumerate(self.events)}
        for event in saved:
            if event.id in by_id:
                self.events[by_id[event.id]] = event
            else:
                self.events.append(event)

    # -- user input --------------------------------------------------------

    def click_day(self, day: date) -> SelectionState:
        before = self.state
        after = self.selection.click(day)
        # A fresh selection starts with an empty form.
        if isinstance(before, EditingEvent) and not isinstance(after, EditingEvent):
            self.form.reset()
        return after

    def hover_day(self, day: date | None) -> date | None:
        return self.selection.hover_over(day)

    def select_event(self, event_id: str) -> EditingEvent:
        event = self.find_event(event_id)
        if event is None:
            raise KeyError(f"Event not found: {event_id}")
        self.form.populate(event)
        return self.selection.begin_editing(event)

    def close(self) -> None:
        self.selection.close()
        self.form.reset()

    # -- rendering ---------------------------------------------------------

    def selected_events(self) -> list[CalendarEvent]:
        return matcher.events_for_selection(self.events, self.state)

    def selection_summary(self) -> str:
        state = self.state
        if isinstance(state, SingleStart):
            return grid.format_day_long(state.anchor)
        if isinstance(state, (Range, EditingEvent)):
            if state.start == state.end:
                return grid.format_day_long(state.start)
            return f"{grid.format_day(state.start)} - {grid.format_day(state.end)}"
        return ""

    def cells(self) -> list[list[DayCell | None]]:
        weeks = grid.month_weeks(self.month.year, self.month.month, self.week_start)
        days = grid.month_days(self.month.year, self.month.month)
        counts = matcher.event_days(self.events, days[0], days[-1])
        state, hover, today = self.state, self.selection.hover, self.today
        return [
            [
                DayCell(
                    day=d,
                    today=matcher.is_today(d, today),
                    selected=matcher.is_selected(d, state),
                    range_start=matcher.is_range_start(d, state),
                    range_end=matcher.is_range_end(d, state),
                    in_range=matcher.is_in_range(d, state),
                    in_preview=matcher.is_in_preview_range(d, state, hover),
                    event_count=counts[d],
                ) if d else None
                for d in week
            ]
            for week in weeks
        ]

    def render(self) -> dict[str, Any]:
        state = self.state
        result: dict[str, Any] = {
            "month": grid.month_label(self.month),
            "weekdays": grid.weekday_headers(self.week_start),
            "weeks": [[c.to_dict() if c else None for c in week] for week in self.cells()],
            "selection": describe_state(state),
            "hover": self.selection.hover.isoformat() if self.selection.hover else None,
            "summary": self.selection_summary(),
            "events": [event_to_dict(e) for e in self.selected_events()],
        }
        if isinstance(state, (SingleStart, Range, EditingEvent)):
            result["form"] = {
                "mode": "edit" if isinstance(state, EditingEvent) else "create",
                "title": self.form.title,
                "description": self.form.description,
                "start_time": self.form.start_time,
                "end_time": self.form.end_time,
                "each_day": self.form.each_day,
            }
        return result

    # -- submit ------------------------------------------------------------

    async def submit(self) -> list[CalendarEvent]:
        """Persist the form for the current selection.

        On success the selection and form reset. On failure both are kept so
        the user can retry; events created before a per-day failure are kept.
        """
        state = self.state
        if isinstance(state, SingleStart):
            start_day, end_day = state.anchor, state.anchor
        elif isinstance(state, (Range, EditingEvent)):
            start_day, end_day = state.start, state.end
        else:
            raise ValueError("No date selected")

        title, description = self.form.validated()

        if isinstance(state, EditingEvent):
            draft = build_drafts(
                title, description, start_day, end_day,
                self.form.start_time, self.form.end_time,
            )[0]
            saved = [await self._backend.update_event(state.event.id, self.owner_id, draft)]
            logger.info("Updated event %s", state.event.id)
        else:
            mode = SplitMode.PER_DAY if self.form.each_day else SplitMode.SPANNING
            drafts = build_drafts(
                title, description, start_day, end_day,
                self.form.start_time, self.form.end_time, mode,
            )
            try:
                saved = await create_all(self._backend, self.owner_id, drafts)
            except PartialCreateError as e:
                self._merge(e.created)
                raise

        self._merge(saved)
        self.close()
        return saved


def describe_state(state: SelectionState) -> dict[str, Any]:
    if isinstance(state, SingleStart):
        return {"type": "single", "anchor": state.anchor.isoformat()}
    if isinstance(state, Range):
        return {"type": "range", "start": state.start.isoformat(), "end": state.end.isoformat()}
    if isinstance(state, EditingEvent):
        return {
            "type": "editing",
            "event_id": state.event.id,
            "start": state.start.isoformat(),
            "end": state.end.isoformat(),
            "editing_field": state.editing_field.value,
        }
    return {"type": "empty"}


def event_to_dict(event: CalendarEvent) -> dict[str, Any]:
    """Convert CalendarEvent to JSON-friendly dict."""
    return {
        "id": event.id,
        "title": event.title,
        "date": event.date.isoformat(),
        "end_date": event.last_day.isoformat(),
        "start_time": event.start_time,
        "end_time": event.end_time,
        "description": event.description,
        "multi_day": event.is_multi_day,
    }
