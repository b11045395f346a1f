"""Predicates matching calendar days against the selection and events.

Every per-day predicate is O(1). The event scans (:func:`events_for_selection`,
:func:`event_days`) run once per render, not once per day.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Iterable

from .backends.base import CalendarEvent
from .dates import iter_days, today as current_day
from .selection import EditField, EditingEvent, SelectionState, SingleStart, span_of


def is_today(day: date, today: date | None = None) -> bool:
    return day == (today or current_day())


def is_selected(day: date, state: SelectionState) -> bool:
    return isinstance(state, SingleStart) and day == state.anchor


def is_range_start(day: date, state: SelectionState) -> bool:
    span = span_of(state)
    return span is not None and day == span[0]


def is_range_end(day: date, state: SelectionState) -> bool:
    span = span_of(state)
    return span is not None and day == span[1]


def is_in_range(day: date, state: SelectionState) -> bool:
    span = span_of(state)
    return span is not None and span[0] <= day <= span[1]


def _fixed_endpoint(state: SelectionState) -> date | None:
    if isinstance(state, SingleStart):
        return state.anchor
    if isinstance(state, EditingEvent):
        if state.editing_field is EditField.START:
            return state.end
        if state.editing_field is EditField.END:
            return state.start
    return None


def is_in_preview_range(day: date, state: SelectionState, hover: date | None) -> bool:
    """True if day lies between the fixed endpoint and the hover date.

    The hover date may lie on either side of the fixed endpoint.
    """
    if hover is None:
        return False
    fixed = _fixed_endpoint(state)
    if fixed is None:
        return False
    low, high = (fixed, hover) if fixed <= hover else (hover, fixed)
    return low <= day <= high


def event_occurs_on(event: CalendarEvent, day: date) -> bool:
    return event.date <= day <= event.last_day


def event_overlaps_range(event: CalendarEvent, range_start: date, range_end: date) -> bool:
    return event.date <= range_end and event.last_day >= range_start


def events_for_selection(
    events: Iterable[CalendarEvent], state: SelectionState
) -> list[CalendarEvent]:
    """Events to list for the current selection, sorted chronologically."""
    if isinstance(state, SingleStart):
        matched = [e for e in events if event_occurs_on(e, state.anchor)]
    else:
        span = span_of(state)
        if span is None:
            return []
        matched = [e for e in events if event_overlaps_range(e, *span)]
    matched.sort(key=lambda e: (e.date, e.start_time or ""))
    return matched


def event_days(events: Iterable[CalendarEvent], first: date, last: date) -> Counter[date]:
    """Count events per day, restricted to the visible window [first, last]."""
    counts: Counter[date] = Counter()
    for event in events:
        if not event_overlaps_range(event, first, last):
            continue
        for day in iter_days(max(event.date, first), min(event.last_day, last)):
            counts[day] += 1
    return counts
