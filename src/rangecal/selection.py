"""Date selection state machine.

The selection is one of four states. All changes go through
:meth:`SelectionMachine.click`, :meth:`SelectionMachine.hover_over`,
:meth:`SelectionMachine.begin_editing` and :meth:`SelectionMachine.close`.

    Empty --click d--> SingleStart(d)
    SingleStart(a) --click d--> Range(min(a, d), max(a, d))
    Range --click d--> SingleStart(d)
    EditingEvent --click on an endpoint--> toggle which endpoint is re-picked
    EditingEvent(field set) --click d--> move that endpoint, or ignore if invalid
    EditingEvent(no field) --click elsewhere--> Empty, then as above

Hover only ever changes the preview date, never the committed selection.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Union

from .backends.base import CalendarEvent

logger = logging.getLogger("rangecal")


class EditField(enum.Enum):
    NONE = "none"
    START = "start"
    END = "end"


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class SingleStart:
    anchor: date


@dataclass(frozen=True)
class Range:
    start: date
    end: date


@dataclass(frozen=True)
class EditingEvent:
    event: CalendarEvent
    start: date
    end: date
    editing_field: EditField = EditField.NONE

    @property
    def is_single_day(self) -> bool:
        return self.start == self.end


SelectionState = Union[Empty, SingleStart, Range, EditingEvent]

EMPTY = Empty()


def span_of(state: SelectionState) -> tuple[date, date] | None:
    """Committed (start, end) of a Range or EditingEvent, else None."""
    if isinstance(state, (Range, EditingEvent)):
        return state.start, state.end
    return None


class SelectionMachine:
    """Owns the current selection and the hover preview."""

    def __init__(self) -> None:
        self._state: SelectionState = EMPTY
        self._hover: date | None = None

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def hover(self) -> date | None:
        return self._hover

    @property
    def expects_click(self) -> bool:
        """True while one endpoint is fixed and the other is being picked."""
        state = self._state
        if isinstance(state, SingleStart):
            return True
        return isinstance(state, EditingEvent) and state.editing_field is not EditField.NONE

    def click(self, day: date) -> SelectionState:
        state = self._state
        if isinstance(state, EditingEvent):
            new_state = self._click_editing(state, day)
            if new_state is None:
                logger.debug("Abandoning edit of event %s", state.event.id)
                new_state = self._click_selecting(EMPTY, day)
        else:
            new_state = self._click_selecting(state, day)

        self._state = new_state
        if not self.expects_click:
            self._hover = None
        return new_state

    def hover_over(self, day: date | None) -> date | None:
        self._hover = day if day is not None and self.expects_click else None
        return self._hover

    def begin_editing(self, event: CalendarEvent) -> EditingEvent:
        self._state = EditingEvent(event=event, start=event.date, end=event.last_day)
        self._hover = None
        return self._state

    def close(self) -> None:
        self._state = EMPTY
        self._hover = None

    reset = close

    # -- transitions -------------------------------------------------------

    @staticmethod
    def _click_selecting(state: SelectionState, day: date) -> SelectionState:
        if isinstance(state, SingleStart):
            if day >= state.anchor:
                return Range(start=state.anchor, end=day)
            return Range(start=day, end=state.anchor)
        return SingleStart(anchor=day)

    @staticmethod
    def _click_editing(state: EditingEvent, day: date) -> EditingEvent | None:
        """Return the next editing state, or None when editing is abandoned."""
        field = state.editing_field

        if day == state.start:
            toggled = EditField.NONE if field is EditField.START else EditField.START
            return replace(state, editing_field=toggled)

        if day == state.end and not state.is_single_day:
            toggled = EditField.NONE if field is EditField.END else EditField.END
            return replace(state, editing_field=toggled)

        if field is EditField.START:
            if state.is_single_day:
                if day < state.start:
                    return replace(state, start=day, editing_field=EditField.NONE)
                return replace(state, end=day, editing_field=EditField.NONE)
            if day <= state.end:
                return replace(state, start=day, editing_field=EditField.NONE)
            logger.debug("Ignoring start %s after end %s", day, state.end)
            return state

        if field is EditField.END:
            if day >= state.start:
                return replace(state, end=day, editing_field=EditField.NONE)
            logger.debug("Ignoring end %s before start %s", day, state.start)
            return state

        return None
