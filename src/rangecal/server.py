#!/usr/bin/env python3
"""
rangecal: calendar date selection and event management as an MCP server.

Each tool is one user gesture on the month view (click a day, hover a day,
open an event, submit the form, ...) and returns the rendered view.

Environment variables:
    RANGECAL_CONFIG: path to rangecal.yaml (default: /config/rangecal.yaml)
"""

import logging
import sys
from datetime import date

from mcp.server.fastmcp import FastMCP

from .auth import ConfiguredAuth, NotSignedInError, require_user
from .backends.base import CalendarBackend, StoreError
from .config import CONFIG_PATH, Settings, load_config
from .dates import to_day
from .form import FormError
from .split import PartialCreateError
from .view import CalendarView, event_to_dict

# MCP stdio servers must NEVER write to stdout; log to stderr only.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("rangecal")


# ---------------------------------------------------------------------------
# Module-level state
# ---------------------------------------------------------------------------

_settings: Settings = Settings()
_auth: ConfiguredAuth = ConfiguredAuth([])
_backend: CalendarBackend | None = None
_view: CalendarView | None = None


def _init_backend(settings: Settings) -> CalendarBackend:
    """Create the event store named in the settings."""
    if settings.store_type == "file":
        from .backends.file_backend import FileBackend
        return FileBackend(settings.store)
    elif settings.store_type == "caldav":
        from .backends.caldav_backend import CalDAVBackend
        return CalDAVBackend(settings.store)
    elif settings.store_type == "google":
        from .backends.google import GoogleCalendarBackend
        return GoogleCalendarBackend(settings.store)
    else:
        raise ValueError(f"Unknown store type: {settings.store_type}")


def _get_backend() -> CalendarBackend:
    """Lazy-initializes the store on first access."""
    global _backend
    if _backend is None:
        _backend = _init_backend(_settings)
    return _backend


def _current_view() -> CalendarView | dict:
    """Return the signed-in user's view, or an error dict."""
    try:
        user = require_user(_auth)
    except NotSignedInError as e:
        return {"error": str(e)}
    if _view is None or _view.owner_id != user.id:
        return {"error": "Calendar not loaded. Call sign_in first."}
    return _view


def _parse_day(value: str) -> date:
    """Parse an ISO 8601 date; any time of day is dropped."""
    return to_day(value)


def _apply_form(
    view: CalendarView,
    title: str | None = None,
    description: str | None = None,
    start_time: str = "",
    end_time: str = "",
    each_day: bool | None = None,
) -> dict | None:
    """Copy provided fields into the form. Returns an error dict on bad input."""
    form = view.form
    if title is not None:
        form.title = title
    if description is not None:
        form.description = description
    try:
        if start_time:
            form.set_start_time(start_time)
        if end_time and not form.set_end_time(end_time):
            return {"error": f"End time {end_time} must be after start time {form.start_time}"}
    except ValueError as e:
        return {"error": str(e)}
    if each_day is not None:
        form.each_day = each_day
    return None


# ---------------------------------------------------------------------------
# MCP Server + Tools
# ---------------------------------------------------------------------------

mcp = FastMCP("rangecal")


@mcp.tool()
async def sign_in(email: str) -> dict:
    """Sign in as a configured user and load their events.

    Args:
        email: User email as listed in the config file
    """
    global _view
    try:
        user = _auth.sign_in(email)
    except ValueError as e:
        return {"error": str(e)}

    view = CalendarView(
        _get_backend(),
        user.id,
        week_start=_settings.week_start,
        default_start_time=_settings.default_start_time,
        default_end_time=_settings.default_end_time,
    )
    try:
        await view.load_events()
    except Exception as e:
        logger.warning("Failed to load events for '%s': %s", user.email, e)
        _view = view
        return {"user": user.email, "error": f"Failed to load events: {e}", "view": view.render()}
    _view = view
    return {"user": user.email, "view": view.render()}


@mcp.tool()
async def sign_out() -> dict:
    """Sign out and discard the current calendar view."""
    global _view
    _auth.sign_out()
    _view = None
    return {"success": True}


@mcp.tool()
async def refresh_events() -> dict:
    """Reload events from the store. The selection is kept."""
    view = _current_view()
    if isinstance(view, dict):
        return view
    try:
        await view.load_events()
    except Exception as e:
        logger.warning("Failed to reload events: %s", e)
        return {"error": f"Failed to load events: {e}"}
    return view.render()


@mcp.tool()
async def show_month() -> dict:
    """Render the current month with selection, preview and event markers."""
    view = _current_view()
    if isinstance(view, dict):
        return view
    return view.render()


@mcp.tool()
async def previous_month() -> dict:
    """Move the grid back one month."""
    view = _current_view()
    if isinstance(view, dict):
        return view
    view.previous_month()
    return view.render()


@mcp.tool()
async def next_month() -> dict:
    """Move the grid forward one month."""
    view = _current_view()
    if isinstance(view, dict):
        return view
    view.next_month()
    return view.render()


@mcp.tool()
async def go_today() -> dict:
    """Show the month containing today."""
    view = _current_view()
    if isinstance(view, dict):
        return view
    view.go_today()
    return view.render()


@mcp.tool()
async def click_day(day: str) -> dict:
    """Click a day in the grid.

    The first click picks a date, the second completes a range (in either
    order), a third starts over. While an event is open, clicking one of its
    endpoints picks that endpoint for moving.

    Args:
        day: Date (ISO 8601, e.g. "2026-02-13")
    """
    view = _current_view()
    if isinstance(view, dict):
        return view
    try:
        parsed = _parse_day(day)
    except (ValueError, OverflowError):
        return {"error": f"Invalid date: {day}"}
    view.click_day(parsed)
    return view.render()


@mcp.tool()
async def hover_day(day: str = "") -> dict:
    """Hover a day to preview the range. Empty clears the preview.

    Args:
        day: Date (ISO 8601) or empty
    """
    view = _current_view()
    if isinstance(view, dict):
        return view
    if day:
        try:
            parsed = _parse_day(day)
        except (ValueError, OverflowError):
            return {"error": f"Invalid date: {day}"}
    else:
        parsed = None
    view.hover_day(parsed)
    return view.render()


@mcp.tool()
async def select_event(event_id: str) -> dict:
    """Open an event for editing.

    Args:
        event_id: Event ID (from the rendered event list)
    """
    view = _current_view()
    if isinstance(view, dict):
        return view
    try:
        view.select_event(event_id)
    except KeyError:
        return {"error": f"Event not found: {event_id}"}
    return view.render()


@mcp.tool()
async def close_selection() -> dict:
    """Clear the selection and the form."""
    view = _current_view()
    if isinstance(view, dict):
        return view
    view.close()
    return view.render()


@mcp.tool()
async def update_form(
    title: str | None = None,
    description: str | None = None,
    start_time: str = "",
    end_time: str = "",
    each_day: bool | None = None,
) -> dict:
    """Fill in the event form. Only provided fields are changed.

    Args:
        title: Event name
        description: Event description
        start_time: Start time (HH:MM, 24h); pushes end time forward if needed
        end_time: End time (HH:MM, 24h); must be after start time
        each_day: Create one event per day of the selected range
    """
    view = _current_view()
    if isinstance(view, dict):
        return view
    err = _apply_form(view, title, description, start_time, end_time, each_day)
    if err:
        return err
    return view.render()


@mcp.tool()
async def submit_event(
    title: str | None = None,
    description: str | None = None,
    start_time: str = "",
    end_time: str = "",
    each_day: bool | None = None,
) -> dict:
    """Create an event for the selected dates, or save the open event.

    Provided fields are applied to the form first. On failure the selection
    and form are kept so the call can be retried.

    Args:
        title: Event name (required, here or via update_form)
        description: Event description (optional)
        start_time: Start time (HH:MM, 24h)
        end_time: End time (HH:MM, 24h)
        each_day: Create one event per day of the selected range
    """
    view = _current_view()
    if isinstance(view, dict):
        return view
    err = _apply_form(view, title, description, start_time, end_time, each_day)
    if err:
        return err

    try:
        saved = await view.submit()
    except FormError as e:
        return {"error": str(e)}
    except PartialCreateError as e:
        return {
            "error": str(e),
            "created": [event_to_dict(ev) for ev in e.created],
            "view": view.render(),
        }
    except ValueError as e:
        return {"error": str(e)}
    except Exception as e:
        logger.warning("Failed to save event: %s", e)
        return {"error": f"Failed to save event: {e}", "view": view.render()}

    return {
        "success": True,
        "events": [event_to_dict(ev) for ev in saved],
        "view": view.render(),
    }


# ---------------------------------------------------------------------------
# Google sign-in helper (rangecal --auth google)
# ---------------------------------------------------------------------------

def _run_google_auth() -> None:
    """Obtain the OAuth token the Google store reads on startup."""
    if _settings.store_type != "google":
        print(
            f"--auth google needs store type 'google' in {CONFIG_PATH}, "
            f"found '{_settings.store_type}'",
            file=sys.stderr,
        )
        sys.exit(1)

    from .backends.google import authorize

    try:
        token_file = authorize(_settings.store)
    except StoreError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    print(
        f"Google token written to {token_file}. Start the server and call sign_in.",
        file=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Entry point for console script and python -m."""
    global _settings, _auth

    _settings = load_config()

    if "--auth" in sys.argv:
        idx = sys.argv.index("--auth")
        provider = sys.argv[idx + 1] if idx + 1 < len(sys.argv) else ""
        if provider != "google":
            print(f"Only --auth google is supported, got: {provider}", file=sys.stderr)
            sys.exit(1)
        _run_google_auth()
        return

    _auth = ConfiguredAuth(_settings.users)
    logger.info(
        "Store: %s, %d user(s) configured", _settings.store_type, len(_settings.users)
    )
    if not _settings.users:
        logger.warning("No users configured; sign_in will fail")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
