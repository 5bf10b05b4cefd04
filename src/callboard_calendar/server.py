#!/usr/bin/env python3
"""
callboard-calendar: conflict and recurrence tools for theater calendars.

Expands recurring events, merges audition signups, callbacks, personal and
production events into one timeline, marks overlaps per day and exports the
result as plain text or CSV.

Environment variables:
    CALLBOARD_CONFIG: path to callboard.yaml (default: /config/callboard.yaml)
"""

import logging
import sys
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from mcp.server.fastmcp import FastMCP

from .adapters import (
    collect_events,
    event_from_record,
    generate_agenda_item_events,
    generate_production_events,
)
from .aggregate import aggregate_events, filter_events_by_audition_id, filter_events_in_range
from .config import CalendarSettings, load_config
from .conflicts import detect_conflicts
from .dates import (
    date_key_in_timezone,
    end_of_day,
    get_timezone,
    localize,
    parse_timestamp,
    start_of_day,
)
from .export import MIME_TYPES, ExportOptions, export_filename, to_csv, to_plain_text
from .models import CalendarEvent, ConflictDay
from .recurrence import expand_recurring_events

# MCP stdio servers must never write to stdout, log to stderr only.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("callboard-calendar")


# ---------------------------------------------------------------------------
# Module-level state
# ---------------------------------------------------------------------------

_settings: CalendarSettings = CalendarSettings()


def _event_to_dict(event: CalendarEvent) -> dict[str, Any]:
    """Convert CalendarEvent to JSON-friendly dict."""
    result: dict[str, Any] = {
        "id": event.id,
        "type": event.type,
        "title": event.title,
        "start": event.start.isoformat(),
        "end": event.end.isoformat(),
        "location": event.location,
        "source_label": event.source_label,
    }
    if event.is_instance:
        result["original_event_id"] = event.original_event_id
        result["instance_date"] = event.instance_date.isoformat() if event.instance_date else None
    return result


def _day_to_dict(day: ConflictDay) -> dict[str, Any]:
    return {
        "date_key": day.date_key,
        "events": [
            {**_event_to_dict(e), "conflict_with_ids": list(e.conflict_with_ids)}
            for e in day.events
        ],
    }


def _parse_window(start: str, end: str, tz_name: str | None = None) -> tuple[datetime, datetime] | dict:
    """Resolve a query window. Returns an error dict on bad input.

    Start defaults to today 00:00, end to the configured horizon. With a
    tz_name, naive bounds (including date-only ones) are read in that zone.
    """
    zone = get_timezone(tz_name)
    if start:
        dt_start = parse_timestamp(start)
        if dt_start is None:
            return {"error": f"Invalid start date: {start}"}
        dt_start = localize(dt_start, tz_name)
    else:
        dt_start = start_of_day(datetime.now(zone))

    if end:
        dt_end = parse_timestamp(end)
        if dt_end is None:
            return {"error": f"Invalid end date: {end}"}
        dt_end = localize(dt_end, tz_name)
        if len(end.strip()) == 10:
            # date-only end covers the whole day
            dt_end = end_of_day(dt_end)
    else:
        dt_end = end_of_day(dt_start + timedelta(days=_settings.window_days))

    try:
        reversed_window = dt_end < dt_start
    except TypeError:
        return {"error": "Start and end must both include a UTC offset or both omit it"}
    if reversed_window:
        return {"error": f"End {end} is before start {start}"}
    return dt_start, dt_end


def _resolve_timezone(timezone: str) -> str | dict:
    tz_name = timezone or _settings.timezone
    if get_timezone(tz_name) is None:
        return {"error": f"Unknown timezone: {tz_name}"}
    return tz_name


def _build_days(
    signups: list[dict] | None,
    callbacks: list[dict] | None,
    personal_events: list[dict] | None,
    production_events: list[dict] | None,
    window: tuple[datetime, datetime],
    tz_name: str,
) -> list[ConflictDay]:
    """Normalize, expand, window and group every source.

    Naive timestamps (production dates, rehearsal times) are read in tz_name.
    """
    dt_start, dt_end = window
    events = [
        replace(e, start=localize(e.start, tz_name), end=localize(e.end, tz_name))
        for e in collect_events(
            signups, callbacks, personal_events, production_events, filters=_settings.sources,
        )
    ]
    events = expand_recurring_events(events, dt_start, dt_end)
    events = filter_events_in_range(events, dt_start, dt_end)
    return detect_conflicts(events, lambda d: date_key_in_timezone(d, tz_name))


# ---------------------------------------------------------------------------
# MCP Server + Tools
# ---------------------------------------------------------------------------

mcp = FastMCP("callboard-calendar")


@mcp.tool()
async def get_settings() -> dict:
    """Show the active export settings (owner name, time zone, sources)."""
    return {
        "user_name": _settings.user_name,
        "timezone": _settings.timezone,
        "include_names": _settings.include_names,
        "window_days": _settings.window_days,
        "sources": dict(_settings.sources),
    }


@mcp.tool()
async def expand_events(
    events: list[dict],
    start: str = "",
    end: str = "",
) -> dict:
    """Expand recurring events into concrete occurrences.

    Non-recurring events are returned as they are. Results are sorted by start.

    Args:
        events: Event dicts with id, type, title, start, end and an optional
            recurrence ({frequency, interval, byDay, byMonthDay, byMonth, until | count}).
        start: Window start (ISO 8601). Default: today 00:00.
        end: Window end (ISO 8601). Default: start + configured window_days.
    """
    window = _parse_window(start, end)
    if isinstance(window, dict):
        return window

    parsed: list[CalendarEvent] = []
    skipped: list[str] = []
    for index, record in enumerate(events):
        event = event_from_record(record)
        if event is None:
            skipped.append(str(record.get("id", f"#{index}")))
            continue
        parsed.append(event)

    expanded = expand_recurring_events(parsed, *window)
    result: dict[str, Any] = {
        "start": window[0].isoformat(),
        "end": window[1].isoformat(),
        "count": len(expanded),
        "events": [_event_to_dict(e) for e in expanded],
    }
    if skipped:
        result["skipped"] = skipped
    return result


@mcp.tool()
async def build_production_calendar(
    user_role: str,
    audition_slots: list[dict] | None = None,
    rehearsal_events: list[dict] | None = None,
    agenda_items: list[dict] | None = None,
    audition_id: str = "",
) -> dict:
    """Build audition slot, rehearsal and agenda item events for a production.

    Args:
        user_role: "cast", "owner" or "production_team". Audition slots are
            only included for owners and production team members.
        audition_slots: Slot rows with nested auditions.shows.
        rehearsal_events: Rehearsal rows (date, start_time, end_time) with nested auditions.shows.
        agenda_items: Agenda rows with a nested rehearsal_event.
        audition_id: Only keep events of this audition (optional).
    """
    try:
        production = generate_production_events(user_role, audition_slots, rehearsal_events)
    except ValueError as e:
        return {"error": str(e)}

    events = aggregate_events([production, generate_agenda_item_events(agenda_items)])
    if audition_id:
        events = filter_events_by_audition_id(events, audition_id)

    return {"count": len(events), "events": [_event_to_dict(e) for e in events]}


@mcp.tool()
async def find_conflicts(
    signups: list[dict] | None = None,
    callbacks: list[dict] | None = None,
    personal_events: list[dict] | None = None,
    production_events: list[dict] | None = None,
    start: str = "",
    end: str = "",
    timezone: str = "",
) -> dict:
    """Merge all sources into one timeline and list overlapping events per day.

    Args:
        signups: Audition signup rows (nested audition_slots).
        callbacks: Callback invitation rows (nested callback_slots).
        personal_events: Personal event rows, optionally recurring.
        production_events: Production rows (type, title, date or start_time/end_time).
        start: Window start (ISO 8601). Default: today 00:00.
        end: Window end (ISO 8601). Default: start + configured window_days.
        timezone: IANA zone used to bucket events into days. Default: configured timezone.
    """
    tz_name = _resolve_timezone(timezone)
    if isinstance(tz_name, dict):
        return tz_name
    window = _parse_window(start, end, tz_name)
    if isinstance(window, dict):
        return window

    days = _build_days(signups, callbacks, personal_events, production_events, window, tz_name)
    conflicts = sum(1 for day in days for e in day.events if e.conflict_with_ids)
    return {
        "timezone": tz_name,
        "day_count": len(days),
        "event_count": sum(len(day.events) for day in days),
        "conflicting_event_count": conflicts,
        "days": [_day_to_dict(day) for day in days],
    }


@mcp.tool()
async def export_conflicts(
    signups: list[dict] | None = None,
    callbacks: list[dict] | None = None,
    personal_events: list[dict] | None = None,
    production_events: list[dict] | None = None,
    start: str = "",
    end: str = "",
    timezone: str = "",
    format: str = "text",
    include_names: bool | None = None,
) -> dict:
    """Export the conflict list as plain text or CSV.

    Args:
        signups, callbacks, personal_events, production_events: As for find_conflicts.
        start: Window start (ISO 8601). Default: today 00:00.
        end: Window end (ISO 8601). Default: start + configured window_days.
        timezone: IANA zone for day headings and times. Default: configured timezone.
        format: "text" or "csv".
        include_names: Show event titles. False replaces every title with "Busy".
            Default: configured include_names.
    """
    if format not in MIME_TYPES:
        return {"error": f"Unknown format '{format}'. Must be one of: {sorted(MIME_TYPES)}"}

    tz_name = _resolve_timezone(timezone)
    if isinstance(tz_name, dict):
        return tz_name
    window = _parse_window(start, end, tz_name)
    if isinstance(window, dict):
        return window

    days = _build_days(signups, callbacks, personal_events, production_events, window, tz_name)
    options = ExportOptions(
        include_names=_settings.include_names if include_names is None else include_names,
        user_name=_settings.user_name,
        timezone=tz_name,
    )
    content = to_csv(days, options) if format == "csv" else to_plain_text(days, options)

    return {
        "format": format,
        "filename": export_filename(format, _settings.user_name),
        "mime_type": MIME_TYPES[format],
        "content": content,
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Entry point for console script and python -m."""
    global _settings

    _settings = load_config()
    logger.info(
        "Loaded settings for '%s' (timezone=%s, window=%d days)",
        _settings.user_name, _settings.timezone, _settings.window_days,
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
