"""Merging per-source event lists into one timeline."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from .dates import align, sort_key
from .models import CalendarEvent


def aggregate_events(groups: Iterable[Iterable[CalendarEvent]]) -> list[CalendarEvent]:
    """Flatten event lists and sort them by start.

    The sort is stable: events with the same start keep their input order.
    """
    merged = [event for group in groups for event in group]
    merged.sort(key=lambda e: sort_key(e.start))
    return merged


def filter_events_in_range(
    events: list[CalendarEvent],
    window_start: datetime,
    window_end: datetime,
) -> list[CalendarEvent]:
    """Keep events that touch the inclusive window [window_start, window_end]."""
    return [
        e for e in events
        if e.start <= align(window_end, e.start) and e.end >= align(window_start, e.end)
    ]


def filter_events_by_audition_id(events: list[CalendarEvent], audition_id: str) -> list[CalendarEvent]:
    return [e for e in events if e.audition_id == audition_id]
