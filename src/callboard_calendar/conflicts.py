"""Per-day grouping and pairwise overlap detection."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable

from .dates import align, sort_key
from .models import CalendarEvent, ConflictDay

DateKeyFn = Callable[[datetime], str]


def time_ranges_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open overlap test. Touching ranges do not overlap."""
    return start1 < align(end2, start1) and align(start2, end1) < end1


def group_events_by_date_key(
    events: list[CalendarEvent],
    date_key_of: DateKeyFn,
) -> dict[str, list[CalendarEvent]]:
    """Bucket events by the date key of their start, in first-seen order."""
    grouped: dict[str, list[CalendarEvent]] = {}
    for event in events:
        grouped.setdefault(date_key_of(event.start), []).append(event)
    return grouped


def _date_key_order(key: str) -> tuple[int, int, int, int]:
    # Keys like "2024-1-9" must not be compared as strings
    parts = key.split("-")
    try:
        year = int(parts[0])
        month = int(parts[1]) if len(parts) > 1 and parts[1] else 1
        day = int(parts[2]) if len(parts) > 2 and parts[2] else 1
    except ValueError:
        return (1, 0, 0, 0)
    return (0, year, month, day)


def detect_conflicts(events: list[CalendarEvent], date_key_of: DateKeyFn) -> list[ConflictDay]:
    """Group events into days and mark overlapping pairs within each day.

    Returned events are copies carrying ``conflict_with_ids``; the input
    events are left untouched. Days are ordered chronologically by the
    numeric value of their key.
    """
    grouped = group_events_by_date_key(events, date_key_of)
    days: list[ConflictDay] = []

    for date_key in sorted(grouped, key=_date_key_order):
        ordered = sorted(grouped[date_key], key=lambda e: sort_key(e.start))

        conflict_with: dict[str, list[str]] = {}
        for i, first in enumerate(ordered):
            for second in ordered[i + 1:]:
                if not time_ranges_overlap(first.start, first.end, second.start, second.end):
                    continue
                a = conflict_with.setdefault(first.id, [])
                b = conflict_with.setdefault(second.id, [])
                if second.id not in a:
                    a.append(second.id)
                if first.id not in b:
                    b.append(first.id)

        annotated = [replace(e, conflict_with_ids=list(conflict_with.get(e.id, []))) for e in ordered]
        if annotated:
            days.append(ConflictDay(date_key=date_key, events=annotated))

    return days
