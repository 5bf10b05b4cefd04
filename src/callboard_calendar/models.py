"""Event types shared by the expansion, conflict and export layers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from .dates import parse_timestamp

logger = logging.getLogger("callboard-calendar")

EVENT_TYPES = {
    "audition_signup",
    "callback",
    "personal_event",
    "audition_slot",
    "rehearsal_event",
    "production_event",
    "other",
}


def coerce_event_type(value: Any) -> str:
    """Map a raw type tag into the closed set, falling back to 'other'."""
    tag = str(value or "").strip().lower()
    return tag if tag in EVENT_TYPES else "other"


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    if isinstance(value, str):
        # legacy rows store "MO,WE" or "1,15"
        return [part.strip() for part in value.split(",") if part.strip()]
    return [value]


@dataclass
class RecurrenceRule:
    """Recurrence metadata attached to a repeating event."""

    frequency: str  # DAILY, WEEKLY, MONTHLY, YEARLY
    interval: int = 1
    by_day: list[str] = field(default_factory=list)  # MO, TU, ...
    by_month_day: list[int] = field(default_factory=list)
    by_month: list[int] = field(default_factory=list)
    until: datetime | None = None
    count: int | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RecurrenceRule:
        """Build a rule from a stored record (camelCase or snake_case keys)."""
        until = None
        raw_until = raw.get("until")
        if raw_until:
            until = parse_timestamp(raw_until)
            if until is None:
                logger.warning("Ignoring unparseable recurrence 'until': %r", raw_until)

        return cls(
            frequency=str(raw.get("frequency", "")),
            interval=raw.get("interval") or 1,
            by_day=_as_list(raw.get("byDay", raw.get("by_day"))),
            by_month_day=_as_list(raw.get("byMonthDay", raw.get("by_month_day"))),
            by_month=_as_list(raw.get("byMonth", raw.get("by_month"))),
            until=until,
            count=raw.get("count"),
        )


@dataclass
class CalendarEvent:
    """Unified event representation across signups, callbacks and productions."""

    id: str
    type: str
    title: str
    start: datetime
    end: datetime  # exclusive
    location: str | None = None
    source_label: str | None = None
    description: str = ""
    audition_id: str | None = None
    recurrence: RecurrenceRule | None = None
    # Set on occurrences produced by recurrence expansion
    is_instance: bool = False
    original_event_id: str | None = None
    instance_date: datetime | None = None
    # Set on the copies returned by conflict detection
    conflict_with_ids: list[str] = field(default_factory=list)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflict_with_ids)


@dataclass
class ConflictDay:
    """One calendar day and its events, annotated with overlapping ids."""

    date_key: str
    events: list[CalendarEvent] = field(default_factory=list)
