"""Adapters from stored records to CalendarEvent.

Each source (audition signups, callbacks, personal events, production
records) has its own nesting and column names. Everything source-specific
stays in this module so the expansion and conflict code only ever sees
CalendarEvent.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from .aggregate import aggregate_events
from .dates import align, end_of_day, epoch_millis, parse_local_date, parse_timestamp, start_of_day
from .models import CalendarEvent, RecurrenceRule, coerce_event_type

logger = logging.getLogger("callboard-calendar")

DEFAULT_DURATION = timedelta(hours=1)

USER_ROLES = {"cast", "owner", "production_team"}

SOURCE_FILTERS = ("audition_signups", "callbacks", "personal_events")


def _fallback_id(prefix: str, start: datetime, index: int) -> str:
    return f"{prefix}-{epoch_millis(start)}-{index}"


def _event_id(prefix: str, record_id: Any, fallback_prefix: str, start: datetime, index: int) -> str:
    if record_id:
        return f"{prefix}-{record_id}"
    return _fallback_id(fallback_prefix, start, index)


def _show_title(audition: dict[str, Any] | None, default: str) -> str:
    shows = (audition or {}).get("shows") or {}
    return shows.get("title") or default


def _slot_event(
    record: dict[str, Any],
    index: int,
    slot_key: str,
    id_key: str,
    event_type: str,
    id_prefix: str,
    label: str,
) -> CalendarEvent | None:
    slot = record.get(slot_key) or {}
    start = parse_timestamp(slot.get("start_time"))
    end = parse_timestamp(slot.get("end_time"))
    if start is None or end is None:
        logger.debug("Skipping %s without slot times: %r", event_type, record.get(id_key))
        return None

    audition = slot.get("auditions") or {}
    record_id = record.get(id_key)
    return CalendarEvent(
        id=f"{id_prefix}-{record_id}" if record_id else _fallback_id(id_prefix, start, index),
        type=event_type,
        title=f"{_show_title(audition, label)} - {label}",
        start=start,
        end=end,
        location=slot.get("location") or audition.get("audition_location") or None,
        source_label=slot_key,
        audition_id=audition.get("audition_id"),
    )


def events_from_signups(signups: list[dict[str, Any]] | None) -> list[CalendarEvent]:
    """Audition signups, each nested under its audition slot."""
    events = []
    for index, signup in enumerate(signups or []):
        event = _slot_event(
            signup, index, "audition_slots", "signup_id",
            "audition_signup", "audition-signup", "Audition",
        )
        if event is not None:
            events.append(event)
    return events


def events_from_callbacks(callbacks: list[dict[str, Any]] | None) -> list[CalendarEvent]:
    """Callback invitations, each nested under its callback slot."""
    events = []
    for index, invitation in enumerate(callbacks or []):
        event = _slot_event(
            invitation, index, "callback_slots", "invitation_id",
            "callback", "callback", "Callback",
        )
        if event is not None:
            # callback slots carry their own location only
            event.location = (invitation.get("callback_slots") or {}).get("location") or None
            events.append(event)
    return events


def _recurrence(record: dict[str, Any]) -> RecurrenceRule | None:
    raw = record.get("recurrence_rule") or record.get("recurrenceRule")
    recurring = record.get("is_recurring", record.get("isRecurring", bool(raw)))
    if not recurring or not isinstance(raw, dict):
        return None
    return RecurrenceRule.from_dict(raw)


def events_from_personal_events(personal_events: list[dict[str, Any]] | None) -> list[CalendarEvent]:
    """Personal events. All-day entries span the whole start day."""
    events = []
    for index, record in enumerate(personal_events or []):
        start = parse_timestamp(record.get("start_time") or record.get("start"))
        if start is None:
            logger.debug("Skipping personal event without start: %r", record.get("id"))
            continue

        raw_end = record.get("end_time") or record.get("end")
        all_day = bool(record.get("all_day", record.get("allDay")))

        if all_day:
            start = start_of_day(start)
            end = end_of_day(start)
        else:
            end = parse_timestamp(raw_end) if raw_end else start
            if end is None:
                logger.debug("Skipping personal event with bad end: %r", record.get("id"))
                continue
            end = align(end, start)
            if end <= start:
                end = start + DEFAULT_DURATION

        record_id = record.get("id")
        events.append(CalendarEvent(
            id=f"personal-{record_id}" if record_id else _fallback_id("personal", start, index),
            type="personal_event",
            title=record.get("title") or "Personal Event",
            start=start,
            end=end,
            location=record.get("location") or None,
            source_label="personal_events",
            description=record.get("description") or "",
            recurrence=_recurrence(record),
        ))
    return events


def events_from_production_records(records: list[dict[str, Any]] | None) -> list[CalendarEvent]:
    """Production calendar entries (slots, rehearsals, performances, agenda items)."""
    events = []
    for index, record in enumerate(records or []):
        timed = record.get("start_time") is not None
        start = parse_timestamp(record.get("start_time") if timed else record.get("date"))
        if start is None:
            logger.debug("Skipping production record without a date: %r", record.get("title"))
            continue

        if record.get("end_time") is not None:
            end = parse_timestamp(record.get("end_time"))
            if end is None:
                continue
        elif timed:
            end = start + DEFAULT_DURATION
        else:
            end = end_of_day(start)

        record_id = (
            record.get("production_event_id")
            or record.get("event_id")
            or record.get("slot_id")
        )
        event_type = coerce_event_type(record.get("type"))
        events.append(CalendarEvent(
            id=f"prod-{record_id}" if record_id else _fallback_id(f"prod-{event_type}", start, index),
            type=event_type,
            title=record.get("title") or "Production Event",
            start=start,
            end=end,
            location=record.get("location") or None,
            source_label=record.get("type") or "production",
            audition_id=record.get("audition_id"),
        ))
    return events


def event_from_record(record: dict[str, Any]) -> CalendarEvent | None:
    """Build an event from an already event-shaped dict. None if unusable."""
    start = parse_timestamp(record.get("start"))
    end = parse_timestamp(record.get("end"))
    if start is None or end is None:
        return None

    raw_rule = record.get("recurrence") or record.get("recurrence_rule")
    return CalendarEvent(
        id=str(record.get("id") or _fallback_id("event", start, 0)),
        type=coerce_event_type(record.get("type")),
        title=record.get("title") or "",
        start=start,
        end=end,
        location=record.get("location") or None,
        source_label=record.get("source_label"),
        description=record.get("description") or "",
        audition_id=record.get("audition_id"),
        recurrence=RecurrenceRule.from_dict(raw_rule) if isinstance(raw_rule, dict) else None,
    )


# ---------------------------------------------------------------------------
# Production calendar generation
# ---------------------------------------------------------------------------

def _at_time(day: datetime, hhmm: str) -> datetime:
    hours, minutes = hhmm.split(":")[:2]
    return day.replace(hour=int(hours), minute=int(minutes), second=0, microsecond=0)


def generate_production_events(
    user_role: str,
    audition_slots: list[dict[str, Any]] | None = None,
    rehearsal_events: list[dict[str, Any]] | None = None,
) -> list[CalendarEvent]:
    """Audition slot and rehearsal events for a production member.

    Audition slots are only shown to owners and production team members.
    Rehearsal dates are local 'YYYY-MM-DD' with 'HH:MM' start/end times.
    """
    if user_role not in USER_ROLES:
        raise ValueError(f"Unknown user role '{user_role}'. Must be one of: {sorted(USER_ROLES)}")

    events: list[CalendarEvent] = []

    if user_role in ("owner", "production_team"):
        for index, slot in enumerate(audition_slots or []):
            audition = slot.get("auditions") or {}
            start = parse_timestamp(slot.get("start_time"))
            end = parse_timestamp(slot.get("end_time"))
            if not audition.get("shows") or start is None or end is None:
                logger.warning("Skipping audition slot without show or times: %r", slot.get("slot_id"))
                continue
            events.append(CalendarEvent(
                id=_event_id("prod", slot.get("slot_id"), "prod-audition_slot", start, index),
                type="audition_slot",
                title=f"{_show_title(audition, 'Audition')} - Audition Slot",
                start=start,
                end=end,
                location=slot.get("location") or None,
                source_label="audition_slot",
                audition_id=audition.get("audition_id"),
            ))

    for index, rehearsal in enumerate(rehearsal_events or []):
        audition = rehearsal.get("auditions") or {}
        if not audition.get("shows"):
            continue
        try:
            day = parse_local_date(rehearsal["date"])
            start = _at_time(day, rehearsal["start_time"])
            end = _at_time(day, rehearsal["end_time"])
        except (KeyError, ValueError, AttributeError) as e:
            logger.warning("Skipping rehearsal event %r: %s", rehearsal.get("rehearsal_events_id"), e)
            continue
        events.append(CalendarEvent(
            id=_event_id("prod", rehearsal.get("rehearsal_events_id"), "prod-rehearsal_event", start, index),
            type="rehearsal_event",
            title=f"{_show_title(audition, 'Production')} - Rehearsal",
            start=start,
            end=end,
            location=rehearsal.get("location") or None,
            source_label="rehearsal_event",
            audition_id=audition.get("audition_id"),
        ))

    return events


def generate_agenda_item_events(agenda_items: list[dict[str, Any]] | None) -> list[CalendarEvent]:
    """One event per rehearsal agenda item, timed on its rehearsal's date."""
    events: list[CalendarEvent] = []
    for index, item in enumerate(agenda_items or []):
        rehearsal = item.get("rehearsal_event") or {}
        audition = rehearsal.get("auditions") or {}
        if not audition.get("shows"):
            continue
        try:
            day = parse_local_date(rehearsal["date"])
            start = _at_time(day, item["start_time"])
            end = _at_time(day, item["end_time"])
        except (KeyError, ValueError, AttributeError) as e:
            logger.warning("Skipping agenda item %r: %s", item.get("rehearsal_agenda_items_id"), e)
            continue
        events.append(CalendarEvent(
            id=_event_id("agenda", item.get("rehearsal_agenda_items_id"), "agenda", start, index),
            type="other",
            title=f"{_show_title(audition, 'Production')} - {item.get('title') or 'Agenda Item'}",
            start=start,
            end=end,
            location=rehearsal.get("location") or None,
            source_label="agenda_item",
            description=item.get("description") or "",
            audition_id=audition.get("audition_id"),
        ))
    return events


def collect_events(
    signups: list[dict[str, Any]] | None = None,
    callbacks: list[dict[str, Any]] | None = None,
    personal_events: list[dict[str, Any]] | None = None,
    production_events: list[dict[str, Any]] | None = None,
    filters: dict[str, bool] | None = None,
) -> list[CalendarEvent]:
    """Normalize every enabled source and merge them into one sorted list.

    Production records are always included; the other sources can be
    switched off in ``filters``.
    """
    filters = filters or {}
    groups = []
    if filters.get("audition_signups", True):
        groups.append(events_from_signups(signups))
    if filters.get("callbacks", True):
        groups.append(events_from_callbacks(callbacks))
    if filters.get("personal_events", True):
        groups.append(events_from_personal_events(personal_events))
    groups.append(events_from_production_records(production_events))
    return aggregate_events(groups)
