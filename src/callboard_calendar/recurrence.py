"""Recurrence expansion for repeating calendar events."""

from __future__ import annotations

import calendar
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from dateutil import rrule

from .aggregate import aggregate_events
from .dates import align, epoch_millis
from .models import CalendarEvent, RecurrenceRule

logger = logging.getLogger("callboard-calendar")

FREQUENCIES = {
    "DAILY": rrule.DAILY,
    "WEEKLY": rrule.WEEKLY,
    "MONTHLY": rrule.MONTHLY,
    "YEARLY": rrule.YEARLY,
}

WEEKDAYS = {
    "MO": rrule.MO,
    "TU": rrule.TU,
    "WE": rrule.WE,
    "TH": rrule.TH,
    "FR": rrule.FR,
    "SA": rrule.SA,
    "SU": rrule.SU,
}


def _weekdays(codes: list[Any]) -> list[rrule.weekday]:
    """Map day codes to rrule weekdays, dropping anything unrecognised."""
    days = []
    for code in codes:
        day = WEEKDAYS.get(code.strip().upper()) if isinstance(code, str) else None
        if day is not None:
            days.append(day)
    return days


# longest month lengths, February in a leap year
_MONTH_DAYS = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def _leap_february_reachable(freq: int, interval: int, dtstart: datetime) -> bool:
    if freq == rrule.YEARLY:
        return any(calendar.isleap(dtstart.year + interval * n) for n in range(400))
    if freq == rrule.MONTHLY:
        first = dtstart.year * 12 + dtstart.month - 1
        for n in range(4800):
            year, month = divmod(first + interval * n, 12)
            if month == 1 and calendar.isleap(year):
                return True
        return False
    return True


def _check_reachable(
    freq: int,
    interval: int,
    dtstart: datetime,
    byweekday: list[rrule.weekday],
    bymonthday: list[int],
    bymonth: list[int],
) -> None:
    """Raise ValueError when no date can ever satisfy the rule.

    dateutil only stops searching at datetime.MAXYEAR, so an impossible
    rule such as February 30th would otherwise scan for thousands of years.
    """
    months = set(range(1, 13))
    if bymonth:
        months &= set(bymonth)
        if not months:
            raise ValueError(f"No valid month in {bymonth!r}")
    if freq == rrule.MONTHLY:
        months &= {(dtstart.month - 1 + interval * n) % 12 + 1 for n in range(12)}
    elif freq == rrule.YEARLY and not (bymonth or bymonthday or byweekday):
        months &= {dtstart.month}
    if not months:
        raise ValueError("Recurrence can never occur: no reachable month")

    if freq == rrule.DAILY and interval % 7 == 0 and byweekday:
        if all(day.weekday != dtstart.weekday() for day in byweekday):
            raise ValueError("Recurrence can never occur: interval skips every listed weekday")

    days = list(bymonthday)
    if not days and not byweekday and freq in (rrule.MONTHLY, rrule.YEARLY):
        days = [dtstart.day]
    if not days:
        return

    pairs = [(m, d) for m in months for d in days if 1 <= abs(d) <= _MONTH_DAYS[m - 1]]
    if not pairs:
        raise ValueError(f"Recurrence can never occur: no month has day(s) {days!r}")
    if all(m == 2 and abs(d) == 29 for m, d in pairs):
        if not _leap_february_reachable(freq, interval, dtstart):
            raise ValueError("Recurrence can never occur: never lands in a leap February")


def build_rrule(rule: RecurrenceRule, dtstart: datetime) -> rrule.rrule:
    """Build a dateutil rrule anchored at dtstart.

    Raises ValueError for an unknown frequency, a non-positive interval or
    a rule no date can ever satisfy.
    """
    freq = FREQUENCIES.get(str(rule.frequency).strip().upper())
    if freq is None:
        raise ValueError(f"Unknown frequency: {rule.frequency!r}")

    interval = int(rule.interval or 1)
    if interval < 1:
        raise ValueError(f"Invalid interval: {rule.interval!r}")

    options: dict[str, Any] = {"interval": interval, "dtstart": dtstart}

    # until and count are exclusive; until wins
    if rule.until is not None:
        options["until"] = align(rule.until, dtstart)
    elif rule.count:
        options["count"] = int(rule.count)

    byweekday = _weekdays(rule.by_day)
    bymonthday = [int(d) for d in rule.by_month_day]
    bymonth = [int(m) for m in rule.by_month]
    _check_reachable(freq, interval, dtstart, byweekday, bymonthday, bymonth)

    if byweekday:
        options["byweekday"] = byweekday
    if bymonthday:
        options["bymonthday"] = bymonthday
    if bymonth:
        options["bymonth"] = bymonth

    return rrule.rrule(freq, **options)


def expand_recurring_event(
    event: CalendarEvent,
    window_start: datetime,
    window_end: datetime,
) -> list[CalendarEvent]:
    """Expand a recurring event into its occurrences inside the window.

    Non-recurring events come back unchanged as ``[event]`` whatever the
    window. A rule that can't be expanded is logged and the base event is
    returned on its own so one bad record never breaks a calendar render.
    Both window bounds are inclusive.
    """
    if event.recurrence is None:
        return [event]

    duration = event.end - event.start

    try:
        rule = build_rrule(event.recurrence, event.start)
        occurrences = rule.between(
            align(window_start, event.start),
            align(window_end, event.start),
            inc=True,
        )
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning("Could not expand recurring event '%s': %s", event.id, e)
        return [event]

    logger.debug(
        "Expanded '%s' into %d occurrence(s) between %s and %s",
        event.id, len(occurrences), window_start, window_end,
    )

    return [
        replace(
            event,
            id=f"{event.id}_{epoch_millis(occurrence)}",
            start=occurrence,
            end=occurrence + duration,
            is_instance=True,
            original_event_id=event.id,
            instance_date=occurrence,
            conflict_with_ids=[],
        )
        for occurrence in occurrences
    ]


def expand_recurring_events(
    events: list[CalendarEvent],
    window_start: datetime,
    window_end: datetime,
) -> list[CalendarEvent]:
    """Expand every event in the list and return them sorted by start."""
    return aggregate_events(
        [expand_recurring_event(event, window_start, window_end) for event in events]
    )
