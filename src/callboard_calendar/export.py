"""Plain-text and CSV rendering of conflict-annotated days."""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .dates import format_date_heading, format_us_date_long, format_us_time, sort_key
from .models import ConflictDay

BUSY = "Busy"
NO_EVENTS_MESSAGE = "No events found for the current filters."

CSV_HEADER = ["Date", "Start", "End", "Title", "Type", "Conflicts With (count)"]

MIME_TYPES = {
    "text": "text/plain;charset=utf-8",
    "csv": "text/csv;charset=utf-8",
}
EXTENSIONS = {"text": "txt", "csv": "csv"}


@dataclass
class ExportOptions:
    """Rendering options. Formatters default to US style in ``timezone``."""

    include_names: bool = True
    user_name: str = "User"
    timezone: str = "UTC"
    format_date_heading: Callable[[str], str] | None = None
    format_date: Callable[[datetime], str] | None = None
    format_time: Callable[[datetime], str] | None = None

    def heading(self, date_key: str) -> str:
        if self.format_date_heading is not None:
            return self.format_date_heading(date_key)
        return format_date_heading(date_key)

    def date(self, value: datetime) -> str:
        if self.format_date is not None:
            return self.format_date(value)
        return format_us_date_long(value, self.timezone)

    def time(self, value: datetime) -> str:
        if self.format_time is not None:
            return self.format_time(value)
        return format_us_time(value, self.timezone)


def to_plain_text(days: list[ConflictDay], options: ExportOptions | None = None) -> str:
    """Render days as a shareable plain-text conflict list."""
    opts = options or ExportOptions()
    lines = [
        f"{opts.user_name} — Conflicts",
        f"Time Zone: {opts.timezone}",
        "",
    ]

    if not days:
        lines.append(NO_EVENTS_MESSAGE)
        return "\n".join(lines)

    for day in days:
        lines.append(opts.heading(day.date_key))
        for event in sorted(day.events, key=lambda e: sort_key(e.start)):
            start = opts.time(event.start)
            end = opts.time(event.end)
            marker = " (conflict)" if event.conflict_with_ids else ""
            if opts.include_names:
                lines.append(f"- {start} - {end}  {event.title}{marker}")
            else:
                lines.append(f"- {BUSY} from {start} to {end}{marker}")
        lines.append("")

    return "\n".join(lines)


def to_csv(days: list[ConflictDay], options: ExportOptions | None = None) -> str:
    """Render days as CSV, one row per event."""
    opts = options or ExportOptions()
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for day in days:
        for event in day.events:
            writer.writerow([
                opts.date(event.start),
                opts.time(event.start),
                opts.time(event.end),
                event.title if opts.include_names else BUSY,
                event.type,
                str(len(event.conflict_with_ids)),
            ])

    return buf.getvalue()


def export_filename(fmt: str, user_name: str = "User") -> str:
    """Download filename for an export, e.g. 'jane-smith-conflicts.csv'."""
    if fmt not in EXTENSIONS:
        raise ValueError(f"Unknown export format '{fmt}'. Must be one of: {sorted(EXTENSIONS)}")
    slug = re.sub(r"[^a-z0-9]+", "-", user_name.lower()).strip("-") or "user"
    return f"{slug}-conflicts.{EXTENSIONS[fmt]}"
