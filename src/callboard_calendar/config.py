"""YAML configuration loading for calendar exports."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

import yaml

from .adapters import SOURCE_FILTERS
from .dates import get_timezone

logger = logging.getLogger("callboard-calendar")

CONFIG_PATH = os.environ.get("CALLBOARD_CONFIG", "/config/callboard.yaml")

DEFAULT_WINDOW_DAYS = 90


@dataclass
class CalendarSettings:
    """Export and expansion settings for one calendar owner."""

    user_name: str = "User"
    timezone: str = "UTC"
    include_names: bool = True
    window_days: int = DEFAULT_WINDOW_DAYS  # recurrence expansion horizon
    sources: dict[str, bool] = field(default_factory=lambda: {s: True for s in SOURCE_FILTERS})


def load_config() -> CalendarSettings:
    """Load and validate callboard.yaml.

    Returns defaults when the file is missing or empty.
    """
    path = CONFIG_PATH
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return CalendarSettings()

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    if not raw:
        logger.warning("Empty config file: %s", path)
        return CalendarSettings()
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path}: expected a mapping at top level")

    settings = CalendarSettings()

    user_name = str(raw.get("user_name", settings.user_name)).strip()
    if not user_name:
        raise ValueError("'user_name' must not be empty")
    settings.user_name = user_name

    tz_name = str(raw.get("timezone", settings.timezone)).strip()
    if get_timezone(tz_name) is None:
        raise ValueError(f"Unknown timezone '{tz_name}'")
    settings.timezone = tz_name

    include_names = raw.get("include_names", settings.include_names)
    if not isinstance(include_names, bool):
        raise ValueError(f"'include_names' must be true or false, got {include_names!r}")
    settings.include_names = include_names

    window_days = raw.get("window_days", settings.window_days)
    if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days < 1:
        raise ValueError(f"'window_days' must be a positive integer, got {window_days!r}")
    settings.window_days = window_days

    # Source toggles: only the known sources, booleans only
    sources = raw.get("sources") or {}
    if not isinstance(sources, dict):
        raise ValueError("'sources' must be a mapping")
    for name, enabled in sources.items():
        if name not in SOURCE_FILTERS:
            raise ValueError(f"Unknown source '{name}'. Must be one of: {list(SOURCE_FILTERS)}")
        if not isinstance(enabled, bool):
            raise ValueError(f"Source '{name}': expected true or false, got {enabled!r}")
        settings.sources[name] = enabled

    return settings
