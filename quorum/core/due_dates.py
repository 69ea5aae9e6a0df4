"""Due-date parsing for action due labels like "Tomorrow 3 PM" or "2026-11-02"."""

import re
from datetime import datetime, timedelta

TIME_PATTERN = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*(AM|PM)", re.IGNORECASE)

DATE_FORMATS = [
    "%b %d, %Y",  # Nov 2, 2026
    "%B %d, %Y",  # November 2, 2026
    "%m/%d/%Y",
    "%d %b %Y",
]


def apply_time_from_label(base: datetime, label: str) -> datetime:
    """Set the clock time from an ``H[:MM] AM|PM`` fragment, if present."""
    match = TIME_PATTERN.search(label)
    if not match:
        return base

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    if hour > 12 or minute > 59:
        return base

    hour = hour % 12 + (12 if match.group(3).upper() == "PM" else 0)
    return base.replace(hour=hour, minute=minute, second=0, microsecond=0)


def parse_due_at(label: str, now: datetime, default_hour: int = 9) -> datetime | None:
    """
    Resolve a due label to a timestamp.

    "today" and "tomorrow" resolve relative to ``now`` at ``default_hour``
    unless the label names a time. Absolute dates are accepted in ISO form and
    a few common written forms. Anything else resolves to None.
    """
    normalized = label.strip()
    lower = normalized.lower()
    if not normalized or lower == "no due date":
        return None

    start_of_day = now.replace(hour=default_hour, minute=0, second=0, microsecond=0)
    if "today" in lower:
        return apply_time_from_label(start_of_day, normalized)
    if "tomorrow" in lower:
        return apply_time_from_label(start_of_day + timedelta(days=1), normalized)

    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(normalized, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None

    # Stored timestamps are naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - (parsed.utcoffset() or timedelta(0))
    return parsed


def is_due_soon_date(value: datetime | None, now: datetime, window: timedelta) -> bool:
    if value is None:
        return False
    diff = value - now
    return timedelta(0) <= diff <= window


def is_due_soon_label(label: str) -> bool:
    lower = label.lower()
    return "today" in lower or "tomorrow" in lower


def format_due_label(value: datetime) -> str:
    """Short label for an explicit due timestamp: "Nov 2" or "Nov 2, 3:30 PM"."""
    label = f"{value:%b} {value.day}"
    if value.hour or value.minute:
        hour = value.hour % 12 or 12
        label = f"{label}, {hour}:{value:%M} {value:%p}"
    return label
