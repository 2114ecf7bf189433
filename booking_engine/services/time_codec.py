"""Conversion between 12-hour slot labels ("5:00 PM") and minutes since midnight."""
import re

from booking_engine.core.errors import MalformedSlotLabel

MINUTES_PER_DAY = 24 * 60

_LABEL_RE = re.compile(r"^(0?[1-9]|1[0-2]):([0-5][0-9]) ?(AM|PM)$", re.IGNORECASE)


def label_to_minutes(label: str) -> int:
    if not isinstance(label, str):
        raise MalformedSlotLabel(label)
    match = _LABEL_RE.match(label.strip())
    if not match:
        raise MalformedSlotLabel(label)
    hour = int(match.group(1)) % 12  # 12 AM -> 0, 12 PM -> 0 + 720
    minute = int(match.group(2))
    if match.group(3).upper() == "PM":
        hour += 12
    return hour * 60 + minute


def minutes_to_label(minutes: int) -> str:
    """Canonical label for a minute-of-day, e.g. 1020 -> "5:00 PM"."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise MalformedSlotLabel(minutes)
    hour, minute = divmod(minutes, 60)
    meridiem = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {meridiem}"


def normalize_label(label: str) -> str:
    return minutes_to_label(label_to_minutes(label))
