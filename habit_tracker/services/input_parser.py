"""
Smart input parser.
Turns free text like "9am workout" or "2:30 pm team meeting" into a
description plus an optional 24h time, and parses logged values such as
"2h 30m" or "7:30 am" into numbers.

Parsing never raises: input without a recognizable time is returned whole as
the description with has_time=False.
"""
import re
from dataclasses import dataclass
from typing import Optional

from habit_tracker.constants import HabitType
from habit_tracker.shared.formatting import format_time_12h

# Precedence matters: 12-hour forms first, then 24h "H:MM", then a bare hour.
_AMPM_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)\s+(.+)$", re.IGNORECASE)
_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})\s+(.+)$")
_HOUR_RE = re.compile(r"^(\d{1,2})\s+(.+)$")

_CLOCK_VALUE_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$", re.IGNORECASE)
_DURATION_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*h", re.IGNORECASE)
_DURATION_MINUTES_RE = re.compile(r"(\d+)\s*m", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$")


@dataclass(frozen=True)
class ParsedInput:
    description: str
    time: Optional[str] = None
    has_time: bool = False


def parse_smart_input(text: str) -> ParsedInput:
    """
    Parse a plan entry into description and time.

    Examples:
        "9am workout"         -> ParsedInput("workout", "09:00", True)
        "2:30 pm team meeting" -> ParsedInput("team meeting", "14:30", True)
        "14:30 standup"       -> ParsedInput("standup", "14:30", True)
        "call mom"            -> ParsedInput("call mom", None, False)
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return ParsedInput(description="")

    for matcher in (_match_ampm, _match_hhmm, _match_hour):
        result = matcher(trimmed)
        if result is not None:
            return result

    return ParsedInput(description=trimmed)


def format_smart_time(time_str: str) -> str:
    """Inverse of the time part of parse_smart_input: "14:30" -> "2:30 PM" """
    return format_time_12h(time_str)


def parse_value(text: str, habit_type: HabitType) -> Optional[float]:
    """
    Parse a logged value for a habit type.

    Schedule: clock time ("7:30", "7:30 am", "7pm") -> fractional hour of day
    Duration: "2h 30m", "90m", "1.5h" or a bare number of hours -> hours
    Quantity: a plain number

    Returns:
        The numeric value, or None if the text cannot be parsed
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return None

    if habit_type == HabitType.SCHEDULE:
        return _parse_clock_value(trimmed)
    if habit_type == HabitType.DURATION:
        return _parse_duration_value(trimmed)
    if habit_type == HabitType.QUANTITY:
        return float(trimmed) if _NUMBER_RE.match(trimmed) else None
    return None


# ===== Pattern matchers =====

def _match_ampm(text: str) -> Optional[ParsedInput]:
    match = _AMPM_RE.match(text)
    if not match:
        return None
    hour, minute, period, description = match.groups()
    hour = int(hour)
    minute = minute or "00"
    if not 1 <= hour <= 12 or int(minute) > 59:
        return None
    hour24 = _to_24h(hour, period)
    return _with_description(f"{hour24:02d}:{minute}", description)


def _match_hhmm(text: str) -> Optional[ParsedInput]:
    match = _HHMM_RE.match(text)
    if not match:
        return None
    hour, minute, description = match.groups()
    if int(hour) > 23 or int(minute) > 59:
        return None
    return _with_description(f"{int(hour):02d}:{minute}", description)


def _match_hour(text: str) -> Optional[ParsedInput]:
    match = _HOUR_RE.match(text)
    if not match:
        return None
    hour, description = match.groups()
    if int(hour) > 23:
        return None
    return _with_description(f"{int(hour):02d}:00", description)


def _with_description(time: str, description: str) -> Optional[ParsedInput]:
    # A time with nothing after it is not a plan entry
    description = description.strip()
    if not description:
        return None
    return ParsedInput(description=description, time=time, has_time=True)


def _to_24h(hour: int, period: str) -> int:
    period = period.lower()
    if period == "pm" and hour != 12:
        return hour + 12
    if period == "am" and hour == 12:
        return 0
    return hour


# ===== Value parsers =====

def _parse_clock_value(text: str) -> Optional[float]:
    match = _CLOCK_VALUE_RE.match(text)
    if not match:
        return None
    hour, minute, period = match.groups()
    hour = int(hour)
    minute = int(minute or 0)
    if minute > 59:
        return None
    if period:
        if not 1 <= hour <= 12:
            return None
        hour = _to_24h(hour, period)
    elif hour > 23:
        return None
    return hour + minute / 60


def _parse_duration_value(text: str) -> Optional[float]:
    if _NUMBER_RE.match(text):
        return float(text)

    hours_match = _DURATION_HOURS_RE.search(text)
    # Strip the hours part so "1.5h" does not feed the minutes pattern
    remainder = _DURATION_HOURS_RE.sub(" ", text)
    minutes_match = _DURATION_MINUTES_RE.search(remainder)

    total = 0.0
    if hours_match:
        total += float(hours_match.group(1))
    if minutes_match:
        total += int(minutes_match.group(1)) / 60
    return total if total > 0 else None
