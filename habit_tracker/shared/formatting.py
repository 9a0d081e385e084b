"""
Time and value formatting helpers shared by the parser, the classifier and goal labels.

Time-of-day values are fractional hours (7.5 == 07:30), durations are hours
(1.5 == 1h 30m), "HH:MM" strings are always 24h.
"""
import re
from typing import Optional

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def is_valid_hhmm(time_str: Optional[str]) -> bool:
    """True for a 24h "H:MM"/"HH:MM" string with hour 0-23 and minute 0-59"""
    if not isinstance(time_str, str):
        return False
    match = _HHMM_RE.match(time_str.strip())
    if not match:
        return False
    return int(match.group(1)) <= 23 and int(match.group(2)) <= 59


def hhmm_to_hours(time_str: str) -> float:
    """
    Convert "HH:MM" to fractional hours.

    Raises:
        ValueError: If time string is invalid
    """
    if not is_valid_hhmm(time_str):
        raise ValueError(f"Invalid time format: {time_str}. Expected HH:MM")
    hours, minutes = time_str.strip().split(":")
    return int(hours) + int(minutes) / 60


def hours_to_hhmm(value: float) -> str:
    """Convert fractional hours to zero-padded 24h "HH:MM" (minutes rounded)"""
    total_minutes = int(round(value * 60))
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def format_time_12h(time_str: str) -> str:
    """
    Render a 24h "HH:MM" string in 12-hour form, omitting ":00".

    "09:00" -> "9 AM", "14:30" -> "2:30 PM", "00:00" -> "12 AM"
    """
    total = hhmm_to_hours(time_str)
    hours = int(total)
    minutes = int(round((total - hours) * 60))
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    if minutes == 0:
        return f"{display_hours} {period}"
    return f"{display_hours}:{minutes:02d} {period}"


def format_fractional_time(value: float) -> str:
    """Render a fractional hour-of-day as 12-hour text ("7:30 AM")"""
    return format_time_12h(hours_to_hhmm(value))


def format_duration(value: float) -> str:
    """Compact duration: 0.5 -> "30m", 2 -> "2h", 1.5 -> "1h 30m" """
    total_minutes = int(round(value * 60))
    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


def format_duration_goal(goal_value: float) -> str:
    """Readable duration goal: 0.5 -> "30 min", 1 -> "1 hr", 2 -> "2 hrs", 1.5 -> "1h 30m" """
    if goal_value < 1:
        return f"{int(round(goal_value * 60))} min"

    hours = int(goal_value)
    minutes = int(round((goal_value - hours) * 60))
    if minutes == 60:
        hours, minutes = hours + 1, 0
    if minutes == 0:
        return f"{hours} {'hr' if hours == 1 else 'hrs'}"
    return f"{hours}h {minutes}m"


def format_number(value: float) -> str:
    """Drop a trailing ".0" from whole numbers"""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def format_event_value(habit_type: Optional[str], value: Optional[float]) -> Optional[str]:
    """Display text for a logged value: clock time, duration or plain number"""
    if value is None:
        return None
    if habit_type == "schedule":
        return format_fractional_time(round(value * 60) % 1440 / 60)
    if habit_type == "duration":
        return format_duration(value)
    return format_number(value)
