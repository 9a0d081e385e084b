"""
Calendar-day service.
Everything that turns "now" into the owner's local calendar day lives here,
together with the day arithmetic the engine relies on.
"""
from datetime import datetime, timedelta, date
from typing import Iterator, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from habit_tracker.constants import DEFAULT_TIMEZONE, WEEKDAY_KEYS
from habit_tracker.exceptions import ValidationError


class Clock:
    """Provides "today" as a calendar day in the owner's local timezone"""

    def __init__(self, timezone: Optional[str] = None):
        self.timezone = DateService.resolve_timezone(timezone)
        # Set only when the owner named a zone, not for the configured default
        self.timezone_name = self.timezone.key if timezone else None

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """Clock pinned to a given day (tests, replays, scheduled jobs)"""

    def __init__(self, today: date, timezone: Optional[str] = None):
        super().__init__(timezone)
        self._today = today

    def now(self) -> datetime:
        return datetime.combine(self._today, datetime.min.time(), tzinfo=self.timezone)

    def today(self) -> date:
        return self._today


class InstantClock(Clock):
    """Clock pinned to an instant, seen from the given timezone"""

    def __init__(self, instant: datetime, timezone: Optional[str] = None):
        super().__init__(timezone)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant.astimezone(self.timezone)


class DateService:
    """Service for calendar-day operations"""

    @staticmethod
    def resolve_timezone(timezone: Optional[str]) -> ZoneInfo:
        """
        Resolve an IANA timezone name.

        Args:
            timezone: Timezone name like "Europe/Berlin"; None uses the default

        Returns:
            ZoneInfo instance

        Raises:
            ValidationError: If the timezone name is unknown
        """
        name = timezone or DEFAULT_TIMEZONE
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError("timezone", f"Unknown timezone '{name}'")

    @staticmethod
    def parse_day(day_str: str) -> date:
        """
        Parse a calendar day string.

        Args:
            day_str: Day in "YYYY-MM-DD" format

        Returns:
            Parsed date

        Raises:
            ValidationError: If the string is not a valid day
        """
        try:
            return date.fromisoformat(day_str)
        except (TypeError, ValueError):
            raise ValidationError("date", f"Invalid day '{day_str}'. Use YYYY-MM-DD")

    @staticmethod
    def weekday_key(day: date) -> str:
        """Short weekday key ("Mon".."Sun") for a day"""
        return WEEKDAY_KEYS[day.weekday()]

    @staticmethod
    def iter_days(start: date, end: date) -> Iterator[date]:
        """Iterate days from start to end, both inclusive"""
        current = start
        while current <= end:
            yield current
            current += timedelta(days=1)

    @staticmethod
    def iter_days_back(start: date, count: int) -> Iterator[date]:
        """Iterate `count` days backward, starting with `start` itself"""
        for offset in range(max(0, count)):
            yield start - timedelta(days=offset)

    @staticmethod
    def week_range(day: date) -> tuple[date, date]:
        """Monday..Sunday range containing the day"""
        week_start = day - timedelta(days=day.weekday())
        return week_start, week_start + timedelta(days=6)

    @staticmethod
    def month_range(day: date) -> tuple[date, date]:
        """First..last day of the month containing the day"""
        month_start = day.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)
        return month_start, next_month - timedelta(days=1)
