"""
Day status resolver.
Combines a habit, a calendar day and the habit's events into one per-day
status. Avoidance habits may carry several relapses (failed events) on the
same day; an "avoided" (completed) event supersedes them.

Everything here is pure: events are handed in already fetched, nothing is
mutated.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

from habit_tracker.constants import DailyStatus, EventStatus, HabitType, ToleranceWindow
from habit_tracker.services.date_service import DateService
from habit_tracker.services.goal_service import GoalService, AvoidanceGoal

# Precedence when several events share a day
_STATUS_PRECEDENCE = (EventStatus.COMPLETED, EventStatus.FAILED, EventStatus.SKIPPED)


@dataclass(frozen=True)
class DayResolution:
    day: date
    status: DailyStatus
    event: Optional[object] = None  # The day's summary event, if any
    relapses: tuple = ()            # Avoidance only, oldest first


@dataclass(frozen=True)
class ToleranceUsage:
    window: ToleranceWindow
    window_start: date
    window_end: date
    relapse_count: int
    max_failures: int

    @property
    def remaining(self) -> int:
        return max(0, self.max_failures - self.relapse_count)

    @property
    def exceeded(self) -> bool:
        return self.relapse_count > self.max_failures


def event_sort_key(event):
    return (event.created_at or datetime.min, event.id or 0)


class DayStatusService:
    """Service for resolving per-day habit status"""

    @staticmethod
    def events_on(events: Iterable, day: date) -> list:
        """Events of a given day, oldest first"""
        return sorted((e for e in events if e.date == day), key=event_sort_key)

    @staticmethod
    def latest_event(day_events: Iterable):
        """Most recently updated event of a day, None for an empty day"""
        return max(day_events, key=lambda e: (e.updated_at or datetime.min, e.id or 0), default=None)

    @staticmethod
    def summarize(day_events: Iterable, avoidance: bool = False) -> Optional[EventStatus]:
        """
        Collapse one day's events into a single event status, the same way
        resolve() does.

        Avoidance: Completed beats Failed beats Skipped. Other habits keep one
        event per day; if duplicates slipped in, the most recently updated wins.
        None when the day has no events.
        """
        day_events = list(day_events)
        if not avoidance:
            latest = DayStatusService.latest_event(day_events)
            return EventStatus(latest.status) if latest is not None else None

        statuses = {EventStatus(e.status) for e in day_events}
        for status in _STATUS_PRECEDENCE:
            if status in statuses:
                return status
        return None

    @staticmethod
    def resolve(habit, day: date, events: Iterable, today: date) -> DayResolution:
        """
        Resolve the status of a habit on a day.

        Args:
            habit: Habit being evaluated
            day: Calendar day to resolve
            events: All events of the habit (other days are ignored)
            today: Owner's local "today", decides Pending vs NotLogged

        Returns:
            DayResolution with status, the summary event and (avoidance) relapses
        """
        day_events = DayStatusService.events_on(events, day)

        if GoalService.habit_type(habit) == HabitType.AVOIDANCE:
            return DayStatusService._resolve_avoidance(day, day_events, today)

        if not day_events:
            return DayResolution(day=day, status=DayStatusService._empty_status(day, today))

        event = DayStatusService.latest_event(day_events)
        return DayResolution(day=day, status=DailyStatus(event.status), event=event)

    @staticmethod
    def relapses_on(events: Iterable, day: date) -> List:
        """All relapse (failed) events of a day, oldest first"""
        return [
            e for e in DayStatusService.events_on(events, day)
            if e.status == EventStatus.FAILED.value
        ]

    @staticmethod
    def summary_event(events: Iterable, day: date):
        """The avoidance day's non-relapse event (completed or skipped), if any"""
        candidates = [
            e for e in DayStatusService.events_on(events, day)
            if e.status != EventStatus.FAILED.value
        ]
        return candidates[-1] if candidates else None

    @staticmethod
    def has_existing_relapses(habit, day: date, events: Iterable) -> bool:
        """
        Precondition check before marking an avoidance day as avoided.
        When True, doing so deletes those relapses and needs caller confirmation.
        """
        if GoalService.habit_type(habit) != HabitType.AVOIDANCE:
            return False
        return bool(DayStatusService.relapses_on(events, day))

    @staticmethod
    def tolerance_usage(habit, day: date, events: Iterable) -> Optional[ToleranceUsage]:
        """
        Relapses counted inside the tolerance window (ISO week or calendar
        month) that contains the day. None when the habit has no tolerance.
        """
        goal = GoalService.build_goal(habit)
        if not isinstance(goal, AvoidanceGoal) or goal.tolerance is None:
            return None

        if goal.tolerance.window == ToleranceWindow.WEEKLY:
            start, end = DateService.week_range(day)
        else:
            start, end = DateService.month_range(day)

        events = list(events)
        relapse_count = 0
        for current in DateService.iter_days(start, end):
            day_events = DayStatusService.events_on(events, current)
            # An avoided day supersedes its relapses
            if any(e.status == EventStatus.COMPLETED.value for e in day_events):
                continue
            relapse_count += sum(1 for e in day_events if e.status == EventStatus.FAILED.value)

        return ToleranceUsage(
            window=goal.tolerance.window,
            window_start=start,
            window_end=end,
            relapse_count=relapse_count,
            max_failures=goal.tolerance.max_failures
        )

    @staticmethod
    def _resolve_avoidance(day: date, day_events: list, today: date) -> DayResolution:
        completed = [e for e in day_events if e.status == EventStatus.COMPLETED.value]
        if completed:
            return DayResolution(day=day, status=DailyStatus.COMPLETED, event=completed[-1])

        relapses = tuple(e for e in day_events if e.status == EventStatus.FAILED.value)
        skipped = [e for e in day_events if e.status == EventStatus.SKIPPED.value]
        summary = skipped[-1] if skipped else None

        # Relapses are facts: they outrank a skipped summary
        if relapses:
            return DayResolution(day=day, status=DailyStatus.FAILED, event=summary, relapses=relapses)
        if summary is not None:
            return DayResolution(day=day, status=DailyStatus.SKIPPED, event=summary)
        return DayResolution(day=day, status=DayStatusService._empty_status(day, today))

    @staticmethod
    def _empty_status(day: date, today: date) -> DailyStatus:
        return DailyStatus.PENDING if day == today else DailyStatus.NOT_LOGGED
