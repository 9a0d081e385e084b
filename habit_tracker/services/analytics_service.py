"""
Analytics service.
Completion rates, an activity heatmap and completion trends over an inclusive
date range. Every day is collapsed through DayStatusService.resolve, so the
numbers agree with the day view and with streaks.

Completion rate = completed days / (completed + failed days), as a whole
percentage. Skipped and unlogged days are neutral, as they are for streaks.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Tuple

from habit_tracker.constants import ANALYTICS_MAX_RANGE_DAYS, DailyStatus, TrendGrouping
from habit_tracker.exceptions import ValidationError
from habit_tracker.services.date_service import DateService
from habit_tracker.services.day_status_service import DayStatusService
from habit_tracker.services.goal_service import GoalService


@dataclass(frozen=True)
class HabitAnalytics:
    habit_id: int
    habit_name: str
    start_date: date
    end_date: date
    scheduled_days: int
    completed_days: int
    failed_days: int
    skipped_days: int
    completion_rate: int


@dataclass(frozen=True)
class DayActivity:
    date: date
    completed: int
    logged: int
    intensity: int  # 0 (nothing logged) .. 4


@dataclass(frozen=True)
class CompletionTrend:
    period_start: date
    period_end: date
    completed: int
    total: int
    completion_rate: int


def completion_rate(completed: int, failed: int) -> int:
    total = completed + failed
    return round(completed / total * 100) if total else 0


def intensity(completed: int, logged: int) -> int:
    """Heatmap intensity from the share of logged habits completed that day"""
    if logged == 0:
        return 0
    share = completed / logged
    if share >= 0.8:
        return 4
    if share >= 0.6:
        return 3
    if share >= 0.4:
        return 2
    return 1


class AnalyticsService:
    """Service for history aggregates"""

    @staticmethod
    def validate_range(start: date, end: date) -> None:
        """
        Raises:
            ValidationError: If start is after end or the range is too long
        """
        if start > end:
            raise ValidationError("start_date", "start_date must not be after end_date")
        if (end - start).days + 1 > ANALYTICS_MAX_RANGE_DAYS:
            raise ValidationError("end_date", f"Range is limited to {ANALYTICS_MAX_RANGE_DAYS} days")

    @staticmethod
    def daily_statuses(habit, events: Iterable, start: date, end: date, today: date) -> Dict[date, DailyStatus]:
        """Resolved status of every day in the range for one habit"""
        by_day = defaultdict(list)
        for event in events:
            if event.habit_id == habit.id and start <= event.date <= end:
                by_day[event.date].append(event)
        return {
            day: DayStatusService.resolve(habit, day, by_day.get(day, []), today).status
            for day in DateService.iter_days(start, end)
        }

    @staticmethod
    def habit_analytics(habit, events: Iterable, start: date, end: date, today: date) -> HabitAnalytics:
        """Day counts and completion rate of one habit over the range"""
        AnalyticsService.validate_range(start, end)
        statuses = AnalyticsService.daily_statuses(habit, events, start, end, today)
        counts = defaultdict(int)
        for status in statuses.values():
            counts[status] += 1

        completed = counts[DailyStatus.COMPLETED]
        failed = counts[DailyStatus.FAILED]
        return HabitAnalytics(
            habit_id=habit.id,
            habit_name=habit.name,
            start_date=start,
            end_date=end,
            scheduled_days=sum(1 for day in statuses if GoalService.is_scheduled(habit, day)),
            completed_days=completed,
            failed_days=failed,
            skipped_days=counts[DailyStatus.SKIPPED],
            completion_rate=completion_rate(completed, failed)
        )

    @staticmethod
    def activity_heatmap(habits: Iterable, events: Iterable, start: date, end: date,
                         today: date) -> List[DayActivity]:
        """One entry per day of the range, oldest first"""
        AnalyticsService.validate_range(start, end)
        events = list(events)
        completed = defaultdict(int)
        logged = defaultdict(int)
        for habit in habits:
            for day, status in AnalyticsService.daily_statuses(habit, events, start, end, today).items():
                if status in (DailyStatus.COMPLETED, DailyStatus.FAILED, DailyStatus.SKIPPED):
                    logged[day] += 1
                if status == DailyStatus.COMPLETED:
                    completed[day] += 1

        return [
            DayActivity(
                date=day,
                completed=completed[day],
                logged=logged[day],
                intensity=intensity(completed[day], logged[day])
            )
            for day in DateService.iter_days(start, end)
        ]

    @staticmethod
    def completion_trends(habits: Iterable, events: Iterable, start: date, end: date, today: date,
                          group_by: TrendGrouping = TrendGrouping.WEEK) -> List[CompletionTrend]:
        """
        Completed vs completed+failed habit-days per period, oldest first.
        Weeks are ISO weeks; the first and last periods are clipped to the range.
        """
        AnalyticsService.validate_range(start, end)
        events = list(events)
        totals: Dict[Tuple[date, date], List[int]] = {}

        for day in DateService.iter_days(start, end):
            period = AnalyticsService._period(day, group_by, start, end)
            totals.setdefault(period, [0, 0])

        for habit in habits:
            for day, status in AnalyticsService.daily_statuses(habit, events, start, end, today).items():
                counts = totals[AnalyticsService._period(day, group_by, start, end)]
                if status == DailyStatus.COMPLETED:
                    counts[0] += 1
                    counts[1] += 1
                elif status == DailyStatus.FAILED:
                    counts[1] += 1

        return [
            CompletionTrend(
                period_start=period_start,
                period_end=period_end,
                completed=done,
                total=total,
                completion_rate=completion_rate(done, total - done)
            )
            for (period_start, period_end), (done, total) in sorted(totals.items())
        ]

    @staticmethod
    def _period(day: date, group_by: TrendGrouping, start: date, end: date) -> Tuple[date, date]:
        if group_by == TrendGrouping.DAY:
            return day, day
        if group_by == TrendGrouping.WEEK:
            period_start, period_end = DateService.week_range(day)
        else:
            period_start, period_end = DateService.month_range(day)
        return max(period_start, start), min(period_end, end)
