"""
Progress service.
Fetches an owner's habits and events once and runs them through the pure
streak, milestone and day-status functions. Every screen that shows streaks,
milestones or analytics goes through here.
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from habit_tracker.constants import DailyStatus, TrendGrouping, STREAK_LOOKBACK_DAYS
from habit_tracker.repositories.habit_repository import HabitRepository, HabitEventRepository
from habit_tracker.services.analytics_service import (
    AnalyticsService, CompletionTrend, DayActivity, HabitAnalytics
)
from habit_tracker.services.date_service import Clock
from habit_tracker.services.day_status_service import DayStatusService, ToleranceUsage
from habit_tracker.services.goal_service import GoalService
from habit_tracker.services.milestone_service import Milestone, MilestoneService
from habit_tracker.services.streak_service import HabitStreak, StreakService, StreakStats
from habit_tracker.exceptions import HabitNotFoundException


@dataclass(frozen=True)
class TodayHabit:
    habit_id: int
    name: str
    type: str
    status: DailyStatus
    scheduled: bool
    current_streak: int
    goal_text: str
    days_until_next_scheduled: int


class ProgressService:
    """Service for streaks, milestones, analytics and the daily overview"""

    def __init__(self, db: Session, owner_id: str, clock: Optional[Clock] = None,
                 lookback_days: int = STREAK_LOOKBACK_DAYS):
        self.db = db
        self.owner_id = owner_id
        self.clock = clock or Clock()
        self.lookback_days = lookback_days
        self.habit_repo = HabitRepository()
        self.event_repo = HabitEventRepository()

    def get_streaks(self) -> Tuple[StreakStats, List[HabitStreak]]:
        """Per-habit streaks for active habits plus aggregate stats"""
        habits = self.habit_repo.list_habits(self.db, self.owner_id)
        events = self.event_repo.list_events(self.db, self.owner_id)
        streaks = StreakService.user_streaks(habits, events, self.clock.today(), self.lookback_days)
        return StreakService.aggregate(streaks), streaks

    def get_habit_streak(self, habit_id: int) -> HabitStreak:
        habit = self.habit_repo.get_by_id(self.db, self.owner_id, habit_id)
        if not habit:
            raise HabitNotFoundException(habit_id)
        events = self.event_repo.list_events(self.db, self.owner_id, habit_id)
        return StreakService.habit_streak(habit, events, self.clock.today(), self.lookback_days)

    def get_leaderboard(self, limit: int = 10) -> List[HabitStreak]:
        _, streaks = self.get_streaks()
        return StreakService.leaderboard(streaks, limit)

    def get_milestones(self) -> List[Milestone]:
        stats, _ = self.get_streaks()
        return MilestoneService.evaluate(stats)

    def get_tolerance_usage(self, habit_id: int, day: date) -> Optional[ToleranceUsage]:
        habit = self.habit_repo.get_by_id(self.db, self.owner_id, habit_id)
        if not habit:
            raise HabitNotFoundException(habit_id)
        events = self.event_repo.list_events(self.db, self.owner_id, habit_id)
        return DayStatusService.tolerance_usage(habit, day, events)

    def get_today(self) -> Tuple[date, List[TodayHabit]]:
        """Today's status for every active habit"""
        today = self.clock.today()
        habits = self.habit_repo.list_habits(self.db, self.owner_id)
        events = self.event_repo.list_events(self.db, self.owner_id)

        overview = []
        for habit in habits:
            habit_events = [e for e in events if e.habit_id == habit.id]
            resolution = DayStatusService.resolve(habit, today, habit_events, today)
            overview.append(TodayHabit(
                habit_id=habit.id,
                name=habit.name,
                type=habit.type,
                status=resolution.status,
                scheduled=GoalService.is_scheduled(habit, today),
                current_streak=StreakService.habit_streak(habit, habit_events, today, self.lookback_days).current_streak,
                goal_text=GoalService.goal_text(habit, today),
                days_until_next_scheduled=GoalService.days_until_next_scheduled(habit, today)
            ))
        return today, overview

    # ===== Analytics =====

    def get_habit_analytics(self, habit_id: int, start: date, end: date) -> HabitAnalytics:
        habit = self.habit_repo.get_by_id(self.db, self.owner_id, habit_id)
        if not habit:
            raise HabitNotFoundException(habit_id)
        AnalyticsService.validate_range(start, end)
        events = self.event_repo.list_events(self.db, self.owner_id, habit_id, start, end)
        return AnalyticsService.habit_analytics(habit, events, start, end, self.clock.today())

    def get_all_habit_analytics(self, start: date, end: date) -> List[HabitAnalytics]:
        """Analytics for every active habit, in display order"""
        AnalyticsService.validate_range(start, end)
        habits = self.habit_repo.list_habits(self.db, self.owner_id)
        events = self.event_repo.list_events(self.db, self.owner_id, None, start, end)
        today = self.clock.today()
        return [AnalyticsService.habit_analytics(habit, events, start, end, today) for habit in habits]

    def get_heatmap(self, start: date, end: date) -> List[DayActivity]:
        AnalyticsService.validate_range(start, end)
        habits = self.habit_repo.list_habits(self.db, self.owner_id)
        events = self.event_repo.list_events(self.db, self.owner_id, None, start, end)
        return AnalyticsService.activity_heatmap(habits, events, start, end, self.clock.today())

    def get_trends(self, start: date, end: date,
                   group_by: TrendGrouping = TrendGrouping.WEEK) -> List[CompletionTrend]:
        AnalyticsService.validate_range(start, end)
        habits = self.habit_repo.list_habits(self.db, self.owner_id)
        events = self.event_repo.list_events(self.db, self.owner_id, None, start, end)
        return AnalyticsService.completion_trends(habits, events, start, end, self.clock.today(), group_by)
