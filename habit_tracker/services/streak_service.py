"""
Streak calculation service.

Current streak: walk back from today over a bounded lookback. Completed days
count, a Failed day ends the walk, days without events and Skipped days are
neutral (neither counted nor breaking).

Longest streak: walk the whole history oldest first with a running counter
that Completed increments and Failed resets.

All functions are pure and leave their inputs untouched.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from habit_tracker.constants import EventStatus, HabitType, StreakState, STREAK_LOOKBACK_DAYS
from habit_tracker.services.date_service import DateService
from habit_tracker.services.day_status_service import DayStatusService
from habit_tracker.services.goal_service import GoalService


@dataclass(frozen=True)
class StreakResult:
    current_streak: int
    longest_streak: int


@dataclass(frozen=True)
class HabitStreak:
    habit_id: int
    habit_name: str
    habit_type: str
    current_streak: int
    longest_streak: int
    days_logged: int
    last_event_date: Optional[date]
    streak_state: StreakState


@dataclass(frozen=True)
class StreakStats:
    total_streaks: int = 0
    active_streaks: int = 0
    average_streak: float = 0.0
    longest_ever_streak: int = 0
    total_days_logged: int = 0


class StreakService:
    """Service for streak calculation"""

    @staticmethod
    def daily_outcomes(events: Iterable, avoidance: bool = False) -> Dict[date, EventStatus]:
        """Map each logged day to its collapsed status (see DayStatusService.summarize)"""
        by_day = defaultdict(list)
        for event in events:
            by_day[event.date].append(event)
        return {day: DayStatusService.summarize(day_events, avoidance) for day, day_events in by_day.items()}

    @staticmethod
    def current_streak(events: Iterable, today: date,
                       lookback_days: int = STREAK_LOOKBACK_DAYS, avoidance: bool = False) -> int:
        """
        Count Completed days walking back from today until a Failed day.

        Args:
            events: All events of one habit
            today: Owner's local "today"
            lookback_days: Days scanned, today included
            avoidance: Collapse days with the avoidance precedence

        Returns:
            Current streak length
        """
        outcomes = StreakService.daily_outcomes(events, avoidance)
        streak = 0
        for day in DateService.iter_days_back(today, lookback_days):
            outcome = outcomes.get(day)
            if outcome == EventStatus.COMPLETED:
                streak += 1
            elif outcome == EventStatus.FAILED:
                break
        return streak

    @staticmethod
    def longest_streak(events: Iterable, avoidance: bool = False) -> int:
        """Longest run of Completed days in the full history, broken only by Failed days"""
        outcomes = StreakService.daily_outcomes(events, avoidance)
        longest = 0
        temp = 0
        for day in sorted(outcomes):
            outcome = outcomes[day]
            if outcome == EventStatus.COMPLETED:
                temp += 1
                longest = max(longest, temp)
            elif outcome == EventStatus.FAILED:
                temp = 0
        return longest

    @staticmethod
    def calculate(events: Iterable, today: date,
                  lookback_days: int = STREAK_LOOKBACK_DAYS, avoidance: bool = False) -> StreakResult:
        events = list(events)
        return StreakResult(
            current_streak=StreakService.current_streak(events, today, lookback_days, avoidance),
            longest_streak=StreakService.longest_streak(events, avoidance)
        )

    @staticmethod
    def habit_streak(habit, events: Iterable, today: date,
                     lookback_days: int = STREAK_LOOKBACK_DAYS) -> HabitStreak:
        """Streak summary for one habit (events of other habits are ignored)"""
        events = [e for e in events if e.habit_id == habit.id]
        avoidance = GoalService.habit_type(habit) == HabitType.AVOIDANCE
        result = StreakService.calculate(events, today, lookback_days, avoidance)
        logged_days = {e.date for e in events}

        if not events:
            state = StreakState.NEW
        elif result.current_streak > 0:
            state = StreakState.ACTIVE
        else:
            state = StreakState.BROKEN

        return HabitStreak(
            habit_id=habit.id,
            habit_name=habit.name,
            habit_type=habit.type,
            current_streak=result.current_streak,
            longest_streak=result.longest_streak,
            days_logged=len(logged_days),
            last_event_date=max(logged_days) if logged_days else None,
            streak_state=state
        )

    @staticmethod
    def user_streaks(habits: Iterable, events: Iterable, today: date,
                     lookback_days: int = STREAK_LOOKBACK_DAYS) -> List[HabitStreak]:
        """Streak summaries for each habit, in the order the habits were given"""
        events_by_habit = defaultdict(list)
        for event in events:
            events_by_habit[event.habit_id].append(event)
        return [
            StreakService.habit_streak(habit, events_by_habit.get(habit.id, []), today, lookback_days)
            for habit in habits
        ]

    @staticmethod
    def aggregate(streaks: Iterable[HabitStreak]) -> StreakStats:
        """
        Aggregate per-habit streaks into user-wide statistics.

        average_streak is the mean current streak rounded to one decimal.
        """
        streaks = list(streaks)
        if not streaks:
            return StreakStats()

        total_current = sum(s.current_streak for s in streaks)
        return StreakStats(
            total_streaks=len(streaks),
            active_streaks=sum(1 for s in streaks if s.current_streak > 0),
            average_streak=round(total_current / len(streaks), 1),
            longest_ever_streak=max(s.longest_streak for s in streaks),
            total_days_logged=sum(s.days_logged for s in streaks)
        )

    @staticmethod
    def leaderboard(streaks: Iterable[HabitStreak], limit: int = 10) -> List[HabitStreak]:
        """Best habits first: current streak, then longest streak"""
        ranked = sorted(
            streaks,
            key=lambda s: (s.current_streak, s.longest_streak),
            reverse=True
        )
        return ranked[:limit]
