"""
Tests for StatusService.

Tests cover:
1. Quantity and duration comparisons in both directions
2. Schedule comparisons against weekday-specific goal times
3. Value validation
"""
import pytest
from datetime import date

from habit_tracker.constants import EventStatus, GoalDirection
from habit_tracker.exceptions import ValidationError
from habit_tracker.services.goal_service import (
    SimpleGoal, QuantityGoal, DurationGoal, ScheduleGoal, AvoidanceGoal
)
from habit_tracker.services.status_service import StatusService

SATURDAY = date(2026, 3, 14)


class TestMeasuredGoals:
    """Tests for quantity and duration goals"""

    def test_duration_no_more_than(self, today):
        goal = DurationGoal(goal_value=2, direction=GoalDirection.NO_MORE_THAN)

        assert StatusService.classify(goal, today, 1.8) == EventStatus.COMPLETED
        assert StatusService.classify(goal, today, 2.5) == EventStatus.FAILED

    def test_at_least_boundary_is_inclusive(self, today):
        goal = QuantityGoal(goal_value=8, direction=GoalDirection.AT_LEAST)

        assert StatusService.classify(goal, today, 8) == EventStatus.COMPLETED
        assert StatusService.classify(goal, today, 7.9) == EventStatus.FAILED

    def test_no_more_than_boundary_is_inclusive(self, today):
        goal = QuantityGoal(goal_value=2, direction=GoalDirection.NO_MORE_THAN)
        assert StatusService.classify(goal, today, 2) == EventStatus.COMPLETED

    def test_at_least_is_monotonic(self, today):
        """A larger value never does worse than a smaller one that passed"""
        goal = QuantityGoal(goal_value=5, direction=GoalDirection.AT_LEAST)
        values = [0, 1, 4.99, 5, 5.01, 10, 1000]
        for low in values:
            for high in values:
                if high >= low and StatusService.classify(goal, today, low) == EventStatus.COMPLETED:
                    assert StatusService.classify(goal, today, high) == EventStatus.COMPLETED

    def test_no_more_than_is_monotonic(self, today):
        goal = DurationGoal(goal_value=1.5, direction=GoalDirection.NO_MORE_THAN)
        values = [0, 0.5, 1.49, 1.5, 1.51, 3]
        for low in values:
            for high in values:
                if high >= low and StatusService.classify(goal, today, high) == EventStatus.COMPLETED:
                    assert StatusService.classify(goal, today, low) == EventStatus.COMPLETED


class TestScheduleGoals:
    """Tests for schedule goals"""

    def test_by_goal(self, today):
        goal = ScheduleGoal(direction=GoalDirection.BY, goal_time="07:00")

        assert StatusService.classify(goal, today, 6.5) == EventStatus.COMPLETED
        assert StatusService.classify(goal, today, 7.0) == EventStatus.COMPLETED
        assert StatusService.classify(goal, today, 7.25) == EventStatus.FAILED

    def test_after_goal(self, today):
        goal = ScheduleGoal(direction=GoalDirection.AFTER, goal_time="22:00")

        assert StatusService.classify(goal, today, 22.5) == EventStatus.COMPLETED
        assert StatusService.classify(goal, today, 21.0) == EventStatus.FAILED

    def test_weekday_override(self, today):
        """Should compare against the day's own goal time"""
        goal = ScheduleGoal(direction=GoalDirection.BY, goal_time="07:00", goal_times_by_day={"Sat": "09:00"})

        assert StatusService.classify(goal, SATURDAY, 8.5) == EventStatus.COMPLETED
        assert StatusService.classify(goal, today, 8.5) == EventStatus.FAILED


class TestOtherGoals:

    def test_simple_always_completed(self, today):
        assert StatusService.classify(SimpleGoal(), today, None) == EventStatus.COMPLETED

    def test_avoidance_has_no_suggestion(self, today):
        assert StatusService.classify(AvoidanceGoal(), today, 3) is None

    def test_classify_for_habit(self, habit_factory, today):
        habit = habit_factory(type="quantity", goal_value=8, goal_direction="at_least")
        assert StatusService.classify_for_habit(habit, today, 9) == EventStatus.COMPLETED


class TestValueValidation:

    @pytest.mark.parametrize("value", [None, "abc", True, float("nan")])
    def test_rejects_missing_or_non_numeric(self, today, value):
        goal = QuantityGoal(goal_value=8, direction=GoalDirection.AT_LEAST)
        with pytest.raises(ValidationError):
            StatusService.classify(goal, today, value)

    def test_accepts_numeric_string(self, today):
        goal = QuantityGoal(goal_value=8, direction=GoalDirection.AT_LEAST)
        assert StatusService.classify(goal, today, "9") == EventStatus.COMPLETED
