"""
Status classifier.
Suggests whether a logged value satisfies a habit's goal for a given day.
The suggestion is advisory; Skipped is an explicit user choice and is never
inferred here.
"""
import math
from datetime import date
from typing import Optional

from habit_tracker.constants import EventStatus, GoalDirection
from habit_tracker.exceptions import ValidationError
from habit_tracker.services.goal_service import (
    Goal, GoalService, SimpleGoal, QuantityGoal, DurationGoal, ScheduleGoal, AvoidanceGoal
)


class StatusService:
    """Service for goal-based status suggestions"""

    @staticmethod
    def classify(goal: Goal, day: date, value) -> Optional[EventStatus]:
        """
        Suggest Completed or Failed for a logged value.

        Args:
            goal: Well-formed goal (see GoalService.build_goal)
            day: Calendar day of the entry (weekday-dependent schedule goals)
            value: Count, hours, or fractional hour-of-day depending on type

        Returns:
            EventStatus.COMPLETED or EventStatus.FAILED; None for avoidance
            habits, whose status is always set by the user

        Raises:
            ValidationError: If a measured goal receives a missing or non-numeric value
        """
        if isinstance(goal, AvoidanceGoal):
            return None

        if isinstance(goal, SimpleGoal):
            return EventStatus.COMPLETED

        numeric = StatusService._require_number(value)

        if isinstance(goal, (QuantityGoal, DurationGoal)):
            if goal.direction == GoalDirection.AT_LEAST:
                passed = numeric >= goal.goal_value
            else:
                passed = numeric <= goal.goal_value
            return EventStatus.COMPLETED if passed else EventStatus.FAILED

        if isinstance(goal, ScheduleGoal):
            goal_hours = goal.goal_hours_for(day)
            if goal.direction == GoalDirection.AFTER:
                passed = numeric >= goal_hours
            else:
                passed = numeric <= goal_hours
            return EventStatus.COMPLETED if passed else EventStatus.FAILED

        raise TypeError(f"Unsupported goal: {goal!r}")

    @staticmethod
    def classify_for_habit(habit, day: date, value) -> Optional[EventStatus]:
        """Build the habit's goal (ConfigurationError on bad config) and classify"""
        return StatusService.classify(GoalService.build_goal(habit), day, value)

    @staticmethod
    def _require_number(value) -> float:
        if value is None:
            raise ValidationError("value", "A value is required for this habit")
        if isinstance(value, bool):
            raise ValidationError("value", "Value must be a number")
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            raise ValidationError("value", "Value must be a number")
        if math.isnan(numeric):
            raise ValidationError("value", "Value must be a number")
        return numeric
