"""
Goal model service.
Builds the typed goal configuration of a habit and validates that every field
its type requires is present. Also renders display-only goal labels.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from habit_tracker.constants import (
    HabitType, GoalDirection, FrequencyType, ToleranceWindow,
    MEASURED_DIRECTIONS, SCHEDULE_DIRECTIONS, WEEKDAY_KEYS, WEEKEND_KEYS,
    DISPLAY_FALLBACK_DURATION_HOURS, DISPLAY_FALLBACK_QUANTITY
)
from habit_tracker.exceptions import ConfigurationError
from habit_tracker.shared.formatting import (
    is_valid_hhmm, hhmm_to_hours, format_time_12h, format_duration_goal, format_number
)
from habit_tracker.services.date_service import DateService


@dataclass(frozen=True)
class FailureTolerance:
    window: ToleranceWindow
    max_failures: int


@dataclass(frozen=True)
class SimpleGoal:
    type: HabitType = HabitType.SIMPLE


@dataclass(frozen=True)
class QuantityGoal:
    goal_value: float
    direction: GoalDirection
    unit: Optional[str] = None
    type: HabitType = HabitType.QUANTITY


@dataclass(frozen=True)
class DurationGoal:
    goal_value: float
    direction: GoalDirection
    unit: Optional[str] = None
    type: HabitType = HabitType.DURATION


@dataclass(frozen=True)
class ScheduleGoal:
    direction: GoalDirection
    goal_time: Optional[str] = None
    goal_times_by_day: dict = field(default_factory=dict)
    type: HabitType = HabitType.SCHEDULE

    def goal_time_for(self, day: date) -> str:
        """Goal time for a calendar day: weekday override first, then the default"""
        return self.goal_times_by_day.get(DateService.weekday_key(day)) or self.goal_time

    def goal_hours_for(self, day: date) -> float:
        return hhmm_to_hours(self.goal_time_for(day))


@dataclass(frozen=True)
class AvoidanceGoal:
    tolerance: Optional[FailureTolerance] = None
    type: HabitType = HabitType.AVOIDANCE


Goal = Union[SimpleGoal, QuantityGoal, DurationGoal, ScheduleGoal, AvoidanceGoal]


@dataclass(frozen=True)
class Frequency:
    type: FrequencyType
    goal_per_week: Optional[int] = None
    days_of_week: tuple = ()


class GoalService:
    """Service for building and validating goal configurations"""

    @staticmethod
    def habit_type(habit) -> HabitType:
        try:
            return HabitType(habit.type)
        except ValueError:
            raise ConfigurationError("type", f"Invalid habit type: {habit.type}")

    @staticmethod
    def build_goal(habit) -> Goal:
        """
        Build the typed goal for a habit, failing fast on missing fields.

        Only the fields relevant to the habit's type are read; any others are
        ignored even when present.

        Args:
            habit: Habit (ORM instance or any object with the habit attributes)

        Returns:
            One of SimpleGoal, QuantityGoal, DurationGoal, ScheduleGoal, AvoidanceGoal

        Raises:
            ConfigurationError: Naming the first missing or inconsistent field
        """
        habit_type = GoalService.habit_type(habit)

        if habit_type == HabitType.SIMPLE:
            return SimpleGoal()

        if habit_type in (HabitType.QUANTITY, HabitType.DURATION):
            goal_value = GoalService._require_goal_value(habit)
            direction = GoalService._parse_direction(
                habit.goal_direction, MEASURED_DIRECTIONS, habit_type, required=True
            )
            goal_class = QuantityGoal if habit_type == HabitType.QUANTITY else DurationGoal
            return goal_class(goal_value=goal_value, direction=direction, unit=habit.unit)

        if habit_type == HabitType.SCHEDULE:
            return GoalService._build_schedule_goal(habit)

        return AvoidanceGoal(tolerance=GoalService._build_tolerance(habit))

    @staticmethod
    def build_frequency(habit) -> Frequency:
        """
        Build and validate the habit's frequency.

        Raises:
            ConfigurationError: If weekly lacks goal_per_week or specific_days lacks days
        """
        try:
            frequency_type = FrequencyType(habit.frequency_type or FrequencyType.DAILY.value)
        except ValueError:
            raise ConfigurationError("frequency", f"Invalid frequency type: {habit.frequency_type}")

        if frequency_type == FrequencyType.WEEKLY:
            if not habit.goal_per_week or habit.goal_per_week < 1:
                raise ConfigurationError("goal_per_week", "Weekly frequency requires goal_per_week")
            if habit.goal_per_week > 7:
                raise ConfigurationError("goal_per_week", "goal_per_week cannot exceed 7")
            return Frequency(type=frequency_type, goal_per_week=habit.goal_per_week)

        if frequency_type == FrequencyType.SPECIFIC_DAYS:
            days = habit.days_of_week_list
            if not days:
                raise ConfigurationError("days_of_week", "Specific days frequency requires days_of_week")
            invalid = [day for day in days if day not in WEEKDAY_KEYS]
            if invalid:
                raise ConfigurationError("days_of_week", f"Unknown weekdays: {invalid}")
            ordered = tuple(key for key in WEEKDAY_KEYS if key in days)
            return Frequency(type=frequency_type, days_of_week=ordered)

        return Frequency(type=frequency_type)

    @staticmethod
    def validate(habit) -> Goal:
        """Validate goal and frequency together; returns the built goal"""
        goal = GoalService.build_goal(habit)
        GoalService.build_frequency(habit)
        return goal

    @staticmethod
    def is_scheduled(habit, day: date) -> bool:
        """
        Check whether a habit is scheduled on a day.
        Daily and weekly habits are always scheduled.
        """
        frequency = GoalService.build_frequency(habit)
        if frequency.type == FrequencyType.SPECIFIC_DAYS:
            return DateService.weekday_key(day) in frequency.days_of_week
        return True

    @staticmethod
    def days_until_next_scheduled(habit, today: date) -> int:
        """0 when scheduled today, else days until the next scheduled weekday"""
        for offset in range(0, 7):
            candidate = date.fromordinal(today.toordinal() + offset)
            if GoalService.is_scheduled(habit, candidate):
                return offset
        return 0

    @staticmethod
    def goal_text(habit, day: Optional[date] = None, include_prefix: bool = True,
                  include_frequency: bool = False) -> str:
        """
        Human-readable goal label.

        Missing goal values fall back to display defaults here (and only here),
        so a half-configured habit still gets a label.
        """
        prefix = "Goal: " if include_prefix else ""
        habit_type = GoalService.habit_type(habit)

        if habit_type == HabitType.SIMPLE:
            text = "complete daily"

        elif habit_type == HabitType.SCHEDULE:
            text = GoalService._schedule_goal_text(habit, day)

        elif habit_type == HabitType.DURATION:
            goal_value = habit.goal_value if habit.goal_value is not None else DISPLAY_FALLBACK_DURATION_HOURS
            direction = "at least" if habit.goal_direction == GoalDirection.AT_LEAST.value else "under"
            suffix = "/day" if include_frequency else " daily"
            text = f"{direction} {format_duration_goal(goal_value)}{suffix}"

        elif habit_type == HabitType.QUANTITY:
            goal_value = habit.goal_value if habit.goal_value is not None else DISPLAY_FALLBACK_QUANTITY
            direction = "at least" if habit.goal_direction == GoalDirection.AT_LEAST.value else "no more than"
            unit = f" {habit.unit}" if habit.unit else ""
            text = f"{direction} {format_number(goal_value)}{unit}"

        else:
            if habit.tolerance_window and habit.tolerance_max_failures is not None:
                text = (
                    f"avoid completely (max {habit.tolerance_max_failures} "
                    f"failures/{habit.tolerance_window})"
                )
            else:
                text = "avoid completely"

        return f"{prefix}{text}"

    # ===== Internals =====

    @staticmethod
    def _require_goal_value(habit) -> float:
        if habit.goal_value is None:
            raise ConfigurationError("goal_value", f"{habit.type} habits require goal_value")
        try:
            goal_value = float(habit.goal_value)
        except (TypeError, ValueError):
            raise ConfigurationError("goal_value", "goal_value must be numeric")
        if goal_value < 0:
            raise ConfigurationError("goal_value", "goal_value cannot be negative")
        return goal_value

    @staticmethod
    def _parse_direction(raw, allowed, habit_type: HabitType, required: bool) -> Optional[GoalDirection]:
        if raw is None:
            if required:
                raise ConfigurationError("goal_direction", f"{habit_type.value} habits require goal_direction")
            return None
        try:
            direction = GoalDirection(raw)
        except ValueError:
            raise ConfigurationError("goal_direction", f"Invalid goal_direction: {raw}")
        if direction not in allowed:
            allowed_text = " or ".join(d.value for d in allowed)
            raise ConfigurationError(
                "goal_direction",
                f"{habit_type.value} habits can only use {allowed_text}"
            )
        return direction

    @staticmethod
    def _build_schedule_goal(habit) -> ScheduleGoal:
        goal_time = habit.goal_time
        times_by_day = habit.goal_times_map

        if goal_time is not None and not is_valid_hhmm(goal_time):
            raise ConfigurationError("goal_time", f"Invalid time format: {goal_time}. Expected HH:MM")
        for key, value in times_by_day.items():
            if key not in WEEKDAY_KEYS:
                raise ConfigurationError("goal_times_by_day", f"Unknown weekday: {key}")
            if not is_valid_hhmm(value):
                raise ConfigurationError("goal_times_by_day", f"Invalid time for {key}: {value}")

        # Without a default goal_time every weekday needs its own entry
        if not goal_time:
            missing = [key for key in WEEKDAY_KEYS if key not in times_by_day]
            if missing:
                raise ConfigurationError(
                    "goal_time",
                    f"Schedule habits require goal_time or goal_times_by_day for every weekday (missing {missing})"
                )

        direction = GoalService._parse_direction(
            habit.goal_direction, SCHEDULE_DIRECTIONS, HabitType.SCHEDULE, required=False
        )
        return ScheduleGoal(
            direction=direction or GoalDirection.BY,
            goal_time=goal_time,
            goal_times_by_day=dict(times_by_day)
        )

    @staticmethod
    def _build_tolerance(habit) -> Optional[FailureTolerance]:
        if habit.tolerance_window is None and habit.tolerance_max_failures is None:
            return None
        try:
            window = ToleranceWindow(habit.tolerance_window)
        except ValueError:
            raise ConfigurationError("failure_tolerance", "Failure tolerance window must be 'weekly' or 'monthly'")
        max_failures = habit.tolerance_max_failures
        if not isinstance(max_failures, int) or isinstance(max_failures, bool) or max_failures < 0:
            raise ConfigurationError("failure_tolerance", "Max failures must be a non-negative number")
        return FailureTolerance(window=window, max_failures=max_failures)

    @staticmethod
    def _schedule_goal_text(habit, day: Optional[date]) -> str:
        direction = "after" if habit.goal_direction == GoalDirection.AFTER.value else "by"
        times_by_day = habit.goal_times_map
        weekend_time = next((times_by_day[key] for key in WEEKEND_KEYS if key in times_by_day), None)

        if day is not None:
            goal_time = times_by_day.get(DateService.weekday_key(day)) or habit.goal_time
            if goal_time and is_valid_hhmm(goal_time):
                return f"{direction} {format_time_12h(goal_time)}"
            return "schedule target"

        if weekend_time and habit.goal_time and is_valid_hhmm(weekend_time) and is_valid_hhmm(habit.goal_time):
            return (
                f"{direction} {format_time_12h(habit.goal_time)} on weekdays, "
                f"{format_time_12h(weekend_time)} on weekends"
            )
        if habit.goal_time and is_valid_hhmm(habit.goal_time):
            return f"{direction} {format_time_12h(habit.goal_time)}"
        return "schedule target"
