"""
Habit management service.
Creates, updates, archives and deletes habits through the store, refusing
goal configurations that are incomplete for the habit's type.
"""
import json
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from habit_tracker.models import Habit
from habit_tracker.schemas import HabitCreate, HabitUpdate
from habit_tracker.repositories.habit_repository import HabitRepository, OwnerSettingsRepository
from habit_tracker.services.date_service import Clock
from habit_tracker.services.goal_service import GoalService
from habit_tracker.exceptions import ConfigurationError, HabitNotFoundException

logger = logging.getLogger("habit_tracker.habits")


class HabitService:
    """Service for managing habits"""

    def __init__(self, db: Session, owner_id: str, clock: Optional[Clock] = None):
        self.db = db
        self.owner_id = owner_id
        self.clock = clock or Clock()
        self.habit_repo = HabitRepository()
        self.settings_repo = OwnerSettingsRepository()

    def list_habits(self, include_archived: bool = False) -> List[Habit]:
        return self.habit_repo.list_habits(self.db, self.owner_id, include_archived)

    def get_habit(self, habit_id: int) -> Habit:
        """Get an owner's habit or raise HabitNotFoundException"""
        habit = self.habit_repo.get_by_id(self.db, self.owner_id, habit_id)
        if not habit:
            raise HabitNotFoundException(habit_id)
        return habit

    def create_habit(self, habit_data: HabitCreate) -> Habit:
        """
        Create a new habit.

        Raises:
            ConfigurationError: If the goal fields do not fit the habit type
        """
        habit = Habit(owner_id=self.owner_id, name=habit_data.name, type=habit_data.type.value)
        self._apply_fields(habit, habit_data.model_dump(exclude={"name", "type"}))
        habit.archived = False

        GoalService.validate(habit)

        habit = self.habit_repo.create(self.db, habit)
        logger.info(f"Created {habit.type} habit {habit.id} for owner {self.owner_id}")
        self.remember_timezone()
        return habit

    def update_habit(self, habit_id: int, habit_update: HabitUpdate) -> Habit:
        """Update an existing habit; the result must still be a valid configuration"""
        habit = self.get_habit(habit_id)
        self._apply_fields(habit, habit_update.model_dump(exclude_unset=True))

        try:
            GoalService.validate(habit)
        except ConfigurationError:
            # Drop the pending attribute changes so the session stays clean
            self.db.rollback()
            raise

        habit = self.habit_repo.update(self.db, habit)
        self.remember_timezone()
        return habit

    def archive_habit(self, habit_id: int) -> Habit:
        habit = self.get_habit(habit_id)
        return self.habit_repo.archive(self.db, habit)

    def delete_habit(self, habit_id: int) -> None:
        habit = self.get_habit(habit_id)
        self.habit_repo.delete(self.db, habit)
        logger.info(f"Deleted habit {habit_id} for owner {self.owner_id}")

    def remember_timezone(self) -> None:
        """Store the zone the owner's request named, for jobs that run without a request"""
        if self.clock.timezone_name:
            self.settings_repo.save_timezone(self.db, self.owner_id, self.clock.timezone_name)

    @staticmethod
    def _apply_fields(habit: Habit, data: dict) -> None:
        """Flatten schema fields onto the ORM model"""
        if "frequency" in data and data["frequency"] is not None:
            frequency = data.pop("frequency")
            habit.frequency_type = _enum_value(frequency.get("type")) or "daily"
            habit.goal_per_week = frequency.get("goal_per_week")
            days = frequency.get("days_of_week")
            habit.days_of_week = json.dumps(days) if days else None
        else:
            data.pop("frequency", None)

        if "failure_tolerance" in data:
            tolerance = data.pop("failure_tolerance")
            habit.tolerance_window = _enum_value(tolerance["window"]) if tolerance else None
            habit.tolerance_max_failures = tolerance["max_failures"] if tolerance else None

        if "goal_times_by_day" in data:
            times = data.pop("goal_times_by_day")
            habit.goal_times_by_day = json.dumps(times) if times else None

        if "goal_direction" in data:
            habit.goal_direction = _enum_value(data.pop("goal_direction"))

        for key, value in data.items():
            setattr(habit, key, value)


def _enum_value(value):
    return getattr(value, "value", value)
