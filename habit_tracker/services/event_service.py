"""
Habit event service.
Saves a day's entry and manages avoidance relapses through the store.

Validation always happens before the first store mutation. Edits of a day
are delete-then-recreate inside one transaction, so a failed write leaves
the day as it was. Two concurrent edits of the same day are not detected
and the last write to reach the store wins.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from habit_tracker.models import Habit, HabitEvent
from habit_tracker.constants import DailyStatus, EventStatus, HabitType, VALUE_REQUIRED_TYPES
from habit_tracker.repositories.habit_repository import (
    HabitRepository, HabitEventRepository, OwnerSettingsRepository
)
from habit_tracker.services.date_service import Clock
from habit_tracker.services.day_status_service import DayStatusService, DayResolution
from habit_tracker.services.goal_service import GoalService
from habit_tracker.services.input_parser import parse_value
from habit_tracker.services.status_service import StatusService
from habit_tracker.exceptions import (
    ValidationError, HabitNotFoundException, EventNotFoundException, RelapseConfirmationRequired
)

logger = logging.getLogger("habit_tracker.events")


class EventService:
    """Service for logging habit days and relapses"""

    def __init__(self, db: Session, owner_id: str, clock: Optional[Clock] = None):
        self.db = db
        self.owner_id = owner_id
        self.clock = clock or Clock()
        self.habit_repo = HabitRepository()
        self.event_repo = HabitEventRepository()
        self.settings_repo = OwnerSettingsRepository()

    # ===== Queries =====

    def get_habit(self, habit_id: int) -> Habit:
        habit = self.habit_repo.get_by_id(self.db, self.owner_id, habit_id)
        if not habit:
            raise HabitNotFoundException(habit_id)
        return habit

    def list_events(
        self,
        habit_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[HabitEvent]:
        if habit_id is not None:
            self.get_habit(habit_id)
        return self.event_repo.list_events(self.db, self.owner_id, habit_id, start_date, end_date)

    def get_day(self, habit_id: int, day: date) -> Tuple[Habit, DayResolution, List[HabitEvent]]:
        """Resolve one day; also returns the day's raw events"""
        habit = self.get_habit(habit_id)
        day_events = self._day_events(habit, day)
        resolution = DayStatusService.resolve(habit, day, day_events, self.clock.today())
        return habit, resolution, day_events

    def classify(self, habit_id: int, day: date, value: Optional[float] = None,
                 value_text: Optional[str] = None) -> Tuple[Optional[EventStatus], Optional[float]]:
        """Suggest a status for a value (free text is parsed per habit type)"""
        habit = self.get_habit(habit_id)
        value = self._resolve_value(habit, value, value_text)
        return StatusService.classify_for_habit(habit, day, value), value

    # ===== Day entry =====

    def save_day_entry(
        self,
        habit_id: int,
        day: date,
        status: DailyStatus,
        value: Optional[float] = None,
        value_text: Optional[str] = None,
        note: Optional[str] = None,
        confirm_relapse_removal: bool = False
    ) -> DayResolution:
        """
        Record the status of one day.

        Args:
            habit_id: Habit to log against
            day: Owner's local calendar day
            status: Completed, Failed, Skipped or NotLogged (clears the day)
            value: Numeric value (count, hours, or fractional hour of day)
            value_text: Free text value, used when value is None
            note: Optional note
            confirm_relapse_removal: Required to mark an avoidance day avoided
                when relapses exist; those relapses are then deleted

        Returns:
            The day's resolution after the save

        Raises:
            ValidationError: Missing/invalid value or status
            RelapseConfirmationRequired: Relapses exist and removal was not confirmed
            StoreError: Propagated from the store
        """
        if status == DailyStatus.PENDING:
            raise ValidationError("status", "Pending is derived and cannot be saved")

        habit = self.get_habit(habit_id)
        habit_type = GoalService.habit_type(habit)
        note = note.strip() if note and note.strip() else None
        day_events = self._day_events(habit, day)

        if habit_type == HabitType.AVOIDANCE:
            self._save_avoidance_day(habit, day, status, value, value_text, note, day_events, confirm_relapse_removal)
        else:
            self._save_standard_day(habit, habit_type, day, status, value, value_text, note, day_events)

        if self.clock.timezone_name:
            self.settings_repo.save_timezone(self.db, self.owner_id, self.clock.timezone_name)
        return DayStatusService.resolve(habit, day, self._day_events(habit, day), self.clock.today())

    # ===== Relapses =====

    def add_relapse(self, habit_id: int, day: date, note: Optional[str] = None,
                    value: Optional[float] = None) -> HabitEvent:
        """
        Record one relapse on an avoidance day.
        An existing avoided (completed) marker for the day is removed, since a
        relapse contradicts it.
        """
        habit = self.get_habit(habit_id)
        self._require_avoidance(habit)
        self._validate_non_negative(value)

        summary = DayStatusService.summary_event(self._day_events(habit, day), day)
        superseded = [summary] if summary is not None and summary.status == EventStatus.COMPLETED.value else []

        relapse = self._new_event(habit, day, EventStatus.FAILED, value, note)
        self.event_repo.replace_events(self.db, superseded, [relapse])
        logger.info(f"Relapse {relapse.id} recorded for habit {habit.id} on {day}")
        return relapse

    def update_relapse(self, event_id: int, note: Optional[str] = None,
                       value: Optional[float] = None) -> HabitEvent:
        relapse = self._get_relapse(event_id)
        self._validate_non_negative(value)
        note = note.strip() if note and note.strip() else None
        return self.event_repo.update(self.db, relapse, {"note": note, "value": value})

    def delete_relapse(self, event_id: int) -> None:
        relapse = self._get_relapse(event_id)
        self.event_repo.delete(self.db, relapse)
        logger.info(f"Relapse {event_id} deleted")

    # ===== Internals =====

    def _save_avoidance_day(self, habit: Habit, day: date, status: DailyStatus,
                            value: Optional[float], value_text: Optional[str],
                            note: Optional[str], day_events: List[HabitEvent],
                            confirm_relapse_removal: bool) -> None:
        if status == DailyStatus.FAILED:
            self.add_relapse(habit.id, day, note=note, value=self._resolve_value(habit, value, value_text))
            return

        relapses = DayStatusService.relapses_on(day_events, day)
        summary = DayStatusService.summary_event(day_events, day)

        if status == DailyStatus.COMPLETED and relapses and not confirm_relapse_removal:
            raise RelapseConfirmationRequired(len(relapses))

        # Only an avoided day supersedes relapses; skipping or clearing keeps them
        to_delete = [summary] if summary is not None else []
        if status == DailyStatus.COMPLETED and relapses:
            to_delete.extend(relapses)
            logger.info(f"Removing {len(relapses)} relapse(s) of habit {habit.id} on {day}")

        to_create = []
        if status in (DailyStatus.COMPLETED, DailyStatus.SKIPPED):
            to_create.append(self._new_event(habit, day, EventStatus(status.value), None, note))

        if to_delete or to_create:
            self.event_repo.replace_events(self.db, to_delete, to_create)

    def _save_standard_day(self, habit: Habit, habit_type: HabitType, day: date,
                           status: DailyStatus, value: Optional[float],
                           value_text: Optional[str], note: Optional[str],
                           day_events: List[HabitEvent]) -> None:
        if status == DailyStatus.NOT_LOGGED:
            if day_events:
                self.event_repo.delete_many(self.db, day_events)
            return

        value = self._resolve_value(habit, value, value_text)
        if value is None and status != DailyStatus.SKIPPED and habit_type in VALUE_REQUIRED_TYPES:
            raise ValidationError("value", "Please enter a time or value for this day")
        self._validate_non_negative(value)

        # Edit == delete then recreate in one transaction, keeping one event per (habit, day)
        self.event_repo.replace_events(
            self.db, day_events, [self._new_event(habit, day, EventStatus(status.value), value, note)]
        )

    def _day_events(self, habit: Habit, day: date) -> List[HabitEvent]:
        return self.event_repo.list_events(self.db, self.owner_id, habit.id, day, day)

    def _get_relapse(self, event_id: int) -> HabitEvent:
        event = self.event_repo.get_by_id(self.db, self.owner_id, event_id)
        if not event or event.status != EventStatus.FAILED.value:
            raise EventNotFoundException(event_id)
        self._require_avoidance(self.get_habit(event.habit_id))
        return event

    def _new_event(self, habit: Habit, day: date, status: EventStatus,
                   value: Optional[float], note: Optional[str]) -> HabitEvent:
        return HabitEvent(
            habit_id=habit.id,
            owner_id=self.owner_id,
            date=day,
            status=status.value,
            value=value,
            note=note
        )

    @staticmethod
    def _resolve_value(habit: Habit, value: Optional[float], value_text: Optional[str]) -> Optional[float]:
        if value is not None:
            return value
        if value_text:
            parsed = parse_value(value_text, GoalService.habit_type(habit))
            if parsed is None:
                raise ValidationError("value", f"Could not understand '{value_text}'")
            return parsed
        return None

    @staticmethod
    def _validate_non_negative(value: Optional[float]) -> None:
        if value is not None and value < 0:
            raise ValidationError("value", "Value cannot be negative")

    @staticmethod
    def _require_avoidance(habit: Habit) -> None:
        if GoalService.habit_type(habit) != HabitType.AVOIDANCE:
            raise ValidationError("habit", "Relapses can only be recorded for avoidance habits")
