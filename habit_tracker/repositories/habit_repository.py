"""
Habit repository - Data access layer for Habit, HabitEvent and OwnerSettings models.
Every query is scoped to an owner. Database failures are rolled back and
re-raised as StoreError; nothing here retries.
"""
import functools
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from habit_tracker.models import Habit, HabitEvent, OwnerSettings
from habit_tracker.exceptions import StoreError

logger = logging.getLogger("habit_tracker.store")


def store_operation(operation: str):
    """Translate SQLAlchemy failures of a repository call into StoreError"""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(db: Session, *args, **kwargs):
            try:
                return func(db, *args, **kwargs)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Store operation '{operation}' failed: {e}")
                raise StoreError(operation, str(e)) from e
        return wrapper
    return decorator


class HabitRepository:
    """Repository for Habit data access"""

    @staticmethod
    @store_operation("list_habits")
    def list_habits(db: Session, owner_id: str, include_archived: bool = False) -> List[Habit]:
        """Get owner's habits ordered by display order"""
        query = db.query(Habit).filter(Habit.owner_id == owner_id)
        if not include_archived:
            query = query.filter(Habit.archived == False)
        return query.order_by(Habit.order, Habit.id).all()

    @staticmethod
    @store_operation("get_habit")
    def get_by_id(db: Session, owner_id: str, habit_id: int) -> Optional[Habit]:
        """Get habit by ID"""
        return db.query(Habit).filter(
            Habit.id == habit_id,
            Habit.owner_id == owner_id
        ).first()

    @staticmethod
    @store_operation("list_owners")
    def list_owner_ids(db: Session) -> List[str]:
        """Distinct owners that have at least one active habit"""
        rows = db.query(Habit.owner_id).filter(Habit.archived == False).distinct().all()
        return [row[0] for row in rows]

    @staticmethod
    @store_operation("create_habit")
    def create(db: Session, habit: Habit) -> Habit:
        """Create new habit"""
        db.add(habit)
        db.commit()
        db.refresh(habit)
        return habit

    @staticmethod
    @store_operation("update_habit")
    def update(db: Session, habit: Habit) -> Habit:
        """Update existing habit"""
        db.commit()
        db.refresh(habit)
        return habit

    @staticmethod
    @store_operation("archive_habit")
    def archive(db: Session, habit: Habit) -> Habit:
        """Archive a habit (kept with its history, hidden from default lists)"""
        habit.archived = True
        db.commit()
        db.refresh(habit)
        return habit

    @staticmethod
    @store_operation("delete_habit")
    def delete(db: Session, habit: Habit) -> None:
        """Delete a habit together with its events"""
        db.delete(habit)
        db.commit()


class HabitEventRepository:
    """Repository for HabitEvent data access"""

    @staticmethod
    @store_operation("list_events")
    def list_events(
        db: Session,
        owner_id: str,
        habit_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[HabitEvent]:
        """Get owner's events, optionally for one habit and an inclusive date range"""
        query = db.query(HabitEvent).filter(HabitEvent.owner_id == owner_id)
        if habit_id is not None:
            query = query.filter(HabitEvent.habit_id == habit_id)
        if start_date is not None:
            query = query.filter(HabitEvent.date >= start_date)
        if end_date is not None:
            query = query.filter(HabitEvent.date <= end_date)
        return query.order_by(HabitEvent.date, HabitEvent.created_at, HabitEvent.id).all()

    @staticmethod
    @store_operation("get_event")
    def get_by_id(db: Session, owner_id: str, event_id: int) -> Optional[HabitEvent]:
        """Get event by ID"""
        return db.query(HabitEvent).filter(
            HabitEvent.id == event_id,
            HabitEvent.owner_id == owner_id
        ).first()

    @staticmethod
    @store_operation("update_event")
    def update(db: Session, event: HabitEvent, patch: dict) -> HabitEvent:
        """Apply a field patch to an event"""
        for key, value in patch.items():
            setattr(event, key, value)
        event.updated_at = datetime.now()
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    @store_operation("delete_event")
    def delete(db: Session, event: HabitEvent) -> None:
        """Delete an event"""
        db.delete(event)
        db.commit()

    @staticmethod
    @store_operation("delete_events")
    def delete_many(db: Session, events: List[HabitEvent]) -> int:
        """Delete several events in one transaction"""
        for event in events:
            db.delete(event)
        db.commit()
        return len(events)

    @staticmethod
    @store_operation("replace_events")
    def replace_events(db: Session, old_events: List[HabitEvent], new_events: List[HabitEvent]) -> List[HabitEvent]:
        """Delete old_events and add new_events in one transaction"""
        for event in old_events:
            db.delete(event)
        db.add_all(new_events)
        db.commit()
        for event in new_events:
            db.refresh(event)
        return new_events


class OwnerSettingsRepository:
    """Repository for per-owner settings"""

    @staticmethod
    @store_operation("get_timezone")
    def get_timezone(db: Session, owner_id: str) -> Optional[str]:
        """Stored timezone name of an owner, None when never recorded"""
        settings = db.query(OwnerSettings).filter(OwnerSettings.owner_id == owner_id).first()
        return settings.timezone if settings else None

    @staticmethod
    @store_operation("save_timezone")
    def save_timezone(db: Session, owner_id: str, timezone: str) -> OwnerSettings:
        """Create or update the owner's timezone"""
        settings = db.query(OwnerSettings).filter(OwnerSettings.owner_id == owner_id).first()
        if settings is None:
            settings = OwnerSettings(owner_id=owner_id, timezone=timezone)
            db.add(settings)
        elif settings.timezone == timezone:
            return settings
        else:
            settings.timezone = timezone
        db.commit()
        db.refresh(settings)
        return settings
