import json
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, Date, ForeignKey, Index
)
from sqlalchemy.orm import relationship

from habit_tracker.database import Base
from habit_tracker.shared.formatting import format_event_value


class Habit(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default="simple")  # simple, quantity, duration, schedule, avoidance
    archived = Column(Boolean, default=False)
    order = Column("order", Integer, default=0)  # For drag-and-drop reordering
    created_at = Column(DateTime, default=datetime.now)

    # Frequency
    frequency_type = Column(String, default="daily")   # daily, weekly, specific_days
    goal_per_week = Column(Integer, nullable=True)      # For weekly
    days_of_week = Column(String, nullable=True)        # For specific_days: JSON array like '["Mon","Wed"]'

    # Quantity / duration / schedule goals
    goal_value = Column(Float, nullable=True)
    goal_direction = Column(String, nullable=True)      # at_least, no_more_than, by, after
    unit = Column(String, nullable=True)

    # Schedule goals
    goal_time = Column(String, nullable=True)           # "HH:MM"
    goal_times_by_day = Column(String, nullable=True)   # JSON object like '{"Sat": "09:00"}'

    # Avoidance tolerance
    tolerance_window = Column(String, nullable=True)    # weekly, monthly
    tolerance_max_failures = Column(Integer, nullable=True)

    events = relationship(
        "HabitEvent",
        back_populates="habit",
        cascade="all, delete-orphan"
    )

    @property
    def days_of_week_list(self) -> list:
        """Decoded days_of_week (empty list when unset or malformed)"""
        return _load_json(self.days_of_week, list)

    @property
    def goal_times_map(self) -> dict:
        """Decoded goal_times_by_day (empty dict when unset or malformed)"""
        return _load_json(self.goal_times_by_day, dict)


class HabitEvent(Base):
    __tablename__ = "habit_events"
    __table_args__ = (
        Index("ix_habit_events_habit_date", "habit_id", "date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    habit_id = Column(Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)                 # Owner's local calendar day
    status = Column(String, nullable=False)             # completed, skipped, failed
    value = Column(Float, nullable=True)                # Hour-of-day, hours, or count
    note = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    habit = relationship("Habit", back_populates="events")

    @property
    def display_value(self):
        """Value rendered for the habit's type (None without a value)"""
        return format_event_value(self.habit.type if self.habit else None, self.value)


class OwnerSettings(Base):
    __tablename__ = "owner_settings"

    owner_id = Column(String, primary_key=True)
    timezone = Column(String, nullable=True)           # IANA name, last one the owner sent
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


def _load_json(raw, expected_type):
    if not raw:
        return expected_type()
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return expected_type()
    return value if isinstance(value, expected_type) else expected_type()
