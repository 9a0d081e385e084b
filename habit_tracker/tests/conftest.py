"""
Shared fixtures: in-memory database, fixed "today", habit and event factories.
"""
import json
import os
import tempfile
from datetime import date, datetime, timedelta

# Point the app at throwaway resources before any habit_tracker module is imported
os.environ["HABIT_TRACKER_DATABASE_URL"] = "sqlite://"
os.environ["HABIT_TRACKER_API_KEY"] = "test-key"
os.environ["HABIT_TRACKER_DIGEST_ENABLED"] = "false"
os.environ["HABIT_TRACKER_LOG_DIR"] = os.path.join(tempfile.gettempdir(), "habit_tracker_test_logs")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from habit_tracker.database import Base
from habit_tracker.models import Habit, HabitEvent
from habit_tracker.services.date_service import FixedClock

OWNER = "owner-1"


@pytest.fixture
def db_session():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def today():
    # A Wednesday
    return date(2026, 3, 11)


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@pytest.fixture
def clock(today):
    return FixedClock(today)


@pytest.fixture
def habit_factory():
    """Build a transient Habit; lists and dicts are stored as JSON like the API does"""
    def build(**kwargs):
        kwargs.setdefault("owner_id", OWNER)
        kwargs.setdefault("name", "Test habit")
        kwargs.setdefault("type", "simple")
        kwargs.setdefault("frequency_type", "daily")
        kwargs.setdefault("archived", False)
        kwargs.setdefault("order", 0)
        if isinstance(kwargs.get("days_of_week"), list):
            kwargs["days_of_week"] = json.dumps(kwargs["days_of_week"])
        if isinstance(kwargs.get("goal_times_by_day"), dict):
            kwargs["goal_times_by_day"] = json.dumps(kwargs["goal_times_by_day"])
        return Habit(**kwargs)
    return build


@pytest.fixture
def event_factory():
    """Build a transient HabitEvent with increasing ids and timestamps"""
    counter = {"id": 0}

    def build(day, status, habit_id=1, value=None, note=None):
        counter["id"] += 1
        stamp = datetime(2026, 1, 1) + timedelta(seconds=counter["id"])
        return HabitEvent(
            id=counter["id"],
            habit_id=habit_id,
            owner_id=OWNER,
            date=day,
            status=status,
            value=value,
            note=note,
            created_at=stamp,
            updated_at=stamp
        )
    return build


@pytest.fixture
def saved_habit(db_session, habit_factory):
    """Persist a habit built by habit_factory"""
    def save(**kwargs):
        habit = habit_factory(**kwargs)
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        return habit
    return save
