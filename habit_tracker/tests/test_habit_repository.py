"""
Tests for the repositories' store error handling.
"""
from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from habit_tracker.exceptions import StoreError
from habit_tracker.models import HabitEvent
from habit_tracker.repositories.habit_repository import (
    HabitRepository, HabitEventRepository, OwnerSettingsRepository
)


def _failing_session():
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
    db.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk I/O error"))
    return db


class TestStoreErrors:
    """Failures surface as StoreError after a rollback"""

    def test_query_failure(self):
        db = _failing_session()

        with pytest.raises(StoreError) as exc_info:
            HabitRepository.list_habits(db, "owner-1")

        assert exc_info.value.operation == "list_habits"
        db.rollback.assert_called_once()

    def test_write_failure(self):
        db = _failing_session()
        event = HabitEvent(habit_id=1, owner_id="owner-1", date=date(2026, 3, 11), status="completed")

        with pytest.raises(StoreError) as exc_info:
            HabitEventRepository.replace_events(db, [], [event])

        assert exc_info.value.operation == "replace_events"
        db.rollback.assert_called_once()

    def test_non_store_errors_pass_through(self):
        db = MagicMock()
        db.query.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            HabitRepository.get_by_id(db, "owner-1", 1)
        db.rollback.assert_not_called()


class TestEventQueries:

    def test_events_scoped_to_owner_and_range(self, db_session, saved_habit, today, yesterday):
        habit = saved_habit()
        db_session.add_all([
            HabitEvent(habit_id=habit.id, owner_id="owner-1", date=yesterday, status="completed"),
            HabitEvent(habit_id=habit.id, owner_id="owner-1", date=today, status="completed"),
            HabitEvent(habit_id=habit.id, owner_id="owner-2", date=today, status="completed"),
        ])
        db_session.commit()

        assert len(HabitEventRepository.list_events(db_session, "owner-1")) == 2
        assert len(HabitEventRepository.list_events(db_session, "owner-1", habit.id, today, today)) == 1

    def test_list_owner_ids(self, db_session, saved_habit):
        saved_habit(owner_id="a")
        saved_habit(owner_id="a")
        saved_habit(owner_id="b", archived=True)

        assert HabitRepository.list_owner_ids(db_session) == ["a"]


class TestReplaceEvents:
    """Deletes and adds commit together"""

    def test_replace(self, db_session, saved_habit, today):
        habit = saved_habit()
        old = HabitEvent(habit_id=habit.id, owner_id="owner-1", date=today, status="failed")
        db_session.add(old)
        db_session.commit()

        new = HabitEvent(habit_id=habit.id, owner_id="owner-1", date=today, status="completed")
        HabitEventRepository.replace_events(db_session, [old], [new])

        events = HabitEventRepository.list_events(db_session, "owner-1")
        assert [e.status for e in events] == ["completed"]
        assert new.id is not None

    def test_failed_commit_keeps_old_events(self, db_session, saved_habit, today, monkeypatch):
        habit = saved_habit()
        db_session.add(HabitEvent(habit_id=habit.id, owner_id="owner-1", date=today, status="failed"))
        db_session.commit()
        old = HabitEventRepository.list_events(db_session, "owner-1")

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        new = HabitEvent(habit_id=habit.id, owner_id="owner-1", date=today, status="completed")
        with pytest.raises(StoreError):
            HabitEventRepository.replace_events(db_session, old, [new])
        monkeypatch.undo()

        events = HabitEventRepository.list_events(db_session, "owner-1")
        assert [e.status for e in events] == ["failed"]


class TestOwnerSettings:

    def test_timezone_round_trip(self, db_session):
        assert OwnerSettingsRepository.get_timezone(db_session, "owner-1") is None

        OwnerSettingsRepository.save_timezone(db_session, "owner-1", "Europe/Berlin")
        OwnerSettingsRepository.save_timezone(db_session, "owner-1", "Pacific/Auckland")

        assert OwnerSettingsRepository.get_timezone(db_session, "owner-1") == "Pacific/Auckland"
        assert OwnerSettingsRepository.get_timezone(db_session, "owner-2") is None
