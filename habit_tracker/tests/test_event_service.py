"""
Tests for EventService.

Tests cover:
1. Saving, editing and clearing days of standard habits
2. Value validation before any store write
3. Avoidance relapses and the avoided-day confirmation flow
"""
import pytest
from sqlalchemy.exc import OperationalError

from habit_tracker.constants import DailyStatus, EventStatus
from habit_tracker.exceptions import (
    ValidationError, HabitNotFoundException, EventNotFoundException, RelapseConfirmationRequired, StoreError
)
from habit_tracker.models import HabitEvent
from habit_tracker.repositories.habit_repository import OwnerSettingsRepository
from habit_tracker.services.date_service import FixedClock
from habit_tracker.services.event_service import EventService

OWNER = "owner-1"


def _events(db_session, habit):
    return db_session.query(HabitEvent).filter(HabitEvent.habit_id == habit.id).all()


class TestStandardDays:
    """Tests for quantity, duration, schedule and simple habits"""

    def test_save_completed_with_value(self, db_session, saved_habit, clock, yesterday):
        habit = saved_habit(type="quantity", goal_value=8, goal_direction="at_least")
        service = EventService(db_session, OWNER, clock)

        resolution = service.save_day_entry(habit.id, yesterday, DailyStatus.COMPLETED, value=9)

        assert resolution.status == DailyStatus.COMPLETED
        assert resolution.event.value == 9
        assert len(_events(db_session, habit)) == 1

    def test_missing_value_blocks_save(self, db_session, saved_habit, clock, today):
        """Should reject before touching the store"""
        habit = saved_habit(type="duration", goal_value=2, goal_direction="at_least")
        service = EventService(db_session, OWNER, clock)
        service.save_day_entry(habit.id, today, DailyStatus.COMPLETED, value=3)

        with pytest.raises(ValidationError):
            service.save_day_entry(habit.id, today, DailyStatus.FAILED)

        events = _events(db_session, habit)
        assert len(events) == 1
        assert events[0].status == EventStatus.COMPLETED.value

    def test_skipped_needs_no_value(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="schedule", goal_time="07:00")
        resolution = EventService(db_session, OWNER, clock).save_day_entry(habit.id, today, DailyStatus.SKIPPED)
        assert resolution.status == DailyStatus.SKIPPED

    def test_value_text_is_parsed(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="duration", goal_value=2, goal_direction="at_least")
        resolution = EventService(db_session, OWNER, clock).save_day_entry(
            habit.id, today, DailyStatus.COMPLETED, value_text="2h 30m"
        )
        assert resolution.event.value == 2.5

    def test_unparseable_value_text(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="schedule", goal_time="07:00")
        with pytest.raises(ValidationError):
            EventService(db_session, OWNER, clock).save_day_entry(
                habit.id, today, DailyStatus.COMPLETED, value_text="early"
            )

    def test_negative_value_rejected(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="quantity", goal_value=8, goal_direction="at_least")
        with pytest.raises(ValidationError):
            EventService(db_session, OWNER, clock).save_day_entry(habit.id, today, DailyStatus.COMPLETED, value=-1)
        assert _events(db_session, habit) == []

    def test_edit_replaces_the_day(self, db_session, saved_habit, clock, today):
        habit = saved_habit()
        service = EventService(db_session, OWNER, clock)
        service.save_day_entry(habit.id, today, DailyStatus.COMPLETED)
        resolution = service.save_day_entry(habit.id, today, DailyStatus.FAILED, note="  tired ")

        events = _events(db_session, habit)
        assert resolution.status == DailyStatus.FAILED
        assert len(events) == 1
        assert events[0].note == "tired"

    def test_not_logged_clears_the_day(self, db_session, saved_habit, clock, yesterday):
        habit = saved_habit()
        service = EventService(db_session, OWNER, clock)
        service.save_day_entry(habit.id, yesterday, DailyStatus.COMPLETED)

        resolution = service.save_day_entry(habit.id, yesterday, DailyStatus.NOT_LOGGED)

        assert resolution.status == DailyStatus.NOT_LOGGED
        assert _events(db_session, habit) == []

    def test_pending_cannot_be_saved(self, db_session, saved_habit, clock, today):
        habit = saved_habit()
        with pytest.raises(ValidationError):
            EventService(db_session, OWNER, clock).save_day_entry(habit.id, today, DailyStatus.PENDING)

    def test_other_owner_cannot_log(self, db_session, saved_habit, clock, today):
        habit = saved_habit()
        with pytest.raises(HabitNotFoundException):
            EventService(db_session, "someone-else", clock).save_day_entry(habit.id, today, DailyStatus.COMPLETED)

    def test_get_day_pending(self, db_session, saved_habit, clock, today):
        habit = saved_habit()
        _, resolution, day_events = EventService(db_session, OWNER, clock).get_day(habit.id, today)

        assert resolution.status == DailyStatus.PENDING
        assert day_events == []

    def test_classify(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="duration", goal_value=2, goal_direction="no_more_than")
        service = EventService(db_session, OWNER, clock)

        assert service.classify(habit.id, today, value=1.8) == (EventStatus.COMPLETED, 1.8)
        assert service.classify(habit.id, today, value_text="2h 30m") == (EventStatus.FAILED, 2.5)

    def test_list_events_range(self, db_session, saved_habit, clock, today, yesterday):
        habit = saved_habit()
        service = EventService(db_session, OWNER, clock)
        service.save_day_entry(habit.id, yesterday, DailyStatus.COMPLETED)
        service.save_day_entry(habit.id, today, DailyStatus.COMPLETED)

        assert len(service.list_events(habit.id)) == 2
        assert [e.date for e in service.list_events(habit.id, start_date=today)] == [today]


class TestAvoidanceDays:
    """Tests for relapses and avoided days"""

    def test_relapses_accumulate(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        service.add_relapse(habit.id, today, note="after lunch")
        service.add_relapse(habit.id, today, note="evening")

        _, resolution, _ = service.get_day(habit.id, today)
        assert resolution.status == DailyStatus.FAILED
        assert [r.note for r in resolution.relapses] == ["after lunch", "evening"]

    def test_avoided_requires_confirmation(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        service.add_relapse(habit.id, today)
        service.add_relapse(habit.id, today)

        with pytest.raises(RelapseConfirmationRequired) as exc_info:
            service.save_day_entry(habit.id, today, DailyStatus.COMPLETED)

        assert exc_info.value.relapse_count == 2
        assert len(_events(db_session, habit)) == 2

    def test_confirmed_avoided_day_removes_relapses(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        service.add_relapse(habit.id, today)
        service.add_relapse(habit.id, today)

        resolution = service.save_day_entry(habit.id, today, DailyStatus.COMPLETED, confirm_relapse_removal=True)

        events = _events(db_session, habit)
        assert resolution.status == DailyStatus.COMPLETED
        assert [e.status for e in events] == [EventStatus.COMPLETED.value]

    def test_skip_after_avoided_does_not_resurrect_relapses(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        service.add_relapse(habit.id, today)
        service.save_day_entry(habit.id, today, DailyStatus.COMPLETED, confirm_relapse_removal=True)

        resolution = service.save_day_entry(habit.id, today, DailyStatus.SKIPPED)

        events = _events(db_session, habit)
        assert resolution.status == DailyStatus.SKIPPED
        assert [e.status for e in events] == [EventStatus.SKIPPED.value]

    def test_skip_keeps_relapses(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        service.add_relapse(habit.id, today)

        resolution = service.save_day_entry(habit.id, today, DailyStatus.SKIPPED)

        assert resolution.status == DailyStatus.FAILED
        assert len(_events(db_session, habit)) == 2

    def test_failed_entry_adds_relapse_and_drops_avoided_marker(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        service.save_day_entry(habit.id, today, DailyStatus.COMPLETED)

        resolution = service.save_day_entry(habit.id, today, DailyStatus.FAILED, note="slipped")

        events = _events(db_session, habit)
        assert resolution.status == DailyStatus.FAILED
        assert [e.status for e in events] == [EventStatus.FAILED.value]
        assert events[0].note == "slipped"

    def test_failed_entry_keeps_value(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)

        service.save_day_entry(habit.id, today, DailyStatus.FAILED, value=3, note="three cigarettes")

        relapse = _events(db_session, habit)[0]
        assert relapse.value == 3
        assert relapse.note == "three cigarettes"

    def test_failed_entry_rejects_negative_value(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        with pytest.raises(ValidationError):
            EventService(db_session, OWNER, clock).save_day_entry(habit.id, today, DailyStatus.FAILED, value=-1)
        assert _events(db_session, habit) == []

    def test_update_and_delete_relapse(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        relapse = service.add_relapse(habit.id, today)

        updated = service.update_relapse(relapse.id, note="stressful day", value=2)
        assert updated.note == "stressful day"
        assert updated.value == 2

        service.delete_relapse(relapse.id)
        assert _events(db_session, habit) == []

    def test_only_relapses_can_be_edited(self, db_session, saved_habit, clock, today):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        service.save_day_entry(habit.id, today, DailyStatus.COMPLETED)
        marker = _events(db_session, habit)[0]

        with pytest.raises(EventNotFoundException):
            service.delete_relapse(marker.id)

    def test_relapse_on_standard_habit_rejected(self, db_session, saved_habit, clock, today):
        habit = saved_habit()
        with pytest.raises(ValidationError):
            EventService(db_session, OWNER, clock).add_relapse(habit.id, today)


class TestStoreFailures:
    """A failed write leaves the day as it was"""

    def _fail_commits(self, db_session, monkeypatch):
        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))
        monkeypatch.setattr(db_session, "commit", failing_commit)

    def test_failed_edit_keeps_previous_entry(self, db_session, saved_habit, clock, today, monkeypatch):
        habit = saved_habit()
        service = EventService(db_session, OWNER, clock)
        service.save_day_entry(habit.id, today, DailyStatus.COMPLETED)

        self._fail_commits(db_session, monkeypatch)
        with pytest.raises(StoreError):
            service.save_day_entry(habit.id, today, DailyStatus.FAILED)
        monkeypatch.undo()

        assert [e.status for e in _events(db_session, habit)] == [EventStatus.COMPLETED.value]

    def test_failed_avoided_day_keeps_relapses(self, db_session, saved_habit, clock, today, monkeypatch):
        habit = saved_habit(type="avoidance")
        service = EventService(db_session, OWNER, clock)
        service.add_relapse(habit.id, today)

        self._fail_commits(db_session, monkeypatch)
        with pytest.raises(StoreError):
            service.save_day_entry(habit.id, today, DailyStatus.COMPLETED, confirm_relapse_removal=True)
        monkeypatch.undo()

        assert [e.status for e in _events(db_session, habit)] == [EventStatus.FAILED.value]


class TestTimezoneRecording:

    def test_save_records_owner_timezone(self, db_session, saved_habit, today):
        habit = saved_habit()
        EventService(db_session, OWNER, FixedClock(today, "America/New_York")).save_day_entry(
            habit.id, today, DailyStatus.COMPLETED
        )
        assert OwnerSettingsRepository.get_timezone(db_session, OWNER) == "America/New_York"
