"""
Habit and habit event HTTP routes.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from habit_tracker.database import get_db
from habit_tracker.auth import verify_api_key, get_owner_id
from habit_tracker.api.dependencies import get_clock
from habit_tracker.schemas import (
    HabitCreate, HabitUpdate, HabitResponse, HabitEventResponse,
    DayEntryRequest, DayStatusResponse, RelapseCreate, RelapseUpdate,
    ClassifyRequest, ClassifyResponse, ToleranceUsageResponse
)
from habit_tracker.services.date_service import Clock, DateService
from habit_tracker.services.day_status_service import DayStatusService
from habit_tracker.services.event_service import EventService
from habit_tracker.services.goal_service import GoalService
from habit_tracker.services.habit_service import HabitService
from habit_tracker.services.progress_service import ProgressService

router = APIRouter(prefix="/api", tags=["habits"], dependencies=[Depends(verify_api_key)])


def _habit_response(habit) -> HabitResponse:
    return HabitResponse.from_habit(habit, GoalService.goal_text(habit))


# ===== HABITS =====

@router.get("/habits", response_model=List[HabitResponse])
def list_habits(
    include_archived: bool = False,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id)
):
    """Get owner's habits in display order"""
    habits = HabitService(db, owner_id).list_habits(include_archived)
    return [_habit_response(h) for h in habits]


@router.post("/habits", response_model=HabitResponse, status_code=status.HTTP_201_CREATED)
def create_habit(
    habit: HabitCreate,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Create a new habit"""
    return _habit_response(HabitService(db, owner_id, clock).create_habit(habit))


@router.get("/habits/{habit_id}", response_model=HabitResponse)
def get_habit(habit_id: int, db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id)):
    return _habit_response(HabitService(db, owner_id).get_habit(habit_id))


@router.put("/habits/{habit_id}", response_model=HabitResponse)
def update_habit(
    habit_id: int,
    habit_update: HabitUpdate,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    return _habit_response(HabitService(db, owner_id, clock).update_habit(habit_id, habit_update))


@router.post("/habits/{habit_id}/archive", response_model=HabitResponse)
def archive_habit(habit_id: int, db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id)):
    return _habit_response(HabitService(db, owner_id).archive_habit(habit_id))


@router.delete("/habits/{habit_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_habit(habit_id: int, db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id)):
    """Delete a habit and its history"""
    HabitService(db, owner_id).delete_habit(habit_id)


# ===== EVENTS & DAYS =====

@router.get("/habits/{habit_id}/events", response_model=List[HabitEventResponse])
def list_events(
    habit_id: int,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Get a habit's events, optionally limited to an inclusive date range"""
    return EventService(db, owner_id, clock).list_events(habit_id, start_date, end_date)


@router.get("/habits/{habit_id}/days/{day}", response_model=DayStatusResponse)
def get_day(
    habit_id: int,
    day: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Resolved status of a habit on a day (format: YYYY-MM-DD)"""
    target = DateService.parse_day(day)
    habit, resolution, day_events = EventService(db, owner_id, clock).get_day(habit_id, target)
    return _day_response(habit, resolution, day_events)


@router.put("/habits/{habit_id}/days/{day}", response_model=DayStatusResponse)
def save_day(
    habit_id: int,
    day: str,
    entry: DayEntryRequest,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Save a day's status. NotLogged clears the day."""
    target = DateService.parse_day(day)
    service = EventService(db, owner_id, clock)
    service.save_day_entry(
        habit_id,
        target,
        entry.status,
        value=entry.value,
        value_text=entry.value_text,
        note=entry.note,
        confirm_relapse_removal=entry.confirm_relapse_removal
    )
    habit, resolution, day_events = service.get_day(habit_id, target)
    return _day_response(habit, resolution, day_events)


@router.post("/habits/{habit_id}/classify", response_model=ClassifyResponse)
def classify_value(
    habit_id: int,
    request: ClassifyRequest,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id)
):
    """Suggest Completed/Failed for a value against the habit's goal"""
    suggested, value = EventService(db, owner_id).classify(
        habit_id, request.date, request.value, request.value_text
    )
    return ClassifyResponse(suggested_status=suggested, value=value)


@router.get("/habits/{habit_id}/tolerance", response_model=Optional[ToleranceUsageResponse])
def get_tolerance(
    habit_id: int,
    day: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Relapses used in the avoidance tolerance window containing the day (default today)"""
    usage = ProgressService(db, owner_id, clock).get_tolerance_usage(habit_id, day or clock.today())
    return ToleranceUsageResponse.model_validate(usage) if usage else None


# ===== RELAPSES =====

@router.post(
    "/habits/{habit_id}/days/{day}/relapses",
    response_model=HabitEventResponse,
    status_code=status.HTTP_201_CREATED
)
def add_relapse(
    habit_id: int,
    day: str,
    relapse: RelapseCreate,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id)
):
    target = DateService.parse_day(day)
    return EventService(db, owner_id).add_relapse(habit_id, target, relapse.note, relapse.value)


@router.put("/relapses/{event_id}", response_model=HabitEventResponse)
def update_relapse(
    event_id: int,
    relapse: RelapseUpdate,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id)
):
    return EventService(db, owner_id).update_relapse(event_id, relapse.note, relapse.value)


@router.delete("/relapses/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_relapse(event_id: int, db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id)):
    EventService(db, owner_id).delete_relapse(event_id)


def _day_response(habit, resolution, day_events) -> DayStatusResponse:
    return DayStatusResponse(
        habit_id=habit.id,
        date=resolution.day,
        status=resolution.status,
        event=HabitEventResponse.model_validate(resolution.event) if resolution.event else None,
        relapses=[HabitEventResponse.model_validate(r) for r in resolution.relapses],
        has_existing_relapses=DayStatusService.has_existing_relapses(habit, resolution.day, day_events),
        goal_text=GoalService.goal_text(habit, resolution.day)
    )
