"""
Streak, milestone, analytics, daily overview and input parsing routes.
"""
from datetime import date, timedelta
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from habit_tracker.database import get_db
from habit_tracker.auth import verify_api_key, get_owner_id
from habit_tracker.api.dependencies import get_clock
from habit_tracker.constants import DailyStatus, TrendGrouping, DEFAULT_ANALYTICS_DAYS
from habit_tracker.schemas import (
    HabitStreakResponse, StreakStatsResponse, StreaksResponse, MilestoneResponse,
    TodayHabitResponse, TodayResponse, ParseRequest, ParseResponse,
    HabitAnalyticsResponse, DayActivityResponse, CompletionTrendResponse, TrendsResponse
)
from habit_tracker.services.date_service import Clock
from habit_tracker.services.input_parser import parse_smart_input, format_smart_time
from habit_tracker.services.progress_service import ProgressService

router = APIRouter(prefix="/api", tags=["progress"], dependencies=[Depends(verify_api_key)])


def _date_range(start_date: Optional[date], end_date: Optional[date], clock: Clock) -> Tuple[date, date]:
    end = end_date or clock.today()
    start = start_date or end - timedelta(days=DEFAULT_ANALYTICS_DAYS - 1)
    return start, end


@router.get("/streaks", response_model=StreaksResponse)
def get_streaks(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Per-habit streaks and aggregate stats for the owner's active habits"""
    stats, streaks = ProgressService(db, owner_id, clock).get_streaks()
    return StreaksResponse(
        stats=StreakStatsResponse.model_validate(stats),
        habit_streaks=[HabitStreakResponse.model_validate(s) for s in streaks]
    )


@router.get("/streaks/leaderboard", response_model=List[HabitStreakResponse])
def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    streaks = ProgressService(db, owner_id, clock).get_leaderboard(limit)
    return [HabitStreakResponse.model_validate(s) for s in streaks]


@router.get("/streaks/{habit_id}", response_model=HabitStreakResponse)
def get_habit_streak(
    habit_id: int,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    return HabitStreakResponse.model_validate(ProgressService(db, owner_id, clock).get_habit_streak(habit_id))


@router.get("/milestones", response_model=List[MilestoneResponse])
def get_milestones(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Milestone catalog evaluated against current stats, in catalog order"""
    milestones = ProgressService(db, owner_id, clock).get_milestones()
    return [MilestoneResponse.model_validate(m) for m in milestones]


# ===== ANALYTICS =====

@router.get("/analytics/habits", response_model=List[HabitAnalyticsResponse])
def get_all_habit_analytics(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Completion rate of every active habit over an inclusive range (default: last 30 days)"""
    start, end = _date_range(start_date, end_date, clock)
    analytics = ProgressService(db, owner_id, clock).get_all_habit_analytics(start, end)
    return [HabitAnalyticsResponse.model_validate(a) for a in analytics]


@router.get("/analytics/habits/{habit_id}", response_model=HabitAnalyticsResponse)
def get_habit_analytics(
    habit_id: int,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    start, end = _date_range(start_date, end_date, clock)
    analytics = ProgressService(db, owner_id, clock).get_habit_analytics(habit_id, start, end)
    return HabitAnalyticsResponse.model_validate(analytics)


@router.get("/analytics/heatmap", response_model=List[DayActivityResponse])
def get_heatmap(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Completed and logged habit counts for every day of the range"""
    start, end = _date_range(start_date, end_date, clock)
    days = ProgressService(db, owner_id, clock).get_heatmap(start, end)
    return [DayActivityResponse.model_validate(d) for d in days]


@router.get("/analytics/trends", response_model=TrendsResponse)
def get_trends(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    group_by: TrendGrouping = Query(TrendGrouping.WEEK),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    start, end = _date_range(start_date, end_date, clock)
    trends = ProgressService(db, owner_id, clock).get_trends(start, end, group_by)
    return TrendsResponse(
        group_by=group_by,
        trends=[CompletionTrendResponse.model_validate(t) for t in trends]
    )


# ===== TODAY & PARSING =====

@router.get("/today", response_model=TodayResponse)
def get_today(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_owner_id),
    clock: Clock = Depends(get_clock)
):
    """Today's status for every active habit"""
    today, overview = ProgressService(db, owner_id, clock).get_today()
    habits = [TodayHabitResponse.model_validate(h, from_attributes=True) for h in overview]
    return TodayResponse(
        date=today,
        completed=sum(1 for h in overview if h.status == DailyStatus.COMPLETED),
        total=len(overview),
        habits=habits
    )


@router.post("/parse", response_model=ParseResponse)
def parse_input(request: ParseRequest):
    """Split free text like "7:30 am walk" into a time and a description"""
    parsed = parse_smart_input(request.text)
    return ParseResponse(
        description=parsed.description,
        time=parsed.time,
        has_time=parsed.has_time,
        display_time=format_smart_time(parsed.time) if parsed.has_time else None
    )
