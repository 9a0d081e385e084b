from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Dict, List, Optional

from habit_tracker.constants import (
    HabitType, GoalDirection, FrequencyType, ToleranceWindow,
    EventStatus, DailyStatus, StreakState, TrendGrouping
)


# ===== Habits =====

class FrequencySchema(BaseModel):
    type: FrequencyType = FrequencyType.DAILY
    goal_per_week: Optional[int] = Field(default=None, ge=1, le=7)
    days_of_week: Optional[List[str]] = None  # ["Mon", "Wed", "Fri"]


class FailureToleranceSchema(BaseModel):
    window: ToleranceWindow
    max_failures: int = Field(..., ge=0)


class HabitBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: HabitType = HabitType.SIMPLE
    frequency: FrequencySchema = Field(default_factory=FrequencySchema)

    # Quantity / duration / schedule goals
    goal_value: Optional[float] = Field(default=None, ge=0)
    goal_direction: Optional[GoalDirection] = None
    unit: Optional[str] = Field(default=None, max_length=50)

    # Schedule goals
    goal_time: Optional[str] = None  # "HH:MM"
    goal_times_by_day: Optional[Dict[str, str]] = None  # {"Sat": "09:00"}

    # Avoidance
    failure_tolerance: Optional[FailureToleranceSchema] = None

    order: int = 0


class HabitCreate(HabitBase):
    pass


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    frequency: Optional[FrequencySchema] = None
    goal_value: Optional[float] = Field(None, ge=0)
    goal_direction: Optional[GoalDirection] = None
    unit: Optional[str] = Field(None, max_length=50)
    goal_time: Optional[str] = None
    goal_times_by_day: Optional[Dict[str, str]] = None
    failure_tolerance: Optional[FailureToleranceSchema] = None
    order: Optional[int] = None


class HabitResponse(HabitBase):
    id: int
    owner_id: str
    archived: bool
    created_at: datetime
    goal_text: str

    @classmethod
    def from_habit(cls, habit, goal_text: str) -> "HabitResponse":
        tolerance = None
        if habit.tolerance_window and habit.tolerance_max_failures is not None:
            tolerance = FailureToleranceSchema(
                window=habit.tolerance_window,
                max_failures=habit.tolerance_max_failures
            )
        return cls(
            id=habit.id,
            owner_id=habit.owner_id,
            name=habit.name,
            type=habit.type,
            frequency=FrequencySchema(
                type=habit.frequency_type or FrequencyType.DAILY,
                goal_per_week=habit.goal_per_week,
                days_of_week=habit.days_of_week_list or None
            ),
            goal_value=habit.goal_value,
            goal_direction=habit.goal_direction,
            unit=habit.unit,
            goal_time=habit.goal_time,
            goal_times_by_day=habit.goal_times_map or None,
            failure_tolerance=tolerance,
            order=habit.order or 0,
            archived=bool(habit.archived),
            created_at=habit.created_at,
            goal_text=goal_text
        )


# ===== Events =====

class HabitEventResponse(BaseModel):
    id: int
    habit_id: int
    owner_id: str
    date: date
    status: EventStatus
    value: Optional[float] = None
    display_value: Optional[str] = None  # "7:30 AM", "1h 30m", "8"
    note: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DayEntryRequest(BaseModel):
    """Save the summary status of one day"""
    status: DailyStatus
    value: Optional[float] = None
    value_text: Optional[str] = None  # Free text like "2h 30m", parsed per habit type
    note: Optional[str] = Field(None, max_length=1000)
    confirm_relapse_removal: bool = False


class RelapseCreate(BaseModel):
    note: Optional[str] = Field(None, max_length=1000)
    value: Optional[float] = None


class RelapseUpdate(BaseModel):
    note: Optional[str] = Field(None, max_length=1000)
    value: Optional[float] = None


class DayStatusResponse(BaseModel):
    habit_id: int
    date: date
    status: DailyStatus
    event: Optional[HabitEventResponse] = None
    relapses: List[HabitEventResponse] = []
    has_existing_relapses: bool = False
    goal_text: str


class ClassifyRequest(BaseModel):
    date: date
    value: Optional[float] = None
    value_text: Optional[str] = None


class ClassifyResponse(BaseModel):
    suggested_status: Optional[EventStatus]
    value: Optional[float]


# ===== Parser =====

class ParseRequest(BaseModel):
    text: str = Field(..., max_length=500)


class ParseResponse(BaseModel):
    description: str
    time: Optional[str] = None
    has_time: bool
    display_time: Optional[str] = None


# ===== Streaks & milestones =====

class HabitStreakResponse(BaseModel):
    habit_id: int
    habit_name: str
    habit_type: HabitType
    current_streak: int
    longest_streak: int
    days_logged: int
    last_event_date: Optional[date] = None
    streak_state: StreakState

    class Config:
        from_attributes = True


class StreakStatsResponse(BaseModel):
    total_streaks: int
    active_streaks: int
    average_streak: float
    longest_ever_streak: int
    total_days_logged: int

    class Config:
        from_attributes = True


class StreaksResponse(BaseModel):
    stats: StreakStatsResponse
    habit_streaks: List[HabitStreakResponse]


class MilestoneResponse(BaseModel):
    id: str
    title: str
    description: str
    target: int
    metric: str
    icon: str
    current: float
    achieved: bool
    progress: float

    class Config:
        from_attributes = True


class ToleranceUsageResponse(BaseModel):
    window: ToleranceWindow
    window_start: date
    window_end: date
    relapse_count: int
    max_failures: int
    remaining: int
    exceeded: bool

    class Config:
        from_attributes = True


class TodayHabitResponse(BaseModel):
    habit_id: int
    name: str
    type: HabitType
    status: DailyStatus
    scheduled: bool
    current_streak: int
    goal_text: str
    days_until_next_scheduled: int


class TodayResponse(BaseModel):
    date: date
    completed: int
    total: int
    habits: List[TodayHabitResponse]


# ===== Analytics =====

class HabitAnalyticsResponse(BaseModel):
    habit_id: int
    habit_name: str
    start_date: date
    end_date: date
    scheduled_days: int
    completed_days: int
    failed_days: int
    skipped_days: int
    completion_rate: int  # Percent of completed vs completed+failed days

    class Config:
        from_attributes = True


class DayActivityResponse(BaseModel):
    date: date
    completed: int
    logged: int
    intensity: int = Field(..., ge=0, le=4)

    class Config:
        from_attributes = True


class CompletionTrendResponse(BaseModel):
    period_start: date
    period_end: date
    completed: int
    total: int
    completion_rate: int

    class Config:
        from_attributes = True


class TrendsResponse(BaseModel):
    group_by: TrendGrouping
    trends: List[CompletionTrendResponse]
