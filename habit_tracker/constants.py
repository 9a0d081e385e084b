"""
Application constants, enums and environment-driven configuration.
"""
import os
from enum import Enum


# ===== CONFIGURATION =====

DATABASE_URL = os.getenv("HABIT_TRACKER_DATABASE_URL", "sqlite:///./habit_tracker.db")
API_KEY = os.getenv("HABIT_TRACKER_API_KEY", "your-secret-key-change-me")

DEFAULT_LOG_DIRECTORY_PROD = "/var/log/habit_tracker"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"
LOG_DIR = os.getenv("HABIT_TRACKER_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("HABIT_TRACKER_LOG_FILE", "app.log")

DEFAULT_TIMEZONE = os.getenv("HABIT_TRACKER_TIMEZONE", "UTC")

# Current streak scan horizon (days, today included)
STREAK_LOOKBACK_DAYS = int(os.getenv("HABIT_TRACKER_STREAK_LOOKBACK_DAYS", "30"))

# Longest date range accepted by the analytics endpoints (days, inclusive)
ANALYTICS_MAX_RANGE_DAYS = int(os.getenv("HABIT_TRACKER_ANALYTICS_MAX_RANGE_DAYS", "366"))
# Range used when a caller gives no start date
DEFAULT_ANALYTICS_DAYS = 30

DIGEST_ENABLED = os.getenv("HABIT_TRACKER_DIGEST_ENABLED", "true").lower() in ("1", "true", "yes")
DIGEST_TIME = os.getenv("HABIT_TRACKER_DIGEST_TIME", "21:00")

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "HABIT_TRACKER_CORS_ORIGINS",
        "http://localhost:3000,http://localhost:8081"
    ).split(",")
    if origin.strip()
]


# ===== HABIT TYPES =====

class HabitType(str, Enum):
    SIMPLE = "simple"
    QUANTITY = "quantity"
    DURATION = "duration"
    SCHEDULE = "schedule"
    AVOIDANCE = "avoidance"


class GoalDirection(str, Enum):
    AT_LEAST = "at_least"
    NO_MORE_THAN = "no_more_than"
    BY = "by"
    AFTER = "after"


class FrequencyType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    SPECIFIC_DAYS = "specific_days"


class ToleranceWindow(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# ===== STATUSES =====

class EventStatus(str, Enum):
    """Status stored on a HabitEvent"""
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class DailyStatus(str, Enum):
    """Derived per-day status (never persisted)"""
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    PENDING = "pending"
    NOT_LOGGED = "not_logged"


class StreakState(str, Enum):
    NEW = "new"
    ACTIVE = "active"
    BROKEN = "broken"


class TrendGrouping(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# Direction sets allowed per habit type
MEASURED_DIRECTIONS = (GoalDirection.AT_LEAST, GoalDirection.NO_MORE_THAN)
SCHEDULE_DIRECTIONS = (GoalDirection.BY, GoalDirection.AFTER)

# Types whose non-skipped entries must carry a numeric value
VALUE_REQUIRED_TYPES = (HabitType.QUANTITY, HabitType.DURATION, HabitType.SCHEDULE)

# Weekday keys, index == date.weekday()
WEEKDAY_KEYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
WEEKEND_KEYS = ("Sat", "Sun")

# Display-only fallbacks for goal labels (never used for pass/fail)
DISPLAY_FALLBACK_DURATION_HOURS = 2
DISPLAY_FALLBACK_QUANTITY = 10
