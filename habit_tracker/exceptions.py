"""
Custom exceptions for the habit tracker application.
Provides specific exception types for better error handling and recovery.
"""


class HabitTrackerException(Exception):
    """Base exception for habit tracker application"""
    pass


class ConfigurationError(HabitTrackerException):
    """Raised when a habit's goal fields are incomplete or inconsistent for its type"""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid goal configuration for {field}: {message}")


class ValidationError(HabitTrackerException):
    """Raised when a logged value or request payload fails validation"""
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")


class StoreError(HabitTrackerException):
    """Raised when a store (database) operation fails"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Store {operation} failed: {details}")


class HabitNotFoundException(HabitTrackerException):
    """Raised when a habit is not found for the owner"""
    def __init__(self, habit_id: int):
        self.habit_id = habit_id
        super().__init__(f"Habit with ID {habit_id} not found")


class EventNotFoundException(HabitTrackerException):
    """Raised when a habit event is not found for the owner"""
    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__(f"Habit event with ID {event_id} not found")


class RelapseConfirmationRequired(HabitTrackerException):
    """Raised when marking an avoidance day as avoided would delete relapses"""
    def __init__(self, relapse_count: int):
        self.relapse_count = relapse_count
        plural = "" if relapse_count == 1 else "s"
        super().__init__(
            f"Marking this day as avoided will remove {relapse_count} "
            f"existing relapse{plural}; confirmation required"
        )
