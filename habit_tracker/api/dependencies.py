"""
Shared request dependencies.
"""
from typing import Optional

from fastapi import Header

from habit_tracker.services.date_service import Clock


async def get_clock(x_timezone: Optional[str] = Header(None)) -> Clock:
    """Clock in the owner's timezone (X-Timezone header, else the configured default)"""
    return Clock(x_timezone)
