"""
Background scheduler.
Handles:
- Daily milestone digest at the configured time
"""

import logging
from datetime import date, datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from habit_tracker.constants import DIGEST_ENABLED, DIGEST_TIME
from habit_tracker.database import SessionLocal
from habit_tracker.repositories.habit_repository import HabitRepository, OwnerSettingsRepository
from habit_tracker.services.date_service import Clock, InstantClock
from habit_tracker.services.milestone_service import MilestoneService
from habit_tracker.services.progress_service import ProgressService

logger = logging.getLogger("habit_tracker.scheduler")

# Create scheduler instance
scheduler = AsyncIOScheduler()

# Day the digest last ran; the job fires every minute but runs once per day
_last_digest_date: Optional[date] = None


def _normalize_time(time_str: Optional[str]) -> str:
    """'21:00' -> '2100', None -> '0000'"""
    if not time_str:
        return "0000"
    return time_str.replace(":", "")


def build_digest(db, clock: Clock) -> dict:
    """
    Streak stats and achieved milestones for every owner.

    Each owner is evaluated on their own calendar day: the clock's instant
    seen from the owner's stored timezone, or the clock's zone when none was
    ever recorded.
    """
    now = clock.now()
    digest = {}
    for owner_id in HabitRepository.list_owner_ids(db):
        timezone = OwnerSettingsRepository.get_timezone(db, owner_id) or clock.timezone.key
        owner_clock = InstantClock(now, timezone)
        stats, _ = ProgressService(db, owner_id, owner_clock).get_streaks()
        achieved = MilestoneService.achieved(stats)
        digest[owner_id] = {
            "today": owner_clock.today(),
            "active_streaks": stats.active_streaks,
            "longest_ever_streak": stats.longest_ever_streak,
            "total_days_logged": stats.total_days_logged,
            "milestones": [m.id for m in achieved],
        }
    return digest


async def run_milestone_digest(clock: Optional[Clock] = None):
    """Job: log each owner's streak stats and achieved milestones"""
    global _last_digest_date

    if not DIGEST_ENABLED:
        return

    clock = clock or Clock()
    now = clock.now()
    today = now.date()
    current_time = now.strftime("%H%M")
    target_time = _normalize_time(DIGEST_TIME)

    if int(current_time) < int(target_time) or _last_digest_date == today:
        return

    db = SessionLocal()
    try:
        logger.info(f"Running milestone digest for {today}")
        digest = build_digest(db, clock)
        for owner_id, summary in digest.items():
            logger.info(
                f"Digest {owner_id}: {summary['active_streaks']} active, "
                f"longest {summary['longest_ever_streak']}, "
                f"{summary['total_days_logged']} days logged, "
                f"milestones {summary['milestones']}"
            )
        _last_digest_date = today
    except Exception as e:
        logger.error(f"Scheduler Error (Milestone Digest): {e}")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler"""
    if scheduler.running:
        return

    scheduler.add_job(
        run_milestone_digest,
        CronTrigger(minute='*'),
        id='milestone_digest',
        replace_existing=True
    )
    scheduler.start()
    logger.info(f"Scheduler started at {datetime.now().isoformat()}")


def stop_scheduler():
    """Stop the background scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
