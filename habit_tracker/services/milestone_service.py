"""
Milestone evaluation service.
A fixed, ordered catalog of achievements, each bound to one StreakStats field.
New milestones are added by appending to MILESTONE_CATALOG.
"""
from dataclasses import dataclass
from operator import attrgetter
from typing import Callable, List, Sequence

from habit_tracker.services.streak_service import StreakStats


@dataclass(frozen=True)
class MilestoneDefinition:
    id: str
    title: str
    description: str
    target: int
    metric: str
    icon: str

    @property
    def metric_selector(self) -> Callable[[StreakStats], float]:
        return attrgetter(self.metric)


@dataclass(frozen=True)
class Milestone:
    id: str
    title: str
    description: str
    target: int
    metric: str
    icon: str
    current: float
    achieved: bool

    @property
    def progress(self) -> float:
        if self.target <= 0:
            return 1.0
        return min(self.current / self.target, 1.0)


MILESTONE_CATALOG: Sequence[MilestoneDefinition] = (
    MilestoneDefinition(
        id="first_streak",
        title="First Streak",
        description="Complete your first 3-day streak",
        target=3,
        metric="longest_ever_streak",
        icon="🌱"
    ),
    MilestoneDefinition(
        id="week_warrior",
        title="Week Warrior",
        description="Maintain a 7-day streak",
        target=7,
        metric="longest_ever_streak",
        icon="💪"
    ),
    MilestoneDefinition(
        id="consistency_king",
        title="Consistency King",
        description="Achieve a 30-day streak",
        target=30,
        metric="longest_ever_streak",
        icon="👑"
    ),
    MilestoneDefinition(
        id="habit_master",
        title="Habit Master",
        description="Maintain 3 active streaks",
        target=3,
        metric="active_streaks",
        icon="🏆"
    ),
    MilestoneDefinition(
        id="century_club",
        title="Century Club",
        description="Log 100 habit days",
        target=100,
        metric="total_days_logged",
        icon="💯"
    ),
    MilestoneDefinition(
        id="legendary",
        title="Legendary",
        description="Achieve a 100-day streak",
        target=100,
        metric="longest_ever_streak",
        icon="🌟"
    ),
)


class MilestoneService:
    """Service for milestone evaluation"""

    @staticmethod
    def evaluate(stats: StreakStats,
                 catalog: Sequence[MilestoneDefinition] = MILESTONE_CATALOG) -> List[Milestone]:
        """Evaluate every catalog entry against the stats, keeping catalog order"""
        milestones = []
        for definition in catalog:
            current = definition.metric_selector(stats)
            milestones.append(Milestone(
                id=definition.id,
                title=definition.title,
                description=definition.description,
                target=definition.target,
                metric=definition.metric,
                icon=definition.icon,
                current=current,
                achieved=current >= definition.target
            ))
        return milestones

    @staticmethod
    def achieved(stats: StreakStats,
                 catalog: Sequence[MilestoneDefinition] = MILESTONE_CATALOG) -> List[Milestone]:
        return [m for m in MilestoneService.evaluate(stats, catalog) if m.achieved]
