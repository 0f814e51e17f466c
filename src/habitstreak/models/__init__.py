"""SQLModel table exports."""

from .badge import Badge, BadgeMetric, BadgeSet, UserBadge, UserBadgeSet
from .habit import Habit, HabitLog, HabitType, UserHabit
from .user import User

__all__ = [
    "Badge",
    "BadgeMetric",
    "BadgeSet",
    "Habit",
    "HabitLog",
    "HabitType",
    "User",
    "UserBadge",
    "UserBadgeSet",
    "UserHabit",
]
