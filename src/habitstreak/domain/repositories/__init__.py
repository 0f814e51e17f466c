"""Repository protocol definitions for domain layer."""

from .badge import BadgeRepository
from .habit import HabitLogRepository, HabitRepository, UserHabitRepository, UserRepository

__all__ = [
    "BadgeRepository",
    "HabitLogRepository",
    "HabitRepository",
    "UserHabitRepository",
    "UserRepository",
]
