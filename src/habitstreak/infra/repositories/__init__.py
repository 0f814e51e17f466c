"""Concrete repository implementations using SQLModel."""

from .badge import SQLModelBadgeRepository
from .habit import (
    SQLModelHabitLogRepository,
    SQLModelHabitRepository,
    SQLModelUserHabitRepository,
    SQLModelUserRepository,
)

__all__ = [
    "SQLModelBadgeRepository",
    "SQLModelHabitLogRepository",
    "SQLModelHabitRepository",
    "SQLModelUserHabitRepository",
    "SQLModelUserRepository",
]
