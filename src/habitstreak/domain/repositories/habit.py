"""Habit, user-habit and check ledger repository protocols."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ...models.habit import Habit, HabitLog, UserHabit
from ...models.user import User


class UserRepository(Protocol):
    """Repository for user identities."""

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by ID."""
        ...

    def get_by_username(self, username: str) -> Optional[User]:
        """Retrieve a user by username."""
        ...

    def create(self, user: User) -> User:
        """Create a new user."""
        ...


class HabitRepository(Protocol):
    """Repository for habit templates."""

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        ...

    def create(self, habit: Habit) -> Habit:
        """Create a new habit."""
        ...

    def save(self, habit: Habit) -> Habit:
        """Persist changes to a habit."""
        ...

    def delete(self, habit: Habit) -> None:
        """Delete a habit."""
        ...


class UserHabitRepository(Protocol):
    """Repository for user-habit adoptions and their streak state."""

    def get_by_id(self, user_habit_id: int) -> Optional[UserHabit]:
        """Retrieve a user-habit by ID."""
        ...

    def get_for_user(self, user_id: int, habit_id: int) -> Optional[UserHabit]:
        """Retrieve the adoption of ``habit_id`` by ``user_id``."""
        ...

    def create(self, user_habit: UserHabit) -> UserHabit:
        """Persist a new user-habit."""
        ...

    def save(self, user_habit: UserHabit) -> UserHabit:
        """Persist streak changes."""
        ...

    def list_for_habit(self, habit_id: int) -> list[UserHabit]:
        """Every adoption of a habit."""
        ...

    def delete(self, user_habit: UserHabit) -> None:
        """Delete a user-habit."""
        ...


class HabitLogRepository(Protocol):
    """The check ledger: at most one record per (user-habit, day)."""

    def record(self, user_habit_id: int, occurred_on: date, checked: bool) -> HabitLog:
        """Append a record, raising DuplicateEntryError if the day is taken."""
        ...

    def remove(self, log_id: int) -> tuple[date, bool]:
        """Delete a record and return its (date, checked) pair."""
        ...

    def get(self, log_id: int) -> Optional[HabitLog]:
        """Retrieve a record by ID."""
        ...

    def find_by_date(self, user_habit_id: int, occurred_on: date) -> Optional[HabitLog]:
        """Retrieve the record for a specific day."""
        ...

    def list_checked_dates(self, user_habit_id: int) -> list[date]:
        """Checked days for a user-habit, most recent first."""
        ...

    def delete_for_user_habit(self, user_habit_id: int) -> int:
        """Delete every record of a user-habit and return how many were removed."""
        ...
