"""Habit templates, user adoptions and the daily check ledger."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HabitType(str, Enum):
    """PRACTICE: checking means success. ABSTINENCE: checking means a slip."""

    PRACTICE = "practice"
    ABSTINENCE = "abstinence"


class Habit(SQLModel, table=True):
    """A habit template; system-wide when ``user_id`` is empty."""

    __tablename__: ClassVar[str] = "habit"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    name: str = Field(nullable=False, max_length=100, index=True)
    habit_type: HabitType = Field(default=HabitType.PRACTICE, nullable=False)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)

    @property
    def is_system_habit(self) -> bool:
        return self.user_id is None

    def is_owned_by(self, user_id: int) -> bool:
        return self.user_id == user_id


class UserHabit(SQLModel, table=True):
    """One user's adoption of a habit together with its streak state.

    ``current_streak`` and ``last_checked_date`` are written only by the streak
    tracker. A zero streak may still carry a stale ``last_checked_date``.
    """

    __tablename__: ClassVar[str] = "user_habit"
    __table_args__ = (UniqueConstraint("user_id", "habit_id", name="uq_user_habit_user_habit"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    habit_id: int = Field(foreign_key="habit.id", nullable=False, index=True)
    current_streak: int = Field(default=0, nullable=False, ge=0)
    last_checked_date: Optional[date] = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)

    def touch(self) -> None:
        self.updated_at = _utcnow()


class HabitLog(SQLModel, table=True):
    """Whether a user-habit was checked on a calendar day; one row per day."""

    __tablename__: ClassVar[str] = "habit_log"
    __table_args__ = (
        UniqueConstraint("user_habit_id", "occurred_on", name="uq_habit_log_user_habit_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_habit_id: int = Field(foreign_key="user_habit.id", nullable=False, index=True)
    occurred_on: date = Field(nullable=False, index=True)
    checked: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
