"""Badge configuration and per-user progress tables."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BadgeMetric(str, Enum):
    """Where a badge set's progress value comes from."""

    STREAK = "streak"
    CUSTOM = "custom"


class BadgeSet(SQLModel, table=True):
    """Ordered group of badges cleared one after another.

    ``user_id`` empty means a system set. ``habit_id`` empty means the set
    applies to every habit (universal).
    """

    __tablename__: ClassVar[str] = "badge_set"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    habit_id: Optional[int] = Field(default=None, foreign_key="habit.id", index=True)
    name: str = Field(nullable=False, max_length=100)
    description: str = Field(default="", max_length=500)
    metric: BadgeMetric = Field(default=BadgeMetric.STREAK, nullable=False)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)

    @property
    def is_universal(self) -> bool:
        return self.habit_id is None and self.user_id is None

    @property
    def is_system(self) -> bool:
        return self.user_id is None


class Badge(SQLModel, table=True):
    """A single tier inside a badge set, e.g. 7, 30 then 100 days."""

    __tablename__: ClassVar[str] = "badge"
    __table_args__ = (UniqueConstraint("badge_set_id", "sequence", name="uq_badge_set_sequence"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    badge_set_id: int = Field(foreign_key="badge_set.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=100)
    description: str = Field(default="", max_length=500)
    icon: Optional[str] = Field(default=None, max_length=255)
    condition_value: int = Field(nullable=False, gt=0)
    sequence: int = Field(nullable=False, ge=1)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)

    def is_achieved(self, value: int) -> bool:
        return value >= self.condition_value


class UserBadgeSet(SQLModel, table=True):
    """Progress cursor of one user-habit through one badge set.

    ``current_badge_id`` empty means every badge in the set has been earned.
    """

    __tablename__: ClassVar[str] = "user_badge_set"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "user_habit_id", "badge_set_id", name="uq_user_badge_set_owner"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    user_habit_id: int = Field(foreign_key="user_habit.id", nullable=False, index=True)
    badge_set_id: int = Field(foreign_key="badge_set.id", nullable=False, index=True)
    current_badge_id: Optional[int] = Field(default=None, foreign_key="badge.id")
    current_value: int = Field(default=0, nullable=False, ge=0)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)

    @property
    def is_completed(self) -> bool:
        return self.current_badge_id is None

    def touch(self) -> None:
        self.updated_at = _utcnow()


class UserBadge(SQLModel, table=True):
    """Immutable record of a badge earned through a particular cursor."""

    __tablename__: ClassVar[str] = "user_badge"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "badge_id", "user_badge_set_id", name="uq_user_badge_award"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    badge_id: int = Field(foreign_key="badge.id", nullable=False)
    user_badge_set_id: int = Field(foreign_key="user_badge_set.id", nullable=False, index=True)
    completed_at: datetime = Field(default_factory=_utcnow, nullable=False)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
