"""Pytest configuration and shared fixtures for habitstreak tests.

This module provides database fixtures, test data factories, and a frozen
clock for exercising the streak and badge engine against a throwaway SQLite
database instead of the real app database.
"""

from __future__ import annotations

import tempfile
from datetime import date, timedelta
from pathlib import Path
from typing import Sequence

import pytest
from sqlmodel import Session, SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from habitstreak.infra.database import create_session_factory
from habitstreak.infra.repositories import SQLModelBadgeRepository
from habitstreak.models import BadgeMetric, BadgeSet, Habit, HabitType, User, UserHabit
from habitstreak.services.badges import BadgeSpec, create_badge_set
from habitstreak.services.tracker import HabitTracker

TODAY = date(2024, 1, 10)


class FrozenClock:
    """Callable clock that returns a settable "today"."""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> date:
        self.today += timedelta(days=days)
        return self.today


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a database session for arranging and inspecting test data."""
    session = Session(db_engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Transactional session factory, as used by the tracker."""
    return create_session_factory(db_engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(TODAY)


@pytest.fixture
def tracker(session_factory, clock) -> HabitTracker:
    return HabitTracker(session_factory, clock=clock)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user(db_session) -> User:
    """Create a default user for scoping data."""
    u = User(username="tester")
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def habit_factory(db_session):
    """Factory for creating habit templates.

    Returns:
        Callable: Function that creates and persists Habit instances
    """

    def _create_habit(
        name: str = "Drink water",
        habit_type: HabitType = HabitType.PRACTICE,
        owner: User | None = None,
    ) -> Habit:
        habit = Habit(
            name=name,
            habit_type=habit_type,
            user_id=owner.id if owner else None,
        )
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        return habit

    return _create_habit


@pytest.fixture
def user_habit_factory(db_session, user, habit_factory):
    """Factory for creating a user's adoption of a habit without badge cursors.

    Returns:
        Callable: Function that creates and persists UserHabit instances
    """

    def _create_user_habit(
        habit: Habit | None = None,
        owner: User | None = None,
        current_streak: int = 0,
        last_checked_date: date | None = None,
    ) -> UserHabit:
        habit = habit or habit_factory()
        owner = owner or user
        user_habit = UserHabit(
            user_id=owner.id,
            habit_id=habit.id,
            current_streak=current_streak,
            last_checked_date=last_checked_date,
        )
        db_session.add(user_habit)
        db_session.commit()
        db_session.refresh(user_habit)
        return user_habit

    return _create_user_habit


@pytest.fixture
def badge_set_factory(db_session):
    """Factory for creating validated badge sets.

    Returns:
        Callable: Function that creates a badge set from a list of thresholds
    """

    def _create_badge_set(
        thresholds: Sequence[int] = (7, 30, 100),
        name: str = "Streak challenge",
        habit: Habit | None = None,
        metric: BadgeMetric = BadgeMetric.STREAK,
    ) -> BadgeSet:
        specs = [
            BadgeSpec(name=f"{name} #{index}", condition_value=value)
            for index, value in enumerate(thresholds, start=1)
        ]
        badge_set = create_badge_set(
            SQLModelBadgeRepository(db_session),
            name,
            specs,
            habit_id=habit.id if habit else None,
            metric=metric,
        )
        db_session.commit()
        return badge_set

    return _create_badge_set
