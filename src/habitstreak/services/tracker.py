"""Check-in orchestration: ledger write, streak update and badge progress in one unit.

Every public method opens its own transaction through the session factory, so
the ledger, the streak and badge cursors commit or roll back together.
Operations on the same user-habit are serialized by :class:`UserHabitLocks`.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterator, Optional, Sequence

from sqlmodel import Session

from ..errors import AccessDeniedError, ErrorCode, InvalidStateError, NotFoundError
from ..infra.database import SessionFactory
from ..infra.repositories import (
    SQLModelBadgeRepository,
    SQLModelHabitLogRepository,
    SQLModelHabitRepository,
    SQLModelUserHabitRepository,
    SQLModelUserRepository,
)
from ..models.badge import BadgeMetric, BadgeSet
from ..models.habit import Habit, HabitType, UserHabit
from .badges import (
    BadgeAchieved,
    BadgeProgress,
    BadgeSpec,
    create_badge_set,
    progress_view,
    start_progress,
    update_progress,
)
from .streaks import StreakSnapshot, apply_check_in, recompute

logger = logging.getLogger("habitstreak.services.tracker")


class UserHabitLocks:
    """Process-local exclusive locks keyed by user-habit id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def _lock_for(self, user_habit_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(user_habit_id)
            if lock is None:
                lock = self._locks[user_habit_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, user_habit_id: int) -> Iterator[None]:
        with self._lock_for(user_habit_id):
            yield

    def discard(self, user_habit_id: int) -> None:
        """Forget the lock of a user-habit that no longer exists."""
        with self._guard:
            self._locks.pop(user_habit_id, None)

    def __contains__(self, user_habit_id: int) -> bool:
        with self._guard:
            return user_habit_id in self._locks


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Outcome of a check-in."""

    log_id: int
    user_habit_id: int
    occurred_on: date
    checked: bool
    current_streak: int
    last_checked_date: Optional[date]
    achievements: list[BadgeAchieved] = field(default_factory=list)


class _Repositories:
    """All repositories bound to one session."""

    def __init__(self, session: Session):
        self.users = SQLModelUserRepository(session)
        self.habits = SQLModelHabitRepository(session)
        self.user_habits = SQLModelUserHabitRepository(session)
        self.logs = SQLModelHabitLogRepository(session)
        self.badges = SQLModelBadgeRepository(session)


class HabitTracker:
    """Entry point used by the API and CLI layers.

    Args:
        session_factory: callable returning a transactional session context
        clock: returns "today"; injected so streak math is deterministic
        locks: shared lock registry when several trackers serve one process
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        clock: Callable[[], date] = date.today,
        locks: UserHabitLocks | None = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.locks = locks or UserHabitLocks()

    @contextmanager
    def _unit_of_work(self) -> Iterator[_Repositories]:
        with self.session_factory() as session:
            yield _Repositories(session)

    @staticmethod
    def _load_user_habit(
        repos: _Repositories, user_habit_id: int, user_id: int | None = None
    ) -> UserHabit:
        user_habit = repos.user_habits.get_by_id(user_habit_id)
        if user_habit is None:
            raise NotFoundError(ErrorCode.USER_HABIT_NOT_FOUND, f"user_habit_id={user_habit_id}")
        if user_id is not None and user_habit.user_id != user_id:
            raise AccessDeniedError(ErrorCode.ACCESS_DENIED, f"user_habit_id={user_habit_id}")
        return user_habit

    def _sync_streak_badges(
        self, repos: _Repositories, user_habit: UserHabit
    ) -> list[BadgeAchieved]:
        """Feed the current streak into every streak-driven cursor of the user-habit."""

        for badge_set in repos.badges.list_applicable_sets(user_habit.habit_id):
            if badge_set.metric == BadgeMetric.STREAK:
                start_progress(
                    repos.badges,
                    user_id=user_habit.user_id,
                    user_habit_id=user_habit.id,
                    badge_set_id=badge_set.id,
                )

        events: list[BadgeAchieved] = []
        for progress in repos.badges.list_progress(user_habit.id):
            badge_set = repos.badges.get_badge_set(progress.badge_set_id)
            if badge_set is None or badge_set.metric != BadgeMetric.STREAK:
                continue
            events.extend(update_progress(repos.badges, progress, user_habit.current_streak))
        return events

    # ------------------------------------------------------------------
    # Check ledger operations
    # ------------------------------------------------------------------
    def check_habit(
        self,
        user_habit_id: int,
        on: date | None = None,
        checked: bool = True,
        *,
        user_id: int | None = None,
    ) -> CheckResult:
        """Record a check for ``on`` (default today) and update the streak.

        A checked entry on or after the last checked date advances the streak
        incrementally; a backfill before it recomputes from the ledger.

        Raises:
            NotFoundError: unknown user-habit
            AccessDeniedError: ``user_id`` given and not the owner
            DuplicateEntryError: a record already exists for that day
        """
        today = self.clock()
        on = on or today

        with self.locks.hold(user_habit_id), self._unit_of_work() as repos:
            user_habit = self._load_user_habit(repos, user_habit_id, user_id)
            entry = repos.logs.record(user_habit.id, on, checked)

            achievements: list[BadgeAchieved] = []
            if checked:
                last = user_habit.last_checked_date
                if last is not None and on < last:
                    recompute(user_habit, repos.logs.list_checked_dates(user_habit.id), today)
                else:
                    apply_check_in(user_habit, on)
                repos.user_habits.save(user_habit)
                achievements = self._sync_streak_badges(repos, user_habit)

            logger.info(
                "Habit checked",
                extra={
                    "user_habit_id": user_habit.id,
                    "habit_log_id": entry.id,
                    "date": on,
                    "checked": checked,
                    "streak": user_habit.current_streak,
                    "badges_awarded": len(achievements),
                },
            )
            return CheckResult(
                log_id=entry.id,
                user_habit_id=user_habit.id,
                occurred_on=on,
                checked=checked,
                current_streak=user_habit.current_streak,
                last_checked_date=user_habit.last_checked_date,
                achievements=achievements,
            )

    def cancel_check(self, habit_log_id: int, *, user_id: int | None = None) -> StreakSnapshot:
        """Delete a check record and recompute the streak when it mattered.

        Recomputation runs when the removed day is today or the current last
        checked date.
        """
        today = self.clock()
        with self._unit_of_work() as repos:
            entry = repos.logs.get(habit_log_id)
            if entry is None:
                raise NotFoundError(ErrorCode.HABIT_LOG_NOT_FOUND, f"habit_log_id={habit_log_id}")
            user_habit_id = entry.user_habit_id

        with self.locks.hold(user_habit_id), self._unit_of_work() as repos:
            if repos.logs.get(habit_log_id) is None:
                raise NotFoundError(ErrorCode.HABIT_LOG_NOT_FOUND, f"habit_log_id={habit_log_id}")
            user_habit = self._load_user_habit(repos, user_habit_id, user_id)
            removed_on, was_checked = repos.logs.remove(habit_log_id)

            if removed_on == today or removed_on == user_habit.last_checked_date:
                recompute(user_habit, repos.logs.list_checked_dates(user_habit.id), today)
                repos.user_habits.save(user_habit)
                self._sync_streak_badges(repos, user_habit)

            logger.info(
                "Habit check cancelled",
                extra={
                    "user_habit_id": user_habit.id,
                    "habit_log_id": habit_log_id,
                    "date": removed_on,
                    "was_checked": was_checked,
                    "streak": user_habit.current_streak,
                },
            )
            return StreakSnapshot.of(user_habit)

    def get_streak(self, user_habit_id: int) -> StreakSnapshot:
        with self._unit_of_work() as repos:
            return StreakSnapshot.of(self._load_user_habit(repos, user_habit_id))

    # ------------------------------------------------------------------
    # Badge operations
    # ------------------------------------------------------------------
    def get_badge_progress(
        self, user_id: int, user_habit_id: int, badge_set_id: int
    ) -> BadgeProgress:
        with self._unit_of_work() as repos:
            self._load_user_habit(repos, user_habit_id)
            if repos.badges.get_badge_set(badge_set_id) is None:
                raise NotFoundError(ErrorCode.BADGE_SET_NOT_FOUND, f"badge_set_id={badge_set_id}")
            progress = repos.badges.find_progress(user_id, user_habit_id, badge_set_id)
            if progress is None:
                raise NotFoundError(
                    ErrorCode.BADGE_PROGRESS_NOT_FOUND,
                    f"user_id={user_id}, user_habit_id={user_habit_id}, badge_set_id={badge_set_id}",
                )
            badge = (
                repos.badges.get_badge(progress.current_badge_id)
                if progress.current_badge_id is not None
                else None
            )
            return progress_view(progress, badge)

    def advance_badge_progress(
        self, user_badge_set_id: int, new_value: int
    ) -> list[BadgeAchieved]:
        """Set a cursor's absolute progress value; returns achievements emitted."""

        with self._unit_of_work() as repos:
            progress = repos.badges.get_progress(user_badge_set_id)
            if progress is None:
                raise NotFoundError(
                    ErrorCode.BADGE_PROGRESS_NOT_FOUND, f"user_badge_set_id={user_badge_set_id}"
                )
            user_habit_id = progress.user_habit_id

        with self.locks.hold(user_habit_id), self._unit_of_work() as repos:
            progress = repos.badges.get_progress(user_badge_set_id)
            if progress is None:
                raise NotFoundError(
                    ErrorCode.BADGE_PROGRESS_NOT_FOUND, f"user_badge_set_id={user_badge_set_id}"
                )
            return update_progress(repos.badges, progress, new_value)

    def create_badge_set(
        self,
        name: str,
        badges: Sequence[BadgeSpec],
        *,
        habit_id: int | None = None,
        metric: BadgeMetric = BadgeMetric.STREAK,
        description: str = "",
    ) -> BadgeSet:
        """Create a system badge set, universal unless ``habit_id`` is given."""

        with self._unit_of_work() as repos:
            if habit_id is not None and repos.habits.get_by_id(habit_id) is None:
                raise NotFoundError(ErrorCode.HABIT_NOT_FOUND, f"habit_id={habit_id}")
            return create_badge_set(
                repos.badges,
                name,
                badges,
                habit_id=habit_id,
                metric=metric,
                description=description,
            )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register_habit(self, user_id: int, habit_id: int) -> StreakSnapshot:
        """Adopt a habit for a user and start every applicable badge set."""

        with self._unit_of_work() as repos:
            if repos.users.get_by_id(user_id) is None:
                raise NotFoundError(ErrorCode.USER_NOT_FOUND, f"user_id={user_id}")
            habit = repos.habits.get_by_id(habit_id)
            if habit is None:
                raise NotFoundError(ErrorCode.HABIT_NOT_FOUND, f"habit_id={habit_id}")
            if not habit.is_system_habit and not habit.is_owned_by(user_id):
                raise AccessDeniedError(ErrorCode.HABIT_NOT_OWNED, f"habit_id={habit_id}")

            user_habit = repos.user_habits.create(UserHabit(user_id=user_id, habit_id=habit_id))
            for badge_set in repos.badges.list_applicable_sets(habit_id):
                start_progress(
                    repos.badges,
                    user_id=user_id,
                    user_habit_id=user_habit.id,
                    badge_set_id=badge_set.id,
                )

            logger.info(
                "Habit registered",
                extra={"user_id": user_id, "habit_id": habit_id, "user_habit_id": user_habit.id},
            )
            return StreakSnapshot.of(user_habit)

    def unregister_habit(self, user_id: int, user_habit_id: int) -> None:
        """Remove a user-habit with its ledger, cursors and achievements."""

        with self.locks.hold(user_habit_id), self._unit_of_work() as repos:
            user_habit = self._load_user_habit(repos, user_habit_id, user_id)
            repos.badges.delete_for_user_habit(user_habit.id)
            removed = repos.logs.delete_for_user_habit(user_habit.id)
            repos.user_habits.delete(user_habit)
            logger.info(
                "Habit unregistered",
                extra={"user_id": user_id, "user_habit_id": user_habit_id, "logs_removed": removed},
            )
        self.locks.discard(user_habit_id)

    # ------------------------------------------------------------------
    # Custom habits
    # ------------------------------------------------------------------
    @staticmethod
    def _load_custom_habit(repos: _Repositories, user_id: int, habit_id: int) -> Habit:
        habit = repos.habits.get_by_id(habit_id)
        if habit is None:
            raise NotFoundError(ErrorCode.HABIT_NOT_FOUND, f"habit_id={habit_id}")
        if habit.is_system_habit:
            raise InvalidStateError(ErrorCode.SYSTEM_HABIT_NOT_MODIFIABLE, f"habit_id={habit_id}")
        if not habit.is_owned_by(user_id):
            raise AccessDeniedError(ErrorCode.HABIT_NOT_OWNED, f"habit_id={habit_id}")
        return habit

    def update_custom_habit(
        self,
        user_id: int,
        habit_id: int,
        *,
        name: str | None = None,
        habit_type: HabitType | None = None,
    ) -> Habit:
        """Rename or retype a habit the user owns; streaks are untouched."""

        with self._unit_of_work() as repos:
            habit = self._load_custom_habit(repos, user_id, habit_id)
            if name is not None:
                if not name.strip():
                    raise InvalidStateError(ErrorCode.INVALID_INPUT_VALUE, "habit name is empty")
                habit.name = name.strip()
            if habit_type is not None:
                habit.habit_type = habit_type
            repos.habits.save(habit)
            logger.info(
                "Custom habit updated",
                extra={"user_id": user_id, "habit_id": habit_id, "habit_name": habit.name},
            )
            return habit

    def delete_custom_habit(self, user_id: int, habit_id: int) -> None:
        """Delete a habit the user owns with its adoptions and bound badge sets."""

        with self._unit_of_work() as repos:
            habit = self._load_custom_habit(repos, user_id, habit_id)
            user_habit_ids = []
            for user_habit in repos.user_habits.list_for_habit(habit.id):
                repos.badges.delete_for_user_habit(user_habit.id)
                repos.logs.delete_for_user_habit(user_habit.id)
                repos.user_habits.delete(user_habit)
                user_habit_ids.append(user_habit.id)
            sets_removed = repos.badges.delete_sets_for_habit(habit.id)
            repos.habits.delete(habit)
            logger.info(
                "Custom habit deleted",
                extra={
                    "user_id": user_id,
                    "habit_id": habit_id,
                    "user_habits_removed": len(user_habit_ids),
                    "badge_sets_removed": sets_removed,
                },
            )
        for user_habit_id in user_habit_ids:
            self.locks.discard(user_habit_id)


__all__ = ["CheckResult", "HabitTracker", "UserHabitLocks"]
