"""SQLModel implementations of the user, habit and check ledger repositories.

Repositories are bound to a caller-owned session so that a ledger write and the
streak and badge updates it triggers share one transaction.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...errors import DuplicateEntryError, ErrorCode, NotFoundError
from ...models.habit import Habit, HabitLog, UserHabit
from ...models.user import User


class SQLModelUserRepository:
    """SQLModel-based user repository implementation."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.username == username)).first()

    def create(self, user: User) -> User:
        if self.get_by_username(user.username) is not None:
            raise ValueError("Username already exists")
        self.session.add(user)
        self.session.flush()
        self.session.refresh(user)
        return user


class SQLModelHabitRepository:
    """SQLModel-based habit template repository implementation."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        return self.session.get(Habit, habit_id)

    def create(self, habit: Habit) -> Habit:
        self.session.add(habit)
        self.session.flush()
        self.session.refresh(habit)
        return habit

    def save(self, habit: Habit) -> Habit:
        self.session.add(habit)
        self.session.flush()
        return habit

    def delete(self, habit: Habit) -> None:
        self.session.delete(habit)
        self.session.flush()


class SQLModelUserHabitRepository:
    """SQLModel-based user-habit repository implementation."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_habit_id: int) -> Optional[UserHabit]:
        return self.session.get(UserHabit, user_habit_id)

    def get_for_user(self, user_id: int, habit_id: int) -> Optional[UserHabit]:
        statement = (
            select(UserHabit)
            .where(UserHabit.user_id == user_id)
            .where(UserHabit.habit_id == habit_id)
        )
        return self.session.exec(statement).first()

    def create(self, user_habit: UserHabit) -> UserHabit:
        if self.get_for_user(user_habit.user_id, user_habit.habit_id) is not None:
            raise DuplicateEntryError(ErrorCode.DUPLICATE_USER_HABIT)
        self.session.add(user_habit)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateEntryError(ErrorCode.DUPLICATE_USER_HABIT) from exc
        self.session.refresh(user_habit)
        return user_habit

    def save(self, user_habit: UserHabit) -> UserHabit:
        user_habit.touch()
        self.session.add(user_habit)
        self.session.flush()
        return user_habit

    def list_for_habit(self, habit_id: int) -> list[UserHabit]:
        statement = (
            select(UserHabit)
            .where(UserHabit.habit_id == habit_id)
            .order_by(UserHabit.id)  # type: ignore
        )
        return list(self.session.exec(statement).all())

    def delete(self, user_habit: UserHabit) -> None:
        self.session.delete(user_habit)
        self.session.flush()


class SQLModelHabitLogRepository:
    """Check ledger backed by the ``habit_log`` table."""

    def __init__(self, session: Session):
        self.session = session

    def record(self, user_habit_id: int, occurred_on: date, checked: bool) -> HabitLog:
        """Append a record for ``occurred_on``.

        Raises:
            DuplicateEntryError: a record for that day already exists, whether
                found up front or rejected by the unique constraint.
        """
        detail = f"user_habit_id={user_habit_id}, date={occurred_on.isoformat()}"
        if self.find_by_date(user_habit_id, occurred_on) is not None:
            raise DuplicateEntryError(ErrorCode.DUPLICATE_HABIT_LOG, detail)

        entry = HabitLog(user_habit_id=user_habit_id, occurred_on=occurred_on, checked=checked)
        self.session.add(entry)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateEntryError(ErrorCode.DUPLICATE_HABIT_LOG, detail) from exc
        self.session.refresh(entry)
        return entry

    def remove(self, log_id: int) -> tuple[date, bool]:
        entry = self.get(log_id)
        if entry is None:
            raise NotFoundError(ErrorCode.HABIT_LOG_NOT_FOUND, f"habit_log_id={log_id}")
        removed = (entry.occurred_on, entry.checked)
        self.session.delete(entry)
        self.session.flush()
        return removed

    def get(self, log_id: int) -> Optional[HabitLog]:
        return self.session.get(HabitLog, log_id)

    def find_by_date(self, user_habit_id: int, occurred_on: date) -> Optional[HabitLog]:
        statement = (
            select(HabitLog)
            .where(HabitLog.user_habit_id == user_habit_id)
            .where(HabitLog.occurred_on == occurred_on)
        )
        return self.session.exec(statement).first()

    def list_checked_dates(self, user_habit_id: int) -> list[date]:
        statement = (
            select(HabitLog.occurred_on)
            .where(HabitLog.user_habit_id == user_habit_id)
            .where(HabitLog.checked == True)  # noqa: E712
            .order_by(HabitLog.occurred_on.desc())  # type: ignore
        )
        return list(self.session.exec(statement).all())

    def delete_for_user_habit(self, user_habit_id: int) -> int:
        entries = self.session.exec(
            select(HabitLog).where(HabitLog.user_habit_id == user_habit_id)
        ).all()
        for entry in entries:
            self.session.delete(entry)
        self.session.flush()
        return len(entries)
