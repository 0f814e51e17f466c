"""SQLModel implementation of the badge repository."""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import or_
from sqlmodel import Session, select

from ...models.badge import Badge, BadgeSet, UserBadge, UserBadgeSet


class SQLModelBadgeRepository:
    """Badge sets, progress cursors and achievements on a caller-owned session."""

    def __init__(self, session: Session):
        self.session = session

    # Configuration
    def get_badge_set(self, badge_set_id: int) -> Optional[BadgeSet]:
        return self.session.get(BadgeSet, badge_set_id)

    def create_badge_set(self, badge_set: BadgeSet, badges: Sequence[Badge]) -> BadgeSet:
        self.session.add(badge_set)
        self.session.flush()
        for badge in badges:
            badge.badge_set_id = badge_set.id
            self.session.add(badge)
        self.session.flush()
        self.session.refresh(badge_set)
        return badge_set

    def list_badges(self, badge_set_id: int) -> list[Badge]:
        statement = (
            select(Badge)
            .where(Badge.badge_set_id == badge_set_id)
            .order_by(Badge.sequence)  # type: ignore
        )
        return list(self.session.exec(statement).all())

    def get_badge(self, badge_id: int) -> Optional[Badge]:
        return self.session.get(Badge, badge_id)

    def first_badge(self, badge_set_id: int) -> Optional[Badge]:
        statement = (
            select(Badge)
            .where(Badge.badge_set_id == badge_set_id)
            .order_by(Badge.sequence)  # type: ignore
            .limit(1)
        )
        return self.session.exec(statement).first()

    def next_badge(self, badge_set_id: int, sequence: int) -> Optional[Badge]:
        statement = (
            select(Badge)
            .where(Badge.badge_set_id == badge_set_id)
            .where(Badge.sequence > sequence)
            .order_by(Badge.sequence)  # type: ignore
            .limit(1)
        )
        return self.session.exec(statement).first()

    def list_applicable_sets(self, habit_id: int) -> list[BadgeSet]:
        statement = (
            select(BadgeSet)
            .where(BadgeSet.user_id == None)  # noqa: E711
            .where(or_(BadgeSet.habit_id == habit_id, BadgeSet.habit_id == None))  # noqa: E711
            .order_by(BadgeSet.id)  # type: ignore
        )
        return list(self.session.exec(statement).all())

    # Progress cursors
    def get_progress(self, user_badge_set_id: int) -> Optional[UserBadgeSet]:
        return self.session.get(UserBadgeSet, user_badge_set_id)

    def find_progress(
        self, user_id: int, user_habit_id: int, badge_set_id: int
    ) -> Optional[UserBadgeSet]:
        statement = (
            select(UserBadgeSet)
            .where(UserBadgeSet.user_id == user_id)
            .where(UserBadgeSet.user_habit_id == user_habit_id)
            .where(UserBadgeSet.badge_set_id == badge_set_id)
        )
        return self.session.exec(statement).first()

    def list_progress(self, user_habit_id: int) -> list[UserBadgeSet]:
        statement = (
            select(UserBadgeSet)
            .where(UserBadgeSet.user_habit_id == user_habit_id)
            .order_by(UserBadgeSet.id)  # type: ignore
        )
        return list(self.session.exec(statement).all())

    def save_progress(self, progress: UserBadgeSet) -> UserBadgeSet:
        progress.touch()
        self.session.add(progress)
        self.session.flush()
        return progress

    # Achievements
    def find_award(
        self, user_id: int, badge_id: int, user_badge_set_id: int
    ) -> Optional[UserBadge]:
        statement = (
            select(UserBadge)
            .where(UserBadge.user_id == user_id)
            .where(UserBadge.badge_id == badge_id)
            .where(UserBadge.user_badge_set_id == user_badge_set_id)
        )
        return self.session.exec(statement).first()

    def add_award(self, award: UserBadge) -> UserBadge:
        self.session.add(award)
        self.session.flush()
        self.session.refresh(award)
        return award

    def list_awards(self, user_badge_set_id: int) -> list[UserBadge]:
        statement = (
            select(UserBadge)
            .where(UserBadge.user_badge_set_id == user_badge_set_id)
            .order_by(UserBadge.id)  # type: ignore
        )
        return list(self.session.exec(statement).all())

    def delete_for_user_habit(self, user_habit_id: int) -> None:
        for progress in self.list_progress(user_habit_id):
            for award in self.list_awards(progress.id):
                self.session.delete(award)
            self.session.delete(progress)
        self.session.flush()

    def delete_sets_for_habit(self, habit_id: int) -> int:
        badge_sets = self.session.exec(
            select(BadgeSet).where(BadgeSet.habit_id == habit_id)
        ).all()
        for badge_set in badge_sets:
            for badge in self.list_badges(badge_set.id):
                self.session.delete(badge)
            self.session.delete(badge_set)
        self.session.flush()
        return len(badge_sets)
