"""Badge configuration and progress repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ...models.badge import Badge, BadgeSet, UserBadge, UserBadgeSet


class BadgeRepository(Protocol):
    """Repository for badge sets, progress cursors and achievements."""

    # Configuration
    def get_badge_set(self, badge_set_id: int) -> Optional[BadgeSet]:
        """Retrieve a badge set by ID."""
        ...

    def create_badge_set(self, badge_set: BadgeSet, badges: Sequence[Badge]) -> BadgeSet:
        """Persist a badge set together with its badges."""
        ...

    def list_badges(self, badge_set_id: int) -> list[Badge]:
        """Badges of a set ordered by ascending sequence."""
        ...

    def get_badge(self, badge_id: int) -> Optional[Badge]:
        """Retrieve a badge by ID."""
        ...

    def first_badge(self, badge_set_id: int) -> Optional[Badge]:
        """The badge with the lowest sequence in a set."""
        ...

    def next_badge(self, badge_set_id: int, sequence: int) -> Optional[Badge]:
        """The badge following ``sequence`` in a set, if any."""
        ...

    def list_applicable_sets(self, habit_id: int) -> list[BadgeSet]:
        """System badge sets that are universal or bound to ``habit_id``."""
        ...

    # Progress cursors
    def get_progress(self, user_badge_set_id: int) -> Optional[UserBadgeSet]:
        """Retrieve a progress cursor by ID."""
        ...

    def find_progress(
        self, user_id: int, user_habit_id: int, badge_set_id: int
    ) -> Optional[UserBadgeSet]:
        """Retrieve the cursor for a (user, user-habit, badge-set) triple."""
        ...

    def list_progress(self, user_habit_id: int) -> list[UserBadgeSet]:
        """Every cursor belonging to a user-habit."""
        ...

    def save_progress(self, progress: UserBadgeSet) -> UserBadgeSet:
        """Insert or update a cursor."""
        ...

    # Achievements
    def find_award(
        self, user_id: int, badge_id: int, user_badge_set_id: int
    ) -> Optional[UserBadge]:
        """Retrieve an existing achievement."""
        ...

    def add_award(self, award: UserBadge) -> UserBadge:
        """Persist a new achievement."""
        ...

    def list_awards(self, user_badge_set_id: int) -> list[UserBadge]:
        """Achievements earned through a cursor, oldest first."""
        ...

    def delete_for_user_habit(self, user_habit_id: int) -> None:
        """Delete cursors and achievements belonging to a user-habit."""
        ...

    def delete_sets_for_habit(self, habit_id: int) -> int:
        """Delete badge sets bound to a habit together with their badges."""
        ...
