"""Tests for badge-set configuration and the progression state machine."""

from __future__ import annotations

import pytest

from habitstreak.errors import ErrorCode, InvalidStateError, NotFoundError
from habitstreak.infra.repositories import SQLModelBadgeRepository
from habitstreak.services.badges import (
    BadgeSpec,
    create_badge_set,
    progress_view,
    start_progress,
    update_progress,
    validate_thresholds,
)


@pytest.fixture
def repo(db_session) -> SQLModelBadgeRepository:
    return SQLModelBadgeRepository(db_session)


@pytest.fixture
def cursor_factory(repo, user_habit_factory, badge_set_factory):
    def _create(thresholds=(7, 30, 100)):
        user_habit = user_habit_factory()
        badge_set = badge_set_factory(thresholds)
        return start_progress(
            repo,
            user_id=user_habit.user_id,
            user_habit_id=user_habit.id,
            badge_set_id=badge_set.id,
        )

    return _create


class TestConfiguration:
    def test_accepts_non_decreasing_thresholds(self):
        assert validate_thresholds([7, 7, 30]) == [7, 7, 30]

    @pytest.mark.parametrize("thresholds", [[], [0, 7], [7, -1], [30, 7, 100]])
    def test_rejects_invalid_thresholds(self, thresholds):
        with pytest.raises(InvalidStateError) as excinfo:
            validate_thresholds(thresholds)
        assert excinfo.value.error_code is ErrorCode.INVALID_BADGE_SET

    def test_create_assigns_sequences_in_order(self, repo):
        badge_set = create_badge_set(
            repo,
            "No smoking",
            [BadgeSpec("Chicken", 1), BadgeSpec("Omakase", 30), BadgeSpec("Earbuds", 100)],
        )

        badges = repo.list_badges(badge_set.id)
        assert [(b.sequence, b.name, b.condition_value) for b in badges] == [
            (1, "Chicken", 1),
            (2, "Omakase", 30),
            (3, "Earbuds", 100),
        ]
        assert badge_set.is_universal

    def test_invalid_configuration_is_not_persisted(self, repo, db_session):
        with pytest.raises(InvalidStateError):
            create_badge_set(repo, "Broken", [BadgeSpec("a", 30), BadgeSpec("b", 7)])

        assert repo.list_applicable_sets(habit_id=1) == []


class TestStartProgress:
    def test_starts_at_first_badge_with_zero(self, repo, cursor_factory):
        cursor = cursor_factory()
        first = repo.get_badge(cursor.current_badge_id)

        assert first.sequence == 1
        assert cursor.current_value == 0
        assert not cursor.is_completed

    def test_existing_cursor_is_reused(self, repo, cursor_factory):
        cursor = cursor_factory()

        again = start_progress(
            repo,
            user_id=cursor.user_id,
            user_habit_id=cursor.user_habit_id,
            badge_set_id=cursor.badge_set_id,
        )

        assert again.id == cursor.id

    def test_unknown_badge_set(self, repo, user_habit_factory):
        user_habit = user_habit_factory()

        with pytest.raises(NotFoundError) as excinfo:
            start_progress(repo, user_id=user_habit.user_id, user_habit_id=user_habit.id, badge_set_id=999)
        assert excinfo.value.error_code is ErrorCode.BADGE_SET_NOT_FOUND


class TestUpdateProgress:
    def test_progress_below_threshold_is_recorded(self, repo, cursor_factory):
        cursor = cursor_factory()

        assert update_progress(repo, cursor, 3) == []
        assert cursor.current_value == 3
        assert repo.get_badge(cursor.current_badge_id).sequence == 1

    def test_clearing_first_tier_moves_to_second(self, repo, cursor_factory):
        cursor = cursor_factory()

        for value in (0, 3, 7):
            events = update_progress(repo, cursor, value)

        assert [e.sequence for e in events] == [1]
        assert repo.get_badge(cursor.current_badge_id).sequence == 2
        assert cursor.current_value == 0
        awards = repo.list_awards(cursor.id)
        assert len(awards) == 1
        assert repo.get_badge(awards[0].badge_id).sequence == 1

    def test_surplus_is_not_carried_over(self, repo, cursor_factory):
        cursor = cursor_factory()

        update_progress(repo, cursor, 12)

        assert cursor.current_value == 0
        assert repo.get_badge(cursor.current_badge_id).condition_value == 30

    def test_completion_is_terminal(self, repo, cursor_factory):
        cursor = cursor_factory()
        update_progress(repo, cursor, 7)

        events = update_progress(repo, cursor, 100)

        assert [e.sequence for e in events] == [2, 3]
        assert cursor.current_badge_id is None
        assert cursor.is_completed
        assert update_progress(repo, cursor, 150) == []
        assert cursor.current_badge_id is None
        assert len(repo.list_awards(cursor.id)) == 3

    def test_award_is_idempotent(self, repo, cursor_factory):
        cursor = cursor_factory(thresholds=(5, 10))
        first_badge_id = cursor.current_badge_id
        update_progress(repo, cursor, 5)

        # Rewind the cursor as if the tier had not been advanced.
        cursor.current_badge_id = first_badge_id
        events = update_progress(repo, cursor, 5)

        assert events == []
        assert len(repo.list_awards(cursor.id)) == 1

    def test_negative_value_is_rejected(self, repo, cursor_factory):
        cursor = cursor_factory()

        with pytest.raises(InvalidStateError):
            update_progress(repo, cursor, -1)


class TestProgressView:
    def test_remaining_and_percent(self, repo, cursor_factory):
        cursor = cursor_factory(thresholds=(7, 30))
        update_progress(repo, cursor, 5)

        view = progress_view(cursor, repo.get_badge(cursor.current_badge_id))

        assert view.remaining == 2
        assert view.progress_percent == 71
        assert not view.completed

    def test_completed_view(self, repo, cursor_factory):
        cursor = cursor_factory(thresholds=(1,))
        update_progress(repo, cursor, 1)

        view = progress_view(cursor, None)

        assert view.completed
        assert view.current_badge is None
        assert view.remaining == 0
        assert view.progress_percent == 100
