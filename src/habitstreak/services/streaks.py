"""Streak tracker: forward updates on check-in and recomputation from the ledger.

Every function takes its reference date explicitly so results never depend on
the wall clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from ..models.habit import UserHabit

logger = logging.getLogger("habitstreak.services.streaks")

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True, slots=True)
class StreakSnapshot:
    """Read-only view of a user-habit's streak state."""

    user_habit_id: int
    current_streak: int
    last_checked_date: Optional[date]

    @classmethod
    def of(cls, user_habit: UserHabit) -> "StreakSnapshot":
        return cls(
            user_habit_id=user_habit.id,
            current_streak=user_habit.current_streak,
            last_checked_date=user_habit.last_checked_date,
        )


def apply_check_in(user_habit: UserHabit, on: date) -> int:
    """Advance the streak for a new checked entry on ``on`` and return it.

    Only compares against the stored ``last_checked_date``; a date earlier than
    that by more than a day also lands in the restart branch, so callers route
    backfills through :func:`recompute` instead.
    """

    last = user_habit.last_checked_date
    if last is None:
        user_habit.current_streak = 1
    elif last == on - ONE_DAY:
        user_habit.current_streak += 1
    elif last != on:
        user_habit.current_streak = 1
    # Same day: nothing to add.
    user_habit.last_checked_date = on

    logger.debug(
        "Forward streak update",
        extra={
            "user_habit_id": user_habit.id,
            "date": on,
            "previous_date": last,
            "streak": user_habit.current_streak,
        },
    )
    return user_habit.current_streak


def reset_streak(user_habit: UserHabit) -> None:
    """Clear streak and last checked date together."""

    user_habit.current_streak = 0
    user_habit.last_checked_date = None


def count_streak(checked_dates: Sequence[date], today: date) -> int:
    """Walk ``checked_dates`` (most recent first) back from ``today``.

    A date matches when it is the expected day or the day before it; each
    match moves the expectation to the day before that date. The first
    non-match stops the walk. A single missed day therefore does not end the
    count, unlike :func:`replay_streak`.
    """

    streak = 0
    expected = today
    for day in checked_dates:
        if day == expected or day == expected - ONE_DAY:
            streak += 1
            expected = day - ONE_DAY
        else:
            break
    return streak


def recompute(user_habit: UserHabit, checked_dates: Sequence[date], today: date) -> int:
    """Re-derive the streak from ledger truth and return it.

    With no checked dates the streak is reset. Otherwise the streak is the run
    counted by :func:`count_streak` and ``last_checked_date`` is the most recent
    checked date, even when that date is too old to count (streak 0).
    """

    if not checked_dates:
        reset_streak(user_habit)
        logger.info("Streak reset, no checked entries", extra={"user_habit_id": user_habit.id})
        return 0

    user_habit.current_streak = count_streak(checked_dates, today)
    user_habit.last_checked_date = checked_dates[0]

    logger.info(
        "Streak recomputed",
        extra={
            "user_habit_id": user_habit.id,
            "today": today,
            "streak": user_habit.current_streak,
            "last_checked_date": user_habit.last_checked_date,
            "entries": len(checked_dates),
        },
    )
    return user_habit.current_streak


def replay_streak(dates: Iterable[date]) -> int:
    """Forward-replay checked dates in chronological order.

    Returns the length of the consecutive run ending at the most recent date,
    which is what a sequence of in-order check-ins would leave behind.
    """

    run = 0
    previous: date | None = None
    for day in sorted(set(dates)):
        if previous is not None and day == previous + ONE_DAY:
            run += 1
        else:
            run = 1
        previous = day
    return run


__all__ = [
    "StreakSnapshot",
    "apply_check_in",
    "count_streak",
    "recompute",
    "replay_streak",
    "reset_streak",
]
