"""Badge progression: ordered tiers cleared one after another per cursor."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from ..domain.repositories.badge import BadgeRepository
from ..errors import ErrorCode, InvalidStateError, NotFoundError
from ..models.badge import Badge, BadgeMetric, BadgeSet, UserBadge, UserBadgeSet

logger = logging.getLogger("habitstreak.services.badges")


@dataclass(frozen=True, slots=True)
class BadgeSpec:
    """Definition of one tier when creating a badge set."""

    name: str
    condition_value: int
    description: str = ""
    icon: Optional[str] = None


@dataclass(frozen=True, slots=True)
class BadgeAchieved:
    """Event emitted when a cursor clears a badge."""

    user_badge_id: int
    user_id: int
    user_habit_id: int
    user_badge_set_id: int
    badge_set_id: int
    badge_id: int
    badge_name: str
    sequence: int
    completed_at: datetime


@dataclass(frozen=True, slots=True)
class BadgeProgress:
    """Derived view of a cursor; ``current_badge`` is None once the set is done."""

    user_badge_set_id: int
    badge_set_id: int
    current_badge: Optional[Badge]
    current_value: int
    remaining: int
    progress_percent: int

    @property
    def completed(self) -> bool:
        return self.current_badge is None


def validate_thresholds(thresholds: Iterable[int]) -> list[int]:
    """Reject empty, non-positive or decreasing threshold sequences."""

    values = list(thresholds)
    if not values:
        raise InvalidStateError(ErrorCode.INVALID_BADGE_SET, "a badge set needs at least one badge")
    previous = 0
    for sequence, value in enumerate(values, start=1):
        if value <= 0:
            raise InvalidStateError(
                ErrorCode.INVALID_BADGE_SET,
                f"badge {sequence} threshold must be positive, got {value}",
            )
        if value < previous:
            raise InvalidStateError(
                ErrorCode.INVALID_BADGE_SET,
                f"badge {sequence} threshold {value} is below the previous {previous}",
            )
        previous = value
    return values


def create_badge_set(
    repository: BadgeRepository,
    name: str,
    badges: Sequence[BadgeSpec],
    *,
    habit_id: int | None = None,
    user_id: int | None = None,
    metric: BadgeMetric = BadgeMetric.STREAK,
    description: str = "",
) -> BadgeSet:
    """Validate and persist a badge set; sequences are assigned 1..n in order."""

    validate_thresholds(entry.condition_value for entry in badges)
    badge_set = BadgeSet(
        name=name,
        description=description,
        habit_id=habit_id,
        user_id=user_id,
        metric=metric,
    )
    rows = [
        Badge(
            name=entry.name,
            description=entry.description,
            icon=entry.icon,
            condition_value=entry.condition_value,
            sequence=sequence,
        )
        for sequence, entry in enumerate(badges, start=1)
    ]
    created = repository.create_badge_set(badge_set, rows)
    logger.info(
        "Badge set created",
        extra={
            "badge_set_id": created.id,
            "badge_set_name": name,
            "metric": metric.value,
            "thresholds": [entry.condition_value for entry in badges],
        },
    )
    return created


def start_progress(
    repository: BadgeRepository, *, user_id: int, user_habit_id: int, badge_set_id: int
) -> UserBadgeSet:
    """Return the cursor for the triple, creating it at the first badge if absent."""

    existing = repository.find_progress(user_id, user_habit_id, badge_set_id)
    if existing is not None:
        return existing

    if repository.get_badge_set(badge_set_id) is None:
        raise NotFoundError(ErrorCode.BADGE_SET_NOT_FOUND, f"badge_set_id={badge_set_id}")
    first = repository.first_badge(badge_set_id)
    if first is None:
        raise InvalidStateError(ErrorCode.INVALID_BADGE_SET, f"badge set {badge_set_id} is empty")

    progress = repository.save_progress(
        UserBadgeSet(
            user_id=user_id,
            user_habit_id=user_habit_id,
            badge_set_id=badge_set_id,
            current_badge_id=first.id,
            current_value=0,
        )
    )
    logger.info(
        "Badge progress started",
        extra={
            "user_badge_set_id": progress.id,
            "user_habit_id": user_habit_id,
            "badge_set_id": badge_set_id,
        },
    )
    return progress


def _award(
    repository: BadgeRepository, progress: UserBadgeSet, badge: Badge, now: datetime
) -> Optional[UserBadge]:
    """Record the achievement unless this cursor already earned ``badge``."""

    if repository.find_award(progress.user_id, badge.id, progress.id) is not None:
        return None
    return repository.add_award(
        UserBadge(
            user_id=progress.user_id,
            badge_id=badge.id,
            user_badge_set_id=progress.id,
            completed_at=now,
            created_at=now,
        )
    )


def update_progress(
    repository: BadgeRepository,
    progress: UserBadgeSet,
    new_value: int,
    *,
    now: datetime | None = None,
) -> list[BadgeAchieved]:
    """Set the absolute progress value and clear every tier it reaches.

    Each cleared tier is awarded once, then the cursor moves to the next
    sequence with its value reset to 0. The same ``new_value`` is compared
    against each following tier. A completed cursor is left untouched.
    """

    if new_value < 0:
        raise InvalidStateError(ErrorCode.INVALID_INPUT_VALUE, f"progress {new_value} is negative")
    if progress.is_completed:
        logger.debug("Badge set already completed", extra={"user_badge_set_id": progress.id})
        return []

    now = now or datetime.now(timezone.utc)
    progress.current_value = new_value
    events: list[BadgeAchieved] = []

    while progress.current_badge_id is not None:
        badge = repository.get_badge(progress.current_badge_id)
        if badge is None:
            raise NotFoundError(ErrorCode.BADGE_NOT_FOUND, f"badge_id={progress.current_badge_id}")
        if not badge.is_achieved(new_value):
            break

        award = _award(repository, progress, badge, now)
        if award is not None:
            events.append(
                BadgeAchieved(
                    user_badge_id=award.id,
                    user_id=progress.user_id,
                    user_habit_id=progress.user_habit_id,
                    user_badge_set_id=progress.id,
                    badge_set_id=progress.badge_set_id,
                    badge_id=badge.id,
                    badge_name=badge.name,
                    sequence=badge.sequence,
                    completed_at=award.completed_at,
                )
            )
            logger.info(
                "Badge awarded",
                extra={
                    "user_badge_set_id": progress.id,
                    "badge_id": badge.id,
                    "sequence": badge.sequence,
                    "value": new_value,
                },
            )

        following = repository.next_badge(progress.badge_set_id, badge.sequence)
        progress.current_badge_id = following.id if following is not None else None
        progress.current_value = 0
        if following is None:
            logger.info("Badge set completed", extra={"user_badge_set_id": progress.id})

    repository.save_progress(progress)
    return events


def progress_view(progress: UserBadgeSet, badge: Optional[Badge]) -> BadgeProgress:
    """Remaining distance and percentage toward ``badge`` (the current tier)."""

    if progress.is_completed or badge is None:
        return BadgeProgress(
            user_badge_set_id=progress.id,
            badge_set_id=progress.badge_set_id,
            current_badge=None,
            current_value=progress.current_value,
            remaining=0,
            progress_percent=100,
        )

    current = progress.current_value
    return BadgeProgress(
        user_badge_set_id=progress.id,
        badge_set_id=progress.badge_set_id,
        current_badge=badge,
        current_value=current,
        remaining=max(0, badge.condition_value - current),
        progress_percent=min(100, current * 100 // badge.condition_value),
    )


__all__ = [
    "BadgeAchieved",
    "BadgeProgress",
    "BadgeSpec",
    "create_badge_set",
    "progress_view",
    "start_progress",
    "update_progress",
    "validate_thresholds",
]
