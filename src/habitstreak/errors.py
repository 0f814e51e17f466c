"""Error taxonomy raised by the progression engine.

Each error carries an :class:`ErrorCode` so an outer API layer can map it to a
client-facing code and HTTP status without inspecting messages.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus


class ErrorCode(Enum):
    """Error catalogue as ``(http_status, code, message)``."""

    INVALID_INPUT_VALUE = (HTTPStatus.BAD_REQUEST, "COMMON_001", "Invalid input value.")
    ACCESS_DENIED = (HTTPStatus.FORBIDDEN, "AUTH_004", "Access denied.")
    USER_NOT_FOUND = (HTTPStatus.NOT_FOUND, "USER_001", "User not found.")
    HABIT_NOT_FOUND = (HTTPStatus.NOT_FOUND, "HABIT_001", "Habit not found.")
    USER_HABIT_NOT_FOUND = (HTTPStatus.NOT_FOUND, "HABIT_002", "Registered habit not found.")
    DUPLICATE_USER_HABIT = (HTTPStatus.CONFLICT, "HABIT_003", "Habit is already registered.")
    HABIT_NOT_OWNED = (HTTPStatus.FORBIDDEN, "HABIT_004", "Habit belongs to another user.")
    SYSTEM_HABIT_NOT_MODIFIABLE = (
        HTTPStatus.BAD_REQUEST,
        "HABIT_005",
        "System habits cannot be modified or deleted.",
    )
    HABIT_LOG_NOT_FOUND = (HTTPStatus.NOT_FOUND, "HABIT_006", "Habit check record not found.")
    DUPLICATE_HABIT_LOG = (
        HTTPStatus.CONFLICT,
        "HABIT_007",
        "A check record already exists for that date.",
    )
    BADGE_SET_NOT_FOUND = (HTTPStatus.NOT_FOUND, "BADGE_001", "Badge set not found.")
    BADGE_NOT_FOUND = (HTTPStatus.NOT_FOUND, "BADGE_002", "Badge not found.")
    INVALID_BADGE_SET = (
        HTTPStatus.UNPROCESSABLE_ENTITY,
        "BADGE_003",
        "Badge set configuration is invalid.",
    )
    BADGE_PROGRESS_NOT_FOUND = (
        HTTPStatus.NOT_FOUND,
        "BADGE_004",
        "Badge progress not found.",
    )

    @property
    def http_status(self) -> HTTPStatus:
        return self.value[0]

    @property
    def code(self) -> str:
        return self.value[1]

    @property
    def message(self) -> str:
        return self.value[2]


class HabitStreakError(Exception):
    """Base class for recoverable engine errors."""

    default_code = ErrorCode.INVALID_INPUT_VALUE

    def __init__(self, error_code: ErrorCode | None = None, detail: str | None = None):
        self.error_code = error_code or self.default_code
        self.detail = detail
        message = self.error_code.message
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.error_code.code

    @property
    def http_status(self) -> HTTPStatus:
        return self.error_code.http_status


class NotFoundError(HabitStreakError, LookupError):
    """A referenced user-habit, log, badge set or cursor does not exist."""

    default_code = ErrorCode.USER_HABIT_NOT_FOUND


class DuplicateEntryError(HabitStreakError, ValueError):
    """A uniqueness rule (one log per day, one registration per habit) was violated."""

    default_code = ErrorCode.DUPLICATE_HABIT_LOG


class InvalidStateError(HabitStreakError, ValueError):
    """Operation is not valid for the current configuration or state."""

    default_code = ErrorCode.INVALID_BADGE_SET


class AccessDeniedError(HabitStreakError):
    """The acting user does not own the referenced record."""

    default_code = ErrorCode.ACCESS_DENIED


__all__ = [
    "AccessDeniedError",
    "DuplicateEntryError",
    "ErrorCode",
    "HabitStreakError",
    "InvalidStateError",
    "NotFoundError",
]
