"""Service module exports."""

from . import badges, streaks, tracker
from .tracker import CheckResult, HabitTracker

__all__ = [
    "CheckResult",
    "HabitTracker",
    "badges",
    "streaks",
    "tracker",
]
