"""habitstreak: streak and badge progression for daily habits."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .services.tracker import HabitTracker

__all__ = ["BaseConfig", "DevConfig", "HabitTracker"]
