"""User profile, daily goal and reading statistics."""

from .manager import DEFAULT_DAILY_GOAL, ProfileManager, validate_goal
from .stats import ReadingStats, compute_stats, format_minutes

__all__ = [
    "DEFAULT_DAILY_GOAL",
    "ProfileManager",
    "validate_goal",
    "ReadingStats",
    "compute_stats",
    "format_minutes",
]
