"""Daily reading streaks and the weekly view."""

from .engine import StreakEngine, build_weekly_view, compute_current_streak

__all__ = [
    "StreakEngine",
    "build_weekly_view",
    "compute_current_streak",
]
