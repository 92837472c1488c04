"""Chapterly: track the books you read, your reading sessions and streaks."""

__version__ = "0.1.0"
