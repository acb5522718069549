"""Lesson catalog store implementations."""

from src.providers.catalog.sqlite_lesson_store import SQLiteLessonStore

__all__ = ["SQLiteLessonStore"]
