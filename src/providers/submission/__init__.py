"""Submission store implementations."""

from src.providers.submission.sqlite_submission_store import SQLiteSubmissionStore

__all__ = ["SQLiteSubmissionStore"]
