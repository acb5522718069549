"""Abstract base class for submission/review persistence.

Concrete implementation: SQLiteSubmissionStore
(src/providers/submission/sqlite_submission_store.py).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.duplicates import SubmissionSimilarity
from src.models.submission import Review, Submission


class ISubmissionStore(ABC):
    """Contract for submission, review and similarity-cache storage."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def save_submission(self, submission: Submission) -> None:
        """Insert or replace a submission row."""

    @abstractmethod
    async def get_submission(self, submission_id: str) -> Submission | None:
        """Return one submission, or ``None``."""

    @abstractmethod
    async def save_similarities(
        self, submission_id: str, similarities: list[SubmissionSimilarity]
    ) -> None:
        """Replace the cached candidate scores of a submission."""

    @abstractmethod
    async def get_similarities(self, submission_id: str) -> list[SubmissionSimilarity]:
        """Cached candidate scores, highest combined score first."""

    @abstractmethod
    async def save_review(self, review: Review) -> None:
        """Append a review decision."""

    @abstractmethod
    async def get_reviews(self, submission_id: str) -> list[Review]:
        """Reviews of one submission, oldest first."""
