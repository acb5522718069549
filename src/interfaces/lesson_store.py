"""Abstract base classes for the lesson catalog store.

# ─── ADAPTER PATTERN ─────────────────────────────────────────────────
#
# ILessonStore owns the catalog, the archive, the canonical-mapping table,
# the resolution ledger and lesson versions.  The concrete implementation is
# SQLiteLessonStore (src/providers/catalog/sqlite_lesson_store.py).
#
# Multi-step writes go through ``transaction()``, which yields an
# ICatalogTransaction.  Everything done through one transaction commits
# together or not at all.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from src.models.duplicates import (
    CanonicalMapping,
    LessonArchiveEntry,
    LessonMatch,
    ResolutionRecord,
)
from src.models.lesson import Lesson, LessonSummary
from src.models.search import SearchCriteria
from src.models.submission import LessonVersion


class ICatalogTransaction(ABC):
    """Catalog operations bound to one open, uncommitted transaction."""

    @abstractmethod
    async def get_lessons(self, lesson_ids: list[str]) -> dict[str, Lesson]:
        """Read the current rows for ``lesson_ids``; missing ids are absent."""

    @abstractmethod
    async def update_lesson(self, lesson: Lesson) -> None:
        """Overwrite the mutable columns of an existing lesson."""

    @abstractmethod
    async def archive_lesson(self, entry: LessonArchiveEntry) -> None:
        """Insert a point-in-time archive copy."""

    @abstractmethod
    async def delete_lesson(self, lesson_id: str) -> None:
        """Remove a lesson from the active catalog.

        Raises
        ------
        src.utils.errors.IntegrityViolationError
            If the lesson has not been archived in this transaction or earlier.
        """

    @abstractmethod
    async def insert_resolution(self, record: ResolutionRecord) -> None:
        """Append a resolution record to the ledger."""

    @abstractmethod
    def abort(self) -> None:
        """Mark the transaction for rollback on exit instead of commit."""


class ILessonStore(ABC):
    """Contract for catalog persistence and catalog queries."""

    # ── Lifecycle ──────────────────────────────────────────────────────

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[ICatalogTransaction]:
        """Open an all-or-nothing write transaction."""

    # ── Lesson CRUD ────────────────────────────────────────────────────

    @abstractmethod
    async def upsert_lesson(self, lesson: Lesson) -> None:
        """Insert or replace a lesson and refresh its full-text index row."""

    @abstractmethod
    async def get_lesson(self, lesson_id: str) -> Lesson | None:
        """Return one lesson, or ``None`` when it is not in the active catalog."""

    @abstractmethod
    async def get_lessons(self, lesson_ids: list[str]) -> dict[str, Lesson]:
        """Return lesson id -> lesson for the ids that exist."""

    @abstractmethod
    async def list_lessons(
        self,
        missing_embedding: bool = False,
        missing_hash: bool = False,
    ) -> list[Lesson]:
        """Return active lessons, optionally only those lacking a fingerprint part."""

    @abstractmethod
    async def update_fingerprint(
        self,
        lesson_id: str,
        content_hash: str | None = None,
        embedding: list[float] | None = None,
    ) -> None:
        """Set whichever of hash / embedding is given."""

    @abstractmethod
    async def record_version(self, version: LessonVersion) -> None:
        """Store a lesson snapshot and bump the lesson's version number."""

    @abstractmethod
    async def get_versions(self, lesson_id: str) -> list[LessonVersion]:
        """Return stored snapshots of a lesson, oldest first."""

    # ── Search ─────────────────────────────────────────────────────────

    @abstractmethod
    async def search(self, criteria: SearchCriteria) -> tuple[list[LessonSummary], int]:
        """Return one page of ranked rows and the total over all pages."""

    @abstractmethod
    async def facet_counts(
        self, criteria: SearchCriteria, facets: list[str]
    ) -> dict[str, dict[str, int]]:
        """Count matching rows per distinct value of each facet attribute."""

    # ── Duplicate lookups ──────────────────────────────────────────────

    @abstractmethod
    async def find_by_hash(self, content_hash: str) -> list[LessonMatch]:
        """Lessons whose content hash equals ``content_hash``."""

    @abstractmethod
    async def find_by_embedding(
        self, vector: list[float], threshold: float = 0.5, limit: int = 10
    ) -> list[LessonMatch]:
        """Lessons whose embedding similarity is at least ``threshold``, best first."""

    @abstractmethod
    async def get_titles(self) -> dict[str, str]:
        """Return lesson id -> title for the whole active catalog."""

    @abstractmethod
    async def get_embeddings(self) -> dict[str, list[float]]:
        """Return lesson id -> embedding for lessons that have one."""

    # ── Resolution artefacts ───────────────────────────────────────────

    @abstractmethod
    async def link_canonical(self, mapping: CanonicalMapping) -> None:
        """Record a duplicate -> canonical mapping between two live lessons."""

    @abstractmethod
    async def get_canonical_mappings(self, canonical_id: str | None = None) -> list[CanonicalMapping]:
        """Return stored canonical mappings, optionally for one canonical lesson."""

    @abstractmethod
    async def get_archive_entries(self, lesson_id: str | None = None) -> list[LessonArchiveEntry]:
        """Return archive copies, optionally only those of one lesson."""

    @abstractmethod
    async def purge_archive_entry(self, lesson_id: str) -> int:
        """Delete the archive copies of ``lesson_id``; returns rows removed."""

    @abstractmethod
    async def get_resolutions(self, group_id: str | None = None) -> list[ResolutionRecord]:
        """Return resolution records, optionally for one group."""

    @abstractmethod
    async def is_group_resolved(self, lesson_ids: list[str]) -> bool:
        """True when any resolution names one of ``lesson_ids`` as canonical."""
