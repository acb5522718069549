"""Catalog-wide fingerprint maintenance jobs.

Two jobs keep the duplicate-detection fingerprints of existing lessons
current:

- ``backfill_embeddings`` requests an embedding for every lesson that has
  none.  Lessons whose embedding request fails are reported and left
  without one; nothing else is touched.
- ``regenerate_hashes`` recomputes every content hash with the current
  normalisation and writes the ones that changed (or were missing).

Both fan out with bounded concurrency through ``process_batch``.
"""

from __future__ import annotations

import structlog

from src.interfaces.lesson_store import ILessonStore
from src.models.lesson import Lesson, MaintenanceReport
from src.services.fingerprint_service import FingerprintService
from src.utils.concurrency import DEFAULT_CONCURRENCY, process_batch

logger = structlog.get_logger(logger_name=__name__)


class CatalogMaintenanceService:
    """Backfills embeddings and regenerates content hashes."""

    def __init__(
        self,
        lesson_store: ILessonStore,
        fingerprints: FingerprintService,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self._store = lesson_store
        self._fingerprints = fingerprints
        self._concurrency = concurrency

    async def backfill_embeddings(self) -> MaintenanceReport:
        lessons = await self._store.list_lessons(missing_embedding=True)
        if not lessons:
            logger.info("embedding_backfill_nothing_to_do")
            return MaintenanceReport(job="backfill_embeddings")

        async def _embed(lesson: Lesson) -> None:
            vector = await self._fingerprints.request_embedding(lesson.title, lesson.body)
            await self._store.update_fingerprint(lesson.lesson_id, embedding=vector)

        succeeded, failed = await process_batch(
            _embed,
            lessons,
            concurrency=self._concurrency,
            logger=logger,
            error_msg="embedding_backfill_failed",
        )
        report = MaintenanceReport(
            job="backfill_embeddings",
            examined=len(lessons),
            updated=[lesson.lesson_id for lesson in succeeded],
            failed=[lesson.lesson_id for lesson in failed],
        )
        logger.info(
            "embedding_backfill_complete",
            examined=report.examined,
            updated=len(report.updated),
            failed=len(report.failed),
        )
        return report

    async def regenerate_hashes(self) -> MaintenanceReport:
        lessons = await self._store.list_lessons()
        changed: list[tuple[Lesson, str]] = []
        for lesson in lessons:
            content_hash = self._fingerprints.compute_hash(
                lesson.body,
                title=lesson.title,
                summary=lesson.summary,
                grade_levels=lesson.grade_levels,
            )
            if content_hash != lesson.content_hash:
                changed.append((lesson, content_hash))

        async def _write(item: tuple[Lesson, str]) -> None:
            lesson, content_hash = item
            await self._store.update_fingerprint(lesson.lesson_id, content_hash=content_hash)

        succeeded, failed = await process_batch(
            _write,
            changed,
            concurrency=self._concurrency,
            logger=logger,
            error_msg="hash_regeneration_failed",
        )
        report = MaintenanceReport(
            job="regenerate_hashes",
            examined=len(lessons),
            updated=[lesson.lesson_id for lesson, _ in succeeded],
            unchanged=len(lessons) - len(changed),
            failed=[lesson.lesson_id for lesson, _ in failed],
        )
        logger.info(
            "hash_regeneration_complete",
            examined=report.examined,
            updated=len(report.updated),
            unchanged=report.unchanged,
        )
        return report
