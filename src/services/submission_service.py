"""Submission intake and review lifecycle.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: IDocumentExtractor, FingerprintService, DuplicateDetector,
#             ISubmissionStore, ILessonStore.
#
# Lifecycle:
#
#   submitted --start_review--> in_review --complete_review--> approved
#       ^                          |  ^                     +-> rejected
#       |                          |  |
#       |                          v  |
#       +-------------------- needs_revision
#
# ``submit`` extracts the document, fingerprints it, stores the
# submission and caches its duplicate candidates.  A missing embedding
# only narrows detection to hash and lexical matching.
#
# ``complete_review`` publishes on approval: approve_new adds a lesson to
# the catalog; approve_update snapshots the original lesson as a
# LessonVersion and then overwrites its content.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog

from src.interfaces.document_extractor import IDocumentExtractor
from src.interfaces.lesson_store import ILessonStore
from src.interfaces.submission_store import ISubmissionStore
from src.models.duplicates import SubmissionSimilarity
from src.models.lesson import Lesson, LessonAttributes
from src.models.submission import (
    LessonVersion,
    Review,
    ReviewDecision,
    Submission,
    SubmissionStatus,
    SubmissionType,
)
from src.services.duplicate_detector import DuplicateDetector
from src.services.fingerprint_service import FingerprintService
from src.utils.errors import SubmissionStateError

logger = structlog.get_logger(logger_name=__name__)

_DECISION_STATUS: dict[ReviewDecision, SubmissionStatus] = {
    ReviewDecision.APPROVE_NEW: SubmissionStatus.APPROVED,
    ReviewDecision.APPROVE_UPDATE: SubmissionStatus.APPROVED,
    ReviewDecision.NEEDS_REVISION: SubmissionStatus.NEEDS_REVISION,
    ReviewDecision.REJECT: SubmissionStatus.REJECTED,
}

_REVIEWABLE = (SubmissionStatus.SUBMITTED, SubmissionStatus.NEEDS_REVISION)


class SubmissionService:
    """Accepts teacher submissions and records reviewer decisions."""

    def __init__(
        self,
        submission_store: ISubmissionStore,
        lesson_store: ILessonStore,
        extractor: IDocumentExtractor,
        fingerprints: FingerprintService,
        detector: DuplicateDetector,
    ) -> None:
        self._submissions = submission_store
        self._lessons = lesson_store
        self._extractor = extractor
        self._fingerprints = fingerprints
        self._detector = detector

    async def submit(
        self,
        teacher_id: str,
        document_ref: str,
        submission_type: SubmissionType = SubmissionType.NEW,
        original_lesson_id: str | None = None,
    ) -> tuple[Submission, list[SubmissionSimilarity]]:
        """Create a submission and return it with its duplicate candidates.

        Raises:
            DocumentExtractionError: If the document cannot be read.
            SubmissionStateError: If an update names no existing lesson.
        """
        if submission_type == SubmissionType.UPDATE:
            if not original_lesson_id or await self._lessons.get_lesson(original_lesson_id) is None:
                raise SubmissionStateError(
                    f"Update submissions must reference an existing lesson, got {original_lesson_id!r}"
                )

        document = await self._extractor.extract(document_ref)
        fingerprint = await self._fingerprints.fingerprint(document.title, document.body)

        now = datetime.now(timezone.utc)
        submission = Submission(
            submission_id=f"sub_{uuid.uuid4().hex}",
            teacher_id=teacher_id,
            document_ref=document_ref,
            submission_type=submission_type,
            original_lesson_id=original_lesson_id,
            extracted_title=document.title,
            extracted_body=document.body,
            content_hash=fingerprint.content_hash,
            embedding=fingerprint.embedding,
            created_at=now,
            updated_at=now,
        )
        await self._submissions.save_submission(submission)
        candidates = await self._detector.score_submission(submission, refresh=True)

        logger.info(
            "submission_received",
            submission_id=submission.submission_id,
            teacher_id=teacher_id,
            submission_type=submission_type.value,
            has_embedding=fingerprint.has_embedding,
            candidates=len(candidates),
        )
        return submission, candidates

    async def _load(self, submission_id: str) -> Submission:
        submission = await self._submissions.get_submission(submission_id)
        if submission is None:
            raise SubmissionStateError(f"Submission not found: {submission_id}")
        return submission

    async def start_review(self, submission_id: str, reviewer_id: str) -> Submission:
        submission = await self._load(submission_id)
        if submission.status not in _REVIEWABLE:
            raise SubmissionStateError(
                f"Submission {submission_id} is {submission.status.value} and cannot be reviewed"
            )
        updated = submission.model_copy(update={
            "status": SubmissionStatus.IN_REVIEW,
            "reviewer_id": reviewer_id,
            "updated_at": datetime.now(timezone.utc),
        })
        await self._submissions.save_submission(updated)
        logger.info("submission_review_started", submission_id=submission_id, reviewer_id=reviewer_id)
        return updated

    async def complete_review(
        self,
        submission_id: str,
        reviewer_id: str,
        decision: ReviewDecision,
        tagged_attributes: LessonAttributes | None = None,
        grade_levels: list[str] | None = None,
        notes: str | None = None,
    ) -> Review:
        """Record a decision and move the submission to its next status.

        Raises:
            SubmissionStateError: If the submission is not in review, or an
                update decision is made on a non-update submission.
        """
        submission = await self._load(submission_id)
        if submission.status != SubmissionStatus.IN_REVIEW:
            raise SubmissionStateError(
                f"Submission {submission_id} is {submission.status.value}, not in_review"
            )
        if decision == ReviewDecision.APPROVE_UPDATE and not submission.original_lesson_id:
            raise SubmissionStateError(
                f"Submission {submission_id} does not reference a lesson to update"
            )

        retagged = tagged_attributes is not None or grade_levels is not None
        tagged_attributes = tagged_attributes or LessonAttributes()
        candidates = await self._detector.score_submission(
            submission,
            attributes=tagged_attributes,
            grade_levels=grade_levels,
            refresh=retagged,
        )

        now = datetime.now(timezone.utc)
        if decision == ReviewDecision.APPROVE_NEW:
            await self._publish_new(submission, tagged_attributes, grade_levels or [], now)
        elif decision == ReviewDecision.APPROVE_UPDATE:
            await self._publish_update(submission, tagged_attributes, grade_levels, now)

        review = Review(
            review_id=f"rev_{uuid.uuid4().hex}",
            submission_id=submission_id,
            reviewer_id=reviewer_id,
            decision=decision,
            detected_duplicates=[c.model_dump(mode="json") for c in candidates],
            tagged_attributes=tagged_attributes,
            notes=notes,
            created_at=now,
        )
        await self._submissions.save_review(review)
        await self._submissions.save_submission(submission.model_copy(update={
            "status": _DECISION_STATUS[decision],
            "reviewer_id": reviewer_id,
            "updated_at": now,
        }))

        logger.info(
            "submission_review_completed",
            submission_id=submission_id,
            reviewer_id=reviewer_id,
            decision=decision.value,
            duplicates_shown=len(candidates),
        )
        return review

    async def _publish_new(
        self,
        submission: Submission,
        attributes: LessonAttributes,
        grade_levels: list[str],
        now: datetime,
    ) -> Lesson:
        lesson = Lesson(
            lesson_id=f"lesson_{uuid.uuid4().hex[:16]}",
            title=submission.extracted_title,
            body=submission.extracted_body,
            grade_levels=grade_levels,
            attributes=attributes,
            content_hash=submission.content_hash,
            embedding=submission.embedding,
            created_at=now,
        )
        await self._lessons.upsert_lesson(lesson)
        logger.info("lesson_published", lesson_id=lesson.lesson_id, submission_id=submission.submission_id)
        return lesson

    async def _publish_update(
        self,
        submission: Submission,
        attributes: LessonAttributes,
        grade_levels: list[str] | None,
        now: datetime,
    ) -> Lesson:
        original = await self._lessons.get_lesson(submission.original_lesson_id)
        if original is None:
            raise SubmissionStateError(
                f"Lesson {submission.original_lesson_id} no longer exists"
            )

        await self._lessons.record_version(LessonVersion(
            version_id=f"ver_{uuid.uuid4().hex}",
            lesson_id=original.lesson_id,
            version_number=original.version_number,
            title=original.title,
            summary=original.summary,
            body=original.body,
            grade_levels=original.grade_levels,
            attributes=original.attributes,
            submission_id=submission.submission_id,
            created_at=now,
        ))

        updated = original.model_copy(update={
            "title": submission.extracted_title or original.title,
            "body": submission.extracted_body,
            "content_hash": submission.content_hash,
            "embedding": submission.embedding,
            "attributes": attributes if attributes != LessonAttributes() else original.attributes,
            "grade_levels": grade_levels if grade_levels else original.grade_levels,
            "has_versions": True,
            "version_number": original.version_number + 1,
        })
        await self._lessons.upsert_lesson(updated)
        logger.info(
            "lesson_updated_from_submission",
            lesson_id=original.lesson_id,
            submission_id=submission.submission_id,
            version_number=updated.version_number,
        )
        return updated
