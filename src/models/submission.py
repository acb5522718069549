"""Submission, review and lesson-version models.

A submission moves through ``submitted -> in_review -> needs_revision |
approved | rejected``; ``needs_revision`` may go back to ``in_review``.
Transitions are enforced by the submission service, which uses
``model_copy(update=...)`` on these frozen models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.lesson import LessonAttributes


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubmissionType(str, Enum):
    NEW = "new"
    UPDATE = "update"


class ReviewDecision(str, Enum):
    APPROVE_NEW = "approve_new"
    APPROVE_UPDATE = "approve_update"
    REJECT = "reject"
    NEEDS_REVISION = "needs_revision"


class ExtractedDocument(BaseModel):
    """Title and body pulled out of an external document reference."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str


class Submission(BaseModel):
    """A teacher-provided candidate lesson awaiting review."""

    model_config = ConfigDict(frozen=True)

    submission_id: str
    teacher_id: str
    document_ref: str = Field(description="Opaque reference to the source document.")
    submission_type: SubmissionType = SubmissionType.NEW
    original_lesson_id: str | None = Field(
        default=None,
        description="Lesson being updated, for update-type submissions.",
    )
    extracted_title: str = ""
    extracted_body: str = ""
    content_hash: str | None = None
    embedding: list[float] | None = None
    status: SubmissionStatus = SubmissionStatus.SUBMITTED
    reviewer_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Review(BaseModel):
    """One reviewer's decision on a submission."""

    model_config = ConfigDict(frozen=True)

    review_id: str
    submission_id: str
    reviewer_id: str
    decision: ReviewDecision
    detected_duplicates: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Snapshot of the duplicate candidates shown to the reviewer.",
    )
    tagged_attributes: LessonAttributes = Field(default_factory=LessonAttributes)
    notes: str | None = None
    created_at: datetime | None = None


class LessonVersion(BaseModel):
    """Full snapshot of a lesson taken before an update-type approval."""

    model_config = ConfigDict(frozen=True)

    version_id: str
    lesson_id: str
    version_number: int = Field(ge=1)
    title: str
    summary: str = ""
    body: str | None = None
    grade_levels: list[str] = Field(default_factory=list)
    attributes: LessonAttributes = Field(default_factory=LessonAttributes)
    submission_id: str | None = None
    created_at: datetime | None = None
