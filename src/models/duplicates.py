"""Duplicate detection and resolution models.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models.
#
# Detection produces ``LessonMatch`` / ``SubmissionSimilarity`` candidates
# and ``DuplicatePair`` / ``DuplicateGroup`` catalog findings.  Resolution
# consumes a ``ResolutionRequest`` and always answers with a
# ``ResolutionResult`` (success flag + enumerated failure reason) instead
# of raising, so callers must inspect ``success``.
#
# ``CanonicalMapping`` rejects self-references at construction; the SQLite
# schema carries the same rule as a CHECK constraint.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.lesson import Lesson


class MatchType(str, Enum):
    """Confidence tier of a duplicate candidate."""

    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DuplicateType(str, Enum):
    """How two lessons were judged to be the same lesson."""

    EXACT = "exact"
    NEAR = "near"
    VERSION = "version"
    TITLE = "title"


class ResolutionMode(str, Enum):
    SINGLE = "single"
    SPLIT = "split"
    KEEP_ALL = "keep_all"


class ActionTaken(str, Enum):
    """What a resolution actually did to the catalog."""

    KEEP_ALL = "keep_all"
    SPLIT_GROUP = "split_group"
    MERGE_AND_ARCHIVE = "merge_and_archive"
    ARCHIVE_ONLY = "archive_only"


class ResolutionFailureReason(str, Enum):
    """Every way a resolution call can fail."""

    PERMISSION_DENIED = "permission_denied"
    SELF_REFERENCE = "self_reference"
    EMPTY_GROUP = "empty_group"
    INVALID_SCORE = "invalid_score"
    INVALID_TITLE = "invalid_title"
    CANONICAL_NOT_FOUND = "canonical_not_found"
    DUPLICATE_NOT_FOUND = "duplicate_not_found"
    STORE_ERROR = "store_error"


class DetectionMethod(str, Enum):
    """Which signal flagged a catalog duplicate pair."""

    SAME_TITLE = "same_title"
    EMBEDDING = "embedding"
    BOTH = "both"


# ─── Fingerprints and candidates ─────────────────────────────────────

class Fingerprint(BaseModel):
    """Content hash plus (optional) semantic embedding of a lesson body."""

    model_config = ConfigDict(frozen=True)

    content_hash: str
    embedding: list[float] | None = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class LessonMatch(BaseModel):
    """A catalog lesson returned by a hash or embedding lookup."""

    model_config = ConfigDict(frozen=True)

    lesson_id: str
    title: str
    similarity: float = Field(default=1.0, ge=0.0, le=1.0)
    match_type: MatchType = MatchType.EXACT


class SubmissionSimilarity(BaseModel):
    """Cached composite score of a submission against one catalog lesson."""

    model_config = ConfigDict(frozen=True)

    submission_id: str
    lesson_id: str
    lesson_title: str = ""
    title_similarity: float = Field(ge=0.0, le=1.0)
    content_similarity: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Embedding similarity; None when no embedding was available.",
    )
    metadata_overlap: float = Field(ge=0.0, le=1.0)
    combined_score: float = Field(ge=0.0, le=1.0)
    match_type: MatchType
    computed_at: datetime | None = None


class DuplicatePair(BaseModel):
    model_config = ConfigDict(frozen=True)

    lesson_id_1: str
    lesson_id_2: str
    title_1: str
    title_2: str
    similarity: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Embedding similarity; None for a title-only match.",
    )
    detection_method: DetectionMethod


class DuplicateGroup(BaseModel):
    """A transitively connected set of duplicate pairs."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    lesson_ids: list[str]
    titles: dict[str, str] = Field(default_factory=dict)
    detection_methods: list[DetectionMethod] = Field(default_factory=list)
    confidence: str = Field(description="'high' or 'medium'.")
    average_similarity: float | None = Field(default=None, ge=0.0, le=1.0)
    pair_count: int = Field(ge=1)


# ─── Canonical mapping and archive ───────────────────────────────────

class CanonicalMapping(BaseModel):
    """Maps a duplicate lesson onto its canonical lesson."""

    model_config = ConfigDict(frozen=True)

    duplicate_id: str
    canonical_id: str
    similarity_score: float = Field(ge=0.0, le=1.0)
    resolution_type: DuplicateType
    resolved_by: str | None = None
    resolved_at: datetime | None = None

    @model_validator(mode="after")
    def _no_self_reference(self) -> CanonicalMapping:
        if self.duplicate_id == self.canonical_id:
            raise ValueError("a lesson cannot be a duplicate of itself")
        return self


class LessonArchiveEntry(BaseModel):
    """Point-in-time copy of an archived lesson with provenance."""

    model_config = ConfigDict(frozen=True)

    lesson: Lesson
    archive_reason: str
    archived_by: str
    canonical_id: str | None = None
    archived_at: datetime | None = None


# ─── Resolution ──────────────────────────────────────────────────────

class ResolutionRequest(BaseModel):
    """A reviewer's instruction for resolving one duplicate group.

    Scores and titles are checked by the resolution pipeline rather than
    here so that a bad value comes back as a failed ``ResolutionResult``.
    """

    model_config = ConfigDict(frozen=True)

    group_id: str
    canonical_id: str
    duplicate_ids: list[str] = Field(default_factory=list)
    duplicate_type: DuplicateType = DuplicateType.NEAR
    similarity_score: float = 1.0
    merge_metadata: bool = False
    notes: str | None = None
    mode: ResolutionMode = ResolutionMode.SINGLE
    sub_group_name: str | None = None
    parent_group_id: str | None = None
    title_updates: dict[str, str] = Field(
        default_factory=dict,
        description="lesson id -> corrected title, applied before archival.",
    )


class TitleChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    lesson_id: str
    old_title: str
    new_title: str


class ResolutionRecord(BaseModel):
    """Audit row written for every successful resolution."""

    model_config = ConfigDict(frozen=True)

    resolution_id: str
    group_id: str
    canonical_id: str
    duplicate_type: DuplicateType
    similarity_score: float = Field(ge=0.0, le=1.0)
    lesson_count: int = Field(ge=1)
    action_taken: ActionTaken
    notes: str | None = None
    resolved_by: str
    resolution_mode: ResolutionMode
    sub_group_name: str | None = None
    parent_group_id: str | None = None
    resolved_at: datetime | None = None


class ResolutionResult(BaseModel):
    """Outcome of a resolution call.  Check ``success`` before anything else."""

    model_config = ConfigDict(frozen=True)

    success: bool
    resolution_id: str | None = None
    canonical_id: str | None = None
    archived_count: int = 0
    action_taken: ActionTaken | None = None
    title_updates: list[TitleChange] = Field(default_factory=list)
    error: str | None = None
    detail: str | None = Field(default=None, description="Low-level error code.")
    reason: ResolutionFailureReason | None = None

    @classmethod
    def failure(
        cls,
        reason: ResolutionFailureReason,
        error: str,
        detail: str | None = None,
    ) -> ResolutionResult:
        return cls(success=False, reason=reason, error=error, detail=detail)
