"""Lesson bank domain models — re-exports all public model classes.

Other layers can import from ``src.models`` directly instead of reaching
into the individual submodules:
    - lesson.py      — Lesson, typed attribute document, caller identity
    - duplicates.py  — Detection candidates, resolution request/result/record
    - submission.py  — Submission, Review, LessonVersion lifecycle
    - search.py      — Search filters and result pages
    - vocabulary.py  — Synonym entries and the cultural hierarchy
"""

from __future__ import annotations

from src.models.duplicates import (
    ActionTaken,
    CanonicalMapping,
    DetectionMethod,
    DuplicateGroup,
    DuplicatePair,
    DuplicateType,
    Fingerprint,
    LessonArchiveEntry,
    LessonMatch,
    MatchType,
    ResolutionFailureReason,
    ResolutionMode,
    ResolutionRecord,
    ResolutionRequest,
    ResolutionResult,
    SubmissionSimilarity,
    TitleChange,
)
from src.models.lesson import (
    CallerIdentity,
    ConfidenceScores,
    Lesson,
    LessonAttributes,
    LessonSummary,
    MaintenanceReport,
    UserRole,
)
from src.models.search import SearchCriteria, SearchFilters, SearchPage
from src.models.submission import (
    ExtractedDocument,
    LessonVersion,
    Review,
    ReviewDecision,
    Submission,
    SubmissionStatus,
    SubmissionType,
)
from src.models.vocabulary import (
    HierarchyNode,
    SynonymEntry,
    SynonymType,
    Vocabulary,
)

__all__ = [
    "ActionTaken",
    "CallerIdentity",
    "CanonicalMapping",
    "ConfidenceScores",
    "DetectionMethod",
    "DuplicateGroup",
    "DuplicatePair",
    "DuplicateType",
    "ExtractedDocument",
    "Fingerprint",
    "HierarchyNode",
    "Lesson",
    "LessonArchiveEntry",
    "LessonAttributes",
    "LessonMatch",
    "LessonSummary",
    "LessonVersion",
    "MaintenanceReport",
    "MatchType",
    "ResolutionFailureReason",
    "ResolutionMode",
    "ResolutionRecord",
    "ResolutionRequest",
    "ResolutionResult",
    "Review",
    "ReviewDecision",
    "SearchCriteria",
    "SearchFilters",
    "SearchPage",
    "Submission",
    "SubmissionSimilarity",
    "SubmissionStatus",
    "SubmissionType",
    "SynonymEntry",
    "SynonymType",
    "Vocabulary",
]
