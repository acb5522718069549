"""Pure validation and planning for duplicate-group resolution.

Nothing in this module performs I/O.  :func:`validate_request` checks
everything that can be decided from the request and the caller alone;
:func:`plan_resolution` takes the group's current rows (loaded inside the
open transaction) and computes every write the resolution will make.
Both return a failed :class:`ResolutionResult` instead of raising, so the
service can abort the transaction before anything has been mutated.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from src.models.duplicates import (
    ActionTaken,
    LessonArchiveEntry,
    ResolutionFailureReason,
    ResolutionMode,
    ResolutionRecord,
    ResolutionRequest,
    ResolutionResult,
    TitleChange,
)
from src.models.lesson import CallerIdentity, Lesson, LessonAttributes

MAX_TITLE_LENGTH = 500


@dataclass(frozen=True)
class ResolutionPlan:
    """Every write of one resolution, in the order they are applied."""

    updated_lessons: list[Lesson]
    archive_entries: list[LessonArchiveEntry]
    delete_ids: list[str]
    record: ResolutionRecord
    title_changes: list[TitleChange] = field(default_factory=list)

    def success_result(self) -> ResolutionResult:
        return ResolutionResult(
            success=True,
            resolution_id=self.record.resolution_id,
            canonical_id=self.record.canonical_id,
            archived_count=len(self.archive_entries),
            action_taken=self.record.action_taken,
            title_updates=self.title_changes,
        )


def _failure(reason: ResolutionFailureReason, error: str) -> ResolutionResult:
    return ResolutionResult.failure(reason, error)


def duplicate_ids_of(request: ResolutionRequest) -> list[str]:
    """Requested duplicate ids, de-duplicated in request order."""
    return list(dict.fromkeys(request.duplicate_ids))


def validate_request(
    request: ResolutionRequest,
    caller: CallerIdentity | None,
) -> ResolutionResult | None:
    """Return a failure for a request that must not reach the store, else ``None``."""
    if caller is None or not caller.can_resolve_duplicates():
        return _failure(
            ResolutionFailureReason.PERMISSION_DENIED,
            "Only active reviewers and admins can resolve duplicates",
        )

    duplicate_ids = duplicate_ids_of(request)
    if request.canonical_id in duplicate_ids:
        return _failure(
            ResolutionFailureReason.SELF_REFERENCE,
            f"Canonical lesson {request.canonical_id} cannot also be listed as a duplicate",
        )
    if not duplicate_ids:
        return _failure(
            ResolutionFailureReason.EMPTY_GROUP,
            "A resolution needs at least one duplicate lesson",
        )

    score = request.similarity_score
    if not 0.0 <= score <= 1.0:
        return _failure(
            ResolutionFailureReason.INVALID_SCORE,
            f"Similarity score must be between 0 and 1, got {score}",
        )

    group = {request.canonical_id, *duplicate_ids}
    for lesson_id, new_title in request.title_updates.items():
        if lesson_id not in group:
            return _failure(
                ResolutionFailureReason.INVALID_TITLE,
                f"Title update targets lesson {lesson_id}, which is not in this group",
            )
        new_title = new_title or ""
        if not new_title.strip():
            return _failure(
                ResolutionFailureReason.INVALID_TITLE,
                f"Title for lesson {lesson_id} cannot be empty",
            )
        if len(new_title) > MAX_TITLE_LENGTH:
            return _failure(
                ResolutionFailureReason.INVALID_TITLE,
                f"Title for lesson {lesson_id} is longer than {MAX_TITLE_LENGTH} characters",
            )
    return None


def merge_attributes(canonical: Lesson, duplicates: list[Lesson]) -> Lesson:
    """Widen every list-valued field of ``canonical`` by union with ``duplicates``.

    Canonical values keep their order; new values follow in the order the
    duplicates were given.  Nothing is ever removed.
    """

    def _union(*lists: list[str]) -> list[str]:
        return list(dict.fromkeys(v for values in lists for v in values))

    grade_levels = _union(canonical.grade_levels, *(d.grade_levels for d in duplicates))
    merged = {
        name: _union(canonical.attributes.values_for(name), *(d.attributes.values_for(name) for d in duplicates))
        for name in LessonAttributes.LIST_FIELDS
    }
    attributes = canonical.attributes.model_copy(update=merged)
    return canonical.model_copy(update={"grade_levels": grade_levels, "attributes": attributes})


def title_audit_note(old_title: str, user_id: str, at: datetime) -> str:
    return (
        f"[{at.isoformat()}] Title updated during duplicate resolution by user {user_id}. "
        f'Original title: "{old_title}"'
    )


def _append_note(existing: str | None, note: str) -> str:
    return f"{existing}\n{note}" if existing else note


def archive_reason(request: ResolutionRequest) -> str:
    return (
        f"Duplicate resolution: {request.duplicate_type.value} duplicate of "
        f"{request.canonical_id} (group: {request.group_id})"
    )


def action_for(request: ResolutionRequest) -> ActionTaken:
    if request.mode == ResolutionMode.KEEP_ALL:
        return ActionTaken.KEEP_ALL
    if request.mode == ResolutionMode.SPLIT:
        return ActionTaken.SPLIT_GROUP
    if request.merge_metadata:
        return ActionTaken.MERGE_AND_ARCHIVE
    return ActionTaken.ARCHIVE_ONLY


def plan_resolution(
    request: ResolutionRequest,
    user_id: str,
    lessons: dict[str, Lesson],
    now: datetime | None = None,
    resolution_id: str | None = None,
) -> ResolutionPlan | ResolutionResult:
    """Compute the writes for a validated request against the group's current rows."""
    now = now or datetime.now(timezone.utc)
    duplicate_ids = duplicate_ids_of(request)

    canonical = lessons.get(request.canonical_id)
    if canonical is None:
        return _failure(
            ResolutionFailureReason.CANONICAL_NOT_FOUND,
            f"Canonical lesson not found: {request.canonical_id}",
        )
    for lesson_id in duplicate_ids:
        if lesson_id not in lessons:
            return _failure(
                ResolutionFailureReason.DUPLICATE_NOT_FOUND,
                f"Duplicate lesson not found: {lesson_id}",
            )

    current = {lesson_id: lessons[lesson_id] for lesson_id in (request.canonical_id, *duplicate_ids)}
    changed: dict[str, Lesson] = {}

    title_changes: list[TitleChange] = []
    for lesson_id, new_title in request.title_updates.items():
        lesson = current[lesson_id]
        cleaned = new_title.strip()
        if cleaned == lesson.title:
            continue
        title_changes.append(TitleChange(lesson_id=lesson_id, old_title=lesson.title, new_title=cleaned))
        current[lesson_id] = lesson.model_copy(update={
            "title": cleaned,
            "processing_notes": _append_note(
                lesson.processing_notes, title_audit_note(lesson.title, user_id, now)
            ),
        })
        changed[lesson_id] = current[lesson_id]

    action = action_for(request)
    archiving = request.mode != ResolutionMode.KEEP_ALL
    duplicates = [current[lesson_id] for lesson_id in duplicate_ids]

    if archiving and request.merge_metadata:
        changed[request.canonical_id] = merge_attributes(current[request.canonical_id], duplicates)

    archive_entries: list[LessonArchiveEntry] = []
    if archiving:
        reason = archive_reason(request)
        archive_entries = [
            LessonArchiveEntry(
                lesson=duplicate,
                archive_reason=reason,
                archived_by=user_id,
                canonical_id=request.canonical_id,
                archived_at=now,
            )
            for duplicate in duplicates
        ]

    notes = request.notes
    if title_changes:
        log = json.dumps([change.model_dump() for change in title_changes])
        notes = _append_note(notes, f"Title updates: {log}")

    record = ResolutionRecord(
        resolution_id=resolution_id or f"res_{uuid.uuid4().hex}",
        group_id=request.group_id,
        canonical_id=request.canonical_id,
        duplicate_type=request.duplicate_type,
        similarity_score=request.similarity_score,
        lesson_count=1 + len(duplicate_ids),
        action_taken=action,
        notes=notes,
        resolved_by=user_id,
        resolution_mode=request.mode,
        sub_group_name=request.sub_group_name,
        parent_group_id=request.parent_group_id,
        resolved_at=now,
    )
    return ResolutionPlan(
        updated_lessons=list(changed.values()),
        archive_entries=archive_entries,
        delete_ids=duplicate_ids if archiving else [],
        record=record,
        title_changes=title_changes,
    )
