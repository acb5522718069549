"""Duplicate-group resolution workflow.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: ILessonStore, IAuthorizationProvider.
#
# resolve_duplicate_group runs as an explicit pipeline:
#
#   validate (pure)  ->  BEGIN IMMEDIATE  ->  load group rows
#       ->  plan (pure)  ->  apply  ->  COMMIT
#
# A failed validation never opens a transaction.  A failed plan aborts
# the transaction before any write.  Any exception while applying rolls
# everything back and is reported as a STORE_ERROR result carrying the
# underlying cause.  Apply order inside the transaction is fixed:
#
#   title / merge updates -> archive inserts -> catalog deletes -> record
#
# so no duplicate row is ever deleted before its archive copy exists
# (the schema refuses such a delete as well).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import structlog

from src.interfaces.authorization_provider import IAuthorizationProvider
from src.interfaces.lesson_store import ICatalogTransaction, ILessonStore
from src.models.duplicates import (
    CanonicalMapping,
    DuplicateType,
    ResolutionFailureReason,
    ResolutionRequest,
    ResolutionResult,
)
from src.models.lesson import CallerIdentity
from src.services.resolution_planner import (
    ResolutionPlan,
    duplicate_ids_of,
    plan_resolution,
    validate_request,
)
from src.utils.errors import IntegrityViolationError, PermissionDeniedError
from src.utils.logging import bind_log_context

logger = structlog.get_logger(logger_name=__name__)


def _error_detail(exc: BaseException) -> str:
    """Low-level error code of ``exc`` (SQLite error name when there is one)."""
    for candidate in (exc, exc.__cause__):
        name = getattr(candidate, "sqlite_errorname", None)
        if name:
            return name
    return type(exc).__name__


class ResolutionService:
    """Resolves duplicate groups and records canonical mappings."""

    def __init__(
        self,
        lesson_store: ILessonStore,
        authorization: IAuthorizationProvider,
    ) -> None:
        self._store = lesson_store
        self._authorization = authorization

    async def _caller(self, user_id: str) -> CallerIdentity | None:
        return await self._authorization.get_caller(user_id)

    async def resolve_duplicate_group(
        self,
        request: ResolutionRequest,
        user_id: str,
    ) -> ResolutionResult:
        """Resolve one duplicate group.  Never raises; check ``success``."""
        with bind_log_context(group_id=request.group_id, resolved_by=user_id):
            try:
                caller = await self._caller(user_id)
            except Exception as exc:
                logger.error(
                    "caller_lookup_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=True,
                )
                return ResolutionResult.failure(
                    ResolutionFailureReason.PERMISSION_DENIED,
                    f"Could not verify caller {user_id}: {exc}",
                    detail=_error_detail(exc),
                )

            rejected = validate_request(request, caller)
            if rejected is not None:
                logger.warning(
                    "duplicate_resolution_rejected",
                    reason=rejected.reason.value,
                    error=rejected.error,
                )
                return rejected

            try:
                async with self._store.transaction() as tx:
                    lessons = await tx.get_lessons([request.canonical_id, *duplicate_ids_of(request)])
                    outcome = plan_resolution(request, user_id, lessons)
                    if isinstance(outcome, ResolutionResult):
                        tx.abort()
                    else:
                        await self._apply(tx, outcome)
            except Exception as exc:
                detail = _error_detail(exc)
                logger.error(
                    "duplicate_resolution_failed",
                    error=str(exc),
                    detail=detail,
                    exc_info=True,
                )
                return ResolutionResult.failure(
                    ResolutionFailureReason.STORE_ERROR,
                    f"Resolution rolled back: {exc}",
                    detail=detail,
                )

            if isinstance(outcome, ResolutionResult):
                logger.warning(
                    "duplicate_resolution_rejected",
                    reason=outcome.reason.value,
                    error=outcome.error,
                )
                return outcome

            result = outcome.success_result()
            logger.info(
                "duplicate_group_resolved",
                canonical_id=request.canonical_id,
                resolution_id=result.resolution_id,
                mode=request.mode.value,
                action_taken=result.action_taken.value,
                archived_count=result.archived_count,
                title_updates=len(result.title_updates),
            )
            return result

    async def _apply(self, tx: ICatalogTransaction, plan: ResolutionPlan) -> None:
        for lesson in plan.updated_lessons:
            await tx.update_lesson(lesson)
        for entry in plan.archive_entries:
            await tx.archive_lesson(entry)
        for lesson_id in plan.delete_ids:
            await tx.delete_lesson(lesson_id)
        await tx.insert_resolution(plan.record)

    async def link_canonical(
        self,
        duplicate_id: str,
        canonical_id: str,
        similarity_score: float,
        resolution_type: DuplicateType,
        user_id: str,
    ) -> CanonicalMapping:
        """Record that a live lesson duplicates another live lesson.

        Raises:
            PermissionDeniedError: If the caller cannot resolve duplicates.
            IntegrityViolationError: For a self-reference, an out-of-range
                score or a lesson that is not in the active catalog.
        """
        caller = await self._caller(user_id)
        if caller is None or not caller.can_resolve_duplicates():
            raise PermissionDeniedError(f"User {user_id} cannot record canonical mappings")

        try:
            mapping = CanonicalMapping(
                duplicate_id=duplicate_id,
                canonical_id=canonical_id,
                similarity_score=similarity_score,
                resolution_type=resolution_type,
                resolved_by=user_id,
            )
        except ValueError as exc:
            raise IntegrityViolationError(f"Invalid canonical mapping: {exc}") from exc

        await self._store.link_canonical(mapping)
        return mapping

    async def purge_archive_entry(self, lesson_id: str, user_id: str) -> int:
        """Delete the archive copies of a lesson.  Super-admin only."""
        caller = await self._caller(user_id)
        if caller is None or not caller.is_super_admin():
            raise PermissionDeniedError(f"User {user_id} cannot delete archived lessons")
        removed = await self._store.purge_archive_entry(lesson_id)
        logger.warning("archive_entry_deleted", lesson_id=lesson_id, rows=removed, deleted_by=user_id)
        return removed
