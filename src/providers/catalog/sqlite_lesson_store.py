"""SQLite-backed lesson catalog store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing ILessonStore).
#
# Database: ``data/lessons.db`` — one file holding the active catalog, its
# FTS5 index, the archive, canonical mappings, the resolution ledger and
# lesson versions, so a resolution commits all of them atomically.
#
# Constraint-level rules live in the schema, not in Python:
#   - canonical_lessons: no self-reference, score in [0, 1], known type
#   - duplicate_resolutions: known type/mode/action, score in [0, 1]
#   - lesson_archive: rows cannot be updated
#   - lessons: a row cannot be deleted unless an archive copy exists
#
# Every connection registers ``similarity()`` (pg_trgm semantics) so that
# fuzzy matching runs inside the search statement.  Uses ``aiosqlite`` for
# async I/O and ``PRAGMA journal_mode=WAL`` for concurrent read safety.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np
import structlog

from src.interfaces.lesson_store import ICatalogTransaction, ILessonStore
from src.models.duplicates import (
    CanonicalMapping,
    LessonArchiveEntry,
    LessonMatch,
    ResolutionRecord,
)
from src.models.lesson import ConfidenceScores, Lesson, LessonAttributes, LessonSummary
from src.models.search import SearchCriteria
from src.models.submission import LessonVersion
from src.providers.catalog import search_sql
from src.utils.confidence import clamp_unit, similarity_to_match_type
from src.utils.errors import IntegrityViolationError, StoreError
from src.utils.text_similarity import trigram_similarity
from src.utils.vector_math import cosine_similarities, from_blob, to_blob

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/lessons.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_LESSONS_TABLE = """\
CREATE TABLE IF NOT EXISTS lessons (
    lesson_id           TEXT    PRIMARY KEY,
    title               TEXT    NOT NULL,
    summary             TEXT    NOT NULL DEFAULT '',
    file_link           TEXT,
    grade_levels        TEXT    NOT NULL DEFAULT '[]',
    attributes          TEXT    NOT NULL DEFAULT '{}',
    confidence          TEXT    NOT NULL DEFAULT '{}',
    body                TEXT,
    content_hash        TEXT,
    embedding           BLOB,
    flagged_for_review  INTEGER NOT NULL DEFAULT 0,
    has_versions        INTEGER NOT NULL DEFAULT 0,
    version_number      INTEGER NOT NULL DEFAULT 1,
    canonical_id        TEXT,
    processing_notes    TEXT,
    created_at          TEXT    NOT NULL,
    updated_at          TEXT    NOT NULL
);
"""

_CREATE_FTS_TABLE = """\
CREATE VIRTUAL TABLE IF NOT EXISTS lessons_fts USING fts5(
    lesson_id UNINDEXED, title, summary, ingredients, tags, skills, themes, culture, body,
    tokenize = 'porter unicode61 remove_diacritics 2'
);
"""

_CREATE_ARCHIVE_TABLE = """\
CREATE TABLE IF NOT EXISTS lesson_archive (
    archive_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    lesson_id       TEXT    NOT NULL,
    title           TEXT    NOT NULL,
    snapshot        TEXT    NOT NULL,
    embedding       BLOB,
    archive_reason  TEXT    NOT NULL,
    archived_by     TEXT    NOT NULL,
    canonical_id    TEXT,
    archived_at     TEXT    NOT NULL
);
"""

_CREATE_CANONICAL_TABLE = """\
CREATE TABLE IF NOT EXISTS canonical_lessons (
    duplicate_id      TEXT PRIMARY KEY,
    canonical_id      TEXT NOT NULL,
    similarity_score  REAL NOT NULL CHECK (similarity_score >= 0 AND similarity_score <= 1),
    resolution_type   TEXT NOT NULL CHECK (resolution_type IN ('exact', 'near', 'version', 'title')),
    resolved_by       TEXT,
    resolved_at       TEXT NOT NULL,
    CHECK (duplicate_id <> canonical_id)
);
"""

_CREATE_RESOLUTIONS_TABLE = """\
CREATE TABLE IF NOT EXISTS duplicate_resolutions (
    resolution_id     TEXT    PRIMARY KEY,
    group_id          TEXT    NOT NULL,
    canonical_id      TEXT    NOT NULL,
    duplicate_type    TEXT    NOT NULL CHECK (duplicate_type IN ('exact', 'near', 'version', 'title')),
    similarity_score  REAL    NOT NULL CHECK (similarity_score >= 0 AND similarity_score <= 1),
    lesson_count      INTEGER NOT NULL CHECK (lesson_count >= 1),
    action_taken      TEXT    NOT NULL CHECK (action_taken IN
                          ('keep_all', 'split_group', 'merge_and_archive', 'archive_only')),
    notes             TEXT,
    resolved_by       TEXT    NOT NULL,
    resolution_mode   TEXT    NOT NULL CHECK (resolution_mode IN ('single', 'split', 'keep_all')),
    sub_group_name    TEXT,
    parent_group_id   TEXT,
    resolved_at       TEXT    NOT NULL
);
"""

_CREATE_VERSIONS_TABLE = """\
CREATE TABLE IF NOT EXISTS lesson_versions (
    version_id      TEXT    PRIMARY KEY,
    lesson_id       TEXT    NOT NULL,
    version_number  INTEGER NOT NULL,
    snapshot        TEXT    NOT NULL,
    submission_id   TEXT,
    created_at      TEXT    NOT NULL,
    UNIQUE(lesson_id, version_number)
);
"""

_CREATE_TRIGGERS = [
    """\
CREATE TRIGGER IF NOT EXISTS lesson_archive_immutable
BEFORE UPDATE ON lesson_archive
BEGIN
    SELECT RAISE(ABORT, 'lesson_archive rows are immutable');
END;
""",
    """\
CREATE TRIGGER IF NOT EXISTS lessons_delete_requires_archive
BEFORE DELETE ON lessons
WHEN NOT EXISTS (SELECT 1 FROM lesson_archive WHERE lesson_id = OLD.lesson_id)
BEGIN
    SELECT RAISE(ABORT, 'lesson must be archived before it is deleted');
END;
""",
]

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_lessons_hash ON lessons(content_hash);",
    "CREATE INDEX IF NOT EXISTS idx_lessons_title ON lessons(lower(trim(title)));",
    "CREATE INDEX IF NOT EXISTS idx_archive_lesson ON lesson_archive(lesson_id);",
    "CREATE INDEX IF NOT EXISTS idx_archive_canonical ON lesson_archive(canonical_id);",
    "CREATE INDEX IF NOT EXISTS idx_canonical_canonical ON canonical_lessons(canonical_id);",
    "CREATE INDEX IF NOT EXISTS idx_resolutions_group ON duplicate_resolutions(group_id);",
    "CREATE INDEX IF NOT EXISTS idx_resolutions_canonical ON duplicate_resolutions(canonical_id);",
]

# ── DML ───────────────────────────────────────────────────────────────

_LESSON_COLUMNS = (
    "lesson_id, title, summary, file_link, grade_levels, attributes, confidence, body, "
    "content_hash, embedding, flagged_for_review, has_versions, version_number, "
    "canonical_id, processing_notes, created_at, updated_at"
)

_UPSERT_LESSON = f"""\
INSERT INTO lessons ({_LESSON_COLUMNS})
VALUES (:lesson_id, :title, :summary, :file_link, :grade_levels, :attributes, :confidence,
        :body, :content_hash, :embedding, :flagged_for_review, :has_versions, :version_number,
        :canonical_id, :processing_notes, :created_at, :updated_at)
ON CONFLICT(lesson_id) DO UPDATE SET
    title = excluded.title,
    summary = excluded.summary,
    file_link = excluded.file_link,
    grade_levels = excluded.grade_levels,
    attributes = excluded.attributes,
    confidence = excluded.confidence,
    body = excluded.body,
    content_hash = excluded.content_hash,
    embedding = excluded.embedding,
    flagged_for_review = excluded.flagged_for_review,
    has_versions = excluded.has_versions,
    version_number = excluded.version_number,
    canonical_id = excluded.canonical_id,
    processing_notes = excluded.processing_notes,
    updated_at = excluded.updated_at;
"""

_SELECT_LESSONS = f"SELECT {_LESSON_COLUMNS} FROM lessons"

_INSERT_FTS = (
    f"INSERT INTO lessons_fts ({', '.join(search_sql.FTS_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in search_sql.FTS_COLUMNS)});"
)

_DELETE_FTS = "DELETE FROM lessons_fts WHERE lesson_id = ?;"

_INSERT_ARCHIVE = """\
INSERT INTO lesson_archive
    (lesson_id, title, snapshot, embedding, archive_reason, archived_by, canonical_id, archived_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_RESOLUTION = """\
INSERT INTO duplicate_resolutions
    (resolution_id, group_id, canonical_id, duplicate_type, similarity_score, lesson_count,
     action_taken, notes, resolved_by, resolution_mode, sub_group_name, parent_group_id,
     resolved_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_UPSERT_CANONICAL = """\
INSERT INTO canonical_lessons
    (duplicate_id, canonical_id, similarity_score, resolution_type, resolved_by, resolved_at)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(duplicate_id) DO UPDATE SET
    canonical_id = excluded.canonical_id,
    similarity_score = excluded.similarity_score,
    resolution_type = excluded.resolution_type,
    resolved_by = excluded.resolved_by,
    resolved_at = excluded.resolved_at;
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _lesson_params(lesson: Lesson) -> dict[str, Any]:
    now = _now()
    return {
        "lesson_id": lesson.lesson_id,
        "title": lesson.title,
        "summary": lesson.summary or "",
        "file_link": lesson.file_link,
        "grade_levels": json.dumps(list(lesson.grade_levels)),
        "attributes": json.dumps(lesson.attributes.to_document()),
        "confidence": lesson.confidence.model_dump_json(),
        "body": lesson.body,
        "content_hash": lesson.content_hash,
        "embedding": to_blob(lesson.embedding),
        "flagged_for_review": int(lesson.flagged_for_review),
        "has_versions": int(lesson.has_versions),
        "version_number": lesson.version_number,
        "canonical_id": lesson.canonical_id,
        "processing_notes": lesson.processing_notes,
        "created_at": lesson.created_at.isoformat() if lesson.created_at else now,
        "updated_at": now,
    }


def _row_to_lesson(row: aiosqlite.Row) -> Lesson:
    return Lesson(
        lesson_id=row["lesson_id"],
        title=row["title"],
        summary=row["summary"] or "",
        file_link=row["file_link"],
        grade_levels=json.loads(row["grade_levels"] or "[]"),
        attributes=LessonAttributes.model_validate(json.loads(row["attributes"] or "{}")),
        confidence=ConfidenceScores.model_validate(json.loads(row["confidence"] or "{}")),
        body=row["body"],
        content_hash=row["content_hash"],
        embedding=from_blob(row["embedding"]),
        flagged_for_review=bool(row["flagged_for_review"]),
        has_versions=bool(row["has_versions"]),
        version_number=row["version_number"],
        canonical_id=row["canonical_id"],
        processing_notes=row["processing_notes"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_archive_entry(row: aiosqlite.Row) -> LessonArchiveEntry:
    lesson = Lesson.model_validate_json(row["snapshot"])
    if row["embedding"] is not None:
        lesson = lesson.model_copy(update={"embedding": from_blob(row["embedding"])})
    return LessonArchiveEntry(
        lesson=lesson,
        archive_reason=row["archive_reason"],
        archived_by=row["archived_by"],
        canonical_id=row["canonical_id"],
        archived_at=row["archived_at"],
    )


async def _write_lesson(db: aiosqlite.Connection, lesson: Lesson) -> None:
    await db.execute(_UPSERT_LESSON, _lesson_params(lesson))
    await db.execute(_DELETE_FTS, (lesson.lesson_id,))
    await db.execute(_INSERT_FTS, search_sql.fts_row(lesson))


async def _select_lessons(db: aiosqlite.Connection, lesson_ids: list[str]) -> dict[str, Lesson]:
    if not lesson_ids:
        return {}
    placeholders = ", ".join("?" for _ in lesson_ids)
    cursor = await db.execute(
        f"{_SELECT_LESSONS} WHERE lesson_id IN ({placeholders})", list(lesson_ids)
    )
    rows = await cursor.fetchall()
    return {row["lesson_id"]: _row_to_lesson(row) for row in rows}


class _SQLiteCatalogTransaction(ICatalogTransaction):
    """ICatalogTransaction over one connection inside ``BEGIN IMMEDIATE``."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._aborted = False

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self) -> None:
        self._aborted = True

    async def get_lessons(self, lesson_ids: list[str]) -> dict[str, Lesson]:
        return await _select_lessons(self._db, lesson_ids)

    async def update_lesson(self, lesson: Lesson) -> None:
        await _write_lesson(self._db, lesson)

    async def archive_lesson(self, entry: LessonArchiveEntry) -> None:
        lesson = entry.lesson
        await self._db.execute(_INSERT_ARCHIVE, (
            lesson.lesson_id,
            lesson.title,
            lesson.model_dump_json(exclude={"embedding"}),
            to_blob(lesson.embedding),
            entry.archive_reason,
            entry.archived_by,
            entry.canonical_id,
            entry.archived_at.isoformat() if entry.archived_at else _now(),
        ))

    async def delete_lesson(self, lesson_id: str) -> None:
        try:
            await self._db.execute("DELETE FROM lessons WHERE lesson_id = ?;", (lesson_id,))
        except sqlite3.IntegrityError as exc:
            raise IntegrityViolationError(
                message=f"Cannot delete lesson {lesson_id}: {exc}",
                provider_name="sqlite_lessons",
            ) from exc
        await self._db.execute(_DELETE_FTS, (lesson_id,))

    async def insert_resolution(self, record: ResolutionRecord) -> None:
        await self._db.execute(_INSERT_RESOLUTION, (
            record.resolution_id,
            record.group_id,
            record.canonical_id,
            record.duplicate_type.value,
            record.similarity_score,
            record.lesson_count,
            record.action_taken.value,
            record.notes,
            record.resolved_by,
            record.resolution_mode.value,
            record.sub_group_name,
            record.parent_group_id,
            record.resolved_at.isoformat() if record.resolved_at else _now(),
        ))


class SQLiteLessonStore(ILessonStore):
    """SQLite-backed catalog, archive, ledger and version store."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH, embedding_dimension: int = 1536) -> None:
        self._db_path = Path(db_path)
        self._dimension = embedding_dimension

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with row access by name and ``similarity()`` registered."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA busy_timeout = 5000;")
            await db.create_function("similarity", 2, trigram_similarity, deterministic=True)
            yield db

    async def initialize(self) -> None:
        """Create all catalog tables, triggers and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            # WAL mode enables concurrent readers while a writer is active.
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_LESSONS_TABLE)
            await db.execute(_CREATE_FTS_TABLE)
            await db.execute(_CREATE_ARCHIVE_TABLE)
            await db.execute(_CREATE_CANONICAL_TABLE)
            await db.execute(_CREATE_RESOLUTIONS_TABLE)
            await db.execute(_CREATE_VERSIONS_TABLE)
            for trigger_sql in _CREATE_TRIGGERS:
                await db.execute(trigger_sql)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("lesson_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_lessons"

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ICatalogTransaction]:
        """Yield a write transaction; commit on clean exit, roll back otherwise."""
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE;")
            tx = _SQLiteCatalogTransaction(db)
            try:
                yield tx
            except BaseException:
                await db.rollback()
                logger.warning("catalog_transaction_rolled_back")
                raise
            if tx.aborted:
                await db.rollback()
                logger.info("catalog_transaction_aborted")
            else:
                await db.commit()

    # ── Lesson CRUD ────────────────────────────────────────────────────

    async def upsert_lesson(self, lesson: Lesson) -> None:
        async with self._connect() as db:
            await _write_lesson(db, lesson)
            await db.commit()
        logger.debug("lesson_upserted", lesson_id=lesson.lesson_id)

    async def get_lesson(self, lesson_id: str) -> Lesson | None:
        async with self._connect() as db:
            found = await _select_lessons(db, [lesson_id])
        return found.get(lesson_id)

    async def get_lessons(self, lesson_ids: list[str]) -> dict[str, Lesson]:
        async with self._connect() as db:
            return await _select_lessons(db, list(dict.fromkeys(lesson_ids)))

    async def list_lessons(
        self,
        missing_embedding: bool = False,
        missing_hash: bool = False,
    ) -> list[Lesson]:
        conditions = []
        if missing_embedding:
            conditions.append("embedding IS NULL")
        if missing_hash:
            conditions.append("(content_hash IS NULL OR content_hash = '')")
        sql = _SELECT_LESSONS
        if conditions:
            sql += " WHERE " + " OR ".join(conditions)
        sql += " ORDER BY lesson_id;"

        async with self._connect() as db:
            cursor = await db.execute(sql)
            rows = await cursor.fetchall()
        return [_row_to_lesson(row) for row in rows]

    async def update_fingerprint(
        self,
        lesson_id: str,
        content_hash: str | None = None,
        embedding: list[float] | None = None,
    ) -> None:
        assignments = ["updated_at = :updated_at"]
        params: dict[str, Any] = {"lesson_id": lesson_id, "updated_at": _now()}
        if content_hash is not None:
            assignments.append("content_hash = :content_hash")
            params["content_hash"] = content_hash
        if embedding is not None:
            assignments.append("embedding = :embedding")
            params["embedding"] = to_blob(embedding)

        async with self._connect() as db:
            await db.execute(
                f"UPDATE lessons SET {', '.join(assignments)} WHERE lesson_id = :lesson_id;",
                params,
            )
            await db.commit()

    async def record_version(self, version: LessonVersion) -> None:
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE;")
            try:
                await db.execute(
                    "INSERT INTO lesson_versions "
                    "(version_id, lesson_id, version_number, snapshot, submission_id, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?);",
                    (
                        version.version_id,
                        version.lesson_id,
                        version.version_number,
                        version.model_dump_json(),
                        version.submission_id,
                        version.created_at.isoformat() if version.created_at else _now(),
                    ),
                )
                cursor = await db.execute(
                    "UPDATE lessons SET version_number = ?, has_versions = 1, updated_at = ? "
                    "WHERE lesson_id = ?;",
                    (version.version_number + 1, _now(), version.lesson_id),
                )
                if cursor.rowcount == 0:
                    raise StoreError(
                        message=f"Lesson not found: {version.lesson_id}",
                        provider_name=self.get_provider_name(),
                    )
            except BaseException:
                await db.rollback()
                raise
            await db.commit()
        logger.info(
            "lesson_version_recorded",
            lesson_id=version.lesson_id,
            version_number=version.version_number,
        )

    async def get_versions(self, lesson_id: str) -> list[LessonVersion]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT snapshot FROM lesson_versions WHERE lesson_id = ? ORDER BY version_number;",
                (lesson_id,),
            )
            rows = await cursor.fetchall()
        return [LessonVersion.model_validate_json(row["snapshot"]) for row in rows]

    # ── Search ─────────────────────────────────────────────────────────

    async def search(self, criteria: SearchCriteria) -> tuple[list[LessonSummary], int]:
        predicate = search_sql.build_predicate(criteria)
        page_params = {
            **predicate.params,
            "limit": criteria.page_size,
            "offset": criteria.page_offset,
        }

        async with self._connect() as db:
            cursor = await db.execute(search_sql.count_statement(predicate), predicate.params)
            total = (await cursor.fetchone())[0]
            cursor = await db.execute(search_sql.page_statement(predicate), page_params)
            rows = await cursor.fetchall()

        summaries = [
            LessonSummary(
                lesson_id=row["lesson_id"],
                title=row["title"],
                summary=row["summary"] or "",
                file_link=row["file_link"],
                grade_levels=json.loads(row["grade_levels"] or "[]"),
                attributes=LessonAttributes.model_validate(json.loads(row["attributes"] or "{}")),
                confidence_overall=float(row["overall"] or 0.0),
                rank=float(row["rank"] or 0.0),
            )
            for row in rows
        ]
        return summaries, int(total)

    async def facet_counts(
        self, criteria: SearchCriteria, facets: list[str]
    ) -> dict[str, dict[str, int]]:
        predicate = search_sql.build_predicate(criteria)
        statements = {facet: search_sql.facet_statement(predicate, facet) for facet in facets}

        result: dict[str, dict[str, int]] = {}
        async with self._connect() as db:
            for facet, sql in statements.items():
                cursor = await db.execute(sql, predicate.params)
                rows = await cursor.fetchall()
                result[facet] = {str(row["value"]): int(row["n"]) for row in rows}
        return result

    # ── Duplicate lookups ──────────────────────────────────────────────

    async def find_by_hash(self, content_hash: str) -> list[LessonMatch]:
        if not content_hash:
            return []
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT lesson_id, title FROM lessons WHERE content_hash = ? ORDER BY lesson_id;",
                (content_hash,),
            )
            rows = await cursor.fetchall()
        return [LessonMatch(lesson_id=row["lesson_id"], title=row["title"]) for row in rows]

    async def find_by_embedding(
        self, vector: list[float], threshold: float = 0.5, limit: int = 10
    ) -> list[LessonMatch]:
        if not vector or limit <= 0:
            return []

        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT lesson_id, title, embedding FROM lessons WHERE embedding IS NOT NULL;"
            )
            rows = await cursor.fetchall()

        dim = len(vector)
        ids: list[str] = []
        titles: list[str] = []
        vectors: list[np.ndarray] = []
        for row in rows:
            stored = np.frombuffer(row["embedding"], dtype=np.float32)
            if stored.shape[0] != dim:
                continue
            ids.append(row["lesson_id"])
            titles.append(row["title"])
            vectors.append(stored)
        if not vectors:
            return []

        sims = cosine_similarities(vector, np.vstack(vectors))
        scored = [
            (float(sim), lesson_id, title)
            for sim, lesson_id, title in zip(sims, ids, titles)
            if sim >= threshold
        ]
        scored.sort(key=lambda item: (-item[0], item[1]))

        return [
            LessonMatch(
                lesson_id=lesson_id,
                title=title,
                similarity=clamp_unit(sim),
                match_type=similarity_to_match_type(sim),
            )
            for sim, lesson_id, title in scored[:limit]
        ]

    async def get_titles(self) -> dict[str, str]:
        async with self._connect() as db:
            cursor = await db.execute("SELECT lesson_id, title FROM lessons ORDER BY lesson_id;")
            rows = await cursor.fetchall()
        return {row["lesson_id"]: row["title"] for row in rows}

    async def get_embeddings(self) -> dict[str, list[float]]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT lesson_id, embedding FROM lessons WHERE embedding IS NOT NULL "
                "ORDER BY lesson_id;"
            )
            rows = await cursor.fetchall()
        return {row["lesson_id"]: from_blob(row["embedding"]) for row in rows}

    # ── Resolution artefacts ───────────────────────────────────────────

    async def link_canonical(self, mapping: CanonicalMapping) -> None:
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE;")
            try:
                found = await _select_lessons(db, [mapping.duplicate_id, mapping.canonical_id])
                missing = [
                    lesson_id
                    for lesson_id in (mapping.duplicate_id, mapping.canonical_id)
                    if lesson_id not in found
                ]
                if missing:
                    raise IntegrityViolationError(
                        message=f"Canonical mapping references unknown lesson(s): {', '.join(missing)}",
                        provider_name=self.get_provider_name(),
                    )
                await db.execute(_UPSERT_CANONICAL, (
                    mapping.duplicate_id,
                    mapping.canonical_id,
                    mapping.similarity_score,
                    mapping.resolution_type.value,
                    mapping.resolved_by,
                    mapping.resolved_at.isoformat() if mapping.resolved_at else _now(),
                ))
            except sqlite3.IntegrityError as exc:
                await db.rollback()
                raise IntegrityViolationError(
                    message=f"Canonical mapping rejected: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            except BaseException:
                await db.rollback()
                raise
            await db.commit()
        logger.info(
            "canonical_mapping_recorded",
            duplicate_id=mapping.duplicate_id,
            canonical_id=mapping.canonical_id,
        )

    async def get_canonical_mappings(self, canonical_id: str | None = None) -> list[CanonicalMapping]:
        sql = (
            "SELECT duplicate_id, canonical_id, similarity_score, resolution_type, "
            "resolved_by, resolved_at FROM canonical_lessons"
        )
        params: tuple = ()
        if canonical_id is not None:
            sql += " WHERE canonical_id = ?"
            params = (canonical_id,)
        sql += " ORDER BY duplicate_id;"

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [CanonicalMapping.model_validate(dict(row)) for row in rows]

    async def get_archive_entries(self, lesson_id: str | None = None) -> list[LessonArchiveEntry]:
        sql = (
            "SELECT lesson_id, snapshot, embedding, archive_reason, archived_by, canonical_id, "
            "archived_at FROM lesson_archive"
        )
        params: tuple = ()
        if lesson_id is not None:
            sql += " WHERE lesson_id = ?"
            params = (lesson_id,)
        sql += " ORDER BY archive_id;"

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_archive_entry(row) for row in rows]

    async def purge_archive_entry(self, lesson_id: str) -> int:
        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM lesson_archive WHERE lesson_id = ?;", (lesson_id,))
            removed = cursor.rowcount
            await db.commit()
        logger.info("archive_entry_purged", lesson_id=lesson_id, rows=removed)
        return removed

    async def get_resolutions(self, group_id: str | None = None) -> list[ResolutionRecord]:
        sql = (
            "SELECT resolution_id, group_id, canonical_id, duplicate_type, similarity_score, "
            "lesson_count, action_taken, notes, resolved_by, resolution_mode, sub_group_name, "
            "parent_group_id, resolved_at FROM duplicate_resolutions"
        )
        params: tuple = ()
        if group_id is not None:
            sql += " WHERE group_id = ?"
            params = (group_id,)
        sql += " ORDER BY resolved_at, resolution_id;"

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [ResolutionRecord.model_validate(dict(row)) for row in rows]

    async def is_group_resolved(self, lesson_ids: list[str]) -> bool:
        if not lesson_ids:
            return False
        placeholders = ", ".join("?" for _ in lesson_ids)
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT 1 FROM duplicate_resolutions WHERE canonical_id IN ({placeholders}) LIMIT 1;",
                list(lesson_ids),
            )
            row = await cursor.fetchone()
        return row is not None
