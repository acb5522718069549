"""SQLite-backed submission, review and similarity-cache store.

Lives in the same database file as the catalog (``data/lessons.db``).
``submission_similarities`` is the detector's cache: one row per
(submission, candidate lesson), replaced wholesale when scores are
recomputed.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.submission_store import ISubmissionStore
from src.models.duplicates import SubmissionSimilarity
from src.models.submission import Review, Submission
from src.utils.vector_math import from_blob, to_blob

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/lessons.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_SUBMISSIONS_TABLE = """\
CREATE TABLE IF NOT EXISTS submissions (
    submission_id       TEXT PRIMARY KEY,
    teacher_id          TEXT NOT NULL,
    document_ref        TEXT NOT NULL,
    submission_type     TEXT NOT NULL DEFAULT 'new' CHECK (submission_type IN ('new', 'update')),
    original_lesson_id  TEXT,
    extracted_title     TEXT NOT NULL DEFAULT '',
    extracted_body      TEXT NOT NULL DEFAULT '',
    content_hash        TEXT,
    embedding           BLOB,
    status              TEXT NOT NULL DEFAULT 'submitted' CHECK (status IN
                            ('submitted', 'in_review', 'needs_revision', 'approved', 'rejected')),
    reviewer_id         TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL
);
"""

_CREATE_REVIEWS_TABLE = """\
CREATE TABLE IF NOT EXISTS submission_reviews (
    review_id            TEXT PRIMARY KEY,
    submission_id        TEXT NOT NULL REFERENCES submissions(submission_id),
    reviewer_id          TEXT NOT NULL,
    decision             TEXT NOT NULL CHECK (decision IN
                             ('approve_new', 'approve_update', 'reject', 'needs_revision')),
    detected_duplicates  TEXT NOT NULL DEFAULT '[]',
    tagged_attributes    TEXT NOT NULL DEFAULT '{}',
    notes                TEXT,
    created_at           TEXT NOT NULL
);
"""

_CREATE_SIMILARITIES_TABLE = """\
CREATE TABLE IF NOT EXISTS submission_similarities (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    submission_id       TEXT NOT NULL REFERENCES submissions(submission_id),
    lesson_id           TEXT NOT NULL,
    lesson_title        TEXT NOT NULL DEFAULT '',
    title_similarity    REAL NOT NULL CHECK (title_similarity BETWEEN 0 AND 1),
    content_similarity  REAL CHECK (content_similarity BETWEEN 0 AND 1),
    metadata_overlap    REAL NOT NULL CHECK (metadata_overlap BETWEEN 0 AND 1),
    combined_score      REAL NOT NULL CHECK (combined_score BETWEEN 0 AND 1),
    match_type          TEXT NOT NULL CHECK (match_type IN ('exact', 'high', 'medium', 'low')),
    computed_at         TEXT NOT NULL,
    UNIQUE(submission_id, lesson_id)
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_submissions_status ON submissions(status);",
    "CREATE INDEX IF NOT EXISTS idx_submissions_hash ON submissions(content_hash);",
    "CREATE INDEX IF NOT EXISTS idx_reviews_submission ON submission_reviews(submission_id);",
    "CREATE INDEX IF NOT EXISTS idx_similarities_submission ON submission_similarities(submission_id);",
]

# ── DML ───────────────────────────────────────────────────────────────

_UPSERT_SUBMISSION = """\
INSERT INTO submissions
    (submission_id, teacher_id, document_ref, submission_type, original_lesson_id,
     extracted_title, extracted_body, content_hash, embedding, status, reviewer_id,
     created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(submission_id) DO UPDATE SET
    extracted_title = excluded.extracted_title,
    extracted_body = excluded.extracted_body,
    content_hash = excluded.content_hash,
    embedding = excluded.embedding,
    status = excluded.status,
    reviewer_id = excluded.reviewer_id,
    updated_at = excluded.updated_at;
"""

_SELECT_SUBMISSION = """\
SELECT submission_id, teacher_id, document_ref, submission_type, original_lesson_id,
       extracted_title, extracted_body, content_hash, embedding, status, reviewer_id,
       created_at, updated_at
FROM submissions WHERE submission_id = ?;
"""

_INSERT_SIMILARITY = """\
INSERT INTO submission_similarities
    (submission_id, lesson_id, lesson_title, title_similarity, content_similarity,
     metadata_overlap, combined_score, match_type, computed_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_SIMILARITIES = """\
SELECT submission_id, lesson_id, lesson_title, title_similarity, content_similarity,
       metadata_overlap, combined_score, match_type, computed_at
FROM submission_similarities
WHERE submission_id = ?
ORDER BY combined_score DESC, lesson_id ASC;
"""

_INSERT_REVIEW = """\
INSERT INTO submission_reviews
    (review_id, submission_id, reviewer_id, decision, detected_duplicates,
     tagged_attributes, notes, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteSubmissionStore(ISubmissionStore):
    """SQLite-backed submission lifecycle persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create submission tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_SUBMISSIONS_TABLE)
            await db.execute(_CREATE_REVIEWS_TABLE)
            await db.execute(_CREATE_SIMILARITIES_TABLE)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("submission_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_submissions"

    # ── Submissions ────────────────────────────────────────────────────

    async def save_submission(self, submission: Submission) -> None:
        now = _now()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPSERT_SUBMISSION, (
                submission.submission_id,
                submission.teacher_id,
                submission.document_ref,
                submission.submission_type.value,
                submission.original_lesson_id,
                submission.extracted_title,
                submission.extracted_body,
                submission.content_hash,
                to_blob(submission.embedding),
                submission.status.value,
                submission.reviewer_id,
                submission.created_at.isoformat() if submission.created_at else now,
                now,
            ))
            await db.commit()
        logger.debug(
            "submission_saved",
            submission_id=submission.submission_id,
            status=submission.status.value,
        )

    async def get_submission(self, submission_id: str) -> Submission | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_SUBMISSION, (submission_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        data = dict(row)
        data["embedding"] = from_blob(data["embedding"])
        return Submission.model_validate(data)

    # ── Similarity cache ───────────────────────────────────────────────

    async def save_similarities(
        self, submission_id: str, similarities: list[SubmissionSimilarity]
    ) -> None:
        now = _now()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "DELETE FROM submission_similarities WHERE submission_id = ?;", (submission_id,)
            )
            for sim in similarities:
                await db.execute(_INSERT_SIMILARITY, (
                    submission_id,
                    sim.lesson_id,
                    sim.lesson_title,
                    sim.title_similarity,
                    sim.content_similarity,
                    sim.metadata_overlap,
                    sim.combined_score,
                    sim.match_type.value,
                    sim.computed_at.isoformat() if sim.computed_at else now,
                ))
            await db.commit()
        logger.debug(
            "submission_similarities_saved",
            submission_id=submission_id,
            count=len(similarities),
        )

    async def get_similarities(self, submission_id: str) -> list[SubmissionSimilarity]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_SIMILARITIES, (submission_id,))
            rows = await cursor.fetchall()
        return [SubmissionSimilarity.model_validate(dict(row)) for row in rows]

    # ── Reviews ────────────────────────────────────────────────────────

    async def save_review(self, review: Review) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_INSERT_REVIEW, (
                review.review_id,
                review.submission_id,
                review.reviewer_id,
                review.decision.value,
                json.dumps(review.detected_duplicates),
                json.dumps(review.tagged_attributes.to_document()),
                review.notes,
                review.created_at.isoformat() if review.created_at else _now(),
            ))
            await db.commit()

    async def get_reviews(self, submission_id: str) -> list[Review]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT review_id, submission_id, reviewer_id, decision, detected_duplicates, "
                "tagged_attributes, notes, created_at FROM submission_reviews "
                "WHERE submission_id = ? ORDER BY created_at, review_id;",
                (submission_id,),
            )
            rows = await cursor.fetchall()

        reviews: list[Review] = []
        for row in rows:
            data = dict(row)
            data["detected_duplicates"] = json.loads(data["detected_duplicates"] or "[]")
            data["tagged_attributes"] = json.loads(data["tagged_attributes"] or "{}")
            reviews.append(Review.model_validate(data))
        return reviews
