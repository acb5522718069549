"""Shared pytest fixtures for the lesson bank test suite."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from src.interfaces.embedding_provider import RETRIEVAL_DOCUMENT, IEmbeddingProvider
from src.models.lesson import CallerIdentity, ConfidenceScores, Lesson, LessonAttributes, UserRole
from src.models.vocabulary import HierarchyNode, SynonymEntry, SynonymType, Vocabulary
from src.providers.auth.static_authorization_provider import StaticAuthorizationProvider
from src.providers.catalog.sqlite_lesson_store import SQLiteLessonStore
from src.providers.submission.sqlite_submission_store import SQLiteSubmissionStore
from src.providers.vocabulary.yaml_vocabulary_provider import StaticVocabularyProvider
from src.services.fingerprint_service import compute_hash
from src.services.vocabulary_expander import VocabularyExpander
from src.utils.errors import ProviderUnavailableError

# Embedding width used throughout the tests.
DIM = 8


def vec(*components: float) -> list[float]:
    """A DIM-wide vector with the given leading components, zero-padded."""
    values = list(components) + [0.0] * (DIM - len(components))
    return values[:DIM]


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic in-process embedding provider.

    Texts whose first line (the title) appears in ``vectors`` get that
    vector; anything else gets a hash-derived vector.  ``fail=True`` makes
    every call raise like an unreachable API.
    """

    def __init__(self, vectors: dict[str, list[float]] | None = None, fail: bool = False) -> None:
        self.vectors = dict(vectors or {})
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    async def embed(self, texts: list[str], task_type: str = RETRIEVAL_DOCUMENT) -> list[list[float]]:
        return [await self.embed_single(t, task_type) for t in texts]

    async def embed_single(self, text: str, task_type: str = RETRIEVAL_DOCUMENT) -> list[float]:
        self.calls.append((text, task_type))
        if self.fail:
            raise ProviderUnavailableError("embedding API unreachable", provider_name="fake")
        title = text.split("\n", 1)[0]
        if title in self.vectors:
            return list(self.vectors[title])
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(b / 127.5) - 1.0 for b in digest[:DIM]]

    def get_dimension(self) -> int:
        return DIM

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_logging() -> Any:
    """Reset structlog and root logging so one test's config can't leak into the next."""
    import logging

    import structlog

    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------


@pytest.fixture
def vocabulary() -> Vocabulary:
    return Vocabulary(
        version="test-1",
        synonyms=[
            SynonymEntry(term="tomato", synonyms=["tomatoes", "heirloom"]),
            SynonymEntry(term="squash", synonyms=["pumpkin", "zucchini"], synonym_type=SynonymType.ONEWAY),
            SynonymEntry(term="pumkin", synonyms=["pumpkin"], synonym_type=SynonymType.TYPO_CORRECTION),
        ],
        hierarchy=[
            HierarchyNode(parent="Asian", children=["Chinese", "Japanese", "Korean"]),
            HierarchyNode(parent="Latin American", children=["Mexican", "Peruvian"]),
        ],
    )


@pytest.fixture
def vocabulary_provider(vocabulary: Vocabulary) -> StaticVocabularyProvider:
    return StaticVocabularyProvider(vocabulary)


@pytest.fixture
def expander(vocabulary_provider: StaticVocabularyProvider) -> VocabularyExpander:
    return VocabularyExpander(vocabulary_provider)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "lessons.db"


@pytest.fixture
async def lesson_store(db_path: Path) -> SQLiteLessonStore:
    store = SQLiteLessonStore(db_path=db_path, embedding_dimension=DIM)
    await store.initialize()
    return store


@pytest.fixture
async def submission_store(db_path: Path) -> SQLiteSubmissionStore:
    store = SQLiteSubmissionStore(db_path=db_path)
    await store.initialize()
    return store


@pytest.fixture
def authorization() -> StaticAuthorizationProvider:
    return StaticAuthorizationProvider({
        "teacher-1": CallerIdentity(user_id="teacher-1", role=UserRole.TEACHER),
        "reviewer-1": CallerIdentity(user_id="reviewer-1", role=UserRole.REVIEWER),
        "admin-1": CallerIdentity(user_id="admin-1", role=UserRole.ADMIN),
        "owner-1": CallerIdentity(user_id="owner-1", role=UserRole.SUPER_ADMIN),
        "retired-1": CallerIdentity(user_id="retired-1", role=UserRole.REVIEWER, is_active=False),
    })


# ---------------------------------------------------------------------------
# Lesson factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_lesson() -> Callable[..., Lesson]:
    """Build a Lesson; ``attributes`` may use snake_case or camelCase keys."""

    def _make(
        lesson_id: str,
        title: str,
        body: str | None = None,
        summary: str = "",
        grade_levels: list[str] | None = None,
        attributes: dict[str, Any] | None = None,
        embedding: list[float] | None = None,
        overall: float = 0.5,
        **extra: Any,
    ) -> Lesson:
        body = body if body is not None else f"Lesson body for {title}."
        return Lesson(
            lesson_id=lesson_id,
            title=title,
            summary=summary,
            body=body,
            grade_levels=grade_levels or [],
            attributes=LessonAttributes.model_validate(attributes or {}),
            confidence=ConfidenceScores(overall=overall),
            content_hash=compute_hash(body, title=title, summary=summary, grade_levels=grade_levels),
            embedding=embedding,
            **extra,
        )

    return _make
