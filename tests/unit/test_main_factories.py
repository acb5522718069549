"""Unit tests for factory functions in src/main.py.

Covers embedding provider selection and build_engine assembly with
injected fakes, so no real network calls or API keys are required.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config.settings import Settings
from src.main import LessonBankEngine, _build_embedding_provider, build_engine
from src.models.duplicates import ResolutionFailureReason, ResolutionRequest
from src.providers.auth.static_authorization_provider import StaticAuthorizationProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from tests.conftest import DIM, FakeEmbeddingProvider


# ======================================================================
# Shared helpers
# ======================================================================


def _settings(tmp_path: Path, **overrides) -> Settings:
    """Settings pointing at a temporary database, with no API key."""
    defaults = {
        "_env_file": None,
        "openai_api_key": "",
        "lesson_db_path": str(tmp_path / "lessons.db"),
        "embedding_dimension": DIM,
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# Embedding provider selection
# ======================================================================


class TestBuildEmbeddingProvider:
    def test_none_without_key(self, tmp_path: Path) -> None:
        assert _build_embedding_provider(_settings(tmp_path)) is None

    def test_openai_with_key(self, tmp_path: Path) -> None:
        provider = _build_embedding_provider(_settings(tmp_path, openai_api_key="sk-test"))

        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.is_available()


# ======================================================================
# build_engine
# ======================================================================


class TestBuildEngine:
    def test_wires_every_service(self, tmp_path: Path, vocabulary_provider) -> None:
        engine = build_engine(
            _settings(tmp_path),
            {},
            vocabulary_provider=vocabulary_provider,
        )

        assert isinstance(engine, LessonBankEngine)
        assert engine.settings.lesson_db_path == str(tmp_path / "lessons.db")
        assert engine.fingerprints.embeddings_enabled is False

    def test_injected_embedding_provider(self, tmp_path: Path, vocabulary_provider) -> None:
        engine = build_engine(
            _settings(tmp_path),
            {},
            embedding_provider=FakeEmbeddingProvider(),
            vocabulary_provider=vocabulary_provider,
        )
        assert engine.fingerprints.embeddings_enabled is True

    @pytest.mark.asyncio
    async def test_initialize_and_search_round_trip(
        self, tmp_path: Path, vocabulary_provider, make_lesson
    ) -> None:
        engine = build_engine(_settings(tmp_path), {}, vocabulary_provider=vocabulary_provider)
        await engine.initialize()
        await engine.initialize()

        await engine.lesson_store.upsert_lesson(make_lesson("L1", "Tomato Salsa"))
        page = await engine.search.search("tomatoes")

        assert [row.lesson_id for row in page.rows] == ["L1"]

    @pytest.mark.asyncio
    async def test_users_come_from_config(self, tmp_path: Path, vocabulary_provider, make_lesson) -> None:
        config = {"users": {"admin-1": {"role": "admin"}, "teacher-1": {}}}
        engine = build_engine(_settings(tmp_path), config, vocabulary_provider=vocabulary_provider)
        await engine.initialize()
        await engine.lesson_store.upsert_lesson(make_lesson("L1", "Tomato Salsa"))
        await engine.lesson_store.upsert_lesson(make_lesson("L2", "Tomato Salsa"))
        request = ResolutionRequest(group_id="g1", canonical_id="L1", duplicate_ids=["L2"])

        denied = await engine.resolution.resolve_duplicate_group(request, user_id="teacher-1")
        assert denied.reason == ResolutionFailureReason.PERMISSION_DENIED

        allowed = await engine.resolution.resolve_duplicate_group(request, user_id="admin-1")
        assert allowed.success is True


class TestStaticAuthorizationProvider:
    @pytest.mark.asyncio
    async def test_from_mapping_defaults(self) -> None:
        provider = StaticAuthorizationProvider.from_mapping(
            {"t1": {}, "r1": {"role": "reviewer", "is_active": False}}
        )

        teacher = await provider.get_caller("t1")
        reviewer = await provider.get_caller("r1")

        assert teacher.role.value == "teacher"
        assert teacher.is_active is True
        assert reviewer.is_active is False
        assert await provider.get_caller("nobody") is None
