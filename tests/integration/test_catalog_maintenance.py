"""Integration tests for the embedding backfill and hash regeneration jobs."""

from __future__ import annotations

import pytest

from src.services.catalog_maintenance import CatalogMaintenanceService
from src.services.fingerprint_service import FingerprintService, compute_hash
from tests.conftest import DIM, FakeEmbeddingProvider, vec


def _maintenance(store, provider) -> CatalogMaintenanceService:
    return CatalogMaintenanceService(store, FingerprintService(provider, dimension=DIM), concurrency=2)


class TestBackfillEmbeddings:
    @pytest.mark.asyncio
    async def test_fills_missing_vectors(self, lesson_store, make_lesson) -> None:
        await lesson_store.upsert_lesson(make_lesson("L1", "Tomato Salsa", embedding=vec(1.0)))
        await lesson_store.upsert_lesson(make_lesson("L2", "Compost Basics"))
        await lesson_store.upsert_lesson(make_lesson("L3", "Broken Lesson"))
        provider = FakeEmbeddingProvider({"Compost Basics": vec(0.0, 1.0), "Broken Lesson": [1.0, 0.0]})

        report = await _maintenance(lesson_store, provider).backfill_embeddings()

        assert report.job == "backfill_embeddings"
        assert report.examined == 2
        assert report.updated == ["L2"]
        assert report.failed == ["L3"]

        assert (await lesson_store.get_lesson("L2")).embedding == pytest.approx(vec(0.0, 1.0))
        assert (await lesson_store.get_lesson("L3")).embedding is None
        assert (await lesson_store.get_lesson("L1")).embedding == pytest.approx(vec(1.0))

    @pytest.mark.asyncio
    async def test_provider_outage_reports_failures(self, lesson_store, make_lesson) -> None:
        await lesson_store.upsert_lesson(make_lesson("L1", "Tomato Salsa"))

        report = await _maintenance(lesson_store, FakeEmbeddingProvider(fail=True)).backfill_embeddings()

        assert report.updated == []
        assert report.failed == ["L1"]
        assert (await lesson_store.get_lesson("L1")).embedding is None

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, lesson_store, make_lesson) -> None:
        await lesson_store.upsert_lesson(make_lesson("L1", "Tomato Salsa", embedding=vec(1.0)))
        provider = FakeEmbeddingProvider()

        report = await _maintenance(lesson_store, provider).backfill_embeddings()

        assert report.examined == 0
        assert report.updated == []
        assert provider.calls == []


class TestRegenerateHashes:
    @pytest.mark.asyncio
    async def test_only_changed_hashes_written(self, lesson_store, make_lesson) -> None:
        stale = make_lesson("L1", "Tomato Salsa", body="Chop tomatoes.")
        await lesson_store.upsert_lesson(stale.model_copy(update={"content_hash": "stale"}))
        await lesson_store.upsert_lesson(make_lesson("L2", "Compost Basics"))
        missing = make_lesson("L3", "Seed Saving", body="Dry the seeds.")
        await lesson_store.upsert_lesson(missing.model_copy(update={"content_hash": None}))

        report = await _maintenance(lesson_store, None).regenerate_hashes()

        assert report.job == "regenerate_hashes"
        assert report.examined == 3
        assert sorted(report.updated) == ["L1", "L3"]
        assert report.unchanged == 1
        assert report.failed == []

        assert (await lesson_store.get_lesson("L1")).content_hash == compute_hash("Chop tomatoes.")
        assert (await lesson_store.get_lesson("L3")).content_hash == compute_hash("Dry the seeds.")

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, lesson_store, make_lesson) -> None:
        stale = make_lesson("L1", "Tomato Salsa", body="Chop tomatoes.")
        await lesson_store.upsert_lesson(stale.model_copy(update={"content_hash": "stale"}))
        service = _maintenance(lesson_store, None)

        await service.regenerate_hashes()
        report = await service.regenerate_hashes()

        assert report.updated == []
        assert report.unchanged == 1
