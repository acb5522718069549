"""Integration tests for submission intake and the review lifecycle."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.models.duplicates import MatchType
from src.models.lesson import LessonAttributes
from src.models.submission import ReviewDecision, SubmissionStatus, SubmissionType
from src.providers.document.file_document_extractor import FileDocumentExtractor
from src.services.duplicate_detector import DuplicateDetector
from src.services.fingerprint_service import FingerprintService, compute_hash
from src.services.submission_service import SubmissionService
from src.utils.errors import DocumentExtractionError, SubmissionStateError
from tests.conftest import DIM, FakeEmbeddingProvider, vec


@pytest.fixture
def documents(tmp_path: Path) -> Path:
    root = tmp_path / "docs"
    root.mkdir()
    (root / "salsa.md").write_text("# Tomato Salsa\n\nChop tomatoes and onions.\n", encoding="utf-8")
    (root / "salsa_v2.md").write_text(
        "# Tomato Salsa\n\nChop tomatoes, onions and cilantro. Serve with tortillas.\n", encoding="utf-8"
    )
    (root / "compost.txt").write_text("Worm Bin Basics\nShred paper for bedding.\n", encoding="utf-8")
    (root / "blank.txt").write_text("\n   \n", encoding="utf-8")
    return root


@pytest.fixture
async def catalog(lesson_store, make_lesson):
    await lesson_store.upsert_lesson(
        make_lesson(
            "L1", "Tomato Salsa", body="Chop tomatoes and onions.",
            grade_levels=["3"], attributes={"thematicCategories": ["Garden"]},
            embedding=vec(1.0),
        )
    )
    return lesson_store


def _service(catalog, submission_store, documents, provider) -> SubmissionService:
    fingerprints = FingerprintService(provider, dimension=DIM)
    detector = DuplicateDetector(catalog, submission_store)
    return SubmissionService(
        submission_store,
        catalog,
        FileDocumentExtractor(documents),
        fingerprints,
        detector,
    )


@pytest.fixture
def service(catalog, submission_store, documents) -> SubmissionService:
    provider = FakeEmbeddingProvider({"Tomato Salsa": vec(1.0), "Worm Bin Basics": vec(0.0, 1.0)})
    return _service(catalog, submission_store, documents, provider)


# ======================================================================
# Intake
# ======================================================================


class TestSubmit:
    @pytest.mark.asyncio
    async def test_new_submission_with_exact_duplicate(self, service, submission_store) -> None:
        submission, candidates = await service.submit("teacher-1", "salsa.md")

        assert submission.submission_id.startswith("sub_")
        assert submission.status == SubmissionStatus.SUBMITTED
        assert submission.extracted_title == "Tomato Salsa"
        assert submission.extracted_body == "Chop tomatoes and onions."
        assert submission.content_hash == compute_hash("Chop tomatoes and onions.")
        assert submission.embedding == pytest.approx(vec(1.0))

        assert candidates[0].lesson_id == "L1"
        assert candidates[0].match_type == MatchType.EXACT

        stored = await submission_store.get_submission(submission.submission_id)
        assert stored.extracted_title == "Tomato Salsa"
        cached = await submission_store.get_similarities(submission.submission_id)
        assert [c.lesson_id for c in cached] == [c.lesson_id for c in candidates]

    @pytest.mark.asyncio
    async def test_unrelated_document_has_no_candidates(self, service) -> None:
        _submission, candidates = await service.submit("teacher-1", "compost.txt")
        assert candidates == []

    @pytest.mark.asyncio
    async def test_embedding_outage_falls_back(self, catalog, submission_store, documents) -> None:
        service = _service(catalog, submission_store, documents, FakeEmbeddingProvider(fail=True))

        submission, candidates = await service.submit("teacher-1", "salsa_v2.md")

        assert submission.embedding is None
        (candidate,) = candidates
        assert candidate.lesson_id == "L1"
        assert candidate.content_similarity is None

    @pytest.mark.asyncio
    async def test_update_needs_existing_lesson(self, service) -> None:
        with pytest.raises(SubmissionStateError):
            await service.submit("teacher-1", "salsa_v2.md", SubmissionType.UPDATE)
        with pytest.raises(SubmissionStateError):
            await service.submit("teacher-1", "salsa_v2.md", SubmissionType.UPDATE, "L404")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ref", ["missing.md", "blank.txt"])
    async def test_unreadable_document(self, service, ref: str) -> None:
        with pytest.raises(DocumentExtractionError):
            await service.submit("teacher-1", ref)


# ======================================================================
# Review lifecycle
# ======================================================================


class TestReviewLifecycle:
    @pytest.mark.asyncio
    async def test_approve_new_publishes_lesson(self, service, catalog, submission_store) -> None:
        submission, _ = await service.submit("teacher-1", "compost.txt")
        in_review = await service.start_review(submission.submission_id, "reviewer-1")
        assert in_review.status == SubmissionStatus.IN_REVIEW
        assert in_review.reviewer_id == "reviewer-1"

        review = await service.complete_review(
            submission.submission_id,
            "reviewer-1",
            ReviewDecision.APPROVE_NEW,
            tagged_attributes=LessonAttributes(activity_type=["Garden"]),
            grade_levels=["4"],
            notes="looks good",
        )

        assert review.decision == ReviewDecision.APPROVE_NEW
        stored = await submission_store.get_submission(submission.submission_id)
        assert stored.status == SubmissionStatus.APPROVED

        titles = await catalog.get_titles()
        (new_id,) = [lesson_id for lesson_id, title in titles.items() if title == "Worm Bin Basics"]
        lesson = await catalog.get_lesson(new_id)
        assert new_id.startswith("lesson_")
        assert lesson.grade_levels == ["4"]
        assert lesson.attributes.activity_type == ["Garden"]
        assert lesson.embedding == pytest.approx(vec(0.0, 1.0))

        (saved_review,) = await submission_store.get_reviews(submission.submission_id)
        assert saved_review.notes == "looks good"

    @pytest.mark.asyncio
    async def test_review_snapshot_of_duplicates(self, service, submission_store) -> None:
        submission, _ = await service.submit("teacher-1", "salsa.md")
        await service.start_review(submission.submission_id, "reviewer-1")

        review = await service.complete_review(submission.submission_id, "reviewer-1", ReviewDecision.REJECT)

        assert review.detected_duplicates[0]["lesson_id"] == "L1"
        assert review.detected_duplicates[0]["match_type"] == "exact"
        stored = await submission_store.get_submission(submission.submission_id)
        assert stored.status == SubmissionStatus.REJECTED

    @pytest.mark.asyncio
    async def test_reviewer_tags_rescore_candidates(self, service, submission_store) -> None:
        submission, candidates = await service.submit("teacher-1", "salsa.md")
        assert candidates[0].metadata_overlap == 0.0
        await service.start_review(submission.submission_id, "reviewer-1")

        review = await service.complete_review(
            submission.submission_id,
            "reviewer-1",
            ReviewDecision.REJECT,
            tagged_attributes=LessonAttributes(thematic_categories=["Garden"]),
            grade_levels=["3"],
        )

        assert review.detected_duplicates[0]["lesson_id"] == "L1"
        assert review.detected_duplicates[0]["metadata_overlap"] == pytest.approx(1.0)
        (cached,) = await submission_store.get_similarities(submission.submission_id)
        assert cached.metadata_overlap == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_reject_publishes_nothing(self, service, catalog) -> None:
        submission, _ = await service.submit("teacher-1", "compost.txt")
        await service.start_review(submission.submission_id, "reviewer-1")
        await service.complete_review(submission.submission_id, "reviewer-1", ReviewDecision.REJECT)

        assert list(await catalog.get_titles()) == ["L1"]

    @pytest.mark.asyncio
    async def test_needs_revision_can_be_reviewed_again(self, service, submission_store) -> None:
        submission, _ = await service.submit("teacher-1", "compost.txt")
        await service.start_review(submission.submission_id, "reviewer-1")
        await service.complete_review(submission.submission_id, "reviewer-1", ReviewDecision.NEEDS_REVISION)

        stored = await submission_store.get_submission(submission.submission_id)
        assert stored.status == SubmissionStatus.NEEDS_REVISION

        again = await service.start_review(submission.submission_id, "reviewer-2")
        assert again.status == SubmissionStatus.IN_REVIEW

    @pytest.mark.asyncio
    async def test_illegal_transitions(self, service) -> None:
        submission, _ = await service.submit("teacher-1", "compost.txt")

        with pytest.raises(SubmissionStateError, match="not in_review"):
            await service.complete_review(submission.submission_id, "reviewer-1", ReviewDecision.REJECT)

        await service.start_review(submission.submission_id, "reviewer-1")
        with pytest.raises(SubmissionStateError):
            await service.start_review(submission.submission_id, "reviewer-1")

        with pytest.raises(SubmissionStateError, match="does not reference"):
            await service.complete_review(
                submission.submission_id, "reviewer-1", ReviewDecision.APPROVE_UPDATE
            )

        await service.complete_review(submission.submission_id, "reviewer-1", ReviewDecision.REJECT)
        with pytest.raises(SubmissionStateError):
            await service.start_review(submission.submission_id, "reviewer-1")

    @pytest.mark.asyncio
    async def test_unknown_submission(self, service) -> None:
        with pytest.raises(SubmissionStateError, match="not found"):
            await service.start_review("sub_missing", "reviewer-1")


class TestApproveUpdate:
    @pytest.mark.asyncio
    async def test_update_versions_the_original(self, service, catalog) -> None:
        submission, candidates = await service.submit(
            "teacher-1", "salsa_v2.md", SubmissionType.UPDATE, "L1"
        )
        assert "L1" not in {c.lesson_id for c in candidates}

        await service.start_review(submission.submission_id, "reviewer-1")
        await service.complete_review(submission.submission_id, "reviewer-1", ReviewDecision.APPROVE_UPDATE)

        lesson = await catalog.get_lesson("L1")
        assert lesson.body.startswith("Chop tomatoes, onions and cilantro.")
        assert lesson.content_hash == submission.content_hash
        assert lesson.version_number == 2
        assert lesson.has_versions is True
        assert lesson.grade_levels == ["3"]
        assert lesson.attributes.thematic_categories == ["Garden"]

        (version,) = await catalog.get_versions("L1")
        assert version.version_number == 1
        assert version.body == "Chop tomatoes and onions."
        assert version.submission_id == submission.submission_id
