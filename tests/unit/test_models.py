"""Unit tests for lesson, duplicate and vocabulary models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.models.duplicates import (
    CanonicalMapping,
    DuplicateType,
    ResolutionFailureReason,
    ResolutionResult,
)
from src.models.lesson import CallerIdentity, Lesson, LessonAttributes, UserRole
from src.models.search import FACETS, SearchCriteria, SearchFilters
from src.models.vocabulary import HierarchyNode, Vocabulary


# ======================================================================
# LessonAttributes
# ======================================================================


class TestLessonAttributes:
    def test_accepts_camel_case(self) -> None:
        attrs = LessonAttributes.model_validate({"thematicCategories": ["Garden"], "lessonFormat": "Single"})
        assert attrs.thematic_categories == ["Garden"]
        assert attrs.lesson_format == "Single"

    def test_accepts_snake_case(self) -> None:
        attrs = LessonAttributes(season_timing=["Fall"])
        assert attrs.season_timing == ["Fall"]

    def test_unknown_keys_kept_in_extensions(self) -> None:
        attrs = LessonAttributes.model_validate({"gardenZone": "7b", "tags": ["x"]})
        assert attrs.extensions == {"gardenZone": "7b"}
        assert attrs.tags == ["x"]

    def test_scalar_list_values_coerced(self) -> None:
        attrs = LessonAttributes.model_validate({"seasonTiming": "Fall", "activityType": None, "tags": " "})
        assert attrs.season_timing == ["Fall"]
        assert attrs.activity_type == []
        assert attrs.tags == []

    def test_document_round_trips_extensions(self) -> None:
        attrs = LessonAttributes.model_validate({"culturalHeritage": ["Korean"], "gardenZone": "7b"})
        document = attrs.to_document()
        assert document["culturalHeritage"] == ["Korean"]
        assert LessonAttributes.model_validate(document) == attrs

    def test_values_for(self) -> None:
        attrs = LessonAttributes(cooking_methods=["Raw"])
        assert attrs.values_for("cooking_methods") == ["Raw"]
        assert attrs.values_for("lesson_format") == []
        assert attrs.values_for("nonsense") == []

    def test_lesson_values_for_grade_levels(self) -> None:
        lesson = Lesson(lesson_id="L1", title="Salsa", grade_levels=["3"])
        assert lesson.values_for("grade_levels") == ["3"]

    def test_facets_cover_list_fields(self) -> None:
        assert FACETS[:2] == ("grade_levels", "lesson_format")
        assert set(LessonAttributes.LIST_FIELDS) <= set(FACETS)


# ======================================================================
# Callers
# ======================================================================


class TestCallerIdentity:
    @pytest.mark.parametrize(
        ("role", "active", "allowed"),
        [
            (UserRole.TEACHER, True, False),
            (UserRole.REVIEWER, True, True),
            (UserRole.ADMIN, True, True),
            (UserRole.SUPER_ADMIN, True, True),
            (UserRole.ADMIN, False, False),
        ],
    )
    def test_can_resolve(self, role: UserRole, active: bool, allowed: bool) -> None:
        caller = CallerIdentity(user_id="u", role=role, is_active=active)
        assert caller.can_resolve_duplicates() is allowed

    def test_super_admin(self) -> None:
        assert CallerIdentity(user_id="u", role=UserRole.SUPER_ADMIN).is_super_admin()
        assert not CallerIdentity(user_id="u", role=UserRole.ADMIN).is_super_admin()


# ======================================================================
# Duplicates
# ======================================================================


class TestCanonicalMapping:
    def test_valid(self) -> None:
        mapping = CanonicalMapping(
            duplicate_id="L2", canonical_id="L1", similarity_score=0.9, resolution_type=DuplicateType.NEAR
        )
        assert mapping.resolution_type == DuplicateType.NEAR

    def test_self_reference_rejected(self) -> None:
        with pytest.raises(ValidationError, match="duplicate of itself"):
            CanonicalMapping(
                duplicate_id="L1", canonical_id="L1", similarity_score=0.9, resolution_type="near"
            )

    def test_score_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CanonicalMapping(
                duplicate_id="L2", canonical_id="L1", similarity_score=1.2, resolution_type="near"
            )

    def test_unknown_resolution_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CanonicalMapping(
                duplicate_id="L2", canonical_id="L1", similarity_score=0.5, resolution_type="fuzzy"
            )


class TestResolutionResult:
    def test_failure_factory(self) -> None:
        result = ResolutionResult.failure(ResolutionFailureReason.EMPTY_GROUP, "nothing to do")
        assert result.success is False
        assert result.reason == ResolutionFailureReason.EMPTY_GROUP
        assert result.archived_count == 0


# ======================================================================
# Vocabulary
# ======================================================================


class TestVocabulary:
    def test_repeated_parent_children_concatenated(self) -> None:
        vocab = Vocabulary(hierarchy=[
            HierarchyNode(parent="Asian", children=["Chinese"]),
            HierarchyNode(parent="Asian", children=["Korean"]),
        ])
        assert vocab.children_by_parent() == {"Asian": ["Chinese", "Korean"]}

    def test_nested_hierarchy_rejected(self) -> None:
        with pytest.raises(ValidationError, match="two levels deep"):
            Vocabulary(hierarchy=[
                HierarchyNode(parent="Asian", children=["East Asian"]),
                HierarchyNode(parent="East Asian", children=["Korean"]),
            ])


class TestSearchCriteria:
    def test_defaults(self) -> None:
        criteria = SearchCriteria()
        assert criteria.page_offset == 0

    def test_filters_empty(self) -> None:
        assert SearchFilters().is_empty()
        assert SearchFilters(grade_levels=[]).is_empty()
        assert not SearchFilters(cooking_method="Raw").is_empty()
        assert not SearchFilters(season_timing=["Fall"]).is_empty()
