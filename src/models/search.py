"""Search request and response models."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from src.models.lesson import LessonAttributes, LessonSummary


class SearchFilters(BaseModel):
    """Independent AND-ed filters.  An empty or missing value never restricts."""

    model_config = ConfigDict(frozen=True)

    # Filter field -> lesson list attribute it overlaps with.
    LIST_FILTERS: ClassVar[dict[str, str]] = {
        "grade_levels": "grade_levels",
        "thematic_categories": "thematic_categories",
        "season_timing": "season_timing",
        "core_competencies": "core_competencies",
        "cultural_heritage": "cultural_heritage",
        "location_requirements": "location_requirements",
        "activity_type": "activity_type",
        "academic_integration": "academic_integration",
        "social_emotional_learning": "social_emotional_learning",
    }

    grade_levels: list[str] = Field(default_factory=list)
    thematic_categories: list[str] = Field(default_factory=list)
    season_timing: list[str] = Field(default_factory=list)
    core_competencies: list[str] = Field(default_factory=list)
    cultural_heritage: list[str] = Field(default_factory=list)
    location_requirements: list[str] = Field(default_factory=list)
    activity_type: list[str] = Field(default_factory=list)
    lesson_format: str | None = None
    academic_integration: list[str] = Field(default_factory=list)
    social_emotional_learning: list[str] = Field(default_factory=list)
    cooking_method: str | None = None

    def is_empty(self) -> bool:
        if self.lesson_format or self.cooking_method:
            return False
        return not any(getattr(self, name) for name in self.LIST_FILTERS)


class SearchCriteria(BaseModel):
    """A fully prepared search handed to the catalog store.

    ``terms`` are the synonym-expanded keyword alternatives; ``raw_query``
    is what the user typed and drives fuzzy title/summary similarity.
    ``filters`` already carry the hierarchy-expanded cultural heritage.
    """

    model_config = ConfigDict(frozen=True)

    raw_query: str | None = None
    terms: list[str] = Field(default_factory=list)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    page_size: int = Field(default=20, ge=1)
    page_offset: int = Field(default=0, ge=0)
    trigram_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    summary_weight: float = Field(default=0.8, ge=0.0, le=1.0)

    @property
    def has_query(self) -> bool:
        return bool(self.raw_query and self.raw_query.strip())


class SearchPage(BaseModel):
    """One page of results plus the count over the whole filtered set."""

    model_config = ConfigDict(frozen=True)

    rows: list[LessonSummary] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
    page_size: int
    page_offset: int
    expanded_query: str | None = Field(
        default=None,
        description="The synonym-expanded query actually matched, if any.",
    )


# Attributes that facet counts can be computed for.
FACETS: tuple[str, ...] = ("grade_levels", "lesson_format", *LessonAttributes.LIST_FIELDS)
