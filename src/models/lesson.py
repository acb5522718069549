"""Lesson catalog domain models.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models (bottom of the dependency graph — no imports from upper layers).
#
# A ``Lesson`` is one canonical catalog entry.  Its categorical tags live in
# a typed ``LessonAttributes`` document instead of a free-form dict: every
# known category is a declared field, and anything else that arrives from
# an importer is kept verbatim in ``extensions`` so that new categories
# survive a round trip without silently disappearing.
#
# Attribute keys are camelCase on the wire (``thematicCategories``) and
# snake_case in Python; ``populate_by_name`` accepts either.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# ─── UserRole ────────────────────────────────────────────────────────
class UserRole(str, Enum):
    """Roles returned by the authorization lookup."""

    TEACHER = "teacher"
    REVIEWER = "reviewer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class CallerIdentity(BaseModel):
    """Who is calling, as resolved by the authorization collaborator."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(description="Stable identifier of the caller.")
    role: UserRole = Field(default=UserRole.TEACHER)
    is_active: bool = Field(default=True)

    def can_resolve_duplicates(self) -> bool:
        return self.is_active and self.role in (
            UserRole.REVIEWER,
            UserRole.ADMIN,
            UserRole.SUPER_ADMIN,
        )

    def is_super_admin(self) -> bool:
        return self.is_active and self.role == UserRole.SUPER_ADMIN


# ─── LessonAttributes ────────────────────────────────────────────────
# The nested categorical tag document.  List categories are the ones that
# filters match by overlap and that metadata merge widens by union.
class LessonAttributes(BaseModel):
    """Categorical tags attached to a lesson."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    LIST_FIELDS: ClassVar[tuple[str, ...]] = (
        "thematic_categories",
        "season_timing",
        "core_competencies",
        "cultural_heritage",
        "location_requirements",
        "activity_type",
        "academic_integration",
        "social_emotional_learning",
        "cooking_methods",
        "main_ingredients",
        "garden_skills",
        "cooking_skills",
        "observances_holidays",
        "cultural_responsiveness_features",
        "tags",
    )

    thematic_categories: list[str] = Field(default_factory=list)
    season_timing: list[str] = Field(default_factory=list)
    core_competencies: list[str] = Field(default_factory=list)
    cultural_heritage: list[str] = Field(default_factory=list)
    location_requirements: list[str] = Field(default_factory=list)
    activity_type: list[str] = Field(default_factory=list)
    academic_integration: list[str] = Field(default_factory=list)
    social_emotional_learning: list[str] = Field(default_factory=list)
    cooking_methods: list[str] = Field(default_factory=list)
    main_ingredients: list[str] = Field(default_factory=list)
    garden_skills: list[str] = Field(default_factory=list)
    cooking_skills: list[str] = Field(default_factory=list)
    observances_holidays: list[str] = Field(default_factory=list)
    cultural_responsiveness_features: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    lesson_format: str | None = Field(default=None, description="Single-valued delivery format.")
    extensions: dict[str, Any] = Field(
        default_factory=dict,
        description="Unrecognised categories, preserved verbatim.",
    )

    @model_validator(mode="before")
    @classmethod
    def _collect_extensions(cls, data: Any) -> Any:
        """Move unknown keys into ``extensions`` and coerce scalar list values."""
        if not isinstance(data, dict):
            return data

        known: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            known[name] = name
            if field.alias:
                known[field.alias] = name

        result: dict[str, Any] = {}
        extensions = dict(data.get("extensions") or {})
        for key, value in data.items():
            if key == "extensions":
                continue
            name = known.get(key)
            if name is None:
                extensions[key] = value
                continue
            if name in cls.LIST_FIELDS:
                if value is None:
                    value = []
                elif isinstance(value, str):
                    value = [value] if value.strip() else []
            result[name] = value
        result["extensions"] = extensions
        return result

    def values_for(self, name: str) -> list[str]:
        """Return the list value of a list category (empty for unknown names)."""
        if name not in self.LIST_FIELDS:
            return []
        return list(getattr(self, name))

    def to_document(self) -> dict[str, Any]:
        """Serialise to the camelCase document stored in the catalog."""
        return self.model_dump(by_alias=True, mode="json")


class ConfidenceScores(BaseModel):
    """Extraction confidence for a lesson; ``overall`` drives search tiebreaks."""

    model_config = ConfigDict(frozen=True, extra="allow")

    overall: float = Field(default=0.0, ge=0.0, le=1.0)
    title: float | None = Field(default=None, ge=0.0, le=1.0)
    summary: float | None = Field(default=None, ge=0.0, le=1.0)


# ─── Lesson ──────────────────────────────────────────────────────────
class Lesson(BaseModel):
    """A canonical catalog entry.

    ``lesson_id`` is the stable external id and the catalog's unique key.
    A set ``canonical_id`` marks the lesson as logically superseded; it
    only leaves the active catalog when the resolution workflow archives
    it.
    """

    model_config = ConfigDict(frozen=True)

    lesson_id: str = Field(description="Stable external lesson id.")
    title: str
    summary: str = ""
    file_link: str | None = Field(default=None, description="Link to the source document.")
    grade_levels: list[str] = Field(default_factory=list)
    attributes: LessonAttributes = Field(default_factory=LessonAttributes)
    confidence: ConfidenceScores = Field(default_factory=ConfidenceScores)
    body: str | None = None
    content_hash: str | None = None
    embedding: list[float] | None = None
    flagged_for_review: bool = False
    has_versions: bool = False
    version_number: int = Field(default=1, ge=1)
    canonical_id: str | None = None
    processing_notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def values_for(self, name: str) -> list[str]:
        """List value of ``grade_levels`` or any list attribute category."""
        if name == "grade_levels":
            return list(self.grade_levels)
        return self.attributes.values_for(name)


class MaintenanceReport(BaseModel):
    """Tally of a catalog-wide maintenance job (embedding backfill, rehash)."""

    model_config = ConfigDict(frozen=True)

    job: str
    examined: int = 0
    updated: list[str] = Field(default_factory=list)
    unchanged: int = 0
    failed: list[str] = Field(default_factory=list)


class LessonSummary(BaseModel):
    """One search result row."""

    model_config = ConfigDict(frozen=True)

    lesson_id: str
    title: str
    summary: str = ""
    file_link: str | None = None
    grade_levels: list[str] = Field(default_factory=list)
    attributes: LessonAttributes = Field(default_factory=LessonAttributes)
    confidence_overall: float = 0.0
    rank: float = Field(default=0.0, description="Relevance; 0.0 when no query was given.")
