"""Catalog search: vocabulary expansion in front of the ranking engine.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: ILessonStore, VocabularyExpander.
#
# Request flow:
#   1. Clamp page size into [1, max_page_size] and offset to >= 0.
#   2. Expand the query into synonym alternatives and the cultural
#      heritage filter into itself plus hierarchy children.
#   3. Hand one prepared SearchCriteria to the store, which builds a
#      single predicate for both the page and the total count.
#
# Search is read-only and always answers with a (possibly empty) page.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog

from src.interfaces.lesson_store import ILessonStore
from src.models.search import FACETS, SearchCriteria, SearchFilters, SearchPage
from src.services.vocabulary_expander import VocabularyExpander

logger = structlog.get_logger(logger_name=__name__)

# Facets computed when the caller does not name any.
DEFAULT_FACETS = (
    "grade_levels",
    "thematic_categories",
    "season_timing",
    "cultural_heritage",
    "activity_type",
    "lesson_format",
)


class SearchService:
    """Hybrid keyword / fuzzy / filter search over the lesson catalog."""

    def __init__(
        self,
        lesson_store: ILessonStore,
        expander: VocabularyExpander,
        default_page_size: int = 20,
        max_page_size: int = 100,
        trigram_threshold: float = 0.3,
        summary_weight: float = 0.8,
    ) -> None:
        self._store = lesson_store
        self._expander = expander
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._trigram_threshold = trigram_threshold
        self._summary_weight = summary_weight

    def build_criteria(
        self,
        query: str | None = None,
        filters: SearchFilters | None = None,
        page_size: int | None = None,
        page_offset: int = 0,
    ) -> SearchCriteria:
        """Expand and clamp a raw request into store-ready criteria."""
        filters = filters or SearchFilters()
        if filters.cultural_heritage:
            filters = filters.model_copy(
                update={"cultural_heritage": self._expander.expand_hierarchy(filters.cultural_heritage)}
            )

        size = self._default_page_size if page_size is None else page_size
        size = max(1, min(size, self._max_page_size))
        offset = max(0, page_offset)

        raw_query = query.strip() if query and query.strip() else None
        return SearchCriteria(
            raw_query=raw_query,
            terms=self._expander.expand_terms(raw_query),
            filters=filters,
            page_size=size,
            page_offset=offset,
            trigram_threshold=self._trigram_threshold,
            summary_weight=self._summary_weight,
        )

    async def search(
        self,
        query: str | None = None,
        filters: SearchFilters | None = None,
        page_size: int | None = None,
        page_offset: int = 0,
    ) -> SearchPage:
        criteria = self.build_criteria(query, filters, page_size, page_offset)

        started = time.perf_counter()
        rows, total = await self._store.search(criteria)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

        expanded = " | ".join(criteria.terms) if criteria.terms else None
        logger.info(
            "search_executed",
            query=criteria.raw_query,
            expanded_query=expanded,
            filtered=not criteria.filters.is_empty(),
            page_size=criteria.page_size,
            page_offset=criteria.page_offset,
            returned=len(rows),
            total_count=total,
            elapsed_ms=elapsed_ms,
        )
        return SearchPage(
            rows=rows,
            total_count=total,
            page_size=criteria.page_size,
            page_offset=criteria.page_offset,
            expanded_query=expanded,
        )

    async def facet_counts(
        self,
        query: str | None = None,
        filters: SearchFilters | None = None,
        facets: list[str] | None = None,
    ) -> dict[str, dict[str, int]]:
        """Per-value match counts for each requested facet attribute.

        Raises:
            ValueError: If a facet name is not a filterable attribute.
        """
        requested = list(facets) if facets else list(DEFAULT_FACETS)
        unknown = [name for name in requested if name not in FACETS]
        if unknown:
            raise ValueError(f"Unknown facet(s): {', '.join(unknown)}")

        criteria = self.build_criteria(query, filters)
        counts = await self._store.facet_counts(criteria, requested)
        logger.debug("facet_counts_computed", query=criteria.raw_query, facets=requested)
        return counts
