"""SQL construction for catalog search.

# ─── ONE PREDICATE, THREE STATEMENTS ─────────────────────────────────
#
# ``build_predicate`` produces the FROM/WHERE fragment and its named
# parameters exactly once per search.  The count statement, the page
# statement and the facet statements all embed that same fragment, so
# the total count can never drift from the rows a page can return.
#
# Relevance, when a query is present, is the MAX of three signals:
#   - FTS5 bm25 over weighted columns, s = -bm25 normalised as s/(1+s)
#   - similarity(title, query)                    (pg_trgm semantics)
#   - summary_weight * similarity(summary, query)
# A row matches if it hits the FTS index or either fuzzy similarity
# reaches the trigram threshold.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from src.models.lesson import Lesson, LessonAttributes
from src.models.search import SearchCriteria, SearchFilters

# Column order of the lessons_fts virtual table.  lesson_id is UNINDEXED.
FTS_COLUMNS = (
    "lesson_id",
    "title",
    "summary",
    "ingredients",
    "tags",
    "skills",
    "themes",
    "culture",
    "body",
)

# bm25 weights, positionally matching FTS_COLUMNS.
# title > summary/ingredients/tags > skills/themes/culture > body
FTS_WEIGHTS = (0.0, 10.0, 4.0, 4.0, 4.0, 2.0, 2.0, 2.0, 1.0)

_WORD_CHAR_RE = re.compile(r"\w")

_ORDER_BY = (
    "ORDER BY rank DESC, "
    "COALESCE(json_extract(l.confidence, '$.overall'), 0.0) DESC, "
    "l.title ASC, l.lesson_id ASC"
)


@dataclass(frozen=True)
class Predicate:
    """A FROM/WHERE fragment, its parameters and the matching rank expression."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)
    rank_sql: str = "0.0"


def attribute_key(name: str) -> str:
    """JSON key under which a LessonAttributes field is stored."""
    info = LessonAttributes.model_fields[name]
    return info.alias or name


def fts_match_expression(terms: list[str]) -> str | None:
    """Quote every term as an FTS5 string and OR them together.

    Quoting makes operators and punctuation inside user input literal.
    Terms without any word character would only produce empty phrases
    and are dropped; ``None`` means there is nothing to match.
    """
    quoted = [
        '"' + term.replace('"', '""') + '"'
        for term in terms
        if term and _WORD_CHAR_RE.search(term)
    ]
    if not quoted:
        return None
    return " OR ".join(quoted)


def fts_row(lesson: Lesson) -> tuple[str, ...]:
    """Values for one lessons_fts row, in FTS_COLUMNS order."""
    attrs = lesson.attributes

    def _join(*lists: list[str]) -> str:
        return " ".join(v for values in lists for v in values)

    return (
        lesson.lesson_id,
        lesson.title,
        lesson.summary or "",
        _join(attrs.main_ingredients),
        _join(attrs.tags, attrs.observances_holidays, [attrs.lesson_format or ""]),
        _join(attrs.garden_skills, attrs.cooking_skills, attrs.core_competencies),
        _join(attrs.thematic_categories, attrs.season_timing),
        _join(attrs.cultural_heritage, attrs.cultural_responsiveness_features),
        lesson.body or "",
    )


def _overlap_clause(column_sql: str, name: str, values: list[str], params: dict[str, Any]) -> str:
    placeholders = []
    for i, value in enumerate(values):
        key = f"{name}_{i}"
        params[key] = value
        placeholders.append(f":{key}")
    return (
        f"EXISTS (SELECT 1 FROM json_each({column_sql}) je "
        f"WHERE je.value IN ({', '.join(placeholders)}))"
    )


def _filter_clauses(filters: SearchFilters, params: dict[str, Any]) -> list[str]:
    clauses: list[str] = []
    for name in SearchFilters.LIST_FILTERS:
        values = [v for v in getattr(filters, name) if v]
        if not values:
            continue
        if name == "grade_levels":
            column_sql = "l.grade_levels"
        else:
            column_sql = f"l.attributes, '$.{attribute_key(name)}'"
        clauses.append(_overlap_clause(column_sql, name, values, params))

    if filters.lesson_format:
        params["lesson_format"] = filters.lesson_format
        clauses.append(
            f"json_extract(l.attributes, '$.{attribute_key('lesson_format')}') = :lesson_format"
        )

    if filters.cooking_method:
        params["cooking_method"] = filters.cooking_method
        clauses.append(
            "EXISTS (SELECT 1 FROM json_each(l.attributes, "
            f"'$.{attribute_key('cooking_methods')}') je WHERE je.value = :cooking_method)"
        )
    return clauses


def build_predicate(criteria: SearchCriteria) -> Predicate:
    """Build the shared FROM/WHERE fragment for a search."""
    params: dict[str, Any] = {}
    from_sql = "FROM lessons l"
    clauses: list[str] = []
    rank_sql = "0.0"

    if criteria.has_query:
        params["q"] = criteria.raw_query.strip()
        params["trgm"] = criteria.trigram_threshold
        params["summary_weight"] = criteria.summary_weight

        match_expr = fts_match_expression(criteria.terms)
        fuzzy = (
            "similarity(l.title, :q) >= :trgm "
            "OR similarity(l.summary, :q) >= :trgm"
        )
        if match_expr is not None:
            params["fts"] = match_expr
            weights = ", ".join(str(w) for w in FTS_WEIGHTS)
            from_sql += (
                " LEFT JOIN (SELECT lesson_id, -bm25(lessons_fts, "
                f"{weights}) AS score FROM lessons_fts WHERE lessons_fts MATCH :fts) f "
                "ON f.lesson_id = l.lesson_id"
            )
            clauses.append(f"(f.lesson_id IS NOT NULL OR {fuzzy})")
            fts_rank = "COALESCE(f.score / (1.0 + f.score), 0.0)"
        else:
            clauses.append(f"({fuzzy})")
            fts_rank = "0.0"

        rank_sql = (
            f"MAX({fts_rank}, similarity(l.title, :q), "
            ":summary_weight * similarity(l.summary, :q))"
        )

    clauses.extend(_filter_clauses(criteria.filters, params))

    sql = from_sql
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    return Predicate(sql=sql, params=params, rank_sql=rank_sql)


def count_statement(predicate: Predicate) -> str:
    return f"SELECT COUNT(*) {predicate.sql}"


def page_statement(predicate: Predicate) -> str:
    return (
        "SELECT l.lesson_id, l.title, l.summary, l.file_link, l.grade_levels, "
        "l.attributes, COALESCE(json_extract(l.confidence, '$.overall'), 0.0) AS overall, "
        f"{predicate.rank_sql} AS rank "
        f"{predicate.sql} {_ORDER_BY} LIMIT :limit OFFSET :offset"
    )


def facet_statement(predicate: Predicate, facet: str) -> str:
    """Per-value row counts of ``facet`` over the matched set."""
    matched = f"SELECT l.lesson_id, l.grade_levels, l.attributes {predicate.sql}"
    if facet == "grade_levels":
        source = "json_each(m.grade_levels)"
    elif facet == "lesson_format":
        value_sql = f"json_extract(m.attributes, '$.{attribute_key('lesson_format')}')"
        return (
            f"SELECT {value_sql} AS value, COUNT(*) AS n FROM ({matched}) m "
            f"WHERE {value_sql} IS NOT NULL GROUP BY value ORDER BY n DESC, value ASC"
        )
    elif facet in LessonAttributes.LIST_FIELDS:
        source = f"json_each(m.attributes, '$.{attribute_key(facet)}')"
    else:
        raise ValueError(f"Unknown facet: {facet}")
    return (
        f"SELECT je.value AS value, COUNT(DISTINCT m.lesson_id) AS n "
        f"FROM ({matched}) m, {source} je "
        "GROUP BY je.value ORDER BY n DESC, value ASC"
    )
