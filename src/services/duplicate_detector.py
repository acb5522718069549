"""Duplicate candidate detection for submissions and the existing catalog.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: ILessonStore, ISubmissionStore (similarity cache).
#
# Two jobs:
#
#   Submission scoring -- one incoming fingerprint against the catalog.
#     Candidates come from three sources, strongest first:
#       1. content hash equality          -> combined 1.0, tier exact
#       2. embedding cosine >= threshold  -> 0.3 title + 0.2 metadata
#                                            + 0.5 semantic, tier from
#                                            the semantic similarity
#       3. rapidfuzz title match (only when there is no embedding)
#                                         -> 0.7 title + 0.3 metadata,
#                                            tier from the combined score
#     Rows under the combined-score floor are dropped unless exact; the
#     survivors are cached per submission.
#
#   Catalog review -- pairs of existing lessons sharing a normalised title
#     or with embedding similarity >= 0.95, grouped transitively with a
#     union-find into duplicate groups for the resolution workflow.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import hashlib
from collections import Counter
from datetime import datetime, timezone
from itertools import combinations

import numpy as np
import structlog

from src.interfaces.lesson_store import ILessonStore
from src.interfaces.submission_store import ISubmissionStore
from src.models.duplicates import (
    DetectionMethod,
    DuplicateGroup,
    DuplicatePair,
    LessonMatch,
    MatchType,
    SubmissionSimilarity,
)
from src.models.lesson import Lesson, LessonAttributes
from src.models.submission import Submission
from src.utils.confidence import (
    calculate_confidence,
    clamp_unit,
    combined_to_match_type,
    similarity_to_match_type,
)
from src.utils.text_similarity import (
    fuzzy_title_candidates,
    jaccard_similarity,
    normalize_title_key,
    title_similarity,
)

logger = structlog.get_logger(logger_name=__name__)

# Attribute -> weight in the metadata overlap score.
METADATA_WEIGHTS: dict[str, float] = {
    "grade_levels": 0.2,
    "thematic_categories": 0.2,
    "activity_type": 0.15,
    "cultural_heritage": 0.15,
    "season_timing": 0.1,
    "main_ingredients": 0.1,
    "cooking_methods": 0.1,
}

# [title, metadata, semantic]
SEMANTIC_WEIGHTS = [0.3, 0.2, 0.5]
# [title, metadata]
LEXICAL_WEIGHTS = [0.7, 0.3]

# Placeholder titles that must never make two lessons "the same title".
_IGNORED_TITLE_KEYS = frozenset({"", "unknown"})


def metadata_overlap(
    grade_levels: list[str],
    attributes: LessonAttributes,
    lesson: Lesson,
) -> float:
    """Weighted Jaccard overlap of the scored attributes.

    Attributes that are empty on both sides carry no information and are
    left out of the weighting; if none remain the overlap is 0.0.
    """
    weighted = 0.0
    weight_used = 0.0
    for name, weight in METADATA_WEIGHTS.items():
        ours = list(grade_levels) if name == "grade_levels" else attributes.values_for(name)
        theirs = lesson.values_for(name)
        if not ours and not theirs:
            continue
        weighted += jaccard_similarity(ours, theirs) * weight
        weight_used += weight
    if weight_used == 0:
        return 0.0
    return clamp_unit(weighted / weight_used)


def group_id_for(lesson_ids: list[str]) -> str:
    """Stable id of a duplicate group, derived from its sorted members."""
    digest = hashlib.sha1(",".join(sorted(lesson_ids)).encode("utf-8")).hexdigest()
    return f"group_{digest[:12]}"


class _UnionFind:
    def __init__(self) -> None:
        self._parent: dict[str, str] = {}

    def find(self, item: str) -> str:
        self._parent.setdefault(item, item)
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: str, b: str) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            # Smaller id becomes the root so grouping is order-independent.
            if root_b < root_a:
                root_a, root_b = root_b, root_a
            self._parent[root_b] = root_a

    def groups(self) -> dict[str, list[str]]:
        result: dict[str, list[str]] = {}
        for item in self._parent:
            result.setdefault(self.find(item), []).append(item)
        return result


class DuplicateDetector:
    """Finds duplicate candidates for submissions and within the catalog."""

    def __init__(
        self,
        lesson_store: ILessonStore,
        submission_store: ISubmissionStore | None = None,
        semantic_threshold: float = 0.5,
        semantic_limit: int = 10,
        min_combined_score: float = 0.45,
        max_candidates: int = 10,
        pair_threshold: float = 0.95,
        lexical_threshold: float = 0.5,
    ) -> None:
        self._store = lesson_store
        self._submissions = submission_store
        self._semantic_threshold = semantic_threshold
        self._semantic_limit = semantic_limit
        self._min_combined_score = min_combined_score
        self._max_candidates = max_candidates
        self._pair_threshold = pair_threshold
        self._lexical_threshold = lexical_threshold

    # ── Lookups ────────────────────────────────────────────────────────

    async def find_by_hash(self, content_hash: str) -> list[LessonMatch]:
        return await self._store.find_by_hash(content_hash)

    async def find_by_embedding(
        self,
        vector: list[float],
        threshold: float | None = None,
        limit: int | None = None,
    ) -> list[LessonMatch]:
        return await self._store.find_by_embedding(
            vector,
            threshold=self._semantic_threshold if threshold is None else threshold,
            limit=self._semantic_limit if limit is None else limit,
        )

    # ── Submission scoring ─────────────────────────────────────────────

    async def score_candidates(
        self,
        submission_id: str,
        title: str,
        content_hash: str | None,
        embedding: list[float] | None = None,
        attributes: LessonAttributes | None = None,
        grade_levels: list[str] | None = None,
        exclude_ids: set[str] | None = None,
    ) -> list[SubmissionSimilarity]:
        """Score one fingerprint against the catalog, best candidate first."""
        attributes = attributes or LessonAttributes()
        grade_levels = list(grade_levels or [])
        exclude = exclude_ids or set()

        hash_ids: list[str] = []
        if content_hash:
            hash_ids = [m.lesson_id for m in await self.find_by_hash(content_hash)]

        semantic: dict[str, float] = {}
        lexical_ids: list[str] = []
        if embedding:
            for match in await self.find_by_embedding(embedding):
                semantic[match.lesson_id] = match.similarity
        else:
            titles = await self._store.get_titles()
            lexical_ids = [
                lesson_id
                for lesson_id, _score in fuzzy_title_candidates(
                    title, titles, threshold=self._lexical_threshold
                )
            ]

        candidate_ids = [
            lesson_id
            for lesson_id in dict.fromkeys([*hash_ids, *semantic, *lexical_ids])
            if lesson_id not in exclude
        ]
        lessons = await self._store.get_lessons(candidate_ids)

        now = datetime.now(timezone.utc)
        exact_ids = set(hash_ids)
        scored: list[SubmissionSimilarity] = []
        for lesson_id in candidate_ids:
            lesson = lessons.get(lesson_id)
            if lesson is None:
                continue
            title_sim = clamp_unit(title_similarity(title, lesson.title))
            overlap = metadata_overlap(grade_levels, attributes, lesson)

            if lesson_id in exact_ids:
                content_sim: float | None = 1.0
                combined = 1.0
                match_type = MatchType.EXACT
            elif lesson_id in semantic:
                content_sim = semantic[lesson_id]
                combined = calculate_confidence([title_sim, overlap, content_sim], SEMANTIC_WEIGHTS)
                match_type = similarity_to_match_type(content_sim)
            else:
                content_sim = None
                combined = calculate_confidence([title_sim, overlap], LEXICAL_WEIGHTS)
                match_type = combined_to_match_type(combined)

            if combined < self._min_combined_score and match_type != MatchType.EXACT:
                continue
            scored.append(
                SubmissionSimilarity(
                    submission_id=submission_id,
                    lesson_id=lesson_id,
                    lesson_title=lesson.title,
                    title_similarity=title_sim,
                    content_similarity=content_sim,
                    metadata_overlap=overlap,
                    combined_score=combined,
                    match_type=match_type,
                    computed_at=now,
                )
            )

        scored.sort(key=lambda s: (-s.combined_score, s.lesson_id))
        result = scored[: self._max_candidates]
        logger.info(
            "duplicate_candidates_scored",
            submission_id=submission_id,
            hash_matches=len(hash_ids),
            semantic_matches=len(semantic),
            lexical_matches=len(lexical_ids),
            kept=len(result),
            used_embedding=bool(embedding),
        )
        return result

    async def score_submission(
        self,
        submission: Submission,
        attributes: LessonAttributes | None = None,
        grade_levels: list[str] | None = None,
        refresh: bool = False,
    ) -> list[SubmissionSimilarity]:
        """Candidates for a stored submission, served from the cache when present.

        An empty cache is indistinguishable from "never scored" and is
        recomputed.
        """
        if self._submissions is not None and not refresh:
            cached = await self._submissions.get_similarities(submission.submission_id)
            if cached:
                logger.debug(
                    "duplicate_candidates_cached",
                    submission_id=submission.submission_id,
                    count=len(cached),
                )
                return cached

        exclude = {submission.original_lesson_id} if submission.original_lesson_id else None
        similarities = await self.score_candidates(
            submission_id=submission.submission_id,
            title=submission.extracted_title,
            content_hash=submission.content_hash,
            embedding=submission.embedding,
            attributes=attributes,
            grade_levels=grade_levels,
            exclude_ids=exclude,
        )
        if self._submissions is not None:
            await self._submissions.save_similarities(submission.submission_id, similarities)
        return similarities

    # ── Catalog review ─────────────────────────────────────────────────

    async def find_duplicate_pairs(self) -> list[DuplicatePair]:
        """Pairs of active lessons with the same title or near-identical embeddings."""
        titles = await self._store.get_titles()

        by_title: dict[str, list[str]] = {}
        for lesson_id, title in titles.items():
            key = normalize_title_key(title)
            if key in _IGNORED_TITLE_KEYS:
                continue
            by_title.setdefault(key, []).append(lesson_id)

        title_pairs: set[tuple[str, str]] = set()
        for ids in by_title.values():
            for a, b in combinations(sorted(ids), 2):
                title_pairs.add((a, b))

        semantic_pairs = self._embedding_pairs(await self._store.get_embeddings())

        pairs: list[DuplicatePair] = []
        for a, b in sorted(title_pairs | set(semantic_pairs)):
            in_title = (a, b) in title_pairs
            in_semantic = (a, b) in semantic_pairs
            if in_title and in_semantic:
                method = DetectionMethod.BOTH
            elif in_title:
                method = DetectionMethod.SAME_TITLE
            else:
                method = DetectionMethod.EMBEDDING
            pairs.append(
                DuplicatePair(
                    lesson_id_1=a,
                    lesson_id_2=b,
                    title_1=titles.get(a, ""),
                    title_2=titles.get(b, ""),
                    similarity=semantic_pairs.get((a, b)),
                    detection_method=method,
                )
            )

        logger.info(
            "duplicate_pairs_found",
            lessons=len(titles),
            title_pairs=len(title_pairs),
            embedding_pairs=len(semantic_pairs),
            total=len(pairs),
        )
        return pairs

    def _embedding_pairs(self, embeddings: dict[str, list[float]]) -> dict[tuple[str, str], float]:
        if len(embeddings) < 2:
            return {}

        # Vectors of a foreign dimension (e.g. from an older model) are skipped.
        dim = Counter(len(v) for v in embeddings.values()).most_common(1)[0][0]
        ids = sorted(lesson_id for lesson_id, v in embeddings.items() if len(v) == dim)
        if len(ids) < 2:
            return {}

        matrix = np.asarray([embeddings[i] for i in ids], dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        unit = matrix / norms
        sims = unit @ unit.T

        rows, cols = np.where(np.triu(sims >= self._pair_threshold, k=1))
        return {
            (ids[r], ids[c]): clamp_unit(float(sims[r, c]))
            for r, c in zip(rows.tolist(), cols.tolist())
        }

    async def find_duplicate_groups(self, include_resolved: bool = False) -> list[DuplicateGroup]:
        """Transitively connected duplicate groups, most confident first."""
        pairs = await self.find_duplicate_pairs()
        if not pairs:
            return []

        uf = _UnionFind()
        for pair in pairs:
            uf.union(pair.lesson_id_1, pair.lesson_id_2)

        pairs_by_root: dict[str, list[DuplicatePair]] = {}
        for pair in pairs:
            pairs_by_root.setdefault(uf.find(pair.lesson_id_1), []).append(pair)

        groups: list[DuplicateGroup] = []
        for root, members in uf.groups().items():
            lesson_ids = sorted(members)
            if not include_resolved and await self._store.is_group_resolved(lesson_ids):
                continue

            group_pairs = pairs_by_root[root]
            methods = sorted({p.detection_method for p in group_pairs}, key=lambda m: m.value)
            similarities = [p.similarity for p in group_pairs if p.similarity is not None]

            titles: dict[str, str] = {}
            for p in group_pairs:
                titles[p.lesson_id_1] = p.title_1
                titles[p.lesson_id_2] = p.title_2

            high = DetectionMethod.BOTH in methods or (
                DetectionMethod.SAME_TITLE in methods and DetectionMethod.EMBEDDING in methods
            )
            groups.append(
                DuplicateGroup(
                    group_id=group_id_for(lesson_ids),
                    lesson_ids=lesson_ids,
                    titles={lesson_id: titles[lesson_id] for lesson_id in lesson_ids},
                    detection_methods=methods,
                    confidence="high" if high else "medium",
                    average_similarity=(
                        clamp_unit(sum(similarities) / len(similarities)) if similarities else None
                    ),
                    pair_count=len(group_pairs),
                )
            )

        groups.sort(key=lambda g: (g.confidence != "high", -len(g.lesson_ids), g.group_id))
        logger.info("duplicate_groups_found", groups=len(groups), include_resolved=include_resolved)
        return groups

    async def is_group_resolved(self, lesson_ids: list[str]) -> bool:
        return await self._store.is_group_resolved(lesson_ids)
