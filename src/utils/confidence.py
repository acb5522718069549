"""Similarity scoring and match-tier utilities for duplicate detection.

Duplicate candidates carry numeric similarity scores (0.0--1.0) coming from
several signals: content hash equality, embedding cosine similarity, title
word overlap and attribute overlap.  This module provides the shared math:

1. **calculate_confidence** -- Weighted average of multiple score signals,
   used to fold title, attribute and semantic similarity into a single
   combined score.
2. **similarity_to_match_type** -- Maps an embedding similarity onto the
   exact / high / medium / low tiers.
3. **combined_to_match_type** -- The tiering used by the lexical fallback
   when no embedding is available (there is no "exact" tier without a
   hash or vector match).
"""

from src.models.duplicates import MatchType

# Embedding similarity tier boundaries.
EXACT_THRESHOLD = 0.95
HIGH_THRESHOLD = 0.85
MEDIUM_THRESHOLD = 0.70


def calculate_confidence(
    scores: list[float],
    weights: list[float] | None = None,
) -> float:
    """Compute a weighted average of similarity signals.

    Args:
        scores: Individual scores, each in [0.0, 1.0].
        weights: Optional weights for each score. Defaults to equal weighting.

    Returns:
        Weighted average clamped to [0.0, 1.0].

    Raises:
        ValueError: If scores is empty, lengths differ, or all weights are zero.
    """
    if not scores:
        raise ValueError("scores must not be empty")

    if weights is None:
        weights = [1.0] * len(scores)

    if len(scores) != len(weights):
        raise ValueError(
            f"scores and weights must have the same length "
            f"({len(scores)} != {len(weights)})"
        )

    total_weight = sum(weights)
    if total_weight == 0:
        raise ValueError("total weight must not be zero")

    weighted_sum = sum(s * w for s, w in zip(scores, weights))
    return clamp_unit(weighted_sum / total_weight)


def clamp_unit(value: float) -> float:
    """Clamp ``value`` into [0.0, 1.0]."""
    return max(0.0, min(1.0, value))


def similarity_to_match_type(similarity: float) -> MatchType:
    """Tier an embedding similarity."""
    if similarity >= EXACT_THRESHOLD:
        return MatchType.EXACT
    if similarity >= HIGH_THRESHOLD:
        return MatchType.HIGH
    if similarity >= MEDIUM_THRESHOLD:
        return MatchType.MEDIUM
    return MatchType.LOW


def combined_to_match_type(score: float) -> MatchType:
    """Tier a lexical combined score (never ``exact``)."""
    if score >= HIGH_THRESHOLD:
        return MatchType.HIGH
    if score >= MEDIUM_THRESHOLD:
        return MatchType.MEDIUM
    return MatchType.LOW
