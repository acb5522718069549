"""Text normalization and lexical similarity for lesson titles and bodies.

This module handles four distinct concerns:

1. **Body normalization** -- Lower-cases and collapses whitespace so that
   content hashes are stable across re-exports of the same document.

2. **Title similarity** -- Word-set Jaccard (stop words removed) blended
   with a length ratio, used when scoring a submission against a catalog
   lesson.

3. **Trigram similarity** -- The pg_trgm algorithm (padded word trigrams,
   set Jaccard).  Registered as the ``similarity()`` SQL function on every
   catalog connection so fuzzy title/summary matching runs inside the
   search query.

4. **Fuzzy candidate selection** -- rapidfuzz ``token_set_ratio`` picks
   lexically close titles out of the whole catalog when no embedding is
   available for a submission.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from rapidfuzz import fuzz, process

# Common English stop words ignored by title comparison.
STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
    "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
    "to", "was", "will", "with", "this", "these", "those", "what",
    "when", "where", "which", "who", "why", "how",
})

_WHITESPACE_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_TRGM_WORD_RE = re.compile(r"[^\W_]+")


def normalize_body(text: str | None) -> str:
    """Lower-case, collapse whitespace runs and trim."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text.lower()).strip()


def normalize_title_key(title: str | None) -> str:
    """Key used to decide that two titles are "the same title"."""
    return (title or "").strip().lower()


def title_tokens(title: str | None) -> list[str]:
    """Split a title into lower-case words, punctuation and stop words removed."""
    cleaned = _NON_ALNUM_RE.sub(" ", (title or "").lower())
    return [w for w in cleaned.split() if w and w not in STOP_WORDS]


def title_similarity(title_a: str | None, title_b: str | None) -> float:
    """Score two titles in [0, 1].

    ``0.8 * jaccard(word sets) + 0.2 * (shorter / longer word count)``.
    Two titles that are both empty after stop-word removal score 1.0; one
    empty title scores 0.0.
    """
    words_a = title_tokens(title_a)
    words_b = title_tokens(title_b)

    if not words_a and not words_b:
        return 1.0
    if not words_a or not words_b:
        return 0.0

    set_a, set_b = set(words_a), set(words_b)
    union = set_a | set_b
    jaccard = len(set_a & set_b) / len(union) if union else 0.0
    length_ratio = min(len(words_a), len(words_b)) / max(len(words_a), len(words_b))
    return jaccard * 0.8 + length_ratio * 0.2


def jaccard_similarity(values_a: Iterable[object] | None, values_b: Iterable[object] | None) -> float:
    """Case-insensitive Jaccard similarity of two value collections.

    Both empty counts as a match (1.0); exactly one empty scores 0.0.
    """
    set_a = {str(v).strip().lower() for v in (values_a or [])}
    set_b = {str(v).strip().lower() for v in (values_b or [])}

    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def trigrams(text: str | None) -> set[str]:
    """Return the pg_trgm trigram set of ``text``.

    Each alphanumeric word is lower-cased and padded with two leading and
    one trailing space before being cut into overlapping 3-grams.
    """
    result: set[str] = set()
    for word in _TRGM_WORD_RE.findall((text or "").lower()):
        padded = f"  {word} "
        for i in range(len(padded) - 2):
            result.add(padded[i : i + 3])
    return result


def trigram_similarity(text_a: str | None, text_b: str | None) -> float:
    """pg_trgm ``similarity()``: shared trigrams over distinct trigrams."""
    grams_a = trigrams(text_a)
    grams_b = trigrams(text_b)
    union = grams_a | grams_b
    if not union:
        return 0.0
    return len(grams_a & grams_b) / len(union)


def fuzzy_title_candidates(
    title: str,
    titles_by_id: Mapping[str, str],
    limit: int = 50,
    threshold: float = 0.5,
) -> list[tuple[str, float]]:
    """Return ``(lesson_id, score)`` pairs of the closest catalog titles.

    Uses rapidfuzz ``token_set_ratio`` (word-order and duplicate-word
    insensitive) on the 0--100 scale internally; scores are returned on the
    0--1 scale, best first.
    """
    if not title.strip() or not titles_by_id:
        return []

    matches = process.extract(
        title,
        titles_by_id,
        scorer=fuzz.token_set_ratio,
        processor=str.lower,
        limit=limit,
        score_cutoff=threshold * 100,
    )
    # With a mapping as choices rapidfuzz yields (value, score, key).
    return [(key, score / 100.0) for _value, score, key in matches]
