"""Unit tests for lexical similarity helpers."""

from __future__ import annotations

import pytest

from src.utils.text_similarity import (
    fuzzy_title_candidates,
    jaccard_similarity,
    normalize_body,
    normalize_title_key,
    title_similarity,
    title_tokens,
    trigram_similarity,
    trigrams,
)


class TestNormalization:
    def test_normalize_body_collapses_whitespace_and_case(self) -> None:
        assert normalize_body("  Plant   the\tSEEDS\n\nnow ") == "plant the seeds now"

    def test_normalize_body_none(self) -> None:
        assert normalize_body(None) == ""

    def test_title_key(self) -> None:
        assert normalize_title_key("  Salsa Fresca ") == "salsa fresca"

    def test_title_tokens_drop_stop_words_and_punctuation(self) -> None:
        assert title_tokens("The Art of Making Salsa!") == ["art", "making", "salsa"]


class TestTitleSimilarity:
    def test_identical(self) -> None:
        assert title_similarity("Tomato Salsa", "tomato salsa") == pytest.approx(1.0)

    def test_partial_overlap(self) -> None:
        # words {tomato, salsa} vs {tomato, soup}: jaccard 1/3, length ratio 1
        assert title_similarity("Tomato Salsa", "Tomato Soup") == pytest.approx(0.8 / 3 + 0.2)

    def test_one_side_empty(self) -> None:
        assert title_similarity("The", "Tomato Soup") == 0.0

    def test_both_empty(self) -> None:
        assert title_similarity("", "the of") == 1.0


class TestJaccard:
    def test_case_insensitive(self) -> None:
        assert jaccard_similarity(["Fall", "Spring"], ["fall"]) == pytest.approx(0.5)

    def test_both_empty(self) -> None:
        assert jaccard_similarity([], None) == 1.0

    def test_one_empty(self) -> None:
        assert jaccard_similarity(["3"], []) == 0.0


class TestTrigrams:
    def test_padding(self) -> None:
        assert trigrams("cat") == {"  c", " ca", "cat", "at "}

    def test_identical_text(self) -> None:
        assert trigram_similarity("Garden Salsa", "garden salsa") == 1.0

    def test_disjoint(self) -> None:
        assert trigram_similarity("abc", "xyz") == 0.0

    def test_none_safe(self) -> None:
        assert trigram_similarity(None, "tomato") == 0.0
        assert trigram_similarity(None, None) == 0.0

    def test_typo_stays_above_match_threshold(self) -> None:
        assert trigram_similarity("tomato", "tomatoe") >= 0.3


class TestFuzzyTitleCandidates:
    def test_finds_reordered_titles(self) -> None:
        titles = {"a": "Salsa Tomato Fresh", "b": "Worm Bin Build", "c": "Fresh Tomato Salsa"}
        found = dict(fuzzy_title_candidates("fresh tomato salsa", titles))
        assert set(found) == {"a", "c"}
        assert found["c"] == pytest.approx(1.0)

    def test_blank_title(self) -> None:
        assert fuzzy_title_candidates("   ", {"a": "Anything"}) == []
