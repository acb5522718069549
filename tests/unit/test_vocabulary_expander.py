"""Unit tests for VocabularyExpander synonym and hierarchy expansion."""

from __future__ import annotations

from src.interfaces.vocabulary_provider import IVocabularyProvider
from src.models.vocabulary import SynonymEntry, Vocabulary
from src.providers.vocabulary.yaml_vocabulary_provider import StaticVocabularyProvider
from src.services.vocabulary_expander import VocabularyExpander


class _SwappableProvider(IVocabularyProvider):
    def __init__(self, vocabulary: Vocabulary) -> None:
        self.vocabulary = vocabulary

    def get_vocabulary(self) -> Vocabulary:
        return self.vocabulary

    def get_provider_name(self) -> str:
        return "swappable"


class TestExpandSynonyms:
    def test_bidirectional_term(self, expander: VocabularyExpander) -> None:
        assert expander.expand_synonyms("tomato") == "heirloom | tomato | tomatoes"

    def test_bidirectional_fires_on_synonym(self, expander: VocabularyExpander) -> None:
        assert expander.expand_synonyms("Tomatoes") == "heirloom | tomato | tomatoes"

    def test_oneway_fires_on_term_only(self, expander: VocabularyExpander) -> None:
        assert expander.expand_synonyms("squash") == "pumpkin | squash | zucchini"
        assert expander.expand_synonyms("zucchini") == "zucchini"

    def test_typo_correction_keeps_original_token(self, expander: VocabularyExpander) -> None:
        assert expander.expand_synonyms("pumkin soup") == "pumkin | pumpkin | soup"

    def test_unknown_words_pass_through(self, expander: VocabularyExpander) -> None:
        assert expander.expand_synonyms("Compost  Worms") == "compost | worms"

    def test_blank_and_none_mean_no_constraint(self, expander: VocabularyExpander) -> None:
        assert expander.expand_synonyms(None) is None
        assert expander.expand_synonyms("   ") is None
        assert expander.expand_terms("") == []

    def test_deterministic_regardless_of_token_order(self, expander: VocabularyExpander) -> None:
        assert expander.expand_synonyms("soup tomato") == expander.expand_synonyms("tomato soup")

    def test_distinct_terms(self, expander: VocabularyExpander) -> None:
        terms = expander.expand_terms("tomato tomatoes heirloom")
        assert terms == ["heirloom", "tomato", "tomatoes"]


class TestExpandHierarchy:
    def test_parent_adds_children(self, expander: VocabularyExpander) -> None:
        assert expander.expand_hierarchy(["Asian"]) == ["Asian", "Chinese", "Japanese", "Korean"]

    def test_child_is_not_widened(self, expander: VocabularyExpander) -> None:
        assert expander.expand_hierarchy(["Korean"]) == ["Korean"]

    def test_first_seen_order_without_duplicates(self, expander: VocabularyExpander) -> None:
        result = expander.expand_hierarchy(["Mexican", "Latin American"])
        assert result == ["Mexican", "Latin American", "Peruvian"]

    def test_idempotent(self, expander: VocabularyExpander) -> None:
        once = expander.expand_hierarchy(["Asian", "Latin American"])
        assert expander.expand_hierarchy(once) == once

    def test_empty(self, expander: VocabularyExpander) -> None:
        assert expander.expand_hierarchy([]) == []
        assert expander.expand_hierarchy(None) == []


class TestVocabularySwap:
    def test_version_reported(self, expander: VocabularyExpander) -> None:
        assert expander.vocabulary_version == "test-1"

    def test_index_follows_new_snapshot(self) -> None:
        provider = _SwappableProvider(Vocabulary(version="1"))
        expander = VocabularyExpander(provider)
        assert expander.expand_synonyms("kale") == "kale"

        provider.vocabulary = Vocabulary(
            version="2", synonyms=[SynonymEntry(term="kale", synonyms=["greens"])]
        )
        assert expander.expand_synonyms("kale") == "greens | kale"
        assert expander.vocabulary_version == "2"

    def test_empty_vocabulary(self) -> None:
        expander = VocabularyExpander(StaticVocabularyProvider())
        assert expander.expand_synonyms("Tomato") == "tomato"
        assert expander.expand_hierarchy(["Asian"]) == ["Asian"]
