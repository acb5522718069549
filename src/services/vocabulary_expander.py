"""Query and category expansion over the controlled vocabulary.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: IVocabularyProvider.
#
# Two pure read operations:
#
#   expand_synonyms("pumkin soup") -> "pumkin | pumpkin | soup"
#       Lower-case whitespace tokens, each kept and widened with synonyms.
#       A bidirectional entry fires when the token is its term OR any of
#       its synonyms and contributes the whole set.  One-way and
#       typo-correction entries fire only on an exact term match and
#       contribute their synonyms.  Output terms are distinct and sorted,
#       so the result depends only on the input and the vocabulary.
#
#   expand_hierarchy(["Asian"]) -> ["Asian", "Chinese", "Japanese", ...]
#       Selected categories plus the direct children of any that are
#       hierarchy parents, first-seen order, no duplicates.
#
# Lookup indices are rebuilt only when the provider hands out a different
# vocabulary snapshot.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import structlog

from src.interfaces.vocabulary_provider import IVocabularyProvider
from src.models.vocabulary import SynonymEntry, SynonymType, Vocabulary

logger = structlog.get_logger(logger_name=__name__)

_TERM_SEPARATOR = " | "


class _SynonymIndex:
    """Token -> entries that fire for it, built from one vocabulary snapshot."""

    def __init__(self, vocabulary: Vocabulary) -> None:
        self.vocabulary = vocabulary
        self.by_term: dict[str, list[SynonymEntry]] = {}
        self.by_synonym: dict[str, list[SynonymEntry]] = {}
        for entry in vocabulary.synonyms:
            self.by_term.setdefault(entry.term.lower(), []).append(entry)
            if entry.synonym_type == SynonymType.BIDIRECTIONAL:
                for synonym in entry.synonyms:
                    self.by_synonym.setdefault(synonym.lower(), []).append(entry)
        self.children = vocabulary.children_by_parent()

    def expand_token(self, token: str) -> set[str]:
        terms = {token}
        for entry in self.by_term.get(token, []):
            if entry.synonym_type == SynonymType.BIDIRECTIONAL:
                terms.add(entry.term.lower())
            terms.update(s.lower() for s in entry.synonyms)
        for entry in self.by_synonym.get(token, []):
            terms.add(entry.term.lower())
            terms.update(s.lower() for s in entry.synonyms)
        return terms


class VocabularyExpander:
    """Synonym and hierarchy expansion against an injected vocabulary."""

    def __init__(self, vocabulary_provider: IVocabularyProvider) -> None:
        self._provider = vocabulary_provider
        self._index: _SynonymIndex | None = None

    @property
    def vocabulary_version(self) -> str:
        return self._current_index().vocabulary.version

    def expand_terms(self, query: str | None) -> list[str]:
        """Distinct, sorted expansion terms of ``query``; empty when blank."""
        if query is None:
            return []
        tokens = query.strip().lower().split()
        if not tokens:
            return []

        index = self._current_index()
        terms: set[str] = set()
        for token in tokens:
            terms.update(index.expand_token(token))
        return sorted(terms)

    def expand_synonyms(self, query: str | None) -> str | None:
        """OR-expression of the expanded terms, or ``None`` for no keyword constraint."""
        terms = self.expand_terms(query)
        if not terms:
            return None
        return _TERM_SEPARATOR.join(terms)

    def expand_hierarchy(self, categories: list[str] | None) -> list[str]:
        """Selected categories plus direct children of selected parents."""
        if not categories:
            return []
        children = self._current_index().children

        expanded: dict[str, None] = {}
        for category in categories:
            expanded.setdefault(category, None)
            for child in children.get(category, []):
                expanded.setdefault(child, None)
        return list(expanded)

    def _current_index(self) -> _SynonymIndex:
        vocabulary = self._provider.get_vocabulary()
        if self._index is None or self._index.vocabulary is not vocabulary:
            self._index = _SynonymIndex(vocabulary)
            logger.debug(
                "vocabulary_index_built",
                version=vocabulary.version,
                provider=self._provider.get_provider_name(),
            )
        return self._index
