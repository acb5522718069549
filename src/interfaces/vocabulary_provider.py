"""Abstract base class for controlled-vocabulary sources.

Implementations hand out an immutable :class:`Vocabulary` snapshot.  The
vocabulary expander never reads ambient tables, so tests and alternative
deployments can swap vocabularies by swapping the provider.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.vocabulary import Vocabulary


# Concrete implementations:
#   YamlVocabularyProvider   — config/vocabulary.yaml
#   StaticVocabularyProvider — in-memory snapshot
# Located in: src/providers/vocabulary/
class IVocabularyProvider(ABC):
    """Read-only, versioned synonym and hierarchy lookup."""

    @abstractmethod
    def get_vocabulary(self) -> Vocabulary:
        """Return the current vocabulary snapshot."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
