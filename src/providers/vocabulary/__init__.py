"""Controlled-vocabulary providers (synonyms and cultural hierarchy)."""

from src.providers.vocabulary.yaml_vocabulary_provider import (
    StaticVocabularyProvider,
    YamlVocabularyProvider,
    vocabulary_from_mapping,
)

__all__ = ["StaticVocabularyProvider", "YamlVocabularyProvider", "vocabulary_from_mapping"]
