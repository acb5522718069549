"""File-backed and in-memory vocabulary providers.

``YamlVocabularyProvider`` reads ``config/vocabulary.yaml`` once, on first
use, and serves the same immutable snapshot afterwards.  Call
:meth:`reload` to pick up an edited file.
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from src.interfaces.vocabulary_provider import IVocabularyProvider
from src.models.vocabulary import HierarchyNode, SynonymEntry, Vocabulary
from src.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


def vocabulary_from_mapping(data: dict) -> Vocabulary:
    """Build a Vocabulary from the YAML document layout.

    ``synonyms`` is a list of ``{term, synonyms, type}`` items and
    ``cultural_hierarchy`` maps each parent to its children.
    """
    synonyms = [
        SynonymEntry(
            term=str(item["term"]),
            synonyms=[str(s) for s in item.get("synonyms") or []],
            synonym_type=item.get("type", "bidirectional"),
        )
        for item in data.get("synonyms") or []
    ]
    hierarchy = [
        HierarchyNode(parent=str(parent), children=[str(c) for c in children or []])
        for parent, children in (data.get("cultural_hierarchy") or {}).items()
    ]
    return Vocabulary(
        version=str(data.get("version", "0")),
        synonyms=synonyms,
        hierarchy=hierarchy,
    )


class YamlVocabularyProvider(IVocabularyProvider):
    """Vocabulary loaded from a YAML file."""

    def __init__(self, path: str | Path = "config/vocabulary.yaml") -> None:
        self._path = Path(path)
        self._vocabulary: Vocabulary | None = None

    def get_vocabulary(self) -> Vocabulary:
        if self._vocabulary is None:
            self._vocabulary = self._load()
        return self._vocabulary

    def reload(self) -> Vocabulary:
        self._vocabulary = self._load()
        return self._vocabulary

    def get_provider_name(self) -> str:
        return "yaml_vocabulary"

    def _load(self) -> Vocabulary:
        if not self._path.exists():
            raise ConfigurationError(
                message=f"Vocabulary file not found: {self._path}",
                provider_name=self.get_provider_name(),
            )
        try:
            with open(self._path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            vocabulary = vocabulary_from_mapping(data)
        except (yaml.YAMLError, KeyError, TypeError, AttributeError, ValidationError) as exc:
            raise ConfigurationError(
                message=f"Invalid vocabulary file {self._path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "vocabulary_loaded",
            path=str(self._path),
            version=vocabulary.version,
            synonym_entries=len(vocabulary.synonyms),
            hierarchy_parents=len(vocabulary.hierarchy),
        )
        return vocabulary


class StaticVocabularyProvider(IVocabularyProvider):
    """Serves a vocabulary handed in at construction."""

    def __init__(self, vocabulary: Vocabulary | None = None) -> None:
        self._vocabulary = vocabulary or Vocabulary()

    def get_vocabulary(self) -> Vocabulary:
        return self._vocabulary

    def get_provider_name(self) -> str:
        return "static_vocabulary"
