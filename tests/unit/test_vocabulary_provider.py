"""Unit tests for the YAML-backed vocabulary provider."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.models.vocabulary import SynonymType
from src.providers.vocabulary.yaml_vocabulary_provider import (
    YamlVocabularyProvider,
    vocabulary_from_mapping,
)
from src.utils.errors import ConfigurationError

_YAML = """\
version: "2024.1"
synonyms:
  - term: tomato
    synonyms: [tomatoes]
  - term: squash
    synonyms: [pumpkin]
    type: oneway
cultural_hierarchy:
  Asian: [Chinese, Japanese]
"""


class TestVocabularyFromMapping:
    def test_builds_entries_and_hierarchy(self) -> None:
        vocab = vocabulary_from_mapping({
            "version": 3,
            "synonyms": [{"term": "kale", "synonyms": ["greens"], "type": "typo_correction"}],
            "cultural_hierarchy": {"African": ["Ethiopian"]},
        })
        assert vocab.version == "3"
        assert vocab.synonyms[0].synonym_type == SynonymType.TYPO_CORRECTION
        assert vocab.children_by_parent() == {"African": ["Ethiopian"]}

    def test_empty_document(self) -> None:
        vocab = vocabulary_from_mapping({})
        assert vocab.synonyms == []
        assert vocab.hierarchy == []


class TestYamlVocabularyProvider:
    def test_loads_file_once(self, tmp_path: Path) -> None:
        path = tmp_path / "vocabulary.yaml"
        path.write_text(_YAML, encoding="utf-8")
        provider = YamlVocabularyProvider(path)

        first = provider.get_vocabulary()
        assert first.version == "2024.1"
        assert first.synonyms[1].synonym_type == SynonymType.ONEWAY
        assert provider.get_vocabulary() is first

    def test_reload_picks_up_edits(self, tmp_path: Path) -> None:
        path = tmp_path / "vocabulary.yaml"
        path.write_text(_YAML, encoding="utf-8")
        provider = YamlVocabularyProvider(path)
        provider.get_vocabulary()

        path.write_text('version: "2024.2"\n', encoding="utf-8")
        assert provider.reload().version == "2024.2"

    def test_missing_file(self, tmp_path: Path) -> None:
        provider = YamlVocabularyProvider(tmp_path / "absent.yaml")
        with pytest.raises(ConfigurationError, match="not found"):
            provider.get_vocabulary()

    def test_invalid_hierarchy_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "vocabulary.yaml"
        path.write_text(
            "cultural_hierarchy:\n  Asian: [East Asian]\n  East Asian: [Korean]\n",
            encoding="utf-8",
        )
        with pytest.raises(ConfigurationError, match="two levels"):
            YamlVocabularyProvider(path).get_vocabulary()

    def test_bundled_vocabulary_loads(self) -> None:
        bundled = Path(__file__).resolve().parents[2] / "config" / "vocabulary.yaml"
        vocab = YamlVocabularyProvider(bundled).get_vocabulary()
        assert vocab.synonyms
