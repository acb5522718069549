"""Unit tests for the YAML + environment configuration loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config.loader import load_config, settings_from_config
from src.config.settings import Settings
from src.utils.errors import ConfigurationError

_YAML = """\
storage:
  lesson_db_path: /srv/lessons.db
embedding:
  model: text-embedding-3-large
  dimension: 3072
search:
  max_page_size: 50
users:
  reviewer-1:
    role: reviewer
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(_YAML, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_yaml_values_loaded(self, config_file: Path) -> None:
        config = load_config(str(config_file), settings=Settings(_env_file=None))
        assert config["storage"]["lesson_db_path"] == "/srv/lessons.db"
        assert config["users"]["reviewer-1"]["role"] == "reviewer"

    def test_explicit_settings_override_yaml(self, config_file: Path) -> None:
        settings = Settings(_env_file=None, embedding_dimension=256, openai_api_key="sk-test")
        config = load_config(str(config_file), settings=settings)

        assert config["embedding"]["dimension"] == 256
        assert config["embedding"]["model"] == "text-embedding-3-large"
        assert config["embedding"]["openai_api_key"] == "sk-test"

    def test_missing_file_gives_env_only(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=Settings(_env_file=None, log_level="DEBUG"))
        assert config["logging"] == {"level": "DEBUG"}

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(str(path), settings=Settings(_env_file=None))

    def test_unparseable_yaml_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("storage: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Cannot parse"):
            load_config(str(path), settings=Settings(_env_file=None))


class TestSettingsFromConfig:
    def test_round_trip(self, config_file: Path) -> None:
        config = load_config(str(config_file), settings=Settings(_env_file=None, duplicate_pair_threshold=0.9))
        settings = settings_from_config(config)

        assert settings.lesson_db_path == "/srv/lessons.db"
        assert settings.embedding_dimension == 3072
        assert settings.search_max_page_size == 50
        assert settings.duplicate_pair_threshold == 0.9

    def test_missing_sections_keep_defaults(self) -> None:
        settings = settings_from_config({})
        assert settings.search_default_page_size == 20
        assert settings.duplicate_min_combined_score == 0.45
