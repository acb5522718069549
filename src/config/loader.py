"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  — Static defaults checked into the repo
#   2. .env file           — Local developer overrides (not committed)
#   3. Environment vars    — Set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the
# Settings-derived values on top.  ``settings_from_config()`` goes the
# other way: it turns the merged dict back into a ``Settings`` object for
# the composition root.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; read from the environment when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            try:
                yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Cannot parse {config_path}: {exc}") from exc
    else:
        yaml_config = {}

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")

    if settings is None:
        settings = Settings()
    env_overrides = _env_overrides(settings)

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def settings_from_config(config: dict) -> Settings:
    """Flatten a merged config dict back into a ``Settings`` instance."""
    embedding = config.get("embedding", {})
    storage = config.get("storage", {})
    search = config.get("search", {})
    duplicates = config.get("duplicates", {})
    app = config.get("app", {})
    values: dict[str, Any] = {
        "openai_api_key": embedding.get("openai_api_key"),
        "openai_base_url": embedding.get("openai_base_url"),
        "openai_embedding_model": embedding.get("model"),
        "embedding_dimension": embedding.get("dimension"),
        "embedding_max_chars": embedding.get("max_chars"),
        "embedding_concurrency": embedding.get("concurrency"),
        "lesson_db_path": storage.get("lesson_db_path"),
        "vocabulary_path": storage.get("vocabulary_path"),
        "search_default_page_size": search.get("default_page_size"),
        "search_max_page_size": search.get("max_page_size"),
        "search_trigram_threshold": search.get("trigram_threshold"),
        "search_summary_weight": search.get("summary_weight"),
        "duplicate_semantic_threshold": duplicates.get("semantic_threshold"),
        "duplicate_semantic_limit": duplicates.get("semantic_limit"),
        "duplicate_min_combined_score": duplicates.get("min_combined_score"),
        "duplicate_max_candidates": duplicates.get("max_candidates"),
        "duplicate_pair_threshold": duplicates.get("pair_threshold"),
        "app_env": app.get("env"),
        "log_level": config.get("logging", {}).get("level"),
    }
    return Settings(**{k: v for k, v in values.items() if v is not None})


def _env_overrides(settings: Settings) -> dict:
    """Only values explicitly set in the environment or .env override YAML."""
    explicit = settings.model_fields_set
    mapping = {
        "openai_api_key": ("embedding", "openai_api_key"),
        "openai_base_url": ("embedding", "openai_base_url"),
        "openai_embedding_model": ("embedding", "model"),
        "embedding_dimension": ("embedding", "dimension"),
        "embedding_max_chars": ("embedding", "max_chars"),
        "embedding_concurrency": ("embedding", "concurrency"),
        "lesson_db_path": ("storage", "lesson_db_path"),
        "vocabulary_path": ("storage", "vocabulary_path"),
        "search_default_page_size": ("search", "default_page_size"),
        "search_max_page_size": ("search", "max_page_size"),
        "search_trigram_threshold": ("search", "trigram_threshold"),
        "search_summary_weight": ("search", "summary_weight"),
        "duplicate_semantic_threshold": ("duplicates", "semantic_threshold"),
        "duplicate_semantic_limit": ("duplicates", "semantic_limit"),
        "duplicate_min_combined_score": ("duplicates", "min_combined_score"),
        "duplicate_max_candidates": ("duplicates", "max_candidates"),
        "duplicate_pair_threshold": ("duplicates", "pair_threshold"),
        "app_env": ("app", "env"),
        "log_level": ("logging", "level"),
    }
    overrides: dict = {}
    for field, (section, key) in mapping.items():
        if field in explicit:
            overrides.setdefault(section, {})[key] = getattr(settings, field)
    return overrides


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
