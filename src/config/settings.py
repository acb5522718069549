"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources (in priority order):
#
#   1. **Environment variables** — e.g., OPENAI_API_KEY=sk-abc123
#   2. **.env file** — key=value lines in the project root .env file
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
# below are used when neither source sets a value.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Lesson bank engine settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embedding provider ===
    # Empty key = "not configured" → the composition root wires no
    # embedding provider and semantic matching is simply unavailable.
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int = 1536
    embedding_max_chars: int = 8000  # Character budget for "title\nbody" input
    embedding_concurrency: int = 5

    # === Storage ===
    # Catalog, archive, resolution ledger and submissions share one file so
    # the resolution workflow can commit them in a single transaction.
    lesson_db_path: str = "data/lessons.db"
    vocabulary_path: str = "config/vocabulary.yaml"

    # === Search ===
    search_default_page_size: int = 20
    search_max_page_size: int = 100
    search_trigram_threshold: float = 0.3
    search_summary_weight: float = 0.8

    # === Duplicate detection ===
    duplicate_semantic_threshold: float = 0.5
    duplicate_semantic_limit: int = 10
    duplicate_min_combined_score: float = 0.45
    duplicate_max_candidates: int = 10
    duplicate_pair_threshold: float = 0.95

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def embeddings_enabled(self) -> bool:
        """Return True when an embedding provider can be constructed."""
        return bool(self.openai_api_key)
