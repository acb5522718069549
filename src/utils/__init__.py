"""Utility modules for the lesson bank engine.

Available utility modules (all re-exported here for convenience):

- **confidence** -- Weighted scoring math and match-tier mapping used by
  duplicate detection.
- **errors** -- Domain-specific exception hierarchy rooted at LessonBankError.
- **concurrency** -- asyncio semaphore throttling for maintenance jobs that
  call the embedding provider once per lesson.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_similarity** -- Body normalization, title/attribute similarity,
  pg_trgm trigram similarity and rapidfuzz candidate selection.
- **vector_math** -- float32 BLOB encoding and numpy cosine similarity.
"""

# -- Match tiers and weighted scoring --------------------------------------
from src.utils.confidence import (
    calculate_confidence,
    clamp_unit,
    combined_to_match_type,
    similarity_to_match_type,
)

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DocumentExtractionError,
    EmbeddingUnavailableError,
    IntegrityViolationError,
    LessonBankError,
    PermissionDeniedError,
    ProviderUnavailableError,
    RateLimitError,
    StoreError,
    SubmissionStateError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import process_batch, throttled_gather

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import bind_log_context, configure_logging, get_logger

# -- Lexical similarity ----------------------------------------------------
from src.utils.text_similarity import (
    fuzzy_title_candidates,
    jaccard_similarity,
    normalize_body,
    title_similarity,
    trigram_similarity,
)

# -- Vector math -----------------------------------------------------------
from src.utils.vector_math import cosine_similarity, from_blob, to_blob

__all__ = [
    "ConfigurationError",
    "DocumentExtractionError",
    "EmbeddingUnavailableError",
    "IntegrityViolationError",
    "LessonBankError",
    "PermissionDeniedError",
    "ProviderUnavailableError",
    "RateLimitError",
    "StoreError",
    "SubmissionStateError",
    "bind_log_context",
    "calculate_confidence",
    "clamp_unit",
    "combined_to_match_type",
    "configure_logging",
    "cosine_similarity",
    "from_blob",
    "fuzzy_title_candidates",
    "get_logger",
    "jaccard_similarity",
    "normalize_body",
    "process_batch",
    "similarity_to_match_type",
    "throttled_gather",
    "title_similarity",
    "to_blob",
    "trigram_similarity",
]
