"""Lesson bank engine composition root.

Wires providers into services via constructor injection.  Loads
configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.  There is no HTTP layer: callers (the operator CLI,
scripts, an embedding application) obtain a fully wired
:class:`LessonBankEngine` from :func:`build_engine` and call its services
directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from src.config.loader import load_config, settings_from_config
from src.config.settings import Settings
from src.interfaces.authorization_provider import IAuthorizationProvider
from src.interfaces.document_extractor import IDocumentExtractor
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.lesson_store import ILessonStore
from src.interfaces.submission_store import ISubmissionStore
from src.interfaces.vocabulary_provider import IVocabularyProvider
from src.providers.auth.static_authorization_provider import StaticAuthorizationProvider
from src.providers.catalog.sqlite_lesson_store import SQLiteLessonStore
from src.providers.document.file_document_extractor import FileDocumentExtractor
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.submission.sqlite_submission_store import SQLiteSubmissionStore
from src.providers.vocabulary.yaml_vocabulary_provider import YamlVocabularyProvider
from src.services.catalog_maintenance import CatalogMaintenanceService
from src.services.duplicate_detector import DuplicateDetector
from src.services.fingerprint_service import FingerprintService
from src.services.resolution_service import ResolutionService
from src.services.search_service import SearchService
from src.services.submission_service import SubmissionService
from src.services.vocabulary_expander import VocabularyExpander
from src.utils.logging import configure_logging, get_logger


@dataclass
class LessonBankEngine:
    """Every service of the engine plus the stores they share."""

    settings: Settings
    lesson_store: ILessonStore
    submission_store: ISubmissionStore
    expander: VocabularyExpander
    fingerprints: FingerprintService
    search: SearchService
    detector: DuplicateDetector
    resolution: ResolutionService
    submissions: SubmissionService
    maintenance: CatalogMaintenanceService

    async def initialize(self) -> None:
        """Create database tables; safe to call on every start."""
        await self.lesson_store.initialize()
        await self.submission_store.initialize()


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider | None:
    """OpenAI (or an OpenAI-compatible endpoint) when a key is configured.

    Returns ``None`` otherwise; duplicate detection then runs on content
    hashes and lexical title matching only.
    """
    if not app_settings.embeddings_enabled():
        return None
    provider = OpenAIEmbeddingProvider(settings=app_settings)
    if provider.is_available():
        return provider
    return None


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_engine(
    app_settings: Settings | None = None,
    config: dict[str, Any] | None = None,
    *,
    embedding_provider: IEmbeddingProvider | None = None,
    vocabulary_provider: IVocabularyProvider | None = None,
    authorization: IAuthorizationProvider | None = None,
    extractor: IDocumentExtractor | None = None,
) -> LessonBankEngine:
    """Construct every provider and service.

    Any collaborator passed explicitly replaces the configured default,
    which is how tests inject fakes.
    """
    if config is None:
        config = load_config(settings=app_settings)
    if app_settings is None:
        app_settings = settings_from_config(config)

    logger = get_logger(__name__)

    # -- Stores (one SQLite file so resolutions commit atomically) --
    lesson_store = SQLiteLessonStore(
        db_path=app_settings.lesson_db_path,
        embedding_dimension=app_settings.embedding_dimension,
    )
    submission_store = SQLiteSubmissionStore(db_path=app_settings.lesson_db_path)

    # -- External collaborators --
    if embedding_provider is None:
        embedding_provider = _build_embedding_provider(app_settings)
    if vocabulary_provider is None:
        vocabulary_provider = YamlVocabularyProvider(app_settings.vocabulary_path)
    if authorization is None:
        authorization = StaticAuthorizationProvider.from_mapping(config.get("users") or {})
    if extractor is None:
        extractor = FileDocumentExtractor()

    # -- Services --
    expander = VocabularyExpander(vocabulary_provider)
    fingerprints = FingerprintService(
        embedding_provider=embedding_provider,
        max_chars=app_settings.embedding_max_chars,
        dimension=app_settings.embedding_dimension,
    )
    search = SearchService(
        lesson_store=lesson_store,
        expander=expander,
        default_page_size=app_settings.search_default_page_size,
        max_page_size=app_settings.search_max_page_size,
        trigram_threshold=app_settings.search_trigram_threshold,
        summary_weight=app_settings.search_summary_weight,
    )
    detector = DuplicateDetector(
        lesson_store=lesson_store,
        submission_store=submission_store,
        semantic_threshold=app_settings.duplicate_semantic_threshold,
        semantic_limit=app_settings.duplicate_semantic_limit,
        min_combined_score=app_settings.duplicate_min_combined_score,
        max_candidates=app_settings.duplicate_max_candidates,
        pair_threshold=app_settings.duplicate_pair_threshold,
    )
    resolution = ResolutionService(lesson_store=lesson_store, authorization=authorization)
    submissions = SubmissionService(
        submission_store=submission_store,
        lesson_store=lesson_store,
        extractor=extractor,
        fingerprints=fingerprints,
        detector=detector,
    )
    maintenance = CatalogMaintenanceService(
        lesson_store=lesson_store,
        fingerprints=fingerprints,
        concurrency=app_settings.embedding_concurrency,
    )

    logger.info(
        "engine_built",
        db_path=app_settings.lesson_db_path,
        embedding_provider=(
            embedding_provider.get_provider_name() if embedding_provider else None
        ),
        vocabulary_provider=vocabulary_provider.get_provider_name(),
        authorization=authorization.get_provider_name(),
    )

    return LessonBankEngine(
        settings=app_settings,
        lesson_store=lesson_store,
        submission_store=submission_store,
        expander=expander,
        fingerprints=fingerprints,
        search=search,
        detector=detector,
        resolution=resolution,
        submissions=submissions,
        maintenance=maintenance,
    )


def bootstrap(app_settings: Settings | None = None) -> LessonBankEngine:
    """Load config, configure logging and build the engine."""
    config = load_config(settings=app_settings)
    resolved = app_settings or settings_from_config(config)
    configure_logging(
        log_level=resolved.log_level,
        json_output=(resolved.app_env == "production"),
    )
    _logger: structlog.BoundLogger = get_logger(__name__)
    _logger.debug("configuration_loaded", app_env=resolved.app_env)
    return build_engine(resolved, config)
