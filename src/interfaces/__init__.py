"""Public interface definitions for stores and external collaborators.

Every store and external service is accessed exclusively through the
abstract base classes defined in this package.  Concrete adapters implement
these interfaces and are injected at runtime by the composition root
(``src/main.py``), so unit tests can inject fakes without real API calls.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider         →  OpenAIEmbeddingProvider
    ILessonStore               →  SQLiteLessonStore
    ISubmissionStore           →  SQLiteSubmissionStore
    IVocabularyProvider        →  YamlVocabularyProvider,
                                  StaticVocabularyProvider
    IAuthorizationProvider     →  StaticAuthorizationProvider
    IDocumentExtractor         →  FileDocumentExtractor
"""

from src.interfaces.authorization_provider import IAuthorizationProvider
from src.interfaces.document_extractor import IDocumentExtractor
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.lesson_store import ICatalogTransaction, ILessonStore
from src.interfaces.submission_store import ISubmissionStore
from src.interfaces.vocabulary_provider import IVocabularyProvider

__all__ = [
    "IAuthorizationProvider",
    "ICatalogTransaction",
    "IDocumentExtractor",
    "IEmbeddingProvider",
    "ILessonStore",
    "ISubmissionStore",
    "IVocabularyProvider",
]
