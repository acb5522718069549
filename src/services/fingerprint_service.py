"""Content fingerprints: deterministic hash plus semantic embedding.

The hash identifies exact duplicates.  It is a SHA-256 over the normalised
body (lower-cased, whitespace collapsed, trimmed), so re-exports of the
same document that only differ in spacing or case collide on purpose.
A lesson with no body text is hashed over ``title|summary|grade levels``
instead and the digest is prefixed ``META_`` so metadata-only hashes
never collide with body hashes.

The embedding is requested from the injected provider over
``"{title}\\n{body}"`` cut to the configured character budget.  Any failure
raises :class:`EmbeddingUnavailableError` from :meth:`request_embedding`;
:meth:`fingerprint` swallows that into ``embedding=None`` so callers carry
on with hash and lexical matching.
"""

from __future__ import annotations

import hashlib
import json

import structlog

from src.interfaces.embedding_provider import RETRIEVAL_DOCUMENT, IEmbeddingProvider
from src.models.duplicates import Fingerprint
from src.utils.errors import EmbeddingUnavailableError, LessonBankError
from src.utils.text_similarity import normalize_body

logger = structlog.get_logger(logger_name=__name__)

_METADATA_HASH_PREFIX = "META_"


def compute_hash(
    body: str | None,
    title: str = "",
    summary: str = "",
    grade_levels: list[str] | None = None,
) -> str:
    """Deterministic content hash of a lesson or submission body."""
    normalized = normalize_body(body)
    if normalized:
        return hashlib.sha256(normalized.encode("utf-8")).hexdigest()

    metadata = f"{title or ''}|{summary or ''}|{json.dumps(list(grade_levels or []))}"
    digest = hashlib.sha256(metadata.encode("utf-8")).hexdigest()
    return f"{_METADATA_HASH_PREFIX}{digest}"


class FingerprintService:
    """Computes content hashes and requests embeddings."""

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider | None = None,
        max_chars: int = 8000,
        dimension: int = 1536,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._max_chars = max_chars
        self._dimension = dimension

    @property
    def embeddings_enabled(self) -> bool:
        return self._embedding_provider is not None and self._embedding_provider.is_available()

    @property
    def dimension(self) -> int:
        return self._dimension

    def compute_hash(
        self,
        body: str | None,
        title: str = "",
        summary: str = "",
        grade_levels: list[str] | None = None,
    ) -> str:
        return compute_hash(body, title=title, summary=summary, grade_levels=grade_levels)

    def embedding_input(self, title: str, body: str | None) -> str:
        return f"{title or ''}\n{body or ''}"[: self._max_chars]

    async def request_embedding(self, title: str, body: str | None) -> list[float]:
        """Return a ``dimension``-length vector or raise EmbeddingUnavailableError."""
        if not self.embeddings_enabled:
            raise EmbeddingUnavailableError("No embedding provider is configured")

        provider = self._embedding_provider
        try:
            vector = await provider.embed_single(
                self.embedding_input(title, body), task_type=RETRIEVAL_DOCUMENT
            )
        except LessonBankError as exc:
            raise EmbeddingUnavailableError(
                message=str(exc), provider_name=provider.get_provider_name()
            ) from exc

        if len(vector) != self._dimension:
            raise EmbeddingUnavailableError(
                message=f"Expected {self._dimension} dimensions, got {len(vector)}",
                provider_name=provider.get_provider_name(),
            )
        return list(vector)

    async def fingerprint(
        self,
        title: str,
        body: str | None,
        summary: str = "",
        grade_levels: list[str] | None = None,
    ) -> Fingerprint:
        """Hash plus embedding; ``embedding`` is ``None`` when unavailable."""
        content_hash = self.compute_hash(body, title=title, summary=summary, grade_levels=grade_levels)
        embedding: list[float] | None = None
        try:
            embedding = await self.request_embedding(title, body)
        except EmbeddingUnavailableError as exc:
            logger.warning("embedding_unavailable", error=str(exc), title=title[:80])
        return Fingerprint(content_hash=content_hash, embedding=embedding)
