"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The
fingerprint service is the only consumer; it treats every provider error
as "no semantic signal" and carries on.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

# Task types understood by retrieval-tuned embedding APIs.  Providers that
# do not distinguish tasks ignore the value.
RETRIEVAL_DOCUMENT = "RETRIEVAL_DOCUMENT"
RETRIEVAL_QUERY = "RETRIEVAL_QUERY"
SEMANTIC_SIMILARITY = "SEMANTIC_SIMILARITY"


# Concrete implementation:
#   OpenAIEmbeddingProvider — text-embedding-3-small, 1536 dims (requires API key)
# Located in: src/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by duplicate detection."""

    @abstractmethod
    async def embed(
        self, texts: list[str], task_type: str = RETRIEVAL_DOCUMENT
    ) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations handle
            batching internally if the underlying API has a per-call limit.
        task_type:
            What the vectors will be used for (see module constants).

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        src.utils.errors.ProviderUnavailableError
            If the embedding API is unreachable or rejects the credentials.
        src.utils.errors.RateLimitError
            If the provider rate-limits the call.
        """

    @abstractmethod
    async def embed_single(self, text: str, task_type: str = RETRIEVAL_DOCUMENT) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors (e.g. ``1536``)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
