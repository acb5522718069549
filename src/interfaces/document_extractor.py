"""Abstract base class for source-document extraction.

Turns an opaque external document reference into ``(title, body)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.submission import ExtractedDocument


class IDocumentExtractor(ABC):
    """Contract for document extraction services."""

    @abstractmethod
    async def extract(self, document_ref: str) -> ExtractedDocument:
        """Return the title and body text of ``document_ref``.

        Raises
        ------
        src.utils.errors.DocumentExtractionError
            If the document cannot be fetched or parsed.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
