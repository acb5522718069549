"""Document extraction providers."""

from src.providers.document.file_document_extractor import FileDocumentExtractor

__all__ = ["FileDocumentExtractor"]
