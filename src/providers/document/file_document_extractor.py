"""Plain-text document extractor.

Reads a UTF-8 text or Markdown file.  The first non-blank line (stripped
of leading ``#`` marks) is the title; everything after it is the body.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from src.interfaces.document_extractor import IDocumentExtractor
from src.models.submission import ExtractedDocument
from src.utils.errors import DocumentExtractionError

logger = structlog.get_logger(logger_name=__name__)


class FileDocumentExtractor(IDocumentExtractor):
    """Extract ``(title, body)`` from a local text file."""

    def __init__(self, root: str | Path | None = None) -> None:
        self._root = Path(root) if root else None

    async def extract(self, document_ref: str) -> ExtractedDocument:
        path = Path(document_ref)
        if self._root is not None and not path.is_absolute():
            path = self._root / path

        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentExtractionError(
                message=f"Cannot read {document_ref}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        lines = text.splitlines()
        title = ""
        body_start = len(lines)
        for i, line in enumerate(lines):
            if line.strip():
                title = line.strip().lstrip("#").strip()
                body_start = i + 1
                break

        if not title:
            raise DocumentExtractionError(
                message=f"Document is empty: {document_ref}",
                provider_name=self.get_provider_name(),
            )

        body = "\n".join(lines[body_start:]).strip()
        logger.debug("document_extracted", document_ref=document_ref, body_chars=len(body))
        return ExtractedDocument(title=title, body=body)

    def get_provider_name(self) -> str:
        return "file_document"
