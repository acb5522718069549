"""Embedding provider implementations.

Embeddings convert lesson text into numeric vectors that capture semantic
meaning.  They are stored alongside each lesson and compared by cosine
similarity during duplicate detection.
"""

from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
