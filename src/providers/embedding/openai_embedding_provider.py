"""OpenAI-compatible embedding provider adapter.

Implements :class:`IEmbeddingProvider` on top of ``openai.AsyncOpenAI``.
A custom ``openai_base_url`` points the same client at any server that
speaks the embeddings API (LM Studio, vLLM, a corporate gateway).
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import RETRIEVAL_DOCUMENT, IEmbeddingProvider
from src.utils.errors import ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

# Maximum inputs per embeddings.create call.
_MAX_INPUTS_PER_CALL = 2048

# Native output width; the text-embedding-3 models also accept a
# ``dimensions`` argument that shortens their vectors.
_NATIVE_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}
_SHORTENABLE = frozenset({"text-embedding-3-small", "text-embedding-3-large"})


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Lesson embeddings from an OpenAI-compatible embeddings endpoint.

    Each input is cut to ``embedding_max_chars`` at a word boundary before
    it is sent.  The API has no notion of a task type, so ``task_type`` only
    appears in the logs.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = settings.embedding_dimension or _NATIVE_DIMENSIONS.get(self._model, 1536)
        self._max_chars = settings.embedding_max_chars
        self._name = "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"

        client_kwargs: dict = {"api_key": self._api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    async def embed(
        self, texts: list[str], task_type: str = RETRIEVAL_DOCUMENT
    ) -> list[list[float]]:
        """Embed ``texts`` in order, chunking to the per-call input limit."""
        if not texts:
            return []

        inputs = [self._clip(text) for text in texts]
        vectors: list[list[float]] = []
        for start in range(0, len(inputs), _MAX_INPUTS_PER_CALL):
            vectors.extend(await self._create(inputs[start : start + _MAX_INPUTS_PER_CALL], task_type))
        return vectors

    async def embed_single(self, text: str, task_type: str = RETRIEVAL_DOCUMENT) -> list[float]:
        (vector,) = await self.embed([text], task_type=task_type)
        return vector

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _create(self, chunk: list[str], task_type: str) -> list[list[float]]:
        kwargs: dict = {"input": chunk, "model": self._model}
        if self._model in _SHORTENABLE:
            kwargs["dimensions"] = self._dimension

        try:
            response = await self._client.embeddings.create(**kwargs)
        except openai.RateLimitError as exc:
            raise RateLimitError(f"Embedding rate limit: {exc}", provider_name=self._name) from exc
        except openai.APIError as exc:
            raise ProviderUnavailableError(f"Embedding request failed: {exc}", provider_name=self._name) from exc

        logger.info(
            "embeddings_created",
            provider=self._name,
            model=self._model,
            task_type=task_type,
            inputs=len(chunk),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in response.data]

    def _clip(self, text: str) -> str:
        if self._max_chars <= 0 or len(text) <= self._max_chars:
            return text
        clipped = text[: self._max_chars].rsplit(" ", 1)[0]
        logger.debug("embedding_input_clipped", chars=len(text), kept=len(clipped), model=self._model)
        return clipped
