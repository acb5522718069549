"""Unit tests for the OpenAI embedding provider adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest

from src.config.settings import Settings
from src.interfaces.embedding_provider import RETRIEVAL_QUERY
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.utils.errors import ProviderUnavailableError

_CLIENT = "src.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "embedding_dimension": 1536,
        "embedding_max_chars": 8000,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _response(*vectors: list[float]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=12)
    return response


class TestOpenAIEmbeddingProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_get_provider_name(self, settings: Settings) -> None:
        provider = OpenAIEmbeddingProvider(settings)
        assert provider.get_provider_name() == "openai_embedding"

    def test_provider_name_for_compatible_endpoint(self) -> None:
        provider = OpenAIEmbeddingProvider(_settings(openai_base_url="http://localhost:1234/v1"))
        assert provider.get_provider_name() == "openai-compatible_embedding"

    def test_is_available_with_key(self, settings: Settings) -> None:
        assert OpenAIEmbeddingProvider(settings).is_available() is True

    def test_is_available_without_key(self) -> None:
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    def test_get_dimension(self, settings: Settings) -> None:
        assert OpenAIEmbeddingProvider(settings).get_dimension() == 1536

    @pytest.mark.asyncio
    async def test_embed_success(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([0.1] * 1536, [0.2] * 1536))

        with patch(_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            result = await provider.embed(["hello", "world"])

        assert len(result) == 2
        assert len(result[0]) == 1536
        kwargs = mock_client.embeddings.create.call_args.kwargs
        assert kwargs["model"] == "text-embedding-3-small"
        assert kwargs["dimensions"] == 1536

    @pytest.mark.asyncio
    async def test_embed_single_accepts_task_type(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([0.5] * 1536))

        with patch(_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            result = await provider.embed_single("hello", task_type=RETRIEVAL_QUERY)

        assert len(result) == 1536

    @pytest.mark.asyncio
    async def test_empty_batch_makes_no_call(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        with patch(_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            assert await provider.embed([]) == []
        mock_client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_long_input_truncated_at_word_boundary(self) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([0.5] * 1536))

        with patch(_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings(embedding_max_chars=12))
            await provider.embed(["alpha beta gamma delta"])

        sent = mock_client.embeddings.create.call_args.kwargs["input"]
        assert sent == ["alpha beta"]

    @pytest.mark.asyncio
    async def test_api_error_becomes_provider_unavailable(self, settings: Settings) -> None:
        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="boom", request=MagicMock(), body=None)
        )

        with patch(_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(ProviderUnavailableError):
                await provider.embed(["test"])
