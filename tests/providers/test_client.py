# tests/providers/test_client.py
"""Tests for the LiteLLM backends."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

pytest.importorskip("litellm", reason="Tests require litellm package")

import litellm

from folio.exceptions import ProviderError, ProviderUnavailable, UnsupportedOperation
from folio.models import ProviderKind, ProviderProfile
from folio.providers.litellm import (
    BACKENDS,
    AnthropicBackend,
    ChatModels,
    EmbeddingModels,
    GeminiBackend,
    OllamaBackend,
    OpenAIBackend,
)
from folio.providers.litellm.client import map_error, qualify_model


def mock_embedding_response(vectors: list[list[float]], reverse: bool = False):
    """Create a mock LiteLLM embedding response."""
    data = [{"index": i, "embedding": v} for i, v in enumerate(vectors)]
    mock_response = MagicMock()
    mock_response.data = list(reversed(data)) if reverse else data
    return mock_response


def stream_part(content):
    part = MagicMock()
    part.choices = [MagicMock()]
    part.choices[0].delta.content = content
    return part


class FakeStream:
    """Async-iterable stand-in for a LiteLLM streaming response."""

    def __init__(self, parts, error: Exception | None = None):
        self.parts = parts
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for part in self.parts:
            yield part
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True


@pytest.fixture
def backend(openai_profile):
    return OpenAIBackend(openai_profile, request_timeout=12.0, num_retries=3, max_tokens=256)


async def collect(stream):
    return [text async for text in stream]


class TestModels:
    def test_qualify_model(self):
        assert qualify_model("gpt-4o", "openai") == "openai/gpt-4o"
        assert qualify_model("openai/gpt-4o", "openai") == "openai/gpt-4o"

    def test_defaults(self, openai_profile, anthropic_profile, ollama_profile):
        assert OpenAIBackend(openai_profile).chat_model == ChatModels.GPT_4O
        assert OpenAIBackend(openai_profile).embedding_model == EmbeddingModels.TEXT_3_SMALL
        assert AnthropicBackend(anthropic_profile).chat_model == ChatModels.CLAUDE_SONNET_4
        assert OllamaBackend(ollama_profile).embedding_model == EmbeddingModels.NOMIC_EMBED_TEXT

    def test_profile_overrides(self):
        profile = ProviderProfile(
            kind=ProviderKind.GEMINI,
            api_key="g-key",
            model="gemini-1.5-pro",
            embedding_model="text-embedding-005",
        )
        backend = GeminiBackend(profile)
        assert backend.chat_model == "gemini/gemini-1.5-pro"
        assert backend.embedding_model == "gemini/text-embedding-005"

    def test_anthropic_has_no_embeddings(self):
        profile = ProviderProfile(
            kind=ProviderKind.ANTHROPIC, api_key="key", embedding_model="voyage-2"
        )
        backend = AnthropicBackend(profile)
        assert backend.embedding_model is None
        assert backend.supports_embedding is False

    def test_backends_cover_every_kind(self):
        assert set(BACKENDS) == set(ProviderKind)
        for kind, backend_cls in BACKENDS.items():
            assert backend_cls.kind is kind

    def test_profile_kind_must_match(self, anthropic_profile):
        with pytest.raises(ValueError):
            OpenAIBackend(anthropic_profile)


class TestMapError:
    @pytest.mark.parametrize(
        "exc, kind",
        [
            (
                litellm.AuthenticationError(message="bad key", llm_provider="openai", model="m"),
                "auth",
            ),
            (
                litellm.RateLimitError(message="slow down", llm_provider="openai", model="m"),
                "rate_limit",
            ),
            (
                litellm.Timeout(message="too slow", model="m", llm_provider="openai"),
                "timeout",
            ),
            (
                litellm.APIConnectionError(message="refused", llm_provider="openai", model="m"),
                "unavailable",
            ),
        ],
    )
    def test_known_errors(self, exc, kind):
        error = map_error(exc, ProviderKind.OPENAI)
        assert isinstance(error, ProviderUnavailable)
        assert error.kind == kind
        assert error.provider == "openai"

    def test_unknown_error(self):
        error = map_error(RuntimeError("boom"), ProviderKind.GEMINI)
        assert type(error) is ProviderError
        assert error.kind == "provider"
        assert "boom" in str(error)

    def test_provider_error_passes_through(self):
        original = ProviderError("already mapped", kind="auth")
        assert map_error(original, ProviderKind.OPENAI) is original


class TestEmbed:
    @patch("folio.providers.litellm.client.litellm.embedding")
    def test_embed(self, mock_embedding, backend):
        mock_embedding.return_value = mock_embedding_response([[1.0, 0.0], [0.0, 1.0]])

        vectors = backend.embed(["one", "two"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        kwargs = mock_embedding.call_args.kwargs
        assert kwargs["model"] == "openai/text-embedding-3-small"
        assert kwargs["input"] == ["one", "two"]
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["num_retries"] == 3
        assert kwargs["timeout"] == 12.0

    @patch("folio.providers.litellm.client.litellm.embedding")
    def test_embed_sorts_by_index(self, mock_embedding, backend):
        mock_embedding.return_value = mock_embedding_response(
            [[1.0, 0.0], [0.0, 1.0]], reverse=True
        )
        assert backend.embed(["one", "two"]) == [[1.0, 0.0], [0.0, 1.0]]

    @patch("folio.providers.litellm.client.litellm.embedding")
    def test_embed_empty(self, mock_embedding, backend):
        assert backend.embed([]) == []
        mock_embedding.assert_not_called()

    @patch("folio.providers.litellm.client.litellm.embedding")
    def test_embed_maps_errors(self, mock_embedding, backend):
        mock_embedding.side_effect = litellm.RateLimitError(
            message="slow down", llm_provider="openai", model="m"
        )
        with pytest.raises(ProviderUnavailable) as exc_info:
            backend.embed(["one"])
        assert exc_info.value.kind == "rate_limit"

    @patch("folio.providers.litellm.client.litellm.embedding")
    def test_ollama_uses_base_url(self, mock_embedding, ollama_profile):
        mock_embedding.return_value = mock_embedding_response([[0.5]])

        OllamaBackend(ollama_profile).embed(["one"])

        kwargs = mock_embedding.call_args.kwargs
        assert kwargs["api_base"] == "http://localhost:11434"
        assert "api_key" not in kwargs

    def test_anthropic_embed_unsupported(self, anthropic_profile):
        with pytest.raises(UnsupportedOperation):
            AnthropicBackend(anthropic_profile).embed(["one"])

    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.aembedding", new_callable=AsyncMock)
    async def test_aembed(self, mock_aembedding, backend):
        mock_aembedding.return_value = mock_embedding_response([[0.25, 0.75]])

        assert await backend.aembed(["query"]) == [[0.25, 0.75]]
        mock_aembedding.assert_awaited_once()


class TestAstream:
    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_streams_deltas(self, mock_acompletion, backend):
        stream = FakeStream([stream_part("Hello"), stream_part(None), stream_part(" world")])
        mock_acompletion.return_value = stream

        texts = await collect(backend.astream([{"role": "user", "content": "Hi"}]))

        assert texts == ["Hello", " world"]
        assert stream.closed

    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_request_parameters(self, mock_acompletion, backend):
        mock_acompletion.return_value = FakeStream([])
        messages = [{"role": "user", "content": "Hi"}]

        await collect(backend.astream(messages))

        kwargs = mock_acompletion.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o"
        assert kwargs["messages"] == messages
        assert kwargs["stream"] is True
        assert kwargs["max_tokens"] == 256
        assert kwargs["drop_params"] is True
        assert kwargs["timeout"] == 12.0
        assert "temperature" not in kwargs

    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_temperature_passed_when_set(self, mock_acompletion, openai_profile):
        mock_acompletion.return_value = FakeStream([])

        await collect(OpenAIBackend(openai_profile, temperature=0.2).astream([]))

        assert mock_acompletion.call_args.kwargs["temperature"] == 0.2

    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_open_error_mapped(self, mock_acompletion, backend):
        mock_acompletion.side_effect = litellm.AuthenticationError(
            message="bad key", llm_provider="openai", model="m"
        )
        with pytest.raises(ProviderUnavailable) as exc_info:
            await collect(backend.astream([]))
        assert exc_info.value.kind == "auth"

    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_mid_stream_error_mapped_and_closed(self, mock_acompletion, backend):
        stream = FakeStream([stream_part("partial")], error=RuntimeError("connection reset"))
        mock_acompletion.return_value = stream

        received = []
        with pytest.raises(ProviderError):
            async for text in backend.astream([]):
                received.append(text)

        assert received == ["partial"]
        assert stream.closed

    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_aclose_releases_response(self, mock_acompletion, backend):
        stream = FakeStream([stream_part("one"), stream_part("two")])
        mock_acompletion.return_value = stream

        iterator = backend.astream([])
        assert await anext(iterator) == "one"
        await iterator.aclose()

        assert stream.closed


class TestAcheck:
    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_minimal_request(self, mock_acompletion, backend):
        await backend.acheck()

        kwargs = mock_acompletion.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o"
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
        assert kwargs["max_tokens"] == 1
        assert kwargs["num_retries"] == 0
        assert kwargs["timeout"] == 12.0
        assert "stream" not in kwargs

    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_auth_error_mapped(self, mock_acompletion, backend):
        mock_acompletion.side_effect = litellm.AuthenticationError(
            message="bad key", llm_provider="openai", model="m"
        )
        with pytest.raises(ProviderUnavailable) as exc_info:
            await backend.acheck()
        assert exc_info.value.kind == "auth"
        assert exc_info.value.provider == "openai"

    @pytest.mark.asyncio
    @patch("folio.providers.litellm.client.litellm.acompletion", new_callable=AsyncMock)
    async def test_ollama_uses_base_url(self, mock_acompletion, ollama_profile):
        await OllamaBackend(ollama_profile).acheck()

        kwargs = mock_acompletion.call_args.kwargs
        assert kwargs["model"] == "ollama/llama3"
        assert kwargs["api_base"] == "http://localhost:11434"
        assert "api_key" not in kwargs
