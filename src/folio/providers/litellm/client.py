"""LiteLLM backend implementations, one per provider kind."""

import inspect
import logging
from collections.abc import AsyncIterator
from typing import Any, ClassVar

import litellm

from folio.exceptions import ProviderError, ProviderUnavailable, UnsupportedOperation
from folio.models import ProviderKind, ProviderProfile
from folio.providers.base import ProviderBackend
from folio.providers.litellm.models import ChatModels, EmbeddingModels

logger = logging.getLogger(__name__)

# Checked in order: litellm.Timeout is also an APIConnectionError
_ERROR_KINDS: tuple[tuple[type[Exception], str], ...] = (
    (litellm.AuthenticationError, "auth"),
    (litellm.RateLimitError, "rate_limit"),
    (litellm.Timeout, "timeout"),
    (litellm.APIConnectionError, "unavailable"),
    (litellm.ServiceUnavailableError, "unavailable"),
    (litellm.InternalServerError, "unavailable"),
)


def map_error(exc: Exception, kind: ProviderKind) -> ProviderError:
    """Translate a LiteLLM exception into a ProviderError with a kind."""
    if isinstance(exc, ProviderError):
        return exc
    for exc_type, error_kind in _ERROR_KINDS:
        if isinstance(exc, exc_type):
            return ProviderUnavailable(str(exc), kind=error_kind, provider=kind.value)
    return ProviderError(str(exc), provider=kind.value)


def qualify_model(model: str, prefix: str) -> str:
    """Prefix a bare model name with its LiteLLM provider ("gpt-4o" -> "openai/gpt-4o")."""
    return model if "/" in model else f"{prefix}/{model}"


async def _close_response(response: Any) -> None:
    """Release a streaming response so the backend stops generating."""
    close = getattr(response, "aclose", None) or getattr(response, "close", None)
    if close is None:
        return
    try:
        result = close()
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.debug("Error closing stream: %s", e)


class LiteLLMBackend(ProviderBackend):
    """LiteLLM-based backend for chat streaming and embeddings.

    Subclasses pin the provider kind and its default models.

    Example:
        from folio.models import ProviderKind, ProviderProfile
        from folio.providers.litellm import OpenAIBackend

        backend = OpenAIBackend(ProviderProfile(kind=ProviderKind.OPENAI, api_key="sk-..."))
        vectors = backend.embed(["Hello world"])
    """

    prefix: ClassVar[str]
    default_chat_model: ClassVar[str]
    default_embedding_model: ClassVar[str | None]

    def __init__(
        self,
        profile: ProviderProfile,
        request_timeout: float = 60.0,
        num_retries: int = 2,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            profile: Resolved credentials/endpoint and optional model overrides.
            request_timeout: Seconds before a single call is abandoned.
            num_retries: Retries on rate limit errors. LiteLLM handles
                exponential backoff automatically.
            max_tokens: Upper bound on generated tokens per answer.
            temperature: Sampling temperature, or None for the provider default.
        """
        super().__init__(profile)
        self.request_timeout = request_timeout
        self.num_retries = num_retries
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def chat_model(self) -> str:
        return qualify_model(self.profile.model or self.default_chat_model, self.prefix)

    @property
    def embedding_model(self) -> str | None:
        model = self.profile.embedding_model or self.default_embedding_model
        return qualify_model(model, self.prefix) if model else None

    def _auth_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self.profile.api_key is not None:
            kwargs["api_key"] = self.profile.api_key.get_secret_value()
        if self.profile.base_url:
            kwargs["api_base"] = self.profile.base_url
        return kwargs

    def _embedding_kwargs(self, texts: list[str]) -> dict[str, Any]:
        if self.embedding_model is None:
            raise UnsupportedOperation(self.kind.value, "embeddings")
        return {
            "model": self.embedding_model,
            "input": texts,
            "num_retries": self.num_retries,
            "timeout": self.request_timeout,
            **self._auth_kwargs(),
        }

    @staticmethod
    def _vectors(response: Any) -> list[list[float]]:
        # Sort by index to maintain order
        sorted_data = sorted(response.data, key=lambda x: x["index"])
        return [item["embedding"] for item in sorted_data]

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings using LiteLLM."""
        kwargs = self._embedding_kwargs(texts)
        if not texts:
            return []
        try:
            response = litellm.embedding(**kwargs)
        except Exception as e:
            raise map_error(e, self.kind) from e
        return self._vectors(response)

    async def aembed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings using LiteLLM (async)."""
        kwargs = self._embedding_kwargs(texts)
        if not texts:
            return []
        try:
            response = await litellm.aembedding(**kwargs)
        except Exception as e:
            raise map_error(e, self.kind) from e
        return self._vectors(response)

    def _completion_kwargs(self, messages: list[dict]) -> dict[str, Any]:
        completion_kwargs: dict[str, Any] = {
            "model": self.chat_model,
            "messages": messages,
            "stream": True,
            "max_tokens": self.max_tokens,
            "drop_params": True,
            "num_retries": self.num_retries,
            "timeout": self.request_timeout,
            **self._auth_kwargs(),
        }
        if self.temperature is not None:
            completion_kwargs["temperature"] = self.temperature
        return completion_kwargs

    async def acheck(self) -> None:
        """Request a one-token completion without retries."""
        try:
            await litellm.acompletion(
                model=self.chat_model,
                messages=[{"role": "user", "content": "Hi"}],
                max_tokens=1,
                drop_params=True,
                num_retries=0,
                timeout=self.request_timeout,
                **self._auth_kwargs(),
            )
        except Exception as e:
            raise map_error(e, self.kind) from e

    async def astream(self, messages: list[dict]) -> AsyncIterator[str]:
        """Stream a completion using LiteLLM, yielding non-empty text deltas."""
        try:
            response = await litellm.acompletion(**self._completion_kwargs(messages))
        except Exception as e:
            raise map_error(e, self.kind) from e

        try:
            async for part in response:
                if not part.choices:
                    continue
                text = part.choices[0].delta.content
                if text:
                    yield text
        except Exception as e:
            raise map_error(e, self.kind) from e
        finally:
            await _close_response(response)


class OpenAIBackend(LiteLLMBackend):
    kind = ProviderKind.OPENAI
    prefix = "openai"
    default_chat_model = ChatModels.GPT_4O
    default_embedding_model = EmbeddingModels.TEXT_3_SMALL


class AnthropicBackend(LiteLLMBackend):
    """Anthropic chat. Anthropic offers no embedding API."""

    kind = ProviderKind.ANTHROPIC
    prefix = "anthropic"
    default_chat_model = ChatModels.CLAUDE_SONNET_4
    default_embedding_model = None

    @property
    def embedding_model(self) -> str | None:
        return None


class GeminiBackend(LiteLLMBackend):
    kind = ProviderKind.GEMINI
    prefix = "gemini"
    default_chat_model = ChatModels.GEMINI_20_FLASH
    default_embedding_model = EmbeddingModels.GEMINI_004


class OllamaBackend(LiteLLMBackend):
    """Local Ollama endpoint, addressed by the profile's base URL."""

    kind = ProviderKind.OLLAMA
    prefix = "ollama"
    default_chat_model = ChatModels.LLAMA3
    default_embedding_model = EmbeddingModels.NOMIC_EMBED_TEXT


BACKENDS: dict[ProviderKind, type[LiteLLMBackend]] = {
    ProviderKind.OPENAI: OpenAIBackend,
    ProviderKind.ANTHROPIC: AnthropicBackend,
    ProviderKind.GEMINI: GeminiBackend,
    ProviderKind.OLLAMA: OllamaBackend,
}
