# src/folio/providers/__init__.py
"""Provider implementations for Folio.

This module contains the completion/embedding backend layer:
- ProviderBackend: Abstract base class for one configured backend
- LiteLLM backends, one per ProviderKind (BACKENDS)
- ProviderGateway: pooled backends, embedding fallback and chat streaming

Usage:
    from folio.providers import ProviderGateway
    from folio.providers.litellm import ChatModels
"""

from folio.providers.base import ProviderBackend
from folio.providers.gateway import ProviderGateway, StreamHandle, StreamSink
from folio.providers.litellm import (
    BACKENDS,
    AnthropicBackend,
    ChatModels,
    EmbeddingModels,
    GeminiBackend,
    LiteLLMBackend,
    OllamaBackend,
    OpenAIBackend,
)
from folio.providers.prompts import SYSTEM_PROMPT, build_messages

__all__ = [
    # ABCs
    "ProviderBackend",
    # Gateway
    "ProviderGateway",
    "StreamHandle",
    "StreamSink",
    # Prompts
    "SYSTEM_PROMPT",
    "build_messages",
    # Model constants
    "ChatModels",
    "EmbeddingModels",
    # LiteLLM backends
    "LiteLLMBackend",
    "OpenAIBackend",
    "AnthropicBackend",
    "GeminiBackend",
    "OllamaBackend",
    "BACKENDS",
]
