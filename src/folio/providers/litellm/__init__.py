"""LiteLLM backends for Folio.

This module contains LiteLLM-based backend implementations:
- OpenAIBackend, AnthropicBackend, GeminiBackend, OllamaBackend
- BACKENDS: closed mapping from ProviderKind to backend class
- ChatModels / EmbeddingModels: default model constants

Usage:
    from folio.providers.litellm import BACKENDS

    backend = BACKENDS[profile.kind](profile)
"""

from folio.providers.litellm.client import (
    BACKENDS,
    AnthropicBackend,
    GeminiBackend,
    LiteLLMBackend,
    OllamaBackend,
    OpenAIBackend,
    map_error,
)
from folio.providers.litellm.models import ChatModels, EmbeddingModels

__all__ = [
    # Model constants
    "ChatModels",
    "EmbeddingModels",
    # Backends
    "LiteLLMBackend",
    "OpenAIBackend",
    "AnthropicBackend",
    "GeminiBackend",
    "OllamaBackend",
    "BACKENDS",
    "map_error",
]
