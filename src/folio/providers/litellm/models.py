"""Default LLM model constants for the LiteLLM backends.

These are the models each backend uses when its profile does not name
one. You can always put any valid LiteLLM model string in a profile.

Example:
    from folio.models import ProviderKind, ProviderProfile
    from folio.providers.litellm import ChatModels

    profile = ProviderProfile(
        kind=ProviderKind.OPENAI, api_key="sk-...", model=ChatModels.GPT_4O_MINI
    )
"""


class ChatModels:
    """Chat/completion models."""

    # OpenAI
    GPT_4O = "openai/gpt-4o"
    GPT_4O_MINI = "openai/gpt-4o-mini"

    # Anthropic
    CLAUDE_SONNET_4 = "anthropic/claude-sonnet-4-20250514"
    CLAUDE_HAIKU_35 = "anthropic/claude-3-5-haiku-20241022"

    # Google Gemini
    GEMINI_20_FLASH = "gemini/gemini-2.0-flash"

    # Ollama (local)
    LLAMA3 = "ollama/llama3"


class EmbeddingModels:
    """Embedding models."""

    # OpenAI
    TEXT_3_SMALL = "openai/text-embedding-3-small"
    TEXT_3_LARGE = "openai/text-embedding-3-large"

    # Google Gemini
    GEMINI_004 = "gemini/text-embedding-004"

    # Ollama (local)
    NOMIC_EMBED_TEXT = "ollama/nomic-embed-text"
