"""Provider profile models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, SecretStr, model_validator

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class ProviderKind(str, Enum):
    """The closed set of completion/embedding backends."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    OLLAMA = "ollama"

    @property
    def is_local(self) -> bool:
        """True for self-hosted, endpoint-based backends."""
        return self is ProviderKind.OLLAMA


class ProviderProfile(BaseModel):
    """Resolved configuration for one backend.

    Profiles are owned by an external settings component; Folio only
    reads them. Cloud kinds authenticate with an API key, the local kind
    with a base URL.
    """

    model_config = ConfigDict(frozen=True)

    kind: ProviderKind
    api_key: SecretStr | None = None
    base_url: str | None = None
    model: str | None = None  # Chat model override
    embedding_model: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_base_url(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("kind") == ProviderKind.OLLAMA:
            if not data.get("base_url"):
                data = {**data, "base_url": DEFAULT_OLLAMA_URL}
        return data

    @model_validator(mode="after")
    def _check_credentials(self) -> "ProviderProfile":
        if self.kind.is_local:
            return self
        if self.api_key is None or not self.api_key.get_secret_value():
            raise ValueError(f"{self.kind.value} profile requires an api_key")
        return self
