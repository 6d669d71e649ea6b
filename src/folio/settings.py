# src/folio/settings.py
"""Configuration management for Folio.

This module contains behavioral settings that apply regardless of which
provider is used. Settings are passed programmatically - the library
does not read from environment variables.

For applications that want env-based config, read env vars at the
application layer (see folio.config) and pass values explicitly.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

# Timeout profile definitions
# - "patient": slow local models that take a while to produce a first token
# - "strict": interactive use where a stalled backend should fail fast
TIMEOUT_PROFILES: dict[str, dict[str, float]] = {
    "patient": {
        "request_timeout": 180.0,
        "stream_idle_timeout": 90.0,
    },
    "strict": {
        "request_timeout": 30.0,
        "stream_idle_timeout": 10.0,
    },
}


class Settings(BaseModel):
    """Behavioral settings for Folio.

    Example:
        settings = Settings(retrieval_limit=5, heading_strategy="dominant")

        # Or use a timeout profile for a slow local model
        settings = Settings.with_profile("patient")
    """

    # Chunking
    chunk_target_tokens: int = Field(default=500, gt=0)
    chunk_overlap_tokens: int = Field(default=50, ge=0)
    heading_strategy: Literal["latest", "dominant"] = "latest"

    # Retrieval
    retrieval_limit: int = Field(default=8, ge=0)
    dense_k: int = Field(default=10, ge=0)
    sparse_k: int = Field(default=5, ge=0)
    source_limit: int = Field(default=6, ge=0)

    # Generation
    system_prompt: str | None = None
    max_tokens: int = 4096
    temperature: float | None = None

    # Provider calls (LiteLLM handles exponential backoff for RateLimitError)
    request_timeout: float = Field(default=60.0, gt=0)
    stream_idle_timeout: float = Field(default=30.0, gt=0)
    num_retries: int = Field(default=2, ge=0)

    # Ingestion
    embedding_batch_size: int = Field(default=64, gt=0)

    @model_validator(mode="after")
    def _check_overlap(self) -> Settings:
        if self.chunk_overlap_tokens >= self.chunk_target_tokens:
            raise ValueError(
                f"chunk_overlap_tokens ({self.chunk_overlap_tokens}) must be smaller than "
                f"chunk_target_tokens ({self.chunk_target_tokens})"
            )
        return self

    @classmethod
    def with_profile(
        cls,
        profile: Literal["patient", "strict"],
        **overrides: Any,
    ) -> Settings:
        """Create Settings with a timeout profile.

        Args:
            profile: The timeout profile to use.
            **overrides: Additional settings to override profile defaults.

        Returns:
            Settings instance with profile values applied.

        Example:
            settings = Settings.with_profile("strict", num_retries=0)
        """
        if profile not in TIMEOUT_PROFILES:
            raise ValueError(
                f"Unknown profile '{profile}'. "
                f"Available profiles: {list(TIMEOUT_PROFILES.keys())}"
            )

        profile_settings: dict[str, Any] = dict(TIMEOUT_PROFILES[profile])
        profile_settings.update(overrides)
        return cls(**profile_settings)
