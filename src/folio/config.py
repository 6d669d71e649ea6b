# src/folio/config.py
"""Configuration loading for the CLI and for applications embedding Folio.

Three sources feed a FolioConfig:

- folio.yaml (or folio.yml / .foliorc), found in the working directory
  or one of its parents
- FOLIO_* environment variables, which override the YAML settings
- provider credentials (OPENAI_API_KEY, ANTHROPIC_API_KEY,
  GEMINI_API_KEY, OLLAMA_BASE_URL), optionally read from a .env file

Settings itself never reads the environment; this module does that and
passes values explicitly.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from folio.models import ProviderKind, ProviderProfile
from folio.settings import Settings

if TYPE_CHECKING:
    from folio.folio import Folio

DEFAULT_DATA_DIR = "./folio_data"
CONFIG_FILES = ("folio.yaml", "folio.yml", ".foliorc")
ENV_FILE = ".env"
ENV_PREFIX = "FOLIO_"
MAX_SEARCH_DEPTH = 10

API_KEY_ENV = {
    ProviderKind.OPENAI: "OPENAI_API_KEY",
    ProviderKind.ANTHROPIC: "ANTHROPIC_API_KEY",
    ProviderKind.GEMINI: "GEMINI_API_KEY",
}
OLLAMA_URL_ENV = "OLLAMA_BASE_URL"

ROOT_KEYS = frozenset({"data_dir", "provider", "embedding_provider", "providers", "settings"})
PROVIDER_KEYS = frozenset({"model", "embedding_model", "base_url"})
SETTINGS_KEYS = frozenset(Settings.model_fields) | {"timeout_profile"}

# An empty FOLIO_* value clears these instead of being ignored
_NULLABLE_SETTINGS = frozenset({"system_prompt", "temperature"})


@dataclass
class ConfigError:
    """Why a FolioConfig could not be built, and what to do about it."""

    message: str
    suggestion: str | None = None


@dataclass
class FolioConfig:
    """Everything needed to open a Folio instance."""

    data_dir: str
    settings: Settings
    profiles: list[ProviderProfile] = field(default_factory=list)
    preferred: ProviderKind | None = None
    embedding_provider: ProviderKind | None = None
    warnings: list[str] = field(default_factory=list)


def load_env_file(env_path: str | Path = ENV_FILE) -> None:
    """Export KEY=VALUE lines from a .env file.

    Blank lines, comments and an optional "export " prefix are handled.
    Variables already present in the environment win.
    """
    path = Path(env_path)
    if not path.is_file():
        return

    for raw in path.read_text(encoding="utf-8").splitlines():
        entry = raw.strip()
        if entry.startswith("#") or "=" not in entry:
            continue
        name, _, value = entry.partition("=")
        name = name.strip().removeprefix("export ").strip()
        os.environ.setdefault(name, value.strip().strip("'\""))


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Return the nearest config file at or above start_dir (default: cwd)."""
    start = start_dir or Path.cwd()
    for directory in [start, *start.parents][:MAX_SEARCH_DEPTH]:
        for name in CONFIG_FILES:
            candidate = directory / name
            if candidate.exists():
                return candidate
    return None


def load_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """Read a YAML config file.

    Args:
        config_path: File to read. None searches with find_config_file.

    Returns:
        The parsed mapping, or {} when there is no config file.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping.
    """
    path = Path(config_path) if config_path is not None else find_config_file()
    if path is None:
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def _unknown(keys: Iterable[str], valid: Iterable[str]) -> str:
    return ", ".join(sorted(set(keys) - set(valid)))


def validate_config(config: dict[str, Any], config_path: Path | None = None) -> list[str]:
    """Describe unknown keys in a loaded config. Unknown keys are ignored, not fatal."""
    source = str(config_path) if config_path else "config"
    warnings = []

    if unknown := _unknown(config, ROOT_KEYS):
        warnings.append(f"Unknown config keys in {source}: {unknown}")

    settings = config.get("settings")
    if isinstance(settings, dict) and (unknown := _unknown(settings, SETTINGS_KEYS)):
        warnings.append(f"Unknown settings keys: {unknown}")

    providers = config.get("providers")
    if isinstance(providers, dict):
        if unknown := _unknown(providers, (kind.value for kind in ProviderKind)):
            warnings.append(f"Unknown providers: {unknown}")
        for name, options in providers.items():
            if isinstance(options, dict) and (unknown := _unknown(options, PROVIDER_KEYS)):
                warnings.append(f"Unknown keys for provider {name}: {unknown}")

    return warnings


def get_settings_from_env() -> dict[str, Any]:
    """Collect explicitly set FOLIO_<SETTING> variables.

    Values stay strings; Settings validation converts them. An empty
    value is skipped, except for nullable settings where it means None.
    """
    overrides: dict[str, Any] = {}
    for name in sorted(SETTINGS_KEYS):
        value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value is None:
            continue
        if value != "":
            overrides[name] = value
        elif name in _NULLABLE_SETTINGS:
            overrides[name] = None
    return overrides


def get_settings_from_yaml(config: dict[str, Any]) -> dict[str, Any]:
    """Return the known keys of the YAML 'settings:' section."""
    section = config.get("settings") or {}
    return {name: value for name, value in section.items() if name in SETTINGS_KEYS}


def build_settings(
    config: dict[str, Any] | None = None,
    env_settings: dict[str, Any] | None = None,
) -> Settings:
    """Build Settings, letting env overrides win over YAML and YAML over defaults.

    Args:
        config: Loaded YAML config
        env_settings: FOLIO_* overrides; None reads them from the environment

    Raises:
        ValueError: If a value or the timeout profile is invalid
    """
    if env_settings is None:
        env_settings = get_settings_from_env()
    values = get_settings_from_yaml(config or {})
    values.update(env_settings)

    profile = values.pop("timeout_profile", None)
    return Settings.with_profile(profile, **values) if profile else Settings(**values)


def build_profiles(config: dict[str, Any] | None = None) -> list[ProviderProfile]:
    """Build one ProviderProfile per configured provider kind.

    Cloud providers are configured by their API key variable. Ollama is
    configured by OLLAMA_BASE_URL or by an entry under 'providers:'. The
    'providers:' section may also set model, embedding_model and base_url.
    """
    overrides: dict[str, Any] = (config or {}).get("providers") or {}
    profiles = []

    for kind in ProviderKind:
        options = overrides.get(kind.value) or {}
        credentials: dict[str, Any]
        if kind.is_local:
            base_url = os.environ.get(OLLAMA_URL_ENV) or options.get("base_url")
            if base_url is None and kind.value not in overrides:
                continue
            credentials = {"base_url": base_url}
        else:
            api_key = os.environ.get(API_KEY_ENV[kind])
            if not api_key:
                continue
            credentials = {"api_key": api_key, "base_url": options.get("base_url")}

        profiles.append(
            ProviderProfile(
                kind=kind,
                model=options.get("model"),
                embedding_model=options.get("embedding_model"),
                **credentials,
            )
        )

    return profiles


def _parse_kind(value: str | None) -> ProviderKind | None:
    return ProviderKind(value.lower()) if value else None


def get_folio_config(
    data_dir: str | None = None,
    config_path: str | Path | None = None,
) -> FolioConfig | ConfigError:
    """Resolve configuration without opening any stores.

    Args:
        data_dir: Data directory; beats FOLIO_DATA_DIR and the YAML value
        config_path: Config file; None searches from the working directory

    Returns:
        A FolioConfig (carrying any unknown-key warnings), or a
        ConfigError describing the first problem found.
    """
    path = Path(config_path) if config_path is not None else find_config_file()
    try:
        config = load_config(path) if path is not None else {}
    except (OSError, ValueError) as e:
        return ConfigError(message=str(e), suggestion="Fix or remove the config file")

    try:
        settings = build_settings(config)
    except ValueError as e:
        return ConfigError(
            message=f"Invalid settings: {e}",
            suggestion="Check the settings: section of folio.yaml and FOLIO_* variables",
        )

    try:
        preferred = _parse_kind(os.environ.get(f"{ENV_PREFIX}PROVIDER") or config.get("provider"))
        embedding_provider = _parse_kind(
            os.environ.get(f"{ENV_PREFIX}EMBEDDING_PROVIDER") or config.get("embedding_provider")
        )
    except ValueError as e:
        return ConfigError(
            message=str(e),
            suggestion=f"Supported providers: {', '.join(k.value for k in ProviderKind)}",
        )

    resolved_dir = (
        data_dir
        or os.environ.get(f"{ENV_PREFIX}DATA_DIR")
        or config.get("data_dir")
        or DEFAULT_DATA_DIR
    )
    return FolioConfig(
        data_dir=str(resolved_dir),
        settings=settings,
        profiles=build_profiles(config),
        preferred=preferred,
        embedding_provider=embedding_provider,
        warnings=validate_config(config, path),
    )


def create_folio(config: FolioConfig, read_only: bool = False) -> Folio:
    """Open a Folio instance for a resolved configuration.

    Raises:
        FileNotFoundError: If read_only and the database does not exist.
    """
    from folio.folio import Folio

    return Folio(
        config.data_dir,
        profiles=config.profiles,
        settings=config.settings,
        preferred=config.preferred,
        read_only=read_only,
    )
