# tests/test_config.py
"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from folio.config import (
    ConfigError,
    FolioConfig,
    build_profiles,
    build_settings,
    create_folio,
    find_config_file,
    get_folio_config,
    get_settings_from_env,
    load_config,
    load_env_file,
    validate_config,
)
from folio.folio import Folio
from folio.models import ProviderKind


class TestLoadEnvFile:
    def test_loads_values(self, clean_env, monkeypatch):
        monkeypatch.delenv("FOLIO_TEST_TOKEN", raising=False)
        monkeypatch.delenv("FOLIO_TEST_QUOTED", raising=False)
        Path(".env").write_text(
            "# comment\n\nFOLIO_TEST_TOKEN=abc\nexport FOLIO_TEST_QUOTED='x y'\n",
            encoding="utf-8",
        )

        load_env_file()

        assert os.environ["FOLIO_TEST_TOKEN"] == "abc"
        assert os.environ["FOLIO_TEST_QUOTED"] == "x y"

    def test_does_not_override(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        Path(".env").write_text("OPENAI_API_KEY=from-file\n", encoding="utf-8")

        load_env_file()

        assert os.environ["OPENAI_API_KEY"] == "from-env"

    def test_missing_file(self, clean_env):
        load_env_file("does-not-exist.env")


class TestFindConfigFile:
    def test_found_in_parent(self, clean_env):
        root = Path(clean_env)
        (root / "folio.yaml").write_text("data_dir: x\n", encoding="utf-8")
        nested = root / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == root / "folio.yaml"

    def test_not_found(self, clean_env):
        nested = Path(clean_env) / "empty"
        nested.mkdir()
        assert find_config_file(nested) is None

    def test_load_config_empty_file(self, clean_env):
        path = Path(clean_env) / "folio.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == {}

    def test_load_config_not_a_mapping(self, clean_env):
        path = Path(clean_env) / "folio.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)


class TestValidateConfig:
    def test_valid(self):
        config = {
            "data_dir": "./data",
            "provider": "openai",
            "providers": {"openai": {"model": "openai/gpt-4o-mini"}},
            "settings": {"retrieval_limit": 5, "timeout_profile": "strict"},
        }
        assert validate_config(config) == []

    def test_unknown_keys(self):
        config = {
            "llm_model": "x",
            "settings": {"questions_per_atom": 3},
            "providers": {"mistral": {}, "openai": {"api_key": "nope"}},
        }

        warnings = validate_config(config, Path("folio.yaml"))

        assert len(warnings) == 4
        assert "llm_model" in warnings[0]
        assert "questions_per_atom" in warnings[1]
        assert "mistral" in warnings[2]
        assert "api_key" in warnings[3]


class TestSettingsFromEnv:
    def test_reads_prefixed_values(self, clean_env, monkeypatch):
        monkeypatch.setenv("FOLIO_RETRIEVAL_LIMIT", "3")
        monkeypatch.setenv("FOLIO_HEADING_STRATEGY", "dominant")

        env = get_settings_from_env()

        assert env == {"retrieval_limit": "3", "heading_strategy": "dominant"}

    def test_empty_nullable_becomes_none(self, clean_env, monkeypatch):
        monkeypatch.setenv("FOLIO_SYSTEM_PROMPT", "")
        monkeypatch.setenv("FOLIO_TEMPERATURE", "")
        monkeypatch.setenv("FOLIO_DENSE_K", "")

        env = get_settings_from_env()

        assert env == {"system_prompt": None, "temperature": None}


class TestBuildSettings:
    def test_defaults(self):
        assert build_settings({}, {}).retrieval_limit == 8

    def test_env_overrides_yaml(self):
        config = {"settings": {"retrieval_limit": 4, "dense_k": 20}}

        settings = build_settings(config, {"retrieval_limit": "2"})

        assert settings.retrieval_limit == 2
        assert settings.dense_k == 20

    def test_timeout_profile(self):
        settings = build_settings({"settings": {"timeout_profile": "patient"}}, {})
        assert settings.request_timeout == 180.0

    def test_invalid_value(self):
        with pytest.raises(ValueError):
            build_settings({"settings": {"retrieval_limit": "many"}}, {})


class TestBuildProfiles:
    def test_none_configured(self, clean_env):
        assert build_profiles({}) == []

    def test_api_keys(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
        monkeypatch.setenv("GEMINI_API_KEY", "g-1")

        profiles = build_profiles({})

        assert [p.kind for p in profiles] == [ProviderKind.OPENAI, ProviderKind.GEMINI]
        assert profiles[0].api_key == "sk-1"

    def test_ollama_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434")

        profiles = build_profiles({})

        assert len(profiles) == 1
        assert profiles[0].kind is ProviderKind.OLLAMA
        assert profiles[0].base_url == "http://gpu-box:11434"

    def test_ollama_from_yaml(self, clean_env):
        config = {"providers": {"ollama": {"model": "ollama/mistral"}}}

        profiles = build_profiles(config)

        assert [p.kind for p in profiles] == [ProviderKind.OLLAMA]
        assert profiles[0].model == "ollama/mistral"

    def test_yaml_overrides_without_key_ignored(self, clean_env):
        assert build_profiles({"providers": {"anthropic": {"model": "x"}}}) == []


class TestGetFolioConfig:
    def test_defaults(self, clean_env):
        config = get_folio_config()

        assert isinstance(config, FolioConfig)
        assert config.data_dir == "./folio_data"
        assert config.profiles == []
        assert config.preferred is None

    def test_yaml_file(self, clean_env, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "a-1")
        Path("folio.yaml").write_text(
            "data_dir: ./corpus\n"
            "provider: anthropic\n"
            "embedding_provider: openai\n"
            "settings:\n"
            "  source_limit: 3\n",
            encoding="utf-8",
        )

        config = get_folio_config()

        assert config.data_dir == "./corpus"
        assert config.preferred is ProviderKind.ANTHROPIC
        assert config.embedding_provider is ProviderKind.OPENAI
        assert config.settings.source_limit == 3
        assert [p.kind for p in config.profiles] == [ProviderKind.ANTHROPIC]

    def test_data_dir_precedence(self, clean_env, monkeypatch):
        monkeypatch.setenv("FOLIO_DATA_DIR", "./from-env")
        assert get_folio_config().data_dir == "./from-env"
        assert get_folio_config(data_dir="./explicit").data_dir == "./explicit"

    def test_unknown_provider(self, clean_env, monkeypatch):
        monkeypatch.setenv("FOLIO_PROVIDER", "mistral")

        error = get_folio_config()

        assert isinstance(error, ConfigError)
        assert "openai" in error.suggestion

    def test_invalid_setting(self, clean_env, monkeypatch):
        monkeypatch.setenv("FOLIO_CHUNK_OVERLAP_TOKENS", "900")

        error = get_folio_config()

        assert isinstance(error, ConfigError)
        assert error.message.startswith("Invalid settings")

    def test_unknown_timeout_profile(self, clean_env, monkeypatch):
        monkeypatch.setenv("FOLIO_TIMEOUT_PROFILE", "relaxed")
        assert isinstance(get_folio_config(), ConfigError)

    def test_invalid_yaml(self, clean_env):
        Path("folio.yaml").write_text("settings: [unclosed\n", encoding="utf-8")

        error = get_folio_config()

        assert isinstance(error, ConfigError)
        assert "Invalid YAML" in error.message

    def test_unknown_keys_become_warnings(self, clean_env):
        Path("folio.yaml").write_text("llm_model: x\n", encoding="utf-8")

        config = get_folio_config()

        assert isinstance(config, FolioConfig)
        assert len(config.warnings) == 1
        assert "llm_model" in config.warnings[0]


class TestCreateFolio:
    def test_creates_instance(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
        config = get_folio_config(data_dir=os.path.join(clean_env, "data"))

        folio = create_folio(config)

        assert isinstance(folio, Folio)
        assert os.path.exists(folio.db_path)
        assert folio.status()["providers"] == ["openai"]

    def test_read_only_missing_database(self, clean_env):
        config = get_folio_config(data_dir=os.path.join(clean_env, "missing"))
        with pytest.raises(FileNotFoundError):
            create_folio(config, read_only=True)
