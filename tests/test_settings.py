"""Tests for config.settings."""

import pytest

from config.settings import ConfigError, Settings, get_settings, load_settings, reset_settings

ENV_VARS = [
    "VIBEFORGE_PROVIDER", "VIBEFORGE_BASE_URL", "VIBEFORGE_API_KEY", "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY", "VIBEFORGE_FAST_MODEL", "VIBEFORGE_STANDARD_MODEL",
    "VIBEFORGE_LARGE_MODEL", "VIBEFORGE_MODEL_OVERRIDE", "VIBEFORGE_TIMEOUT",
    "VIBEFORGE_STARTING_CREDITS", "VIBEFORGE_CREDIT_COST", "VIBEFORGE_ENTRY_PATH",
]


@pytest.fixture
def env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # an empty .env so the working directory's file is never read
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return env_file


def test_defaults(env):
    settings = load_settings(env)
    assert settings.provider == "openai"
    assert settings.entry_path == "App.tsx"
    assert settings.api_key is None
    assert settings.model_for("fast") == "gpt-4o-mini"
    assert settings.max_tokens_for("large") == 32000


def test_environment_overrides(env, monkeypatch):
    monkeypatch.setenv("VIBEFORGE_API_KEY", "sk-test")
    monkeypatch.setenv("VIBEFORGE_BASE_URL", "http://localhost:11434/v1")
    monkeypatch.setenv("VIBEFORGE_LARGE_MODEL", "qwen-coder")
    monkeypatch.setenv("VIBEFORGE_TIMEOUT", "30")
    monkeypatch.setenv("VIBEFORGE_STARTING_CREDITS", "3")

    settings = load_settings(env)

    assert settings.api_key == "sk-test"
    assert settings.base_url == "http://localhost:11434/v1"
    assert settings.model_for("large") == "qwen-coder"
    assert settings.model_for("standard") == "gpt-4o"
    assert settings.request_timeout == 30.0
    assert settings.starting_credits == 3


def test_provider_specific_key_fallback(env, monkeypatch):
    monkeypatch.setenv("VIBEFORGE_PROVIDER", "Anthropic")
    monkeypatch.setenv("OPENAI_API_KEY", "openai-key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "anthropic-key")
    settings = load_settings(env)
    assert settings.provider == "anthropic"
    assert settings.api_key == "anthropic-key"


def test_unknown_provider(env, monkeypatch):
    monkeypatch.setenv("VIBEFORGE_PROVIDER", "llamacpp")
    with pytest.raises(ConfigError):
        load_settings(env)


@pytest.mark.parametrize("value", ["soon", "-5"])
def test_bad_timeout(env, monkeypatch, value):
    monkeypatch.setenv("VIBEFORGE_TIMEOUT", value)
    with pytest.raises(ConfigError):
        load_settings(env)


def test_tier_dicts_are_not_shared():
    a, b = Settings(), Settings()
    a.models["fast"] = "changed"
    assert b.models["fast"] == "gpt-4o-mini"


def test_get_settings_is_cached(env, monkeypatch):
    monkeypatch.chdir(env.parent)
    reset_settings()
    try:
        assert get_settings() is get_settings()
    finally:
        reset_settings()
