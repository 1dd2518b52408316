"""
Runtime settings: DEFAULTS overlaid with environment variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from config.defaults import DEFAULTS


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


@dataclass
class Settings:
    entry_path: str = DEFAULTS["entry_path"]
    provider: str = DEFAULTS["provider"]
    base_url: Optional[str] = DEFAULTS["base_url"]
    api_key: Optional[str] = None
    models: Dict[str, str] = field(default_factory=lambda: dict(DEFAULTS["models"]))
    max_tokens: Dict[str, int] = field(default_factory=lambda: dict(DEFAULTS["max_tokens"]))
    model_override: Optional[str] = None
    temperature: float = DEFAULTS["temperature"]
    request_timeout: float = DEFAULTS["request_timeout"]
    history_messages: int = DEFAULTS["history_messages"]
    planner_context_chars: int = DEFAULTS["planner_context_chars"]
    generator_context_chars: int = DEFAULTS["generator_context_chars"]
    complexity_length_threshold: int = DEFAULTS["complexity_length_threshold"]
    complexity_step_threshold: int = DEFAULTS["complexity_step_threshold"]
    large_build_keywords: List[str] = field(
        default_factory=lambda: list(DEFAULTS["large_build_keywords"])
    )
    credit_cost: int = DEFAULTS["credit_cost"]
    starting_credits: int = DEFAULTS["starting_credits"]

    def model_for(self, tier: str) -> str:
        return self.models[tier]

    def max_tokens_for(self, tier: str) -> int:
        return self.max_tokens[tier]


def _env_number(name, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Build settings from DEFAULTS and the environment (.env is loaded first)."""
    load_dotenv(dotenv_path=env_file or Path.cwd() / ".env")

    provider = os.getenv("VIBEFORGE_PROVIDER", DEFAULTS["provider"]).strip().lower()
    if provider not in ("openai", "anthropic"):
        raise ConfigError(
            f"VIBEFORGE_PROVIDER must be 'openai' or 'anthropic', got {provider!r}"
        )

    fallback_key = "ANTHROPIC_API_KEY" if provider == "anthropic" else "OPENAI_API_KEY"
    settings = Settings(
        provider=provider,
        base_url=os.getenv("VIBEFORGE_BASE_URL") or DEFAULTS["base_url"],
        api_key=os.getenv("VIBEFORGE_API_KEY") or os.getenv(fallback_key),
        model_override=os.getenv("VIBEFORGE_MODEL_OVERRIDE") or None,
        entry_path=os.getenv("VIBEFORGE_ENTRY_PATH", DEFAULTS["entry_path"]),
        request_timeout=_env_number("VIBEFORGE_TIMEOUT", DEFAULTS["request_timeout"], float),
        credit_cost=_env_number("VIBEFORGE_CREDIT_COST", DEFAULTS["credit_cost"], int),
        starting_credits=_env_number(
            "VIBEFORGE_STARTING_CREDITS", DEFAULTS["starting_credits"], int
        ),
    )
    for tier in ("fast", "standard", "large"):
        model = os.getenv(f"VIBEFORGE_{tier.upper()}_MODEL")
        if model:
            settings.models[tier] = model

    if not settings.entry_path:
        raise ConfigError("VIBEFORGE_ENTRY_PATH must not be empty")
    return settings


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings():
    """Drop the cached settings (tests and reloads)."""
    global _settings
    _settings = None
