"""Configuration management for the orchestrator."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

from hiveai.core.errors import SettingsError

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "mistral": "mistral-small-latest",
    "claude": "claude-3-5-haiku-latest",
}

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ProviderConfig:
    """Credentials and defaults for one generation provider."""

    api_key: str
    default_model: str
    base_url: Optional[str] = None
    max_retries: int = 3


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    providers: Dict[str, ProviderConfig] = field(default_factory=dict)
    teams_dir: str = "teams"
    state_file: str = "cache.json"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    offline: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Config:
        """Load configuration from environment variables."""
        env = os.environ if env is None else env
        max_retries = _non_negative_int(env, "HIVEAI_MAX_RETRIES", 3)

        providers: Dict[str, ProviderConfig] = {}
        openai_key = env.get("OPENAI_API_KEY")
        if openai_key:
            providers["openai"] = ProviderConfig(
                api_key=openai_key,
                default_model=env.get("OPENAI_MODEL", DEFAULT_MODELS["openai"]),
                base_url=env.get("OPENAI_BASE_URL"),
                max_retries=max_retries,
            )
        mistral_key = env.get("MISTRAL_API_KEY")
        if mistral_key:
            providers["mistral"] = ProviderConfig(
                api_key=mistral_key,
                default_model=env.get("MISTRAL_MODEL", DEFAULT_MODELS["mistral"]),
                base_url=env.get("MISTRAL_BASE_URL", "https://api.mistral.ai/v1"),
                max_retries=max_retries,
            )
        anthropic_key = env.get("ANTHROPIC_API_KEY")
        if anthropic_key:
            providers["claude"] = ProviderConfig(
                api_key=anthropic_key,
                default_model=env.get("CLAUDE_MODEL", DEFAULT_MODELS["claude"]),
                base_url=env.get("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1/"),
                max_retries=max_retries,
            )

        return cls(
            providers=providers,
            teams_dir=env.get("HIVEAI_TEAMS_DIR", "teams"),
            state_file=env.get("HIVEAI_STATE_FILE", "cache.json"),
            log_level=env.get("HIVEAI_LOG_LEVEL", "INFO"),
            log_file=env.get("HIVEAI_LOG_FILE") or None,
            offline=env.get("HIVEAI_OFFLINE", "").lower() in _TRUTHY,
        )

    def with_overrides(self, **changes) -> Config:
        """Copy with command-line overrides applied; ``None`` values are ignored."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})


def _non_negative_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise SettingsError(name, raw, "a non-negative integer") from None
    if value < 0:
        raise SettingsError(name, raw, "a non-negative integer")
    return value
