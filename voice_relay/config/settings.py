"""
Environment-driven settings for the relay.

The OpenAI API key is the only required value. It is read once and shared,
read-only, by every session in the process.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from voice_relay.config.constants import (
    DEFAULT_GREETING_DELAY,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_VOICE,
)
from voice_relay.config.presets import DEFAULT_PRESET, PRESETS, SessionPreset, get_preset
from voice_relay.relay.exceptions import ConfigurationError


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration."""

    openai_api_key: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    realtime_model: str = DEFAULT_REALTIME_MODEL
    voice: str = DEFAULT_VOICE
    session_preset: str = DEFAULT_PRESET
    greeting_delay: float = DEFAULT_GREETING_DELAY

    def preset(self) -> SessionPreset:
        return get_preset(self.session_preset, self.voice)


def load_settings() -> Settings:
    """
    Read settings from the environment.

    Raises:
        ConfigurationError: if OPENAI_API_KEY is missing or a value is invalid
    """
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY environment variable not set")

    preset = os.getenv("SESSION_PRESET", DEFAULT_PRESET)
    if preset not in PRESETS:
        raise ConfigurationError(
            f"Unknown SESSION_PRESET {preset!r}, expected one of {sorted(PRESETS)}"
        )

    try:
        port = int(os.getenv("PORT", str(DEFAULT_PORT)))
        greeting_delay = float(os.getenv("GREETING_DELAY", str(DEFAULT_GREETING_DELAY)))
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e

    return Settings(
        openai_api_key=api_key,
        host=os.getenv("HOST", DEFAULT_HOST),
        port=port,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        realtime_model=os.getenv("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
        voice=os.getenv("OPENAI_REALTIME_VOICE", DEFAULT_VOICE),
        session_preset=preset,
        greeting_delay=greeting_delay,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance to avoid repeated environment reads."""
    return load_settings()
