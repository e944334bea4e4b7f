import pytest

from voice_relay.config.constants import DEFAULT_REALTIME_MODEL
from voice_relay.config.presets import DEFAULT_PRESET, PRESETS, get_preset
from voice_relay.config.settings import Settings, get_settings, load_settings
from voice_relay.relay.exceptions import ConfigurationError

ENV_VARS = [
    "OPENAI_API_KEY",
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "OPENAI_REALTIME_MODEL",
    "OPENAI_REALTIME_VOICE",
    "SESSION_PRESET",
    "GREETING_DELAY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    settings = load_settings()

    assert settings.openai_api_key == "sk-test"
    assert settings.host == "0.0.0.0"
    assert settings.port == 3000
    assert settings.realtime_model == DEFAULT_REALTIME_MODEL
    assert settings.voice == "alloy"
    assert settings.session_preset == "companion"
    assert settings.greeting_delay == 0.1


def test_overrides(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("OPENAI_REALTIME_VOICE", "verse")
    monkeypatch.setenv("SESSION_PRESET", "standard")
    monkeypatch.setenv("GREETING_DELAY", "0.25")
    settings = load_settings()

    assert settings.port == 8080
    assert settings.log_level == "DEBUG"
    assert settings.greeting_delay == 0.25
    preset = settings.preset()
    assert preset.name == "standard"
    assert preset.session.voice == "verse"


def test_missing_api_key():
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        load_settings()


def test_empty_api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")
    with pytest.raises(ConfigurationError):
        load_settings()


def test_unknown_preset(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("SESSION_PRESET", "pirate")
    with pytest.raises(ConfigurationError, match="pirate"):
        load_settings()


@pytest.mark.parametrize("name, value", [("PORT", "eighty"), ("GREETING_DELAY", "soon")])
def test_invalid_numbers(monkeypatch, name, value):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError, match="Invalid numeric setting"):
        load_settings()


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert get_settings() is get_settings()


def test_companion_preset_values():
    preset = get_preset(DEFAULT_PRESET)
    session = preset.session

    assert preset.name == "companion"
    assert session.modalities == ["text", "audio"]
    assert session.input_audio_format == "pcm16"
    assert session.output_audio_format == "pcm16"
    assert session.turn_detection.type == "server_vad"
    assert session.turn_detection.threshold == 0.3
    assert session.turn_detection.prefix_padding_ms == 300
    assert session.turn_detection.silence_duration_ms == 500
    assert session.temperature == 0.8
    assert session.max_response_output_tokens == 4096
    assert "Life AI" in session.instructions
    assert "I'm listening" in preset.greeting_instructions


def test_every_preset_builds():
    for name in PRESETS:
        preset = get_preset(name, voice="shimmer")
        assert preset.name == name
        assert preset.session.voice == "shimmer"


def test_unknown_preset_name():
    with pytest.raises(KeyError):
        get_preset("pirate")


def test_settings_are_frozen():
    settings = Settings(openai_api_key="sk-test")
    with pytest.raises(AttributeError):
        settings.port = 1
