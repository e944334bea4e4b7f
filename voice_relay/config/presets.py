"""
Session configuration presets.

A preset bundles the SessionConfig sent upstream with the instructions used for
the opening greeting. Deployments pick one by name through SESSION_PRESET.
"""

from dataclasses import dataclass

from voice_relay.config.constants import DEFAULT_VOICE
from voice_relay.models.realtime_events import (
    InputAudioTranscription,
    SessionConfig,
    TurnDetection,
)

DEFAULT_PRESET = "companion"


@dataclass(frozen=True)
class SessionPreset:
    name: str
    session: SessionConfig
    greeting_instructions: str


def _companion(voice: str) -> SessionPreset:
    return SessionPreset(
        name="companion",
        session=SessionConfig(
            modalities=["text", "audio"],
            instructions=(
                "You are Life AI, a warm and conversational AI companion. "
                "Keep responses concise (1-3 sentences) unless asked for more. "
                "Be natural, friendly, and helpful."
            ),
            voice=voice,
            input_audio_format="pcm16",
            output_audio_format="pcm16",
            input_audio_transcription=InputAudioTranscription(model="whisper-1"),
            # Sensitive VAD with short silence window for faster replies
            turn_detection=TurnDetection(
                type="server_vad",
                threshold=0.3,
                prefix_padding_ms=300,
                silence_duration_ms=500,
            ),
            temperature=0.8,
            max_response_output_tokens=4096,
        ),
        greeting_instructions=(
            "Say \"Hello! I'm listening. How can I help you today?\" "
            "in a warm, friendly tone."
        ),
    )


def _standard(voice: str) -> SessionPreset:
    return SessionPreset(
        name="standard",
        session=SessionConfig(
            modalities=["text", "audio"],
            instructions="You are a helpful voice assistant. Answer briefly and clearly.",
            voice=voice,
            turn_detection=TurnDetection(
                type="server_vad",
                threshold=0.5,
                prefix_padding_ms=300,
                silence_duration_ms=200,
            ),
            temperature=0.8,
            max_response_output_tokens=4096,
        ),
        greeting_instructions="Greet the user with one short, friendly sentence.",
    )


PRESETS = {
    "companion": _companion,
    "standard": _standard,
}


def get_preset(name: str = DEFAULT_PRESET, voice: str = DEFAULT_VOICE) -> SessionPreset:
    """
    Build the named preset for the given voice.

    Raises:
        KeyError: if no preset has that name
    """
    return PRESETS[name](voice)
