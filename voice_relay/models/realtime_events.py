"""
Pydantic models for OpenAI Realtime API message structures.

This module provides type-safe models for the messages exchanged with the OpenAI
Realtime API: the session configuration the relay sends once per session, the
client events the relay emits upstream, the server events it consumes, and the
ephemeral session response returned by the token endpoint.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from voice_relay.config.constants import (
    UPSTREAM_AUDIO_APPEND,
    UPSTREAM_AUDIO_COMMIT,
    UPSTREAM_RESPONSE_CREATE,
    UPSTREAM_SESSION_UPDATE,
)


# Session configuration
class InputAudioTranscription(BaseModel):
    """Transcription settings applied to user audio."""
    model: str = "whisper-1"


class TurnDetection(BaseModel):
    """Server-side voice activity detection parameters."""
    type: str = "server_vad"
    threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    prefix_padding_ms: int = Field(default=300, ge=0)
    silence_duration_ms: int = Field(default=200, ge=0)


class SessionConfig(BaseModel):
    """Desired conversation behaviour, sent once as a session.update event."""
    modalities: List[str] = Field(default_factory=lambda: ["text", "audio"])
    instructions: str
    voice: str = "alloy"
    input_audio_format: str = "pcm16"
    output_audio_format: str = "pcm16"
    input_audio_transcription: InputAudioTranscription = Field(default_factory=InputAudioTranscription)
    turn_detection: TurnDetection = Field(default_factory=TurnDetection)
    temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    max_response_output_tokens: int = Field(default=4096, gt=0)


# Relay -> OpenAI events
class SessionUpdateEvent(BaseModel):
    type: Literal["session.update"] = UPSTREAM_SESSION_UPDATE
    session: SessionConfig


class ResponseOptions(BaseModel):
    modalities: List[str] = Field(default_factory=lambda: ["text", "audio"])
    instructions: str


class ResponseCreateEvent(BaseModel):
    """One-shot trigger asking the model to speak."""
    type: Literal["response.create"] = UPSTREAM_RESPONSE_CREATE
    response: ResponseOptions


class InputAudioBufferAppendEvent(BaseModel):
    type: Literal["input_audio_buffer.append"] = UPSTREAM_AUDIO_APPEND
    audio: str


class InputAudioBufferCommitEvent(BaseModel):
    type: Literal["input_audio_buffer.commit"] = UPSTREAM_AUDIO_COMMIT


# OpenAI -> relay events
class RealtimeServerEvent(BaseModel):
    """Base model for events received from the Realtime API."""
    model_config = ConfigDict(extra="allow")

    type: str


class AudioDeltaEvent(RealtimeServerEvent):
    """response.audio.delta: one base64 chunk of synthesized audio."""
    delta: Optional[str] = None


class InputTranscriptionCompletedEvent(RealtimeServerEvent):
    transcript: Optional[str] = None


class TranscriptDeltaEvent(RealtimeServerEvent):
    delta: Optional[str] = None


class TranscriptDoneEvent(RealtimeServerEvent):
    transcript: Optional[str] = None


class RealtimeErrorEvent(RealtimeServerEvent):
    """Application-level error reported by the Realtime API."""
    # Usually an object with a message, but its shape is not guaranteed
    error: Any = None


# Token endpoint
class ClientSecret(BaseModel):
    value: str = Field(..., min_length=1)
    expires_at: Optional[int] = None


class RealtimeSessionResponse(BaseModel):
    """Response from session creation endpoint."""
    model_config = ConfigDict(extra="allow")

    client_secret: ClientSecret
    id: Optional[str] = None
