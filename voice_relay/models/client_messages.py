"""
Pydantic models for the client-facing relay protocol.

This module defines structured data models for every message exchanged with the
voice client. The protocol is intentionally small: the client streams base64
audio and an optional end-of-utterance signal, and the relay answers with
voice-activity, audio, transcript and lifecycle events. Every message carries a
``type`` discriminant.
"""

import base64
import binascii
from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


# Base Models
class ClientMessage(BaseModel):
    """Base model for all client-facing messages."""

    type: str = Field(..., description="Message type identifier")


# Inbound (client -> relay)
class ClientAudioMessage(ClientMessage):
    """Model for an audio message from the client."""

    type: Literal["audio"]
    data: str = Field(..., description="Base64-encoded PCM16 audio")

    @field_validator("data")
    def validate_data(cls, v):
        """Validate that the audio payload is non-empty base64, forwarded as sent."""
        if not v:
            raise ValueError("Audio data cannot be empty")
        try:
            # Non-alphabet characters such as line breaks are ignored
            base64.b64decode(v)
        except (binascii.Error, ValueError):
            raise ValueError("Invalid base64 encoded audio data")
        return v


class ClientStopMessage(ClientMessage):
    """Model for the explicit end-of-utterance signal."""

    type: Literal["stop"]


class ClientStartMessage(ClientMessage):
    """Model for the optional start signal; acknowledged, never forwarded."""

    type: Literal["start"]


# Outbound (relay -> client)
class ConnectedEvent(ClientMessage):
    """First message on every accepted connection."""

    type: Literal["connected"] = "connected"
    session_id: str
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class ConnectionEstablishedEvent(ClientMessage):
    """Sent once the upstream leg is open and configured."""

    type: Literal["connection.established"] = "connection.established"
    status: str = "connected"


class VadEvent(ClientMessage):
    type: Literal["vad"] = "vad"
    status: Literal["speaking", "silent"]


class AudioEvent(ClientMessage):
    type: Literal["audio"] = "audio"
    data: str


class TranscriptEvent(ClientMessage):
    type: Literal["transcript"] = "transcript"
    role: Literal["user", "assistant"]
    text: str = ""


class ResponseTextDeltaEvent(ClientMessage):
    type: Literal["response_text_delta"] = "response_text_delta"
    text: str = ""


class ResponseDoneEvent(ClientMessage):
    type: Literal["response_done"] = "response_done"


class ErrorEvent(ClientMessage):
    type: Literal["error"] = "error"
    message: str


class ConnectionClosedEvent(ClientMessage):
    type: Literal["connection_closed"] = "connection_closed"
    message: str


class StatusEvent(ClientMessage):
    """Acknowledgement of a control message with no upstream effect."""

    type: Literal["status"] = "status"
    status: str
    detail: Optional[str] = None


# Union type for all possible incoming messages
IncomingMessage = Union[
    ClientAudioMessage,
    ClientStopMessage,
    ClientStartMessage,
]

# Union type for all possible outgoing messages
OutgoingMessage = Union[
    ConnectedEvent,
    ConnectionEstablishedEvent,
    VadEvent,
    AudioEvent,
    TranscriptEvent,
    ResponseTextDeltaEvent,
    ResponseDoneEvent,
    ErrorEvent,
    ConnectionClosedEvent,
    StatusEvent,
]
