"""
Models module for data structures and state management in the voice relay.

Key components:
- client_messages: Pydantic models for the simplified client protocol, both the
  audio/control messages clients send and the events the relay emits.
- realtime_events: Pydantic models for the OpenAI Realtime API, including the
  SessionConfig sent once per session and the token endpoint response.
- registry: Bookkeeping of the proxy sessions running in this process.

Usage examples:
```python
from voice_relay.models.client_messages import ClientAudioMessage, TranscriptEvent

# Validate an inbound client message
message = ClientAudioMessage(type="audio", data="AAAA")

# Build an outbound event
event = TranscriptEvent(role="user", text="hello")
await websocket.send_text(event.model_dump_json())
```
"""

from voice_relay.models.client_messages import (
    AudioEvent,
    ClientAudioMessage,
    ClientMessage,
    ClientStartMessage,
    ClientStopMessage,
    ConnectedEvent,
    ConnectionClosedEvent,
    ConnectionEstablishedEvent,
    ErrorEvent,
    IncomingMessage,
    OutgoingMessage,
    ResponseDoneEvent,
    ResponseTextDeltaEvent,
    StatusEvent,
    TranscriptEvent,
    VadEvent,
)
from voice_relay.models.realtime_events import (
    RealtimeSessionResponse,
    SessionConfig,
    TurnDetection,
)
from voice_relay.models.registry import SessionRegistry
