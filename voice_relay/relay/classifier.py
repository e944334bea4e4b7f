"""
Event classification for proxy sessions.

``classify`` is a pure function: given the session state, the leg an event came
from and the decoded event, it returns the next state and the events to emit on
each leg. It performs no I/O and does no logging, so the whole dispatch table
can be exercised without a network.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from voice_relay.config.constants import (
    CLIENT_TYPE_AUDIO,
    CLIENT_TYPE_START,
    CLIENT_TYPE_STOP,
    EVENT_AUDIO_COMMITTED,
    EVENT_AUDIO_DELTA,
    EVENT_AUDIO_DONE,
    EVENT_CONTENT_PART_ADDED,
    EVENT_ERROR,
    EVENT_INPUT_TRANSCRIPTION_COMPLETED,
    EVENT_OUTPUT_ITEM_ADDED,
    EVENT_RESPONSE_CREATED,
    EVENT_RESPONSE_DONE,
    EVENT_SESSION_CREATED,
    EVENT_SESSION_UPDATED,
    EVENT_SPEECH_STARTED,
    EVENT_SPEECH_STOPPED,
    EVENT_TRANSCRIPT_DELTA,
    EVENT_TRANSCRIPT_DONE,
    UNKNOWN_ERROR_MESSAGE,
)
from voice_relay.models.client_messages import (
    AudioEvent,
    ClientAudioMessage,
    ClientStartMessage,
    ClientStopMessage,
    ErrorEvent,
    ResponseDoneEvent,
    ResponseTextDeltaEvent,
    StatusEvent,
    TranscriptEvent,
    VadEvent,
)
from voice_relay.models.realtime_events import (
    AudioDeltaEvent,
    InputAudioBufferAppendEvent,
    InputAudioBufferCommitEvent,
    InputTranscriptionCompletedEvent,
    RealtimeErrorEvent,
    RealtimeServerEvent,
    TranscriptDeltaEvent,
    TranscriptDoneEvent,
)
from voice_relay.relay.exceptions import MalformedEventError


class ProxyState(str, Enum):
    CONNECTING = "connecting"
    ACQUIRING_TOKEN = "acquiring_token"
    OPENING_UPSTREAM = "opening_upstream"
    AWAITING_READY = "awaiting_ready"
    ACTIVE = "active"
    FAILED = "failed"
    CLOSED = "closed"


# States in which the upstream leg is open and configured
FORWARDING_STATES = frozenset({ProxyState.AWAITING_READY, ProxyState.ACTIVE})
TERMINAL_STATES = frozenset({ProxyState.FAILED, ProxyState.CLOSED})


class Leg(str, Enum):
    CLIENT = "client"
    UPSTREAM = "upstream"


class ChunkCounter(str, Enum):
    KEEP = "keep"
    INCREMENT = "increment"
    RESET = "reset"


@dataclass
class Transition:
    """Outcome of classifying one inbound event."""

    state: ProxyState
    to_client: List[Dict[str, Any]] = field(default_factory=list)
    to_upstream: List[Dict[str, Any]] = field(default_factory=list)
    schedule_greeting: bool = False
    chunk_counter: ChunkCounter = ChunkCounter.KEEP
    # Why nothing was forwarded, when that is the outcome
    note: Optional[str] = None
    unhandled: bool = False

    @property
    def dropped(self) -> bool:
        return not self.to_client and not self.to_upstream and not self.schedule_greeting


def decode_event(raw: Union[str, bytes]) -> Dict[str, Any]:
    """
    Parse a raw frame into an event dict with a string ``type``.

    Raises:
        MalformedEventError: if the frame is not a JSON object with a type
    """
    try:
        event = json.loads(raw)
    except (ValueError, TypeError) as e:
        raise MalformedEventError(f"Invalid JSON: {e}") from e
    if not isinstance(event, dict):
        raise MalformedEventError(f"Expected a JSON object, got {type(event).__name__}")
    if not isinstance(event.get("type"), str):
        raise MalformedEventError("Event has no string 'type' field")
    return event


def _parse(model: Type[BaseModel], event: Dict[str, Any]):
    try:
        return model.model_validate(event)
    except ValidationError as e:
        raise MalformedEventError(f"Invalid {event.get('type')} event: {e}") from e


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(exclude_none=True)


# Upstream handlers
def _session_updated(state: ProxyState, event: Dict[str, Any]) -> Transition:
    if state == ProxyState.AWAITING_READY:
        return Transition(ProxyState.ACTIVE, schedule_greeting=True, note="session ready")
    return Transition(state, note="session updated")


def _speech_started(state, event):
    return Transition(
        state,
        to_client=[_dump(VadEvent(status="speaking"))],
        chunk_counter=ChunkCounter.RESET,
    )


def _speech_stopped(state, event):
    return Transition(state, to_client=[_dump(VadEvent(status="silent"))])


def _audio_delta(state, event):
    delta = _parse(AudioDeltaEvent, event).delta
    if not delta:
        return Transition(state, chunk_counter=ChunkCounter.INCREMENT, note="empty audio delta")
    return Transition(
        state,
        to_client=[_dump(AudioEvent(data=delta))],
        chunk_counter=ChunkCounter.INCREMENT,
    )


def _input_transcription_completed(state, event):
    transcript = _parse(InputTranscriptionCompletedEvent, event).transcript
    return Transition(state, to_client=[_dump(TranscriptEvent(role="user", text=transcript or ""))])


def _transcript_delta(state, event):
    delta = _parse(TranscriptDeltaEvent, event).delta
    return Transition(state, to_client=[_dump(ResponseTextDeltaEvent(text=delta or ""))])


def _transcript_done(state, event):
    transcript = _parse(TranscriptDoneEvent, event).transcript
    return Transition(state, to_client=[_dump(TranscriptEvent(role="assistant", text=transcript or ""))])


def _response_done(state, event):
    return Transition(state, to_client=[_dump(ResponseDoneEvent())])


def _upstream_error(state, event):
    error = _parse(RealtimeErrorEvent, event).error
    message = error.get("message") if isinstance(error, dict) else None
    if not isinstance(message, str) or not message:
        message = UNKNOWN_ERROR_MESSAGE
    return Transition(state, to_client=[_dump(ErrorEvent(message=message))])


def _response_created(state, event):
    return Transition(state, chunk_counter=ChunkCounter.RESET, note="response created")


def _informational(note: str) -> Callable[[ProxyState, Dict[str, Any]], Transition]:
    def handler(state, event):
        return Transition(state, note=note)
    return handler


UPSTREAM_HANDLERS: Dict[str, Callable[[ProxyState, Dict[str, Any]], Transition]] = {
    EVENT_SESSION_CREATED: _informational("session created"),
    EVENT_SESSION_UPDATED: _session_updated,
    EVENT_SPEECH_STARTED: _speech_started,
    EVENT_SPEECH_STOPPED: _speech_stopped,
    EVENT_AUDIO_COMMITTED: _informational("audio committed by VAD"),
    EVENT_INPUT_TRANSCRIPTION_COMPLETED: _input_transcription_completed,
    EVENT_RESPONSE_CREATED: _response_created,
    EVENT_OUTPUT_ITEM_ADDED: _informational("output item added"),
    EVENT_CONTENT_PART_ADDED: _informational("content part added"),
    EVENT_AUDIO_DELTA: _audio_delta,
    EVENT_AUDIO_DONE: _informational("audio complete"),
    EVENT_TRANSCRIPT_DELTA: _transcript_delta,
    EVENT_TRANSCRIPT_DONE: _transcript_done,
    EVENT_RESPONSE_DONE: _response_done,
    EVENT_ERROR: _upstream_error,
}


# Client handlers
def _client_audio(state, event):
    audio = _parse(ClientAudioMessage, event)
    if state not in FORWARDING_STATES:
        return Transition(state, note="upstream not open, audio dropped")
    return Transition(state, to_upstream=[_dump(InputAudioBufferAppendEvent(audio=audio.data))])


def _client_stop(state, event):
    _parse(ClientStopMessage, event)
    if state not in FORWARDING_STATES:
        return Transition(state, note="upstream not open, stop dropped")
    return Transition(state, to_upstream=[_dump(InputAudioBufferCommitEvent())])


def _client_start(state, event):
    _parse(ClientStartMessage, event)
    return Transition(state, to_client=[_dump(StatusEvent(status="listening"))])


CLIENT_HANDLERS: Dict[str, Callable[[ProxyState, Dict[str, Any]], Transition]] = {
    CLIENT_TYPE_AUDIO: _client_audio,
    CLIENT_TYPE_STOP: _client_stop,
    CLIENT_TYPE_START: _client_start,
}

_HANDLERS: Dict[Leg, Dict[str, Callable[[ProxyState, Dict[str, Any]], Transition]]] = {
    Leg.UPSTREAM: UPSTREAM_HANDLERS,
    Leg.CLIENT: CLIENT_HANDLERS,
}


def classify(state: ProxyState, leg: Leg, event: Dict[str, Any]) -> Transition:
    """
    Map one decoded event to the next state and the outbound events.

    Raises:
        MalformedEventError: if the event does not match its kind's schema
    """
    if state in TERMINAL_STATES:
        return Transition(state, note=f"session {state.value}, event ignored")

    if leg == Leg.UPSTREAM:
        _parse(RealtimeServerEvent, event)
    handler = _HANDLERS[leg].get(event["type"])
    if handler is None:
        return Transition(state, note=f"unhandled {leg.value} event {event['type']!r}", unhandled=True)
    return handler(state, event)


def classify_raw(state: ProxyState, leg: Leg, raw: Union[str, bytes]) -> Tuple[Dict[str, Any], Transition]:
    """Decode then classify a raw frame."""
    event = decode_event(raw)
    return event, classify(state, leg, event)
