import json

import pytest
from unittest.mock import patch

from voice_relay.models.realtime_events import RealtimeServerEvent
from voice_relay.relay.classifier import (
    ChunkCounter,
    Leg,
    ProxyState,
    classify,
    classify_raw,
    decode_event,
)
from voice_relay.relay.exceptions import MalformedEventError

ACTIVE = ProxyState.ACTIVE


def test_session_updated_while_awaiting_ready_activates_and_schedules_greeting():
    transition = classify(ProxyState.AWAITING_READY, Leg.UPSTREAM, {"type": "session.updated"})
    assert transition.state == ProxyState.ACTIVE
    assert transition.schedule_greeting
    assert not transition.dropped


def test_repeated_session_updated_does_not_schedule_greeting():
    transition = classify(ACTIVE, Leg.UPSTREAM, {"type": "session.updated"})
    assert transition.state == ACTIVE
    assert not transition.schedule_greeting
    assert transition.dropped


@pytest.mark.parametrize(
    "event, expected",
    [
        ({"type": "input_audio_buffer.speech_started"}, {"type": "vad", "status": "speaking"}),
        ({"type": "input_audio_buffer.speech_stopped"}, {"type": "vad", "status": "silent"}),
        ({"type": "response.audio.delta", "delta": "UklGRg=="}, {"type": "audio", "data": "UklGRg=="}),
        (
            {"type": "conversation.item.input_audio_transcription.completed", "transcript": "hello"},
            {"type": "transcript", "role": "user", "text": "hello"},
        ),
        ({"type": "response.audio_transcript.delta", "delta": "Hel"}, {"type": "response_text_delta", "text": "Hel"}),
        (
            {"type": "response.audio_transcript.done", "transcript": "Hello!"},
            {"type": "transcript", "role": "assistant", "text": "Hello!"},
        ),
        ({"type": "response.done", "response": {"status": "completed"}}, {"type": "response_done"}),
        ({"type": "error", "error": {"message": "rate limited"}}, {"type": "error", "message": "rate limited"}),
    ],
)
def test_upstream_translation(event, expected):
    transition = classify(ACTIVE, Leg.UPSTREAM, event)
    assert transition.to_client == [expected]
    assert transition.to_upstream == []
    assert transition.state == ACTIVE


def test_missing_transcript_becomes_empty_string():
    event = {"type": "conversation.item.input_audio_transcription.completed", "transcript": None}
    transition = classify(ACTIVE, Leg.UPSTREAM, event)
    assert transition.to_client == [{"type": "transcript", "role": "user", "text": ""}]


def test_error_without_message_uses_fallback():
    transition = classify(ACTIVE, Leg.UPSTREAM, {"type": "error", "error": {"code": "oops"}})
    assert transition.to_client == [{"type": "error", "message": "Unknown error"}]


def test_audio_delta_counts_chunks_even_when_empty():
    transition = classify(ACTIVE, Leg.UPSTREAM, {"type": "response.audio.delta", "delta": ""})
    assert transition.to_client == []
    assert transition.chunk_counter == ChunkCounter.INCREMENT


@pytest.mark.parametrize("event_type", ["input_audio_buffer.speech_started", "response.created"])
def test_counter_resets(event_type):
    transition = classify(ACTIVE, Leg.UPSTREAM, {"type": event_type})
    assert transition.chunk_counter == ChunkCounter.RESET


@pytest.mark.parametrize(
    "event_type",
    [
        "session.created",
        "input_audio_buffer.committed",
        "response.output_item.added",
        "response.content_part.added",
        "response.audio.done",
    ],
)
def test_informational_events_are_dropped(event_type):
    transition = classify(ACTIVE, Leg.UPSTREAM, {"type": event_type})
    assert transition.dropped
    assert not transition.unhandled
    assert transition.note


def test_unknown_upstream_event_is_marked_unhandled():
    transition = classify(ACTIVE, Leg.UPSTREAM, {"type": "rate_limits.updated"})
    assert transition.dropped
    assert transition.unhandled
    assert "rate_limits.updated" in transition.note


def test_client_audio_forwarded_when_upstream_configured():
    for state in (ProxyState.AWAITING_READY, ProxyState.ACTIVE):
        transition = classify(state, Leg.CLIENT, {"type": "audio", "data": "AAAA"})
        assert transition.to_upstream == [{"type": "input_audio_buffer.append", "audio": "AAAA"}]


@pytest.mark.parametrize("state", [ProxyState.CONNECTING, ProxyState.ACQUIRING_TOKEN, ProxyState.OPENING_UPSTREAM])
def test_client_audio_dropped_before_upstream_open(state):
    transition = classify(state, Leg.CLIENT, {"type": "audio", "data": "AAAA"})
    assert transition.dropped
    assert transition.state == state


def test_client_stop_commits_buffer():
    transition = classify(ACTIVE, Leg.CLIENT, {"type": "stop"})
    assert transition.to_upstream == [{"type": "input_audio_buffer.commit"}]


def test_client_start_acknowledged_locally():
    transition = classify(ProxyState.ACQUIRING_TOKEN, Leg.CLIENT, {"type": "start"})
    assert transition.to_client == [{"type": "status", "status": "listening"}]
    assert transition.to_upstream == []


def test_upstream_kinds_from_client_are_unhandled():
    transition = classify(ACTIVE, Leg.CLIENT, {"type": "response.create"})
    assert transition.unhandled
    assert transition.to_upstream == []


@pytest.mark.parametrize("state", [ProxyState.FAILED, ProxyState.CLOSED])
def test_terminal_states_ignore_everything(state):
    transition = classify(state, Leg.UPSTREAM, {"type": "response.audio.delta", "delta": "AAAA"})
    assert transition.dropped
    assert transition.state == state


def test_invalid_client_audio_is_malformed():
    with pytest.raises(MalformedEventError):
        classify(ACTIVE, Leg.CLIENT, {"type": "audio", "data": ""})
    with pytest.raises(MalformedEventError):
        classify(ACTIVE, Leg.CLIENT, {"type": "audio"})


def test_wrongly_typed_upstream_field_is_malformed():
    with pytest.raises(MalformedEventError):
        classify(ACTIVE, Leg.UPSTREAM, {"type": "response.audio.delta", "delta": {"nested": True}})


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", json.dumps({"type": 5}), json.dumps({"data": "x"}), b"\xff\xfe"])
def test_decode_event_rejects_malformed_frames(raw):
    with pytest.raises(MalformedEventError):
        decode_event(raw)


def test_classify_raw_returns_decoded_event():
    event, transition = classify_raw(ACTIVE, Leg.UPSTREAM, json.dumps({"type": "response.done"}))
    assert event == {"type": "response.done"}
    assert transition.to_client == [{"type": "response_done"}]


@pytest.mark.parametrize(
    "error, expected",
    [
        ({"code": 500, "message": "boom"}, "boom"),
        ("rate limited", "Unknown error"),
        ({"message": 42}, "Unknown error"),
        (None, "Unknown error"),
    ],
)
def test_any_upstream_error_shape_is_forwarded(error, expected):
    event, transition = classify_raw(ACTIVE, Leg.UPSTREAM, json.dumps({"type": "error", "error": error}))
    assert transition.to_client == [{"type": "error", "message": expected}]
    assert transition.state == ACTIVE


def test_null_transcript_delta_becomes_empty_text():
    transition = classify(ACTIVE, Leg.UPSTREAM, {"type": "response.audio_transcript.delta", "delta": None})
    assert transition.to_client == [{"type": "response_text_delta", "text": ""}]


def test_null_audio_delta_is_counted_not_forwarded():
    transition = classify(ACTIVE, Leg.UPSTREAM, {"type": "response.audio.delta", "delta": None})
    assert transition.to_client == []
    assert transition.chunk_counter == ChunkCounter.INCREMENT


def test_line_wrapped_client_audio_forwarded_unchanged():
    wrapped = "A" * 76 + "\n" + "A" * 4
    transition = classify(ACTIVE, Leg.CLIENT, {"type": "audio", "data": wrapped})
    assert transition.to_upstream == [{"type": "input_audio_buffer.append", "audio": wrapped}]


def test_client_events_are_not_validated_as_server_events():
    with patch.object(RealtimeServerEvent, "model_validate", side_effect=AssertionError("server schema used")):
        transition = classify(ACTIVE, Leg.CLIENT, {"type": "stop"})
    assert transition.to_upstream == [{"type": "input_audio_buffer.commit"}]
