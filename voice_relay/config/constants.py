"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the relay,
providing a centralized location for protocol names, endpoints and defaults so
the client-facing and upstream-facing code agree on the same values.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_relay"

# Default OpenAI model and voice for the Realtime API
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-10-01"
DEFAULT_VOICE = "alloy"

# Upstream endpoints
OPENAI_SESSIONS_URL = "https://api.openai.com/v1/realtime/sessions"
OPENAI_REALTIME_URL = "wss://api.openai.com/v1/realtime"

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# Timers (seconds)
TOKEN_REQUEST_TIMEOUT = 10
UPSTREAM_CONNECT_TIMEOUT = 30
DEFAULT_GREETING_DELAY = 0.1

# Audio chunk diagnostics: log the first chunk and then every Nth one
AUDIO_CHUNK_LOG_EVERY = 10

# Client -> relay message types
CLIENT_TYPE_AUDIO = "audio"
CLIENT_TYPE_STOP = "stop"
CLIENT_TYPE_START = "start"

# Relay -> OpenAI event types
UPSTREAM_SESSION_UPDATE = "session.update"
UPSTREAM_RESPONSE_CREATE = "response.create"
UPSTREAM_AUDIO_APPEND = "input_audio_buffer.append"
UPSTREAM_AUDIO_COMMIT = "input_audio_buffer.commit"

# OpenAI -> relay event types
EVENT_SESSION_CREATED = "session.created"
EVENT_SESSION_UPDATED = "session.updated"
EVENT_SPEECH_STARTED = "input_audio_buffer.speech_started"
EVENT_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
EVENT_AUDIO_COMMITTED = "input_audio_buffer.committed"
EVENT_INPUT_TRANSCRIPTION_COMPLETED = "conversation.item.input_audio_transcription.completed"
EVENT_RESPONSE_CREATED = "response.created"
EVENT_OUTPUT_ITEM_ADDED = "response.output_item.added"
EVENT_CONTENT_PART_ADDED = "response.content_part.added"
EVENT_AUDIO_DELTA = "response.audio.delta"
EVENT_AUDIO_DONE = "response.audio.done"
EVENT_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
EVENT_TRANSCRIPT_DONE = "response.audio_transcript.done"
EVENT_RESPONSE_DONE = "response.done"
EVENT_ERROR = "error"

# User-visible messages
SETUP_FAILED_PREFIX = "Setup failed"
UPSTREAM_FAILED_MESSAGE = "Upstream connection failed"
UPSTREAM_CLOSED_MESSAGE = "Upstream connection closed"
UNKNOWN_ERROR_MESSAGE = "Unknown error"
