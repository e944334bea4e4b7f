"""
Proxy session pairing one client connection with one OpenAI Realtime connection.

A ProxySession owns both legs for its whole lifetime. Token acquisition, the
upstream handshake, both receive loops and the greeting timer all run as
helper tasks that post into a single inbox; one dispatcher drains the inbox in
order, so every state change and every forwarded event happens on one logical
flow of control. Any failure on either leg ends the session and closes both.
"""

import asyncio
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from voice_relay.config.constants import (
    AUDIO_CHUNK_LOG_EVERY,
    DEFAULT_GREETING_DELAY,
    SETUP_FAILED_PREFIX,
    UPSTREAM_CLOSED_MESSAGE,
    UPSTREAM_FAILED_MESSAGE,
)
from voice_relay.config.logging_config import get_session_logger
from voice_relay.config.presets import SessionPreset
from voice_relay.models.client_messages import (
    ConnectedEvent,
    ConnectionClosedEvent,
    ConnectionEstablishedEvent,
    ErrorEvent,
)
from voice_relay.models.realtime_events import (
    ResponseCreateEvent,
    ResponseOptions,
    SessionUpdateEvent,
)
from voice_relay.relay.classifier import (
    TERMINAL_STATES,
    ChunkCounter,
    Leg,
    ProxyState,
    Transition,
    classify_raw,
)
from voice_relay.relay.credentials import CredentialExchange
from voice_relay.relay.exceptions import (
    AuthError,
    ClientDisconnectError,
    MalformedEventError,
    UpstreamClosedError,
    UpstreamConnectError,
)
from voice_relay.relay.upstream import UpstreamChannel

UpstreamConnector = Callable[[str], Awaitable[UpstreamChannel]]


class InboxKind(str, Enum):
    MESSAGE = "message"
    CLOSED = "closed"
    TOKEN_ACQUIRED = "token_acquired"
    UPSTREAM_OPEN = "upstream_open"
    SETUP_FAILED = "setup_failed"
    GREETING_DUE = "greeting_due"
    CRASHED = "crashed"


@dataclass
class InboxItem:
    kind: InboxKind
    leg: Optional[Leg] = None
    payload: Any = None


class ProxySession:
    """
    Bridge between one voice client and the OpenAI Realtime API.

    This class handles:
    - Acquiring an ephemeral token and opening the upstream leg
    - Sending the session configuration and the one-shot greeting trigger
    - Translating events in both directions through ``classify``
    - Tearing down both legs together
    """

    def __init__(
        self,
        client,
        credentials: CredentialExchange,
        preset: SessionPreset,
        upstream_connector: UpstreamConnector = UpstreamChannel.connect,
        greeting_delay: float = DEFAULT_GREETING_DELAY,
        session_id: Optional[str] = None,
        user: str = "anonymous",
        logger=None,
    ):
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.user = user
        self.client = client
        self.upstream: Optional[UpstreamChannel] = None
        self.state = ProxyState.CONNECTING
        self.upstream_ready = False
        self.audio_chunk_count = 0

        self._credentials = credentials
        self._preset = preset
        self._upstream_connector = upstream_connector
        self._greeting_delay = greeting_delay
        self._greeting_sent = False
        self._greeting_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._inbox: "asyncio.Queue[InboxItem]" = asyncio.Queue()
        self.log = logger or get_session_logger(self.session_id)

    async def run(self) -> None:
        """Drive the session until both legs are closed."""
        self.log.info(f"Client connected (user: {self.user})")
        self._set_state(ProxyState.ACQUIRING_TOKEN)
        self._spawn(self._client_pump(), "client-pump")
        self._spawn(self._setup(), "setup")
        try:
            await self._send_client(ConnectedEvent(session_id=self.session_id).model_dump())
            while self.state not in TERMINAL_STATES:
                item = await self._inbox.get()
                await self._handle(item)
        except Exception as e:
            self.log.error(f"Session crashed: {e}")
            self._set_state(ProxyState.FAILED)
            await self._notify_and_close_client(ErrorEvent(message=UPSTREAM_FAILED_MESSAGE).model_dump())
            raise
        finally:
            await self._shutdown()

    # Helper tasks
    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=f"{name}-{self.session_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._inbox.put_nowait(InboxItem(InboxKind.CRASHED, payload=exc))

    async def _setup(self) -> None:
        try:
            self.log.info("Requesting ephemeral token...")
            token = await self._credentials.acquire_token()
        except AuthError as e:
            await self._inbox.put(InboxItem(InboxKind.SETUP_FAILED, payload=e))
            return
        await self._inbox.put(InboxItem(InboxKind.TOKEN_ACQUIRED))

        try:
            upstream = await self._upstream_connector(token)
        except UpstreamConnectError as e:
            await self._inbox.put(InboxItem(InboxKind.SETUP_FAILED, payload=e))
            return
        await self._inbox.put(InboxItem(InboxKind.UPSTREAM_OPEN, payload=upstream))

    async def _client_pump(self) -> None:
        while True:
            try:
                raw = await self.client.receive()
            except ClientDisconnectError as e:
                await self._inbox.put(InboxItem(InboxKind.CLOSED, Leg.CLIENT, e))
                return
            await self._inbox.put(InboxItem(InboxKind.MESSAGE, Leg.CLIENT, raw))

    async def _upstream_pump(self, upstream: UpstreamChannel) -> None:
        while True:
            try:
                raw = await upstream.receive()
            except (UpstreamClosedError, UpstreamConnectError) as e:
                await self._inbox.put(InboxItem(InboxKind.CLOSED, Leg.UPSTREAM, e))
                return
            await self._inbox.put(InboxItem(InboxKind.MESSAGE, Leg.UPSTREAM, raw))

    async def _greeting_timer(self) -> None:
        await asyncio.sleep(self._greeting_delay)
        await self._inbox.put(InboxItem(InboxKind.GREETING_DUE))

    # Dispatch
    async def _handle(self, item: InboxItem) -> None:
        if item.kind == InboxKind.MESSAGE:
            await self._on_message(item.leg, item.payload)
        elif item.kind == InboxKind.CLOSED:
            if item.leg == Leg.CLIENT:
                await self._on_client_gone(item.payload)
            else:
                await self._on_upstream_gone(item.payload)
        elif item.kind == InboxKind.TOKEN_ACQUIRED:
            self.log.info("Ephemeral token received")
            self._set_state(ProxyState.OPENING_UPSTREAM)
        elif item.kind == InboxKind.UPSTREAM_OPEN:
            await self._on_upstream_open(item.payload)
        elif item.kind == InboxKind.SETUP_FAILED:
            await self._on_setup_failed(item.payload)
        elif item.kind == InboxKind.GREETING_DUE:
            await self._on_greeting_due()
        elif item.kind == InboxKind.CRASHED:
            raise item.payload

    async def _on_message(self, leg: Leg, raw) -> None:
        try:
            event, transition = classify_raw(self.state, leg, raw)
        except MalformedEventError as e:
            self.log.warning(f"Dropping malformed {leg.value} event: {e}")
            return

        if leg == Leg.UPSTREAM:
            self.log.debug(f"OpenAI event: {event['type']}")
        self._apply_chunk_counter(transition, event)
        self._log_transition(leg, event, transition)

        if transition.state != self.state:
            self._set_state(transition.state)
        if transition.schedule_greeting:
            self.upstream_ready = True
            self._schedule_greeting()

        for outbound in transition.to_upstream:
            await self._send_upstream(outbound)
        for outbound in transition.to_client:
            await self._send_client(outbound)

    async def _on_upstream_open(self, upstream: UpstreamChannel) -> None:
        if self.state != ProxyState.OPENING_UPSTREAM:
            self.log.info("Upstream opened after session ended, closing it")
            await upstream.close()
            return

        self.upstream = upstream
        self.log.info("Connected to OpenAI Realtime API")
        self._set_state(ProxyState.AWAITING_READY)

        await self._send_upstream(SessionUpdateEvent(session=self._preset.session).model_dump())
        if self.state in TERMINAL_STATES:
            return
        self.log.info(f"Session configuration sent (preset: {self._preset.name})")

        self._spawn(self._upstream_pump(upstream), "upstream-pump")
        await self._send_client(ConnectionEstablishedEvent().model_dump())

    async def _on_setup_failed(self, error: Exception) -> None:
        self.log.error(f"Setup error: {error}")
        self._set_state(ProxyState.FAILED)
        await self._notify_and_close_client(
            ErrorEvent(message=f"{SETUP_FAILED_PREFIX}: {error}").model_dump()
        )

    async def _on_client_gone(self, error: ClientDisconnectError) -> None:
        self.log.info(f"Client disconnected: {error}")
        self._set_state(ProxyState.FAILED)
        if self.upstream is not None:
            await self.upstream.close()

    async def _on_upstream_gone(self, error: Exception) -> None:
        self._set_state(ProxyState.FAILED)
        if isinstance(error, UpstreamClosedError):
            self.log.info(f"OpenAI closed: {error}")
            notice = ConnectionClosedEvent(message=UPSTREAM_CLOSED_MESSAGE).model_dump()
        else:
            self.log.error(f"OpenAI WebSocket error: {error}")
            notice = ErrorEvent(message=UPSTREAM_FAILED_MESSAGE).model_dump()
        if self.upstream is not None:
            await self.upstream.close()
        await self._notify_and_close_client(notice)

    async def _on_greeting_due(self) -> None:
        self._greeting_task = None
        if self._greeting_sent:
            return
        if self.state != ProxyState.ACTIVE or self.upstream is None or not self.upstream.is_open:
            self.log.debug("Greeting skipped, upstream no longer open")
            return
        self.log.info("Triggering greeting response...")
        self._greeting_sent = True
        trigger = ResponseCreateEvent(
            response=ResponseOptions(
                modalities=self._preset.session.modalities,
                instructions=self._preset.greeting_instructions,
            )
        )
        await self._send_upstream(trigger.model_dump())

    # Outbound
    async def _send_client(self, event: Dict[str, Any]) -> None:
        if not self.client.is_open:
            self.log.debug(f"Client not open, dropping {event.get('type')} event")
            return
        try:
            await self.client.send(event)
        except ClientDisconnectError as e:
            await self._on_client_gone(e)

    async def _send_upstream(self, event: Dict[str, Any]) -> None:
        if self.upstream is None or not self.upstream.is_open:
            self.log.debug(f"Upstream not open, dropping {event.get('type')} event")
            return
        try:
            await self.upstream.send(event)
        except (UpstreamClosedError, UpstreamConnectError) as e:
            await self._on_upstream_gone(e)

    async def _notify_and_close_client(self, event: Dict[str, Any]) -> None:
        if self.client.is_open:
            try:
                await self.client.send(event)
            except ClientDisconnectError as e:
                self.log.debug(f"Final notice not delivered: {e}")
        await self.client.close()

    # Bookkeeping
    def _set_state(self, state: ProxyState) -> None:
        if state == self.state:
            return
        self.log.info(f"State {self.state.value} -> {state.value}")
        self.state = state

    def _schedule_greeting(self) -> None:
        if self._greeting_task is not None or self._greeting_sent:
            return
        self._greeting_task = asyncio.create_task(self._greeting_timer())

    def _apply_chunk_counter(self, transition: Transition, event: Dict[str, Any]) -> None:
        if transition.chunk_counter == ChunkCounter.RESET:
            self.audio_chunk_count = 0
        elif transition.chunk_counter == ChunkCounter.INCREMENT:
            self.audio_chunk_count += 1
            count = self.audio_chunk_count
            if count == 1 or count % AUDIO_CHUNK_LOG_EVERY == 0:
                self.log.debug(f"Audio chunk #{count}: {len(event.get('delta') or '')} bytes")

    def _log_transition(self, leg: Leg, event: Dict[str, Any], transition: Transition) -> None:
        if not transition.dropped or not transition.note:
            return
        if transition.unhandled:
            self.log.info(f"Dropping {transition.note}")
        else:
            self.log.debug(f"{leg.value} {event['type']}: {transition.note}")

    async def _shutdown(self) -> None:
        if self._greeting_task is not None:
            self._greeting_task.cancel()
            self._greeting_task = None

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        # An upstream opened concurrently with teardown must not leak
        while not self._inbox.empty():
            item = self._inbox.get_nowait()
            if item.kind == InboxKind.UPSTREAM_OPEN:
                await item.payload.close()

        if self.upstream is not None:
            await self.upstream.close()
        await self.client.close()
        self._set_state(ProxyState.CLOSED)
        self.log.info("Session closed")
