"""
Upstream leg of a proxy session: one websocket to the OpenAI Realtime API.

The channel is authenticated with an ephemeral token and exchanges JSON text
frames. Websocket close codes are mapped onto the relay error taxonomy so the
session can tell a clean close from a failure.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException
from websockets.protocol import State

from voice_relay.config.constants import (
    DEFAULT_REALTIME_MODEL,
    LOGGER_NAME,
    OPENAI_REALTIME_URL,
    UPSTREAM_CONNECT_TIMEOUT,
)
from voice_relay.relay.exceptions import UpstreamClosedError, UpstreamConnectError

logger = logging.getLogger(LOGGER_NAME)

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32  # Small queue to prevent buffering
WS_PING_INTERVAL = 5  # 5 seconds between pings
WS_PING_TIMEOUT = 10


class UpstreamChannel:
    """
    One duplex websocket to the OpenAI Realtime API, authenticated with an
    ephemeral token. There is no reconnection: once closed, the channel is done.
    """

    def __init__(self, ws, model: str = DEFAULT_REALTIME_MODEL):
        self.ws = ws
        self.model = model
        self._closed = False

    @classmethod
    async def connect(
        cls,
        token: str,
        model: str = DEFAULT_REALTIME_MODEL,
        url: str = OPENAI_REALTIME_URL,
        timeout: float = UPSTREAM_CONNECT_TIMEOUT,
    ) -> "UpstreamChannel":
        """
        Open the upstream websocket. Returning means the channel reported open.

        Raises:
            UpstreamConnectError: if the handshake fails or times out
        """
        endpoint = f"{url}?model={model}"
        headers = {
            "Authorization": f"Bearer {token}",
            "OpenAI-Beta": "realtime=v1",
        }

        logger.info(f"Connecting to OpenAI Realtime API with model: {model}")
        logger.debug("Using headers: Authorization: Bearer [TOKEN_HIDDEN], OpenAI-Beta: realtime=v1")
        try:
            ws = await asyncio.wait_for(
                websockets.connect(
                    endpoint,
                    max_size=WS_MAX_SIZE,
                    max_queue=WS_MAX_QUEUE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=WS_PING_TIMEOUT,
                    compression=None,  # Disable compression for lower latency
                    additional_headers=headers,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamConnectError(
                f"Timeout while connecting to OpenAI Realtime API (after {timeout}s)"
            ) from e
        except (OSError, WebSocketException) as e:
            raise UpstreamConnectError(f"Failed to connect to OpenAI Realtime API: {e}") from e

        logger.info("Connected to OpenAI Realtime API")
        return cls(ws, model)

    @property
    def is_open(self) -> bool:
        return not self._closed and self.ws.state is State.OPEN

    async def send(self, event: Dict[str, Any]) -> None:
        """
        Serialize and send one event.

        Raises:
            UpstreamClosedError: if the peer closed cleanly
            UpstreamConnectError: if the connection failed
        """
        try:
            await self.ws.send(json.dumps(event))
        except ConnectionClosedOK as e:
            raise UpstreamClosedError(f"Upstream closed while sending: {e}") from e
        except ConnectionClosed as e:
            raise UpstreamConnectError(f"Upstream failed while sending: {e}") from e

    async def receive(self) -> Union[str, bytes]:
        """
        Wait for the next raw message.

        Raises:
            UpstreamClosedError: on a normal close
            UpstreamConnectError: on an abnormal close
        """
        try:
            return await self.ws.recv()
        except ConnectionClosedOK as e:
            raise UpstreamClosedError(str(e)) from e
        except ConnectionClosed as e:
            raise UpstreamConnectError(str(e)) from e

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing OpenAI Realtime websocket")
        await self.ws.close(code=code, reason=reason or "")
