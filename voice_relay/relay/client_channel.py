"""
Client-facing leg of a proxy session.

Wraps the already-accepted FastAPI WebSocket so the session only deals with
JSON events and relay exceptions, never with ASGI message shapes.
"""

import json
import logging
from typing import Any, Dict, Union

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.relay.exceptions import ClientDisconnectError

logger = logging.getLogger(LOGGER_NAME)


class ClientChannel:
    """Duplex channel to one voice client."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def receive(self) -> Union[str, bytes]:
        """
        Wait for the next raw frame from the client.

        Raises:
            ClientDisconnectError: when the client goes away
        """
        try:
            message = await self.websocket.receive()
        except (WebSocketDisconnect, RuntimeError) as e:
            self._closed = True
            raise ClientDisconnectError(f"Client receive failed: {e}") from e

        if message["type"] == "websocket.disconnect":
            self._closed = True
            raise ClientDisconnectError(f"Client disconnected (code={message.get('code')})")

        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def send(self, event: Dict[str, Any]) -> None:
        """
        Send one event to the client.

        Raises:
            ClientDisconnectError: if the client is no longer reachable
        """
        try:
            await self.websocket.send_text(json.dumps(event))
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            self._closed = True
            raise ClientDisconnectError(f"Client send failed: {e}") from e

    async def close(self, code: int = 1000) -> None:
        if self._closed:
            return
        self._closed = True
        if self.websocket.application_state != WebSocketState.CONNECTED:
            return
        try:
            await self.websocket.close(code=code)
        except (RuntimeError, OSError) as e:
            # The peer may already be gone; nothing left to release
            logger.debug(f"Client close raced with disconnect: {e}")
