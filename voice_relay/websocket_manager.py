"""
WebSocket connection manager for the voice relay.

This module accepts client WebSocket connections and runs one ProxySession per
connection. It is the only place that turns process settings into per-session
collaborators (credential exchange, upstream connector, session preset), and it
keeps the registry of running sessions used for health reporting.
"""

import logging
from functools import partial
from typing import Callable

from fastapi import WebSocket

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.config.settings import Settings, get_settings
from voice_relay.models.client_messages import ErrorEvent
from voice_relay.models.registry import SessionRegistry
from voice_relay.relay.client_channel import ClientChannel
from voice_relay.relay.credentials import CredentialExchange
from voice_relay.relay.exceptions import ConfigurationError
from voice_relay.relay.proxy_session import ProxySession
from voice_relay.relay.upstream import UpstreamChannel

logger = logging.getLogger(LOGGER_NAME)


class WebSocketManager:
    """Accepts voice client connections and runs a proxy session for each.

    Sessions are fully independent: the manager shares nothing with them except
    the read-only settings it builds their collaborators from.
    """

    def __init__(self, settings_loader: Callable[[], Settings] = get_settings):
        self.registry = SessionRegistry()
        self._settings_loader = settings_loader

    def build_session(self, client: ClientChannel, user: str = "anonymous") -> ProxySession:
        """Create the proxy session for one accepted client channel."""
        settings = self._settings_loader()
        return ProxySession(
            client,
            CredentialExchange(
                settings.openai_api_key,
                model=settings.realtime_model,
                voice=settings.voice,
            ),
            settings.preset(),
            upstream_connector=partial(UpstreamChannel.connect, model=settings.realtime_model),
            greeting_delay=settings.greeting_delay,
            user=user,
        )

    async def handle_websocket(self, websocket: WebSocket):
        """Handle a client WebSocket connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the WebSocket connection
        2. Creates and registers a ProxySession for it
        3. Runs the session until both legs are closed
        4. Unregisters the session whatever the outcome
        """
        await websocket.accept()
        user = websocket.query_params.get("user_email") or "anonymous"
        client = ClientChannel(websocket)
        try:
            session = self.build_session(client, user)
        except ConfigurationError as e:
            logger.error(f"Rejecting connection: {e}")
            await client.send(ErrorEvent(message="Server not configured").model_dump())
            await client.close(code=1011)
            return
        self.registry.add_session(session)
        logger.info(f"Client connected, session {session.session_id} for user: {user}")

        try:
            await session.run()
        except Exception as e:
            logger.error(f"Error in session {session.session_id}: {e}", exc_info=True)
        finally:
            self.registry.remove_session(session.session_id)
            logger.info(f"Session {session.session_id} removed, {len(self.registry)} active")
