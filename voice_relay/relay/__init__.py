"""
Relay module pairing voice clients with the OpenAI Realtime API.

Key components:
- CredentialExchange: Exchanges the service API key for a short-lived token,
  one HTTPS round trip per session.
- UpstreamChannel: One websocket to the Realtime API authenticated with that
  token. No reconnection; a closed channel ends the session.
- ClientChannel: Wraps the accepted FastAPI WebSocket of the voice client.
- classify: Pure dispatch table turning inbound events into outbound events
  and state transitions.
- ProxySession: Orchestrates the above for exactly one client connection and
  closes both legs together on any failure.

Usage examples:
```python
from functools import partial

from voice_relay.config.presets import get_preset
from voice_relay.relay import ClientChannel, CredentialExchange, ProxySession, UpstreamChannel

async def serve(websocket, api_key):
    await websocket.accept()
    session = ProxySession(
        ClientChannel(websocket),
        CredentialExchange(api_key),
        get_preset("companion"),
        upstream_connector=partial(UpstreamChannel.connect, model="gpt-4o-realtime-preview-2024-10-01"),
    )
    await session.run()
```
"""

from voice_relay.relay.classifier import Leg, ProxyState, Transition, classify
from voice_relay.relay.client_channel import ClientChannel
from voice_relay.relay.credentials import CredentialExchange
from voice_relay.relay.proxy_session import ProxySession
from voice_relay.relay.upstream import UpstreamChannel

__all__ = [
    "ClientChannel",
    "CredentialExchange",
    "Leg",
    "ProxySession",
    "ProxyState",
    "Transition",
    "UpstreamChannel",
    "classify",
]
