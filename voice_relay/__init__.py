"""
Realtime Voice Relay - voice client to OpenAI Realtime API bridge

This application lets a browser or mobile voice client talk to the OpenAI
Realtime API without ever holding the OpenAI API key. For each client WebSocket
connection the relay obtains a short-lived ephemeral token, opens its own
Realtime session with it, configures the session, and translates the event
traffic in both directions into a small client protocol.

Architecture Overview:
- FastAPI server exposing a WebSocket endpoint for voice clients
- One ProxySession per connection, owning the client leg and the upstream leg
- A pure classification table mapping inbound events to outbound events
- Fail fast: any error or close on either leg closes both

Key Components:
- config: Constants, logging setup, environment settings and session presets
- models: Pydantic schemas for the client protocol and the Realtime API
- relay: Credential exchange, channels, classification and the proxy session
- websocket_manager: Accepts connections and runs one session per connection

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key (required)
   - PORT: Port to run the server on (default 3000)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)
   - SESSION_PRESET: companion or standard (default companion)

2. Start the server:
   ```bash
   python run.py
   ```

3. Connect a client to ws://your-server:3000/ws?user_email=you@example.com and
   stream base64 PCM16 audio as {"type": "audio", "data": "..."} messages.
"""
