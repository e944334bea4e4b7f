"""
FastAPI server for the realtime voice relay.

This module initializes and configures the FastAPI application that voice
clients connect to. Each WebSocket connection is handed to the WebSocketManager,
which pairs it with its own OpenAI Realtime session; the plain HTTP endpoints
only report liveness and credential health.
"""

from pathlib import Path

import dotenv
from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse

from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import get_settings
from voice_relay.relay.credentials import CredentialExchange
from voice_relay.relay.exceptions import AuthError, ConfigurationError
from voice_relay.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

logger = configure_logging()

app = FastAPI(
    title="Realtime Voice Relay",
    description="WebSocket relay between voice clients and the OpenAI Realtime API",
    version="1.0.0",
)

websocket_manager = WebSocketManager()


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for voice clients.

    The client streams base64 PCM16 ``audio`` messages (and optionally ``stop``)
    and receives ``vad``, ``audio``, ``transcript``, ``response_text_delta``,
    ``response_done``, ``error`` and ``connection_closed`` events. An optional
    ``user_email`` query parameter labels the session in the logs.
    """
    await websocket_manager.handle_websocket(websocket)


@app.websocket("/")
async def root_websocket_endpoint(websocket: WebSocket):
    """Same as /ws, for clients that dial the server root."""
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Fixed status payload plus the number of running sessions.
    """
    return {
        "status": "ok",
        "service": "voice-streaming",
        "active_sessions": len(websocket_manager.registry),
    }


@app.get("/token-test")
async def token_test():
    """Diagnostic endpoint: acquire one ephemeral token and report the outcome.

    The token itself is never returned and no streaming session is opened.
    """
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error(f"Token test failed: {e}")
        return JSONResponse(status_code=503, content={"success": False, "error": str(e)})

    exchange = CredentialExchange(
        settings.openai_api_key, model=settings.realtime_model, voice=settings.voice
    )
    try:
        await exchange.acquire_token()
    except AuthError as e:
        logger.error(f"Token test failed: {e}")
        return JSONResponse(
            status_code=502,
            content={"success": False, "error": str(e), "status_code": e.status_code},
        )
    return {"success": True, "model": settings.realtime_model}


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "Realtime Voice Relay",
        "description": "WebSocket relay between voice clients and the OpenAI Realtime API",
        "version": "1.0.0",
        "endpoints": {
            "/ws": "WebSocket endpoint for voice clients",
            "/health": "Health check endpoint",
            "/token-test": "Ephemeral token diagnostic",
        },
    }


if __name__ == "__main__":
    import sys

    import uvicorn

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        ws_ping_interval=5,  # Frequent pings to detect dead clients
        ws_max_size=16777216,  # 16MB - large enough for audio chunks
        ws_ping_timeout=20,
        http="h11",
    )
