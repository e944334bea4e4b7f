"""
Run script for starting the Realtime Voice Relay server.

This script checks the required configuration, then starts the FastAPI server
with WebSocket settings suited to streaming audio.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys

import dotenv
import uvicorn

from voice_relay.config.constants import DEFAULT_HOST, DEFAULT_PORT
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import load_settings
from voice_relay.relay.exceptions import ConfigurationError

dotenv.load_dotenv()

logger = configure_logging()


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the Realtime Voice Relay server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", str(DEFAULT_PORT))),
        help=f"Port to run the server on (default: {DEFAULT_PORT} or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", DEFAULT_HOST),
        help=f"Host to bind the server to (default: {DEFAULT_HOST} or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point: validate settings, then start uvicorn."""
    args = parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)

    configure_logging(args.log_level)
    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"Realtime model: {settings.realtime_model}, preset: {settings.session_preset}")

    uvicorn.run(
        "voice_relay.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        # Disable access logs, sessions log for themselves
        access_log=False,
        ws_ping_interval=5,
        ws_max_size=16777216,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
