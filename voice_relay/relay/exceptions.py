"""
Error taxonomy for the relay.

Setup errors (AuthError, UpstreamConnectError) end the session and are reported
to the client. MalformedEventError is recovered locally. Closure errors tell the
session which leg went away.
"""

from typing import Optional


class RelayError(Exception):
    """Base class for relay errors."""


class ConfigurationError(RelayError):
    """Required process configuration is missing or invalid."""


class AuthError(RelayError):
    """Ephemeral token acquisition failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamConnectError(RelayError):
    """The upstream channel failed to open or errored after opening."""


class UpstreamClosedError(RelayError):
    """The upstream channel closed while the session was live."""


class MalformedEventError(RelayError):
    """A received payload could not be parsed into the expected structure."""


class ClientDisconnectError(RelayError):
    """The client channel closed or errored."""
