"""
Active session registry for the relay.

This module provides the SessionRegistry class which tracks the proxy sessions
currently running in this process. The registry is only used for bookkeeping
(health reporting and log correlation); sessions never look each other up.
"""

from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from voice_relay.relay.proxy_session import ProxySession


class SessionRegistry:
    """
    Keeps a registry of active proxy sessions keyed by session id.

    Sessions are added when a client connection is accepted and removed when
    the session has torn down both legs.
    """

    def __init__(self):
        """Initialize an empty dictionary of active sessions."""
        self.active_sessions: Dict[str, "ProxySession"] = {}

    def add_session(self, session: "ProxySession"):
        """
        Add a session to the registry.

        Args:
            session: The proxy session that was just created
        """
        self.active_sessions[session.session_id] = session

    def get_session(self, session_id: str) -> Optional["ProxySession"]:
        """
        Get an active session by its ID.

        Returns:
            The session, or None if it is not registered
        """
        return self.active_sessions.get(session_id)

    def remove_session(self, session_id: str):
        """Remove a session from the registry if present."""
        self.active_sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self.active_sessions)
