"""
Ephemeral token exchange with the OpenAI Realtime sessions endpoint.

The long-lived API key never leaves this module: it is sent once per session to
the provisioning endpoint and the short-lived client secret that comes back is
what authenticates the upstream websocket.
"""

import asyncio
import logging

import requests
from pydantic import ValidationError

from voice_relay.config.constants import (
    DEFAULT_REALTIME_MODEL,
    DEFAULT_VOICE,
    LOGGER_NAME,
    OPENAI_SESSIONS_URL,
    TOKEN_REQUEST_TIMEOUT,
)
from voice_relay.models.realtime_events import RealtimeSessionResponse
from voice_relay.relay.exceptions import AuthError

logger = logging.getLogger(LOGGER_NAME)


class CredentialExchange:
    """
    Exchanges the service credential for a single-use ephemeral token.

    No state is kept between calls; every call performs one HTTPS round trip.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_REALTIME_MODEL,
        voice: str = DEFAULT_VOICE,
        url: str = OPENAI_SESSIONS_URL,
        timeout: float = TOKEN_REQUEST_TIMEOUT,
    ):
        self._api_key = api_key
        self.model = model
        self.voice = voice
        self.url = url
        self.timeout = timeout

    async def acquire_token(self) -> str:
        """
        Request an ephemeral token for one upstream session.

        Returns:
            str: The ephemeral client secret

        Raises:
            AuthError: on transport failure, a non-200 status or an unusable body
        """
        payload = {"model": self.model, "voice": self.voice}
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        logger.debug(f"Requesting ephemeral token for model: {self.model}")
        try:
            response = await asyncio.to_thread(
                requests.post,
                self.url,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Token request failed: {e}") from e

        if response.status_code != 200:
            raise AuthError(
                f"Token request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            session = RealtimeSessionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            # requests raises a ValueError subclass for undecodable JSON
            raise AuthError(f"Failed to parse token response: {e}", status_code=200) from e

        token = session.client_secret.value
        if token == self._api_key:
            raise AuthError("Token endpoint echoed the service credential", status_code=200)

        logger.info("Ephemeral token received")
        return token
