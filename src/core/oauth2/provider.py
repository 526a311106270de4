"""Client-credentials token exchange against an Auth0 tenant."""

import asyncio
import logging
from typing import Any

import aiohttp

from core.oauth2.exceptions import InvalidConfigurationError, TokenAcquisitionError
from core.oauth2.models import OAuth2Config, OAuth2Token

logger = logging.getLogger(__name__)

# Error bodies are cut to this length in messages and logs
_BODY_PREVIEW = 200


class ClientCredentialsProvider:
    """
    Exchanges a machine-to-machine client id and secret for an access token.

    Auth0 expects the grant as a JSON body posted to ``/oauth/token``. Each
    call makes exactly one request; a rejected credential is reported
    immediately rather than retried.

    An injected session is borrowed and never closed. Without one the
    provider opens its own on first use and closes it in close().
    """

    def __init__(self, config: OAuth2Config, session: aiohttp.ClientSession | None = None):
        missing = [name for name in ("client_id", "client_secret", "token_url") if not getattr(config, name)]
        if missing:
            raise InvalidConfigurationError(f"OAuth2 config is missing: {', '.join(missing)}")

        self.config = config
        self.provider_name = config.provider_name
        self._session = session
        self._owns_session = session is None

    def _grant(self) -> dict[str, Any]:
        body = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        if self.config.audience:
            body["audience"] = self.config.audience
        return body

    def _session_for_request(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def acquire_token(self) -> OAuth2Token:
        """
        Request a new access token.

        Raises:
            TokenAcquisitionError: non-200 answer, a body without
                ``access_token``, a timeout or a connection failure
        """
        session = self._session_for_request()
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

        try:
            async with session.post(self.config.token_url, json=self._grant(), timeout=timeout) as response:
                if response.status != 200:
                    body = (await response.text())[:_BODY_PREVIEW]
                    logger.error(
                        "Token endpoint rejected client credentials",
                        extra={
                            "http_status": response.status,
                            "http_url": self.config.token_url,
                            "response_body": body,
                        },
                    )
                    raise TokenAcquisitionError(f"HTTP {response.status}: {body}", status=response.status)
                payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(
                "Token endpoint unreachable",
                extra={"http_url": self.config.token_url, "error": str(e) or type(e).__name__},
            )
            raise TokenAcquisitionError(f"Token request failed: {e!r}", cause=e) from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise TokenAcquisitionError("Token response has no access_token", status=200)

        token = OAuth2Token.from_response(payload)
        logger.debug(
            "Acquired access token",
            extra={"http_url": self.config.token_url, "expires_at": token.expires_at},
        )
        return token

    async def close(self) -> None:
        if not self._owns_session or self._session is None or self._session.closed:
            return
        await self._session.close()
        # Let the connector finish closing its transports
        await asyncio.sleep(0)


__all__ = ["ClientCredentialsProvider"]
