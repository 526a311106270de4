"""
Management API token cache with read-through/write-through persistence.

Tokens are looked up in three places, cheapest first:
    1. in memory, if not within ``skew_seconds`` of expiry
    2. the checkpoint record (``auth0Token``), which survives restarts
    3. the Auth0 token endpoint (client-credentials grant)

A freshly acquired token is written back to the checkpoint record so that
the next run (often minutes later, from a scheduler) reuses it instead of
hammering the authentication API.
"""

import asyncio
import logging

import aiohttp

from core.oauth2 import ClientCredentialsProvider, OAuth2Config, OAuth2Token
from logstream.options import Auth0Options
from logstream.storage import CheckpointStore

logger = logging.getLogger(__name__)

# Tokens this close to expiry are treated as expired
DEFAULT_TOKEN_SKEW_SECONDS = 60


class TokenCache:
    """
    Caches the Management API access token for one tenant.

    Example:
        >>> cache = TokenCache(options, store)
        >>> token = await cache.get_token()
        >>> headers = {"Authorization": f"Bearer {token}"}
    """

    def __init__(
        self,
        options: Auth0Options,
        store: CheckpointStore,
        session: aiohttp.ClientSession | None = None,
        skew_seconds: int = DEFAULT_TOKEN_SKEW_SECONDS,
        timeout_seconds: float = 30,
        provider: ClientCredentialsProvider | None = None,
    ):
        self._store = store
        self._skew_seconds = skew_seconds
        self._token: OAuth2Token | None = None
        self._rejected = False
        self._lock = asyncio.Lock()
        self._provider = provider or ClientCredentialsProvider(
            OAuth2Config(
                provider_name=options.domain,
                client_id=options.client_id,
                client_secret=options.client_secret,
                token_url=options.token_url,
                audience=options.audience,
                timeout_seconds=timeout_seconds,
            ),
            session=session,
        )

    @property
    def token(self) -> OAuth2Token | None:
        """Currently cached token, if any (may be expired)."""
        return self._token

    def token_record(self) -> dict | None:
        """Cached token in its persisted form, for whole-record writes."""
        return self._token.to_record() if self._token else None

    def _is_usable(self, token: OAuth2Token | None) -> bool:
        return token is not None and not token.is_expired(buffer_seconds=self._skew_seconds)

    async def get_token(self) -> str:
        """
        Return a valid access token.

        Raises:
            AuthError: the token endpoint rejected the credentials or was
                unreachable (no retry)
            StorageError: the persisted token could not be read or the new
                one could not be written
        """
        async with self._lock:
            if self._is_usable(self._token):
                return self._token.access_token

            persisted = None
            if not self._rejected:
                persisted = OAuth2Token.from_record(await self._store.get_token())
            if self._is_usable(persisted):
                logger.debug(
                    "Using persisted Management API token",
                    extra={"token_source": "storage", "expires_at": persisted.expires_at},
                )
                self._token = persisted
                return persisted.access_token

            token = await self._provider.acquire_token()
            self._token = token
            self._rejected = False
            await self._store.set_token(token.to_record())

            logger.info(
                "Acquired new Management API token",
                extra={"token_source": "auth0", "expires_at": token.expires_at},
            )
            return token.access_token

    def invalidate(self) -> None:
        """Forget the token so the next call asks the token endpoint.

        The persisted copy is skipped as well: it is the token the API
        just rejected.
        """
        if self._token is not None:
            logger.debug("Invalidating cached Management API token")
        self._token = None
        self._rejected = True

    async def close(self) -> None:
        await self._provider.close()


__all__ = ["TokenCache", "DEFAULT_TOKEN_SKEW_SECONDS"]
