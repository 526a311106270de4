"""
OAuth2 client-credentials token acquisition.

Usage:
    from core.oauth2 import ClientCredentialsProvider, OAuth2Config

    config = OAuth2Config(
        provider_name="auth0",
        client_id=os.getenv("AUTH0_CLIENT_ID"),
        client_secret=os.getenv("AUTH0_CLIENT_SECRET"),
        token_url="https://tenant.eu.auth0.com/oauth/token",
        audience="https://tenant.eu.auth0.com/api/v2/",
    )
    provider = ClientCredentialsProvider(config)
    token = await provider.acquire_token()

    headers = {"Authorization": f"Bearer {token.access_token}"}

Caching and persistence of the token live in logstream.token_cache.
"""

from core.oauth2.exceptions import (
    InvalidConfigurationError,
    OAuth2Error,
    TokenAcquisitionError,
)
from core.oauth2.models import OAuth2Config, OAuth2Token
from core.oauth2.provider import ClientCredentialsProvider

__all__ = [
    # Providers
    "ClientCredentialsProvider",
    # Models
    "OAuth2Token",
    "OAuth2Config",
    # Exceptions
    "OAuth2Error",
    "TokenAcquisitionError",
    "InvalidConfigurationError",
]
