"""Token endpoint failures."""

from core.errors.exceptions import AuthError, ConfigurationError


class OAuth2Error(AuthError):
    """Client-credentials exchange failed."""


class TokenAcquisitionError(OAuth2Error):
    """
    The token endpoint answered with an error, an unusable body, or not at
    all. ``status`` is the HTTP status when there was a response.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.status = status


class InvalidConfigurationError(ConfigurationError):
    """Client id, secret or token URL missing."""


__all__ = [
    "InvalidConfigurationError",
    "OAuth2Error",
    "TokenAcquisitionError",
]
