"""Access token and provider settings for the client-credentials grant."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

# Auth0 Management API tokens last a day unless the tenant says otherwise
DEFAULT_EXPIRES_IN = 86400


@dataclass
class OAuth2Token:
    """A bearer token and the UTC instant it stops being accepted."""

    access_token: str
    expires_at: datetime
    token_type: str = "Bearer"
    scope: str | None = None

    @classmethod
    def from_response(cls, response: dict, expires_in: int | None = None) -> "OAuth2Token":
        """Build from a token endpoint body; ``expires_in`` overrides the body's value."""
        lifetime = expires_in or response.get("expires_in") or DEFAULT_EXPIRES_IN
        return cls(
            access_token=response["access_token"],
            expires_at=datetime.now(UTC) + timedelta(seconds=lifetime),
            token_type=response.get("token_type", "Bearer"),
            scope=response.get("scope"),
        )

    @classmethod
    def from_record(cls, record: dict[str, Any] | None) -> "OAuth2Token | None":
        """
        Inverse of to_record. Anything unreadable yields None, which makes
        the caller ask the token endpoint instead.
        """
        if not record:
            return None
        try:
            access_token = record["access_token"]
            expires_ms = int(record["expires_at"])
        except (KeyError, TypeError, ValueError):
            return None
        if not access_token:
            return None
        return cls(access_token=access_token, expires_at=datetime.fromtimestamp(expires_ms / 1000, tz=UTC))

    def to_record(self) -> dict[str, Any]:
        """``{"access_token": str, "expires_at": epoch milliseconds}`` as stored in checkpoints."""
        return {"access_token": self.access_token, "expires_at": int(self.expires_at.timestamp() * 1000)}

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        """True once fewer than ``buffer_seconds`` of validity remain."""
        return self.remaining_lifetime <= timedelta(seconds=buffer_seconds)

    @property
    def remaining_lifetime(self) -> timedelta:
        return self.expires_at - datetime.now(UTC)


@dataclass
class OAuth2Config:
    """
    Where and how to request tokens.

    ``provider_name`` only labels log lines (the tenant domain in practice).
    ``audience`` is the API the token is for, e.g.
    ``https://tenant.auth0.com/api/v2/``.
    """

    provider_name: str
    client_id: str
    client_secret: str
    token_url: str
    audience: str | None = None
    timeout_seconds: float = 30


__all__ = ["DEFAULT_EXPIRES_IN", "OAuth2Config", "OAuth2Token"]
