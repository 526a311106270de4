"""
Auth0 Management API options for the log stream.

The recognised keys are exactly ``domain``, ``clientId``, ``clientSecret``
and ``types`` (snake_case names are accepted too). Anything else is
rejected so that a typo in a deployment config fails loudly instead of
being silently ignored.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import ConfigurationError


class Auth0Options(BaseModel):
    """Connection options for one Auth0 tenant.

    Attributes:
        domain: Tenant domain, e.g. "tenant.eu.auth0.com"
        client_id: Machine-to-machine application client ID
        client_secret: Machine-to-machine application client secret
        types: Optional list of log type codes ("s", "f", "sapi", ...) to
            restrict the query to

    Example:
        >>> options = Auth0Options.model_validate(
        ...     {"domain": "tenant.auth0.com", "clientId": "abc", "clientSecret": "shh"}
        ... )
        >>> options.audience
        'https://tenant.auth0.com/api/v2/'
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    domain: str = Field(..., min_length=1, description="Auth0 tenant domain")
    client_id: str = Field(..., alias="clientId", min_length=1)
    client_secret: str = Field(..., alias="clientSecret", min_length=1, repr=False)
    types: list[str] | None = Field(
        default=None, description="Log type codes to restrict the query to"
    )

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        """Strip scheme and trailing slashes so URLs can be built from it."""
        v = v.strip()
        for prefix in ("https://", "http://"):
            if v.lower().startswith(prefix):
                v = v[len(prefix):]
        v = v.rstrip("/")
        if not v:
            raise ValueError("domain cannot be empty or whitespace")
        return v

    @field_validator("client_id", "client_secret")
    @classmethod
    def validate_non_empty_strings(cls, v: str, info) -> str:
        """Ensure credentials are not empty or whitespace-only."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty or whitespace")
        return v.strip()

    @field_validator("types")
    @classmethod
    def validate_types(cls, v: list[str] | None) -> list[str] | None:
        """Drop blank codes; an empty filter means no filter."""
        if v is None:
            return None
        cleaned = [t.strip() for t in v if t and t.strip()]
        return cleaned or None

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/oauth/token"

    @property
    def audience(self) -> str:
        return f"{self.base_url}/api/v2/"

    @property
    def logs_url(self) -> str:
        return f"{self.base_url}/api/v2/logs"


def parse_options(options: "Auth0Options | Mapping[str, Any] | None") -> Auth0Options:
    """
    Validate user-supplied options.

    Raises:
        ConfigurationError: options missing, unknown keys present, or a
            value fails validation
    """
    if options is None:
        raise ConfigurationError("auth0Options is required")
    if isinstance(options, Auth0Options):
        return options
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"auth0Options must be a mapping or Auth0Options, got {type(options).__name__}"
        )

    try:
        return Auth0Options.model_validate(dict(options))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'auth0Options'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid auth0Options: {problems}", cause=e) from e


__all__ = ["Auth0Options", "parse_options"]
