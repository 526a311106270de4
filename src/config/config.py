"""Log stream configuration from YAML file.

Loads from config/config.yaml (or an explicit path) with two sections:
- auth0:  tenant connection options (domain, clientId, clientSecret, types)
- stream: engine settings (timeouts, token skew, checkpoint location)

Environment variables ARE supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax in YAML files. When the file has no auth0
section, AUTH0_DOMAIN / AUTH0_CLIENT_ID / AUTH0_CLIENT_SECRET /
AUTH0_LOG_TYPES are used instead. A .env file next to the working
directory is loaded first when present.

Example config.yaml:
    auth0:
      domain: ${AUTH0_DOMAIN}
      clientId: ${AUTH0_CLIENT_ID}
      clientSecret: ${AUTH0_CLIENT_SECRET}
      types: [s, f, sapi]
    stream:
      timeout_seconds: 30
      checkpoint_path: ./.checkpoints/tenant.json
"""

import logging
import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from core.errors import ConfigurationError

if TYPE_CHECKING:
    from logstream.options import Auth0Options


logger = logging.getLogger(__name__)


# ${VAR} or ${VAR:-default}; an unset VAR without default is left as written
_ENV_REFERENCE = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def load_yaml(path: Path) -> Dict[str, Any]:
    """Parsed YAML mapping, or {} when the file does not exist."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _substitute_env(match: "re.Match[str]") -> str:
    name, default = match.group(1), match.group(2)
    return os.getenv(name, match.group(0) if default is None else default)


def _expand_env_vars(data: Any) -> Any:
    """Resolve ${...} references in every string of a parsed YAML tree."""
    if isinstance(data, str):
        return _ENV_REFERENCE.sub(_substitute_env, data)
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


# config/config.yaml next to this module
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"

DEFAULT_CHECKPOINT_PATH = Path(".checkpoints") / "auth0_logs.json"


@dataclass
class StreamSettings:
    """Engine settings.

    Attributes:
        timeout_seconds: Total timeout for each HTTP request (token and logs)
        token_skew_seconds: Tokens this close to expiry are refreshed
        max_record_bytes: Size limit for the persisted checkpoint record;
            oldest logs are dropped from it when exceeded (None = no limit)
        checkpoint_path: JSON file used by JsonFileStorage when
            create_stream() is not given a storage
    """

    timeout_seconds: float = 30
    token_skew_seconds: int = 60
    max_record_bytes: Optional[int] = None
    checkpoint_path: Path = field(default_factory=lambda: DEFAULT_CHECKPOINT_PATH)

    def __post_init__(self) -> None:
        self.checkpoint_path = Path(self.checkpoint_path)
        if self.timeout_seconds is None or float(self.timeout_seconds) <= 0:
            raise ConfigurationError(f"timeout_seconds must be positive, got {self.timeout_seconds!r}")
        self.timeout_seconds = float(self.timeout_seconds)
        self.token_skew_seconds = int(self.token_skew_seconds)
        if self.token_skew_seconds < 0:
            raise ConfigurationError("token_skew_seconds cannot be negative")
        if self.max_record_bytes is not None:
            self.max_record_bytes = int(self.max_record_bytes)
            if self.max_record_bytes <= 0:
                raise ConfigurationError("max_record_bytes must be positive")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamSettings":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown stream settings: {', '.join(unknown)}")
        # Empty strings come from unset ${VAR} placeholders
        cleaned = {k: v for k, v in data.items() if v not in (None, "")}
        return cls(**cleaned)


def _auth0_section_from_env() -> Dict[str, Any]:
    section: Dict[str, Any] = {}
    for key, env_name in (
        ("domain", "AUTH0_DOMAIN"),
        ("clientId", "AUTH0_CLIENT_ID"),
        ("clientSecret", "AUTH0_CLIENT_SECRET"),
    ):
        value = os.getenv(env_name)
        if value:
            section[key] = value

    types = os.getenv("AUTH0_LOG_TYPES")
    if types:
        section["types"] = [t.strip() for t in types.split(",") if t.strip()]
    return section


def load_stream_config(
    config_path: Optional[Path] = None,
    env_file: Optional[Path] = None,
) -> Tuple[Optional["Auth0Options"], StreamSettings]:
    """Load tenant options and engine settings.

    Returns:
        (Auth0Options or None when nothing is configured, StreamSettings)

    Raises:
        ConfigurationError: options or settings fail validation
    """
    # logstream imports this module for StreamSettings
    from logstream.options import parse_options

    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    config_path = config_path or DEFAULT_CONFIG_FILE
    yaml_data = _expand_env_vars(load_yaml(config_path))

    auth0_section = yaml_data.get("auth0") or _auth0_section_from_env()
    stream_section = yaml_data.get("stream") or {}

    settings = StreamSettings.from_dict(stream_section)

    logger.debug(
        "Loaded log stream config",
        extra={
            "path": str(config_path),
            "log_types": auth0_section.get("types") if auth0_section else None,
        },
    )

    options = parse_options(auth0_section) if auth0_section else None
    return options, settings


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "StreamSettings",
    "load_stream_config",
    "load_yaml",
]
