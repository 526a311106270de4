"""Configuration loading for the log stream.

Configuration is loaded from a single YAML file (config/config.yaml by
default) with ``auth0`` and ``stream`` sections. Values may reference
environment variables with ${VAR} or ${VAR:-default}; a .env file is
loaded first.

Usage:
    >>> from config import load_stream_config
    >>> options, settings = load_stream_config()
    >>> settings.timeout_seconds
    30.0

Priority (highest to lowest):

1. The YAML file (after environment expansion)
2. AUTH0_* environment variables, when the file has no auth0 section
3. StreamSettings defaults
"""

from config.config import (
    DEFAULT_CONFIG_FILE,
    StreamSettings,
    load_stream_config,
    load_yaml,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "StreamSettings",
    "load_stream_config",
    "load_yaml",
]
