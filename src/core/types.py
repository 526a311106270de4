"""Shared enums."""

from enum import Enum


class ErrorCategory(Enum):
    """
    What a failed run means for the next one.

    The stream never retries in band. A failure is terminal and the host
    reruns from the durable checkpoint; the category says whether that
    rerun can be expected to work.

    TRANSIENT: network trouble, 5xx, 429, storage hiccups
    AUTH: credentials rejected or token refused (401)
    PERMANENT: bad options, illegal operation, other 4xx
    UNKNOWN: could not tell
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


__all__ = ["ErrorCategory"]
