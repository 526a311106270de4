"""
Building blocks the log stream is assembled from: categorized errors,
structured logging, the client-credentials token exchange and JSON helpers.
Nothing in here knows about Auth0 log semantics.
"""

from .types import ErrorCategory

__version__ = "0.1.0"

__all__ = ["ErrorCategory"]
