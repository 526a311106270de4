"""Context variables for structured logging."""

from contextvars import ContextVar
from typing import Dict, Optional

_domain: ContextVar[str] = ContextVar("domain", default="")
_stream_id: ContextVar[str] = ContextVar("stream_id", default="")
_checkpoint: ContextVar[str] = ContextVar("checkpoint", default="")


def set_log_context(
    domain: Optional[str] = None,
    stream_id: Optional[str] = None,
    checkpoint: Optional[str] = None,
) -> None:
    if domain is not None:
        _domain.set(domain)
    if stream_id is not None:
        _stream_id.set(stream_id)
    if checkpoint is not None:
        _checkpoint.set(checkpoint)


def get_log_context() -> Dict[str, str]:
    return {
        "domain": _domain.get(),
        "stream_id": _stream_id.get(),
        "checkpoint": _checkpoint.get(),
    }


def clear_log_context() -> None:
    _domain.set("")
    _stream_id.set("")
    _checkpoint.set("")
