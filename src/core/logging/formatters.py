"""Log formatters: one JSON object per line, or a compact console line."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context
from core.utils.json_serializers import json_serializer

# Extras copied from the LogRecord, with the type each is coerced to
# (None keeps the value as given).
STRUCTURED_FIELDS: dict[str, type | None] = {
    # Request
    "http_status": int,
    "http_method": None,
    "http_url": None,
    "duration_ms": float,
    "response_body": None,
    # Failure
    "error": None,
    "error_type": None,
    "error_category": None,
    # Stream progress
    "state": None,
    "batch_size": int,
    "logs_processed": int,
    "pending_logs": int,
    "last_checkpoint": None,
    "next_checkpoint": None,
    "remaining_quota": int,
    "reset_at": None,
    "log_types": None,
    "warning": None,
    # Token cache
    "token_source": None,
    "expires_at": None,
    # Checkpoint storage
    "path": None,
    "record_bytes": int,
    "trimmed_logs": int,
}

REDACTED = "[REDACTED]"

_SECRET_QUERY_PARAM = re.compile(
    r"([?&](?:client_secret|access_token|token|secret|password)=)[^&\s]*",
    re.IGNORECASE,
)
_BEARER_CREDENTIAL = re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)


def redact(text: str) -> str:
    """Mask secret query parameters and bearer tokens inside ``text``."""
    text = _SECRET_QUERY_PARAM.sub(rf"\1{REDACTED}", text)
    return _BEARER_CREDENTIAL.sub(rf"\1{REDACTED}", text)


def _coerce(name: str, value: Any) -> Any:
    kind = STRUCTURED_FIELDS.get(name)
    if kind is None or value is None:
        return value
    try:
        return kind(value)
    except (TypeError, ValueError):
        return None


def structured_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Known extras present on ``record``, typed and redacted."""
    fields: dict[str, Any] = {}
    for name in STRUCTURED_FIELDS:
        value = getattr(record, name, None)
        if value is None:
            continue
        value = _coerce(name, value)
        if isinstance(value, str):
            value = redact(value)
        fields[name] = value
    return fields


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, for jq or a log shipper.

    Context variables (domain, stream_id, checkpoint) are added when set,
    followed by the structured extras. DEBUG and ERROR+ records carry their
    source location. Secrets in messages, URLs and bodies are redacted.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        entry: dict[str, Any] = {
            "ts": created.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }
        entry.update({key: value for key, value in get_log_context().items() if value})

        if record.levelno == logging.DEBUG or record.levelno >= logging.ERROR:
            entry["file"] = f"{record.filename}:{record.lineno}"

        entry.update(structured_fields(record))

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": redact(str(exc_value)) if exc_value else None,
                "stacktrace": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Compact single-line output for terminals, e.g.::

        14:30:02 INFO [tenant.auth0.com s:abcd cp:900201] Batch acknowledged batch_size=100

    Level names are colored only when stdout is a TTY.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    # Extras shown inline after the message
    INLINE_FIELDS = (
        "batch_size",
        "logs_processed",
        "pending_logs",
        "remaining_quota",
        "http_status",
        "duration_ms",
        "warning",
    )

    def __init__(self, *args, use_colors: bool | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.use_colors = sys.stdout.isatty() if use_colors is None else use_colors

    def _level(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{record.levelname}{self.RESET}" if color else record.levelname

    @staticmethod
    def _tags(record: logging.LogRecord) -> str:
        context = get_log_context()
        checkpoint = getattr(record, "last_checkpoint", None) or context["checkpoint"]

        tags = []
        if context["domain"]:
            tags.append(context["domain"])
        if context["stream_id"]:
            tags.append(f"s:{context['stream_id'][-4:]}")
        if checkpoint:
            tags.append(f"cp:{str(checkpoint)[-12:]}")
        return f"[{' '.join(tags)}] " if tags else ""

    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{clock} {self._level(record)} {self._tags(record)}{redact(record.getMessage())}"

        fields = structured_fields(record)
        inline = [f"{name}={fields[name]}" for name in self.INLINE_FIELDS if name in fields]
        if inline:
            line = f"{line} {' '.join(inline)}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


__all__ = ["ConsoleFormatter", "JSONFormatter", "redact", "structured_fields"]
