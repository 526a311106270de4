"""Logging setup for processes that host a log stream."""

import logging
import secrets
import sys
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_LOG_DIR = Path("logs")
DEFAULT_BACKUP_COUNT = 7

# HTTP client chatter that drowns out stream progress
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "aiohttp.client",
    "urllib3",
    "asyncio",
]


def _level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(value.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {value!r}")
    return resolved


def get_log_file_path(log_dir: Path, domain: str | None = None) -> Path:
    """
    Dated log file location for one run, e.g.
    ``logs/2026-01-05/tenant.eu.auth0.com_0105_1430.log``.
    Runs without a tenant are filed under ``logstream``.
    """
    now = datetime.now()
    stem = domain or "logstream"
    return log_dir / now.strftime("%Y-%m-%d") / f"{stem}_{now.strftime('%m%d_%H%M')}.log"


def _file_handler(path: Path, level: int, json_format: bool, when: str, backup_count: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(path, when=when, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter(use_colors=False))
    return handler


def setup_logging(
    name: str = "logstream",
    domain: str | None = None,
    log_dir: Path | None = None,
    json_format: bool = True,
    console_level: int | str = logging.INFO,
    file_level: int | str = logging.DEBUG,
    rotation_when: str = "midnight",
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
    log_to_stdout: bool = False,
) -> logging.Logger:
    """
    Replace the root logger's handlers for a log shipping process.

    By default records go to the console (human-readable) and to a daily
    rotated file under ``log_dir`` (JSON). With ``log_to_stdout`` a single
    stdout handler at ``file_level`` is installed instead, formatted as JSON
    unless ``json_format`` is False; use it where a container runtime
    collects stdout.

    ``domain`` is set as log context so every record names the tenant.
    Levels accept ints or names such as ``"INFO"``.
    """
    console_level = _level(console_level)
    file_level = _level(file_level)
    if domain:
        set_log_context(domain=domain)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    stdout = logging.StreamHandler(sys.stdout)
    log_file: Path | None = None
    if log_to_stdout:
        stdout.setLevel(file_level)
        stdout.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    else:
        stdout.setLevel(console_level)
        stdout.setFormatter(ConsoleFormatter())
        log_file = get_log_file_path(log_dir or DEFAULT_LOG_DIR, domain=domain)
        root.addHandler(_file_handler(log_file, file_level, json_format, rotation_when, backup_count))
    root.addHandler(stdout)

    if suppress_noisy:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug("Logging configured", extra={"path": str(log_file) if log_file else None})
    return logger


def generate_stream_id() -> str:
    """Identifier for one LogStream instance: ``s-YYYYMMDD-HHMMSS-xxxx``."""
    return f"s-{datetime.now().strftime('%Y%m%d-%H%M%S')}-{secrets.token_hex(2)}"
