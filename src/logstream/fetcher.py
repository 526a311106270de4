"""Auth0 logs endpoint client.

Issues one checkpoint-paginated request per call and classifies the
response instead of raising, so the stream engine can decide between
emitting data, ending cleanly and failing.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Union

import aiohttp

from core.errors import ErrorCategory, FetchError, HttpResponseInfo
from logstream.options import Auth0Options

logger = logging.getLogger(__name__)

# Maximum page size accepted by the logs endpoint
LOGS_PAGE_SIZE = 100

RATE_LIMIT_REMAINING_HEADER = "x-ratelimit-remaining"
RATE_LIMIT_RESET_HEADER = "x-ratelimit-reset"

DEFAULT_TIMEOUT_SECONDS = 30


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class LogsOutcome:
    """Non-empty page. ``next_cursor`` is the ``_id`` of the last entry."""

    batch: list[dict[str, Any]]
    next_cursor: str
    remaining_quota: int | None = None


@dataclass(frozen=True)
class EmptyOutcome:
    """No logs after the cursor."""

    remaining_quota: int | None = None


@dataclass(frozen=True)
class RateLimitedOutcome:
    """Quota exhausted: HTTP 429, or an empty page reporting no remaining quota."""

    reset_at: datetime | None = None


@dataclass(frozen=True)
class ErrorOutcome:
    """HTTP error or network failure."""

    error: FetchError


FetchOutcome = Union[LogsOutcome, EmptyOutcome, RateLimitedOutcome, ErrorOutcome]


# =============================================================================
# Request helpers
# =============================================================================


def build_type_query(types: list[str] | None) -> str | None:
    """Lucene query restricting the log types, e.g. ``type:(s OR f)``."""
    if not types:
        return None
    return f"type:({' OR '.join(types)})"


def build_query_params(cursor: str | None, types: list[str] | None = None) -> dict[str, str]:
    """
    Query string for one page.

    With a cursor the endpoint pages forward from it in ascending order.
    Without one, ``sort=date:1`` asks for the oldest retained logs first so
    the last entry of the page is still the right next cursor.
    """
    params: dict[str, str] = {"take": str(LOGS_PAGE_SIZE)}
    if cursor:
        params["from"] = cursor
    else:
        params["sort"] = "date:1"

    q = build_type_query(types)
    if q:
        params["q"] = q
    return params


def parse_remaining_quota(headers: Any) -> int | None:
    value = headers.get(RATE_LIMIT_REMAINING_HEADER) if headers else None
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_reset_at(headers: Any) -> datetime | None:
    value = headers.get(RATE_LIMIT_RESET_HEADER) if headers else None
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


# =============================================================================
# Fetcher
# =============================================================================


class LogFetcher:
    """Async client for the Management API ``/api/v2/logs`` endpoint."""

    def __init__(
        self,
        options: Auth0Options,
        session: aiohttp.ClientSession | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.url = options.logs_url
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"Accept": "application/json"})
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None

    async def fetch(
        self,
        cursor: str | None,
        token: str,
        types: list[str] | None = None,
    ) -> FetchOutcome:
        """
        Fetch the page of logs after ``cursor``.

        Args:
            cursor: Checkpoint ``_id`` to page from, None for the start of
                retention
            token: Management API bearer token
            types: Optional log type codes to restrict the query to

        Returns:
            One of LogsOutcome, EmptyOutcome, RateLimitedOutcome, ErrorOutcome
        """
        session = await self._ensure_session()
        params = build_query_params(cursor, types)
        start_time = asyncio.get_running_loop().time()

        logger.debug(
            "Logs request starting",
            extra={"http_url": self.url, "last_checkpoint": cursor, "log_types": types},
        )

        try:
            async with session.get(
                self.url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                duration_ms = (asyncio.get_running_loop().time() - start_time) * 1000

                if response.status == 429:
                    reset_at = parse_reset_at(response.headers)
                    logger.warning(
                        "Logs request rate limited",
                        extra={"http_status": 429, "duration_ms": round(duration_ms, 1)},
                    )
                    return RateLimitedOutcome(reset_at=reset_at)

                if response.status != 200:
                    return ErrorOutcome(await self._error_from_response(response, duration_ms))

                body = await response.json()
                remaining = parse_remaining_quota(response.headers)
                reset_at = parse_reset_at(response.headers)

        except asyncio.TimeoutError as e:
            logger.warning(
                "Logs request timeout",
                extra={"http_url": self.url, "error_category": "transient"},
            )
            error = FetchError(
                f"Timeout after {self.timeout_seconds}s: {self.url}",
                cause=e,
                category=ErrorCategory.TRANSIENT,
            )
            return ErrorOutcome(error)

        except aiohttp.ClientError as e:
            logger.error(
                "Logs request connection error",
                exc_info=True,
                extra={"http_url": self.url, "error_category": "transient"},
            )
            error = FetchError(
                f"Connection error: {e}", cause=e, category=ErrorCategory.TRANSIENT
            )
            return ErrorOutcome(error)

        except ValueError as e:
            error = FetchError(
                f"Logs response is not valid JSON: {e}", cause=e, category=ErrorCategory.PERMANENT
            )
            return ErrorOutcome(error)

        return self._classify_body(body, remaining, reset_at, duration_ms)

    async def _error_from_response(self, response, duration_ms: float) -> FetchError:
        try:
            text = await response.text()
        except (aiohttp.ClientError, UnicodeDecodeError):
            text = ""

        info = HttpResponseInfo(
            status=response.status,
            text=text,
            headers={k: v for k, v in (response.headers or {}).items()},
        )
        error = FetchError(f"Logs request failed: HTTP {response.status}", response=info)

        logger.warning(
            "Logs request failed",
            extra={
                "http_url": self.url,
                "http_status": response.status,
                "error_category": error.category.value,
                "response_body": text[:500],
                "duration_ms": round(duration_ms, 1),
            },
        )
        return error

    def _classify_body(
        self, body: Any, remaining: int | None, reset_at: datetime | None, duration_ms: float
    ) -> FetchOutcome:
        if not isinstance(body, list):
            return ErrorOutcome(
                FetchError(
                    f"Unexpected logs response body: {type(body).__name__}",
                    category=ErrorCategory.PERMANENT,
                )
            )

        if not body:
            if remaining is not None and remaining < 1:
                # Nothing more can be asked for until the quota resets
                return RateLimitedOutcome(reset_at=reset_at)
            logger.debug(
                "No logs after checkpoint",
                extra={"remaining_quota": remaining, "duration_ms": round(duration_ms, 1)},
            )
            return EmptyOutcome(remaining_quota=remaining)

        last = body[-1]
        next_cursor = last.get("_id") if isinstance(last, dict) else None
        if not next_cursor:
            return ErrorOutcome(
                FetchError(
                    "Last log entry has no _id, cannot advance checkpoint",
                    category=ErrorCategory.PERMANENT,
                )
            )

        log_level = logging.INFO if duration_ms > 2000 else logging.DEBUG
        logger.log(
            log_level,
            "Slow logs request" if duration_ms > 2000 else "Logs request succeeded",
            extra={
                "batch_size": len(body),
                "remaining_quota": remaining,
                "duration_ms": round(duration_ms, 1),
            },
        )
        return LogsOutcome(batch=body, next_cursor=str(next_cursor), remaining_quota=remaining)


__all__ = [
    "LOGS_PAGE_SIZE",
    "LogFetcher",
    "FetchOutcome",
    "LogsOutcome",
    "EmptyOutcome",
    "RateLimitedOutcome",
    "ErrorOutcome",
    "build_query_params",
    "build_type_query",
]
