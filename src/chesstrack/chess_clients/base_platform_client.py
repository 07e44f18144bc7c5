from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import requests

from chesstrack.chess_clients.payload_parsing import ModelT, parse_json_payload
from chesstrack.chess_clients.rate_limiter import PlatformRateLimiter
from chesstrack.config import Settings
from chesstrack.domain.platform import EventKind, Platform
from chesstrack.domain.stats_models import ProfileSnapshot
from chesstrack.domain.window_counter import TimeWindows, WindowCounts, count_in_windows
from chesstrack.errors import (
    AdapterAuthError,
    AdapterHttpError,
    AdapterTransportError,
    RateLimitError,
)
from chesstrack.utils.now import Now

HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_AUTH_ERRORS = (401, 403)
BODY_CHUNK_SIZE = 64 * 1024


@dataclass(slots=True)
class PlatformClientContext:
    """Shared context for platform API clients.

    Attributes:
        settings: Application settings used for API calls.
        logger: Logger for client-specific messages.
        rate_limiter: Limiter shared by every client talking to the same platform.
        session: HTTP session used for requests.
        clock: Source of the current UTC time.
        monotonic: Clock used for the per-request deadline.
    """

    settings: Settings
    logger: logging.Logger
    rate_limiter: PlatformRateLimiter
    session: requests.Session = field(default_factory=requests.Session)
    clock: Callable[[], datetime] = Now.as_datetime
    monotonic: Callable[[], float] = time.monotonic


class BasePlatformClient:
    """Base class for platform API clients.

    Subclasses implement event timestamp fetching and profile parsing; this
    class owns the rate-limited, timeout-bounded HTTP call and the mapping of
    transport and status failures onto the adapter error types.
    """

    platform: Platform

    def __init__(self, context: PlatformClientContext) -> None:
        """Initialize the client with shared context.

        Args:
            context: Context containing settings, logger, limiter and session.
        """

        self._context = context

    @property
    def settings(self) -> Settings:
        return self._context.settings

    @property
    def logger(self) -> logging.Logger:
        return self._context.logger

    @property
    def supports_puzzle_activity(self) -> bool:
        return False

    def fetch_event_timestamps(
        self,
        username: str,
        kind: EventKind,
        since_ms: int,
        max_items: int,
    ) -> list[int]:
        """Return event timestamps (epoch ms) of ``kind`` at or after ``since_ms``."""

        raise NotImplementedError("Subclasses must implement fetch_event_timestamps")

    def fetch_current_profile(self, username: str) -> ProfileSnapshot:
        """Return current ratings and lifetime totals for ``username``."""

        raise NotImplementedError("Subclasses must implement fetch_current_profile")

    def fetch_puzzle_timestamps(self, token: str, since_ms: int) -> list[int]:
        """Return puzzle attempt timestamps for the token owner."""

        raise NotImplementedError(f"{self.platform} does not expose puzzle activity")

    def fetch_windowed_event_count(
        self,
        username: str,
        kind: EventKind,
        since_ms: int,
        max_items: int | None = None,
    ) -> int:
        """Count events of ``kind`` at or after ``since_ms``.

        Args:
            username: Platform username.
            kind: Event kind to count.
            since_ms: Inclusive lower bound in epoch milliseconds.
            max_items: Page cap; defaults to the 24h cap when the threshold lies
                within the last day and to the 7d cap otherwise.

        Returns:
            Number of events at or after the threshold.

        Raises:
            AdapterTransportError: On network failure or timeout.
            AdapterHttpError: On a non-success status.
        """

        if max_items is None:
            max_items = self._default_page_cap(since_ms)
        timestamps = self.fetch_event_timestamps(username, kind, since_ms, max_items)
        return sum(1 for ts in timestamps if ts >= since_ms)

    def fetch_window_counts(
        self,
        username: str,
        kind: EventKind,
        windows: TimeWindows,
    ) -> WindowCounts:
        """Fetch events once for the 7d window and count both windows."""

        timestamps = self.fetch_event_timestamps(
            username,
            kind,
            windows.since_7d_ms,
            self.settings.sync.history_max_7d,
        )
        return count_in_windows(timestamps, windows)

    def _default_page_cap(self, since_ms: int) -> int:
        day_ago_ms = int(self._now_utc().timestamp() * 1000) - 24 * 3600 * 1000
        if since_ms >= day_ago_ms:
            return self.settings.sync.history_max_24h
        return self.settings.sync.history_max_7d

    def _now_utc(self) -> datetime:
        return self._context.clock()

    def _get(
        self,
        url: str,
        *,
        params: dict[str, object] | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """Issue a rate-limited GET and map failures onto adapter errors.

        The body is streamed; read it through ``_get_lines`` or ``_get_json``
        so the overall request deadline applies to the body as well.

        Args:
            url: URL to request.
            params: Query parameters.
            headers: Extra headers merged over the defaults.

        Returns:
            The successful response.

        Raises:
            AdapterTransportError: On connection failure or timeout.
            RateLimitError: On HTTP 429.
            AdapterAuthError: On HTTP 401/403.
            AdapterHttpError: On any other non-success status.
        """

        request_headers = {"User-Agent": self.settings.user_agent}
        if headers:
            request_headers.update(headers)
        self._context.rate_limiter.acquire()
        try:
            response = self._context.session.get(
                url,
                params=params,
                headers=request_headers,
                timeout=self.settings.request_timeout_s,
                stream=True,
            )
        except requests.Timeout as exc:
            raise AdapterTransportError(f"{self.platform} request timed out: {url}") from exc
        except requests.RequestException as exc:
            raise AdapterTransportError(f"{self.platform} request failed: {exc}") from exc
        _raise_for_status(response, self.platform, url)
        return response

    def _get_lines(
        self,
        url: str,
        *,
        params: dict[str, object] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Iterator[bytes]:
        """Yield body lines of a streamed response within the request deadline."""

        started = self._context.monotonic()
        response = self._get(url, params=params, headers=headers)
        try:
            for line in response.iter_lines():
                self._check_deadline(started, url)
                yield line
        except requests.RequestException as exc:
            raise AdapterTransportError(f"{self.platform} response interrupted: {exc}") from exc
        finally:
            response.close()

    def _get_json(
        self,
        url: str,
        model: type[ModelT],
        *,
        params: dict[str, object] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ModelT | None:
        """Read a JSON body within the request deadline and validate it.

        Returns:
            The validated payload, or None when the body is unusable.
        """

        started = self._context.monotonic()
        response = self._get(url, params=params, headers=headers)
        chunks: list[bytes] = []
        try:
            for chunk in response.iter_content(chunk_size=BODY_CHUNK_SIZE):
                self._check_deadline(started, url)
                chunks.append(chunk)
        except requests.RequestException as exc:
            raise AdapterTransportError(f"{self.platform} response interrupted: {exc}") from exc
        finally:
            response.close()
        return parse_json_payload(b"".join(chunks), model, self.logger)

    def _check_deadline(self, started: float, url: str) -> None:
        elapsed = self._context.monotonic() - started
        if elapsed > self.settings.request_timeout_s:
            raise AdapterTransportError(
                f"{self.platform} request exceeded {self.settings.request_timeout_s:.0f}s: {url}"
            )


def _raise_for_status(response: requests.Response, platform: Platform, url: str) -> None:
    status_code = response.status_code
    if status_code < 400:
        return
    message = f"{platform} returned HTTP {status_code} for {url}"
    if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
        raise RateLimitError(
            f"{platform} rate limit exceeded (429)",
            response=response,
            retry_after=_parse_retry_after((response.headers or {}).get("Retry-After")),
        )
    if status_code in HTTP_STATUS_AUTH_ERRORS:
        raise AdapterAuthError(message, status_code=status_code, response=response)
    raise AdapterHttpError(message, status_code=status_code, response=response)


def _auth_headers(token: str | None) -> dict[str, str]:
    """Return the bearer authorization header for a token, if any."""

    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def _parse_retry_after(value: str | None) -> float | None:
    """Parse Retry-After header values.

    Args:
        value: Retry-After header value.

    Returns:
        Number of seconds to wait, or None.
    """

    if not value:
        return None
    seconds = _parse_retry_after_seconds(value)
    if seconds is not None:
        return seconds
    return _parse_retry_after_date(value)


def _parse_retry_after_seconds(value: str) -> float | None:
    try:
        seconds = float(value)
    except ValueError:
        return None
    return max(seconds, 0.0)


def _parse_retry_after_date(value: str) -> float | None:
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    delta = (dt - datetime.now(UTC)).total_seconds()
    return max(delta, 0.0)
