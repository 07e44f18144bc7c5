from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import requests

from chesstrack.chess_clients.base_platform_client import PlatformClientContext
from chesstrack.chess_clients.rate_limiter import PlatformRateLimiter
from chesstrack.config import Settings
from chesstrack.utils.logger import get_logger

NOT_JSON = object()


@dataclass(slots=True)
class FakeResponse:
    status_code: int = 200
    json_data: object = None
    lines: list[str] | None = None
    headers: dict | None = None
    url: str = ""
    chunks: list[bytes] | None = None
    closed: bool = False

    def iter_lines(self) -> Iterable[bytes]:
        for line in self.lines or []:
            yield line.encode("utf-8")

    def iter_content(self, chunk_size: int = 1) -> Iterable[bytes]:
        if self.chunks is not None:
            yield from self.chunks
        elif self.json_data is NOT_JSON:
            yield b"<html>maintenance</html>"
        else:
            yield json.dumps(self.json_data if self.json_data is not None else {}).encode("utf-8")

    def close(self) -> None:
        self.closed = True


def ndjson_lines(*records: object) -> list[str]:
    return [record if isinstance(record, str) else json.dumps(record) for record in records]


@dataclass
class FakeSession:
    """Returns queued responses (or raises queued exceptions) in call order."""

    responses: list[FakeResponse | Exception] = field(default_factory=list)
    calls: list[dict[str, object]] = field(default_factory=list)

    def get(self, url: str, **kwargs: object) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected request to {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        item.url = url
        return item


def fixed_clock(value: datetime):
    return lambda: value


def make_context(
    session: FakeSession,
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
    monotonic: Callable[[], float] | None = None,
) -> PlatformClientContext:
    return PlatformClientContext(
        settings=settings or Settings(),
        logger=get_logger("tests.http_fakes"),
        rate_limiter=PlatformRateLimiter(0.0),
        session=session,  # type: ignore[arg-type]
        clock=fixed_clock(now or datetime(2024, 3, 15, 12, 0, tzinfo=UTC)),
        monotonic=monotonic or (lambda: 0.0),
    )


def timeout_error() -> requests.Timeout:
    return requests.Timeout("read timed out")


class SteppingClock:
    """Monotonic clock that advances ``step`` seconds on every read."""

    def __init__(self, step: float) -> None:
        self.value = 0.0
        self.step = step

    def __call__(self) -> float:
        current = self.value
        self.value += self.step
        return current
