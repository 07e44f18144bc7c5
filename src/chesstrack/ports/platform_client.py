"""Port interface for platform API clients."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from chesstrack.domain.platform import EventKind, Platform
from chesstrack.domain.stats_models import ProfileSnapshot
from chesstrack.domain.window_counter import TimeWindows, WindowCounts


class PlatformClient(Protocol):
    """Operations the sync engine needs from a platform."""

    platform: Platform

    @property
    def supports_puzzle_activity(self) -> bool:
        """Whether the platform exposes per-attempt puzzle history."""

    def fetch_windowed_event_count(
        self,
        username: str,
        kind: EventKind,
        since_ms: int,
        max_items: int | None = None,
    ) -> int:
        """Count events of a kind at or after a timestamp."""

    def fetch_window_counts(
        self,
        username: str,
        kind: EventKind,
        windows: TimeWindows,
    ) -> WindowCounts:
        """Count events of a kind in the 24h and 7d windows."""

    def fetch_current_profile(self, username: str) -> ProfileSnapshot:
        """Return ratings and lifetime totals."""

    def fetch_puzzle_timestamps(self, token: str, since_ms: int) -> list[int]:
        """Return puzzle attempt timestamps for the token owner."""


PlatformClientProvider = Callable[[Platform], PlatformClient]
