"""Trailing-window event counting."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from chesstrack.utils.now import Now

DAY = timedelta(hours=24)
WEEK = timedelta(days=7)


@dataclass(frozen=True, slots=True)
class TimeWindows:
    """Trailing 24h and 7d windows anchored at ``now``."""

    now: datetime
    since_24h: datetime
    since_7d: datetime

    @property
    def since_24h_ms(self) -> int:
        return Now.to_milliseconds(self.since_24h)

    @property
    def since_7d_ms(self) -> int:
        return Now.to_milliseconds(self.since_7d)


@dataclass(frozen=True, slots=True)
class WindowCounts:
    count_24h: int = 0
    count_7d: int = 0


def build_time_windows(now: datetime | None = None) -> TimeWindows:
    """Return the trailing windows ending at ``now`` (UTC)."""
    anchor = Now.to_utc(now) or Now.as_datetime()
    return TimeWindows(now=anchor, since_24h=anchor - DAY, since_7d=anchor - WEEK)


def count_windows(timestamps_ms: Iterable[int], since_24h_ms: int, since_7d_ms: int) -> WindowCounts:
    """Count events inside the 24h and 7d windows.

    Both thresholds are inclusive. An event counted in the 24h window is also
    counted in the 7d window, so ``count_24h <= count_7d`` holds even when the
    thresholds are passed in the wrong order.

    Args:
        timestamps_ms: Event timestamps in epoch milliseconds.
        since_24h_ms: Start of the 24h window.
        since_7d_ms: Start of the 7d window.

    Returns:
        The window counts.
    """
    lower = min(since_24h_ms, since_7d_ms)
    count_24h = 0
    count_7d = 0
    for ts in timestamps_ms:
        if ts < lower:
            continue
        count_7d += 1
        if ts >= since_24h_ms:
            count_24h += 1
    return WindowCounts(count_24h=count_24h, count_7d=count_7d)


def count_in_windows(timestamps_ms: Iterable[int], windows: TimeWindows) -> WindowCounts:
    """Count events inside the trailing windows of ``windows``."""
    return count_windows(timestamps_ms, windows.since_24h_ms, windows.since_7d_ms)
