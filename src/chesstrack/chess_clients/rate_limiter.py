"""Per-platform outbound request spacing."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from chesstrack.domain.platform import Platform


class PlatformRateLimiter:
    """Serialize requests so consecutive calls are at least ``min_interval_s`` apart.

    The lock is held while waiting, so callers on other threads queue behind
    the one currently spacing itself out.
    """

    def __init__(
        self,
        min_interval_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval_s = max(min_interval_s, 0.0)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request_at: float | None = None

    def acquire(self) -> float:
        """Block until the next request may be sent and return the time waited."""
        with self._lock:
            waited = 0.0
            if self._last_request_at is not None:
                elapsed = self._clock() - self._last_request_at
                waited = self.min_interval_s - elapsed
                if waited > 0:
                    self._sleep(waited)
                else:
                    waited = 0.0
            self._last_request_at = self._clock()
            return waited


_LIMITERS: dict[Platform, PlatformRateLimiter] = {}
_LIMITERS_LOCK = threading.Lock()


def get_rate_limiter(platform: Platform, min_interval_s: float) -> PlatformRateLimiter:
    """Return the process-wide limiter for a platform.

    The first caller fixes the spacing; later callers share the same instance.
    """
    with _LIMITERS_LOCK:
        limiter = _LIMITERS.get(platform)
        if limiter is None:
            limiter = PlatformRateLimiter(min_interval_s)
            _LIMITERS[platform] = limiter
        return limiter


def reset_rate_limiters() -> None:
    """Drop all shared limiters."""
    with _LIMITERS_LOCK:
        _LIMITERS.clear()
