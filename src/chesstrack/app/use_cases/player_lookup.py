"""Ad-hoc lookup of a handle across both platforms."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime

from chesstrack.domain.platform import GAME_KINDS, Platform
from chesstrack.domain.window_counter import build_time_windows
from chesstrack.errors import AdapterError, AdapterHttpError, NotFoundError
from chesstrack.ports.platform_client import PlatformClient, PlatformClientProvider
from chesstrack.utils.logger import get_logger
from chesstrack.utils.now import Now

logger = get_logger(__name__)

HTTP_STATUS_NOT_FOUND = 404


@dataclass(slots=True)
class PlayerLookupRow:
    platform: Platform
    handle: str
    rapid_24h: int | None = None
    rapid_7d: int | None = None
    blitz_24h: int | None = None
    blitz_7d: int | None = None
    rapid_rating: int | None = None
    blitz_rating: int | None = None
    puzzle_rating: int | None = None
    last_active_label: str = "inactive"

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["platform"] = self.platform.value
        return payload


def normalize_handle(handle: str, platform: Platform) -> str:
    cleaned = handle.strip()
    if platform == Platform.LICHESS:
        return cleaned.lower()
    return cleaned


def _activity_label(row: PlayerLookupRow) -> str:
    if (row.rapid_24h or 0) + (row.blitz_24h or 0) > 0:
        return "active_24h"
    if (row.rapid_7d or 0) + (row.blitz_7d or 0) > 0:
        return "active_7d"
    return "inactive"


def _lookup_on_platform(
    client: PlatformClient,
    platform: Platform,
    handle: str,
    now: datetime,
) -> PlayerLookupRow | None:
    try:
        profile = client.fetch_current_profile(handle)
    except AdapterHttpError as exc:
        if exc.status_code != HTTP_STATUS_NOT_FOUND:
            logger.warning("%s profile lookup failed for %s: %s", platform, handle, exc)
        return None
    except AdapterError as exc:
        logger.warning("%s profile lookup failed for %s: %s", platform, handle, exc)
        return None
    row = PlayerLookupRow(
        platform=platform,
        handle=handle,
        rapid_rating=profile.rapid_rating,
        blitz_rating=profile.blitz_rating,
        puzzle_rating=profile.puzzle_rating,
    )
    windows = build_time_windows(now)
    for kind in GAME_KINDS:
        try:
            counts = client.fetch_window_counts(handle, kind, windows)
        except AdapterError as exc:
            logger.warning("%s %s counts unavailable for %s: %s", platform, kind, handle, exc)
            continue
        setattr(row, f"{kind.value}_24h", counts.count_24h)
        setattr(row, f"{kind.value}_7d", counts.count_7d)
    row.last_active_label = _activity_label(row)
    return row


def lookup_player(
    handle: str,
    clients: PlatformClientProvider,
    *,
    clock: Callable[[], datetime] = Now.as_datetime,
) -> list[PlayerLookupRow]:
    """Return one row per platform on which ``handle`` resolves.

    Raises:
        ValueError: When the handle is blank.
        NotFoundError: When the handle resolves on neither platform.
    """
    if not handle or not handle.strip():
        raise ValueError("handle is required")
    now = clock()
    rows = []
    for platform in Platform:
        row = _lookup_on_platform(
            clients(platform), platform, normalize_handle(handle, platform), now
        )
        if row is not None:
            rows.append(row)
    if not rows:
        raise NotFoundError(f"Player {handle.strip()!r} was not found on any platform")
    return rows
