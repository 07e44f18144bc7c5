"""Chess.com archive and stats client."""

from __future__ import annotations

import re
from datetime import datetime

from requests.utils import quote

from chesstrack.chess_clients.base_platform_client import BasePlatformClient, PlatformClientContext
from chesstrack.chess_clients.payload_parsing import iter_records
from chesstrack.chess_clients.payloads import (
    ChesscomArchive,
    ChesscomArchiveIndex,
    ChesscomGameRecord,
    ChesscomStatsPayload,
)
from chesstrack.domain.platform import GAME_KINDS, EventKind, Platform
from chesstrack.domain.stats_models import ProfileSnapshot

ARCHIVE_MONTH_PATTERN = re.compile(r"/games/(\d{4})/(\d{2})/?$")
FIRST_WEEK_LAST_DAY = 7


def select_archive_months(now: datetime) -> list[tuple[int, int]]:
    """Return the (year, month) archives that can hold games from the last 7 days.

    The current and previous month are always included; during the first week
    of a month the month before that is added as well.

    Args:
        now: Current UTC time.

    Returns:
        Month keys, newest first.
    """

    months = [(now.year, now.month)]
    year, month = now.year, now.month
    extra = 2 if now.day <= FIRST_WEEK_LAST_DAY else 1
    for _ in range(extra):
        month -= 1
        if month == 0:
            year, month = year - 1, 12
        months.append((year, month))
    return months


def filter_archive_urls(urls: list[str], months: list[tuple[int, int]]) -> list[str]:
    """Keep the archive URLs whose month is in ``months``."""

    wanted = set(months)
    selected = []
    for url in urls:
        match = ARCHIVE_MONTH_PATTERN.search(url)
        if not match:
            continue
        if (int(match.group(1)), int(match.group(2))) in wanted:
            selected.append(url)
    return selected


_ArchiveKey = tuple[str, tuple[tuple[int, int], ...]]


class ChesscomClient(BasePlatformClient):
    """Client for Chess.com API interactions.

    Games for both tracked speeds come from the same monthly archives, so
    the parsed games of the most recently requested username are kept until
    another username is requested.
    """

    platform = Platform.CHESSCOM

    def __init__(self, context: PlatformClientContext) -> None:
        super().__init__(context)
        self._games_cache: tuple[_ArchiveKey, list[ChesscomGameRecord]] | None = None

    def _url(self, path: str) -> str:
        return f"{self.settings.chesscom.base_url.rstrip('/')}{path}"

    def _player_path(self, username: str) -> str:
        return f"/pub/player/{quote(username.strip().lower(), safe='')}"

    def fetch_event_timestamps(
        self,
        username: str,
        kind: EventKind,
        since_ms: int,
        max_items: int,
    ) -> list[int]:
        """Return end timestamps of ``kind`` games since ``since_ms``, newest first."""

        if kind not in GAME_KINDS:
            raise ValueError(f"Chess.com archives do not track {kind}")
        timestamps = sorted(
            (
                ts
                for game in self._recent_games(username)
                if game.time_class == kind.value
                and (ts := game.timestamp_ms) is not None
                and ts >= since_ms
            ),
            reverse=True,
        )
        return timestamps[:max_items]

    def fetch_current_profile(self, username: str) -> ProfileSnapshot:
        """Return ratings and lifetime game counts from the stats endpoint.

        Lifetime totals are the win/loss/draw record sums. Chess.com has no
        public puzzle attempt count, so ``puzzle_total`` stays None.
        """

        payload = self._get_json(
            self._url(f"{self._player_path(username)}/stats"), ChesscomStatsPayload
        )
        if payload is None:
            return ProfileSnapshot()
        rapid = payload.chess_rapid
        blitz = payload.chess_blitz
        return ProfileSnapshot(
            rapid_rating=rapid.rating if rapid else None,
            blitz_rating=blitz.rating if blitz else None,
            puzzle_rating=payload.tactics.rating if payload.tactics else None,
            rapid_total=rapid.total if rapid else None,
            blitz_total=blitz.total if blitz else None,
        )

    def _recent_games(self, username: str) -> list[ChesscomGameRecord]:
        months = tuple(select_archive_months(self._now_utc()))
        key = (username.strip().lower(), months)
        if self._games_cache is not None and self._games_cache[0] == key:
            return self._games_cache[1]
        self._games_cache = None
        archive_urls = filter_archive_urls(self._fetch_archive_index(username), list(months))
        games: list[ChesscomGameRecord] = []
        for url in archive_urls:
            games.extend(self._fetch_archive_games(url))
        self.logger.debug(
            "Chess.com archives for %s: %s month(s), %s game(s)",
            username,
            len(archive_urls),
            len(games),
        )
        self._games_cache = (key, games)
        return games

    def _fetch_archive_index(self, username: str) -> list[str]:
        payload = self._get_json(
            self._url(f"{self._player_path(username)}/games/archives"), ChesscomArchiveIndex
        )
        if payload is None:
            return []
        return payload.urls()

    def _fetch_archive_games(self, url: str) -> list[ChesscomGameRecord]:
        payload = self._get_json(url, ChesscomArchive)
        if payload is None:
            return []
        return list(iter_records(payload.games, ChesscomGameRecord, self.logger))
