"""Lichess games, profile and puzzle activity client."""

from __future__ import annotations

from requests.utils import quote

from chesstrack.chess_clients.base_platform_client import (
    BasePlatformClient,
    PlatformClientContext,
    _auth_headers,
)
from chesstrack.chess_clients.payload_parsing import iter_records
from chesstrack.chess_clients.payloads import (
    LichessGameRecord,
    LichessPuzzleRecord,
    LichessUserPayload,
)
from chesstrack.domain.platform import GAME_KINDS, EventKind, Platform
from chesstrack.domain.stats_models import ProfileSnapshot

NDJSON_HEADERS = {"Accept": "application/x-ndjson"}
_EXPORT_FLAGS = {
    "moves": "false",
    "clocks": "false",
    "evals": "false",
    "opening": "false",
    "pgnInJson": "false",
}


class LichessClient(BasePlatformClient):
    """Client for Lichess API interactions."""

    platform = Platform.LICHESS

    def __init__(self, context: PlatformClientContext) -> None:
        super().__init__(context)

    @property
    def supports_puzzle_activity(self) -> bool:
        return True

    def _url(self, path: str) -> str:
        return f"{self.settings.lichess.base_url.rstrip('/')}{path}"

    def fetch_event_timestamps(
        self,
        username: str,
        kind: EventKind,
        since_ms: int,
        max_items: int,
    ) -> list[int]:
        """Return game end timestamps for ``username`` in one perf since ``since_ms``.

        Args:
            username: Lichess username.
            kind: Game speed (rapid or blitz).
            since_ms: Inclusive lower bound in epoch milliseconds.
            max_items: Maximum number of games requested.

        Returns:
            Timestamps in epoch milliseconds, newest first as exported.
        """

        if kind not in GAME_KINDS:
            raise ValueError(f"Lichess game export does not support {kind}")
        params: dict[str, object] = {
            "since": since_ms,
            "max": max_items,
            "perfType": kind.value,
            **_EXPORT_FLAGS,
        }
        headers = {**NDJSON_HEADERS, **_auth_headers(self.settings.lichess_token)}
        lines = self._get_lines(
            self._url(f"/api/games/user/{quote(username, safe='')}"),
            params=params,
            headers=headers,
        )
        timestamps = []
        for record in iter_records(lines, LichessGameRecord, self.logger):
            ts = record.timestamp_ms
            if ts is None or ts < since_ms:
                continue
            timestamps.append(ts)
        self.logger.debug(
            "Lichess %s export for %s returned %s game(s) since %s",
            kind,
            username,
            len(timestamps),
            since_ms,
        )
        return timestamps

    def fetch_current_profile(self, username: str) -> ProfileSnapshot:
        """Return ratings and lifetime game counts from the public profile.

        Missing perfs come back as None.
        """

        payload = self._get_json(
            self._url(f"/api/user/{quote(username, safe='')}"), LichessUserPayload
        )
        if payload is None:
            return ProfileSnapshot()
        rapid = payload.perf("rapid")
        blitz = payload.perf("blitz")
        puzzle = payload.perf("puzzle")
        return ProfileSnapshot(
            rapid_rating=rapid.rating,
            blitz_rating=blitz.rating,
            puzzle_rating=puzzle.rating,
            rapid_total=rapid.games,
            blitz_total=blitz.games,
            puzzle_total=puzzle.games,
        )

    def fetch_puzzle_timestamps(self, token: str, since_ms: int) -> list[int]:
        """Return puzzle attempt timestamps for the account owning ``token``.

        Activity is returned newest first, so reading stops at the first entry
        older than ``since_ms``.

        Raises:
            AdapterAuthError: When Lichess rejects the token.
        """

        max_items = self.settings.lichess.puzzle_activity_max
        lines = self._get_lines(
            self._url("/api/puzzle/activity"),
            params={"max": max_items},
            headers={**NDJSON_HEADERS, **_auth_headers(token)},
        )
        timestamps: list[int] = []
        seen = 0
        stopped_early = False
        for record in iter_records(lines, LichessPuzzleRecord, self.logger):
            seen += 1
            ts = record.timestamp_ms
            if ts is None:
                continue
            if ts < since_ms:
                stopped_early = True
                break
            timestamps.append(ts)
        if not stopped_early and seen >= max_items:
            self.logger.warning(
                "Lichess puzzle activity hit the %s entry cap; counts may be truncated",
                max_items,
            )
        return timestamps

