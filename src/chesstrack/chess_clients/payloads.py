"""Typed views of platform responses.

Every model ignores unknown keys and degrades malformed scalar fields to None
so a single odd field never fails a whole response.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from chesstrack.utils.to_int import to_int

PUZZLE_SECONDS_THRESHOLD = 1_000_000_000_000


def _dict_or_none(value: object) -> object:
    return value if isinstance(value, dict) else None


def _str_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _list_or_empty(value: object) -> list[object]:
    return value if isinstance(value, list) else []


def _perf_map(value: object) -> dict[str, object]:
    if not isinstance(value, dict):
        return {}
    return {str(key): perf for key, perf in value.items() if isinstance(perf, dict)}


LenientInt = Annotated[int | None, BeforeValidator(to_int)]
LenientStr = Annotated[str | None, BeforeValidator(_str_or_none)]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LichessGameRecord(_Payload):
    last_move_at: LenientInt = Field(default=None, alias="lastMoveAt")
    created_at: LenientInt = Field(default=None, alias="createdAt")

    @property
    def timestamp_ms(self) -> int | None:
        return self.last_move_at if self.last_move_at is not None else self.created_at


class LichessPerf(_Payload):
    rating: LenientInt = None
    games: LenientInt = None


class LichessUserPayload(_Payload):
    perfs: Annotated[dict[str, LichessPerf], BeforeValidator(_perf_map)] = Field(default_factory=dict)

    def perf(self, name: str) -> LichessPerf:
        return self.perfs.get(name) or LichessPerf()


class LichessPuzzleRecord(_Payload):
    date: LenientInt = None
    ts: LenientInt = None
    timestamp: LenientInt = None
    created_at: LenientInt = Field(default=None, alias="createdAt")

    @property
    def timestamp_ms(self) -> int | None:
        for value in (self.date, self.ts, self.timestamp, self.created_at):
            if value is None:
                continue
            if value < PUZZLE_SECONDS_THRESHOLD:
                return value * 1000
            return value
        return None


class ChesscomGameRecord(_Payload):
    time_class: LenientStr = None
    end_time: LenientInt = None

    @property
    def timestamp_ms(self) -> int | None:
        if self.end_time is None:
            return None
        return self.end_time * 1000


class ChesscomArchiveIndex(_Payload):
    archives: Annotated[list[object], BeforeValidator(_list_or_empty)] = Field(default_factory=list)

    def urls(self) -> list[str]:
        return [url for url in self.archives if isinstance(url, str)]


class ChesscomArchive(_Payload):
    games: Annotated[list[object], BeforeValidator(_list_or_empty)] = Field(default_factory=list)


class ChesscomRatingPoint(_Payload):
    rating: LenientInt = None


class ChesscomRecord(_Payload):
    win: LenientInt = None
    loss: LenientInt = None
    draw: LenientInt = None

    @property
    def total(self) -> int | None:
        parts = (self.win, self.loss, self.draw)
        if all(part is None for part in parts):
            return None
        return sum(part or 0 for part in parts)


class ChesscomTimeClassStats(_Payload):
    last: Annotated[ChesscomRatingPoint | None, BeforeValidator(_dict_or_none)] = None
    record: Annotated[ChesscomRecord | None, BeforeValidator(_dict_or_none)] = None

    @property
    def rating(self) -> int | None:
        return self.last.rating if self.last else None

    @property
    def total(self) -> int | None:
        return self.record.total if self.record else None


class ChesscomTactics(_Payload):
    highest: Annotated[ChesscomRatingPoint | None, BeforeValidator(_dict_or_none)] = None
    last: Annotated[ChesscomRatingPoint | None, BeforeValidator(_dict_or_none)] = None

    @property
    def rating(self) -> int | None:
        for point in (self.highest, self.last):
            if point is not None and point.rating is not None:
                return point.rating
        return None


class ChesscomStatsPayload(_Payload):
    chess_rapid: Annotated[ChesscomTimeClassStats | None, BeforeValidator(_dict_or_none)] = None
    chess_blitz: Annotated[ChesscomTimeClassStats | None, BeforeValidator(_dict_or_none)] = None
    tactics: Annotated[ChesscomTactics | None, BeforeValidator(_dict_or_none)] = None
