"""Platform and event-kind enumerations."""

from __future__ import annotations

from enum import StrEnum


class Platform(StrEnum):
    LICHESS = "lichess"
    CHESSCOM = "chesscom"

    @classmethod
    def parse(cls, value: str | Platform | None) -> Platform:
        """Return the platform for a tag, raising ``ValueError`` when unknown."""
        if isinstance(value, Platform):
            return value
        normalized = (value or "").strip().lower().replace(".", "").replace("_", "")
        for platform in cls:
            if platform.value == normalized:
                return platform
        raise ValueError(f"Unknown platform: {value!r}")


class EventKind(StrEnum):
    RAPID = "rapid"
    BLITZ = "blitz"
    PUZZLE = "puzzle"


GAME_KINDS: tuple[EventKind, ...] = (EventKind.RAPID, EventKind.BLITZ)
