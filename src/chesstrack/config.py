from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from chesstrack.errors import ConfigurationError

load_dotenv()

DEFAULT_DATA_DIR = Path(os.getenv("CHESSTRACK_DATA_DIR", "data"))
DEFAULT_USER_AGENT = "chesstrack/0.1 (+https://github.com/chesstrack)"
MIN_REQUEST_TIMEOUT_S = 8.0
MAX_REQUEST_TIMEOUT_S = 15.0
STORE_BACKENDS = ("duckdb", "postgres")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from exc


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _clamp_timeout(value: float) -> float:
    return min(max(value, MIN_REQUEST_TIMEOUT_S), MAX_REQUEST_TIMEOUT_S)


@dataclass(slots=True)
class LichessSettings:
    """Lichess-specific configuration."""

    base_url: str = field(
        default_factory=lambda: os.getenv("LICHESS_BASE_URL", "https://lichess.org")
    )
    token: str | None = field(default_factory=lambda: os.getenv("LICHESS_TOKEN") or None)
    encryption_key: str | None = field(
        default_factory=lambda: os.getenv("LICHESS_ENCRYPTION_KEY") or None
    )
    min_interval_s: float = field(
        default_factory=lambda: _env_float("CHESSTRACK_LICHESS_MIN_INTERVAL_S", 1.2)
    )
    puzzle_activity_max: int = field(
        default_factory=lambda: _env_int("CHESSTRACK_LICHESS_PUZZLE_MAX", 1000)
    )


@dataclass(slots=True)
class ChesscomSettings:
    """Chess.com-specific configuration."""

    base_url: str = field(
        default_factory=lambda: os.getenv("CHESSCOM_BASE_URL", "https://api.chess.com")
    )
    min_interval_s: float = field(
        default_factory=lambda: _env_float("CHESSTRACK_CHESSCOM_MIN_INTERVAL_S", 1.0)
    )


@dataclass(slots=True)
class SyncSettings:
    """Batch sync and throttling policy."""

    throttle_hours: float = field(
        default_factory=lambda: _env_float("CHESSTRACK_THROTTLE_HOURS", 6.0)
    )
    history_max_24h: int = field(
        default_factory=lambda: _env_int("CHESSTRACK_HISTORY_MAX_24H", 200)
    )
    history_max_7d: int = field(
        default_factory=lambda: _env_int("CHESSTRACK_HISTORY_MAX_7D", 400)
    )
    request_timeout_s: float = field(
        default_factory=lambda: _clamp_timeout(_env_float("CHESSTRACK_REQUEST_TIMEOUT_S", 15.0))
    )
    batch_deadline_s: float = field(
        default_factory=lambda: _env_float("CHESSTRACK_BATCH_DEADLINE_S", 600.0)
    )
    default_limit: int = 50
    max_limit: int = 100
    stale_after_hours: float = field(
        default_factory=lambda: _env_float("CHESSTRACK_STALE_AFTER_HOURS", 2.0)
    )
    treat_zero_as_unmeasured: bool = field(
        default_factory=lambda: _env_bool("CHESSTRACK_TREAT_ZERO_AS_UNMEASURED", True)
    )


@dataclass(slots=True)
class Settings:
    """Application settings."""

    api_token: str | None = field(default_factory=lambda: os.getenv("CHESSTRACK_API_TOKEN") or None)
    store: str = field(default_factory=lambda: os.getenv("CHESSTRACK_STORE", "duckdb").lower())
    duckdb_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("CHESSTRACK_DUCKDB_PATH", str(DEFAULT_DATA_DIR / "chesstrack.duckdb"))
        )
    )
    postgres_dsn: str | None = field(
        default_factory=lambda: os.getenv("CHESSTRACK_POSTGRES_DSN") or None
    )
    user_agent: str = field(
        default_factory=lambda: os.getenv("CHESSTRACK_USER_AGENT", DEFAULT_USER_AGENT)
    )
    lichess: LichessSettings = field(default_factory=LichessSettings)
    chesscom: ChesscomSettings = field(default_factory=ChesscomSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)

    def __post_init__(self) -> None:
        if self.store not in STORE_BACKENDS:
            raise ConfigurationError(
                f"Unsupported store backend {self.store!r}; expected one of {STORE_BACKENDS}"
            )
        self.duckdb_path = Path(self.duckdb_path)

    @property
    def lichess_token(self) -> str | None:
        return self.lichess.token

    @property
    def throttle_seconds(self) -> float:
        return self.sync.throttle_hours * 3600.0

    @property
    def request_timeout_s(self) -> float:
        return self.sync.request_timeout_s

    def require_postgres_dsn(self) -> str:
        """Return the Postgres DSN or raise when it is not configured."""
        if not self.postgres_dsn:
            raise ConfigurationError("CHESSTRACK_POSTGRES_DSN is required for the postgres store")
        return self.postgres_dsn


def get_settings(**overrides: object) -> Settings:
    """Build a fresh settings object from the environment.

    Keyword overrides replace top-level fields, e.g. ``get_settings(store="postgres")``.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
