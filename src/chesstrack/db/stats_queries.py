"""SQL shared by the DuckDB and Postgres stats repositories."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from chesstrack.domain.platform import Platform
from chesstrack.domain.stats_models import (
    ATTEMPT_FIELDS,
    CURRENT_STATS_VALUE_FIELDS,
    SNAPSHOT_COLUMNS,
    CurrentStats,
    PlatformConnection,
    StatsSnapshot,
)
from chesstrack.utils.now import Now

CURRENT_STATS_WRITABLE = frozenset((*CURRENT_STATS_VALUE_FIELDS, "computed_at", *ATTEMPT_FIELDS))
CONNECTION_COLUMNS = (
    "student_id",
    "platform",
    "platform_username",
    "last_synced_at",
    "lichess_token_encrypted",
)

_INT_COLUMNS = ",\n".join(f"    {name} INTEGER" for name in CURRENT_STATS_VALUE_FIELDS)
_SNAPSHOT_INT_COLUMNS = ",\n".join(
    f"    {name} INTEGER" for name in SNAPSHOT_COLUMNS if name not in {"student_id", "source", "captured_at"}
)


def schema_statements(timestamp_type: str, snapshot_id_type: str) -> list[str]:
    """Return the CREATE statements for a dialect."""
    return [
        f"""
CREATE TABLE IF NOT EXISTS platform_connections (
    student_id TEXT NOT NULL,
    platform TEXT NOT NULL,
    platform_username TEXT,
    last_synced_at {timestamp_type},
    lichess_token_encrypted TEXT,
    PRIMARY KEY (student_id, platform)
)
""",
        f"""
CREATE TABLE IF NOT EXISTS stats_snapshots (
    snapshot_id {snapshot_id_type} PRIMARY KEY,
    student_id TEXT NOT NULL,
    source TEXT NOT NULL,
    captured_at {timestamp_type} NOT NULL,
{_SNAPSHOT_INT_COLUMNS}
)
""",
        """
CREATE INDEX IF NOT EXISTS stats_snapshots_student_captured
    ON stats_snapshots (student_id, captured_at)
""",
        f"""
CREATE TABLE IF NOT EXISTS current_stats (
    student_id TEXT NOT NULL,
    platform TEXT NOT NULL,
{_INT_COLUMNS},
    computed_at {timestamp_type},
    last_update_ok BOOLEAN,
    last_update_error_code TEXT,
    last_update_error_message TEXT,
    last_update_attempt_at {timestamp_type},
    PRIMARY KEY (student_id, platform)
)
""",
    ]


def list_connections_sql(placeholder: str) -> str:
    return f"""
        SELECT {", ".join(CONNECTION_COLUMNS)}
        FROM platform_connections
        WHERE platform_username IS NOT NULL AND TRIM(platform_username) <> ''
        ORDER BY last_synced_at ASC NULLS FIRST, student_id, platform
        LIMIT {placeholder} OFFSET {placeholder}
    """


def get_connection_sql(placeholder: str) -> str:
    return f"""
        SELECT {", ".join(CONNECTION_COLUMNS)}
        FROM platform_connections
        WHERE student_id = {placeholder} AND platform = {placeholder}
    """


def upsert_connection_sql(placeholder: str) -> str:
    values = ", ".join([placeholder] * len(CONNECTION_COLUMNS))
    updates = ", ".join(f"{name} = EXCLUDED.{name}" for name in CONNECTION_COLUMNS[2:])
    return f"""
        INSERT INTO platform_connections ({", ".join(CONNECTION_COLUMNS)})
        VALUES ({values})
        ON CONFLICT (student_id, platform) DO UPDATE SET {updates}
    """


def mark_synced_sql(placeholder: str) -> str:
    return f"""
        UPDATE platform_connections
        SET last_synced_at = {placeholder}
        WHERE student_id = {placeholder} AND platform = {placeholder}
    """


def store_token_sql(placeholder: str) -> str:
    return f"""
        UPDATE platform_connections
        SET lichess_token_encrypted = {placeholder}
        WHERE student_id = {placeholder} AND platform = {placeholder}
    """


def insert_snapshot_sql(placeholder: str, *, with_id: bool) -> str:
    columns = ("snapshot_id", *SNAPSHOT_COLUMNS) if with_id else SNAPSHOT_COLUMNS
    values = ", ".join([placeholder] * len(columns))
    return f"INSERT INTO stats_snapshots ({', '.join(columns)}) VALUES ({values})"


def snapshot_lookup_sql(placeholder: str, *, with_bound: bool, with_source: bool) -> str:
    clauses = [f"student_id = {placeholder}"]
    if with_bound:
        clauses.append(f"captured_at <= {placeholder}")
    if with_source:
        clauses.append(f"source = {placeholder}")
    return f"""
        SELECT snapshot_id, {", ".join(SNAPSHOT_COLUMNS)}
        FROM stats_snapshots
        WHERE {" AND ".join(clauses)}
        ORDER BY captured_at DESC, snapshot_id DESC
        LIMIT 1
    """


def current_stats_sql(placeholder: str, *, with_platform: bool) -> str:
    where = f"student_id = {placeholder}"
    if with_platform:
        where += f" AND platform = {placeholder}"
    return f"""
        SELECT *
        FROM current_stats
        WHERE {where}
        ORDER BY platform
    """


def upsert_current_stats_sql(columns: Sequence[str], placeholder: str) -> str:
    """Build a partial upsert touching only ``columns``.

    Raises:
        ValueError: When a column is not writable.
    """
    unknown = [name for name in columns if name not in CURRENT_STATS_WRITABLE]
    if unknown:
        raise ValueError(f"Unknown current_stats columns: {unknown}")
    insert_columns = ("student_id", "platform", *columns)
    values = ", ".join([placeholder] * len(insert_columns))
    updates = ", ".join(f"{name} = EXCLUDED.{name}" for name in columns)
    return f"""
        INSERT INTO current_stats ({", ".join(insert_columns)})
        VALUES ({values})
        ON CONFLICT (student_id, platform) DO UPDATE SET {updates}
    """


def row_to_connection(row: Mapping[str, object]) -> PlatformConnection:
    return PlatformConnection(
        student_id=str(row["student_id"]),
        platform=Platform.parse(str(row["platform"])),
        username=row.get("platform_username"),  # type: ignore[arg-type]
        last_synced_at=Now.to_utc(row.get("last_synced_at")),  # type: ignore[arg-type]
        lichess_token_encrypted=row.get("lichess_token_encrypted"),  # type: ignore[arg-type]
    )


def row_to_snapshot(row: Mapping[str, object]) -> StatsSnapshot:
    values = {name: row.get(name) for name in SNAPSHOT_COLUMNS}
    values["source"] = Platform.parse(str(row["source"]))
    values["captured_at"] = Now.to_utc(row["captured_at"])  # type: ignore[arg-type]
    return StatsSnapshot(snapshot_id=row.get("snapshot_id"), **values)  # type: ignore[arg-type]


def row_to_current_stats(row: Mapping[str, object]) -> CurrentStats:
    values = {name: row.get(name) for name in (*CURRENT_STATS_VALUE_FIELDS, *ATTEMPT_FIELDS)}
    values["last_update_attempt_at"] = Now.to_utc(row.get("last_update_attempt_at"))  # type: ignore[arg-type]
    return CurrentStats(
        student_id=str(row["student_id"]),
        platform=Platform.parse(str(row["platform"])),
        computed_at=Now.to_utc(row.get("computed_at")),  # type: ignore[arg-type]
        **values,  # type: ignore[arg-type]
    )
