from __future__ import annotations

from pathlib import Path

import duckdb

from chesstrack.db.stats_queries import schema_statements
from chesstrack.utils.logger import get_logger

logger = get_logger(__name__)

DUCKDB_TIMESTAMP_TYPE = "TIMESTAMP"
DUCKDB_SNAPSHOT_ID_TYPE = "BIGINT"


def get_connection(db_path: Path | str) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB database, creating the parent directory when needed."""
    if str(db_path) != ":memory:":
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Opening DuckDB at %s", db_path)
    return duckdb.connect(str(db_path))


def init_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the stats tables. Timestamps are stored as naive UTC."""
    for statement in schema_statements(DUCKDB_TIMESTAMP_TYPE, DUCKDB_SNAPSHOT_ID_TYPE):
        conn.execute(statement)
