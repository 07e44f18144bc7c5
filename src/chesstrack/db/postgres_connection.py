from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import psycopg2
from psycopg2.extensions import connection as PgConnection  # noqa: N812

from chesstrack.config import Settings
from chesstrack.errors import PersistenceError
from chesstrack.utils.logger import get_logger

logger = get_logger(__name__)


@contextmanager
def postgres_connection(settings: Settings) -> Iterator[PgConnection]:
    """Yield an autocommit-off Postgres connection and close it afterwards."""
    dsn = settings.require_postgres_dsn()
    try:
        conn = psycopg2.connect(dsn)
    except psycopg2.Error as exc:
        logger.warning("Postgres connection failed: %s", exc)
        raise PersistenceError(f"Postgres connection failed: {exc}") from exc
    try:
        yield conn
    finally:
        conn.close()
