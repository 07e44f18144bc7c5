import sys
from pathlib import Path

import pytest

project_root = Path(__file__).resolve().parents[1]
src_path = project_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from chesstrack.chess_clients.rate_limiter import reset_rate_limiters  # noqa: E402
from chesstrack.db.duckdb_stats_repository import DuckDbStatsRepository  # noqa: E402
from chesstrack.db.duckdb_store import get_connection  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_rate_limiters():
    reset_rate_limiters()
    yield
    reset_rate_limiters()


@pytest.fixture
def store(tmp_path):
    conn = get_connection(tmp_path / "stats.duckdb")
    repository = DuckDbStatsRepository(conn)
    repository.init_schema()
    yield repository
    conn.close()
