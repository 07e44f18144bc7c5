"""Store a student's Lichess API token encrypted at rest."""

from __future__ import annotations

from chesstrack.config import Settings
from chesstrack.domain.platform import Platform
from chesstrack.errors import ConfigurationError, NotFoundError
from chesstrack.ports.stats_store import StatsStore
from chesstrack.security.token_encryption import encrypt_token
from chesstrack.utils.logger import get_logger

logger = get_logger(__name__)


def store_lichess_token(
    store: StatsStore,
    student_id: str,
    token: str,
    settings: Settings,
) -> None:
    """Encrypt ``token`` and attach it to the student's Lichess connection.

    Raises:
        ConfigurationError: When the token is blank or the key is invalid.
        NotFoundError: When the student has no Lichess connection.
    """
    if not student_id or not student_id.strip():
        raise ConfigurationError("student_id is required")
    if not token or not token.strip():
        raise ConfigurationError("token is required")
    encrypted = encrypt_token(token.strip(), settings.lichess.encryption_key)
    if not store.store_lichess_token(student_id, encrypted):
        raise NotFoundError(f"No {Platform.LICHESS} connection for student {student_id}")
    logger.info("Stored Lichess token for student %s", student_id)


def has_lichess_token(store: StatsStore, student_id: str) -> bool:
    connection = store.get_connection(student_id, Platform.LICHESS)
    return bool(connection and connection.lichess_token_encrypted)
