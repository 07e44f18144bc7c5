"""Platform API clients."""

from chesstrack.chess_clients.base_platform_client import BasePlatformClient, PlatformClientContext
from chesstrack.chess_clients.chesscom_client import ChesscomClient
from chesstrack.chess_clients.client_factory import PlatformClientFactory, build_client
from chesstrack.chess_clients.lichess_client import LichessClient

__all__ = [
    "BasePlatformClient",
    "ChesscomClient",
    "LichessClient",
    "PlatformClientContext",
    "PlatformClientFactory",
    "build_client",
]
