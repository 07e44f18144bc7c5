"""Factory helpers for platform clients."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import requests

from chesstrack.chess_clients.base_platform_client import BasePlatformClient, PlatformClientContext
from chesstrack.chess_clients.chesscom_client import ChesscomClient
from chesstrack.chess_clients.lichess_client import LichessClient
from chesstrack.chess_clients.rate_limiter import get_rate_limiter
from chesstrack.config import Settings
from chesstrack.domain.platform import Platform
from chesstrack.utils.logger import get_logger
from chesstrack.utils.now import Now

_CLIENT_TYPES: dict[Platform, type[BasePlatformClient]] = {
    Platform.LICHESS: LichessClient,
    Platform.CHESSCOM: ChesscomClient,
}


def build_client(
    platform: Platform,
    settings: Settings,
    *,
    session: requests.Session | None = None,
    clock: Callable[[], datetime] = Now.as_datetime,
) -> BasePlatformClient:
    """Return a client for ``platform`` bound to the shared rate limiter."""

    min_interval = (
        settings.lichess.min_interval_s
        if platform == Platform.LICHESS
        else settings.chesscom.min_interval_s
    )
    client_type = _CLIENT_TYPES[platform]
    context = PlatformClientContext(
        settings=settings,
        logger=get_logger(client_type.__module__),
        rate_limiter=get_rate_limiter(platform, min_interval),
        session=session or requests.Session(),
        clock=clock,
    )
    return client_type(context)


class PlatformClientFactory:
    """Create and reuse one client per platform for a sync run."""

    def __init__(
        self,
        settings: Settings,
        *,
        session: requests.Session | None = None,
        clock: Callable[[], datetime] = Now.as_datetime,
    ) -> None:
        self._settings = settings
        self._session = session
        self._clock = clock
        self._clients: dict[Platform, BasePlatformClient] = {}

    def __call__(self, platform: Platform) -> BasePlatformClient:
        client = self._clients.get(platform)
        if client is None:
            client = build_client(
                platform,
                self._settings,
                session=self._session,
                clock=self._clock,
            )
            self._clients[platform] = client
        return client
