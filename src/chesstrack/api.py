from __future__ import annotations

from collections.abc import Iterator
from typing import cast

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from pydantic import BaseModel
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from chesstrack.app.use_cases.batch_sync import BatchSyncRequest, run_batch_sync
from chesstrack.app.use_cases.lichess_token import has_lichess_token, store_lichess_token
from chesstrack.app.use_cases.player_lookup import lookup_player
from chesstrack.app.use_cases.student_stats import get_student_stats
from chesstrack.chess_clients.client_factory import PlatformClientFactory
from chesstrack.config import Settings, get_settings
from chesstrack.db.stats_repository_provider import open_stats_store
from chesstrack.errors import (
    ConfigurationError,
    InvalidRequestError,
    NotFoundError,
    PersistenceError,
)
from chesstrack.ports.platform_client import PlatformClientProvider
from chesstrack.ports.stats_store import StatsStore
from chesstrack.utils.logger import get_logger

logger = get_logger(__name__)


def _extract_api_token(request: Request) -> str | None:
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    api_key = request.headers.get("x-api-key")
    if api_key:
        return api_key.strip()
    return None


def settings_dependency() -> Settings:
    return get_settings()


def require_api_token(
    request: Request,
    settings: Settings = Depends(settings_dependency),
) -> None:
    if request.url.path == "/api/health":
        return
    expected = settings.api_token
    if not expected:
        return
    supplied = _extract_api_token(request)
    if not supplied or supplied != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def store_dependency(settings: Settings = Depends(settings_dependency)) -> Iterator[StatsStore]:
    try:
        with open_stats_store(settings) as store:
            yield store
    except (ConfigurationError, PersistenceError) as exc:
        logger.error("Stats store unavailable: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def clients_dependency(settings: Settings = Depends(settings_dependency)) -> PlatformClientProvider:
    return PlatformClientFactory(settings)


app = FastAPI(
    title="chesstrack",
    version="0.1.0",
    dependencies=[Depends(require_api_token)],
    middleware=[
        Middleware(
            cast("type[object]", CORSMiddleware),
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
    ],
)


class LichessTokenRequest(BaseModel):
    token: str


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/jobs/update-stats")
def update_stats(
    student_id: str | None = Query(None),
    platform: str | None = Query(None),
    limit: int | None = Query(None),
    offset: int = Query(0, ge=0),
    settings: Settings = Depends(settings_dependency),
    store: StatsStore = Depends(store_dependency),
    clients: PlatformClientProvider = Depends(clients_dependency),
) -> dict[str, object]:
    request = BatchSyncRequest(
        student_id=student_id,
        platform=platform,
        limit=limit,
        offset=offset,
    )
    try:
        summary = run_batch_sync(store, clients, settings, request)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PersistenceError as exc:
        logger.error("Stats sync could not load connections: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not load platform connections",
        ) from exc
    return summary.to_dict()


@app.get("/api/player-lookup")
def player_lookup(
    handle: str = Query(..., min_length=1),
    clients: PlatformClientProvider = Depends(clients_dependency),
) -> dict[str, object]:
    try:
        rows = lookup_player(handle, clients)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"status": "ok", "rows": [row.to_dict() for row in rows]}


@app.get("/api/students/{student_id}/stats")
def student_stats(
    student_id: str,
    settings: Settings = Depends(settings_dependency),
    store: StatsStore = Depends(store_dependency),
) -> dict[str, object]:
    return {
        "student_id": student_id,
        "stats": get_student_stats(store, student_id, settings),
    }


@app.get("/api/students/{student_id}/lichess-token")
def lichess_token_status(
    student_id: str,
    store: StatsStore = Depends(store_dependency),
) -> dict[str, object]:
    return {"student_id": student_id, "has_token": has_lichess_token(store, student_id)}


@app.post("/api/students/{student_id}/lichess-token")
def save_lichess_token(
    student_id: str,
    payload: LichessTokenRequest,
    settings: Settings = Depends(settings_dependency),
    store: StatsStore = Depends(store_dependency),
) -> dict[str, object]:
    try:
        store_lichess_token(store, student_id, payload.token, settings)
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"student_id": student_id, "has_token": True}
