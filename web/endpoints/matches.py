"""Match scoring and live update endpoints."""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from tournaments import Match, NotFoundError, TournamentAPI
from tournaments.api import match_to_dict
from tournaments.models import (
    MatchCreateRequest,
    MatchStatus,
    ScoreAdjustRequest,
    ScoreSetRequest,
)
from web.auth import require_admin
from web.dependencies import get_tournament_api

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
ws_router = APIRouter()


@router.post("/matches", dependencies=[Depends(require_admin)])
async def create_match(
    request: MatchCreateRequest, api: TournamentAPI = Depends(get_tournament_api)
):
    """Create an ad-hoc match between two players."""
    return await api.create_match(request)


@router.get("/matches")
async def list_matches(
    tournament_id: str | None = None,
    status: MatchStatus | None = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.list_matches(tournament_id, status)


@router.get("/matches/{match_id}")
async def get_match(match_id: str, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_match(match_id)


@router.post("/matches/{match_id}/open")
async def open_match(match_id: str, api: TournamentAPI = Depends(get_tournament_api)):
    """Open a match for scoring; a pending match with both players becomes active."""
    return await api.open_match(match_id)


@router.post("/matches/{match_id}/score/adjust", dependencies=[Depends(require_admin)])
async def adjust_score(
    match_id: str,
    request: ScoreAdjustRequest,
    api: TournamentAPI = Depends(get_tournament_api),
):
    """Add or remove a single point."""
    return await api.adjust_score(match_id, request)


@router.put("/matches/{match_id}/score", dependencies=[Depends(require_admin)])
async def set_score(
    match_id: str,
    request: ScoreSetRequest,
    api: TournamentAPI = Depends(get_tournament_api),
):
    """Overwrite both scores; a decisive score completes the match."""
    return await api.set_score(match_id, request)


@router.post("/matches/{match_id}/end", dependencies=[Depends(require_admin)])
async def end_match(match_id: str, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.end_match(match_id)


@ws_router.websocket("/ws/matches/{match_id}")
async def match_updates(websocket: WebSocket, match_id: str):
    """WebSocket endpoint for real-time match updates."""
    await websocket.accept()
    api: TournamentAPI = websocket.app.state.tournament_api

    try:
        match = await api.lifecycle.get_match(match_id)
    except NotFoundError as e:
        await websocket.send_json({"type": "error", "message": str(e)})
        await websocket.close(code=1008)
        return

    # Store callbacks may fire outside this loop's thread
    loop = asyncio.get_running_loop()
    updates: asyncio.Queue[Match] = asyncio.Queue()
    unsubscribe = websocket.app.state.db.subscribe(
        match_id, lambda updated: loop.call_soon_threadsafe(updates.put_nowait, updated)
    )

    async def forward_updates() -> None:
        while True:
            updated = await updates.get()
            await websocket.send_json({"type": "match_update", "match": match_to_dict(updated)})

    async def wait_for_disconnect() -> None:
        # Keep connection alive
        while True:
            await websocket.receive_text()

    sender = asyncio.create_task(forward_updates())
    receiver = asyncio.create_task(wait_for_disconnect())
    try:
        await websocket.send_json({"type": "connected", "match": match_to_dict(match)})

        done, pending = await asyncio.wait(
            {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        for task in done:
            error = task.exception()
            if error and not isinstance(error, WebSocketDisconnect):
                logger.debug(f"WebSocket for match {match_id} closed: {error}")
    finally:
        unsubscribe()
        for task in (sender, receiver):
            task.cancel()
        logger.debug(f"WebSocket for match {match_id} unsubscribed")
