"""Player registration and stats endpoints."""

import logging

from fastapi import APIRouter, Depends

from tournaments import TournamentAPI
from tournaments.models import PlayerCreateRequest
from web.auth import require_admin
from web.dependencies import get_tournament_api

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/players", dependencies=[Depends(require_admin)])
async def create_player(
    request: PlayerCreateRequest, api: TournamentAPI = Depends(get_tournament_api)
):
    """Register a new player."""
    return await api.create_player(request)


@router.get("/players")
async def list_players(
    tournament_id: str | None = None, api: TournamentAPI = Depends(get_tournament_api)
):
    """List players with their stats."""
    return await api.list_players(tournament_id)


@router.get("/players/{player_id}")
async def get_player(player_id: str, api: TournamentAPI = Depends(get_tournament_api)):
    return await api.get_player(player_id)
