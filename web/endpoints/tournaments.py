"""Tournament management endpoints."""

import logging

from fastapi import APIRouter, Depends

from tournaments import TournamentAPI
from tournaments.models import (
    AttendeeImportRequest,
    EnrollPlayerRequest,
    GenerateBracketRequest,
    MatchStatus,
    TournamentCreateRequest,
)
from web.auth import require_admin
from web.dependencies import get_tournament_api

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/tournaments", dependencies=[Depends(require_admin)])
async def create_tournament(
    request: TournamentCreateRequest, api: TournamentAPI = Depends(get_tournament_api)
):
    """Create a new tournament."""
    return await api.create_tournament(request)


@router.post("/tournaments/import", dependencies=[Depends(require_admin)])
async def import_attendees(
    request: AttendeeImportRequest, api: TournamentAPI = Depends(get_tournament_api)
):
    """Create a tournament from a meeting's attendee list."""
    return await api.import_attendees(request)


@router.get("/tournaments")
async def list_tournaments(api: TournamentAPI = Depends(get_tournament_api)):
    """List all tournaments."""
    return await api.list_tournaments()


@router.get("/tournaments/{tournament_id}")
async def get_tournament(tournament_id: str, api: TournamentAPI = Depends(get_tournament_api)):
    """Get tournament details."""
    return await api.get_tournament(tournament_id)


@router.get("/tournaments/{tournament_id}/players")
async def get_roster(tournament_id: str, api: TournamentAPI = Depends(get_tournament_api)):
    """Get all players enrolled in a tournament."""
    return await api.list_players(tournament_id)


@router.post("/tournaments/{tournament_id}/players", dependencies=[Depends(require_admin)])
async def enroll_player(
    tournament_id: str,
    request: EnrollPlayerRequest,
    api: TournamentAPI = Depends(get_tournament_api),
):
    return await api.enroll_player(tournament_id, request.player_id)


@router.post("/tournaments/{tournament_id}/bracket", dependencies=[Depends(require_admin)])
async def generate_bracket(
    tournament_id: str,
    request: GenerateBracketRequest | None = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    """Generate the tournament bracket from the roster or an explicit player list."""
    return await api.generate_bracket(tournament_id, request)


@router.get("/tournaments/{tournament_id}/bracket")
async def get_tournament_bracket(
    tournament_id: str, api: TournamentAPI = Depends(get_tournament_api)
):
    """Get tournament bracket visualization data."""
    return await api.get_bracket(tournament_id)


@router.get("/tournaments/{tournament_id}/matches")
async def get_tournament_matches(
    tournament_id: str,
    status: MatchStatus | None = None,
    api: TournamentAPI = Depends(get_tournament_api),
):
    """Get tournament matches, optionally filtered by status."""
    return await api.list_matches(tournament_id, status)
