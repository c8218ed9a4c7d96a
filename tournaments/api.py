"""Tournament API endpoint handlers."""

import logging
from typing import Any

from fastapi import HTTPException

from .bracket import get_round_name
from .exceptions import (
    BracketExistsError,
    InsufficientPlayersError,
    InvalidOperationError,
    NotFoundError,
)
from .manager import TournamentManager
from .matches import MatchLifecycleManager
from .models import (
    AttendeeImportRequest,
    BracketData,
    GenerateBracketRequest,
    Match,
    MatchCreateRequest,
    MatchResult,
    MatchStatus,
    Player,
    PlayerCreateRequest,
    PlayerStats,
    ScoreAdjustRequest,
    ScoreSetRequest,
    Tournament,
    TournamentCreateRequest,
)

logger = logging.getLogger(__name__)


def _isoformat(value: Any) -> str | None:
    return value.isoformat() if value else None


def player_to_dict(player: Player, stats: PlayerStats | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": player.id,
        "name": player.name,
        "email": player.email,
        "profile_image_url": player.profile_image_url,
        "created_at": _isoformat(player.created_at),
    }
    if stats is not None:
        data["stats"] = {
            "matches_played": stats.matches_played,
            "matches_won": stats.matches_won,
            "total_points_scored": stats.total_points_scored,
        }
    return data


def tournament_to_dict(tournament: Tournament) -> dict[str, Any]:
    return {
        "id": tournament.id,
        "name": tournament.name,
        "description": tournament.description,
        "meeting_link": tournament.meeting_link,
        "start_date": _isoformat(tournament.start_date),
        "end_date": _isoformat(tournament.end_date),
        "status": tournament.status.value,
        "champion_id": tournament.champion_id,
        "created_at": _isoformat(tournament.created_at),
    }


def match_to_dict(match: Match) -> dict[str, Any]:
    """Serialize a match; empty slots are ``None`` on the wire."""
    player1, player2 = match.slots
    return {
        "id": match.id,
        "tournament_id": match.tournament_id,
        "round_number": match.round_number,
        "position": match.position,
        "player1": player_to_dict(player1) if player1 else None,
        "player2": player_to_dict(player2) if player2 else None,
        "player1_score": match.player1_score,
        "player2_score": match.player2_score,
        "status": match.status.value,
        "winner_id": match.winner_id,
        "updated_at": _isoformat(match.updated_at),
    }


def bracket_to_dict(bracket: BracketData) -> dict[str, Any]:
    return {
        "tournament": tournament_to_dict(bracket.tournament),
        "players": [player_to_dict(p) for p in bracket.players],
        "total_rounds": bracket.total_rounds,
        "rounds": [
            {
                "round_number": bracket_round.round_number,
                "name": get_round_name(bracket_round.round_number, bracket.total_rounds),
                "matches": [match_to_dict(m) for m in bracket_round.matches],
            }
            for bracket_round in bracket.rounds
        ],
        "match_count": len(bracket.matches),
    }


def match_result_to_dict(result: MatchResult) -> dict[str, Any]:
    return {
        "match": match_to_dict(result.match),
        "winner_id": result.winner_id,
        "warnings": result.warnings,
    }


class TournamentAPI:
    """FastAPI endpoint handlers for players, tournaments and matches."""

    def __init__(
        self,
        tournament_manager: TournamentManager,
        lifecycle: MatchLifecycleManager | None = None,
    ):
        self.manager = tournament_manager
        self.lifecycle = lifecycle or tournament_manager.lifecycle

    @staticmethod
    def _http_error(error: Exception, action: str) -> HTTPException:
        """Map an engine error onto the HTTP status the client should see."""
        if isinstance(error, NotFoundError):
            return HTTPException(status_code=404, detail=str(error))
        if isinstance(error, BracketExistsError):
            return HTTPException(status_code=409, detail=str(error))
        if isinstance(error, (InsufficientPlayersError, InvalidOperationError, ValueError)):
            return HTTPException(status_code=400, detail=str(error))

        logger.error(f"Failed to {action}: {error}")
        return HTTPException(status_code=500, detail="Internal server error")

    # Players

    async def create_player(self, request: PlayerCreateRequest) -> dict[str, Any]:
        """Register a new player."""
        try:
            player = await self.manager.create_player(request)
            return {
                "player": player_to_dict(player, PlayerStats(player_id=player.id)),
                "message": f"Player '{player.name}' created successfully",
            }
        except Exception as e:
            raise self._http_error(e, "create player") from e

    async def list_players(self, tournament_id: str | None = None) -> dict[str, Any]:
        """List players with their stats, optionally limited to one roster."""
        try:
            players = await self.manager.list_players(tournament_id)
            entries = []
            for player in players:
                stats = await self.manager.get_player_stats(player.id)
                entries.append(player_to_dict(player, stats))
            return {"players": entries, "count": len(entries)}
        except Exception as e:
            raise self._http_error(e, "list players") from e

    async def get_player(self, player_id: str) -> dict[str, Any]:
        try:
            player = await self.manager.get_player(player_id)
            stats = await self.manager.get_player_stats(player_id)
            return player_to_dict(player, stats)
        except Exception as e:
            raise self._http_error(e, f"get player {player_id}") from e

    # Tournaments

    async def create_tournament(self, request: TournamentCreateRequest) -> dict[str, Any]:
        """Create a new tournament."""
        try:
            tournament = await self.manager.create_tournament(request)
            return {
                "tournament": tournament_to_dict(tournament),
                "message": f"Tournament '{tournament.name}' created successfully",
            }
        except Exception as e:
            raise self._http_error(e, "create tournament") from e

    async def import_attendees(self, request: AttendeeImportRequest) -> dict[str, Any]:
        """Create a tournament from a meeting's attendee list."""
        try:
            tournament, players = await self.manager.import_attendees(request)
            return {
                "tournament": tournament_to_dict(tournament),
                "players": [player_to_dict(p) for p in players],
                "count": len(players),
            }
        except Exception as e:
            raise self._http_error(e, "import attendees") from e

    async def list_tournaments(self) -> dict[str, Any]:
        """List all tournaments."""
        try:
            tournaments = await self.manager.list_tournaments()
            return {
                "tournaments": [tournament_to_dict(t) for t in tournaments],
                "count": len(tournaments),
            }
        except Exception as e:
            raise self._http_error(e, "list tournaments") from e

    async def get_tournament(self, tournament_id: str) -> dict[str, Any]:
        """Get tournament details."""
        try:
            tournament = await self.manager.get_tournament(tournament_id)
            return tournament_to_dict(tournament)
        except Exception as e:
            raise self._http_error(e, f"get tournament {tournament_id}") from e

    async def enroll_player(self, tournament_id: str, player_id: str) -> dict[str, Any]:
        try:
            enrolled = await self.manager.enroll_player(tournament_id, player_id)
            return {
                "tournament_id": tournament_id,
                "player_id": player_id,
                "enrolled": enrolled,
                "message": (
                    "Player enrolled successfully" if enrolled else "Player already enrolled"
                ),
            }
        except Exception as e:
            raise self._http_error(e, f"enroll player in tournament {tournament_id}") from e

    async def generate_bracket(
        self, tournament_id: str, request: GenerateBracketRequest | None = None
    ) -> dict[str, Any]:
        """Generate the single elimination bracket of a tournament."""
        try:
            players = None
            if request is not None and request.player_ids is not None:
                players = await self.manager.resolve_players(request.player_ids)

            bracket = await self.manager.generate_bracket(tournament_id, players)
            return bracket_to_dict(bracket)
        except Exception as e:
            raise self._http_error(e, f"generate bracket for tournament {tournament_id}") from e

    async def get_bracket(self, tournament_id: str) -> dict[str, Any]:
        """Get tournament bracket visualization data."""
        try:
            bracket = await self.manager.get_bracket_view(tournament_id)
            return bracket_to_dict(bracket)
        except Exception as e:
            raise self._http_error(e, f"get bracket for tournament {tournament_id}") from e

    # Matches

    async def create_match(self, request: MatchCreateRequest) -> dict[str, Any]:
        """Create an ad-hoc match."""
        try:
            match = await self.lifecycle.create_match(request.player1_id, request.player2_id)
            return match_to_dict(match)
        except Exception as e:
            raise self._http_error(e, "create match") from e

    async def list_matches(
        self, tournament_id: str | None = None, status: MatchStatus | None = None
    ) -> dict[str, Any]:
        try:
            if tournament_id is not None:
                await self.manager.get_tournament(tournament_id)
            matches = await self.lifecycle.list_matches(tournament_id, status)
            return {
                "tournament_id": tournament_id,
                "matches": [match_to_dict(m) for m in matches],
                "count": len(matches),
            }
        except Exception as e:
            raise self._http_error(e, "list matches") from e

    async def get_match(self, match_id: str) -> dict[str, Any]:
        try:
            match = await self.lifecycle.get_match(match_id)
            return match_to_dict(match)
        except Exception as e:
            raise self._http_error(e, f"get match {match_id}") from e

    async def open_match(self, match_id: str) -> dict[str, Any]:
        """Load a match for scoring, activating it if both players are known."""
        try:
            match = await self.lifecycle.open_match(match_id)
            return match_to_dict(match)
        except Exception as e:
            raise self._http_error(e, f"open match {match_id}") from e

    async def adjust_score(self, match_id: str, request: ScoreAdjustRequest) -> dict[str, Any]:
        try:
            match = await self.lifecycle.adjust_score(match_id, request.slot, request.delta)
            return match_to_dict(match)
        except Exception as e:
            raise self._http_error(e, f"adjust score of match {match_id}") from e

    async def set_score(self, match_id: str, request: ScoreSetRequest) -> dict[str, Any]:
        try:
            result = await self.lifecycle.set_score(
                match_id, request.player1_score, request.player2_score
            )
            return match_result_to_dict(result)
        except Exception as e:
            raise self._http_error(e, f"set score of match {match_id}") from e

    async def end_match(self, match_id: str) -> dict[str, Any]:
        """Complete a match on its current score."""
        try:
            result = await self.lifecycle.end_match(match_id)
            return match_result_to_dict(result)
        except Exception as e:
            raise self._http_error(e, f"end match {match_id}") from e
