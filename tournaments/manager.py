"""Tournament management and bracket generation."""

import logging
import random
from datetime import date

from .bracket import plan_bracket
from .database import TournamentDatabaseManager, new_id
from .exceptions import InvalidOperationError, NotFoundError
from .matches import MatchLifecycleManager
from .models import (
    AttendeeImportRequest,
    BracketData,
    Player,
    PlayerCreateRequest,
    PlayerStats,
    Tournament,
    TournamentCreateRequest,
    TournamentStatus,
)

logger = logging.getLogger(__name__)


class TournamentManager:
    """Manages tournaments, their rosters, and bracket generation."""

    def __init__(
        self,
        db: TournamentDatabaseManager,
        lifecycle: MatchLifecycleManager | None = None,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.lifecycle = lifecycle or MatchLifecycleManager(db)
        self.rng = rng

    async def create_tournament(self, request: TournamentCreateRequest) -> Tournament:
        """Create an upcoming tournament with an empty roster."""
        if (
            request.start_date
            and request.end_date
            and request.end_date < request.start_date
        ):
            raise InvalidOperationError("Tournament cannot end before it starts")

        tournament = Tournament(
            id=new_id(),
            name=request.name.strip(),
            description=request.description,
            meeting_link=request.meeting_link,
            start_date=request.start_date,
            end_date=request.end_date,
            status=TournamentStatus.UPCOMING,
        )
        return self.db.create_tournament(tournament)

    async def get_tournament(self, tournament_id: str) -> Tournament:
        tournament = self.db.get_tournament(tournament_id)
        if not tournament:
            raise NotFoundError("tournament", tournament_id)
        return tournament

    async def list_tournaments(self) -> list[Tournament]:
        return self.db.list_tournaments()

    async def create_player(self, request: PlayerCreateRequest) -> Player:
        """Register a player; a zeroed stats row is created with it."""
        email = str(request.email) if request.email else None
        if email and self.db.get_player_by_email(email):
            raise InvalidOperationError(f"A player with e-mail {email} already exists")

        return self.db.create_player(
            name=request.name,
            email=email,
            profile_image_url=request.profile_image_url,
        )

    async def get_player(self, player_id: str) -> Player:
        player = self.db.get_player(player_id)
        if not player:
            raise NotFoundError("player", player_id)
        return player

    async def get_player_stats(self, player_id: str) -> PlayerStats:
        await self.get_player(player_id)
        return self.db.get_player_stats(player_id) or PlayerStats(player_id=player_id)

    async def list_players(self, tournament_id: str | None = None) -> list[Player]:
        if tournament_id is not None:
            await self.get_tournament(tournament_id)
        return self.db.list_players(tournament_id)

    async def enroll_player(self, tournament_id: str, player_id: str) -> bool:
        """Add a player to a tournament roster; False if already enrolled."""
        await self.get_tournament(tournament_id)
        await self.get_player(player_id)

        if self.db.get_bracket_rounds(tournament_id) is not None:
            raise InvalidOperationError(
                f"Tournament {tournament_id} already has a bracket; the roster is closed"
            )

        enrolled = self.db.enroll_player(tournament_id, player_id)
        if enrolled:
            logger.info(f"Enrolled player {player_id} in tournament {tournament_id}")
        return enrolled

    async def import_attendees(
        self, request: AttendeeImportRequest
    ) -> tuple[Tournament, list[Player]]:
        """Create a tournament from a meeting and enrol its attendees.

        Attendees are matched to existing players by e-mail; everyone else is
        registered as a new player.
        """
        meeting_id = request.meeting_link.rstrip("/").split("/")[-1] or "unknown"
        tournament = await self.create_tournament(
            TournamentCreateRequest(
                name=f"Tournament {meeting_id}",
                description="Imported from meeting attendees",
                meeting_link=request.meeting_link,
                start_date=date.today(),
            )
        )

        players = []
        for attendee in request.attendees:
            existing = (
                self.db.get_player_by_email(str(attendee.email)) if attendee.email else None
            )
            player = existing or await self.create_player(attendee)
            self.db.enroll_player(tournament.id, player.id)
            players.append(player)

        logger.info(
            f"Imported {len(players)} attendees into tournament {tournament.id}"
        )
        return tournament, players

    async def generate_bracket(
        self, tournament_id: str, players: list[Player] | None = None
    ) -> BracketData:
        """Seed players into a single elimination bracket and persist it.

        Defaults to the tournament's enrolled roster. The whole bracket is
        written in one transaction, then byes are resolved as walkovers.
        """
        if not tournament_id:
            raise InvalidOperationError("Tournament id is required")

        tournament = await self.get_tournament(tournament_id)
        if players is None:
            players = self.db.list_players(tournament_id)

        logger.info(
            f"Generating bracket for tournament {tournament.id} ({tournament.name}) "
            f"with {len(players)} players"
        )

        total_rounds, rows = plan_bracket(players, self.rng)
        self.db.insert_bracket(tournament_id, total_rounds, rows)
        self.db.update_tournament(tournament_id, status=TournamentStatus.ACTIVE)

        walkovers = await self.lifecycle.resolve_walkovers(tournament_id)
        if walkovers:
            logger.info(
                f"Resolved {len(walkovers)} walkover(s) in tournament {tournament_id}"
            )

        bracket = await self.get_bracket_view(tournament_id)
        logger.info(
            f"Generated bracket for tournament {tournament_id}: "
            f"{len(bracket.matches)} matches over {total_rounds} rounds"
        )
        return bracket

    async def get_bracket_view(self, tournament_id: str) -> BracketData:
        """Get bracket visualization data, matches ordered by round and position."""
        tournament = await self.get_tournament(tournament_id)

        return BracketData(
            tournament=tournament,
            players=self.db.list_players(tournament_id),
            matches=self.db.query_matches(tournament_id=tournament_id),
            total_rounds=self.db.get_bracket_rounds(tournament_id) or 0,
        )

    async def resolve_players(self, player_ids: list[str]) -> list[Player]:
        """Look up players by id, failing on the first unknown one."""
        players = self.db.get_players(player_ids)
        found = {player.id for player in players}
        for player_id in player_ids:
            if player_id not in found:
                raise NotFoundError("player", player_id)
        return players
