"""Tournament system data models."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .exceptions import PartialFailureError


class TournamentStatus(Enum):
    """Tournament lifecycle status."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class MatchStatus(Enum):
    """Individual match status."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class Player(BaseModel):
    """A registered player."""

    id: str
    name: str
    email: str | None = None
    profile_image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EmptySlot(BaseModel):
    """An unfilled player slot in a bracket match."""

    def __bool__(self) -> bool:
        return False


EMPTY_SLOT = EmptySlot()

BracketSlot = Player | EmptySlot


class PlayerStats(BaseModel):
    """Aggregate counters for a player, bumped on match completion."""

    player_id: str
    matches_played: int = 0
    matches_won: int = 0
    total_points_scored: int = 0


class StatsDelta(BaseModel):
    """Increment applied to a player's stats row."""

    matches_played: int = Field(default=0, ge=0)
    matches_won: int = Field(default=0, ge=0)
    points_scored: int = Field(default=0, ge=0)


class Tournament(BaseModel):
    """Complete tournament information."""

    id: str
    name: str
    description: str | None = None
    meeting_link: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: TournamentStatus = TournamentStatus.UPCOMING
    champion_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Match(BaseModel):
    """A single match, either part of a bracket or ad-hoc."""

    id: str
    tournament_id: str | None = None
    round_number: int | None = None  # NULL for ad-hoc matches
    position: int | None = None  # 0-based within the round
    player1_id: str | None = None
    player2_id: str | None = None
    player1_score: int = 0
    player2_score: int = 0
    status: MatchStatus = MatchStatus.PENDING
    winner_id: str | None = None  # NULL until decided, or on a tie
    player1: Player | None = None
    player2: Player | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def slots(self) -> tuple[BracketSlot, BracketSlot]:
        """Both player slots as ``Player | EmptySlot``."""
        return (self.slot(1), self.slot(2))

    def slot(self, number: int) -> BracketSlot:
        if number == 1:
            player, player_id = self.player1, self.player1_id
        elif number == 2:
            player, player_id = self.player2, self.player2_id
        else:
            raise ValueError(f"Slot must be 1 or 2, got {number}")

        if player_id is None:
            return EMPTY_SLOT
        if player is None:
            # Row was loaded without the joined player columns
            return Player(id=player_id, name="")
        return player

    def score_for(self, player_id: str) -> int:
        if player_id == self.player1_id:
            return self.player1_score
        if player_id == self.player2_id:
            return self.player2_score
        raise ValueError(f"Player {player_id} is not in match {self.id}")

    @property
    def is_bracket_match(self) -> bool:
        return self.tournament_id is not None and self.round_number is not None


class MatchResult(BaseModel):
    """Outcome of a score-changing operation.

    ``failures`` carries statistics updates that failed after the match
    itself was committed as completed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    match: Match
    failures: list[PartialFailureError] = Field(default_factory=list)

    @property
    def winner_id(self) -> str | None:
        return self.match.winner_id

    @property
    def warnings(self) -> list[str]:
        return [str(failure) for failure in self.failures]


class BracketRound(BaseModel):
    """All matches of one elimination round, ordered by position."""

    round_number: int
    matches: list[Match]


class BracketData(BaseModel):
    """Tournament bracket visualization data."""

    tournament: Tournament
    players: list[Player]
    matches: list[Match]
    total_rounds: int

    @property
    def rounds(self) -> list[BracketRound]:
        grouped: dict[int, list[Match]] = {}
        for match in self.matches:
            grouped.setdefault(match.round_number or 0, []).append(match)
        return [
            BracketRound(
                round_number=number,
                matches=sorted(matches, key=lambda m: m.position or 0),
            )
            for number, matches in sorted(grouped.items())
        ]


# Requests


class PlayerCreateRequest(BaseModel):
    """Request to register a new player."""

    name: str = Field(..., min_length=1, description="Display name")
    email: EmailStr | None = Field(default=None, description="Contact e-mail")
    profile_image_url: str | None = Field(default=None, description="Avatar URL")

    @field_validator("name")
    @classmethod
    def strip_name(cls, name: str) -> str:
        name = name.strip()
        if not name:
            raise ValueError("Player name is required")
        return name


class TournamentCreateRequest(BaseModel):
    """Request to create a new tournament."""

    name: str = Field(..., min_length=1, description="Tournament name")
    description: str | None = Field(default=None, description="Free-form notes")
    meeting_link: str | None = Field(default=None, description="Video call link")
    start_date: date | None = None
    end_date: date | None = None


class AttendeeImportRequest(BaseModel):
    """Create a tournament from a meeting's attendee list."""

    meeting_link: str = Field(..., min_length=1)
    attendees: list[PlayerCreateRequest] = Field(default_factory=list)


class EnrollPlayerRequest(BaseModel):
    player_id: str


class MatchCreateRequest(BaseModel):
    """Request to create an ad-hoc match outside any tournament."""

    player1_id: str
    player2_id: str


class ScoreAdjustRequest(BaseModel):
    slot: int = Field(..., description="Player slot, 1 or 2")
    delta: int = Field(..., description="+1 or -1")


class ScoreSetRequest(BaseModel):
    player1_score: int
    player2_score: int


class GenerateBracketRequest(BaseModel):
    """Optional explicit player list; defaults to the enrolled roster."""

    player_ids: list[str] | None = None
