"""Exceptions raised by the tournament engine."""


class TournamentError(Exception):
    """Base class for all tournament engine errors."""


class InsufficientPlayersError(TournamentError):
    """Raised when a bracket is requested for fewer than two players."""

    def __init__(self, player_count: int):
        self.player_count = player_count
        super().__init__(
            f"At least 2 players are required to generate a bracket, got {player_count}"
        )


class InvalidOperationError(TournamentError):
    """Raised when a request is rejected by validation before touching the store."""


class BracketExistsError(InvalidOperationError):
    """Raised when a tournament already has a generated bracket."""

    def __init__(self, tournament_id: str):
        self.tournament_id = tournament_id
        super().__init__(f"Tournament {tournament_id} already has a bracket")


class NotFoundError(TournamentError):
    """Raised when a match, player or tournament does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} {identifier} not found")


class PersistenceError(TournamentError):
    """Raised when a store call fails."""


class PartialFailureError(TournamentError):
    """A match was completed but a follow-up statistics update failed.

    Instances are collected on the completion result rather than raised, so
    the caller still sees the completed match.
    """

    def __init__(self, match_id: str, player_id: str, cause: Exception):
        self.match_id = match_id
        self.player_id = player_id
        self.cause = cause
        super().__init__(
            f"Match {match_id} completed but stats update for player {player_id} failed: {cause}"
        )
