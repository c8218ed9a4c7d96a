"""Ping-pong tournament engine: brackets, live match scoring and player stats."""

from .manager import TournamentManager
from .database import TournamentDatabaseManager
from .api import TournamentAPI
from .live import MatchUpdateHub
from .matches import MatchLifecycleManager
from .exceptions import (
    TournamentError,
    InsufficientPlayersError,
    InvalidOperationError,
    BracketExistsError,
    NotFoundError,
    PersistenceError,
    PartialFailureError,
)
from .models import (
    Player,
    PlayerStats,
    EmptySlot,
    Tournament,
    TournamentStatus,
    TournamentCreateRequest,
    Match,
    MatchStatus,
    MatchResult,
    BracketData,
    BracketRound,
)

__all__ = [
    "TournamentManager",
    "TournamentDatabaseManager",
    "TournamentAPI",
    "MatchUpdateHub",
    "MatchLifecycleManager",
    "TournamentError",
    "InsufficientPlayersError",
    "InvalidOperationError",
    "BracketExistsError",
    "NotFoundError",
    "PersistenceError",
    "PartialFailureError",
    "Player",
    "PlayerStats",
    "EmptySlot",
    "Tournament",
    "TournamentStatus",
    "TournamentCreateRequest",
    "Match",
    "MatchStatus",
    "MatchResult",
    "BracketData",
    "BracketRound",
]
