"""Store interfaces the tournament engine depends on."""

from collections.abc import Callable
from typing import Any, Protocol

from .models import Match, MatchStatus, Player, PlayerStats, StatsDelta


class MatchStore(Protocol):
    """Create, read, update, query and watch match rows.

    Also covers the few tournament and player reads the bracket needs to
    advance winners and crown a champion.
    """

    def get_player(self, player_id: str) -> Player | None: ...

    def get_bracket_rounds(self, tournament_id: str) -> int | None: ...

    def update_tournament(self, tournament_id: str, **fields: Any) -> bool: ...

    def get_match_at(
        self, tournament_id: str, round_number: int, position: int
    ) -> Match | None: ...

    def insert_bracket(
        self, tournament_id: str, total_rounds: int, rows: list[dict[str, Any]]
    ) -> list[Match]: ...

    def insert_match(self, row: dict[str, Any]) -> Match: ...

    def get_match(self, match_id: str) -> Match | None: ...

    def update_match(self, match_id: str, **fields: Any) -> Match: ...

    def complete_match(self, match_id: str, winner_id: str | None) -> Match | None: ...

    def increment_score(self, match_id: str, slot: int, delta: int) -> Match | None: ...

    def query_matches(
        self,
        tournament_id: str | None = None,
        round_number: int | None = None,
        status: MatchStatus | None = None,
    ) -> list[Match]: ...

    def subscribe(
        self, match_id: str, callback: Callable[[Match], None]
    ) -> Callable[[], None]: ...


class PlayerStatsStore(Protocol):
    """Aggregate counters per player."""

    def increment_player_stats(self, player_id: str, delta: StatsDelta) -> None: ...

    def get_player_stats(self, player_id: str) -> PlayerStats | None: ...
