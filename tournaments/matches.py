"""Match lifecycle: scoring, completion, statistics and bracket advancement."""

import logging

from .bracket import feeder_positions, next_slot
from .exceptions import (
    InvalidOperationError,
    NotFoundError,
    PartialFailureError,
)
from .models import (
    Match,
    MatchResult,
    MatchStatus,
    StatsDelta,
    TournamentStatus,
)
from .store import MatchStore, PlayerStatsStore

logger = logging.getLogger(__name__)

DEFAULT_POINTS_TO_WIN = 11
DEFAULT_WIN_MARGIN = 2


def is_game_won(
    score1: int,
    score2: int,
    points_to_win: int = DEFAULT_POINTS_TO_WIN,
    win_margin: int = DEFAULT_WIN_MARGIN,
) -> bool:
    """Table tennis rule: first to ``points_to_win``, ahead by ``win_margin``."""
    high, low = max(score1, score2), min(score1, score2)
    return high >= points_to_win and high - low >= win_margin


def determine_winner(match: Match) -> str | None:
    """Higher score wins; a tie has no winner."""
    if match.player1_score > match.player2_score:
        return match.player1_id
    if match.player2_score > match.player1_score:
        return match.player2_id
    return None


def stats_deltas(match: Match) -> list[tuple[str, StatsDelta]]:
    """One stats increment per participant of a completed match."""
    winner_id = determine_winner(match)
    deltas = []
    for player_id in (match.player1_id, match.player2_id):
        if player_id is None:
            continue
        deltas.append(
            (
                player_id,
                StatsDelta(
                    matches_played=1,
                    matches_won=1 if player_id == winner_id else 0,
                    points_scored=match.score_for(player_id),
                ),
            )
        )
    return deltas


class MatchLifecycleManager:
    """Owns the ``pending -> active -> completed`` state machine of matches.

    Scores are written through the match store, which publishes every new
    state to live subscribers. Completing a bracket match advances its
    winner and resolves walkovers further down the bracket.
    """

    def __init__(
        self,
        store: MatchStore,
        stats_store: PlayerStatsStore | None = None,
        points_to_win: int = DEFAULT_POINTS_TO_WIN,
        win_margin: int = DEFAULT_WIN_MARGIN,
    ):
        self.store = store
        self.stats_store = stats_store if stats_store is not None else store
        self.points_to_win = points_to_win
        self.win_margin = win_margin

    async def create_match(self, player1_id: str, player2_id: str) -> Match:
        """Create an ad-hoc match between two players outside any tournament."""
        if player1_id == player2_id:
            raise InvalidOperationError("Please select two different players")

        for player_id in (player1_id, player2_id):
            if self.store.get_player(player_id) is None:
                raise NotFoundError("player", player_id)

        match = self.store.insert_match(
            {"player1_id": player1_id, "player2_id": player2_id}
        )
        logger.info(f"Created ad-hoc match {match.id}: {player1_id} vs {player2_id}")
        return match

    async def get_match(self, match_id: str) -> Match:
        match = self.store.get_match(match_id)
        if match is None:
            raise NotFoundError("match", match_id)
        return match

    async def list_matches(
        self, tournament_id: str | None = None, status: MatchStatus | None = None
    ) -> list[Match]:
        return self.store.query_matches(tournament_id=tournament_id, status=status)

    async def open_match(self, match_id: str) -> Match:
        """Load a match for viewing, activating it if it is still pending.

        Matches with an empty slot stay pending until both players are known.
        """
        match = await self.get_match(match_id)

        if match.status == MatchStatus.PENDING and self._has_both_players(match):
            match = self.store.update_match(match_id, status=MatchStatus.ACTIVE)
            logger.info(f"Match {match_id} is now active")

        return match

    async def adjust_score(self, match_id: str, slot: int, delta: int) -> Match:
        """Nudge one player's score by +1 or -1."""
        if slot not in (1, 2):
            raise InvalidOperationError(f"Slot must be 1 or 2, got {slot}")
        if delta not in (1, -1):
            raise InvalidOperationError(f"Score can only change by +1 or -1, got {delta}")

        match = await self.get_match(match_id)
        self._ensure_scorable(match)

        updated = self.store.increment_score(match_id, slot, delta)
        if updated is None:
            # Re-read to explain the rejection; another session may have won the race
            current = await self.get_match(match_id)
            if current.status == MatchStatus.COMPLETED:
                raise InvalidOperationError(f"Match {match_id} is already completed")
            raise InvalidOperationError("Scores cannot be negative")

        return updated

    async def set_score(self, match_id: str, score1: int, score2: int) -> MatchResult:
        """Overwrite both scores and re-derive the status.

        A decisive score (to 11, by 2) completes the match through the same
        path as ``end_match``; anything else leaves it active.
        """
        if score1 < 0 or score2 < 0:
            raise InvalidOperationError("Scores cannot be negative")

        match = await self.get_match(match_id)
        self._ensure_scorable(match)

        if is_game_won(score1, score2, self.points_to_win, self.win_margin):
            match = self.store.update_match(
                match_id, player1_score=score1, player2_score=score2
            )
            return self._complete(match)

        match = self.store.update_match(
            match_id,
            player1_score=score1,
            player2_score=score2,
            status=MatchStatus.ACTIVE,
        )
        return MatchResult(match=match)

    async def end_match(self, match_id: str) -> MatchResult:
        """Complete an active match on its current scores and record player stats."""
        match = await self.get_match(match_id)
        self._ensure_scorable(match)
        if match.status == MatchStatus.PENDING:
            raise InvalidOperationError(
                f"Match {match_id} has not been opened yet and cannot be ended"
            )
        return self._complete(match)

    async def resolve_walkovers(self, tournament_id: str) -> list[Match]:
        """Complete every bracket match that can no longer get two players.

        Returns the matches completed as walkovers, in bracket order.
        """
        total_rounds = self.store.get_bracket_rounds(tournament_id)
        if total_rounds is None:
            return []

        resolved: list[Match] = []
        for match in self.store.query_matches(tournament_id=tournament_id):
            current = self.store.get_match(match.id)
            if current is not None:
                resolved.extend(self._resolve_walkover(current, total_rounds))
        return resolved

    def _complete(self, match: Match) -> MatchResult:
        winner_id = determine_winner(match)
        completed = self.store.complete_match(match.id, winner_id)
        if completed is None:
            # Another session completed it between our read and this write
            raise InvalidOperationError(f"Match {match.id} is already completed")
        logger.info(
            f"Match {match.id} completed {completed.player1_score}-{completed.player2_score}, "
            f"winner: {winner_id or 'tie'}"
        )

        failures = self._record_stats(completed)
        self._advance(completed)
        return MatchResult(match=completed, failures=failures)

    def _record_stats(self, match: Match) -> list[PartialFailureError]:
        """Bump each participant's counters; failures are reported, not raised."""
        failures = []
        for player_id, delta in stats_deltas(match):
            try:
                self.stats_store.increment_player_stats(player_id, delta)
            except Exception as e:
                failure = PartialFailureError(match.id, player_id, e)
                logger.warning(str(failure))
                failures.append(failure)
        return failures

    def _advance(self, match: Match) -> list[Match]:
        """Move a completed bracket match's winner into the next round.

        Returns any matches that became walkovers as a consequence.
        """
        if not match.is_bracket_match:
            return []

        tournament_id = match.tournament_id
        round_number = match.round_number
        total_rounds = self.store.get_bracket_rounds(tournament_id)
        if total_rounds is None:
            return []

        if round_number >= total_rounds:
            self.store.update_tournament(
                tournament_id,
                status=TournamentStatus.COMPLETED,
                champion_id=match.winner_id,
            )
            logger.info(
                f"Tournament {tournament_id} completed, champion: {match.winner_id or 'none'}"
            )
            return []

        next_position, slot = next_slot(match.position)
        next_match = self.store.get_match_at(tournament_id, round_number + 1, next_position)
        if next_match is None:
            logger.error(
                f"Bracket of tournament {tournament_id} has no match at "
                f"round {round_number + 1}, position {next_position}"
            )
            return []

        if match.winner_id is not None:
            next_match = self.store.update_match(
                next_match.id, **{f"player{slot}_id": match.winner_id}
            )
            logger.info(
                f"Advanced {match.winner_id} to round {round_number + 1}, "
                f"position {next_position}"
            )

        return self._resolve_walkover(next_match, total_rounds)

    def _resolve_walkover(self, match: Match, total_rounds: int) -> list[Match]:
        """Complete ``match`` if no slot is still waiting on a feeder match.

        One filled slot is a walkover win; two empty slots complete with no
        winner. Walkovers never touch player stats.
        """
        if match.status == MatchStatus.COMPLETED:
            return []

        filled = [pid for pid in (match.player1_id, match.player2_id) if pid is not None]
        if len(filled) == 2:
            return []

        for slot in (1, 2):
            if match.slot(slot):
                continue
            if self._slot_is_awaiting(match, slot):
                return []

        winner_id = filled[0] if filled else None
        completed = self.store.complete_match(match.id, winner_id)
        if completed is None:
            return []
        logger.info(
            f"Match {match.id} (round {match.round_number}, position {match.position}) "
            f"completed as walkover for {winner_id or 'nobody'}"
        )

        return [completed] + self._advance(completed)

    def _slot_is_awaiting(self, match: Match, slot: int) -> bool:
        """True while the empty ``slot`` may still be filled by a feeder match."""
        if match.round_number is None or match.round_number <= 1:
            return False

        feeder_position = feeder_positions(match.position)[slot - 1]
        feeder = self.store.get_match_at(
            match.tournament_id, match.round_number - 1, feeder_position
        )
        return feeder is not None and feeder.status != MatchStatus.COMPLETED

    @staticmethod
    def _has_both_players(match: Match) -> bool:
        return match.player1_id is not None and match.player2_id is not None

    def _ensure_scorable(self, match: Match) -> None:
        if match.status == MatchStatus.COMPLETED:
            raise InvalidOperationError(f"Match {match.id} is already completed")
        if not self._has_both_players(match):
            raise InvalidOperationError(
                f"Match {match.id} is waiting for both players to be decided"
            )
