"""Single elimination bracket planning.

These helpers only decide the shape of a bracket; persisting it and
resolving walkovers is the manager's job.
"""

import math
import random
from typing import Any

from .exceptions import InsufficientPlayersError, InvalidOperationError
from .models import Player


def calculate_rounds(player_count: int) -> int:
    """Calculate total rounds needed for a player count."""
    if player_count < 2:
        return 0
    return math.ceil(math.log2(player_count))


def matches_in_round(player_count: int, round_number: int) -> int:
    """Number of matches in a round.

    Round 1 pairs every player (``ceil(N / 2)`` matches, the last one a bye
    for odd N); later rounds follow the power-of-two schedule.
    """
    total_rounds = calculate_rounds(player_count)
    if round_number < 1 or round_number > total_rounds:
        return 0
    if round_number == 1:
        return math.ceil(player_count / 2)
    return 2 ** (total_rounds - round_number)


def get_round_name(round_number: int, total_rounds: int) -> str:
    """Get the display name of a round."""
    remaining = total_rounds - round_number
    if remaining == 0:
        return "Final"
    elif remaining == 1:
        return "Semifinal"
    elif remaining == 2:
        return "Quarterfinal"
    else:
        return f"Round {round_number}"


def next_slot(position: int) -> tuple[int, int]:
    """Where the winner of the match at ``position`` goes in the next round.

    Returns ``(next_position, slot)`` with slot 1 for even positions and
    slot 2 for odd ones.
    """
    return position // 2, 1 if position % 2 == 0 else 2


def feeder_positions(position: int) -> tuple[int, int]:
    """Positions in the previous round that feed slots 1 and 2."""
    return 2 * position, 2 * position + 1


def shuffle_players(players: list[Player], rng: random.Random | None = None) -> list[Player]:
    """Return a uniformly shuffled copy of ``players``."""
    shuffled = list(players)
    (rng or random).shuffle(shuffled)
    return shuffled


def validate_roster(players: list[Player]) -> None:
    if len(players) < 2:
        raise InsufficientPlayersError(len(players))

    seen = set()
    for player in players:
        if player.id in seen:
            raise InvalidOperationError(f"Player {player.id} appears twice in the roster")
        seen.add(player.id)


def plan_bracket(
    players: list[Player], rng: random.Random | None = None
) -> tuple[int, list[dict[str, Any]]]:
    """Lay out every match row of a single elimination bracket.

    Returns ``(total_rounds, rows)``. Round 1 rows pair consecutive shuffled
    players; later rounds are placeholders with both slots empty.
    """
    validate_roster(players)

    shuffled = shuffle_players(players, rng)
    player_count = len(shuffled)
    total_rounds = calculate_rounds(player_count)

    rows: list[dict[str, Any]] = []
    for position in range(matches_in_round(player_count, 1)):
        player1 = shuffled[2 * position]
        player2 = shuffled[2 * position + 1] if 2 * position + 1 < player_count else None
        rows.append(
            {
                "round_number": 1,
                "position": position,
                "player1_id": player1.id,
                "player2_id": player2.id if player2 else None,  # None is a bye
            }
        )

    for round_number in range(2, total_rounds + 1):
        for position in range(matches_in_round(player_count, round_number)):
            rows.append(
                {
                    "round_number": round_number,
                    "position": position,
                    "player1_id": None,
                    "player2_id": None,
                }
            )

    return total_rounds, rows
