"""Tests for persisting brackets and resolving walkovers."""

import pytest
from conftest import run

from tournaments import (
    BracketExistsError,
    InsufficientPlayersError,
    InvalidOperationError,
    MatchStatus,
    NotFoundError,
    PersistenceError,
    Player,
    TournamentStatus,
)
from tournaments.models import (
    AttendeeImportRequest,
    PlayerCreateRequest,
    TournamentCreateRequest,
)

pytestmark = pytest.mark.integration


def match_at(bracket, round_number: int, position: int):
    for match in bracket.matches:
        if match.round_number == round_number and match.position == position:
            return match
    raise AssertionError(f"No match at round {round_number}, position {position}")


class TestGenerateBracket:
    def test_four_player_bracket(self, manager, make_tournament) -> None:
        tournament_id, players = make_tournament(4)

        bracket = run(manager.generate_bracket(tournament_id))

        assert bracket.total_rounds == 2
        assert len(bracket.matches) == 3
        assert [r.round_number for r in bracket.rounds] == [1, 2]
        assert [len(r.matches) for r in bracket.rounds] == [2, 1]
        assert bracket.tournament.status == TournamentStatus.ACTIVE

        first_round = bracket.rounds[0].matches
        seated = {m.player1_id for m in first_round} | {m.player2_id for m in first_round}
        assert seated == {p.id for p in players}
        assert all(m.status == MatchStatus.PENDING for m in bracket.matches)

        final = match_at(bracket, 2, 0)
        assert final.player1_id is None
        assert final.player2_id is None
        assert not final.slots[0]

    def test_matches_carry_player_details(self, manager, make_tournament) -> None:
        tournament_id, players = make_tournament(2)

        bracket = run(manager.generate_bracket(tournament_id))

        final = bracket.matches[0]
        names = {final.player1.name, final.player2.name}
        assert names == {p.name for p in players}

    def test_rejects_fewer_than_two_players(self, manager, db, make_tournament) -> None:
        tournament_id, _ = make_tournament(1)

        with pytest.raises(InsufficientPlayersError):
            run(manager.generate_bracket(tournament_id))

        assert db.query_matches(tournament_id=tournament_id) == []
        assert db.get_bracket_rounds(tournament_id) is None
        assert db.get_tournament(tournament_id).status == TournamentStatus.UPCOMING

    def test_rejects_empty_tournament_id(self, manager) -> None:
        with pytest.raises(InvalidOperationError):
            run(manager.generate_bracket(""))

    def test_unknown_tournament(self, manager) -> None:
        with pytest.raises(NotFoundError):
            run(manager.generate_bracket("missing"))

    def test_second_generation_is_rejected(self, manager, db, make_tournament) -> None:
        tournament_id, _ = make_tournament(6)
        first = run(manager.generate_bracket(tournament_id))

        with pytest.raises(BracketExistsError):
            run(manager.generate_bracket(tournament_id))

        after = db.query_matches(tournament_id=tournament_id)
        assert [m.id for m in after] == [m.id for m in first.matches]
        assert [(m.player1_id, m.player2_id) for m in after] == [
            (m.player1_id, m.player2_id) for m in first.matches
        ]

    def test_failed_batch_leaves_nothing_behind(
        self, manager, db, make_tournament
    ) -> None:
        tournament_id, players = make_tournament(3)
        ghost = Player(id="ghost", name="Not Registered")

        with pytest.raises(PersistenceError):
            run(manager.generate_bracket(tournament_id, players + [ghost]))

        assert db.query_matches(tournament_id=tournament_id) == []
        assert db.get_bracket_rounds(tournament_id) is None

        # The tournament can still get a bracket afterwards
        bracket = run(manager.generate_bracket(tournament_id))
        assert len(bracket.matches) == 3

    def test_explicit_player_list_overrides_roster(
        self, manager, make_tournament
    ) -> None:
        tournament_id, players = make_tournament(6)
        chosen = players[:4]

        bracket = run(manager.generate_bracket(tournament_id, chosen))

        seated = {
            pid
            for m in bracket.rounds[0].matches
            for pid in (m.player1_id, m.player2_id)
        }
        assert seated == {p.id for p in chosen}

    def test_roster_is_closed_after_generation(
        self, manager, make_tournament
    ) -> None:
        tournament_id, _ = make_tournament(2)
        run(manager.generate_bracket(tournament_id))
        late = run(
            manager.create_player(PlayerCreateRequest(name="Latecomer"))
        )

        with pytest.raises(InvalidOperationError):
            run(manager.enroll_player(tournament_id, late.id))

    def test_bracket_view_before_generation(self, manager, make_tournament) -> None:
        tournament_id, players = make_tournament(3)

        bracket = run(manager.get_bracket_view(tournament_id))

        assert bracket.total_rounds == 0
        assert bracket.matches == []
        assert len(bracket.players) == 3


class TestWalkovers:
    def test_bye_advances_without_stats(self, manager, db, make_tournament) -> None:
        tournament_id, _ = make_tournament(3)

        bracket = run(manager.generate_bracket(tournament_id))

        bye = match_at(bracket, 1, 1)
        assert bye.player2_id is None
        assert bye.status == MatchStatus.COMPLETED
        assert bye.winner_id == bye.player1_id

        final = match_at(bracket, 2, 0)
        assert final.player2_id == bye.player1_id
        assert final.player1_id is None
        assert final.status == MatchStatus.PENDING

        stats = db.get_player_stats(bye.player1_id)
        assert stats.matches_played == 0
        assert stats.matches_won == 0

    def test_walkover_cascades_through_missing_feeders(
        self, manager, make_tournament
    ) -> None:
        tournament_id, _ = make_tournament(5)

        bracket = run(manager.generate_bracket(tournament_id))
        bye_winner = match_at(bracket, 1, 2).player1_id

        # Round 2 position 1 is fed only by the bye
        semifinal = match_at(bracket, 2, 1)
        assert semifinal.player1_id == bye_winner
        assert semifinal.player2_id is None
        assert semifinal.status == MatchStatus.COMPLETED
        assert semifinal.winner_id == bye_winner

        final = match_at(bracket, 3, 0)
        assert final.player2_id == bye_winner
        assert final.status == MatchStatus.PENDING

    def test_match_with_no_possible_players_completes_without_winner(
        self, manager, make_tournament
    ) -> None:
        tournament_id, _ = make_tournament(9)

        bracket = run(manager.generate_bracket(tournament_id))

        # Round 1 has five matches, so round 2 position 3 has no feeders at all
        empty = match_at(bracket, 2, 3)
        assert empty.status == MatchStatus.COMPLETED
        assert empty.winner_id is None

        bye_winner = match_at(bracket, 1, 4).player1_id
        assert match_at(bracket, 3, 1).winner_id == bye_winner
        assert match_at(bracket, 4, 0).player2_id == bye_winner

    def test_full_bracket_has_no_walkovers(self, manager, make_tournament) -> None:
        tournament_id, _ = make_tournament(8)

        bracket = run(manager.generate_bracket(tournament_id))

        assert all(m.status == MatchStatus.PENDING for m in bracket.matches)


class TestRosters:
    def test_enroll_is_idempotent(self, manager, make_tournament) -> None:
        tournament_id, players = make_tournament(2)

        assert run(manager.enroll_player(tournament_id, players[0].id)) is False
        assert len(run(manager.list_players(tournament_id))) == 2

    def test_enroll_unknown_player(self, manager, make_tournament) -> None:
        tournament_id, _ = make_tournament(2)

        with pytest.raises(NotFoundError):
            run(manager.enroll_player(tournament_id, "missing"))

    def test_duplicate_email_is_rejected(self, manager) -> None:
        run(manager.create_player(PlayerCreateRequest(name="Ann", email="ann@example.com")))

        with pytest.raises(InvalidOperationError):
            run(manager.create_player(PlayerCreateRequest(name="Ann B", email="ann@example.com")))

    def test_new_player_has_zeroed_stats(self, manager) -> None:
        player = run(manager.create_player(PlayerCreateRequest(name="  Bo  ")))

        stats = run(manager.get_player_stats(player.id))

        assert player.name == "Bo"
        assert (stats.matches_played, stats.matches_won, stats.total_points_scored) == (0, 0, 0)

    def test_end_date_before_start_date(self, manager) -> None:
        request = TournamentCreateRequest(
            name="Backwards", start_date="2026-05-02", end_date="2026-05-01"
        )
        with pytest.raises(InvalidOperationError):
            run(manager.create_tournament(request))

    def test_import_attendees_reuses_existing_players(self, manager, db) -> None:
        existing = run(
            manager.create_player(PlayerCreateRequest(name="Ann", email="ann@example.com"))
        )

        tournament, players = run(
            manager.import_attendees(
                AttendeeImportRequest(
                    meeting_link="https://meet.example.com/abc-defg-hij",
                    attendees=[
                        PlayerCreateRequest(name="Ann", email="ann@example.com"),
                        PlayerCreateRequest(name="Ben", email="ben@example.com"),
                        PlayerCreateRequest(name="Cy"),
                    ],
                )
            )
        )

        assert tournament.name == "Tournament abc-defg-hij"
        assert tournament.meeting_link == "https://meet.example.com/abc-defg-hij"
        assert players[0].id == existing.id
        assert len(db.list_players()) == 3
        assert {p.id for p in db.list_players(tournament.id)} == {p.id for p in players}
