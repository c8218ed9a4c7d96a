"""Tournament database operations."""

import logging
import sqlite3
import uuid
from collections.abc import Callable
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .exceptions import BracketExistsError, NotFoundError, PersistenceError
from .live import MatchUpdateHub
from .models import (
    Match,
    MatchStatus,
    Player,
    PlayerStats,
    StatsDelta,
    Tournament,
    TournamentStatus,
)
from .schema import SchemaManager

logger = logging.getLogger(__name__)

MATCH_SELECT = """
    SELECT m.*,
           p1.name AS p1_name, p1.email AS p1_email,
           p1.profile_image_url AS p1_image,
           p2.name AS p2_name, p2.email AS p2_email,
           p2.profile_image_url AS p2_image
    FROM matches m
    LEFT JOIN players p1 ON p1.id = m.player1_id
    LEFT JOIN players p2 ON p2.id = m.player2_id
"""

UPDATABLE_MATCH_FIELDS = {
    "player1_id",
    "player2_id",
    "player1_score",
    "player2_score",
    "status",
    "winner_id",
}

UPDATABLE_TOURNAMENT_FIELDS = {
    "name",
    "description",
    "meeting_link",
    "start_date",
    "end_date",
    "status",
    "champion_id",
}


def new_id() -> str:
    return str(uuid.uuid4())


class TournamentDatabaseManager:
    """Manages SQLite database operations for players, tournaments and matches.

    Acts as both the match store and the player stats store of the engine.
    Every committed match change is published on ``hub``.
    """

    def __init__(self, db_path: str = "tournaments.db", hub: MatchUpdateHub | None = None):
        self.db_path = Path(db_path)
        self.hub = hub or MatchUpdateHub()
        self.schema_manager = SchemaManager()
        self._init_database()

    def _init_database(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        if not self.schema_manager.validate_schema_files():
            raise RuntimeError("Database schema validation failed - missing schema files")

        if self.db_path.parent != Path("."):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            cursor = conn.cursor()
            self.schema_manager.initialize_database_schema(cursor)
            conn.commit()
            logger.info(f"Tournament database initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row  # Enable column access by name
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"Tournament database error: {e}")
            raise PersistenceError(str(e)) from e
        finally:
            if conn:
                conn.close()

    # Players

    def create_player(
        self,
        name: str,
        email: str | None = None,
        profile_image_url: str | None = None,
    ) -> Player:
        """Insert a player together with its zeroed stats row."""
        player_id = new_id()
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute(
                """
                INSERT INTO players (id, name, email, profile_image_url)
                VALUES (?, ?, ?, ?)
                """,
                (player_id, name, email, profile_image_url),
            )
            cursor.execute(
                "INSERT INTO player_stats (player_id) VALUES (?)", (player_id,)
            )

            conn.commit()
            logger.info(f"Created player {player_id}: {name}")

        player = self.get_player(player_id)
        if player is None:
            raise PersistenceError(f"Player {player_id} missing after insert")
        return player

    def get_player(self, player_id: str) -> Player | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM players WHERE id = ?", (player_id,)
            ).fetchone()
            return self._row_to_player(row) if row else None

    def get_player_by_email(self, email: str) -> Player | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM players WHERE email = ?", (email,)
            ).fetchone()
            return self._row_to_player(row) if row else None

    def get_players(self, player_ids: list[str]) -> list[Player]:
        """Fetch players by id, preserving the requested order."""
        if not player_ids:
            return []

        placeholders = ", ".join("?" for _ in player_ids)
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM players WHERE id IN ({placeholders})", player_ids
            ).fetchall()

        by_id = {row["id"]: self._row_to_player(row) for row in rows}
        return [by_id[player_id] for player_id in player_ids if player_id in by_id]

    def list_players(self, tournament_id: str | None = None) -> list[Player]:
        """List players ordered by name, optionally only those enrolled in a tournament."""
        with self._get_connection() as conn:
            if tournament_id is not None:
                rows = conn.execute(
                    """
                    SELECT p.* FROM players p
                    JOIN tournament_players tp ON tp.player_id = p.id
                    WHERE tp.tournament_id = ?
                    ORDER BY p.name
                    """,
                    (tournament_id,),
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM players ORDER BY name").fetchall()

            return [self._row_to_player(row) for row in rows]

    def get_player_stats(self, player_id: str) -> PlayerStats | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM player_stats WHERE player_id = ?", (player_id,)
            ).fetchone()

            if not row:
                return None

            return PlayerStats(
                player_id=row["player_id"],
                matches_played=row["matches_played"],
                matches_won=row["matches_won"],
                total_points_scored=row["total_points_scored"],
            )

    def increment_player_stats(self, player_id: str, delta: StatsDelta) -> None:
        """Add ``delta`` to a player's counters in a single statement."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO player_stats (
                    player_id, matches_played, matches_won, total_points_scored
                ) VALUES (?, ?, ?, ?)
                ON CONFLICT (player_id) DO UPDATE SET
                    matches_played = matches_played + excluded.matches_played,
                    matches_won = matches_won + excluded.matches_won,
                    total_points_scored = total_points_scored + excluded.total_points_scored,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    player_id,
                    delta.matches_played,
                    delta.matches_won,
                    delta.points_scored,
                ),
            )
            conn.commit()

        logger.debug(
            f"Stats for {player_id}: +{delta.matches_played} played, "
            f"+{delta.matches_won} won, +{delta.points_scored} points"
        )

    # Tournaments

    def create_tournament(self, tournament: Tournament) -> Tournament:
        """Insert a tournament and return the stored row."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO tournaments (
                    id, name, description, meeting_link, start_date, end_date, status
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tournament.id,
                    tournament.name,
                    tournament.description,
                    tournament.meeting_link,
                    tournament.start_date.isoformat() if tournament.start_date else None,
                    tournament.end_date.isoformat() if tournament.end_date else None,
                    tournament.status.value,
                ),
            )
            conn.commit()
            logger.info(f"Created tournament {tournament.id}: {tournament.name}")

        stored = self.get_tournament(tournament.id)
        if stored is None:
            raise PersistenceError(f"Tournament {tournament.id} missing after insert")
        return stored

    def get_tournament(self, tournament_id: str) -> Tournament | None:
        """Get tournament by ID."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM tournaments WHERE id = ?", (tournament_id,)
            ).fetchone()

            if not row:
                return None

            return self._row_to_tournament(row)

    def list_tournaments(self) -> list[Tournament]:
        """List tournaments, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tournaments ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
            return [self._row_to_tournament(row) for row in rows]

    def update_tournament(self, tournament_id: str, **fields: Any) -> bool:
        """Update tournament columns; returns False when the tournament is missing."""
        unknown = set(fields) - UPDATABLE_TOURNAMENT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update tournament fields: {sorted(unknown)}")

        set_clauses = ["updated_at = CURRENT_TIMESTAMP"]
        params: list[Any] = []
        for name, value in fields.items():
            set_clauses.append(f"{name} = ?")
            params.append(value.value if isinstance(value, TournamentStatus) else value)
        params.append(tournament_id)

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE tournaments SET {', '.join(set_clauses)} WHERE id = ?",
                params,
            )
            updated = cursor.rowcount > 0
            conn.commit()

        if updated:
            logger.info(f"Updated tournament {tournament_id}: {sorted(fields)}")
        return updated

    def enroll_player(self, tournament_id: str, player_id: str) -> bool:
        """Add a player to a tournament roster; returns False if already enrolled."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO tournament_players (tournament_id, player_id)
                VALUES (?, ?)
                """,
                (tournament_id, player_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def get_bracket_rounds(self, tournament_id: str) -> int | None:
        """Total rounds of the tournament's bracket, or None if none was generated."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT total_rounds FROM bracket_generations WHERE tournament_id = ?",
                (tournament_id,),
            ).fetchone()
            return row["total_rounds"] if row else None

    # Matches

    def insert_bracket(
        self, tournament_id: str, total_rounds: int, rows: list[dict[str, Any]]
    ) -> list[Match]:
        """Persist a whole bracket in one transaction.

        The bracket marker row is written first; its primary key rejects a
        second bracket for the same tournament. Any failure leaves neither
        the marker nor any match behind.
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()

            try:
                cursor.execute(
                    """
                    INSERT INTO bracket_generations (tournament_id, total_rounds)
                    VALUES (?, ?)
                    """,
                    (tournament_id, total_rounds),
                )
            except sqlite3.IntegrityError as e:
                # Either a duplicate marker or an unknown tournament
                if self._has_marker(conn, tournament_id):
                    raise BracketExistsError(tournament_id) from e
                raise

            cursor.executemany(
                """
                INSERT INTO matches (
                    id, tournament_id, round_number, position,
                    player1_id, player2_id, status
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        row.get("id") or new_id(),
                        tournament_id,
                        row["round_number"],
                        row["position"],
                        row.get("player1_id"),
                        row.get("player2_id"),
                        MatchStatus.PENDING.value,
                    )
                    for row in rows
                ],
            )

            conn.commit()
            logger.info(
                f"Inserted bracket for tournament {tournament_id}: "
                f"{len(rows)} matches over {total_rounds} rounds"
            )

        return self.query_matches(tournament_id=tournament_id)

    def insert_match(self, row: dict[str, Any]) -> Match:
        """Insert a single match row and return it with resolved players."""
        match_id = row.get("id") or new_id()
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO matches (
                    id, tournament_id, round_number, position,
                    player1_id, player2_id, status
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    match_id,
                    row.get("tournament_id"),
                    row.get("round_number"),
                    row.get("position"),
                    row.get("player1_id"),
                    row.get("player2_id"),
                    MatchStatus.PENDING.value,
                ),
            )
            conn.commit()
            logger.info(f"Created match {match_id}")

        match = self.get_match(match_id)
        if match is None:
            raise PersistenceError(f"Match {match_id} missing after insert")
        return match

    def get_match(self, match_id: str) -> Match | None:
        with self._get_connection() as conn:
            row = conn.execute(f"{MATCH_SELECT} WHERE m.id = ?", (match_id,)).fetchone()
            return self._row_to_match(row) if row else None

    def get_match_at(
        self, tournament_id: str, round_number: int, position: int
    ) -> Match | None:
        """Find the bracket match at a (round, position) slot."""
        with self._get_connection() as conn:
            row = conn.execute(
                f"""
                {MATCH_SELECT}
                WHERE m.tournament_id = ? AND m.round_number = ? AND m.position = ?
                """,
                (tournament_id, round_number, position),
            ).fetchone()
            return self._row_to_match(row) if row else None

    def query_matches(
        self,
        tournament_id: str | None = None,
        round_number: int | None = None,
        status: MatchStatus | None = None,
    ) -> list[Match]:
        """List matches.

        Tournament queries are ordered by round then position; unfiltered
        queries list the newest matches first.
        """
        where = []
        params: list[Any] = []

        if tournament_id is not None:
            where.append("m.tournament_id = ?")
            params.append(tournament_id)
        if round_number is not None:
            where.append("m.round_number = ?")
            params.append(round_number)
        if status is not None:
            where.append("m.status = ?")
            params.append(status.value)

        query = MATCH_SELECT
        if where:
            query += " WHERE " + " AND ".join(where)
        if tournament_id is not None:
            query += " ORDER BY m.round_number, m.position"
        else:
            query += " ORDER BY m.created_at DESC, m.rowid DESC"

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_match(row) for row in rows]

    def update_match(self, match_id: str, **fields: Any) -> Match:
        """Update match columns, publish the new state and return it."""
        unknown = set(fields) - UPDATABLE_MATCH_FIELDS
        if unknown:
            raise ValueError(f"Cannot update match fields: {sorted(unknown)}")

        set_clauses = ["updated_at = CURRENT_TIMESTAMP"]
        params: list[Any] = []
        for name, value in fields.items():
            set_clauses.append(f"{name} = ?")
            params.append(value.value if isinstance(value, MatchStatus) else value)
        params.append(match_id)

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE matches SET {', '.join(set_clauses)} WHERE id = ?", params
            )
            updated = cursor.rowcount > 0
            conn.commit()

        if not updated:
            raise NotFoundError("match", match_id)

        logger.debug(f"Updated match {match_id}: {sorted(fields)}")
        return self._publish(match_id)

    def complete_match(self, match_id: str, winner_id: str | None) -> Match | None:
        """Mark a match completed unless it already is.

        Returns None without changing anything when the match is missing or
        another caller completed it first.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE matches
                SET status = ?, winner_id = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND status != ?
                """,
                (
                    MatchStatus.COMPLETED.value,
                    winner_id,
                    match_id,
                    MatchStatus.COMPLETED.value,
                ),
            )
            updated = cursor.rowcount > 0
            conn.commit()

        if not updated:
            return None
        return self._publish(match_id)

    def increment_score(self, match_id: str, slot: int, delta: int) -> Match | None:
        """Atomically add ``delta`` to one slot's score.

        Returns None without changing anything when the match is missing,
        already completed, or the score would drop below zero.
        """
        if slot not in (1, 2):
            raise ValueError(f"Slot must be 1 or 2, got {slot}")
        column = f"player{slot}_score"

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                UPDATE matches
                SET {column} = {column} + ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND status != ? AND {column} + ? >= 0
                """,
                (delta, match_id, MatchStatus.COMPLETED.value, delta),
            )
            updated = cursor.rowcount > 0
            conn.commit()

        if not updated:
            return None
        return self._publish(match_id)

    def subscribe(
        self, match_id: str, callback: Callable[[Match], None]
    ) -> Callable[[], None]:
        """Watch a match; returns the unsubscribe handle."""
        return self.hub.subscribe(match_id, callback)

    def _publish(self, match_id: str) -> Match:
        match = self.get_match(match_id)
        if match is None:
            raise NotFoundError("match", match_id)
        self.hub.publish(match)
        return match

    @staticmethod
    def _has_marker(conn: sqlite3.Connection, tournament_id: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM bracket_generations WHERE tournament_id = ?",
            (tournament_id,),
        ).fetchone()
        return row is not None

    @staticmethod
    def _row_to_player(row: sqlite3.Row) -> Player:
        return Player(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            profile_image_url=row["profile_image_url"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_tournament(row: sqlite3.Row) -> Tournament:
        return Tournament(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            meeting_link=row["meeting_link"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            status=TournamentStatus(row["status"]),
            champion_id=row["champion_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_match(row: sqlite3.Row) -> Match:
        player1 = None
        if row["player1_id"] is not None and row["p1_name"] is not None:
            player1 = Player(
                id=row["player1_id"],
                name=row["p1_name"],
                email=row["p1_email"],
                profile_image_url=row["p1_image"],
            )

        player2 = None
        if row["player2_id"] is not None and row["p2_name"] is not None:
            player2 = Player(
                id=row["player2_id"],
                name=row["p2_name"],
                email=row["p2_email"],
                profile_image_url=row["p2_image"],
            )

        return Match(
            id=row["id"],
            tournament_id=row["tournament_id"],
            round_number=row["round_number"],
            position=row["position"],
            player1_id=row["player1_id"],
            player2_id=row["player2_id"],
            player1_score=row["player1_score"],
            player2_score=row["player2_score"],
            status=MatchStatus(row["status"]),
            winner_id=row["winner_id"],
            player1=player1,
            player2=player2,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
