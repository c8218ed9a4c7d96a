"""Pytest configuration and shared fixtures.

Every test gets its own SQLite file under ``tmp_path`` so tests never share
state. Engine methods are coroutines; tests drive them with ``asyncio.run``.
"""

import asyncio
import random
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, TypeVar

import pytest

from tournaments import (
    MatchLifecycleManager,
    Player,
    TournamentDatabaseManager,
    TournamentManager,
)
from tournaments.models import PlayerCreateRequest, TournamentCreateRequest

T = TypeVar("T")


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run an engine coroutine to completion."""
    return asyncio.run(coro)


# =============================================================================
# SHARED FIXTURES - Available to all test modules
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "tournaments.db"


@pytest.fixture
def db(db_path: Path) -> TournamentDatabaseManager:
    """Provide a fresh database with the full schema."""
    return TournamentDatabaseManager(str(db_path))


@pytest.fixture
def lifecycle(db: TournamentDatabaseManager) -> MatchLifecycleManager:
    return MatchLifecycleManager(db)


@pytest.fixture
def manager(
    db: TournamentDatabaseManager, lifecycle: MatchLifecycleManager
) -> TournamentManager:
    """Tournament manager with a seeded shuffle so brackets are reproducible."""
    return TournamentManager(db, lifecycle, rng=random.Random(1234))


@pytest.fixture
def make_players(manager: TournamentManager) -> Callable[[int], list[Player]]:
    """Factory registering ``count`` players named Player 01, Player 02, ..."""

    def _make(count: int) -> list[Player]:
        return [
            run(
                manager.create_player(
                    PlayerCreateRequest(
                        name=f"Player {i:02d}", email=f"player{i}@example.com"
                    )
                )
            )
            for i in range(1, count + 1)
        ]

    return _make


@pytest.fixture
def make_tournament(
    manager: TournamentManager, make_players: Callable[[int], list[Player]]
) -> Callable[[int], tuple[str, list[Player]]]:
    """Factory creating a tournament with ``count`` enrolled players."""

    def _make(count: int) -> tuple[str, list[Player]]:
        tournament = run(
            manager.create_tournament(TournamentCreateRequest(name="Friday Cup"))
        )
        players = make_players(count)
        for player in players:
            run(manager.enroll_player(tournament.id, player.id))
        return tournament.id, players

    return _make


# =============================================================================
# PYTEST CONFIGURATION HOOKS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
