"""FastAPI web application for the ping-pong tournament engine."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import DEFAULT_ADMIN_PIN, AppConfig, get_default_config
from tournaments import (
    MatchLifecycleManager,
    MatchUpdateHub,
    TournamentAPI,
    TournamentDatabaseManager,
    TournamentManager,
)
from web.endpoints.matches import router as matches_router, ws_router as matches_ws_router
from web.endpoints.players import router as players_router
from web.endpoints.system import router as system_router
from web.endpoints.tournaments import router as tournaments_router

logger: logging.Logger = logging.getLogger(__name__)


def get_allowed_origins() -> list[str] | None:
    """Get CORS origins from environment or use development defaults."""
    env_origins: str | None = os.environ.get("ALLOWED_ORIGINS")
    if env_origins:
        return [origin.strip() for origin in env_origins.split(",")]
    return None


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the application; managers are created when the lifespan starts."""
    app_config = config or get_default_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage application lifespan - startup and shutdown."""
        db = TournamentDatabaseManager(app_config.database.path, hub=MatchUpdateHub())
        lifecycle = MatchLifecycleManager(
            db,
            points_to_win=app_config.scoring.points_to_win,
            win_margin=app_config.scoring.win_margin,
        )
        manager = TournamentManager(db, lifecycle)

        app.state.db = db
        app.state.tournament_api = TournamentAPI(manager, lifecycle)
        logger.info(f"Tournament engine ready (database: {app_config.database.path})")
        if app_config.admin.pin == DEFAULT_ADMIN_PIN:
            logger.warning(
                "Admin PIN is still the template default; set ADMIN_PIN or edit "
                "tournament_config.json before exposing the server"
            )

        yield

        logger.info("Tournament engine shutting down")

    app = FastAPI(
        title="Ping-Pong Tournament Engine",
        description="Brackets, live match scoring and player statistics",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = app_config

    allowed_origins = get_allowed_origins()
    if allowed_origins:
        logger.info(f"Setting CORS allowed origins: {allowed_origins}")

        # Production: Use specific origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        logger.info("No ALLOWED_ORIGINS set, using development CORS settings")

        # Development: Allow any localhost/127.0.0.1
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(system_router, prefix="/v1")
    app.include_router(players_router, prefix="/v1")
    app.include_router(tournaments_router, prefix="/v1")
    app.include_router(matches_router, prefix="/v1")
    app.include_router(matches_ws_router, prefix="/v1")

    return app
