"""System health endpoints."""

import logging

from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint to verify API is running."""
    return {
        "isAlive": True,
        "database": str(request.app.state.db.db_path),
    }
