"""Request-scoped access to the objects built at startup."""

from fastapi import Request

from tournaments import TournamentAPI


def get_tournament_api(request: Request) -> TournamentAPI:
    """Get the tournament API instance created by the app lifespan."""
    return request.app.state.tournament_api
