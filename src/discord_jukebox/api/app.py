"""
FastAPI application exposing the jukebox connection status.
"""

from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from discord_jukebox import __version__
from discord_jukebox.core.connection_supervisor import ConnectionSupervisor
from discord_jukebox.core.search_sessions import SearchSessionManager
from discord_jukebox.infrastructure import setup_logging

logger = setup_logging(component_name="api")


class HealthResponse(BaseModel):
    """Response model for the health endpoint."""
    status: str
    node_available: bool


class StatusResponse(BaseModel):
    """Response model for the detailed status."""
    is_connected: bool
    phase: str
    node_identifier: str
    reconnect_attempts: int
    max_reconnect_attempts: int
    is_reconnecting: bool
    is_initialized: bool
    has_had_successful_connection: bool
    last_ping: float
    active_timers: List[str]
    search_sessions: int


def get_supervisor(request: Request) -> ConnectionSupervisor:
    """Dependency to get the connection supervisor."""
    return request.app.state.supervisor


def get_sessions(request: Request) -> SearchSessionManager:
    """Dependency to get the search session manager."""
    return request.app.state.sessions


def create_app(
    supervisor: ConnectionSupervisor,
    sessions: SearchSessionManager,
    cors_origins: Optional[List[str]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        supervisor: Supervisor of the bot's audio node connection
        sessions: The bot's search session manager
        cors_origins: Allowed CORS origins (all when omitted)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Discord Jukebox API",
        description="Status endpoints for the Discord Jukebox bot",
        version=__version__,
    )
    app.state.supervisor = supervisor
    app.state.sessions = sessions

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Discord Jukebox API", "version": __version__}

    @app.get("/health", response_model=HealthResponse)
    async def health_check(supervisor: ConnectionSupervisor = Depends(get_supervisor)):
        """200 while the audio node is available, 503 otherwise."""
        available = supervisor.is_available()
        body = HealthResponse(
            status="healthy" if available else "unavailable",
            node_available=available,
        )
        if not available:
            return JSONResponse(status_code=503, content=body.model_dump())
        return body

    @app.get("/status", response_model=StatusResponse)
    async def status(
        supervisor: ConnectionSupervisor = Depends(get_supervisor),
        sessions: SearchSessionManager = Depends(get_sessions),
    ):
        """Supervisor snapshot plus the number of open search sessions."""
        return StatusResponse(
            **supervisor.get_status(),
            search_sessions=sessions.get_session_count(),
        )

    return app
