"""
API server runner for the jukebox status endpoints.

The API reads live supervisor state, so it runs inside the bot process.
"""

import uvicorn

from discord_jukebox.core.connection_supervisor import ConnectionSupervisor
from discord_jukebox.core.search_sessions import SearchSessionManager

from .app import create_app, logger


async def run_api_server(
    supervisor: ConnectionSupervisor,
    sessions: SearchSessionManager,
    host: str = "0.0.0.0",
    port: int = 8000,
) -> None:
    """
    Serve the status API until cancelled.

    Args:
        supervisor: Supervisor of the bot's audio node connection
        sessions: The bot's search session manager
        host: Host to bind to
        port: Port to bind to
    """
    app = create_app(supervisor=supervisor, sessions=sessions)

    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    logger.info(f"Starting status API server on {host}:{port}")
    try:
        await server.serve()
    except Exception as e:
        logger.critical(f"Status API server failed: {e}")
        raise
