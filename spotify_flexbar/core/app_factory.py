"""Application factory for the companion server."""

from fastapi import FastAPI

from spotify_flexbar import __version__
from spotify_flexbar.config import get_settings
from spotify_flexbar.core.lifespan import lifespan
from spotify_flexbar.core.middleware import setup_middleware
from spotify_flexbar.middleware.error_handlers import register_error_handlers
from spotify_flexbar.protocols import KeyHost
from spotify_flexbar.routers import auth_router, health_router


def create_app(key_host: KeyHost | None = None) -> FastAPI:
    """Create and configure the companion server.

    Args:
        key_host: The FlexBar host to attach the key coordinator to. Without
            one the server only serves the OAuth and status endpoints.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Spotify FlexBar",
        description="""
        Companion server for the Spotify **Now Playing** and **Like** FlexBar keys.

        ## Spotify Setup
        1. Visit /auth/login in your browser
        2. Log in with your Spotify account and approve access
        3. The refresh token is stored and the keys start updating on their next poll

        ## Status
        - `/health` - Basic health check
        - `/auth/status` - Whether a refresh token is available
        - `/debug` - Active keys, playback context and log level
        """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.key_host = key_host

    setup_middleware(app, settings)
    register_error_handlers(app)

    app.include_router(health_router.router, tags=["health"])
    app.include_router(auth_router.router, prefix="/auth", tags=["auth"])

    return app
