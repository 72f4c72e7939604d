"""Companion server lifespan management."""

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from functools import partial
from typing import Any

import httpx
from fastapi import FastAPI

from spotify_flexbar import __version__
from spotify_flexbar.cache import SimpleCache
from spotify_flexbar.config import get_settings
from spotify_flexbar.core.coordinator import NowPlayingCoordinator
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.middleware.logging_middleware import redact_sensitive_data
from spotify_flexbar.services.album_art_service import fetch_album_art
from spotify_flexbar.services.spotify_service import SpotifyPlaybackAPI
from spotify_flexbar.state_managers import SpotifyAuthManager

logger = get_logger(__name__)


async def log_request(request: httpx.Request) -> None:
    """Event hook to log outgoing requests with redacted sensitive data."""
    log_with_context(
        logger,
        "debug",
        "HTTP Request",
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        event_type="http_request",
    )


async def log_response(response: httpx.Response) -> None:
    """Event hook to log responses with redacted sensitive data."""
    log_with_context(
        logger,
        "debug",
        "HTTP Response",
        status_code=response.status_code,
        url=redact_sensitive_data(str(response.request.url)),
        event_type="http_response",
    )


def create_http_client() -> httpx.AsyncClient:
    """Shared client for Spotify API calls and album art downloads."""
    event_hooks: dict[str, list[Callable[..., Any]]] = {
        "request": [log_request],
        "response": [log_response],
    }
    return httpx.AsyncClient(  # nosec B113
        timeout=httpx.Timeout(
            connect=5.0,
            read=10.0,
            write=5.0,
            pool=5.0,
        ),
        limits=httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,
        ),
        follow_redirects=True,
        event_hooks=event_hooks,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the plugin on startup and tear it down on shutdown.

    Exceptions after yield are re-raised so cleanup still runs.
    """
    settings = get_settings()
    app.state.startup_time = time.time()
    app.state.request_count = 0

    log_with_context(
        logger,
        "info",
        "Starting Spotify FlexBar plugin",
        version=__version__,
        event_type="app_startup",
    )

    client = create_http_client()
    app.state.http_client = client

    auth_manager = SpotifyAuthManager()
    await auth_manager.initialize()
    app.state.spotify_auth_manager = auth_manager

    cache = SimpleCache()
    app.state.cache = cache

    coordinator = NowPlayingCoordinator(
        api=SpotifyPlaybackAPI(client, auth_manager, settings),
        album_art_loader=partial(fetch_album_art, client, cache=cache, settings=settings),
        default_update_interval_ms=settings.default_update_interval_ms,
        default_interpolation_interval_ms=settings.default_interpolation_interval_ms,
    )
    app.state.coordinator = coordinator

    key_host = getattr(app.state, "key_host", None)
    if key_host is not None:
        coordinator.attach(key_host)
        log_with_context(
            logger,
            "info",
            "Attached to key host",
            host=type(key_host).__name__,
            event_type="host_attached",
        )
    else:
        log_with_context(
            logger,
            "warning",
            "No key host configured, serving OAuth and status endpoints only",
            event_type="host_missing",
        )

    try:
        yield
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Application error during lifespan",
            error=str(e),
            error_type=type(e).__name__,
            event_type="app_error",
        )
        raise
    finally:
        log_with_context(
            logger,
            "info",
            "Shutting down Spotify FlexBar plugin",
            event_type="app_shutdown",
        )
        await coordinator.cleanup()
        await auth_manager.cleanup()
        cache.clear()
        await client.aclose()
        log_with_context(
            logger,
            "info",
            "HTTP client closed",
            event_type="http_client_cleanup",
        )
