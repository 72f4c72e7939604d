"""FastAPI dependencies for dependency injection."""

import httpx
from fastapi import Request

from spotify_flexbar.core.coordinator import NowPlayingCoordinator
from spotify_flexbar.state_managers import SpotifyAuthManager


async def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Get the shared HTTP client from app state.

    Raises:
        RuntimeError: If HTTP client is not initialized.
    """
    client: httpx.AsyncClient | None = getattr(request.app.state, "http_client", None)

    if client is None:
        raise RuntimeError("HTTP client not initialized.")

    return client


async def get_spotify_auth_manager(request: Request) -> SpotifyAuthManager:
    manager: SpotifyAuthManager | None = getattr(request.app.state, "spotify_auth_manager", None)

    if manager is None:
        raise RuntimeError("Spotify auth manager not initialized.")

    return manager


async def get_coordinator(request: Request) -> NowPlayingCoordinator:
    """
    Get the key coordinator from app state.

    Raises:
        RuntimeError: If the coordinator is not initialized.
    """
    coordinator: NowPlayingCoordinator | None = getattr(request.app.state, "coordinator", None)

    if coordinator is None:
        raise RuntimeError("Key coordinator not initialized.")

    return coordinator
