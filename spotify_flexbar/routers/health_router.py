"""Health and debug endpoints."""

import platform
import sys
import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request

from spotify_flexbar import __version__
from spotify_flexbar.config import Settings, get_settings
from spotify_flexbar.core.coordinator import NowPlayingCoordinator
from spotify_flexbar.dependencies import get_coordinator, get_spotify_auth_manager
from spotify_flexbar.logging_config import get_log_level
from spotify_flexbar.models import DebugInfo, HealthResponse
from spotify_flexbar.services import spotify_service
from spotify_flexbar.state_managers import SpotifyAuthManager

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


@router.get("/debug", response_model=DebugInfo)
async def debug_info(
    request: Request,
    coordinator: NowPlayingCoordinator = Depends(get_coordinator),
    auth_manager: SpotifyAuthManager = Depends(get_spotify_auth_manager),
    settings: Settings = Depends(get_settings),
):
    """Plugin state for troubleshooting.

    Returns:
    - System info (version, uptime, Python version, log level)
    - Spotify auth state
    - The global playback context
    - Every active key with its interpolated progress
    """
    uptime_seconds = int(time.time() - request.app.state.startup_time)

    system_info = {
        "version": __version__,
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        "platform": platform.system(),
        "uptime_seconds": uptime_seconds,
        "log_level": get_log_level(),
        "total_requests": request.app.state.request_count,
        "spotify_refresh_token": "present" if spotify_service.is_authenticated(settings) else "missing",
        "spotify_access_token": "cached" if await auth_manager.get_token() else "none",
        "host_attached": coordinator.host is not None,
    }

    return DebugInfo(
        system=system_info,
        playback=coordinator.context.as_dict(),
        keys=coordinator.key_statuses(),
        timestamp=datetime.now(UTC),
    )
