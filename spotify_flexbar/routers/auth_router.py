"""Spotify OAuth routes used to obtain a refresh token."""

import secrets
import time
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from spotify_flexbar.config import Settings, get_settings
from spotify_flexbar.dependencies import get_http_client, get_spotify_auth_manager
from spotify_flexbar.exceptions import PluginException
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.services import spotify_service
from spotify_flexbar.state_managers import SpotifyAuthManager

router = APIRouter()
logger = get_logger(__name__)

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"

# Pending OAuth states, expired after 10 minutes
_oauth_states: dict[str, float] = {}  # state -> timestamp
OAUTH_STATE_TTL_SECONDS = 600

# Playback state for the Now Playing key, library access for the Like key
SPOTIFY_SCOPES = [
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-library-read",
    "user-library-modify",
]

SUCCESS_PAGE = """<!doctype html>
<html><head><title>Spotify FlexBar</title></head>
<body><h1>Spotify connected</h1><p>You can close this window. Your FlexBar keys update on their next poll.</p></body>
</html>"""


def _cleanup_expired_oauth_states() -> None:
    current_time = time.time()
    expired_states = [
        state for state, timestamp in _oauth_states.items() if current_time - timestamp > OAUTH_STATE_TTL_SECONDS
    ]
    for state in expired_states:
        _oauth_states.pop(state, None)


@router.get("/login")
async def auth_login(settings: Settings = Depends(get_settings)):
    """Initiate Spotify OAuth flow."""
    _cleanup_expired_oauth_states()

    # Random state for CSRF protection
    state = secrets.token_urlsafe(32)
    _oauth_states[state] = time.time()

    params = {
        "client_id": settings.spotify_client_id,
        "response_type": "code",
        "redirect_uri": settings.spotify_redirect_uri,
        "state": state,
        "scope": " ".join(SPOTIFY_SCOPES),
        "show_dialog": "false",
    }
    return RedirectResponse(url=f"{AUTHORIZE_URL}?{urlencode(params)}")


@router.get("/callback", response_class=HTMLResponse)
async def auth_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    auth_manager: SpotifyAuthManager = Depends(get_spotify_auth_manager),
    settings: Settings = Depends(get_settings),
):
    """Handle Spotify OAuth callback and store the refresh token."""
    if error:
        raise HTTPException(status_code=400, detail=f"Spotify auth failed: {error}")

    _cleanup_expired_oauth_states()
    if not state or state not in _oauth_states:
        raise HTTPException(status_code=400, detail="Invalid state parameter")
    _oauth_states.pop(state, None)

    if not code:
        raise HTTPException(status_code=400, detail="No authorization code received")

    try:
        await spotify_service.exchange_authorization_code(client, code, auth_manager, settings)
    except PluginException as e:
        log_with_context(
            logger,
            "error",
            "Spotify authorization failed",
            error=e.message,
            error_code=e.code.value,
            event_type="spotify_auth_failed",
        )
        raise

    log_with_context(
        logger,
        "info",
        "Spotify refresh token stored",
        event_type="spotify_auth_success",
    )
    return HTMLResponse(SUCCESS_PAGE)


@router.get("/status")
async def auth_status(
    auth_manager: SpotifyAuthManager = Depends(get_spotify_auth_manager),
    settings: Settings = Depends(get_settings),
):
    """Whether a refresh token is available and an access token is cached."""
    return {
        "authenticated": spotify_service.is_authenticated(settings)
        or bool(await auth_manager.get_refresh_token()),
        "access_token_cached": bool(await auth_manager.get_token()),
    }
