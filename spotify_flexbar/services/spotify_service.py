"""Spotify Web API service."""

from collections.abc import Callable
from typing import Any

import httpx

from spotify_flexbar.config import Settings, get_settings
from spotify_flexbar.exceptions import AuthError, NetworkError, NotAuthenticatedError, PluginException
from spotify_flexbar.interpolation import now_ms
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.models import PlaybackSnapshot
from spotify_flexbar.state_managers import SpotifyAuthManager

TOKEN_URL = "https://accounts.spotify.com/api/token"
API_BASE_URL = "https://api.spotify.com/v1"
REQUEST_TIMEOUT = 10.0

logger = get_logger(__name__)


def _load_refresh_token(settings: Settings) -> str | None:
    """Load refresh token from the token file."""
    token_file = settings.spotify_token_file
    if token_file.exists():
        try:
            return token_file.read_text(encoding="utf-8").strip() or None
        except OSError:
            return None
    return None


def _save_refresh_token(settings: Settings, refresh_token: str) -> None:
    """Save refresh token to the token file."""
    token_file = settings.spotify_token_file
    try:
        token_file.write_text(refresh_token, encoding="utf-8")
        token_file.chmod(0o600)  # Secure file permissions
    except OSError as e:
        raise PluginException(f"Failed to save refresh token: {str(e)}") from e


def is_authenticated(settings: Settings | None = None) -> bool:
    """Check if we have a refresh token available.

    Args:
        settings: Settings instance (defaults to singleton)
    """
    if settings is None:
        settings = get_settings()
    return bool(settings.spotify_refresh_token) or _load_refresh_token(settings) is not None


async def _get_access_token(
    client: httpx.AsyncClient,
    auth_manager: SpotifyAuthManager,
    settings: Settings | None = None,
) -> str:
    """
    Get Spotify access token using refresh token flow.

    Automatically refreshes the token when expired. Concurrent callers
    share one refresh.

    Args:
        client: Shared HTTP client.
        auth_manager: Spotify authentication state manager
        settings: Settings instance (defaults to singleton)

    Returns:
        Access token string.

    Raises:
        NotAuthenticatedError: No refresh token is available.
        AuthError: Spotify rejected the refresh token.
        NetworkError: The token endpoint could not be reached.
    """
    if settings is None:
        settings = get_settings()

    cached_token = await auth_manager.get_token()
    if cached_token:
        return cached_token

    async with auth_manager.lock:
        # Another caller may have refreshed while we waited
        cached_token = await auth_manager.get_token()
        if cached_token:
            return cached_token

        refresh_token = (
            await auth_manager.get_refresh_token()
            or _load_refresh_token(settings)
            or settings.spotify_refresh_token
        )
        if not refresh_token:
            raise NotAuthenticatedError("No refresh token available. Please authenticate first.")

        try:
            response = await client.post(
                TOKEN_URL,
                auth=(settings.spotify_client_id, settings.spotify_client_secret),
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()

            access_token = data["access_token"]
            expires_in = data.get("expires_in", 3600)
        except httpx.HTTPStatusError as e:
            if e.response.status_code in (400, 401):
                raise AuthError(
                    "Spotify token refresh failed",
                    details={"status_code": e.response.status_code},
                ) from e
            raise NetworkError(
                f"Spotify token endpoint error (HTTP {e.response.status_code})",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Spotify token endpoint unreachable: {str(e)}") from e
        except (KeyError, ValueError) as e:
            raise AuthError(f"Invalid Spotify auth response: {str(e)}") from e

        await auth_manager.set_token(access_token, expires_in)

        # If a new refresh token is provided, save it
        if "refresh_token" in data:
            await auth_manager.set_refresh_token(data["refresh_token"])
            _save_refresh_token(settings, data["refresh_token"])

        log_with_context(
            logger,
            "debug",
            "Spotify access token refreshed",
            expires_in=expires_in,
            event_type="spotify_token_refreshed",
        )
        return access_token


async def ensure_authenticated(
    client: httpx.AsyncClient,
    auth_manager: SpotifyAuthManager,
    settings: Settings | None = None,
) -> bool:
    """Try to obtain a usable access token.

    Returns:
        True if a token is available, False otherwise. Never raises.
    """
    try:
        await _get_access_token(client, auth_manager, settings)
        return True
    except PluginException as e:
        log_with_context(
            logger,
            "warning",
            "Spotify authentication unavailable",
            error=e.message,
            error_code=e.code.value,
            event_type="spotify_auth_unavailable",
        )
        return False


async def _api_request(
    client: httpx.AsyncClient,
    auth_manager: SpotifyAuthManager,
    settings: Settings | None,
    method: str,
    path: str,
    action: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send an authenticated request to the Web API and map failures.

    Raises:
        AuthError: On HTTP 401 (the cached token is dropped first).
        NetworkError: On any other HTTP or transport failure.
    """
    token = await _get_access_token(client, auth_manager, settings)
    try:
        response = await client.request(
            method,
            f"{API_BASE_URL}{path}",
            headers={"Authorization": f"Bearer {token}"},
            timeout=REQUEST_TIMEOUT,
            **kwargs,
        )
        response.raise_for_status()
        return response
    except httpx.HTTPStatusError as e:
        status_code = e.response.status_code
        if status_code == 401:
            await auth_manager.invalidate_token()
            raise AuthError(f"{action} failed: access token rejected", details={"status_code": 401}) from e
        raise NetworkError(
            f"{action} failed (HTTP {status_code})",
            status_code=status_code if status_code >= 500 else 502,
            details={"status_code": status_code},
        ) from e
    except httpx.HTTPError as e:
        raise NetworkError(f"{action} failed: {str(e)}", details={"error_type": "network_error"}) from e


async def get_current_playback(
    client: httpx.AsyncClient,
    auth_manager: SpotifyAuthManager,
    settings: Settings | None = None,
    clock: Callable[[], int] = now_ms,
) -> PlaybackSnapshot | None:
    """
    Get current playback state on Spotify.

    Args:
        client: Shared HTTP client.
        auth_manager: Spotify authentication state manager
        settings: Settings instance (defaults to singleton)
        clock: Wall-clock source in milliseconds

    Returns:
        PlaybackSnapshot, or None when nothing is playing.
    """
    response = await _api_request(client, auth_manager, settings, "GET", "/me/player", "Get playback state")
    data = response.json() if response.status_code != 204 else None
    return PlaybackSnapshot.from_spotify(data, clock())


async def check_tracks_saved(
    client: httpx.AsyncClient,
    track_ids: list[str],
    auth_manager: SpotifyAuthManager,
    settings: Settings | None = None,
) -> list[bool]:
    """Check whether tracks are in the user's library.

    Returns:
        One bool per track id, in order.
    """
    response = await _api_request(
        client,
        auth_manager,
        settings,
        "GET",
        "/me/tracks/contains",
        "Check saved tracks",
        params={"ids": ",".join(track_ids)},
    )
    data = response.json()
    if not isinstance(data, list):
        raise NetworkError("Check saved tracks returned an unexpected payload")
    return [bool(saved) for saved in data]


async def save_track(
    client: httpx.AsyncClient, track_id: str, auth_manager: SpotifyAuthManager, settings: Settings | None = None
) -> None:
    """Add a track to the user's library."""
    await _api_request(client, auth_manager, settings, "PUT", "/me/tracks", "Save track", params={"ids": track_id})


async def remove_saved_track(
    client: httpx.AsyncClient, track_id: str, auth_manager: SpotifyAuthManager, settings: Settings | None = None
) -> None:
    """Remove a track from the user's library."""
    await _api_request(
        client, auth_manager, settings, "DELETE", "/me/tracks", "Remove saved track", params={"ids": track_id}
    )


async def play(client: httpx.AsyncClient, auth_manager: SpotifyAuthManager, settings: Settings | None = None) -> None:
    """Resume playback on Spotify."""
    await _api_request(client, auth_manager, settings, "PUT", "/me/player/play", "Spotify play")


async def pause(client: httpx.AsyncClient, auth_manager: SpotifyAuthManager, settings: Settings | None = None) -> None:
    """Pause playback on Spotify."""
    await _api_request(client, auth_manager, settings, "PUT", "/me/player/pause", "Spotify pause")


async def exchange_authorization_code(
    client: httpx.AsyncClient,
    code: str,
    auth_manager: SpotifyAuthManager,
    settings: Settings | None = None,
) -> str:
    """Exchange an OAuth authorization code for tokens.

    The refresh token is stored in the auth manager and persisted to the
    token file; the access token is cached.

    Returns:
        The refresh token.
    """
    if settings is None:
        settings = get_settings()

    try:
        response = await client.post(
            TOKEN_URL,
            auth=(settings.spotify_client_id, settings.spotify_client_secret),
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": settings.spotify_redirect_uri,
            },
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as e:
        raise AuthError(
            f"Token exchange failed (HTTP {e.response.status_code})",
            details={"status_code": e.response.status_code},
        ) from e
    except httpx.HTTPError as e:
        raise NetworkError(f"Token exchange failed: {str(e)}") from e

    refresh_token = data.get("refresh_token")
    if not refresh_token:
        raise AuthError("No refresh token received")

    settings.update_spotify_refresh_token(refresh_token)
    await auth_manager.set_refresh_token(refresh_token)
    if "access_token" in data:
        await auth_manager.set_token(data["access_token"], data.get("expires_in", 3600))
    _save_refresh_token(settings, refresh_token)
    return refresh_token


class SpotifyPlaybackAPI:
    """Binds the module functions to one client/auth manager/settings triple.

    This is the PlaybackAPI the coordinator talks to.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        auth_manager: SpotifyAuthManager,
        settings: Settings | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.client = client
        self.auth_manager = auth_manager
        self.settings = settings or get_settings()
        self.clock = clock

    def is_authenticated(self) -> bool:
        """Checked on every poll tick, so the token file is read only while no token is in memory."""
        if self.auth_manager.has_refresh_token() or self.settings.spotify_refresh_token:
            return True
        refresh_token = _load_refresh_token(self.settings)
        if refresh_token is None:
            return False
        self.settings.update_spotify_refresh_token(refresh_token)
        return True

    async def ensure_authenticated(self) -> bool:
        return await ensure_authenticated(self.client, self.auth_manager, self.settings)

    async def fetch_playback_state(self) -> PlaybackSnapshot | None:
        return await get_current_playback(self.client, self.auth_manager, self.settings, self.clock)

    async def check_if_saved(self, track_id: str) -> bool:
        saved = await check_tracks_saved(self.client, [track_id], self.auth_manager, self.settings)
        if not saved:
            raise NetworkError("Saved-status check returned no result", details={"track_id": track_id})
        return saved[0]

    async def save_track(self, track_id: str) -> None:
        await save_track(self.client, track_id, self.auth_manager, self.settings)

    async def remove_saved_track(self, track_id: str) -> None:
        await remove_saved_track(self.client, track_id, self.auth_manager, self.settings)

    async def play(self) -> None:
        await play(self.client, self.auth_manager, self.settings)

    async def pause(self) -> None:
        await pause(self.client, self.auth_manager, self.settings)
