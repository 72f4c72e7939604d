"""Pytest configuration and shared fixtures."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from spotify_flexbar.config import Settings
from spotify_flexbar.models import PlaybackSnapshot

T0 = 1_700_000_000_000  # Arbitrary wall-clock origin in ms


class FakeClock:
    """Controllable millisecond clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeKeyHost:
    """Records what would be drawn on the FlexBar keys."""

    def __init__(self):
        self.images: list[tuple[str, bytes]] = []
        self.texts: list[tuple[str, str]] = []
        self.on_activate = None
        self.on_deactivate = None

    def register_key_lifecycle(self, on_activate, on_deactivate) -> None:
        self.on_activate = on_activate
        self.on_deactivate = on_deactivate

    def draw_key_image(self, key_id: str, image: bytes) -> None:
        self.images.append((key_id, image))

    def draw_key_text(self, key_id: str, text: str) -> None:
        self.texts.append((key_id, text))

    def draws_for(self, key_id: str) -> int:
        return sum(1 for k, _ in self.images if k == key_id) + sum(1 for k, _ in self.texts if k == key_id)


def make_snapshot(
    track_id: str | None = "track-a",
    is_playing: bool = True,
    progress_ms: int = 10_000,
    duration_ms: int = 200_000,
    title: str = "Test Song",
    artist: str = "Test Artist",
    album_art_url: str | None = None,
) -> PlaybackSnapshot:
    return PlaybackSnapshot(
        track_id=track_id,
        title=title,
        artist=artist,
        album_art_url=album_art_url,
        is_playing=is_playing,
        progress_ms=progress_ms,
        duration_ms=duration_ms,
        fetched_at_ms=T0,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_host():
    return FakeKeyHost()


@pytest.fixture
def fake_api():
    """PlaybackAPI double: authenticated, nothing playing, track not saved."""
    api = MagicMock()
    api.is_authenticated = MagicMock(return_value=True)
    api.ensure_authenticated = AsyncMock(return_value=True)
    api.fetch_playback_state = AsyncMock(return_value=None)
    api.check_if_saved = AsyncMock(return_value=False)
    api.save_track = AsyncMock()
    api.remove_saved_track = AsyncMock()
    api.play = AsyncMock()
    api.pause = AsyncMock()
    return api


@pytest.fixture
def mock_http_client():
    """Mock httpx.AsyncClient for external API calls."""
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.request = AsyncMock()
    mock_client.get = AsyncMock()
    mock_client.post = AsyncMock()
    mock_client.aclose = AsyncMock()
    return mock_client


@pytest.fixture
def mock_settings(tmp_path):
    """Settings instance with test values, isolated from any local .env file."""
    return Settings(
        _env_file=None,
        spotify_client_id="test-spotify-client-id",
        spotify_client_secret="test-spotify-client-secret",
        spotify_redirect_uri="http://127.0.0.1:8888/auth/callback",
        spotify_refresh_token="test-refresh-token",
        spotify_token_file=tmp_path / "refresh_token",
        album_art_retry_delay_ms=0,
    )


@pytest.fixture
def mock_spotify_auth_manager():
    """Mock SpotifyAuthManager for testing."""
    manager = AsyncMock()
    manager.initialize = AsyncMock()
    manager.cleanup = AsyncMock()
    manager.get_token = AsyncMock(return_value=None)
    manager.set_token = AsyncMock()
    manager.invalidate_token = AsyncMock()
    manager.get_refresh_token = AsyncMock(return_value=None)
    manager.set_refresh_token = AsyncMock()
    manager.has_refresh_token = MagicMock(return_value=False)
    manager.lock = asyncio.Lock()
    return manager


@pytest.fixture
def mock_spotify_playback_response():
    """Mock Spotify playback state response."""
    return {
        "device": {"id": "test-device-id", "is_active": True, "name": "Desk Speaker", "type": "Speaker"},
        "is_playing": True,
        "item": {
            "id": "track-a",
            "name": "Test Song",
            "artists": [{"name": "Test Artist"}, {"name": "Guest"}],
            "album": {"name": "Test Album", "images": [{"url": "https://example.com/image.jpg"}]},
            "duration_ms": 240000,
        },
        "progress_ms": 60000,
        "shuffle_state": False,
        "repeat_state": "off",
    }
