"""State managers for handling plugin-wide mutable state.

All work runs on one asyncio event loop, so the playback context and the
per-key records are mutated without locks: a callback is never preempted
between two awaits. Only the auth manager takes a lock, because several
keys may try to refresh the access token at the same time.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from spotify_flexbar.exceptions import MissingKeyStateError
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.models import KeyConfig, PlaybackSnapshot

if TYPE_CHECKING:
    from PIL import Image

    from spotify_flexbar.core.timers import PeriodicTask

logger = get_logger(__name__)


class StateManager(ABC):
    """Base class for all state managers.

    All subclasses must implement lifecycle methods.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the state manager (called during startup)."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Cleanup resources (called during shutdown)."""
        pass


class SpotifyAuthManager(StateManager):
    """Manages Spotify access tokens with expiration tracking.

    Also keeps a refresh token obtained at runtime through the OAuth
    callback, so it can be used before it is picked up from disk.
    """

    def __init__(self):
        """Initialize the Spotify auth manager."""
        self._access_token: str | None = None
        self._token_expires_at: float = 0
        self._refresh_token: str | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the Spotify auth manager."""
        pass

    async def cleanup(self) -> None:
        """Clear tokens on shutdown."""
        async with self._lock:
            self._access_token = None
            self._token_expires_at = 0

    @property
    def lock(self) -> asyncio.Lock:
        """Lock serializing token refreshes."""
        return self._lock

    async def get_token(self) -> str | None:
        """Get the current access token if available and not expired.

        Returns:
            Access token string or None if expired/not set
        """
        if self._access_token and self._token_expires_at > time.time():
            return self._access_token
        return None

    async def set_token(self, token: str, expires_in: int) -> None:
        """Set a new access token with expiration.

        Args:
            token: The access token string
            expires_in: Expiration time in seconds
        """
        self._access_token = token
        self._token_expires_at = time.time() + expires_in

    async def invalidate_token(self) -> None:
        """Drop the cached access token so the next call refreshes it."""
        self._access_token = None
        self._token_expires_at = 0

    def has_refresh_token(self) -> bool:
        """Whether a refresh token obtained at runtime is held in memory."""
        return bool(self._refresh_token)

    async def get_refresh_token(self) -> str | None:
        return self._refresh_token

    async def set_refresh_token(self, refresh_token: str) -> None:
        self._refresh_token = refresh_token


class GlobalPlaybackContext:
    """The single active Spotify playback session.

    Spotify reports one session per account, so every Now-Playing key's poll
    writes here and Like keys read from here. ``is_liked`` is reset whenever
    the track changes and only set from a saved-status check for the track
    currently held.
    """

    def __init__(self):
        self.track_id: str | None = None
        self.is_active: bool = False
        self.is_playing: bool = False
        self.is_liked: bool | None = None
        self.last_checked_track_id: str | None = None
        self.progress_at_last_update: int = 0
        self.last_api_update_time: int = 0
        self.duration_ms: int = 0

    def apply_poll(self, snapshot: PlaybackSnapshot | None, now: int) -> bool:
        """Write one poll result.

        Returns:
            True if the track id changed
        """
        track_id = snapshot.track_id if snapshot else None
        previous_track_id = self.track_id

        self.is_active = track_id is not None
        self.is_playing = bool(snapshot and snapshot.is_active and snapshot.is_playing)
        self.track_id = track_id
        self.progress_at_last_update = snapshot.progress_ms if snapshot else 0
        self.duration_ms = snapshot.duration_ms if snapshot else 0
        self.last_api_update_time = now

        if track_id == previous_track_id:
            return False

        self.is_liked = None
        if not self.is_active:
            self.last_checked_track_id = None
        return True

    def needs_like_check(self) -> bool:
        """True if the current track has not had its saved status checked."""
        return self.is_active and self.track_id is not None and self.track_id != self.last_checked_track_id

    def resolve_like(self, track_id: str, is_liked: bool | None) -> bool:
        """Record a saved-status result for ``track_id``.

        Results for a track that is no longer current are dropped.

        Returns:
            True if the result was applied
        """
        if track_id != self.track_id:
            return False
        self.last_checked_track_id = track_id
        if is_liked is None:
            return False
        self.is_liked = is_liked
        return True

    def as_dict(self) -> dict[str, Any]:
        return {
            "track_id": self.track_id,
            "is_active": self.is_active,
            "is_playing": self.is_playing,
            "is_liked": self.is_liked,
            "last_checked_track_id": self.last_checked_track_id,
            "progress_at_last_update": self.progress_at_last_update,
            "last_api_update_time": self.last_api_update_time,
            "duration_ms": self.duration_ms,
        }


class KeyState:
    """Mutable record for one active key.

    Owned by that key's poll and render timers. ``cancelled`` is the key's
    cancellation token: it is set on deactivation, and any in-flight work
    that resumes afterwards must drop its result.
    """

    def __init__(self, key_id: str, config: KeyConfig):
        self.key_id = key_id
        self.config = config

        # Interpolation inputs, copied from this key's latest poll
        self.current_snapshot: PlaybackSnapshot | None = None
        self.last_api_update_time: int = 0
        self.progress_at_last_update: int = 0
        self.duration_ms: int = 0
        self.is_playing: bool = False

        self.album_art_url: str | None = None
        self.album_art: "Image.Image | None" = None

        # Like keys
        self.current_track_id: str | None = None
        self.is_liked: bool | None = None

        self.cancelled = asyncio.Event()
        self.poll_timer: "PeriodicTask | None" = None
        self.render_timer: "PeriodicTask | None" = None

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    def apply_snapshot(self, snapshot: PlaybackSnapshot | None, now: int) -> None:
        self.current_snapshot = snapshot
        self.last_api_update_time = now
        self.progress_at_last_update = snapshot.progress_ms if snapshot else 0
        self.duration_ms = snapshot.duration_ms if snapshot else 0
        self.is_playing = bool(snapshot and snapshot.is_playing)

    def cancel(self) -> None:
        """Set the cancellation token and stop both timers."""
        self.cancelled.set()
        for timer in (self.poll_timer, self.render_timer):
            if timer is not None:
                timer.cancel()
        self.poll_timer = None
        self.render_timer = None


class KeyStateStore(StateManager):
    """Active keys by key id (``"{serial}-{uid}"``)."""

    def __init__(self):
        self._keys: dict[str, KeyState] = {}

    async def initialize(self) -> None:
        pass

    async def cleanup(self) -> None:
        """Cancel every key's timers and forget all keys."""
        for key_id in list(self._keys):
            self.remove(key_id)

    def __contains__(self, key_id: object) -> bool:
        return key_id in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def add(self, state: KeyState) -> KeyState:
        existing = self._keys.get(state.key_id)
        if existing is not None and existing is not state:
            log_with_context(
                logger,
                "debug",
                "Replacing existing key state",
                key_id=state.key_id,
                event_type="key_state_replaced",
            )
            existing.cancel()
        self._keys[state.key_id] = state
        return state

    def get(self, key_id: str) -> KeyState | None:
        return self._keys.get(key_id)

    def require(self, key_id: str) -> KeyState:
        """Get a key's state, raising MissingKeyStateError if it is gone."""
        state = self._keys.get(key_id)
        if state is None or state.is_cancelled:
            raise MissingKeyStateError(key_id)
        return state

    def remove(self, key_id: str) -> KeyState | None:
        """Cancel a key's timers and drop its state."""
        state = self._keys.pop(key_id, None)
        if state is not None:
            state.cancel()
        return state

    def discard(self, state: KeyState) -> None:
        """Cancel ``state`` and drop it, unless its key id now belongs to a newer state."""
        if self._keys.get(state.key_id) is state:
            del self._keys[state.key_id]
        state.cancel()

    def all(self) -> list[KeyState]:
        return list(self._keys.values())

    def like_keys(self) -> list[KeyState]:
        return [state for state in self._keys.values() if state.config.is_like_button]

    def now_playing_keys(self) -> list[KeyState]:
        return [state for state in self._keys.values() if not state.config.is_like_button]
