"""Protocol definitions for the plugin's collaborators.

The coordinator depends on these interfaces only, so tests can swap in
mocks and the FlexBar transport can be provided by whatever hosts the plugin.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from spotify_flexbar.models import PlaybackSnapshot

KeyActivatedCallback = Callable[[str, dict[str, Any] | None], Awaitable[None]]
KeyDeactivatedCallback = Callable[[str], Awaitable[None]]


class KeyHost(Protocol):
    """The FlexBar host: key lifecycle events in, key images out."""

    def register_key_lifecycle(
        self,
        on_activate: KeyActivatedCallback,
        on_deactivate: KeyDeactivatedCallback,
    ) -> None:
        """Register callbacks invoked when keys appear on or leave the device."""
        ...

    def draw_key_image(self, key_id: str, image: bytes) -> None:
        """Push a PNG image to a key."""
        ...

    def draw_key_text(self, key_id: str, text: str) -> None:
        """Show plain text on a key."""
        ...


class PlaybackAPI(Protocol):
    """Spotify playback operations used by the poll loop and key presses."""

    def is_authenticated(self) -> bool: ...

    async def ensure_authenticated(self) -> bool:
        """Obtain a usable token. Returns False instead of raising."""
        ...

    async def fetch_playback_state(self) -> PlaybackSnapshot | None:
        """Current playback, None when nothing is playing.

        Raises:
            AuthError: Authentication is required or was rejected.
            NetworkError: The API could not be reached or failed.
        """
        ...

    async def check_if_saved(self, track_id: str) -> bool:
        """Whether the track is in the user's library. Raises NetworkError."""
        ...

    async def save_track(self, track_id: str) -> None: ...

    async def remove_saved_track(self, track_id: str) -> None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...
