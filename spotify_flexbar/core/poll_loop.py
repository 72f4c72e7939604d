"""Poll loop: fetches playback from Spotify at the slow cadence.

Each poll writes the shared playback context and the polling key's own
state and resolves the saved status of a new track. It then renders the key
and redraws the Like keys right away. Album art for a changed URL is loaded
last and the key is drawn again once it arrives.
"""

from collections.abc import Awaitable, Callable

from PIL import Image

from spotify_flexbar.core.render_loop import RenderLoop
from spotify_flexbar.core.timers import PeriodicTask
from spotify_flexbar.exceptions import AuthError, MissingKeyStateError, NetworkError
from spotify_flexbar.interpolation import now_ms
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.models import PlaybackSnapshot
from spotify_flexbar.protocols import PlaybackAPI
from spotify_flexbar.state_managers import GlobalPlaybackContext, KeyState, KeyStateStore

logger = get_logger(__name__)

AlbumArtLoader = Callable[[str], Awaitable[Image.Image | None]]


class PollFailed(Exception):
    """A poll produced no usable playback state; nothing should be drawn."""


class PollLoop:
    def __init__(
        self,
        store: KeyStateStore,
        context: GlobalPlaybackContext,
        api: PlaybackAPI,
        render_loop: RenderLoop,
        on_like_update: Callable[[], None],
        album_art_loader: AlbumArtLoader | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.context = context
        self.api = api
        self.render_loop = render_loop
        self.on_like_update = on_like_update
        self.album_art_loader = album_art_loader
        self.clock = clock

    def _is_current(self, key_id: str, state: KeyState) -> bool:
        """False once the key was deactivated or replaced while we were awaiting."""
        return not state.is_cancelled and self.store.get(key_id) is state

    async def _fetch_playback(self, key_id: str) -> PlaybackSnapshot | None:
        """Fetch playback, re-authenticating and retrying once on an auth failure.

        Raises:
            PollFailed: No playback state could be obtained
        """
        if not self.api.is_authenticated() and not await self.api.ensure_authenticated():
            log_with_context(
                logger,
                "warning",
                "Spotify is not authenticated, skipping poll",
                key_id=key_id,
                event_type="poll_not_authenticated",
            )
            raise PollFailed("not authenticated")

        try:
            return await self.api.fetch_playback_state()
        except AuthError as e:
            log_with_context(
                logger,
                "warning",
                "Playback fetch rejected, re-authenticating",
                key_id=key_id,
                error=e.message,
                event_type="poll_auth_retry",
            )
        except NetworkError as e:
            log_with_context(
                logger,
                "error",
                "Playback fetch failed",
                key_id=key_id,
                error=e.message,
                event_type="poll_network_error",
            )
            raise PollFailed(e.message) from e

        if not await self.api.ensure_authenticated():
            log_with_context(
                logger,
                "error",
                "Re-authentication failed, skipping poll",
                key_id=key_id,
                event_type="poll_reauth_failed",
            )
            raise PollFailed("re-authentication failed")

        try:
            return await self.api.fetch_playback_state()
        except (AuthError, NetworkError) as e:
            log_with_context(
                logger,
                "error",
                "Playback fetch failed after re-authentication",
                key_id=key_id,
                error=e.message,
                event_type="poll_retry_failed",
            )
            raise PollFailed(e.message) from e

    async def _resolve_like(self, key_id: str) -> bool:
        """Check the saved status of the context's track. Returns True if it was applied."""
        track_id = self.context.track_id
        try:
            is_saved = await self.api.check_if_saved(track_id)
        except Exception as e:
            # last_checked_track_id stays unset, so the next poll tries again
            log_with_context(
                logger,
                "warning",
                "Saved-status check failed",
                key_id=key_id,
                track_id=track_id,
                error=str(e),
                event_type="like_check_failed",
            )
            return False

        applied = self.context.resolve_like(track_id, is_saved)
        if not applied:
            log_with_context(
                logger,
                "debug",
                "Dropping saved status for a track that is no longer current",
                track_id=track_id,
                event_type="like_check_stale",
            )
        return applied

    async def _load_album_art(self, key_id: str, state: KeyState, snapshot: PlaybackSnapshot | None) -> bool:
        """Load the art for a changed URL. Returns True if the key's art changed.

        A failed load leaves the key without art for this URL.
        """
        url = snapshot.album_art_url if snapshot else None
        if url == state.album_art_url:
            return False
        image = None
        if url and self.album_art_loader is not None:
            try:
                image = await self.album_art_loader(url)
            except Exception as e:
                log_with_context(
                    logger,
                    "warning",
                    "Album art load failed",
                    key_id=key_id,
                    url=url,
                    error=str(e),
                    error_type=type(e).__name__,
                    event_type="album_art_load_failed",
                )
        if not self._is_current(key_id, state):
            return False
        changed = image is not None or state.album_art is not None
        state.album_art_url = url
        state.album_art = image
        return changed

    async def poll_once(self, key_id: str) -> bool:
        """Run one poll for ``key_id``.

        Returns:
            True if fresh state was applied and drawn, False if the poll was
            skipped or its result dropped

        Raises:
            MissingKeyStateError: The key is not active
        """
        state = self.store.require(key_id)

        try:
            snapshot = await self._fetch_playback(key_id)
        except PollFailed:
            return False
        except Exception as e:
            log_with_context(
                logger,
                "error",
                "Unexpected error while polling",
                key_id=key_id,
                error=str(e),
                error_type=type(e).__name__,
                event_type="poll_error",
            )
            return False

        if not self._is_current(key_id, state):
            log_with_context(
                logger,
                "debug",
                "Key deactivated during poll, dropping result",
                key_id=key_id,
                event_type="poll_result_dropped",
            )
            return False

        now = self.clock()
        track_changed = self.context.apply_poll(snapshot, now)
        state.apply_snapshot(snapshot, now)

        if track_changed:
            log_with_context(
                logger,
                "info",
                "Track changed",
                key_id=key_id,
                track_id=self.context.track_id,
                title=snapshot.title if snapshot else None,
                event_type="track_changed",
            )

        like_resolved = False
        if self.context.needs_like_check():
            like_resolved = await self._resolve_like(key_id)

        drawn = False
        if self._is_current(key_id, state):
            self.render_loop.render_once(key_id)
            drawn = True

        if track_changed or like_resolved:
            self.on_like_update()

        if drawn and await self._load_album_art(key_id, state, snapshot):
            self.render_loop.render_once(key_id)
        return drawn

    def create_timer(self, state: KeyState) -> PeriodicTask:
        key_id = state.key_id

        async def tick() -> None:
            try:
                await self.poll_once(key_id)
            except MissingKeyStateError:
                self.store.discard(state)
                raise

        return PeriodicTask(f"poll:{key_id}", state.config.update_interval_ms, tick)
