"""Render loop: redraws keys from locally held state at the interpolation cadence."""

from collections.abc import Callable

from spotify_flexbar.core.timers import PeriodicTask
from spotify_flexbar.exceptions import MissingKeyStateError
from spotify_flexbar.interpolation import estimate_progress, now_ms
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.protocols import KeyHost
from spotify_flexbar.state_managers import KeyState, KeyStateStore
from spotify_flexbar.views.key_renderer import NOTHING_PLAYING, KeyImageRequest, render_key_image

ERROR_TEXT = "Error rendering"

logger = get_logger(__name__)


def build_image_request(state: KeyState, now: int) -> KeyImageRequest:
    """Turn a key's state into a render request, interpolating progress to ``now``."""
    config = state.config
    common = {
        "width": config.width,
        "height": config.height,
        "button_type": config.button_type,
        "accent_color": config.accent_color,
        "background_color": config.background_color,
        "liked_color": config.liked_color,
        "unliked_color": config.unliked_color,
    }

    if config.is_like_button:
        return KeyImageRequest(is_liked=state.is_liked, **common)

    snapshot = state.current_snapshot
    progress = estimate_progress(
        state.progress_at_last_update,
        state.last_api_update_time,
        state.duration_ms,
        state.is_playing,
        now,
    )
    return KeyImageRequest(
        track_name=(snapshot.title if snapshot and snapshot.title else NOTHING_PLAYING),
        artist_name=snapshot.artist if snapshot else "",
        is_playing=state.is_playing,
        progress=round(progress),
        duration=state.duration_ms,
        album_art=state.album_art,
        show_title=config.show_title,
        show_artist=config.show_artist,
        show_progress=config.show_progress,
        show_play_pause=config.show_play_pause,
        show_time_info=config.show_time_info,
        title_font_size=config.title_font_size,
        artist_font_size=config.artist_font_size,
        time_font_size=config.time_font_size,
        **common,
    )


class RenderLoop:
    """Draws keys from their KeyState. Never performs network I/O."""

    def __init__(
        self,
        store: KeyStateStore,
        host: KeyHost,
        clock: Callable[[], int] = now_ms,
        renderer: Callable[[KeyImageRequest], bytes] = render_key_image,
    ):
        self.store = store
        self.host = host
        self.clock = clock
        self.renderer = renderer

    def render_once(self, key_id: str) -> bool:
        """Render and push one image for ``key_id``.

        Returns:
            True if an image was pushed, False if the error text was shown instead

        Raises:
            MissingKeyStateError: The key is no longer active.
        """
        state = self.store.require(key_id)
        try:
            image = self.renderer(build_image_request(state, self.clock()))
            self.host.draw_key_image(key_id, image)
            return True
        except Exception as e:
            log_with_context(
                logger,
                "error",
                "Error rendering key",
                key_id=key_id,
                error=str(e),
                error_type=type(e).__name__,
                event_type="key_render_failed",
            )
            try:
                self.host.draw_key_text(key_id, ERROR_TEXT)
            except Exception as draw_error:
                log_with_context(
                    logger,
                    "error",
                    "Error text could not be drawn either",
                    key_id=key_id,
                    error=str(draw_error),
                    event_type="key_draw_failed",
                )
            return False

    def create_timer(self, state: KeyState) -> PeriodicTask:
        key_id = state.key_id

        async def tick() -> None:
            try:
                self.render_once(key_id)
            except MissingKeyStateError:
                self.store.discard(state)
                raise

        return PeriodicTask(f"render:{key_id}", state.config.interpolation_interval_ms, tick)
