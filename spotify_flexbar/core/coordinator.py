"""Key lifecycle coordination.

The coordinator owns the shared playback context and the key store. It
reacts to the host's key activation and deactivation events, starts and
stops each key's poll and render timers, handles key presses and pushes
like-status changes to every Like key.
"""

from typing import Any

from pydantic import ValidationError

from spotify_flexbar.core.poll_loop import AlbumArtLoader, PollLoop
from spotify_flexbar.core.render_loop import RenderLoop, build_image_request
from spotify_flexbar.exceptions import MissingKeyStateError
from spotify_flexbar.interpolation import estimate_progress, now_ms
from spotify_flexbar.logging_config import get_logger, log_with_context, update_log_level_from_config
from spotify_flexbar.models import KeyConfig, KeyStatus
from spotify_flexbar.models.keys import DEFAULT_INTERPOLATION_INTERVAL_MS, DEFAULT_UPDATE_INTERVAL_MS
from spotify_flexbar.protocols import KeyHost, PlaybackAPI
from spotify_flexbar.state_managers import GlobalPlaybackContext, KeyState, KeyStateStore
from spotify_flexbar.views.key_renderer import render_loading_image

logger = get_logger(__name__)


class NowPlayingCoordinator:
    """Wires the poll loop, render loop and Like-key fan-out to the host."""

    def __init__(
        self,
        api: PlaybackAPI,
        host: KeyHost | None = None,
        album_art_loader: AlbumArtLoader | None = None,
        clock=now_ms,
        default_update_interval_ms: int = DEFAULT_UPDATE_INTERVAL_MS,
        default_interpolation_interval_ms: int = DEFAULT_INTERPOLATION_INTERVAL_MS,
    ):
        self.api = api
        self.host = host
        self.clock = clock
        self.default_update_interval_ms = default_update_interval_ms
        self.default_interpolation_interval_ms = default_interpolation_interval_ms

        self.context = GlobalPlaybackContext()
        self.store = KeyStateStore()
        self.render_loop = RenderLoop(self.store, host, clock=clock)
        self.poll_loop = PollLoop(
            self.store,
            self.context,
            api,
            self.render_loop,
            on_like_update=self.refresh_like_keys,
            album_art_loader=album_art_loader,
            clock=clock,
        )

    def attach(self, host: KeyHost) -> None:
        """Use ``host`` for drawing and subscribe to its key lifecycle events."""
        self.host = host
        self.render_loop.host = host
        host.register_key_lifecycle(self.on_key_activated, self.on_key_deactivated)

    def _build_config(self, key_id: str, config: KeyConfig | dict[str, Any] | None) -> KeyConfig:
        if isinstance(config, KeyConfig):
            return config
        defaults = {
            "update_interval_ms": self.default_update_interval_ms,
            "interpolation_interval_ms": self.default_interpolation_interval_ms,
        }
        try:
            return KeyConfig.from_host(config, **defaults)
        except ValidationError as e:
            log_with_context(
                logger,
                "warning",
                "Invalid key config, using defaults",
                key_id=key_id,
                errors=[".".join(str(part) for part in err["loc"]) for err in e.errors()],
                event_type="key_config_invalid",
            )
            return KeyConfig.from_host(None, **defaults)

    def _draw_loading(self, state: KeyState) -> None:
        try:
            image = render_loading_image(build_image_request(state, self.clock()))
            self.host.draw_key_image(state.key_id, image)
        except Exception as e:
            log_with_context(
                logger,
                "warning",
                "Could not draw loading image",
                key_id=state.key_id,
                error=str(e),
                event_type="loading_draw_failed",
            )

    async def on_key_activated(self, key_id: str, config: KeyConfig | dict[str, Any] | None = None) -> None:
        """A key appeared on the device.

        Now-Playing keys draw a loading image, poll once inline and then get
        their poll and render timers. Like keys take their state from the
        playback context and are drawn once; they have no timers.
        """
        key_config = self._build_config(key_id, config)
        state = self.store.add(KeyState(key_id, key_config))

        log_with_context(
            logger,
            "info",
            "Key activated",
            key_id=key_id,
            button_type=key_config.button_type.value,
            update_interval_ms=key_config.update_interval_ms,
            interpolation_interval_ms=key_config.interpolation_interval_ms,
            event_type="key_activated",
        )

        if key_config.is_like_button:
            state.current_track_id = self.context.track_id
            state.is_liked = self.context.is_liked
            self.render_loop.render_once(key_id)
            return

        self._draw_loading(state)

        try:
            await self.poll_loop.poll_once(key_id)
        except MissingKeyStateError:
            return

        if state.is_cancelled or self.store.get(key_id) is not state:
            log_with_context(
                logger,
                "debug",
                "Key deactivated before its timers started",
                key_id=key_id,
                event_type="key_activation_aborted",
            )
            return

        state.poll_timer = self.poll_loop.create_timer(state)
        state.render_timer = self.render_loop.create_timer(state)
        state.poll_timer.start()
        state.render_timer.start()

    async def on_key_deactivated(self, key_id: str) -> None:
        """A key left the device: stop its timers and drop its state."""
        state = self.store.remove(key_id)
        log_with_context(
            logger,
            "info",
            "Key deactivated",
            key_id=key_id,
            known=state is not None,
            event_type="key_deactivated",
        )

    def refresh_like_keys(self) -> None:
        """Copy the context's track and like status to every Like key and redraw it."""
        for state in self.store.like_keys():
            state.current_track_id = self.context.track_id
            state.is_liked = self.context.is_liked
            try:
                self.render_loop.render_once(state.key_id)
            except MissingKeyStateError:
                continue

    async def on_key_pressed(self, key_id: str) -> None:
        state = self.store.get(key_id)
        if state is None:
            log_with_context(
                logger,
                "warning",
                "Press on unknown key",
                key_id=key_id,
                event_type="key_press_unknown",
            )
            return

        if state.config.is_like_button:
            await self._toggle_like(key_id)
        else:
            await self._toggle_playback(state)

    async def _toggle_playback(self, state: KeyState) -> None:
        key_id = state.key_id
        was_playing = state.is_playing
        try:
            if was_playing:
                await self.api.pause()
            else:
                await self.api.play()
        except Exception as e:
            log_with_context(
                logger,
                "error",
                "Play/pause failed",
                key_id=key_id,
                was_playing=was_playing,
                error=str(e),
                event_type="playback_toggle_failed",
            )
        else:
            if state.is_cancelled:
                return
            # Re-anchor so the estimate continues from where it is now
            now = self.clock()
            state.progress_at_last_update = round(
                estimate_progress(
                    state.progress_at_last_update,
                    state.last_api_update_time,
                    state.duration_ms,
                    state.is_playing,
                    now,
                )
            )
            state.last_api_update_time = now
            state.is_playing = not was_playing
            self.context.is_playing = state.is_playing
            log_with_context(
                logger,
                "info",
                "Playback toggled",
                key_id=key_id,
                is_playing=state.is_playing,
                event_type="playback_toggled",
            )

        if not state.is_cancelled:
            self.render_loop.render_once(key_id)

    async def _toggle_like(self, key_id: str) -> None:
        track_id = self.context.track_id
        if not track_id:
            log_with_context(
                logger,
                "info",
                "Nothing playing, ignoring like press",
                key_id=key_id,
                event_type="like_press_ignored",
            )
            return

        target = not self.context.is_liked
        try:
            if target:
                await self.api.save_track(track_id)
            else:
                await self.api.remove_saved_track(track_id)
        except Exception as e:
            log_with_context(
                logger,
                "error",
                "Like toggle failed",
                key_id=key_id,
                track_id=track_id,
                error=str(e),
                event_type="like_toggle_failed",
            )
            if key_id in self.store:
                self.render_loop.render_once(key_id)
            return

        self.context.resolve_like(track_id, target)
        log_with_context(
            logger,
            "info",
            "Track saved" if target else "Track removed",
            track_id=track_id,
            event_type="like_toggled",
        )
        self.refresh_like_keys()

    def key_statuses(self) -> list[KeyStatus]:
        now = self.clock()
        statuses = []
        for state in self.store.all():
            snapshot = state.current_snapshot
            is_like = state.config.is_like_button
            statuses.append(
                KeyStatus(
                    key_id=state.key_id,
                    button_type=state.config.button_type.value,
                    track_id=state.current_track_id if is_like else (snapshot.track_id if snapshot else None),
                    title=snapshot.title if snapshot else None,
                    is_playing=state.is_playing,
                    is_liked=state.is_liked if is_like else None,
                    estimated_progress_ms=round(
                        estimate_progress(
                            state.progress_at_last_update,
                            state.last_api_update_time,
                            state.duration_ms,
                            state.is_playing,
                            now,
                        )
                    ),
                    duration_ms=state.duration_ms,
                    last_api_update_time=state.last_api_update_time,
                )
            )
        return statuses

    def on_plugin_config_changed(self, config: dict[str, Any] | None) -> str:
        """Apply plugin-wide settings from the host. Returns the log level in effect."""
        level = update_log_level_from_config(config)
        log_with_context(logger, "debug", "Plugin config applied", log_level=level, event_type="plugin_config_applied")
        return level

    async def cleanup(self) -> None:
        """Stop every key's timers."""
        count = len(self.store)
        await self.store.cleanup()
        log_with_context(
            logger,
            "info",
            "Coordinator stopped",
            keys=count,
            event_type="coordinator_cleanup",
        )
