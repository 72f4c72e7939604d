"""Unit tests for the render loop."""

from unittest.mock import MagicMock

import pytest
from conftest import T0, make_snapshot

from spotify_flexbar.core.render_loop import ERROR_TEXT, RenderLoop, build_image_request
from spotify_flexbar.exceptions import MissingKeyStateError
from spotify_flexbar.models import ButtonType, KeyConfig
from spotify_flexbar.state_managers import KeyState, KeyStateStore
from spotify_flexbar.views.key_renderer import NOTHING_PLAYING

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def store():
    return KeyStateStore()


def _add_key(store, key_id="key-1", config=None, snapshot=None, at=T0):
    state = store.add(KeyState(key_id, config or KeyConfig()))
    if snapshot is not None:
        state.apply_snapshot(snapshot, at)
    return state


class TestBuildImageRequest:
    """Tests for turning key state into a render request."""

    def test_interpolates_progress_while_playing(self, store):
        state = _add_key(store, snapshot=make_snapshot(is_playing=True, progress_ms=10_000))

        request = build_image_request(state, T0 + 3_000)

        assert request.progress == 13_000
        assert request.duration == 200_000
        assert request.is_playing is True
        assert request.track_name == "Test Song"
        assert request.artist_name == "Test Artist"

    def test_paused_keeps_progress(self, store):
        state = _add_key(store, snapshot=make_snapshot(is_playing=False, progress_ms=10_000))

        assert build_image_request(state, T0 + 3_000).progress == 10_000

    def test_nothing_playing(self, store):
        state = _add_key(store)

        request = build_image_request(state, T0)

        assert request.track_name == NOTHING_PLAYING
        assert request.artist_name == ""
        assert request.progress == 0

    def test_key_options_are_carried_over(self, store):
        config = KeyConfig.model_validate({"showTitle": False, "timeFontSize": "12", "accentColor": "#FF0000"})
        state = _add_key(store, config=config, snapshot=make_snapshot())

        request = build_image_request(state, T0)

        assert request.show_title is False
        assert request.time_font_size == 12
        assert request.accent_color == "#FF0000"

    def test_like_key(self, store):
        state = _add_key(store, config=KeyConfig(button_type=ButtonType.LIKE))
        state.is_liked = True

        request = build_image_request(state, T0)

        assert request.button_type == ButtonType.LIKE
        assert request.is_liked is True


class TestRenderOnce:
    """Tests for RenderLoop.render_once."""

    def test_pushes_png(self, store, fake_host, clock):
        _add_key(store, snapshot=make_snapshot())
        loop = RenderLoop(store, fake_host, clock=clock)

        assert loop.render_once("key-1") is True

        assert len(fake_host.images) == 1
        key_id, image = fake_host.images[0]
        assert key_id == "key-1"
        assert image.startswith(PNG_SIGNATURE)

    def test_renderer_failure_shows_error_text(self, store, fake_host, clock):
        _add_key(store)
        loop = RenderLoop(store, fake_host, clock=clock, renderer=MagicMock(side_effect=RuntimeError("boom")))

        assert loop.render_once("key-1") is False

        assert fake_host.images == []
        assert fake_host.texts == [("key-1", ERROR_TEXT)]

    def test_draw_failure_shows_error_text(self, store, fake_host, clock):
        _add_key(store)
        fake_host.draw_key_image = MagicMock(side_effect=ConnectionError("host gone"))
        loop = RenderLoop(store, fake_host, clock=clock, renderer=lambda request: b"png")

        assert loop.render_once("key-1") is False
        assert fake_host.texts == [("key-1", ERROR_TEXT)]

    def test_error_text_failure_is_contained(self, store, fake_host, clock):
        _add_key(store)
        fake_host.draw_key_image = MagicMock(side_effect=ConnectionError("host gone"))
        fake_host.draw_key_text = MagicMock(side_effect=ConnectionError("host gone"))
        loop = RenderLoop(store, fake_host, clock=clock, renderer=lambda request: b"png")

        assert loop.render_once("key-1") is False

    def test_missing_key_raises(self, store, fake_host, clock):
        loop = RenderLoop(store, fake_host, clock=clock)

        with pytest.raises(MissingKeyStateError):
            loop.render_once("gone")
        assert fake_host.images == []

    def test_uses_interpolation_interval(self, store, fake_host, clock):
        state = _add_key(store, config=KeyConfig(interpolation_interval_ms=250))
        loop = RenderLoop(store, fake_host, clock=clock)

        timer = loop.create_timer(state)

        assert timer.interval_ms == 250
        assert timer.name == "render:key-1"

    @pytest.mark.asyncio
    async def test_timer_tick_for_removed_key_cleans_up(self, store, fake_host, clock):
        state = _add_key(store)
        loop = RenderLoop(store, fake_host, clock=clock)
        timer = loop.create_timer(state)
        state.cancel()

        with pytest.raises(MissingKeyStateError):
            await timer._callback()

        assert "key-1" not in store
        assert fake_host.images == []
