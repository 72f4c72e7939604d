"""Unit tests for playback and key models."""

import pytest
from pydantic import ValidationError

from spotify_flexbar.models import ButtonType, KeyConfig, PlaybackSnapshot


class TestPlaybackSnapshot:
    """Tests for building snapshots from Spotify payloads."""

    def test_from_spotify(self, mock_spotify_playback_response):
        snapshot = PlaybackSnapshot.from_spotify(mock_spotify_playback_response, fetched_at_ms=42)

        assert snapshot.track_id == "track-a"
        assert snapshot.title == "Test Song"
        assert snapshot.artist == "Test Artist, Guest"
        assert snapshot.album_art_url == "https://example.com/image.jpg"
        assert snapshot.is_playing is True
        assert snapshot.progress_ms == 60000
        assert snapshot.duration_ms == 240000
        assert snapshot.fetched_at_ms == 42
        assert snapshot.is_active

    @pytest.mark.parametrize("payload", [None, {}, {"is_playing": False, "item": None}])
    def test_nothing_playing(self, payload):
        assert PlaybackSnapshot.from_spotify(payload, fetched_at_ms=0) is None

    def test_missing_optional_fields(self):
        snapshot = PlaybackSnapshot.from_spotify(
            {"item": {"id": "t", "name": "Song", "album": {"images": []}}, "progress_ms": None},
            fetched_at_ms=0,
        )

        assert snapshot.album_art_url is None
        assert snapshot.artist == ""
        assert snapshot.progress_ms == 0
        assert snapshot.is_playing is False

    def test_is_immutable(self):
        snapshot = PlaybackSnapshot(track_id="t")

        with pytest.raises(ValidationError):
            snapshot.progress_ms = 5


class TestKeyConfig:
    """Tests for per-key configuration."""

    def test_camel_case_from_host(self):
        config = KeyConfig.model_validate(
            {
                "buttonType": "like",
                "updateIntervalMs": 2000,
                "interpolationIntervalMs": 250,
                "showTitle": False,
                "titleFontSize": 20,
                "accentColor": "#FF0000",
            }
        )

        assert config.button_type == ButtonType.LIKE
        assert config.is_like_button
        assert config.update_interval_ms == 2000
        assert config.interpolation_interval_ms == 250
        assert config.show_title is False
        assert config.title_font_size == 20
        assert config.accent_color == "#FF0000"

    @pytest.mark.parametrize("raw,expected", [("14", 14), (" 12 ", 12), ("big", 10), (None, 10), (16, 16)])
    def test_time_font_size_parsing(self, raw, expected):
        assert KeyConfig.model_validate({"timeFontSize": raw}).time_font_size == expected

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"updateIntervalMs": 250}, (500, 1000)),
            ({"interpolationIntervalMs": 20}, (4000, 100)),
            ({"updateIntervalMs": "2500", "interpolationIntervalMs": 750.0}, (2500, 750)),
            ({"updateIntervalMs": "soon", "interpolationIntervalMs": None}, (4000, 1000)),
        ],
    )
    def test_intervals_are_clamped_or_defaulted(self, data, expected):
        config = KeyConfig.model_validate(data)

        assert (config.update_interval_ms, config.interpolation_interval_ms) == expected

    def test_invalid_font_sizes_use_defaults(self):
        config = KeyConfig.model_validate({"titleFontSize": "huge", "artistFontSize": -3, "timeFontSize": "12"})

        assert (config.title_font_size, config.artist_font_size, config.time_font_size) == (18, 14, 12)

    def test_invalid_dimensions_still_rejected(self):
        with pytest.raises(ValidationError):
            KeyConfig.model_validate({"width": 0})

    def test_unknown_fields_ignored(self):
        assert KeyConfig.model_validate({"somethingElse": 1}) == KeyConfig()

    def test_from_host_fills_missing_defaults(self):
        config = KeyConfig.from_host(None, update_interval_ms=6000, interpolation_interval_ms=500)

        assert config.update_interval_ms == 6000
        assert config.interpolation_interval_ms == 500
        assert config.button_type == ButtonType.NOW_PLAYING

    def test_from_host_keeps_explicit_values(self):
        config = KeyConfig.from_host({"updateIntervalMs": 1500}, update_interval_ms=6000)

        assert config.update_interval_ms == 1500
