"""Unit tests for playback position estimation."""

import pytest

from spotify_flexbar.interpolation import estimate_progress, format_time, progress_ratio

T0 = 1_000_000


class TestEstimateProgress:
    """Tests for estimate_progress."""

    def test_playing_advances_with_wall_clock(self):
        """Poll at t0 {10000/200000, playing}; render 3s later shows 13000."""
        assert estimate_progress(10_000, T0, 200_000, True, T0 + 3_000) == 13_000

    def test_paused_returns_stored_progress(self):
        assert estimate_progress(10_000, T0, 200_000, False, T0 + 3_000) == 10_000

    def test_paused_ignores_missing_poll_time(self):
        assert estimate_progress(42_000, 0, 0, False, T0) == 42_000

    def test_clamped_to_duration(self):
        assert estimate_progress(199_000, T0, 200_000, True, T0 + 60_000) == 200_000

    def test_clock_behind_poll_time_never_goes_negative(self):
        assert estimate_progress(500, T0, 200_000, True, T0 - 10_000) == 0

    def test_no_poll_yet_gives_zero(self):
        assert estimate_progress(10_000, 0, 200_000, True, T0) == 0

    def test_unknown_duration_gives_zero(self):
        assert estimate_progress(10_000, T0, 0, True, T0 + 1_000) == 0

    def test_non_decreasing_and_bounded(self):
        """Estimates over time never decrease and never pass the track length."""
        previous = -1
        for offset in range(0, 400_000, 7_919):
            value = estimate_progress(150_000, T0, 200_000, True, T0 + offset)
            assert value >= previous
            assert value <= 200_000
            previous = value


class TestProgressRatio:
    """Tests for progress_ratio."""

    @pytest.mark.parametrize(
        "progress,duration,expected",
        [
            (0, 200_000, 0.0),
            (50_000, 200_000, 0.25),
            (300_000, 200_000, 1.0),
            (-5, 200_000, 0.0),
            (10_000, 0, 0.0),
        ],
    )
    def test_ratio(self, progress, duration, expected):
        assert progress_ratio(progress, duration) == expected


class TestFormatTime:
    """Tests for format_time."""

    @pytest.mark.parametrize(
        "ms,expected",
        [
            (0, "0:00"),
            (None, "0:00"),
            (float("nan"), "0:00"),
            (5_000, "0:05"),
            (65_000, "1:05"),
            (13_999, "0:13"),
            (3_600_000, "60:00"),
        ],
    )
    def test_format(self, ms, expected):
        assert format_time(ms) == expected
