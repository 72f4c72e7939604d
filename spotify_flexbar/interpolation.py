"""Playback position estimation between API polls."""

import time


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def estimate_progress(
    progress_at_last_update: int,
    last_api_update_time: int,
    duration_ms: int,
    is_playing: bool,
    now: int,
) -> int:
    """Estimate the playback position at ``now`` from the last poll.

    Progress advances linearly with wall-clock time while playing and is
    clamped to the track length. Paused playback is not extrapolated.

    Args:
        progress_at_last_update: Progress reported by the last poll (ms)
        last_api_update_time: Wall-clock time of the last poll (ms), 0 if none yet
        duration_ms: Track length (ms), 0 if unknown
        is_playing: Whether the last poll reported playback as running
        now: Current wall-clock time (ms)

    Returns:
        Estimated progress in milliseconds
    """
    if not is_playing:
        return progress_at_last_update

    if last_api_update_time > 0 and duration_ms > 0:
        estimated = progress_at_last_update + (now - last_api_update_time)
        return min(max(estimated, 0), duration_ms)

    return 0


def progress_ratio(progress_ms: int, duration_ms: int) -> float:
    """Fraction of the track played, in [0, 1]. Unknown duration gives 0."""
    if duration_ms <= 0:
        return 0.0
    return min(1.0, max(0.0, progress_ms / duration_ms))


def format_time(milliseconds: int | float | None) -> str:
    """Format milliseconds as ``m:ss``."""
    if not milliseconds or milliseconds != milliseconds:  # None, 0 or NaN
        return "0:00"
    total_seconds = int(milliseconds // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"
