"""Pydantic models for Spotify playback state."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PlaybackSnapshot(BaseModel):
    """Result of one playback poll. Replaced wholesale, never mutated."""

    model_config = ConfigDict(frozen=True)

    track_id: str | None = None
    title: str = ""
    artist: str = ""
    album_art_url: str | None = None
    is_playing: bool = False
    progress_ms: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    fetched_at_ms: int = 0

    @property
    def is_active(self) -> bool:
        return self.track_id is not None

    @classmethod
    def from_spotify(cls, data: dict[str, Any] | None, fetched_at_ms: int) -> "PlaybackSnapshot | None":
        """Build a snapshot from a ``/v1/me/player`` payload.

        Args:
            data: Decoded JSON body, or None/empty for a 204 response
            fetched_at_ms: Wall-clock capture time in milliseconds

        Returns:
            PlaybackSnapshot, or None when nothing is playing
        """
        if not data or not data.get("item"):
            return None

        item = data["item"]
        artists = item.get("artists") or []
        images = (item.get("album") or {}).get("images") or []
        duration_ms = item.get("duration_ms") or 0
        progress_ms = data.get("progress_ms") or 0

        return cls(
            track_id=item.get("id"),
            title=item.get("name") or "",
            artist=", ".join(a.get("name", "") for a in artists if a.get("name")),
            album_art_url=images[0].get("url") if images else None,
            is_playing=bool(data.get("is_playing", False)),
            progress_ms=max(0, int(progress_ms)),
            duration_ms=max(0, int(duration_ms)),
            fetched_at_ms=fetched_at_ms,
        )
