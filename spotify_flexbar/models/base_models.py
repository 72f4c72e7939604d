"""Pydantic models for companion server responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str


class KeyStatus(BaseModel):
    """Snapshot of one active key for the debug endpoint."""

    key_id: str
    button_type: str
    track_id: str | None = None
    title: str | None = None
    is_playing: bool = False
    is_liked: bool | None = None
    estimated_progress_ms: int = 0
    duration_ms: int = 0
    last_api_update_time: int = 0


class DebugInfo(BaseModel):
    """Debug information about plugin state."""

    system: dict[str, Any] = Field(..., description="System information")
    playback: dict[str, Any] = Field(..., description="Global playback context")
    keys: list[KeyStatus] = Field(..., description="Active keys")
    timestamp: datetime = Field(..., description="Current server timestamp")
