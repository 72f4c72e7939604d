"""Spotify FlexBar models"""

from spotify_flexbar.models.base_models import DebugInfo, HealthResponse, KeyStatus
from spotify_flexbar.models.keys import ButtonType, KeyConfig
from spotify_flexbar.models.playback import PlaybackSnapshot

__all__ = [
    "ButtonType",
    "DebugInfo",
    "HealthResponse",
    "KeyConfig",
    "KeyStatus",
    "PlaybackSnapshot",
]
