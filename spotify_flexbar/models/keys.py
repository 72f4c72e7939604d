"""Per-key configuration as delivered by the FlexBar host."""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_UPDATE_INTERVAL_MS = 4000
DEFAULT_INTERPOLATION_INTERVAL_MS = 1000
DEFAULT_TIME_FONT_SIZE = 10
MIN_UPDATE_INTERVAL_MS = 500
MIN_INTERPOLATION_INTERVAL_MS = 100

_INTERVAL_BOUNDS = {
    "update_interval_ms": (MIN_UPDATE_INTERVAL_MS, DEFAULT_UPDATE_INTERVAL_MS),
    "interpolation_interval_ms": (MIN_INTERPOLATION_INTERVAL_MS, DEFAULT_INTERPOLATION_INTERVAL_MS),
}
_FONT_SIZE_DEFAULTS = {"title_font_size": 18, "artist_font_size": 14, "time_font_size": DEFAULT_TIME_FONT_SIZE}


def _parse_int(v: Any) -> int | None:
    if isinstance(v, bool):
        return None
    if isinstance(v, str):
        v = v.strip()
    try:
        return int(float(v))
    except (TypeError, ValueError, OverflowError):
        return None


class ButtonType(str, Enum):
    """Key variants handled by the plugin."""

    NOW_PLAYING = "nowPlaying"
    LIKE = "like"


class KeyConfig(BaseModel):
    """Render and cadence settings for one key.

    The host sends camelCase keys; snake_case names are accepted too.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    button_type: ButtonType = Field(
        default=ButtonType.NOW_PLAYING, validation_alias=AliasChoices("button_type", "buttonType")
    )
    update_interval_ms: int = Field(
        default=DEFAULT_UPDATE_INTERVAL_MS,
        ge=MIN_UPDATE_INTERVAL_MS,
        validation_alias=AliasChoices("update_interval_ms", "updateIntervalMs", "updateInterval"),
    )
    interpolation_interval_ms: int = Field(
        default=DEFAULT_INTERPOLATION_INTERVAL_MS,
        ge=MIN_INTERPOLATION_INTERVAL_MS,
        validation_alias=AliasChoices("interpolation_interval_ms", "interpolationIntervalMs"),
    )

    show_title: bool = Field(default=True, validation_alias=AliasChoices("show_title", "showTitle"))
    show_artist: bool = Field(default=True, validation_alias=AliasChoices("show_artist", "showArtist"))
    show_progress: bool = Field(default=True, validation_alias=AliasChoices("show_progress", "showProgress"))
    show_play_pause: bool = Field(default=True, validation_alias=AliasChoices("show_play_pause", "showPlayPause"))
    show_time_info: bool = Field(default=True, validation_alias=AliasChoices("show_time_info", "showTimeInfo"))

    title_font_size: int = Field(default=18, validation_alias=AliasChoices("title_font_size", "titleFontSize"))
    artist_font_size: int = Field(default=14, validation_alias=AliasChoices("artist_font_size", "artistFontSize"))
    time_font_size: int = Field(
        default=DEFAULT_TIME_FONT_SIZE, validation_alias=AliasChoices("time_font_size", "timeFontSize")
    )

    width: int = Field(default=360, ge=1)
    height: int = Field(default=60, ge=1)
    accent_color: str = Field(default="#1DB954", validation_alias=AliasChoices("accent_color", "accentColor"))
    background_color: str = Field(
        default="#1E1E1E", validation_alias=AliasChoices("background_color", "backgroundColor")
    )
    liked_color: str = Field(default="#1DB954", validation_alias=AliasChoices("liked_color", "likedColor"))
    unliked_color: str = Field(default="#FFFFFF", validation_alias=AliasChoices("unliked_color", "unlikedColor"))

    @field_validator("update_interval_ms", "interpolation_interval_ms", mode="before")
    @classmethod
    def clamp_interval(cls, v: Any, info: ValidationInfo) -> int:
        """Intervals below the minimum are raised to it; unparseable values use the default."""
        minimum, default = _INTERVAL_BOUNDS[info.field_name]
        value = _parse_int(v)
        if value is None:
            return default
        return max(minimum, value)

    @field_validator("title_font_size", "artist_font_size", "time_font_size", mode="before")
    @classmethod
    def parse_font_size(cls, v: Any, info: ValidationInfo) -> int:
        """The host UI may send sizes as strings; unparseable or non-positive values use the default."""
        value = _parse_int(v)
        if value is None or value <= 0:
            return _FONT_SIZE_DEFAULTS[info.field_name]
        return value

    @property
    def is_like_button(self) -> bool:
        return self.button_type == ButtonType.LIKE

    @classmethod
    def from_host(cls, data: dict[str, Any] | None, **defaults: Any) -> "KeyConfig":
        """Build a config from host key data, filling missing cadences from ``defaults``."""
        config = cls.model_validate(data or {})
        missing = {name: value for name, value in defaults.items() if name not in config.model_fields_set}
        return config.model_copy(update=missing) if missing else config
