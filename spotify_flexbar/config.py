from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from spotify_flexbar.exceptions import ConfigurationException, ErrorCode
from spotify_flexbar.logging_config import LOG_LEVELS

BASE_DIR = Path(__file__).resolve().parent.parent  # spotify-flexbar/


class Settings(BaseSettings):
    """Plugin settings with validation.

    Spotify credentials are required and will raise validation errors if missing.
    All secrets must be provided via environment variables or .env file.

    Per-key settings (intervals, toggles, font sizes) come from the host
    through KeyConfig; the interval values here are only the defaults used
    when a key does not specify them.
    """

    # Companion server (OAuth callback, health, debug)
    server_host: str = Field(default="127.0.0.1", min_length=1, description="Companion server host")
    server_port: int = Field(ge=1, le=65535, default=8888, description="Companion server port")

    # Spotify API - required
    spotify_client_id: str = Field(min_length=1, description="Spotify OAuth client ID")
    spotify_client_secret: str = Field(min_length=1, description="Spotify OAuth client secret")
    spotify_redirect_uri: str = Field(
        default="http://127.0.0.1:8888/auth/callback",
        pattern=r"^https?://",
        description="Spotify OAuth redirect URI",
    )
    spotify_refresh_token: str = Field(default="", description="Spotify refresh token (populated after OAuth)")
    spotify_token_file: Path = Field(
        default=Path.home() / ".spotify_flexbar_refresh_token",
        description="File the refresh token is persisted to after OAuth",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Plugin log level (OFF, ERROR, WARN, INFO, DEBUG)")

    # Key defaults
    default_update_interval_ms: int = Field(default=4000, ge=500, description="Default API poll cadence")
    default_interpolation_interval_ms: int = Field(default=1000, ge=100, description="Default redraw cadence")

    # Album art download
    album_art_max_retries: int = Field(default=2, ge=1, le=5)
    album_art_retry_delay_ms: int = Field(default=500, ge=0)
    album_art_cache_ttl_seconds: int = Field(default=600, ge=0)

    model_config = SettingsConfigDict(
        env_file=Path(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,  # Validate defaults too
    )

    @field_validator("server_host", mode="after")
    @classmethod
    def validate_server_host(cls, v: str) -> str:
        """Ensure server_host is not empty or whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("server_host cannot be empty")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the log level and reject unknown names."""
        v = v.strip().upper()
        if v == "WARNING":
            v = "WARN"
        if v not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return v

    @field_validator("spotify_redirect_uri", mode="after")
    @classmethod
    def validate_spotify_redirect_uri(cls, v: str) -> str:
        """Ensure redirect URI is a valid http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("spotify_redirect_uri must be a valid http:// or https:// URL")
        return v

    def update_spotify_refresh_token(self, refresh_token: str) -> None:
        """Swap in a refresh token obtained at runtime through the OAuth callback."""
        self.spotify_refresh_token = refresh_token


# Singleton settings instance (cached for performance)
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get singleton Settings instance for dependency injection.

    This function creates a singleton to avoid re-reading .env file
    on every call. Use this with FastAPI's Depends() in the companion
    server, or call it directly from the plugin entry point.

    Returns:
        Cached Settings instance

    Raises:
        ConfigurationException: If required settings are missing or invalid
    """
    global _settings_instance
    if _settings_instance is None:
        try:
            _settings_instance = Settings()
        except ValidationError as e:
            fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
            raise ConfigurationException(
                f"Invalid plugin settings: {', '.join(fields)}",
                code=ErrorCode.CONFIG_INVALID,
                details={"fields": fields},
            ) from e
    return _settings_instance
