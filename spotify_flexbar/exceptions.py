"""Custom exceptions for the Spotify FlexBar plugin with HTTP status codes for the companion server."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error responses and log events."""

    # Generic errors
    PLUGIN_ERROR = "PLUGIN_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Spotify errors
    SPOTIFY_AUTH_ERROR = "SPOTIFY_AUTH_ERROR"
    SPOTIFY_NOT_AUTHENTICATED = "SPOTIFY_NOT_AUTHENTICATED"
    SPOTIFY_NETWORK_ERROR = "SPOTIFY_NETWORK_ERROR"

    # Key rendering / lifecycle errors
    RENDER_ERROR = "RENDER_ERROR"
    KEY_STATE_MISSING = "KEY_STATE_MISSING"

    # Configuration errors
    CONFIG_ERROR = "CONFIG_ERROR"
    CONFIG_INVALID = "CONFIG_INVALID"


class PluginException(Exception):
    """Base exception for plugin errors with HTTP status code support.

    All custom exceptions inherit from this class so the companion server
    and the timer callbacks can handle them uniformly.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PLUGIN_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize plugin exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            status_code: HTTP status code (default 500)
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class AuthError(PluginException):
    """Spotify authentication failed or is required."""

    def __init__(
        self,
        message: str = "Spotify authentication failed",
        code: ErrorCode = ErrorCode.SPOTIFY_AUTH_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, status_code=401, details=details)


class NotAuthenticatedError(AuthError):
    """No refresh token is available; the user has to log in first."""

    def __init__(self, message: str = "Not authenticated with Spotify", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.SPOTIFY_NOT_AUTHENTICATED, details=details)


class NetworkError(PluginException):
    """Spotify API request failed (transport error or non-auth HTTP error)."""

    def __init__(self, message: str, status_code: int = 502, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.SPOTIFY_NETWORK_ERROR,
            status_code=status_code,
            details=details,
        )


class RenderError(PluginException):
    """Producing or pushing a key image failed."""

    def __init__(self, message: str = "Key render failed", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.RENDER_ERROR, status_code=500, details=details)


class MissingKeyStateError(PluginException):
    """A timer fired for a key whose state has already been removed."""

    def __init__(self, key_id: str):
        self.key_id = key_id
        super().__init__(
            f"No state for key {key_id}",
            code=ErrorCode.KEY_STATE_MISSING,
            status_code=404,
            details={"key_id": key_id},
        )


class ConfigurationException(PluginException):
    """Configuration errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, status_code, details)
