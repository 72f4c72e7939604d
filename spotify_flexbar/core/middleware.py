"""Middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from spotify_flexbar.config import Settings
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.middleware.logging_middleware import log_requests

logger = get_logger(__name__)

LOCAL_ORIGIN_REGEX = r"http://(localhost|127\.0\.0\.1)(:\d+)?"


def get_trusted_hosts(settings: Settings) -> list[str]:
    """Hosts the companion server answers to: loopback plus the configured bind host."""
    hosts = ["localhost", "127.0.0.1", "testserver"]
    if settings.server_host not in hosts and settings.server_host != "0.0.0.0":  # nosec B104
        hosts.append(settings.server_host)
    return hosts


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure all middleware for the companion server.

    Args:
        app: FastAPI application instance
        settings: Plugin settings
    """
    log_with_context(
        logger,
        "info",
        "Configuring CORS middleware for local origins",
        pattern=LOCAL_ORIGIN_REGEX,
        event_type="security_config",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=LOCAL_ORIGIN_REGEX,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Prevent host header injection
    trusted_hosts = get_trusted_hosts(settings)
    log_with_context(
        logger,
        "info",
        "Configuring TrustedHost middleware",
        hosts=trusted_hosts,
        event_type="security_config",
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

    app.middleware("http")(log_requests)
