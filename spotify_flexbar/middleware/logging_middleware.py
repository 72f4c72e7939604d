"""Request logging with sensitive data redaction."""

import re
import time

from fastapi import Request

from spotify_flexbar.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

# Query parameters and fields that must never reach the log files
SENSITIVE_PARAMS = [
    "code",
    "state",
    "token",
    "secret",
    "refresh_token",
    "access_token",
    "client_secret",
    "authorization",
    "bearer",
]

_SENSITIVE_PATTERNS = [re.compile(rf"\b({param})=([^&\s\"]+)", re.IGNORECASE) for param in SENSITIVE_PARAMS]


def redact_sensitive_data(url: str) -> str:
    """Redact sensitive query parameters from a URL or form body."""
    redacted = url
    for pattern in _SENSITIVE_PATTERNS:
        redacted = pattern.sub(r"\1=***REDACTED***", redacted)
    return redacted


async def log_requests(request: Request, call_next):
    """Count and log companion server requests."""
    request.app.state.request_count = getattr(request.app.state, "request_count", 0) + 1
    started = time.perf_counter()
    response = await call_next(request)
    log_with_context(
        logger,
        "debug",
        "Companion request",
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
        event_type="server_request",
    )
    return response
