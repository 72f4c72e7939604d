"""Exception handlers for the companion server."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from spotify_flexbar.exceptions import ErrorCode, PluginException
from spotify_flexbar.logging_config import get_logger, log_with_context
from spotify_flexbar.middleware.logging_middleware import redact_sensitive_data

logger = get_logger(__name__)


async def plugin_exception_handler(request: Request, exc: PluginException) -> JSONResponse:
    """Turn plugin exceptions into structured JSON errors with their HTTP status."""
    log_with_context(
        logger,
        "warning",
        "Plugin error",
        error_code=exc.code.value,
        error_message=exc.message,
        status_code=exc.status_code,
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        event_type="plugin_error",
    )

    error_content: dict[str, Any] = {"code": exc.code.value, "message": exc.message, "details": exc.details}

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions with logging."""
    log_with_context(
        logger,
        "error",
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        event_type="unhandled_error",
    )
    logger.error("Exception traceback:", exc_info=True)

    # Internal details stay in the log
    return JSONResponse(
        status_code=500,
        content={"error": {"code": ErrorCode.INTERNAL_ERROR.value, "message": "Internal server error"}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PluginException, plugin_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
