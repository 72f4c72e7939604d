"""Companion server entry point."""

import os
from pathlib import Path

from dotenv import load_dotenv

from spotify_flexbar.core.app_factory import create_app
from spotify_flexbar.logging_config import setup_logging

# Load environment variables from .env file
load_dotenv(Path(__file__).parent.parent / ".env")

# Structured logging (JSON to file + console)
setup_logging(os.getenv("LOG_LEVEL", "INFO"))

app = create_app()


@app.get("/")
async def root():
    return {"message": "Spotify FlexBar companion server", "docs": "/docs"}


def run() -> None:
    import uvicorn

    from spotify_flexbar.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "spotify_flexbar.main:app",
        host=settings.server_host,
        port=settings.server_port,
    )


if __name__ == "__main__":
    run()
