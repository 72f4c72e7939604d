"""Album art download with bounded retry."""

import asyncio
from io import BytesIO

import httpx
from PIL import Image, UnidentifiedImageError

from spotify_flexbar.cache import SimpleCache, cached
from spotify_flexbar.config import Settings, get_settings
from spotify_flexbar.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


async def _download(client: httpx.AsyncClient, url: str, max_retries: int, retry_delay_ms: int) -> Image.Image | None:
    for attempt in range(1, max_retries + 1):
        try:
            response = await client.get(url, timeout=10.0, follow_redirects=True)
            response.raise_for_status()
            image = Image.open(BytesIO(response.content))
            image.load()
            log_with_context(
                logger,
                "debug",
                "Album art loaded",
                attempt=attempt,
                event_type="album_art_loaded",
            )
            return image.convert("RGB")
        except (httpx.HTTPError, UnidentifiedImageError, OSError) as e:
            log_with_context(
                logger,
                "warning",
                "Failed to load album art",
                url=url,
                attempt=attempt,
                max_retries=max_retries,
                error=str(e),
                event_type="album_art_failed",
            )
            if attempt < max_retries:
                await asyncio.sleep(retry_delay_ms / 1000)

    log_with_context(
        logger,
        "error",
        "Giving up on album art, using fallback background",
        url=url,
        event_type="album_art_gave_up",
    )
    return None


async def fetch_album_art(
    client: httpx.AsyncClient,
    url: str | None,
    cache: SimpleCache,
    settings: Settings | None = None,
) -> Image.Image | None:
    """Get the album art image for ``url``.

    Downloads are attempted ``album_art_max_retries`` times with a fixed
    delay between attempts. Successful downloads are cached.

    Args:
        client: Shared HTTP client
        url: Image URL from the playback snapshot (None gives None)
        cache: Cache for decoded images
        settings: Settings instance (defaults to singleton)

    Returns:
        Decoded RGB image, or None if it could not be loaded
    """
    if not url:
        return None
    if settings is None:
        settings = get_settings()

    return await cached(
        cache,
        f"album_art:{url}",
        settings.album_art_cache_ttl_seconds,
        lambda: _download(client, url, settings.album_art_max_retries, settings.album_art_retry_delay_ms),
    )
