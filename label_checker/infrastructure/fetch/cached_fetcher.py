"""TTL cache in front of an image fetcher, used for reference images."""

import logging

from cachetools import TTLCache

from ...domain.ports.image_fetcher import FetchedImage, ImageFetcher

logger = logging.getLogger(__name__)


class CachedImageFetcher(ImageFetcher):
    """Caches successful downloads by URL; failures are not cached."""

    def __init__(self, fetcher: ImageFetcher, ttl: int = 3600, maxsize: int = 128):
        """Initialize the cache.

        Args:
            fetcher: Fetcher performing the actual downloads
            ttl: Cache TTL in seconds
            maxsize: Maximum number of cached images
        """
        self._fetcher = fetcher
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    async def fetch(self, url: str) -> FetchedImage:
        """Return the cached image or download it."""
        if url in self._cache:
            logger.debug(f"🗃️ Reference image cache hit: {url}")
            return self._cache[url]

        image = await self._fetcher.fetch(url)
        self._cache[url] = image
        return image

    def clear(self) -> None:
        """Drop every cached image."""
        self._cache.clear()
