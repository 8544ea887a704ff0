"""Image fetcher with SSRF protection, no redirects and a size cap."""

import logging
from typing import Optional

import httpx

from ...domain.errors import FetchError
from ...domain.ports.image_fetcher import FetchedImage, ImageFetcher
from ...domain.services.image_acquisition import DEFAULT_MIME_TYPE, MAX_IMAGE_BYTES
from .url_guard import Resolver, ensure_public_host, resolve_host, validate_url

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}


class SafeImageFetcher(ImageFetcher):
    """Downloads images from validated URLs only.

    Every resolved address of the host is checked before the request and
    redirects are refused, so a redirect cannot bypass the check.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        resolver: Resolver = resolve_host,
        max_bytes: int = MAX_IMAGE_BYTES,
        timeout: float = 15.0,
    ):
        """Initialize the fetcher.

        Args:
            client: HTTP client, created on first use if not provided
            resolver: Async DNS resolver returning every address of a host
            max_bytes: Maximum accepted body size
            timeout: Request timeout in seconds
        """
        self._client = client
        self._resolver = resolver
        self._max_bytes = max_bytes
        self._timeout = timeout

    async def initialize(self) -> None:
        """Create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=False)

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> FetchedImage:
        """Validate and download an image."""
        parsed = validate_url(url)
        port = parsed.port or DEFAULT_PORTS[parsed.scheme]
        await ensure_public_host(parsed.host, port, self._resolver)

        await self.initialize()
        try:
            async with self._client.stream("GET", url, follow_redirects=False) as response:
                if response.is_redirect or 300 <= response.status_code < 400:
                    raise FetchError(f"Redirect non consentito ({response.status_code}) per {url}")
                if not response.is_success:
                    raise FetchError(f"Download fallito ({response.status_code}) per {url}")

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > self._max_bytes:
                        raise FetchError(
                            f"Immagine troppo grande (oltre {self._max_bytes} byte) per {url}"
                        )

                content_type = response.headers.get("content-type", "")
        except httpx.HTTPError as e:
            raise FetchError(f"Download fallito per {url}: {e}") from e

        mime_type = content_type.split(";", 1)[0].strip() or DEFAULT_MIME_TYPE
        logger.info(f"📥 Fetched {len(body)} bytes ({mime_type}) from {parsed.host}")
        return FetchedImage(content=bytes(body), mime_type=mime_type, url=url)
