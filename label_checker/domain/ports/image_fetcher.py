"""Port for fetching images from system-stored URLs."""

from typing import Protocol

from pydantic import BaseModel, Field


class FetchedImage(BaseModel):
    """Image bytes downloaded from a URL."""

    content: bytes = Field(..., description="Raw image bytes")
    mime_type: str = Field(default="image/jpeg", description="MIME type from the response")
    url: str = Field(..., description="URL the image was fetched from")


class ImageFetcher(Protocol):
    """Fetches images, rejecting unsafe destinations."""

    async def fetch(self, url: str) -> FetchedImage:
        """Download an image.

        Raises:
            UnsafeURLError: If the URL fails validation
            FetchError: If the download fails
        """
        ...
