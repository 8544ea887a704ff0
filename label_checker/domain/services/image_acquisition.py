"""Acquisition of the candidate image from an upload or stored content."""

import base64
import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import InvalidInputError
from ..models.verification import VerificationRequest
from ..ports.image_fetcher import ImageFetcher
from ..ports.stores import MonitoredContentStore

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024
DEFAULT_MIME_TYPE = "image/jpeg"


@dataclass
class ImageSource:
    """Where the candidate image comes from: an upload or a monitored content id."""

    upload: Optional[bytes] = None
    mime_type: Optional[str] = None
    content_id: Optional[str] = None


def to_data_url(image: bytes, mime_type: str) -> str:
    """Encode image bytes as a data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"


class ImageAcquisitionService:
    """Turns an ImageSource into a VerificationRequest."""

    def __init__(
        self,
        fetcher: ImageFetcher,
        content_store: MonitoredContentStore,
        max_bytes: int = MAX_IMAGE_BYTES,
    ):
        """Initialize the service.

        Args:
            fetcher: SSRF-safe fetcher for content image URLs
            content_store: Store resolving monitored content to image URLs
            max_bytes: Maximum accepted image size
        """
        self._fetcher = fetcher
        self._content_store = content_store
        self._max_bytes = max_bytes

    @property
    def max_bytes(self) -> int:
        """Maximum accepted image size."""
        return self._max_bytes

    async def acquire(self, source: ImageSource) -> VerificationRequest:
        """Produce the request for a source.

        Raises:
            InvalidInputError: If no source is given, it is empty or too large, or the content is unknown
            UnsafeURLError: If the content URL fails validation
            FetchError: If the content image cannot be downloaded
        """
        if source.upload is not None:
            return self._from_upload(source.upload, source.mime_type)
        if source.content_id:
            return await self._from_content(source.content_id)
        raise InvalidInputError("File immagine o contenuto monitorato richiesto")

    def _from_upload(self, image: bytes, mime_type: Optional[str]) -> VerificationRequest:
        if not image:
            raise InvalidInputError("File immagine vuoto")
        if len(image) > self._max_bytes:
            raise InvalidInputError(
                f"Immagine troppo grande ({len(image)} byte, massimo {self._max_bytes})"
            )
        logger.info(f"📸 Uploaded image accepted ({len(image)} bytes)")
        return VerificationRequest(image=image, mime_type=mime_type or DEFAULT_MIME_TYPE)

    async def _from_content(self, content_id: str) -> VerificationRequest:
        url = await self._content_store.get_image_url(content_id)
        if not url:
            raise InvalidInputError(f"Contenuto {content_id} non trovato o senza immagine")

        fetched = await self._fetcher.fetch(url)
        logger.info(f"📸 Image of content {content_id} fetched ({len(fetched.content)} bytes)")
        return VerificationRequest(
            image=fetched.content,
            mime_type=fetched.mime_type or DEFAULT_MIME_TYPE,
            origin_content_id=content_id,
            source_url=url,
        )

    def image_ref(self, request: VerificationRequest) -> str:
        """Reference stored with the record: the source URL or a data URL of the upload."""
        return request.source_url or to_data_url(request.image, request.mime_type)
