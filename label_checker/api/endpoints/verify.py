"""Label verification endpoint streaming progress as server-sent events."""

import logging
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from ...domain.models.events import VerificationEvent, to_sse
from ...domain.services.image_acquisition import ImageSource
from ...domain.services.label_verification_service import LabelVerificationService
from ...infrastructure.dependencies import get_label_verification_service as resolve_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/labels", tags=["labels"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def get_label_verification_service() -> LabelVerificationService:
    """Resolve the verification service, mapping provider failures to 503."""
    try:
        return await resolve_service()
    except Exception as e:
        logger.error(f"❌ Label verification service unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Servizio di verifica non disponibile: {e}")


async def encode_events(events: AsyncIterator[VerificationEvent]) -> AsyncIterator[str]:
    """Encode pipeline events as SSE messages."""
    async for event in events:
        yield to_sse(event)


@router.post("/verify")
async def verify_label(
    file: Optional[UploadFile] = File(None),
    content_id: Optional[str] = Form(None),
    service: LabelVerificationService = Depends(get_label_verification_service),
) -> StreamingResponse:
    """Verify a label image against the official reference corpus.

    Accepts either an uploaded image or the id of a monitored content whose
    stored image is fetched server side. Progress, errors and the final
    result are streamed as `text/event-stream`.

    Args:
        file: Uploaded label image
        content_id: Monitored content whose image should be verified
        service: Label verification service

    Returns:
        Stream of verification events
    """
    upload = None
    mime_type = None
    if file is not None:
        # one extra byte is enough to detect an oversize upload
        upload = await file.read(service.max_image_bytes + 1)
        mime_type = file.content_type
        logger.info(f"📸 Verification requested for upload {file.filename} ({len(upload)} bytes)")
    elif content_id:
        logger.info(f"📸 Verification requested for content {content_id}")

    source = ImageSource(upload=upload, mime_type=mime_type, content_id=content_id)
    return StreamingResponse(
        encode_events(service.stream(source)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
