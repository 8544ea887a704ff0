"""Ports for the reference corpus, monitored content and verification storage."""

from typing import List, Optional, Protocol

from ..models.alert import Alert
from ..models.reference_label import ReferenceLabel
from ..models.verification import VerificationRecord


class ReferenceLabelStore(Protocol):
    """Read-only access to the official reference corpus."""

    async def list_active(self) -> List[ReferenceLabel]:
        """Return active labels, newest first.

        The order is the tie-break order of the textual matcher, so
        implementations must return it deterministically.
        """
        ...


class MonitoredContentStore(Protocol):
    """Lookup of monitored content previously stored by the system."""

    async def get_image_url(self, content_id: str) -> Optional[str]:
        """Return the stored image URL of a content, None if unknown or imageless."""
        ...


class VerificationStore(Protocol):
    """Durable storage for verification outcomes."""

    async def save_verification(self, record: VerificationRecord) -> str:
        """Store a record and return its assigned identifier."""
        ...

    async def create_alert(self, alert: Alert) -> str:
        """Store an alert and return its identifier."""
        ...
