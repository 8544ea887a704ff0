"""In-memory implementations of the reference, content and verification stores."""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from ...domain.models.alert import Alert
from ...domain.models.reference_label import ReferenceLabel
from ...domain.models.verification import VerificationRecord
from ...domain.ports.stores import (
    MonitoredContentStore,
    ReferenceLabelStore,
    VerificationStore,
)

logger = logging.getLogger(__name__)


class InMemoryReferenceLabelStore(ReferenceLabelStore):
    """Reference corpus held in memory."""

    def __init__(self, labels: Optional[Iterable[ReferenceLabel]] = None):
        """Initialize the store with an optional set of labels."""
        self._labels: Dict[str, ReferenceLabel] = {}
        for label in labels or []:
            self.add(label)

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryReferenceLabelStore":
        """Load labels from a JSON file holding a list of label objects."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        labels = [ReferenceLabel.model_validate(item) for item in data]
        logger.info(f"📚 Loaded {len(labels)} reference labels from {path}")
        return cls(labels)

    def add(self, label: ReferenceLabel) -> None:
        """Add or replace a label."""
        self._labels[label.id] = label

    async def list_active(self) -> List[ReferenceLabel]:
        """Return active labels, newest first (insertion order among equal dates)."""
        active = [label for label in self._labels.values() if label.is_active]
        return sorted(active, key=lambda label: label.created_at, reverse=True)


class InMemoryContentStore(MonitoredContentStore):
    """Monitored content image URLs held in memory."""

    def __init__(self, image_urls: Optional[Dict[str, Optional[str]]] = None):
        """Initialize the store with an optional content id to image URL map."""
        self._image_urls: Dict[str, Optional[str]] = dict(image_urls or {})

    def add(self, content_id: str, image_url: Optional[str]) -> None:
        """Register a content and its image URL."""
        self._image_urls[content_id] = image_url

    async def get_image_url(self, content_id: str) -> Optional[str]:
        """Return the stored image URL of a content."""
        return self._image_urls.get(content_id)


class InMemoryVerificationStore(VerificationStore):
    """Verification records and alerts held in memory."""

    def __init__(self):
        """Initialize empty storage."""
        self.records: Dict[str, VerificationRecord] = {}
        self.alerts: Dict[str, Alert] = {}

    async def save_verification(self, record: VerificationRecord) -> str:
        """Store a record and return its new identifier."""
        record_id = uuid4().hex
        self.records[record_id] = record.model_copy(update={"id": record_id})
        logger.info(f"💾 Verification {record_id} stored ({record.result.value})")
        return record_id

    async def create_alert(self, alert: Alert) -> str:
        """Store an alert and return its new identifier."""
        alert_id = uuid4().hex
        self.alerts[alert_id] = alert
        logger.info(f"🚨 Alert {alert_id} stored ({alert.severity.value})")
        return alert_id
