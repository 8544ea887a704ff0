"""Domain model for alerts raised on suspicious or non-conforming labels."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .verification import VerificationOutcome, VerificationRecord

ALERT_CATEGORY = "etichetta_sospetta"
MAX_LISTED_VIOLATIONS = 3


class AlertSeverity(str, Enum):
    """Alert priority levels."""

    CRITICO = "critico"
    MEDIO = "medio"


class Alert(BaseModel):
    """Alert keyed to a stored verification record."""

    category: str = Field(default=ALERT_CATEGORY, description="Alert category tag")
    severity: AlertSeverity = Field(..., description="Alert severity")
    title: str = Field(..., description="Short alert title")
    description: str = Field(..., description="Score and first violations")
    verification_id: str = Field(..., description="Source verification record")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        """Pydantic model configuration."""
        frozen = True


def build_alert(record: VerificationRecord) -> Optional[Alert]:
    """Build the alert for a stored record, or None for a conforming label.

    Args:
        record: Verification record already assigned an identifier

    Returns:
        Alert to store, None when the verdict is conforme
    """
    if record.result == VerificationOutcome.CONFORME:
        return None
    if record.id is None:
        raise ValueError("Alert requires a stored verification record")

    critical = record.result == VerificationOutcome.NON_CONFORME
    listed = ", ".join(record.violations[:MAX_LISTED_VIOLATIONS])
    if len(record.violations) > MAX_LISTED_VIOLATIONS:
        listed += "..."

    return Alert(
        severity=AlertSeverity.CRITICO if critical else AlertSeverity.MEDIO,
        title=f"Etichetta {'non conforme' if critical else 'sospetta'} rilevata",
        description=f"Score combinato: {record.match_percent}%. Violazioni: {listed}",
        verification_id=record.id,
    )
