"""Domain models for label verification requests, match results and records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class VisualVerdict(str, Enum):
    """Categorical outcome of a visual comparison."""

    IDENTICAL = "identical"
    SIMILAR = "similar"
    DIFFERENT = "different"
    COUNTERFEIT = "counterfeit"


class VerificationOutcome(str, Enum):
    """Final categorical result of a verification."""

    CONFORME = "conforme"
    SOSPETTA = "sospetta"
    NON_CONFORME = "non_conforme"


class ConformityResult(str, Enum):
    """Result reported by the conformity analysis."""

    CONFORME = "conforme"
    NON_CONFORME = "non_conforme"
    SOSPETTO = "sospetto"


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class ConformityAnalysis(BaseModel):
    """DOP/IGP conformity analysis of the extracted label text."""

    result: ConformityResult = Field(..., description="Conformity result")
    match_percent: float = Field(..., description="Conformity percentage (0-100)")
    violations: List[str] = Field(default_factory=list, description="Detected violations")
    note: str = Field(default="", description="Free-text analysis note")

    @field_validator("match_percent")
    @classmethod
    def clamp_score(cls, value: float) -> float:
        """Keep scores within 0-100."""
        return _clamp_score(value)


class TextualMatchResult(BaseModel):
    """Comparison of the extracted text against one reference label."""

    reference_id: str = Field(..., description="Compared reference label")
    match_score: float = Field(..., description="Textual match score (0-100)")
    reasoning: str = Field(default="", description="Comparison rationale")
    differences: List[str] = Field(default_factory=list, description="Textual differences")

    @field_validator("match_score")
    @classmethod
    def clamp_score(cls, value: float) -> float:
        """Keep scores within 0-100."""
        return _clamp_score(value)


class VisualMatchResult(BaseModel):
    """Visual comparison of the candidate image against one reference image."""

    similarity: float = Field(..., description="Visual similarity (0-100)")
    verdict: VisualVerdict = Field(..., description="Categorical visual verdict")
    differences: List[str] = Field(default_factory=list, description="Visual differences")
    explanation: str = Field(default="", description="Comparison explanation")

    @field_validator("similarity")
    @classmethod
    def clamp_score(cls, value: float) -> float:
        """Keep scores within 0-100."""
        return _clamp_score(value)


@dataclass
class VerificationRequest:
    """Unit of work: one acquired candidate image.

    The elapsed-time clock is the request's TimeBudget, started before
    acquisition and handed to every later stage.
    """

    image: bytes
    mime_type: str
    origin_content_id: Optional[str] = None
    source_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def size(self) -> int:
        """Image size in bytes."""
        return len(self.image)


class VerificationRecord(BaseModel):
    """Persisted outcome of a verification."""

    id: Optional[str] = Field(None, description="Identifier assigned by the store")
    image_ref: str = Field(..., description="Stored image reference")
    extracted_text: str = Field(..., description="Text extracted from the label")
    result: VerificationOutcome = Field(..., description="Final categorical result")
    match_percent: int = Field(..., description="Rounded final percentage")
    violations: List[str] = Field(default_factory=list, description="Merged violations")
    note: str = Field(default="", description="Free-text note")
    reference_id: Optional[str] = Field(None, description="Best-matching reference")
    origin_content_id: Optional[str] = Field(None, description="Originating monitored content")
    state: str = Field(default="verificata", description="Processing state tag")
    conformity: Optional[ConformityAnalysis] = None
    textual_match: Optional[TextualMatchResult] = None
    visual_match: Optional[VisualMatchResult] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        """Pydantic model configuration."""
        frozen = True
