"""Protocol for label analysis providers (OCR, conformity, textual and visual scoring)."""

from typing import Dict, Protocol

from ..models.reference_label import ReferenceLabel
from ..models.verification import (
    ConformityAnalysis,
    TextualMatchResult,
    VisualMatchResult,
)


class LabelAnalysisProvider(Protocol):
    """Protocol defining the external scoring services used by the pipeline."""

    async def initialize(self) -> None:
        """Initialize the provider."""
        ...

    async def shutdown(self) -> None:
        """Clean up resources."""
        ...

    async def extract_text(self, image: bytes, mime_type: str) -> str:
        """Extract all visible text from a label image."""
        ...

    async def analyze_conformity(self, text: str) -> ConformityAnalysis:
        """Check extracted text against DOP/IGP labelling rules."""
        ...

    async def compare_text(self, text: str, reference: ReferenceLabel) -> TextualMatchResult:
        """Score extracted text against one reference label's fields."""
        ...

    async def compare_visually(
        self,
        image: bytes,
        mime_type: str,
        reference_image: bytes,
        reference_mime_type: str,
    ) -> VisualMatchResult:
        """Compare the candidate image with a reference image."""
        ...

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        ...

    @property
    def is_available(self) -> bool:
        """Check if the provider is available and ready."""
        ...

    @property
    def capabilities(self) -> Dict[str, bool]:
        """Get the provider's capabilities."""
        ...
