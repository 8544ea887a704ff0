"""Test configuration and common fixtures."""

from typing import Callable, Dict, List, Optional

import pytest

from label_checker.domain.models.reference_label import Designation, ReferenceLabel
from label_checker.domain.models.verification import (
    ConformityAnalysis,
    ConformityResult,
    TextualMatchResult,
    VisualMatchResult,
    VisualVerdict,
)
from label_checker.domain.ports.image_fetcher import FetchedImage
from label_checker.domain.services.image_acquisition import ImageAcquisitionService
from label_checker.domain.services.label_verification_service import LabelVerificationService
from label_checker.infrastructure.storage.memory_store import (
    InMemoryContentStore,
    InMemoryReferenceLabelStore,
    InMemoryVerificationStore,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        """Initialize the clock."""
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        """Move the clock forward."""
        self.now += seconds


class FakeAnalysisProvider:
    """Deterministic label analysis provider.

    Textual and visual results are looked up by reference id (visual by
    reference image bytes). A missing entry or an Exception value makes the
    call fail. `on_call` hooks let tests advance a clock per stage.
    """

    def __init__(
        self,
        text: str = "OLIO DOP SABINA, Oleificio Sabino",
        conformity: Optional[ConformityAnalysis] = None,
        text_scores: Optional[Dict[str, object]] = None,
        visual_results: Optional[Dict[bytes, object]] = None,
    ):
        """Initialize the provider."""
        self.text = text
        self.conformity = conformity or ConformityAnalysis(
            result=ConformityResult.CONFORME,
            match_percent=90,
            violations=[],
            note="Etichetta conforme",
        )
        self.text_scores = text_scores or {}
        self.visual_results = visual_results or {}
        self.on_call: Dict[str, Callable[[], None]] = {}
        self.calls: List[str] = []
        self.visual_calls: List[bytes] = []

    def _hook(self, name: str) -> None:
        self.calls.append(name)
        if name in self.on_call:
            self.on_call[name]()

    async def initialize(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    async def extract_text(self, image: bytes, mime_type: str) -> str:
        self._hook("extract_text")
        return self.text

    async def analyze_conformity(self, text: str) -> ConformityAnalysis:
        self._hook("analyze_conformity")
        return self.conformity

    async def compare_text(self, text: str, reference: ReferenceLabel) -> TextualMatchResult:
        self._hook("compare_text")
        value = self.text_scores.get(reference.id)
        if value is None:
            raise RuntimeError(f"no textual result for {reference.id}")
        if isinstance(value, Exception):
            raise value
        if isinstance(value, TextualMatchResult):
            return value
        return TextualMatchResult(
            reference_id=reference.id,
            match_score=value,
            reasoning=f"Confronto con {reference.name}",
            differences=[f"differenza testuale {reference.id}"],
        )

    async def compare_visually(
        self, image: bytes, mime_type: str, reference_image: bytes, reference_mime_type: str
    ) -> VisualMatchResult:
        self._hook("compare_visually")
        self.visual_calls.append(reference_image)
        value = self.visual_results.get(reference_image)
        if value is None:
            raise RuntimeError("no visual result")
        if isinstance(value, Exception):
            raise value
        return value

    @property
    def provider_name(self) -> str:
        return "Fake"

    @property
    def is_available(self) -> bool:
        return True

    @property
    def capabilities(self) -> Dict[str, bool]:
        return {}


class FakeImageFetcher:
    """Serves images from a URL map; unknown URLs fail."""

    def __init__(self, images: Optional[Dict[str, bytes]] = None):
        """Initialize the fetcher."""
        self.images = images or {}
        self.fetched: List[str] = []

    async def fetch(self, url: str) -> FetchedImage:
        self.fetched.append(url)
        if url not in self.images:
            raise RuntimeError(f"cannot fetch {url}")
        return FetchedImage(content=self.images[url], mime_type="image/png", url=url)


def make_label(label_id: str, name: Optional[str] = None, image: bool = True, **kwargs) -> ReferenceLabel:
    """Build a reference label with sensible defaults."""
    return ReferenceLabel(
        id=label_id,
        name=name or f"Olio {label_id}",
        producer=kwargs.pop("producer", "Oleificio Sabino"),
        designation=kwargs.pop("designation", Designation.DOP),
        region=kwargs.pop("region", "Lazio"),
        image_url=f"https://labels.example.org/{label_id}.png" if image else None,
        **kwargs,
    )


def visual(similarity: float, verdict: VisualVerdict = VisualVerdict.SIMILAR) -> VisualMatchResult:
    """Build a visual result."""
    return VisualMatchResult(
        similarity=similarity,
        verdict=verdict,
        differences=[f"differenza visiva {similarity:.0f}"],
        explanation=f"Similarità {similarity:.0f}%",
    )


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable clock."""
    return FakeClock()


@pytest.fixture
def provider() -> FakeAnalysisProvider:
    """Provide a fake analysis provider."""
    return FakeAnalysisProvider()


@pytest.fixture
def reference_store() -> InMemoryReferenceLabelStore:
    """Provide an empty reference corpus."""
    return InMemoryReferenceLabelStore()


@pytest.fixture
def content_store() -> InMemoryContentStore:
    """Provide an empty content store."""
    return InMemoryContentStore()


@pytest.fixture
def verification_store() -> InMemoryVerificationStore:
    """Provide an empty verification store."""
    return InMemoryVerificationStore()


@pytest.fixture
def fetcher() -> FakeImageFetcher:
    """Provide a fake image fetcher."""
    return FakeImageFetcher()


@pytest.fixture
def service(provider, reference_store, content_store, verification_store, fetcher, clock) -> LabelVerificationService:
    """Provide a verification service wired to fakes."""
    acquisition = ImageAcquisitionService(fetcher, content_store)
    return LabelVerificationService(
        analysis_provider=provider,
        reference_store=reference_store,
        verification_store=verification_store,
        image_acquisition=acquisition,
        reference_fetcher=fetcher,
        clock=clock,
    )
