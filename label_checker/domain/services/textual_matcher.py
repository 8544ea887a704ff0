"""Concurrent textual comparison of extracted text against the reference corpus."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import NoCandidateError
from ..models.reference_label import ReferenceLabel
from ..models.verification import TextualMatchResult
from ..ports.label_analysis_provider import LabelAnalysisProvider

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 3


@dataclass
class CandidateOutcome:
    """Result of one comparison call: a match or the error that replaced it."""

    reference: ReferenceLabel
    match: Optional[TextualMatchResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        """Whether the comparison produced a match."""
        return self.match is not None and self.error is None


@dataclass
class TextualCandidate:
    """A reference label together with its textual match."""

    reference: ReferenceLabel
    match: TextualMatchResult

    @property
    def score(self) -> float:
        """Textual match score."""
        return self.match.match_score


@dataclass
class TextualSelection:
    """Ranked successful comparisons and the top-K carried to the visual stage."""

    ranked: List[TextualCandidate]
    top_k: List[TextualCandidate]
    failures: List[CandidateOutcome] = field(default_factory=list)

    @property
    def best(self) -> TextualCandidate:
        """Highest-scoring candidate, the textual-only fallback."""
        return self.ranked[0]


class TextualCandidateMatcher:
    """Fans out one comparison per active reference and reduces the outcomes."""

    def __init__(
        self,
        provider: LabelAnalysisProvider,
        top_k: int = DEFAULT_TOP_K,
        max_concurrency: Optional[int] = None,
    ):
        """Initialize the matcher.

        Args:
            provider: Provider performing the textual comparisons
            top_k: Number of candidates carried to visual refinement
            max_concurrency: Optional cap on in-flight comparisons, None for unbounded
        """
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        self._provider = provider
        self._top_k = top_k
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def match(self, text: str, references: List[ReferenceLabel]) -> TextualSelection:
        """Compare the text with every reference and select the top candidates.

        Raises:
            NoCandidateError: If there are no references or every comparison failed
        """
        logger.info(f"🔍 Comparing extracted text with {len(references)} reference labels in parallel")
        outcomes = await self.compare_all(text, references)
        return self.select(outcomes)

    async def compare_all(
        self, text: str, references: List[ReferenceLabel]
    ) -> List[CandidateOutcome]:
        """Run all comparisons concurrently; outcomes keep the corpus order."""
        return list(
            await asyncio.gather(*(self._compare_one(text, reference) for reference in references))
        )

    def select(self, outcomes: List[CandidateOutcome]) -> TextualSelection:
        """Discard failed outcomes, rank the rest and cut the top-K.

        The sort is stable, so equal scores keep the corpus order.
        """
        if not outcomes:
            raise NoCandidateError("Nessuna etichetta ufficiale attiva nel repository")

        failures = [outcome for outcome in outcomes if not outcome.ok]
        candidates = [
            TextualCandidate(reference=outcome.reference, match=outcome.match)
            for outcome in outcomes
            if outcome.ok
        ]
        if failures:
            logger.warning(f"⚠️ {len(failures)}/{len(outcomes)} textual comparisons failed and were excluded")
        if not candidates:
            raise NoCandidateError("Nessun confronto testuale riuscito con le etichette ufficiali")

        ranked = sorted(candidates, key=lambda candidate: candidate.score, reverse=True)
        best = ranked[0]
        logger.info(f"✅ Best textual match: {best.reference.name} ({best.score:.0f}%)")
        return TextualSelection(ranked=ranked, top_k=ranked[: self._top_k], failures=failures)

    async def _compare_one(self, text: str, reference: ReferenceLabel) -> CandidateOutcome:
        try:
            if self._semaphore is None:
                match = await self._provider.compare_text(text, reference)
            else:
                async with self._semaphore:
                    match = await self._provider.compare_text(text, reference)
        except Exception as e:
            logger.warning(f"⚠️ Textual comparison with reference {reference.id} failed: {e}")
            return CandidateOutcome(reference=reference, error=e)

        if match.reference_id != reference.id:
            match = match.model_copy(update={"reference_id": reference.id})
        return CandidateOutcome(reference=reference, match=match)
