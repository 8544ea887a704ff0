"""Sequential visual refinement of the top textual candidates."""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from ..models.verification import VerificationRequest, VisualMatchResult
from ..ports.image_fetcher import ImageFetcher
from ..ports.label_analysis_provider import LabelAnalysisProvider
from .scoring import combine_scores
from .textual_matcher import TextualCandidate
from .time_budget import TimeBudget

logger = logging.getLogger(__name__)

CandidateCallback = Callable[[int, int, TextualCandidate], Awaitable[None]]


@dataclass
class RefinedMatch:
    """Best candidate after visual comparison."""

    candidate: TextualCandidate
    visual: VisualMatchResult
    combined: float


class VisualRefinementStage:
    """Compares the candidate image with each top-K reference image, one at a time."""

    def __init__(self, provider: LabelAnalysisProvider, fetcher: ImageFetcher):
        """Initialize the stage.

        Args:
            provider: Provider performing the visual comparisons
            fetcher: Fetcher for reference images
        """
        self._provider = provider
        self._fetcher = fetcher

    async def refine(
        self,
        request: VerificationRequest,
        candidates: List[TextualCandidate],
        budget: TimeBudget,
        on_candidate: Optional[CandidateCallback] = None,
    ) -> Optional[RefinedMatch]:
        """Return the candidate with the highest combined score, if any succeeded.

        A failing candidate is skipped. The loop stops early once the budget
        no longer allows another candidate.
        """
        best: Optional[RefinedMatch] = None

        for index, candidate in enumerate(candidates):
            if on_candidate is not None:
                await on_candidate(index, len(candidates), candidate)

            visual = await self._compare(request, candidate)
            if visual is not None:
                combined = combine_scores(candidate.score, visual.similarity)
                logger.info(
                    f"📊 {candidate.reference.name}: combined {combined:.1f}% "
                    f"({candidate.score:.0f}% text + {visual.similarity:.0f}% visual, {visual.verdict.value})"
                )
                if best is None or combined > best.combined:
                    best = RefinedMatch(candidate=candidate, visual=visual, combined=combined)

            if not budget.allows_next_visual_candidate():
                break

        return best

    async def _compare(
        self, request: VerificationRequest, candidate: TextualCandidate
    ) -> Optional[VisualMatchResult]:
        reference = candidate.reference
        if not reference.image_url:
            logger.info(f"⏭️ Reference {reference.id} has no image, skipping visual comparison")
            return None

        try:
            reference_image = await self._fetcher.fetch(reference.image_url)
            return await self._provider.compare_visually(
                request.image,
                request.mime_type,
                reference_image.content,
                reference_image.mime_type,
            )
        except Exception as e:
            logger.warning(f"⚠️ Visual comparison with reference {reference.id} failed: {e}")
            return None
