"""Orchestration of the label verification pipeline."""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, Optional

from ..errors import LabelCheckError, PersistenceError
from ..models.alert import Alert, build_alert
from ..models.events import VerificationEvent
from ..models.reference_label import ReferenceLabel
from ..models.verification import (
    ConformityAnalysis,
    VerificationRecord,
    VerificationRequest,
    VisualMatchResult,
)
from ..ports.image_fetcher import ImageFetcher
from ..ports.label_analysis_provider import LabelAnalysisProvider
from ..ports.stores import ReferenceLabelStore, VerificationStore
from .image_acquisition import ImageAcquisitionService, ImageSource
from .progress import ProgressChannel
from .scoring import (
    build_note,
    combine_scores,
    decide_outcome,
    merge_violations,
    round_percent,
)
from .textual_matcher import DEFAULT_TOP_K, TextualCandidate, TextualCandidateMatcher, TextualSelection
from .time_budget import BudgetLimits, TimeBudget
from .visual_refinement import RefinedMatch, VisualRefinementStage

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Errore interno durante la verifica dell'etichetta"


class PipelineState(str, Enum):
    """States of a single verification run."""

    ACQUIRING = "acquiring"
    EXTRACTING = "extracting"
    ANALYZING_CONFORMITY = "analyzing_conformity"
    MATCHING_TEXT = "matching_text"
    SELECTING_TOP_K = "selecting_top_k"
    REFINING_VISUALLY = "refining_visually"
    FUSING = "fusing"
    PERSISTING = "persisting"
    ALERTING = "alerting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class VerificationRun:
    """Per-request state: budget, channel and the state machine position."""

    channel: ProgressChannel
    budget: TimeBudget
    state: PipelineState = PipelineState.ACQUIRING

    def enter(self, state: PipelineState) -> None:
        """Move to a new state."""
        self.state = state
        logger.debug(f"➡️ {state.value} ({self.budget.elapsed():.1f}s)")


@dataclass
class FusionResult:
    """Outcome of score fusion, before persistence."""

    reference: ReferenceLabel
    textual: TextualCandidate
    visual: Optional[RefinedMatch]
    score: float

    @property
    def visual_match(self) -> Optional[VisualMatchResult]:
        """Visual result used for the verdict, if any."""
        return self.visual.visual if self.visual else None


class LabelVerificationService:
    """Runs the staged, time-budgeted verification of one label image."""

    def __init__(
        self,
        analysis_provider: LabelAnalysisProvider,
        reference_store: ReferenceLabelStore,
        verification_store: VerificationStore,
        image_acquisition: ImageAcquisitionService,
        reference_fetcher: ImageFetcher,
        budget_limits: Optional[BudgetLimits] = None,
        top_k: int = DEFAULT_TOP_K,
        text_concurrency: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the service.

        Args:
            analysis_provider: OCR, conformity, textual and visual scoring
            reference_store: Official reference corpus
            verification_store: Storage for records and alerts
            image_acquisition: Acquisition of the candidate image
            reference_fetcher: Fetcher for reference images
            budget_limits: Checkpoint thresholds
            top_k: Candidates carried to visual refinement
            text_concurrency: Optional cap on concurrent textual comparisons
            clock: Monotonic clock, injectable for tests
        """
        self._provider = analysis_provider
        self._references = reference_store
        self._store = verification_store
        self._acquisition = image_acquisition
        self._matcher = TextualCandidateMatcher(
            analysis_provider, top_k=top_k, max_concurrency=text_concurrency
        )
        self._visual = VisualRefinementStage(analysis_provider, reference_fetcher)
        self._limits = budget_limits or BudgetLimits()
        self._clock = clock
        logger.info("🔧 LabelVerificationService initialized")

    @property
    def max_image_bytes(self) -> int:
        """Maximum accepted image size."""
        return self._acquisition.max_bytes

    async def stream(self, source: ImageSource) -> AsyncIterator[VerificationEvent]:
        """Run a verification and yield its events until the terminal one."""
        channel = ProgressChannel()
        task = asyncio.create_task(self.run(source, channel))
        try:
            async for event in channel:
                yield event
        finally:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("🛑 Verification cancelled by the caller")

    async def run(
        self, source: ImageSource, channel: ProgressChannel
    ) -> Optional[VerificationRecord]:
        """Run the pipeline, publishing exactly one terminal event on the channel.

        Returns:
            The stored record, None if the run failed
        """
        run = VerificationRun(channel=channel, budget=TimeBudget(self._limits, self._clock))

        try:
            record, reference = await self._execute(source, run)
        except LabelCheckError as e:
            logger.error(f"❌ Verification failed in state {run.state.value}: {e}")
            await self._fail(run, str(e))
            return None
        except Exception as e:
            logger.error(
                f"❌ Unexpected error in state {run.state.value}: {type(e).__name__}: {e}",
                exc_info=True,
            )
            await self._fail(run, GENERIC_ERROR_MESSAGE)
            return None

        run.enter(PipelineState.COMPLETED)
        logger.info(
            f"✅ Verification {record.id} completed: {record.result.value} ({record.match_percent}%)"
        )
        await channel.complete(record_view(record, reference))
        return record


    async def _execute(self, source: ImageSource, run: VerificationRun):
        channel, budget = run.channel, run.budget

        await channel.progress("📥 Acquisizione immagine...", 5)
        request = await self._acquisition.acquire(source)

        budget.ensure_can_extract()
        run.enter(PipelineState.EXTRACTING)
        await channel.progress("📸 Estrazione testo dall'immagine con OCR...", 10)
        text = await self._provider.extract_text(request.image, request.mime_type)
        logger.info(f"✅ Extracted {len(text)} characters: {text[:100]}...")

        run.enter(PipelineState.ANALYZING_CONFORMITY)
        await channel.progress(
            "📋 Analisi conformità DOP/IGP...", 25, {"extracted_text": text[:200]}
        )
        conformity = await self._provider.analyze_conformity(text)
        logger.info(f"✅ Conformity: {conformity.result.value} ({conformity.match_percent:.0f}%)")

        budget.ensure_can_match()
        run.enter(PipelineState.MATCHING_TEXT)
        await channel.progress("⚡ Confronto testuale parallelo con etichette ufficiali...", 40)
        references = await self._references.list_active()
        logger.info(f"🔍 Comparing with {len(references)} active reference labels")
        outcomes = await self._matcher.compare_all(text, references)

        run.enter(PipelineState.SELECTING_TOP_K)
        selection = self._matcher.select(outcomes)
        shortlist = {
            "best_match": selection.best.reference.name,
            "candidates": [candidate.reference.name for candidate in selection.top_k],
        }

        refined = None
        if budget.allows_visual_refinement():
            await channel.progress("👁️ Confronto visivo con le etichette candidate...", 65, shortlist)
            run.enter(PipelineState.REFINING_VISUALLY)

            async def report(index: int, total: int, candidate: TextualCandidate) -> None:
                await channel.progress(
                    f"👁️ Confronto visivo con {candidate.reference.name} ({index + 1}/{total})",
                    65 + (15 * index) // total,
                )

            refined = await self._visual.refine(request, selection.top_k, budget, on_candidate=report)
        else:
            logger.info("⏭️ Falling back to the best textual match only")
            await channel.progress(
                "⏭️ Tempo limitato: confronto visivo saltato, uso del solo confronto testuale",
                65,
                shortlist,
            )

        run.enter(PipelineState.FUSING)
        fusion = self._fuse(selection, refined)
        record = self._build_record(request, text, conformity, fusion)

        run.enter(PipelineState.PERSISTING)
        await channel.progress("💾 Salvataggio verifica e creazione alert...", 85)
        record = await self._persist(record)

        alert = build_alert(record)
        if alert is not None:
            run.enter(PipelineState.ALERTING)
            await self._raise_alert(alert)

        return record, fusion.reference

    def _fuse(self, selection: TextualSelection, refined: Optional[RefinedMatch]) -> FusionResult:
        if refined is not None:
            return FusionResult(
                reference=refined.candidate.reference,
                textual=refined.candidate,
                visual=refined,
                score=refined.combined,
            )

        best = selection.best
        return FusionResult(
            reference=best.reference,
            textual=best,
            visual=None,
            score=combine_scores(best.score),
        )

    def _build_record(
        self,
        request: VerificationRequest,
        text: str,
        conformity: ConformityAnalysis,
        fusion: FusionResult,
    ) -> VerificationRecord:
        textual = fusion.textual.match
        visual = fusion.visual_match
        outcome = decide_outcome(fusion.score, visual.verdict if visual else None)
        logger.info(f"🎯 Final result: {outcome.value} ({fusion.score:.1f}%)")

        return VerificationRecord(
            image_ref=self._acquisition.image_ref(request),
            extracted_text=text,
            result=outcome,
            match_percent=round_percent(fusion.score),
            violations=merge_violations(conformity, textual, visual),
            note=build_note(conformity, textual, visual),
            reference_id=fusion.reference.id,
            origin_content_id=request.origin_content_id,
            conformity=conformity,
            textual_match=textual,
            visual_match=visual,
        )

    async def _persist(self, record: VerificationRecord) -> VerificationRecord:
        try:
            record_id = await self._store.save_verification(record)
        except Exception as e:
            raise PersistenceError(f"Impossibile salvare la verifica: {e}", e) from e
        return record.model_copy(update={"id": record_id})

    async def _raise_alert(self, alert: Alert) -> None:
        logger.info(f"🚨 Creating {alert.severity.value} alert for verification {alert.verification_id}")
        try:
            await self._store.create_alert(alert)
        except Exception as e:
            raise PersistenceError(f"Impossibile creare l'alert: {e}", e) from e

    async def _fail(self, run: VerificationRun, message: str) -> None:
        run.enter(PipelineState.FAILED)
        if run.channel.closed:
            logger.warning(f"⚠️ Terminal event already sent, not reporting: {message}")
            return
        await run.channel.fail(message)


def record_view(record: VerificationRecord, reference: Optional[ReferenceLabel]) -> Dict[str, Any]:
    """Build the payload of the completion event."""
    view = record.model_dump(mode="json")
    view["reference"] = (
        {
            "id": reference.id,
            "name": reference.name,
            "producer": reference.producer,
            "designation": reference.designation.value,
            "image_url": reference.image_url,
        }
        if reference
        else None
    )
    return view
