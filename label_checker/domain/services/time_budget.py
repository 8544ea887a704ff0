"""Wall-clock budget governing a single verification request."""

import logging
import time
from typing import Callable, Optional

from pydantic import BaseModel, Field, model_validator

from ..errors import VerificationTimeoutError

logger = logging.getLogger(__name__)


class BudgetLimits(BaseModel):
    """Checkpoint thresholds in seconds since request start."""

    ceiling: float = Field(default=300.0, description="Overall request ceiling")
    extraction: float = Field(default=240.0, description="Abort before text extraction above this")
    matching: float = Field(default=250.0, description="Abort before textual matching above this")
    visual: float = Field(default=260.0, description="Skip visual refinement above this")
    visual_loop: float = Field(default=280.0, description="Stop the visual loop above this")

    @model_validator(mode="after")
    def check_order(self) -> "BudgetLimits":
        """Thresholds must increase towards the ceiling."""
        thresholds = [self.extraction, self.matching, self.visual, self.visual_loop, self.ceiling]
        if any(earlier > later for earlier, later in zip(thresholds, thresholds[1:])):
            raise ValueError(
                "budget thresholds must satisfy extraction <= matching <= visual <= visual_loop <= ceiling"
            )
        return self


class TimeBudget:
    """Single logical clock consulted at the pipeline checkpoints.

    Early checkpoints abort the request because no partial result exists yet;
    later ones degrade to a textual-only result instead.
    """

    def __init__(
        self,
        limits: Optional[BudgetLimits] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Start the clock.

        Args:
            limits: Checkpoint thresholds
            clock: Monotonic clock returning seconds
        """
        self._limits = limits or BudgetLimits()
        self._clock = clock
        self._started_at = clock()

    @property
    def limits(self) -> BudgetLimits:
        """Get the checkpoint thresholds."""
        return self._limits

    def elapsed(self) -> float:
        """Seconds elapsed since the request started."""
        return self._clock() - self._started_at

    def ensure_can_extract(self) -> None:
        """Checkpoint 1: abort if text extraction can no longer complete."""
        self._abort_above(self._limits.extraction, "dell'estrazione del testo")

    def ensure_can_match(self) -> None:
        """Checkpoint 2: abort if textual matching can no longer complete."""
        self._abort_above(self._limits.matching, "del confronto testuale")

    def allows_visual_refinement(self) -> bool:
        """Checkpoint 3: whether the visual stage may start at all."""
        elapsed = self.elapsed()
        if elapsed > self._limits.visual:
            logger.warning(
                f"⏱️ Visual refinement skipped: {elapsed:.1f}s elapsed "
                f"(limit {self._limits.visual:.0f}s)"
            )
            return False
        return True

    def allows_next_visual_candidate(self) -> bool:
        """Checkpoint 4: whether the visual loop may continue."""
        elapsed = self.elapsed()
        if elapsed > self._limits.visual_loop:
            logger.warning(
                f"⏱️ Visual loop stopped early: {elapsed:.1f}s elapsed "
                f"(limit {self._limits.visual_loop:.0f}s)"
            )
            return False
        return True

    def _abort_above(self, limit: float, stage: str) -> None:
        elapsed = self.elapsed()
        if elapsed > limit:
            logger.error(f"⏱️ Time budget exhausted before {stage}: {elapsed:.1f}s > {limit:.0f}s")
            raise VerificationTimeoutError(stage, elapsed, limit)
