"""Score fusion and verdict policy."""

import math
from typing import List, Optional

from ..models.verification import (
    ConformityAnalysis,
    TextualMatchResult,
    VerificationOutcome,
    VisualMatchResult,
    VisualVerdict,
)

TEXT_WEIGHT = 0.5
VISUAL_WEIGHT = 0.5
CONFORME_THRESHOLD = 80.0
SOSPETTA_THRESHOLD = 50.0


def combine_scores(text_score: float, visual_score: Optional[float] = None) -> float:
    """Fuse textual and visual scores; textual alone when visual is missing."""
    if visual_score is None:
        return text_score
    return TEXT_WEIGHT * text_score + VISUAL_WEIGHT * visual_score


def round_percent(score: float) -> int:
    """Round a 0-100 score to the persisted percentage (halves round up)."""
    return int(math.floor(score + 0.5))


def decide_outcome(
    score: float,
    visual_verdict: Optional[VisualVerdict] = None,
) -> VerificationOutcome:
    """Map the best score and the visual verdict to the final result.

    A counterfeit visual verdict turns a middling score into non_conforme.
    """
    if score >= CONFORME_THRESHOLD:
        return VerificationOutcome.CONFORME
    if score >= SOSPETTA_THRESHOLD:
        if visual_verdict == VisualVerdict.COUNTERFEIT:
            return VerificationOutcome.NON_CONFORME
        return VerificationOutcome.SOSPETTA
    return VerificationOutcome.NON_CONFORME


def merge_violations(
    conformity: ConformityAnalysis,
    textual: Optional[TextualMatchResult] = None,
    visual: Optional[VisualMatchResult] = None,
) -> List[str]:
    """Concatenate conformity violations with the differences of the matches used."""
    violations = list(conformity.violations)
    if textual is not None:
        violations.extend(textual.differences)
    if visual is not None:
        violations.extend(visual.differences)
    return violations


def build_note(
    conformity: ConformityAnalysis,
    textual: Optional[TextualMatchResult] = None,
    visual: Optional[VisualMatchResult] = None,
) -> str:
    """Compose the free-text note stored with the record."""
    unavailable = "Non disponibile"
    return (
        f"Analisi conformità DOP/IGP: {conformity.note}\n\n"
        f"Confronto testuale: {(textual.reasoning if textual else '') or unavailable}\n\n"
        f"Analisi visiva: {(visual.explanation if visual else '') or unavailable}"
    )
