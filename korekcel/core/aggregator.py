"""
Score aggregation for the KoreKcel grader.

The computed score (engine output) and the manual adjustment (operator
input) are stored separately on each StudentResult; the final score is
derived from both. Every mutation takes the result's lock so that an
operator edit and a re-grade running in a worker never interleave.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..models.results import (
    IdentitySource,
    ResultStatus,
    StudentResult,
    clamp_score,
)
from .engine import EngineOutcome
from .identity import IdentityResolver


log = logging.getLogger(__name__)


def final_score(computed_score: float, manual_adjustment: float) -> float:
    """clamp(computed + adjustment, 0, 20)."""
    return clamp_score(computed_score + manual_adjustment)


class ScoreAggregator:
    """Operator-facing mutations of graded results."""

    def __init__(self, resolver: Optional[IdentityResolver] = None) -> None:
        self.resolver = resolver or IdentityResolver()

    def set_adjustment(self, result: StudentResult, adjustment: float) -> float:
        """
        Store a manual adjustment (any sign, any size).

        Returns:
            The resulting final score
        """
        with result.lock:
            result.manual_adjustment = float(adjustment)
            log.info(f"Adjustment for {result.filename} set to {adjustment:+.2f}")
            return result.final_score

    def reset_adjustment(self, result: StudentResult) -> float:
        return self.set_adjustment(result, 0.0)

    def apply_grade(self, result: StudentResult, outcome: EngineOutcome) -> StudentResult:
        """
        Replace the computed part of a result with a new engine outcome.

        The manual adjustment and the identity are left untouched.
        """
        with result.lock:
            result.computed_score = clamp_score(outcome.score)
            result.details = list(outcome.details)
            result.sheet_results = list(outcome.sheet_results)
            result.detected_styles = list(outcome.detected_styles)
            result.status = ResultStatus.GRADED
            result.error_message = None
        return result

    def resolve_identity(self, result: StudentResult, choice: IdentitySource,
                         manual_value: Optional[str] = None) -> StudentResult:
        """Settle the identity of a result with an operator decision."""
        with result.lock:
            result.identity = self.resolver.resolve_conflict(result.identity, choice, manual_value)
        return result

    @staticmethod
    def class_average(results: Iterable[StudentResult]) -> float:
        """Mean final score, 0 for an empty batch."""
        scores = [r.final_score for r in results]
        if not scores:
            return 0.0
        return round(sum(scores) / len(scores), 2)
