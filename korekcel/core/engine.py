"""
Grading engine interface for the KoreKcel grader.

A batch is graded by exactly one engine, chosen from the document family
of the batch. Engines are pure: they read the reference, one decoded
submission and the configuration, and return an EngineOutcome.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, List, Union

from ..models.configuration import TABULAR, TEXT, GradingConfiguration
from ..models.document import StyleDefinition, TextDocument, Workbook
from ..models.results import ComparisonResult, SheetResult
from ..utils.exceptions import ConfigurationError


Document = Union[Workbook, TextDocument]


@dataclass
class EngineOutcome:
    """
    What an engine computed for one submission.

    Attributes:
        score: Computed score on 20
        details: Diagnostics, in grading order
        sheet_results: Per-sheet results (tabular engine)
        detected_styles: Styles found in the submission (structural engine)
        earned_points: Points earned (structural engine)
        total_points: Points available (structural engine)
    """
    score: float
    details: List[ComparisonResult] = field(default_factory=list)
    sheet_results: List[SheetResult] = field(default_factory=list)
    detected_styles: List[StyleDefinition] = field(default_factory=list)
    earned_points: float = 0.0
    total_points: float = 0.0


class GradingEngine(abc.ABC):
    """Common interface of the tabular and structural engines."""

    family: str = ""
    document_type: type = object

    def prepare(self, reference: Document, configuration: GradingConfiguration) -> Any:
        """
        Derive whatever the engine needs from the reference once per batch.

        The default keeps the reference as is.
        """
        return reference

    @abc.abstractmethod
    def grade(self, prepared: Any, document: Document,
              configuration: GradingConfiguration) -> EngineOutcome:
        """Grade one decoded submission against the prepared reference."""

    def accepts(self, document: Any) -> bool:
        return isinstance(document, self.document_type)


def engine_for(mode: str) -> GradingEngine:
    """
    Return the engine variant for a batch mode.

    Raises:
        ConfigurationError: If the mode is unknown
    """
    from .structural import StructuralGradingEngine
    from .tabular import TabularGradingEngine

    if mode == TABULAR:
        return TabularGradingEngine()
    if mode == TEXT:
        return StructuralGradingEngine()
    raise ConfigurationError("Unknown grading mode", config_key="mode", config_value=str(mode))
