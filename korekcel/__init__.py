"""
KoreKcel - automatic grading of spreadsheet and word-processor assignments.

This package grades a batch of student documents against a single
reference document: cell by cell for workbooks, style by style and
section by section for text documents.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"

from .core.grader import BatchGrader
from .core.aggregator import ScoreAggregator, final_score
from .core.identity import IdentityResolver
from .models.configuration import GradingConfiguration, SheetConfig, ToleranceOptions
from .models.results import StudentResult, StudentIdentity

__all__ = [
    "BatchGrader",
    "ScoreAggregator",
    "final_score",
    "IdentityResolver",
    "GradingConfiguration",
    "SheetConfig",
    "ToleranceOptions",
    "StudentResult",
    "StudentIdentity",
]
