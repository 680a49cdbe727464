"""
Core package for the KoreKcel grader.

This package provides identity resolution, the tabular and structural
grading engines, score aggregation and batch orchestration.
"""

from .grader import BatchGrader
from .engine import GradingEngine, EngineOutcome, engine_for
from .tabular import TabularGradingEngine
from .structural import StructuralGradingEngine
from .identity import IdentityResolver
from .aggregator import ScoreAggregator
from .document_loader import DocumentLoader

__all__ = [
    "BatchGrader",
    "GradingEngine",
    "EngineOutcome",
    "engine_for",
    "TabularGradingEngine",
    "StructuralGradingEngine",
    "IdentityResolver",
    "ScoreAggregator",
    "DocumentLoader",
]
