"""
Data models for the KoreKcel grader.

This package contains the decoded document models, the immutable grading
configuration and the grading results.
"""

from .document import Cell, Sheet, Workbook, StyleDefinition, Section, TextDocument
from .configuration import (
    GradingConfiguration,
    IdentityOptions,
    SectionRequirement,
    SheetConfig,
    StyleRequirement,
    TextConfig,
    ToleranceOptions,
)
from .results import (
    ComparisonResult,
    IdentitySource,
    IdentityStatus,
    SheetResult,
    StudentIdentity,
    StudentResult,
    Submission,
)

__all__ = [
    "Cell",
    "Sheet",
    "Workbook",
    "StyleDefinition",
    "Section",
    "TextDocument",
    "GradingConfiguration",
    "IdentityOptions",
    "SectionRequirement",
    "SheetConfig",
    "StyleRequirement",
    "TextConfig",
    "ToleranceOptions",
    "ComparisonResult",
    "IdentitySource",
    "IdentityStatus",
    "SheetResult",
    "StudentIdentity",
    "StudentResult",
    "Submission",
]
