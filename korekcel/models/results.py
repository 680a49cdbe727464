"""
Result models for the KoreKcel grader.

This module defines the per-unit verdicts, per-sheet results, student
identity and the StudentResult record exposed to reporting.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .document import StyleDefinition, TextDocument, Workbook


MAX_SCORE = 20.0
UNKNOWN_ID = "UNKNOWN"


def clamp_score(value: float) -> float:
    """Clamp a score to the [0, 20] scale."""
    return min(MAX_SCORE, max(0.0, value))


class IdentityStatus(str, Enum):
    RESOLVED = "resolved"
    CONFLICT = "conflict"
    MISSING = "missing"


class IdentitySource(str, Enum):
    """Which candidate an operator picks to settle a conflict."""
    FILENAME = "filename"
    CONTENT = "content"
    MANUAL = "manual"


class ResultStatus(str, Enum):
    GRADED = "graded"
    UNREADABLE = "unreadable"


@dataclass
class ComparisonResult:
    """
    Verdict on one graded unit (cell, style, section check or sheet).

    Attributes:
        unit: What was compared, e.g. ``"Sheet1!B4"`` or ``"Heading 1"``
        passed: Whether the unit was accepted
        message: Short human-readable diagnostic
        expected: Reference-side value, when meaningful
        actual: Submission-side value, when meaningful
    """
    unit: str
    passed: bool
    message: str
    expected: Any = None
    actual: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.unit,
            "passed": self.passed,
            "message": self.message,
            "expected": None if self.expected is None else str(self.expected),
            "actual": None if self.actual is None else str(self.actual),
        }


@dataclass
class SheetResult:
    """
    Outcome of grading one sheet.

    Attributes:
        sheet_name: Graded sheet
        weight: Configured weight
        total_cells: Cells in the graded universe
        correct_cells: Cells accepted
        score: Sheet score on 20, rounded for display
        missing: True when the submission has no such sheet
        details: Mismatch diagnostics, capped per sheet
    """
    sheet_name: str
    weight: float
    total_cells: int = 0
    correct_cells: int = 0
    score: float = 0.0
    missing: bool = False
    details: List[ComparisonResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sheet_name": self.sheet_name,
            "weight": self.weight,
            "total_cells": self.total_cells,
            "correct_cells": self.correct_cells,
            "score": self.score,
            "missing": self.missing,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass
class StudentIdentity:
    """
    Identity of the student behind one submission.

    Attributes:
        student_id: Canonical (or provisional, while in conflict) identifier
        id_from_filename: Candidate extracted from the file name
        id_from_content: Candidate extracted from the document
        status: Resolution state
        name: Family name
        first_name: First name
        group: Group
        resolved_by: Operator choice that settled a conflict, if any
        warnings: Data-quality warnings
    """
    student_id: str = UNKNOWN_ID
    id_from_filename: Optional[str] = None
    id_from_content: Optional[str] = None
    status: IdentityStatus = IdentityStatus.MISSING
    name: str = ""
    first_name: str = ""
    group: str = ""
    resolved_by: Optional[IdentitySource] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return self.status == IdentityStatus.CONFLICT

    @property
    def is_definitive(self) -> bool:
        """False while a conflict awaits an operator decision."""
        return self.status != IdentityStatus.CONFLICT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "id_from_filename": self.id_from_filename,
            "id_from_content": self.id_from_content,
            "status": self.status.value,
            "has_conflict": self.has_conflict,
            "name": self.name,
            "first_name": self.first_name,
            "group": self.group,
            "resolved_by": self.resolved_by.value if self.resolved_by else None,
            "warnings": self.warnings.copy(),
        }


@dataclass
class Submission:
    """
    One student's document as ingested.

    Attributes:
        filename: Original file name
        document: Decoded model, or None when decoding failed
        index: Ingestion order, used as the sort tie-break
        error: Decoding error message
    """
    filename: str
    document: Optional[Union[Workbook, TextDocument]]
    index: int = 0
    error: Optional[str] = None

    @property
    def readable(self) -> bool:
        return self.document is not None and self.error is None


@dataclass
class StudentResult:
    """
    Grading record of one submission.

    The computed score comes from the grading engine; the manual
    adjustment comes from the operator and survives re-grading. Mutations
    after grading go through ScoreAggregator, which holds ``lock``.
    """
    filename: str
    identity: StudentIdentity
    computed_score: float = 0.0
    details: List[ComparisonResult] = field(default_factory=list)
    sheet_results: List[SheetResult] = field(default_factory=list)
    detected_styles: List[StyleDefinition] = field(default_factory=list)
    manual_adjustment: float = 0.0
    status: ResultStatus = ResultStatus.GRADED
    error_message: Optional[str] = None
    index: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.computed_score = clamp_score(self.computed_score)

    @property
    def final_score(self) -> float:
        return round(clamp_score(self.computed_score + self.manual_adjustment), 2)

    @property
    def failed(self) -> bool:
        return self.status == ResultStatus.UNREADABLE

    def sheet_score(self, sheet_name: str) -> Optional[float]:
        for sheet in self.sheet_results:
            if sheet.sheet_name == sheet_name:
                return sheet.score
        return None

    def to_row(self, sheet_names: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Flat export row: identity fields, per-unit scores, computed score,
        adjustment and final score.

        Args:
            sheet_names: Sheets to emit as columns (tabular batches). When
                omitted, structural details are emitted as one joined column.
        """
        identity = self.identity
        row: Dict[str, Any] = {
            # an unresolved conflict exports no identifier, only its candidates
            "student_id": identity.student_id if identity.is_definitive else "",
            "identity_status": identity.status.value,
            "id_from_filename": identity.id_from_filename or "",
            "id_from_content": identity.id_from_content or "",
            "name": identity.name,
            "first_name": identity.first_name,
            "group": identity.group,
            "filename": self.filename,
        }
        if sheet_names is not None:
            for name in sheet_names:
                row[name] = self.sheet_score(name)
        else:
            row["details"] = " | ".join(d.message for d in self.details)
        row["computed_score"] = self.computed_score
        row["manual_adjustment"] = self.manual_adjustment
        row["final_score"] = self.final_score
        return row

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "filename": self.filename,
            "identity": self.identity.to_dict(),
            "status": self.status.value,
            "error_message": self.error_message,
            "computed_score": self.computed_score,
            "manual_adjustment": self.manual_adjustment,
            "final_score": self.final_score,
            "sheet_results": [s.to_dict() for s in self.sheet_results],
            "details": [d.to_dict() for d in self.details],
            "detected_styles": [s.to_dict() for s in self.detected_styles],
        }
