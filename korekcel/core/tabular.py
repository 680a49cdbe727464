"""
Tabular grading engine for the KoreKcel grader.

This module implements the cell-by-cell comparison of a submission
workbook against the reference workbook:

- formula comparison after syntactic normalisation
- numeric comparison with absolute and relative tolerance
- trimmed text comparison for everything else
- weighted aggregation of sheet scores on 20
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..models.configuration import TABULAR, GradingConfiguration, SheetConfig, ToleranceOptions
from ..models.document import Cell, Sheet, Workbook, normalize_address
from ..models.results import MAX_SCORE, ComparisonResult, SheetResult, clamp_score
from .engine import EngineOutcome, GradingEngine


log = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_formula(formula: Optional[str], ignore_dollar: bool = True) -> str:
    """
    Normalise formula text for syntactic comparison.

    Drops a leading ``=``, optionally every ``$`` marker, all whitespace,
    and case-folds the rest. Missing formulas normalise to ``""``.
    """
    if not formula:
        return ""
    text = str(formula).strip()
    if text.startswith("="):
        text = text[1:]
    if ignore_dollar:
        text = text.replace("$", "")
    return _WHITESPACE.sub("", text).casefold()


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def as_text(value: Any) -> str:
    """Text form of a cell value; integral floats lose their ``.0``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def values_match(expected: Any, actual: Any, absolute: float = 0.0, relative: float = 0.0) -> bool:
    """
    Compare two cell values.

    Numbers match when ``|e - a| <= absolute`` or ``|e - a| / |e| <= relative``
    (the relative band is skipped for a zero reference). Anything else
    matches on trimmed text equality.
    """
    if is_number(expected) and is_number(actual):
        if expected == actual:
            return True
        if isinstance(expected, float) and isinstance(actual, float):
            if math.isnan(expected) and math.isnan(actual):
                return True
        diff = abs(expected - actual)
        if diff <= absolute:
            return True
        if expected != 0 and diff / abs(expected) <= relative:
            return True
        return False

    return as_text(expected).strip() == as_text(actual).strip()


class TabularGradingEngine(GradingEngine):
    """
    Cell-level diff engine for workbooks.

    Sheets are graded independently and combined as a weighted mean.
    A sheet missing from the submission scores 0 and keeps its weight.
    """

    family = TABULAR
    document_type = Workbook

    def grade(self, prepared: Workbook, document: Workbook,
              configuration: GradingConfiguration) -> EngineOutcome:
        score, sheet_results = self.grade_workbook(
            prepared,
            document,
            configuration.sheets,
            configuration.tolerance,
            max_diagnostics=configuration.max_diagnostics,
        )
        details: List[ComparisonResult] = []
        for sheet in sheet_results:
            details.extend(sheet.details)
        return EngineOutcome(score=score, details=details, sheet_results=sheet_results)

    def grade_workbook(self, reference: Workbook, submission: Workbook,
                       sheet_configs: Sequence[SheetConfig], tolerance: ToleranceOptions,
                       max_diagnostics: int = 10) -> Tuple[float, List[SheetResult]]:
        """
        Grade every enabled sheet and aggregate.

        Args:
            reference: Reference workbook
            submission: Submission workbook
            sheet_configs: Sheet configurations, in grading order
            tolerance: Comparison options
            max_diagnostics: Mismatch diagnostics kept per sheet

        Returns:
            Tuple of (score on 20 rounded to 2 decimals, per-sheet results)
        """
        sheet_results: List[SheetResult] = []
        weighted_sum = 0.0
        total_weight = 0.0

        for config in sheet_configs:
            if not config.enabled:
                continue

            reference_sheet = reference.get_sheet(config.name)
            if reference_sheet is None:
                log.warning(f"Sheet '{config.name}' is configured but absent from the reference; skipped")
                continue

            result, raw_score = self.grade_sheet(
                reference_sheet,
                submission.get_sheet(config.name),
                config,
                tolerance,
                max_diagnostics=max_diagnostics,
            )
            sheet_results.append(result)
            weighted_sum += raw_score * config.weight
            total_weight += config.weight

        aggregate = weighted_sum / total_weight if total_weight > 0 else 0.0
        return round(clamp_score(aggregate), 2), sheet_results

    def grade_sheet(self, reference: Sheet, submission: Optional[Sheet], config: SheetConfig,
                    tolerance: ToleranceOptions,
                    max_diagnostics: int = 10) -> Tuple[SheetResult, float]:
        """
        Grade one sheet.

        Returns:
            Tuple of (SheetResult with rounded score, unrounded score)
        """
        if submission is None:
            log.debug(f"Sheet '{config.name}' missing from submission")
            return SheetResult(
                sheet_name=config.name,
                weight=config.weight,
                missing=True,
                details=[ComparisonResult(config.name, False, f"{config.name}: sheet missing")],
            ), 0.0

        check_formulas = tolerance.check_formulas if config.check_formulas is None else config.check_formulas
        ignore_dollar = tolerance.ignore_dollar if config.ignore_dollar is None else config.ignore_dollar

        total = 0
        correct = 0
        mismatches: List[ComparisonResult] = []

        for address in self._cell_universe(reference, config.selected_cells):
            expected = reference.get(address)
            if expected is None or not expected.is_populated:
                continue

            total += 1
            actual = submission.get(address)
            verdict = self.compare_cell(address, expected, actual, tolerance,
                                        check_formulas=check_formulas,
                                        ignore_dollar=ignore_dollar)
            if verdict.passed:
                correct += 1
            elif len(mismatches) < max_diagnostics:
                verdict.unit = f"{config.name}!{address}"
                mismatches.append(verdict)

        raw_score = (correct / total) * MAX_SCORE if total > 0 else 0.0
        log.debug(f"Sheet '{config.name}': {correct}/{total} cells correct")

        return SheetResult(
            sheet_name=config.name,
            weight=config.weight,
            total_cells=total,
            correct_cells=correct,
            score=round(raw_score, 2),
            details=mismatches,
        ), raw_score

    def compare_cell(self, address: str, expected: Cell, actual: Optional[Cell],
                     tolerance: ToleranceOptions, check_formulas: bool = True,
                     ignore_dollar: bool = True) -> ComparisonResult:
        """Compare one reference cell with the submission cell at the same address."""
        if check_formulas and expected.is_formula:
            wanted = normalize_formula(expected.formula_text, ignore_dollar)
            got = normalize_formula(actual.formula_text if actual else None, ignore_dollar)
            if wanted == got:
                return ComparisonResult(address, True, f"{address}: formula matches")
            shown = actual.formula_text if actual is not None and actual.is_formula else "value"
            return ComparisonResult(
                address, False,
                f"{address}: expected formula {expected.formula_text}, got {shown}",
                expected=expected.formula_text,
                actual=actual.formula_text if actual else None,
            )

        actual_value = actual.raw_value if actual is not None else None
        if values_match(expected.raw_value, actual_value, tolerance.absolute, tolerance.relative):
            return ComparisonResult(address, True, f"{address}: value matches")
        return ComparisonResult(
            address, False,
            f"{address}: expected {as_text(expected.raw_value)}, got {as_text(actual_value) or 'empty'}",
            expected=expected.raw_value,
            actual=actual_value,
        )

    def _cell_universe(self, reference: Sheet, selected: Iterable[str]) -> List[str]:
        """Selected cells when given, otherwise every populated reference cell."""
        selected = [normalize_address(a) for a in selected]
        if selected:
            return list(dict.fromkeys(selected))
        return reference.populated_addresses()
