"""
Structural grading engine for the KoreKcel grader.

This module compares the paragraph style definitions and the page
sections of a submission text document with requirements derived from
the reference document.

Scoring is point based: each style requirement is worth STYLE_POINTS and
is all-or-nothing; each requested section check is worth
SECTION_CHECK_POINTS.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..models.configuration import (
    TEXT,
    GradingConfiguration,
    SectionRequirement,
    StyleRequirement,
    TextConfig,
)
from ..models.document import Section, StyleDefinition, TextDocument
from ..models.results import MAX_SCORE, ComparisonResult, clamp_score
from ..utils.exceptions import ConfigurationError
from .engine import EngineOutcome, GradingEngine


log = logging.getLogger(__name__)

STYLE_POINTS = 5
SECTION_CHECK_POINTS = 2
SIZE_TOLERANCE = 0.5


@dataclass(frozen=True)
class TextRequirements:
    """Effective requirements for a text batch."""
    styles: Tuple[StyleRequirement, ...] = ()
    sections: Tuple[SectionRequirement, ...] = ()


def _norm(value) -> str:
    return str(value if value is not None else "").strip().lower()


def _norm_color(value) -> str:
    return _norm(value).lstrip("#")


def _yes_no(flag: Optional[bool]) -> str:
    return "yes" if flag else "no"


def build_requirements(reference: TextDocument, text_config: TextConfig) -> TextRequirements:
    """
    Derive the effective requirements of a batch from the reference.

    Styles named in ``derive_styles`` are required exactly as the reference
    defines them; explicit style requirements are kept as given. Section
    requirements get any unset expected value from the reference section
    at the same position.

    Raises:
        ConfigurationError: If a derived style or section is absent from the reference
    """
    styles: List[StyleRequirement] = []
    if text_config.check_styles:
        for key in text_config.derive_styles:
            style = reference.find_style(key)
            if style is None:
                raise ConfigurationError("Style not defined in reference", config_key="derive_styles",
                                         config_value=key)
            styles.append(StyleRequirement.from_style(style))
        styles.extend(text_config.styles)

    sections: List[SectionRequirement] = []
    if text_config.check_sections:
        for requirement in text_config.sections:
            sections.append(_fill_section(reference, requirement))

    log.info(f"Text requirements: {len(styles)} styles, {len(sections)} sections")
    return TextRequirements(styles=tuple(styles), sections=tuple(sections))


def _fill_section(reference: TextDocument, requirement: SectionRequirement) -> SectionRequirement:
    needs_reference = (
        (requirement.check_orientation and requirement.orientation is None)
        or (requirement.check_header and requirement.header_text is None)
        or (requirement.check_footer and requirement.footer_text is None)
    )
    if not needs_reference:
        return requirement

    section = reference.get_section(requirement.index)
    if section is None:
        raise ConfigurationError("Section not present in reference", config_key="sections",
                                 config_value=str(requirement.index))
    return replace(
        requirement,
        orientation=requirement.orientation if requirement.orientation is not None else section.orientation,
        header_text=requirement.header_text if requirement.header_text is not None else section.header_text,
        footer_text=requirement.footer_text if requirement.footer_text is not None else section.footer_text,
    )


class StructuralGradingEngine(GradingEngine):
    """
    Structural diff engine for text documents.

    Style requirements are matched by identifier or display name,
    section requirements by position.
    """

    family = TEXT
    document_type = TextDocument

    def prepare(self, reference: TextDocument, configuration: GradingConfiguration) -> TextRequirements:
        return build_requirements(reference, configuration.text)

    def grade(self, prepared: TextRequirements, document: TextDocument,
              configuration: GradingConfiguration) -> EngineOutcome:
        return self.compare(prepared.styles, prepared.sections, document)

    def compare(self, styles: Sequence[StyleRequirement], sections: Sequence[SectionRequirement],
                submission: TextDocument) -> EngineOutcome:
        """
        Grade a submission against style and section requirements.

        Args:
            styles: Style requirements
            sections: Section requirements
            submission: Decoded submission

        Returns:
            EngineOutcome with score on 20, details and every detected style
        """
        details: List[ComparisonResult] = []
        earned = 0.0
        total = 0.0

        for requirement in styles:
            total += STYLE_POINTS
            verdict = self.check_style(requirement, submission)
            if verdict.passed:
                earned += STYLE_POINTS
            details.append(verdict)

        for requirement in sections:
            points, available, verdicts = self.check_section(requirement, submission)
            earned += points
            total += available
            details.extend(verdicts)

        score = (earned / total) * MAX_SCORE if total > 0 else 0.0
        log.debug(f"Structural grading: {earned}/{total} points")

        return EngineOutcome(
            score=round(clamp_score(score), 2),
            details=details,
            detected_styles=list(submission.styles),
            earned_points=earned,
            total_points=total,
        )

    def check_style(self, requirement: StyleRequirement, submission: TextDocument) -> ComparisonResult:
        """All-or-nothing check of one style requirement."""
        style = self._find_style(requirement, submission)
        if style is None:
            return ComparisonResult(requirement.label, False,
                                    f'Style "{requirement.label}": style not found')

        mismatches = self.style_mismatches(requirement, style)
        if mismatches:
            return ComparisonResult(requirement.label, False,
                                    f'Style "{requirement.label}" incorrect: {", ".join(mismatches)}')
        return ComparisonResult(requirement.label, True, f'Style "{requirement.label}" matches')

    def style_mismatches(self, requirement: StyleRequirement, style: StyleDefinition) -> List[str]:
        """Describe every populated requirement field the style does not satisfy."""
        mismatches: List[str] = []

        if requirement.font_name is not None and _norm(requirement.font_name) != _norm(style.font_name):
            mismatches.append(f'font: expected "{requirement.font_name}", found "{style.font_name or "none"}"')

        # an inherited size is not defined on the style itself and is not compared
        if requirement.font_size is not None and style.font_size is not None:
            if abs(requirement.font_size - style.font_size) > SIZE_TOLERANCE:
                mismatches.append(f"size: expected {requirement.font_size}, found {style.font_size}")

        if requirement.color is not None and _norm_color(requirement.color) != _norm_color(style.color):
            mismatches.append(f'color: expected "{requirement.color}", found "{style.color or "auto"}"')

        if requirement.bold is not None and requirement.bold != bool(style.bold):
            mismatches.append(f"bold: expected {_yes_no(requirement.bold)}, found {_yes_no(style.bold)}")

        if requirement.italic is not None and requirement.italic != bool(style.italic):
            mismatches.append(f"italic: expected {_yes_no(requirement.italic)}, found {_yes_no(style.italic)}")

        if requirement.alignment is not None and _norm(requirement.alignment) != _norm(style.alignment):
            mismatches.append(f'alignment: expected "{requirement.alignment}", found "{style.alignment}"')

        return mismatches

    def check_section(self, requirement: SectionRequirement,
                      submission: TextDocument) -> Tuple[float, float, List[ComparisonResult]]:
        """
        Check the requested properties of one section.

        Returns:
            Tuple of (earned points, available points, verdicts)
        """
        requested = requirement.requested_checks
        if requested == 0:
            return 0.0, 0.0, []

        available = float(requested * SECTION_CHECK_POINTS)
        unit = f"Section {requirement.index}"
        section = submission.get_section(requirement.index)
        if section is None:
            return 0.0, available, [ComparisonResult(unit, False, f"{unit}: section missing")]

        earned = 0.0
        verdicts: List[ComparisonResult] = []

        if requirement.check_orientation:
            verdict = self._check_orientation(unit, requirement, section)
            earned += SECTION_CHECK_POINTS if verdict.passed else 0
            verdicts.append(verdict)

        if requirement.check_header:
            verdict = self._check_contains(unit, "header", requirement.header_text, section.header_text)
            earned += SECTION_CHECK_POINTS if verdict.passed else 0
            verdicts.append(verdict)

        if requirement.check_footer:
            verdict = self._check_contains(unit, "footer", requirement.footer_text, section.footer_text)
            earned += SECTION_CHECK_POINTS if verdict.passed else 0
            verdicts.append(verdict)

        return earned, available, verdicts

    def _check_orientation(self, unit: str, requirement: SectionRequirement,
                           section: Section) -> ComparisonResult:
        expected = requirement.orientation or "portrait"
        if section.orientation == expected:
            return ComparisonResult(f"{unit} orientation", True,
                                    f"{unit}: orientation ({expected}) respected",
                                    expected=expected, actual=section.orientation)
        return ComparisonResult(f"{unit} orientation", False,
                                f"{unit}: orientation expected {expected}, found {section.orientation}",
                                expected=expected, actual=section.orientation)

    def _check_contains(self, unit: str, part: str, expected: Optional[str], actual: str) -> ComparisonResult:
        wanted = _norm(expected)
        if wanted in _norm(actual):
            return ComparisonResult(f"{unit} {part}", True, f"{unit}: {part} contains \"{expected or ''}\"",
                                    expected=expected, actual=actual)
        return ComparisonResult(f"{unit} {part}", False,
                                f"{unit}: {part} should contain \"{expected}\", found \"{actual or ''}\"",
                                expected=expected, actual=actual)

    def _find_style(self, requirement: StyleRequirement, submission: TextDocument) -> Optional[StyleDefinition]:
        for style in submission.styles:
            if style.matches(requirement.style_id) or style.matches(requirement.name):
                return style
        return None
