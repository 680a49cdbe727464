"""
Test suite for the structural grading engine.
"""

import pytest

from korekcel.core.structural import StructuralGradingEngine, build_requirements
from korekcel.models.configuration import (
    GradingConfiguration,
    SectionRequirement,
    StyleRequirement,
    TextConfig,
)
from korekcel.models.document import Section, StyleDefinition, TextDocument
from korekcel.utils.exceptions import ConfigurationError


@pytest.fixture
def engine():
    return StructuralGradingEngine()


@pytest.fixture
def heading():
    return StyleDefinition(
        style_id="Heading1", name="Heading 1", font_name="Arial", font_size=12.0,
        color="1F3864", bold=True, italic=False, alignment="center",
    )


def _document(styles=(), sections=None):
    if sections is None:
        sections = [Section(1, header_text="Devoir de traitement de texte", footer_text="Page 1")]
    return TextDocument(styles=list(styles), sections=list(sections))


class TestStyleChecks:
    """Test cases for style requirements."""

    def test_size_within_tolerance(self, engine, heading):
        """Test font sizes within half a point pass."""
        requirement = StyleRequirement("Heading1", font_size=12)
        for size, passed in ((12.0, True), (12.4, True), (11.5, True), (12.6, False)):
            style = StyleDefinition("Heading1", "Heading 1", font_size=size)
            assert engine.check_style(requirement, _document([style])).passed is passed

    def test_inherited_size_not_compared(self, engine):
        """Test a style without its own size passes a size requirement."""
        requirement = StyleRequirement("Heading1", font_size=14)
        style = StyleDefinition("Heading1", "Heading 1", font_size=None)
        verdict = engine.check_style(requirement, _document([style]))
        assert verdict.passed
        assert verdict.message == 'Style "Heading1" matches'

    def test_inherited_size_other_fields_checked(self, engine):
        """Test the remaining fields are still compared when size is inherited."""
        requirement = StyleRequirement("Normal", font_size=11, bold=True)
        style = StyleDefinition("Normal", "Normal", font_size=None, bold=False)
        verdict = engine.check_style(requirement, _document([style]))
        assert not verdict.passed
        assert "size" not in verdict.message

    def test_all_or_nothing(self, engine, heading):
        """Test one wrong property fails the whole style."""
        requirement = StyleRequirement.from_style(heading)
        wrong_color = StyleDefinition(
            "Heading1", "Heading 1", font_name="Arial", font_size=12.0,
            color="FF0000", bold=True, italic=False, alignment="center",
        )
        outcome = engine.compare([requirement], [], _document([wrong_color]))
        assert outcome.score == 0.0
        assert outcome.earned_points == 0
        assert outcome.total_points == 5
        assert 'color: expected "1F3864", found "FF0000"' in outcome.details[0].message

    def test_style_found_by_name(self, engine, heading):
        """Test styles are matched by display name, ignoring case."""
        requirement = StyleRequirement(style_id="Titre1", name="heading 1", bold=True)
        assert engine.check_style(requirement, _document([heading])).passed

    def test_style_not_found(self, engine):
        """Test a missing style fails with a clear message."""
        requirement = StyleRequirement("Heading2", name="Heading 2")
        verdict = engine.check_style(requirement, _document([]))
        assert not verdict.passed
        assert verdict.message == 'Style "Heading 2": style not found'

    def test_color_comparison_ignores_hash_and_case(self, engine, heading):
        """Test colour comparison ignores a leading # and case."""
        requirement = StyleRequirement("Heading1", color="#1f3864")
        assert engine.check_style(requirement, _document([heading])).passed

    def test_unset_bold_treated_as_false(self, engine):
        """Test an undefined bold flag counts as not bold."""
        style = StyleDefinition("Normal", "Normal", bold=None)
        assert engine.check_style(StyleRequirement("Normal", bold=False), _document([style])).passed
        assert not engine.check_style(StyleRequirement("Normal", bold=True), _document([style])).passed

    def test_unchecked_fields_ignored(self, engine):
        """Test fields left unset in the requirement are not compared."""
        style = StyleDefinition("Normal", "Normal", font_name="Times", font_size=30.0)
        assert engine.check_style(StyleRequirement("Normal"), _document([style])).passed

    def test_detected_styles_reported(self, engine, heading):
        """Test every submission style is reported."""
        normal = StyleDefinition("Normal", "Normal")
        outcome = engine.compare([StyleRequirement("Heading1")], [], _document([heading, normal]))
        assert outcome.detected_styles == [heading, normal]


class TestSectionChecks:
    """Test cases for section requirements."""

    def test_orientation(self, engine):
        """Test orientation must match exactly."""
        requirement = SectionRequirement(1, check_orientation=True, orientation="landscape")
        earned, available, verdicts = engine.check_section(requirement, _document([], [Section(1)]))
        assert (earned, available) == (0.0, 2.0)
        assert verdicts[0].message == "Section 1: orientation expected landscape, found portrait"

    def test_header_substring(self, engine):
        """Test header text is matched as a case-insensitive substring."""
        requirement = SectionRequirement(1, check_header=True, header_text="traitement DE TEXTE")
        earned, available, _ = engine.check_section(requirement, _document())
        assert (earned, available) == (2.0, 2.0)

    def test_footer_mismatch(self, engine):
        """Test a wrong footer costs its points."""
        requirement = SectionRequirement(1, check_header=True, check_footer=True,
                                         header_text="Devoir", footer_text="Page 2")
        earned, available, verdicts = engine.check_section(requirement, _document())
        assert (earned, available) == (2.0, 4.0)
        assert not verdicts[1].passed

    def test_section_missing(self, engine):
        """Test a missing section loses every requested check."""
        requirement = SectionRequirement(2, check_orientation=True, check_footer=True,
                                         orientation="portrait", footer_text="Annexe")
        earned, available, verdicts = engine.check_section(requirement, _document())
        assert (earned, available) == (0.0, 4.0)
        assert verdicts[0].message == "Section 2: section missing"

    def test_no_checks_requested(self, engine):
        """Test a section requirement without checks is worth nothing."""
        assert engine.check_section(SectionRequirement(1), _document()) == (0.0, 0.0, [])


class TestCompare:
    """Test cases for structural scoring."""

    def test_mixed_score(self, engine, heading):
        """Test style and section points are pooled."""
        styles = [StyleRequirement("Heading1", bold=True), StyleRequirement("Heading2")]
        sections = [SectionRequirement(1, check_orientation=True, check_header=True,
                                       orientation="portrait", header_text="Devoir")]
        outcome = engine.compare(styles, sections, _document([heading]))
        # 5 + 0 + 2 + 2 out of 14
        assert outcome.earned_points == 9
        assert outcome.total_points == 14
        assert outcome.score == 12.86

    def test_no_requirements(self, engine):
        """Test a batch without requirements scores 0."""
        outcome = engine.compare([], [], _document())
        assert outcome.score == 0.0
        assert outcome.details == []


class TestBuildRequirements:
    """Test cases for deriving requirements from the reference."""

    def test_derive_styles_from_reference(self, heading):
        """Test derived styles copy every reference property."""
        reference = _document([heading])
        requirements = build_requirements(reference, TextConfig(derive_styles=("heading 1",)))
        assert requirements.styles[0].font_name == "Arial"
        assert requirements.styles[0].font_size == 12.0

    def test_derive_unknown_style(self, heading):
        """Test deriving a style the reference lacks is a configuration error."""
        with pytest.raises(ConfigurationError):
            build_requirements(_document([heading]), TextConfig(derive_styles=("Heading 9",)))

    def test_section_values_from_reference(self):
        """Test unset section values come from the reference."""
        reference = _document([], [Section(1, orientation="landscape", footer_text="Page 1")])
        config = TextConfig(sections=(SectionRequirement(1, check_orientation=True, check_footer=True),))
        requirement = build_requirements(reference, config).sections[0]
        assert requirement.orientation == "landscape"
        assert requirement.footer_text == "Page 1"

    def test_explicit_section_values_kept(self):
        """Test explicit section values win over the reference."""
        reference = _document([], [Section(1, orientation="landscape")])
        config = TextConfig(sections=(SectionRequirement(1, check_orientation=True, orientation="portrait"),))
        assert build_requirements(reference, config).sections[0].orientation == "portrait"

    def test_disabled_checks(self, heading):
        """Test disabled style and section checks produce no requirements."""
        config = TextConfig(check_styles=False, derive_styles=("Heading1",), check_sections=False,
                            sections=(SectionRequirement(1, check_orientation=True),))
        requirements = build_requirements(_document([heading]), config)
        assert requirements.styles == ()
        assert requirements.sections == ()

    def test_engine_prepare_and_grade(self, engine, heading):
        """Test a reference graded against itself scores 20."""
        reference = _document([heading])
        configuration = GradingConfiguration(
            mode="text",
            text=TextConfig(derive_styles=("Heading1",),
                            sections=(SectionRequirement(1, check_header=True, check_footer=True),)),
        )
        prepared = engine.prepare(reference, configuration)
        assert engine.grade(prepared, reference, configuration).score == 20.0
