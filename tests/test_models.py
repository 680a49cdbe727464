"""
Test suite for KoreKcel models.

This module contains tests for the document, configuration and result models.
"""

import pytest

from korekcel.models.configuration import (
    GradingConfiguration,
    IdentityOptions,
    SectionRequirement,
    SheetConfig,
    StyleRequirement,
    TextConfig,
    ToleranceOptions,
)
from korekcel.models.document import Cell, Section, Sheet, StyleDefinition, TextDocument, Workbook
from korekcel.models.results import (
    ComparisonResult,
    IdentityStatus,
    SheetResult,
    StudentIdentity,
    StudentResult,
)


class TestDocumentModels:
    """Test cases for decoded document models."""

    def test_cell_formula_flag(self):
        """Test formula detection on cells."""
        assert Cell(raw_value=3, formula_text="=A1+A2").is_formula
        assert not Cell(raw_value=3).is_formula
        assert not Cell(raw_value=3, formula_text="  ").is_formula

    def test_cell_populated(self):
        """Test which cells count as populated."""
        assert Cell(raw_value=0).is_populated
        assert Cell(formula_text="=A1").is_populated
        assert not Cell(raw_value=None).is_populated
        assert not Cell(raw_value="   ").is_populated

    def test_sheet_normalizes_addresses(self):
        """Test address normalisation in sheets."""
        sheet = Sheet("Feuil1", {"b$2": Cell(raw_value=1)})
        assert sheet.get("B2").raw_value == 1
        assert sheet.get("$B$2").raw_value == 1

    def test_sheet_validation_empty_name(self):
        """Test sheet validation with empty name."""
        with pytest.raises(ValueError, match="Sheet name cannot be empty"):
            Sheet("  ")

    def test_populated_addresses_row_major(self):
        """Test populated addresses come out row by row."""
        sheet = Sheet("Feuil1", {
            "B1": Cell(raw_value=1),
            "A2": Cell(raw_value=2),
            "AA1": Cell(raw_value=3),
            "A1": Cell(raw_value=4),
            "C3": Cell(raw_value=None),
        })
        assert sheet.populated_addresses() == ["A1", "B1", "AA1", "A2"]

    def test_workbook_from_values(self):
        """Test building a workbook from plain values."""
        workbook = Workbook.from_values({
            "Feuil1": {"A1": 1, "A2": "=A1*2", "A3": (4, "=A2*2")},
        })
        sheet = workbook.get_sheet("Feuil1")
        assert workbook.sheet_names == ["Feuil1"]
        assert sheet.get("A2").is_formula
        assert sheet.get("A2").raw_value is None
        assert sheet.get("A3").raw_value == 4
        assert workbook.get_sheet(None) is None

    def test_style_matches_case_insensitive(self):
        """Test style matching on id or display name."""
        style = StyleDefinition(style_id="Heading1", name="Heading 1")
        assert style.matches("heading1")
        assert style.matches("HEADING 1")
        assert not style.matches("Titre 1")
        assert not style.matches("")

    def test_section_validation(self):
        """Test section validation."""
        with pytest.raises(ValueError):
            Section(index=0)
        with pytest.raises(ValueError):
            Section(index=1, orientation="square")

    def test_text_document_lookup(self):
        """Test style and section lookup in text documents."""
        document = TextDocument(
            styles=[StyleDefinition("Normal", "Normal")],
            sections=[Section(1), Section(2, orientation="landscape")],
        )
        assert document.find_style("normal").style_id == "Normal"
        assert document.get_section(2).orientation == "landscape"
        assert document.get_section(3) is None
        assert document.get_section(0) is None


class TestConfigurationModels:
    """Test cases for grading configuration models."""

    def test_sheet_config_defaults(self):
        """Test SheetConfig defaults."""
        config = SheetConfig("Feuil1")
        assert config.enabled
        assert config.weight == 1.0
        assert config.selected_cells == ()

    def test_sheet_config_negative_weight(self):
        """Test negative weights are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            SheetConfig("Feuil1", weight=-1)

    def test_sheet_config_normalizes_cells(self):
        """Test selected cells are normalised."""
        config = SheetConfig("Feuil1", selected_cells=["b2", "$C$3"])
        assert config.selected_cells == ("B2", "C3")

    def test_sheet_config_invalid_cell(self):
        """Test invalid selected cells are rejected."""
        with pytest.raises(ValueError):
            SheetConfig("Feuil1", selected_cells=["2B"])

    def test_tolerance_must_be_non_negative(self):
        """Test negative tolerances are rejected."""
        with pytest.raises(ValueError):
            ToleranceOptions(absolute=-0.1)
        with pytest.raises(ValueError):
            ToleranceOptions(relative=-0.1)

    def test_configuration_is_immutable(self):
        """Test configurations cannot be modified in place."""
        configuration = GradingConfiguration(sheets=(SheetConfig("Feuil1"),))
        with pytest.raises(AttributeError):
            configuration.mode = "text"

    def test_configuration_rejects_unknown_mode(self):
        """Test unknown modes are rejected."""
        with pytest.raises(ValueError):
            GradingConfiguration(mode="slides")

    def test_configuration_rejects_duplicate_sheets(self):
        """Test duplicate sheet names are rejected."""
        with pytest.raises(ValueError, match="unique"):
            GradingConfiguration(sheets=(SheetConfig("A"), SheetConfig("A")))

    def test_enabled_sheets(self):
        """Test enabled sheet filtering keeps order."""
        configuration = GradingConfiguration(sheets=(
            SheetConfig("A"), SheetConfig("B", enabled=False), SheetConfig("C"),
        ))
        assert [s.name for s in configuration.enabled_sheets] == ["A", "C"]

    def test_configuration_dict_round_trip(self):
        """Test conversion to and from dictionaries."""
        configuration = GradingConfiguration(
            sheets=(SheetConfig("A", weight=2, selected_cells=("A1",)),),
            identity=IdentityOptions(id_cell="c1"),
            text=TextConfig(
                styles=(StyleRequirement("Heading1", font_size=14),),
                sections=(SectionRequirement(1, check_orientation=True, orientation="Landscape"),),
            ),
        )
        restored = GradingConfiguration.from_dict(configuration.to_dict())
        assert restored == configuration
        assert restored.identity.id_cell == "C1"
        assert restored.text.sections[0].orientation == "landscape"

    def test_style_requirement_needs_key(self):
        """Test style requirements need an id or a name."""
        with pytest.raises(ValueError):
            StyleRequirement(style_id="", name="")

    def test_style_requirement_from_style(self):
        """Test copying a reference style into a requirement."""
        style = StyleDefinition("Heading1", "Heading 1", font_name="Arial", font_size=16.0,
                                color="FF0000", bold=True, italic=False, alignment="center")
        requirement = StyleRequirement.from_style(style)
        assert requirement.font_name == "Arial"
        assert requirement.font_size == 16.0
        assert requirement.alignment == "center"
        assert requirement.label == "Heading 1"

    def test_section_requirement_requested_checks(self):
        """Test counting requested section checks."""
        requirement = SectionRequirement(1, check_orientation=True, check_footer=True)
        assert requirement.requested_checks == 2


class TestResultModels:
    """Test cases for result models."""

    def test_final_score_clamps(self):
        """Test final score is clamped to [0, 20]."""
        result = StudentResult("a.xlsx", StudentIdentity(), computed_score=18)
        result.manual_adjustment = 5
        assert result.final_score == 20.0
        result.manual_adjustment = -30
        assert result.final_score == 0.0

    def test_computed_score_clamped_on_creation(self):
        """Test computed score is clamped when the result is built."""
        assert StudentResult("a.xlsx", StudentIdentity(), computed_score=25).computed_score == 20.0
        assert StudentResult("a.xlsx", StudentIdentity(), computed_score=-1).computed_score == 0.0

    def test_identity_conflict_flags(self):
        """Test identity conflict properties."""
        identity = StudentIdentity(student_id="1", status=IdentityStatus.CONFLICT)
        assert identity.has_conflict
        assert not identity.is_definitive

    def test_to_row_tabular(self):
        """Test export row for a tabular result."""
        result = StudentResult(
            "dupont.xlsx",
            StudentIdentity(student_id="42000894", name="DUPONT", first_name="Jean", group="2",
                            status=IdentityStatus.RESOLVED),
            computed_score=12.5,
            sheet_results=[SheetResult("Calculs", 1.0, 4, 3, 15.0), SheetResult("Synthese", 1.0, 1, 0, 0.0)],
            manual_adjustment=1,
        )
        row = result.to_row(["Calculs", "Synthese", "Absent"])
        assert row["student_id"] == "42000894"
        assert row["Calculs"] == 15.0
        assert row["Absent"] is None
        assert row["computed_score"] == 12.5
        assert row["manual_adjustment"] == 1
        assert row["final_score"] == 13.5

    def test_to_row_conflict_withholds_id(self):
        """Test an unresolved conflict exports both candidates and no identifier."""
        result = StudentResult(
            "42000894.xlsx",
            StudentIdentity(student_id="42000894", id_from_filename="42000894",
                            id_from_content="42000895", status=IdentityStatus.CONFLICT),
            computed_score=10,
        )
        row = result.to_row(["Calculs"])
        assert row["student_id"] == ""
        assert row["identity_status"] == "conflict"
        assert row["id_from_filename"] == "42000894"
        assert row["id_from_content"] == "42000895"

    def test_to_row_structural(self):
        """Test export row for a structural result joins details."""
        result = StudentResult(
            "dupont.docx", StudentIdentity(),
            details=[ComparisonResult("A", True, "ok"), ComparisonResult("B", False, "ko")],
        )
        assert result.to_row()["details"] == "ok | ko"

    def test_to_dict(self):
        """Test dictionary conversion."""
        result = StudentResult("a.xlsx", StudentIdentity(), computed_score=10,
                               details=[ComparisonResult("A1", False, "A1: expected 1, got 2", 1, 2)])
        data = result.to_dict()
        assert data["final_score"] == 10
        assert data["identity"]["status"] == "missing"
        assert data["details"][0]["expected"] == "1"
