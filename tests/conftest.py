"""
Test suite initialization for the KoreKcel grader.

This module provides the main test configuration and fixtures
for the test suite.
"""

import io
import pytest
import tempfile
import logging
from pathlib import Path

import docx
import openpyxl
from docx.enum.section import WD_ORIENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

from korekcel.models.configuration import GradingConfiguration, SheetConfig, ToleranceOptions
from korekcel.models.document import Workbook
from korekcel.utils.config import Config


# Configure logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='[TEST] %(levelname)s - %(name)s - %(message)s'
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config():
    """Create a sample configuration for testing."""
    config = Config()
    # Override with test-specific settings
    config.settings.processing["decode_timeout_seconds"] = 30
    config.settings.processing["max_workers"] = 2
    return config


@pytest.fixture
def reference_values():
    """Cell values of the reference workbook."""
    return {
        "Identite": {
            "A1": "Numero", "B1": "N° 00000000",
            "A2": "Nom", "B2": "Nom",
            "A3": "Prenom", "B3": "Prenom",
            "A4": "Groupe", "B4": "Groupe",
        },
        "Calculs": {
            "A1": 10,
            "A2": 20,
            "A3": (30, "=A1+A2"),
            "B1": "Total",
            "B2": 2.5,
        },
        "Synthese": {
            "A1": "Moyenne",
            "B1": (15, "=AVERAGE(Calculs!A1:A2)"),
        },
    }


@pytest.fixture
def reference_workbook(reference_values):
    """Reference workbook as a decoded model."""
    return Workbook.from_values(reference_values)


@pytest.fixture
def make_workbook(reference_values):
    """Factory building a submission workbook from the reference with overrides."""
    def _make(overrides=None, drop_sheets=(), identity=None):
        data = {name: dict(cells) for name, cells in reference_values.items()}
        for sheet, cells in (overrides or {}).items():
            data.setdefault(sheet, {}).update(cells)
        if identity is not None:
            data["Identite"].update(identity)
        for sheet in drop_sheets:
            data.pop(sheet, None)
        return Workbook.from_values(data)

    return _make


@pytest.fixture
def tabular_configuration():
    """Configuration grading the two exercise sheets."""
    return GradingConfiguration(
        sheets=(
            SheetConfig("Calculs", weight=2),
            SheetConfig("Synthese", weight=1),
        ),
        tolerance=ToleranceOptions(absolute=0.1, relative=0.0),
    )


def _workbook_bytes(values):
    book = openpyxl.Workbook()
    book.remove(book.active)
    for sheet_name, cells in values.items():
        sheet = book.create_sheet(sheet_name)
        for address, value in cells.items():
            if isinstance(value, tuple):
                value = value[1]
            sheet[address] = value
    buffer = io.BytesIO()
    book.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xlsx_bytes():
    """Factory writing a real .xlsx file in memory with openpyxl."""
    return _workbook_bytes


@pytest.fixture
def docx_bytes():
    """Factory writing a real .docx file in memory with python-docx."""
    def _make(heading_size=16, heading_color="1F3864", heading_bold=True,
              landscape=False, header="Devoir de traitement de texte", footer="Page 1",
              extra_section=False):
        document = docx.Document()
        heading = document.styles["Heading 1"]
        heading.font.name = "Arial"
        heading.font.size = Pt(heading_size)
        heading.font.color.rgb = RGBColor.from_string(heading_color)
        heading.font.bold = heading_bold
        heading.font.italic = False
        heading.paragraph_format.alignment = WD_ALIGN_PARAGRAPH.CENTER

        normal = document.styles["Normal"]
        normal.font.name = "Calibri"
        normal.font.size = Pt(11)

        document.add_heading("Introduction", level=1)
        document.add_paragraph("Texte de la copie.")

        section = document.sections[0]
        if landscape:
            section.orientation = WD_ORIENT.LANDSCAPE
            section.page_width, section.page_height = section.page_height, section.page_width
        section.header.paragraphs[0].text = header
        section.footer.paragraphs[0].text = footer

        if extra_section:
            document.add_section()
            document.add_paragraph("Annexe.")

        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return _make
