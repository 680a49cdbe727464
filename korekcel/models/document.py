"""
Document models for the KoreKcel grader.

This module defines the decoded, in-memory shape of the two document
families the grader understands: workbooks (sparse grids of cells) and
text documents (paragraph styles and page sections).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from openpyxl.utils.cell import column_index_from_string, coordinate_from_string


def normalize_address(address: str) -> str:
    """Upper-case an A1 address and drop absolute-reference markers."""
    return address.replace("$", "").strip().upper()


def address_sort_key(address: str) -> Tuple[int, int]:
    """Row-major sort key for an A1 address."""
    column, row = coordinate_from_string(address)
    return row, column_index_from_string(column)


@dataclass(frozen=True)
class Cell:
    """
    A single workbook cell.

    Attributes:
        raw_value: Cached value (number, text, boolean...) or None
        formula_text: Formula source as written, e.g. ``"=SUM(A1:A3)"``
    """
    raw_value: Any = None
    formula_text: Optional[str] = None

    @property
    def is_formula(self) -> bool:
        return bool(self.formula_text and self.formula_text.strip())

    @property
    def is_populated(self) -> bool:
        """True when the cell holds a value or a formula."""
        if self.is_formula:
            return True
        if self.raw_value is None:
            return False
        if isinstance(self.raw_value, str) and not self.raw_value.strip():
            return False
        return True


@dataclass
class Sheet:
    """
    Sparse grid of cells keyed by A1 address.

    Attributes:
        name: Sheet name as shown on its tab
        cells: Mapping of normalised address to Cell
    """
    name: str
    cells: Dict[str, Cell] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate sheet data and normalise addresses."""
        if not self.name or not self.name.strip():
            raise ValueError("Sheet name cannot be empty")
        self.cells = {normalize_address(addr): cell for addr, cell in self.cells.items()}

    def get(self, address: str) -> Optional[Cell]:
        return self.cells.get(normalize_address(address))

    def populated_addresses(self) -> List[str]:
        """Addresses of every populated cell, in row-major order."""
        populated = [addr for addr, cell in self.cells.items() if cell.is_populated]
        return sorted(populated, key=address_sort_key)


@dataclass
class Workbook:
    """
    Decoded workbook.

    Attributes:
        sheets: Ordered mapping of sheet name to Sheet
        meta: Metadata about the source (file name, format)
    """
    sheets: Dict[str, Sheet] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def sheet_names(self) -> List[str]:
        return list(self.sheets.keys())

    def has_sheet(self, name: str) -> bool:
        return name in self.sheets

    def get_sheet(self, name: Optional[str]) -> Optional[Sheet]:
        if name is None:
            return None
        return self.sheets.get(name)

    @classmethod
    def from_values(cls, data: Dict[str, Dict[str, Any]]) -> Workbook:
        """
        Build a workbook from plain values.

        Strings starting with ``=`` become formula cells without a cached value.
        A ``(value, formula)`` tuple sets both.
        """
        sheets = {}
        for sheet_name, values in data.items():
            cells = {}
            for address, value in values.items():
                if isinstance(value, tuple):
                    cells[address] = Cell(raw_value=value[0], formula_text=value[1])
                elif isinstance(value, str) and value.startswith("="):
                    cells[address] = Cell(formula_text=value)
                else:
                    cells[address] = Cell(raw_value=value)
            sheets[sheet_name] = Sheet(sheet_name, cells)
        return cls(sheets=sheets)


@dataclass(frozen=True)
class StyleDefinition:
    """
    A paragraph style as defined in a text document.

    Attributes:
        style_id: Internal style identifier (e.g. ``Heading1``)
        name: Display name (e.g. ``Heading 1``)
        font_name: Font family
        font_size: Size in points
        color: Hex colour without ``#``
        bold: Bold flag
        italic: Italic flag
        alignment: Paragraph alignment (``left``, ``center``, ``right``, ``both``)
    """
    style_id: str
    name: str = ""
    font_name: Optional[str] = None
    font_size: Optional[float] = None
    color: Optional[str] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    alignment: Optional[str] = None

    def matches(self, key: str) -> bool:
        """Case-insensitive match on identifier or display name."""
        if not key:
            return False
        wanted = key.strip().lower()
        return self.style_id.strip().lower() == wanted or self.name.strip().lower() == wanted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "style_id": self.style_id,
            "name": self.name,
            "font_name": self.font_name,
            "font_size": self.font_size,
            "color": self.color,
            "bold": self.bold,
            "italic": self.italic,
            "alignment": self.alignment,
        }


@dataclass(frozen=True)
class Section:
    """
    A page section of a text document.

    Attributes:
        index: 1-based position in document order
        orientation: ``portrait`` or ``landscape``
        header_text: Text extracted from the section header
        footer_text: Text extracted from the section footer
    """
    index: int
    orientation: str = "portrait"
    header_text: str = ""
    footer_text: str = ""

    def __post_init__(self) -> None:
        if self.index < 1:
            raise ValueError("Section index must be 1 or greater")
        if self.orientation not in ("portrait", "landscape"):
            raise ValueError("Section orientation must be portrait or landscape")


@dataclass
class TextDocument:
    """
    Decoded text document.

    Attributes:
        styles: Paragraph styles defined in the document
        sections: Sections in document order
        meta: Metadata about the source
    """
    styles: List[StyleDefinition] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def find_style(self, key: str) -> Optional[StyleDefinition]:
        for style in self.styles:
            if style.matches(key):
                return style
        return None

    def get_section(self, index: int) -> Optional[Section]:
        """Section at a 1-based position, or None."""
        if 1 <= index <= len(self.sections):
            return self.sections[index - 1]
        return None
