"""
Document loader for the KoreKcel grader.

This module decodes raw document bytes into the in-memory models the
grading engines consume: workbooks through openpyxl and text documents
through python-docx. Decoding is the only heavy step of grading and the
only one that can fail on malformed input; every failure surfaces as
UnreadableDocumentError.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import docx
from docx.enum.section import WD_ORIENT
from docx.enum.style import WD_STYLE_TYPE
from openpyxl import load_workbook
from openpyxl.worksheet.formula import ArrayFormula

from ..models.configuration import TABULAR, TEXT
from ..models.document import Cell, Section, Sheet, StyleDefinition, TextDocument, Workbook
from ..utils.config import Config
from ..utils.exceptions import UnreadableDocumentError


log = logging.getLogger(__name__)

DEFAULT_ALIGNMENT = "left"


class DocumentLoader:
    """
    Decoder for reference and submission documents.

    Supports:
    - Workbooks (.xlsx, .xlsm): formulas and cached values of every cell
    - Text documents (.docx): paragraph styles and sections
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        """
        Initialize document loader.

        Args:
            config: Optional configuration object
        """
        self.config = config or Config()
        self.max_bytes = int(self.config.get_processing_config().get("max_document_bytes", 0))

    def load(self, data: bytes, mode: str, filename: str = "") -> Union[Workbook, TextDocument]:
        """
        Decode document bytes for a batch mode.

        Raises:
            UnreadableDocumentError: If the bytes cannot be decoded
        """
        if mode == TABULAR:
            return self.load_workbook(data, filename)
        if mode == TEXT:
            return self.load_text_document(data, filename)
        raise UnreadableDocumentError(file_name=filename, expected_format=str(mode),
                                      original_error="unknown document family")

    def load_path(self, path: Union[str, Path], mode: str) -> Union[Workbook, TextDocument]:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise UnreadableDocumentError(file_name=path.name, expected_format=mode,
                                          original_error=str(e))
        return self.load(data, mode, path.name)

    def load_workbook(self, data: bytes, filename: str = "") -> Workbook:
        """
        Decode a workbook.

        The file is read twice: once for formula text, once for the values
        cached by the spreadsheet application.
        """
        self._check_size(data, filename, TABULAR)
        try:
            formulas = load_workbook(io.BytesIO(data), data_only=False)
            values = load_workbook(io.BytesIO(data), data_only=True)

            sheets: Dict[str, Sheet] = {}
            for worksheet in formulas.worksheets:
                cached = values[worksheet.title]
                cells: Dict[str, Cell] = {}
                for row in worksheet.iter_rows():
                    for cell in row:
                        if cell.value is None:
                            continue
                        formula = self._formula_text(cell)
                        if formula is not None:
                            cells[cell.coordinate] = Cell(raw_value=cached[cell.coordinate].value,
                                                          formula_text=formula)
                        else:
                            cells[cell.coordinate] = Cell(raw_value=cell.value)
                sheets[worksheet.title] = Sheet(worksheet.title, cells)

        except Exception as e:
            raise UnreadableDocumentError(file_name=filename, expected_format="workbook",
                                          original_error=str(e))

        log.info(f"Decoded workbook {filename or '<bytes>'}: {len(sheets)} sheets")
        return Workbook(sheets=sheets, meta={"filename": filename, "type": TABULAR})

    def load_text_document(self, data: bytes, filename: str = "") -> TextDocument:
        """Decode a text document into paragraph styles and sections."""
        self._check_size(data, filename, TEXT)
        try:
            document = docx.Document(io.BytesIO(data))
            styles = [self._style_definition(s) for s in document.styles
                      if s.type == WD_STYLE_TYPE.PARAGRAPH]
            sections = [self._section(index, s) for index, s in enumerate(document.sections, start=1)]
        except Exception as e:
            raise UnreadableDocumentError(file_name=filename, expected_format="text document",
                                          original_error=str(e))

        log.info(f"Decoded text document {filename or '<bytes>'}: "
                 f"{len(styles)} styles, {len(sections)} sections")
        return TextDocument(styles=styles, sections=sections,
                            meta={"filename": filename, "type": TEXT})

    def _check_size(self, data: bytes, filename: str, mode: str) -> None:
        if not data:
            raise UnreadableDocumentError(file_name=filename, expected_format=mode,
                                          original_error="empty file")
        if self.max_bytes and len(data) > self.max_bytes:
            raise UnreadableDocumentError(file_name=filename, expected_format=mode,
                                          original_error=f"file exceeds {self.max_bytes} bytes")

    @staticmethod
    def _formula_text(cell: Any) -> Optional[str]:
        if isinstance(cell.value, ArrayFormula):
            return cell.value.text
        if cell.data_type == "f":
            return str(cell.value)
        return None

    @staticmethod
    def _style_definition(style: Any) -> StyleDefinition:
        font = style.font
        color = None
        try:
            if font.color is not None and font.color.rgb is not None:
                color = str(font.color.rgb)
        except ValueError:
            # theme colours without an explicit RGB value
            color = None

        alignment = style.element.xpath("./w:pPr/w:jc/@w:val")

        return StyleDefinition(
            style_id=style.style_id or style.name,
            name=style.name or style.style_id,
            font_name=font.name,
            font_size=font.size.pt if font.size is not None else None,
            color=color,
            bold=bool(font.bold),
            italic=bool(font.italic),
            alignment=str(alignment[0]) if alignment else DEFAULT_ALIGNMENT,
        )

    @staticmethod
    def _section(index: int, section: Any) -> Section:
        orientation = "landscape" if section.orientation == WD_ORIENT.LANDSCAPE else "portrait"
        return Section(
            index=index,
            orientation=orientation,
            header_text=DocumentLoader._story_text(section.header),
            footer_text=DocumentLoader._story_text(section.footer),
        )

    @staticmethod
    def _story_text(story: Any) -> str:
        lines: List[str] = [p.text for p in story.paragraphs if p.text]
        for table in story.tables:
            for row in table.rows:
                lines.extend(c.text for c in row.cells if c.text)
        return "\n".join(lines)
