"""
Grading configuration models for the KoreKcel grader.

A GradingConfiguration is supplied once per batch and never mutated while
the batch is graded; every class here is a frozen dataclass and collections
are stored as tuples so the value can be shared across worker threads.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from ..utils.exceptions import ValidationError
from ..utils.validators import InputValidator
from .document import StyleDefinition


TABULAR = "tabular"
TEXT = "text"
MODES = (TABULAR, TEXT)


@dataclass(frozen=True)
class SheetConfig:
    """
    Grading configuration of one sheet.

    Attributes:
        name: Sheet name, shared by reference and submissions
        enabled: Whether the sheet is graded
        weight: Relative weight in the aggregate (>= 0)
        selected_cells: Explicit cells to grade; empty means every
            populated cell of the reference sheet
        check_formulas: Per-sheet override of the global formula check
        ignore_dollar: Per-sheet override of absolute-marker stripping
    """
    name: str
    enabled: bool = True
    weight: float = 1.0
    selected_cells: Tuple[str, ...] = ()
    check_formulas: Optional[bool] = None
    ignore_dollar: Optional[bool] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Sheet name cannot be empty")
        try:
            weight = InputValidator.validate_weight(self.weight)
            cells = tuple(InputValidator.validate_cell_address(a) for a in self.selected_cells)
        except ValidationError as e:
            raise ValueError(str(e))
        object.__setattr__(self, "weight", weight)
        object.__setattr__(self, "selected_cells", cells)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SheetConfig:
        return cls(
            name=data["name"],
            enabled=data.get("enabled", True),
            weight=data.get("weight", 1.0),
            selected_cells=tuple(data.get("selected_cells", ())),
            check_formulas=data.get("check_formulas"),
            ignore_dollar=data.get("ignore_dollar"),
        )


@dataclass(frozen=True)
class ToleranceOptions:
    """
    Global comparison options for tabular grading.

    Attributes:
        absolute: Absolute numeric tolerance (>= 0)
        relative: Relative numeric tolerance (>= 0)
        check_formulas: Compare formulas when the reference cell has one
        ignore_dollar: Strip ``$`` markers before comparing formulas
    """
    absolute: float = 0.001
    relative: float = 0.0001
    check_formulas: bool = True
    ignore_dollar: bool = True

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "absolute",
                               InputValidator.validate_tolerance(self.absolute, "absolute"))
            object.__setattr__(self, "relative",
                               InputValidator.validate_tolerance(self.relative, "relative"))
        except ValidationError as e:
            raise ValueError(str(e))


@dataclass(frozen=True)
class IdentityOptions:
    """
    Where and how student identity is read from a submission workbook.

    Attributes:
        identity_sheet: Sheet holding identity cells; None means the first sheet
        id_cell: Cell holding the student number
        name_cell: Cell holding the family name
        first_name_cell: Cell holding the first name
        group_cell: Cell holding the group
        trim_identity: Trim and upper-case the family name
        extract_id_number: Keep only the first digit run of the id cell
        extract_group_number: Keep only the first digit run of the group cell
    """
    identity_sheet: Optional[str] = None
    id_cell: str = "B1"
    name_cell: str = "B2"
    first_name_cell: str = "B3"
    group_cell: str = "B4"
    trim_identity: bool = True
    extract_id_number: bool = True
    extract_group_number: bool = True

    def __post_init__(self) -> None:
        for attr in ("id_cell", "name_cell", "first_name_cell", "group_cell"):
            value = getattr(self, attr)
            if not value:
                continue
            try:
                object.__setattr__(self, attr, InputValidator.validate_cell_address(value))
            except ValidationError as e:
                raise ValueError(str(e))


@dataclass(frozen=True)
class StyleRequirement:
    """
    A paragraph style the submission must define.

    Fields left as None are not checked.
    """
    style_id: str
    name: str = ""
    font_name: Optional[str] = None
    font_size: Optional[float] = None
    color: Optional[str] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    alignment: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.style_id or "").strip() and not (self.name or "").strip():
            raise ValueError("Style requirement needs an identifier or a name")
        if self.font_size is not None and self.font_size <= 0:
            raise ValueError("Font size must be positive")
        if self.color is not None:
            try:
                object.__setattr__(self, "color", InputValidator.validate_hex_color(self.color))
            except ValidationError as e:
                raise ValueError(str(e))

    @property
    def label(self) -> str:
        return self.name or self.style_id

    @classmethod
    def from_style(cls, style: StyleDefinition) -> StyleRequirement:
        """Require every property the reference style defines."""
        return cls(
            style_id=style.style_id,
            name=style.name,
            font_name=style.font_name,
            font_size=style.font_size,
            color=style.color,
            bold=style.bold,
            italic=style.italic,
            alignment=style.alignment,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> StyleRequirement:
        return cls(
            style_id=data.get("style_id", ""),
            name=data.get("name", ""),
            font_name=data.get("font_name"),
            font_size=data.get("font_size"),
            color=data.get("color"),
            bold=data.get("bold"),
            italic=data.get("italic"),
            alignment=data.get("alignment"),
        )


@dataclass(frozen=True)
class SectionRequirement:
    """
    Page properties expected for the section at a 1-based position.

    Expected values left as None are taken from the reference section
    at the same position when requirements are built.
    """
    index: int
    check_orientation: bool = False
    check_header: bool = False
    check_footer: bool = False
    orientation: Optional[str] = None
    header_text: Optional[str] = None
    footer_text: Optional[str] = None

    def __post_init__(self) -> None:
        if self.index < 1:
            raise ValueError("Section index must be 1 or greater")
        if self.orientation is not None:
            try:
                object.__setattr__(self, "orientation",
                                   InputValidator.validate_orientation(self.orientation))
            except ValidationError as e:
                raise ValueError(str(e))

    @property
    def requested_checks(self) -> int:
        return sum((self.check_orientation, self.check_header, self.check_footer))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SectionRequirement:
        return cls(
            index=data.get("index", 1),
            check_orientation=data.get("check_orientation", False),
            check_header=data.get("check_header", False),
            check_footer=data.get("check_footer", False),
            orientation=data.get("orientation"),
            header_text=data.get("header_text"),
            footer_text=data.get("footer_text"),
        )


@dataclass(frozen=True)
class TextConfig:
    """
    Structural grading options for text documents.

    Attributes:
        check_styles: Grade style requirements
        styles: Explicit style requirements
        derive_styles: Ids or names of reference styles required as defined
        check_sections: Grade section requirements
        sections: Section requirements
    """
    check_styles: bool = True
    styles: Tuple[StyleRequirement, ...] = ()
    derive_styles: Tuple[str, ...] = ()
    check_sections: bool = True
    sections: Tuple[SectionRequirement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "styles", tuple(self.styles))
        object.__setattr__(self, "derive_styles", tuple(self.derive_styles))
        object.__setattr__(self, "sections", tuple(self.sections))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TextConfig:
        return cls(
            check_styles=data.get("check_styles", True),
            styles=tuple(StyleRequirement.from_dict(s) for s in data.get("styles", ())),
            derive_styles=tuple(data.get("derive_styles", ())),
            check_sections=data.get("check_sections", True),
            sections=tuple(SectionRequirement.from_dict(s) for s in data.get("sections", ())),
        )


@dataclass(frozen=True)
class GradingConfiguration:
    """
    Everything needed to grade one batch.

    Attributes:
        mode: Document family of the batch (``tabular`` or ``text``)
        sheets: Per-sheet configuration, in grading order
        tolerance: Numeric and formula comparison options
        identity: Identity extraction options
        text: Structural grading options
        max_diagnostics: Mismatch diagnostics kept per sheet
    """
    mode: str = TABULAR
    sheets: Tuple[SheetConfig, ...] = ()
    tolerance: ToleranceOptions = field(default_factory=ToleranceOptions)
    identity: IdentityOptions = field(default_factory=IdentityOptions)
    text: TextConfig = field(default_factory=TextConfig)
    max_diagnostics: int = 10

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"Mode must be one of {MODES}")
        if self.max_diagnostics < 0:
            raise ValueError("max_diagnostics must be non-negative")
        object.__setattr__(self, "sheets", tuple(self.sheets))
        names = [s.name for s in self.sheets]
        if len(names) != len(set(names)):
            raise ValueError("Sheet configurations must have unique names")

    @property
    def enabled_sheets(self) -> Tuple[SheetConfig, ...]:
        return tuple(s for s in self.sheets if s.enabled)

    def with_sheets(self, sheets: Iterable[SheetConfig]) -> GradingConfiguration:
        return replace(self, sheets=tuple(sheets))

    @classmethod
    def default_for_sheets(cls, sheet_names: Iterable[str], **kwargs: Any) -> GradingConfiguration:
        """Every sheet enabled with weight 1, as a fresh reference suggests."""
        return cls(sheets=tuple(SheetConfig(name) for name in sheet_names), **kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GradingConfiguration:
        """Build a configuration from a plain dictionary (e.g. JSON)."""
        return cls(
            mode=data.get("mode", TABULAR),
            sheets=tuple(SheetConfig.from_dict(s) for s in data.get("sheets", ())),
            tolerance=ToleranceOptions(**data.get("tolerance", {})),
            identity=IdentityOptions(**data.get("identity", {})),
            text=TextConfig.from_dict(data.get("text", {})),
            max_diagnostics=data.get("max_diagnostics", 10),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = asdict(self)
        data["sheets"] = [dict(s, selected_cells=list(s["selected_cells"])) for s in data["sheets"]]
        data["text"]["styles"] = list(data["text"]["styles"])
        data["text"]["derive_styles"] = list(data["text"]["derive_styles"])
        data["text"]["sections"] = list(data["text"]["sections"])
        return data
