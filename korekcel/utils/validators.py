"""
Input validation utilities for the KoreKcel grader.

This module provides validation for file paths and for the values
that make up a grading configuration.
"""

from __future__ import annotations

import math
import re
from pathlib import Path
from typing import List, Optional, Union

from ..utils.exceptions import ValidationError


class InputValidator:
    """
    Input validation utilities for the grader.

    Provides validation methods for:
    - Reference and submission file paths
    - Cell addresses
    - Sheet weights and tolerances
    - Style colours and page orientations
    """

    CELL_ADDRESS_PATTERN = re.compile(r'^\$?([A-Za-z]{1,3})\$?([1-9]\d*)$')
    HEX_COLOR_PATTERN = re.compile(r'^#?[0-9A-Fa-f]{6}$')

    TABULAR_FORMATS = ['.xlsx', '.xlsm']
    TEXT_FORMATS = ['.docx']
    ORIENTATIONS = ('portrait', 'landscape')

    @classmethod
    def validate_file_path(cls, file_path: Union[str, Path], must_exist: bool = True,
                           extensions: Optional[List[str]] = None) -> Path:
        """
        Validate a file path.

        Args:
            file_path: Path to validate
            must_exist: Whether the file must exist
            extensions: List of allowed extensions (with dots)

        Returns:
            Validated Path object

        Raises:
            ValidationError: If path is invalid
        """
        try:
            if isinstance(file_path, str):
                file_path = Path(file_path)

            if not isinstance(file_path, Path):
                raise ValidationError("File path must be a string or Path object")

            if not file_path.is_absolute():
                file_path = file_path.resolve()

            if must_exist:
                if not file_path.exists():
                    raise ValidationError(f"File does not exist: {file_path}")

                if not file_path.is_file():
                    raise ValidationError(f"Path is not a file: {file_path}")

            if extensions:
                if file_path.suffix.lower() not in [ext.lower() for ext in extensions]:
                    valid_exts = ', '.join(extensions)
                    raise ValidationError(f"File must have one of these extensions: {valid_exts}")

            return file_path

        except ValidationError:
            raise
        except Exception as e:
            raise ValidationError(f"Invalid file path: {e}")

    @classmethod
    def validate_document_file(cls, file_path: Union[str, Path], mode: Optional[str] = None) -> Path:
        """
        Validate a reference or submission document path.

        Args:
            file_path: Path to the document
            mode: ``"tabular"``, ``"text"`` or None to accept both families

        Returns:
            Validated Path object
        """
        if mode == "tabular":
            extensions = cls.TABULAR_FORMATS
        elif mode == "text":
            extensions = cls.TEXT_FORMATS
        else:
            extensions = cls.TABULAR_FORMATS + cls.TEXT_FORMATS
        return cls.validate_file_path(file_path, must_exist=True, extensions=extensions)

    @classmethod
    def detect_mode(cls, file_path: Union[str, Path]) -> str:
        """Return the document family implied by a file extension."""
        suffix = Path(file_path).suffix.lower()
        if suffix in cls.TABULAR_FORMATS:
            return "tabular"
        if suffix in cls.TEXT_FORMATS:
            return "text"
        raise ValidationError("Cannot infer document family from extension",
                              field="file", value=str(file_path))

    @classmethod
    def validate_cell_address(cls, address: str) -> str:
        """
        Validate an A1-style cell address.

        Absolute-reference markers are accepted and dropped.

        Returns:
            Normalised upper-case address, e.g. ``"B4"``

        Raises:
            ValidationError: If the address is malformed
        """
        if not address or not isinstance(address, str):
            raise ValidationError("Cell address must be a non-empty string")

        match = cls.CELL_ADDRESS_PATTERN.match(address.strip())
        if not match:
            raise ValidationError("Invalid cell address", field="address", value=address)

        return f"{match.group(1).upper()}{match.group(2)}"

    @classmethod
    def validate_weight(cls, weight: Union[int, float]) -> float:
        """Validate a sheet weight (finite, non-negative)."""
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            raise ValidationError("Weight must be a number", field="weight", value=str(weight))
        if not math.isfinite(weight) or weight < 0:
            raise ValidationError("Weight must be non-negative", field="weight", value=str(weight))
        return float(weight)

    @classmethod
    def validate_tolerance(cls, tolerance: Union[int, float], name: str = "tolerance") -> float:
        """Validate an absolute or relative tolerance (finite, non-negative)."""
        if isinstance(tolerance, bool) or not isinstance(tolerance, (int, float)):
            raise ValidationError("Tolerance must be a number", field=name, value=str(tolerance))
        if not math.isfinite(tolerance) or tolerance < 0:
            raise ValidationError("Tolerance must be non-negative", field=name, value=str(tolerance))
        return float(tolerance)

    @classmethod
    def validate_hex_color(cls, color: str) -> str:
        """
        Validate a six digit hex colour.

        Returns:
            Upper-case colour without the ``#`` prefix
        """
        if not color or not cls.HEX_COLOR_PATTERN.match(color.strip()):
            raise ValidationError("Invalid hex colour", field="color", value=str(color))
        return color.strip().lstrip('#').upper()

    @classmethod
    def validate_orientation(cls, orientation: str) -> str:
        """Validate a page orientation, returning it lower-cased."""
        value = (orientation or "").strip().lower()
        if value not in cls.ORIENTATIONS:
            raise ValidationError("Orientation must be portrait or landscape",
                                  field="orientation", value=str(orientation))
        return value
