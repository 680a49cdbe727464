"""
Identity resolution for the KoreKcel grader.

Each submission yields up to two identifier candidates: an 8 digit run
in its file name and, for workbooks, the value of the configured id cell.
This module reconciles them into one canonical identifier, flagging
disagreements for the operator instead of guessing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from pathlib import PurePath
from typing import Optional

from ..models.configuration import IdentityOptions
from ..models.document import Workbook
from ..models.results import UNKNOWN_ID, IdentitySource, IdentityStatus, StudentIdentity
from ..utils.exceptions import IdentityError


log = logging.getLogger(__name__)

FILENAME_ID_PATTERN = re.compile(r"(\d{8})")
DIGIT_RUN_PATTERN = re.compile(r"(\d+)")


class IdentityResolver:
    """
    Derives a canonical student identifier per submission.

    Resolution policy:
    - both candidates equal: resolved
    - both present and different: conflict, provisional id from the file name
    - only one present: resolved to it
    - none: UNKNOWN_ID with a data-quality warning
    """

    def __init__(self, options: Optional[IdentityOptions] = None) -> None:
        self.options = options or IdentityOptions()

    def candidate_from_filename(self, filename: str) -> Optional[str]:
        """First run of 8 digits in the file name stem, or None."""
        stem = PurePath(filename).stem if filename else ""
        match = FILENAME_ID_PATTERN.search(stem)
        return match.group(1) if match else None

    def candidate_from_workbook(self, workbook: Optional[Workbook]) -> Optional[str]:
        """Value of the configured id cell, reduced to its digits when configured."""
        raw = self._read_cell(workbook, self.options.id_cell)
        if not raw:
            return None
        if self.options.extract_id_number:
            match = DIGIT_RUN_PATTERN.search(raw)
            if match:
                return match.group(1)
        return raw

    def resolve(self, filename: str, workbook: Optional[Workbook] = None) -> StudentIdentity:
        """
        Resolve the identity of one submission.

        Args:
            filename: Submission file name
            workbook: Decoded workbook (tabular mode); None in text mode

        Returns:
            StudentIdentity with status and warnings set
        """
        from_filename = self.candidate_from_filename(filename)
        from_content = self.candidate_from_workbook(workbook)
        identity = self.resolve_candidates(from_filename, from_content)

        name = self._read_cell(workbook, self.options.name_cell)
        first_name = self._read_cell(workbook, self.options.first_name_cell)
        group = self._read_cell(workbook, self.options.group_cell)

        if self.options.trim_identity:
            name = name.upper()
        if self.options.extract_group_number and group:
            match = DIGIT_RUN_PATTERN.search(group)
            if match:
                group = match.group(1)
        if not name and from_filename:
            name = PurePath(filename).stem

        identity.name = name
        identity.first_name = first_name
        identity.group = group
        return identity

    def resolve_candidates(self, from_filename: Optional[str],
                           from_content: Optional[str]) -> StudentIdentity:
        """Apply the resolution policy to two candidates."""
        if from_filename and from_content:
            if from_filename == from_content:
                return StudentIdentity(student_id=from_filename, id_from_filename=from_filename,
                                       id_from_content=from_content, status=IdentityStatus.RESOLVED)
            log.warning(f"Identity conflict: file name says {from_filename}, content says {from_content}")
            return StudentIdentity(
                student_id=from_filename,
                id_from_filename=from_filename,
                id_from_content=from_content,
                status=IdentityStatus.CONFLICT,
                warnings=[f"Identifier conflict: file name {from_filename} vs content {from_content}"],
            )

        if from_filename or from_content:
            return StudentIdentity(student_id=from_filename or from_content,
                                   id_from_filename=from_filename, id_from_content=from_content,
                                   status=IdentityStatus.RESOLVED)

        return StudentIdentity(
            student_id=UNKNOWN_ID,
            status=IdentityStatus.MISSING,
            warnings=["No student identifier found in file name or content"],
        )

    def resolve_conflict(self, identity: StudentIdentity, choice: IdentitySource,
                         manual_value: Optional[str] = None) -> StudentIdentity:
        """
        Settle an identity with an operator decision.

        Args:
            identity: Identity to settle
            choice: Candidate picked by the operator
            manual_value: Identifier typed by the operator for ``MANUAL``

        Returns:
            New resolved StudentIdentity

        Raises:
            IdentityError: If the chosen candidate does not exist
        """
        choice = IdentitySource(choice)
        if choice == IdentitySource.FILENAME:
            value = identity.id_from_filename
        elif choice == IdentitySource.CONTENT:
            value = identity.id_from_content
        else:
            value = (manual_value or "").strip()

        if not value:
            raise IdentityError("No default available for the chosen identifier source",
                                choice=choice.value)

        warnings = [w for w in identity.warnings if not w.startswith("Identifier conflict")]
        log.info(f"Identity resolved to {value} ({choice.value})")
        return replace(identity, student_id=value, status=IdentityStatus.RESOLVED,
                       resolved_by=choice, warnings=warnings)

    def _read_cell(self, workbook: Optional[Workbook], address: str) -> str:
        if workbook is None or not address:
            return ""
        sheet_name = self.options.identity_sheet
        if sheet_name is None and workbook.sheet_names:
            sheet_name = workbook.sheet_names[0]
        sheet = workbook.get_sheet(sheet_name)
        if sheet is None:
            return ""
        cell = sheet.get(address)
        if cell is None or cell.raw_value is None:
            return ""
        value = cell.raw_value
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip()
