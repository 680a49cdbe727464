"""
Batch grader for the KoreKcel grader.

This module provides the BatchGrader class that orchestrates a grading
pass: decoding submissions in a worker pool, resolving identities,
running the batch's grading engine and ranking the results.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..models.configuration import TABULAR, GradingConfiguration
from ..models.document import TextDocument, Workbook
from ..models.results import (
    ComparisonResult,
    IdentityStatus,
    ResultStatus,
    StudentResult,
    Submission,
)
from ..utils.config import Config
from ..utils.exceptions import ConfigurationError, ProcessingError, UnreadableDocumentError, log_exception
from .aggregator import ScoreAggregator
from .document_loader import DocumentLoader
from .engine import GradingEngine, engine_for
from .identity import IdentityResolver


log = logging.getLogger(__name__)

Document = Union[Workbook, TextDocument]


class BatchGrader:
    """
    Grades a batch of submissions against one reference.

    The reference and the configuration are fixed for a grading pass and
    shared read-only by every worker. Results can later be re-graded
    under a new configuration without losing operator adjustments.

    Attributes:
        configuration: Grading configuration of the batch
        config: Application configuration
        loader: Document decoder
        engine: Grading engine selected from the batch mode
        resolver: Identity resolver
        aggregator: Score aggregator for operator edits
    """

    def __init__(self, configuration: GradingConfiguration, config: Optional[Config] = None) -> None:
        """
        Initialize the batch grader.

        Args:
            configuration: Grading configuration of the batch
            config: Optional application configuration
        """
        self.config = config or Config()
        self.configuration = configuration
        self.loader = DocumentLoader(self.config)
        self.engine: GradingEngine = engine_for(configuration.mode)
        self.resolver = IdentityResolver(configuration.identity)
        self.aggregator = ScoreAggregator(self.resolver)

        processing = self.config.get_processing_config()
        self.max_workers = max(1, int(processing.get("max_workers", 4)))
        self.decode_timeout = float(processing.get("decode_timeout_seconds", 30))

        self.reference: Optional[Document] = None
        self._prepared: Any = None

        log.info(f"Batch grader initialized ({configuration.mode} mode)")

    @property
    def mode(self) -> str:
        return self.configuration.mode

    def load_reference(self, data: bytes, filename: str = "") -> Document:
        """
        Decode and install the reference document.

        Raises:
            ProcessingError: If the reference cannot be decoded
            ConfigurationError: If the configuration does not fit the reference
        """
        try:
            document = self.loader.load(data, self.mode, filename)
        except UnreadableDocumentError as e:
            raise ProcessingError("Reference document unreadable", operation="load_reference",
                                  original_error=str(e))
        return self.set_reference(document)

    def set_reference(self, document: Document) -> Document:
        """
        Install an already decoded reference document.

        Raises:
            ConfigurationError: If the document family or the configured
                sheets do not match the reference
        """
        self._prepared = self._prepare(document, self.configuration)
        self.reference = document
        log.info("Reference document installed")
        return document

    def _prepare(self, document: Document, configuration: GradingConfiguration) -> Any:
        """Check a reference against a configuration and derive the engine state."""
        if not self.engine.accepts(document):
            raise ConfigurationError("Reference does not match the batch mode",
                                     config_key="mode", config_value=configuration.mode)

        if configuration.mode == TABULAR:
            missing = [s.name for s in configuration.enabled_sheets if not document.has_sheet(s.name)]
            if missing:
                raise ConfigurationError("Configured sheets absent from reference",
                                         config_key="sheets", config_value=", ".join(missing))

        return self.engine.prepare(document, configuration)

    def decode_submissions(self, files: Sequence[Tuple[str, bytes]]) -> List[Submission]:
        """
        Decode submission bytes in a worker pool.

        A document that fails to decode, or takes longer than the
        configured timeout, becomes an unreadable Submission; the batch
        always continues. Each timeout runs from the moment a worker picks
        the document up, so time spent queued is not counted.

        A decode that overruns is abandoned, not interrupted: its thread
        keeps running until the decoder returns, and the pool is shut down
        without waiting for it.

        Args:
            files: Sequence of (file name, raw bytes)

        Returns:
            Submissions in ingestion order
        """
        submissions: List[Submission] = []
        started: Dict[int, float] = {}
        pool = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = [pool.submit(self._decode, started, index, name, data)
                       for index, (name, data) in enumerate(files)]
            for index, ((name, _), future) in enumerate(zip(files, futures)):
                try:
                    document = self._wait_for(future, started, index)
                    submissions.append(Submission(name, document, index))
                except UnreadableDocumentError as e:
                    log_exception(log, e, f"Submission {name}")
                    submissions.append(Submission(name, None, index, error=str(e)))
                except FutureTimeoutError:
                    log.warning(f"Submission {name} timed out after {self.decode_timeout}s")
                    future.cancel()
                    submissions.append(Submission(name, None, index,
                                                  error=f"decoding timed out after {self.decode_timeout}s"))
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        log.info(f"Decoded {sum(s.readable for s in submissions)}/{len(submissions)} submissions")
        return submissions

    def _decode(self, started: Dict[int, float], index: int, name: str, data: bytes) -> Document:
        started[index] = time.monotonic()
        return self.loader.load(data, self.mode, name)

    def _wait_for(self, future: Future, started: Dict[int, float], index: int) -> Document:
        """
        Wait for one decode until its own deadline.

        A document still queued after a full timeout window in which no
        other decode started is given up too: every worker is stuck.
        """
        while True:
            begun = started.get(index)
            if begun is not None:
                remaining = begun + self.decode_timeout - time.monotonic()
                return future.result(timeout=max(remaining, 0.0))

            window_start = time.monotonic()
            try:
                return future.result(timeout=self.decode_timeout)
            except FutureTimeoutError:
                if index in started:
                    continue
                if not any(t >= window_start for t in list(started.values())):
                    raise

    def read_files(self, paths: Sequence[Union[str, Path]]) -> List[Tuple[str, bytes]]:
        """Read submission files; an unreadable path yields empty bytes."""
        files: List[Tuple[str, bytes]] = []
        for path in paths:
            path = Path(path)
            try:
                files.append((path.name, path.read_bytes()))
            except OSError as e:
                log.warning(f"Failed to read {path}: {e}")
                files.append((path.name, b""))
        return files

    def grade_files(self, files: Sequence[Tuple[str, bytes]]) -> List[StudentResult]:
        """Decode then grade a batch of raw submissions."""
        return self.grade_submissions(self.decode_submissions(files))

    def grade_submissions(self, submissions: Sequence[Submission]) -> List[StudentResult]:
        """
        Grade decoded submissions independently.

        Returns:
            Results sorted by final score, descending, ties in ingestion order

        Raises:
            ProcessingError: If no reference has been installed
        """
        self._require_reference()
        log.info(f"Grading {len(submissions)} submissions")
        results = [self.grade_submission(s) for s in submissions]
        return self.rank(results)

    def grade_submission(self, submission: Submission) -> StudentResult:
        """Resolve identity, then grade one submission or record its failure."""
        self._require_reference()
        workbook = submission.document if isinstance(submission.document, Workbook) else None
        identity = self.resolver.resolve(submission.filename, workbook)
        if identity.status == IdentityStatus.MISSING:
            log.warning(f"No identifier for {submission.filename}")

        error = submission.error
        if error is None and not self.engine.accepts(submission.document):
            error = f"expected a {self.engine.family} document"

        if error is not None:
            return StudentResult(
                filename=submission.filename,
                identity=identity,
                computed_score=0.0,
                details=[ComparisonResult(submission.filename, False, f"Document unreadable: {error}")],
                status=ResultStatus.UNREADABLE,
                error_message=error,
                index=submission.index,
            )

        outcome = self.engine.grade(self._prepared, submission.document, self.configuration)
        result = StudentResult(filename=submission.filename, identity=identity, index=submission.index)
        self.aggregator.apply_grade(result, outcome)
        log.debug(f"{submission.filename}: {result.computed_score}/20")
        return result

    def regrade(self, results: Sequence[StudentResult], submissions: Sequence[Submission],
                configuration: Optional[GradingConfiguration] = None) -> List[StudentResult]:
        """
        Recompute computed scores, keeping adjustments and identities.

        Args:
            results: Results of a previous pass
            submissions: The submissions those results were graded from
            configuration: New configuration; the batch mode cannot change

        Returns:
            The same result objects, re-ranked
        """
        self._require_reference()
        if configuration is not None:
            if configuration.mode != self.mode:
                raise ConfigurationError("Batch mode cannot change on re-grade",
                                         config_key="mode", config_value=configuration.mode)
            # a rejected configuration leaves the batch untouched
            prepared = self._prepare(self.reference, configuration)
            self.configuration = configuration
            self._prepared = prepared

        by_index: Dict[int, Submission] = {s.index: s for s in submissions}
        for result in results:
            submission = by_index.get(result.index)
            if submission is None or not submission.readable or not self.engine.accepts(submission.document):
                continue
            outcome = self.engine.grade(self._prepared, submission.document, self.configuration)
            self.aggregator.apply_grade(result, outcome)

        log.info(f"Re-graded {len(results)} results")
        return self.rank(results)

    @staticmethod
    def rank(results: Sequence[StudentResult]) -> List[StudentResult]:
        """Sort by final score descending; ties keep ingestion order."""
        return sorted(results, key=lambda r: (-r.final_score, r.index))

    def summary(self, results: Sequence[StudentResult]) -> Dict[str, Any]:
        """Batch statistics for display."""
        return {
            "count": len(results),
            "graded": sum(1 for r in results if not r.failed),
            "unreadable": sum(1 for r in results if r.failed),
            "class_average": self.aggregator.class_average(results),
            "identity_conflicts": sum(1 for r in results if r.identity.has_conflict),
            "missing_identities": sum(1 for r in results if r.identity.status == IdentityStatus.MISSING),
        }

    def _require_reference(self) -> None:
        if self._prepared is None:
            raise ProcessingError("No reference document loaded", operation="grade")
