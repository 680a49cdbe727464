"""
Custom exceptions for the KoreKcel grader.

This module defines custom exception classes used throughout
the grading package for better error handling and reporting.

Mismatches found while grading are never raised: they are recorded as
diagnostics on the result. Exceptions are reserved for invalid input,
configuration problems and documents that cannot be decoded.
"""

from __future__ import annotations


class KorekcelError(Exception):
    """
    Base exception class for the grader.

    All custom exceptions in the package inherit from this base class.
    """

    def __init__(self, message: str = "", details: str = "") -> None:
        """
        Initialize exception.

        Args:
            message: Main error message
            details: Additional error details
        """
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        """String representation of the exception."""
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class ValidationError(KorekcelError):
    """
    Exception raised for input validation errors.

    Used when user input (cell addresses, weights, file paths)
    fails validation checks.
    """

    def __init__(self, message: str = "Validation failed", field: str = "", value: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Validation error message
            field: Field name that failed validation
            value: Value that failed validation
        """
        details = ""
        if field:
            details += f"field: {field}"
        if value:
            if details:
                details += ", "
            details += f"value: {value}"

        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigurationError(KorekcelError):
    """
    Exception raised for configuration errors.

    Used when a configuration file is invalid or when the grading
    configuration does not fit the reference document.
    """

    def __init__(self, message: str = "Configuration error", config_key: str = "",
                 config_value: str = "") -> None:
        """
        Initialize configuration error.

        Args:
            message: Configuration error message
            config_key: Configuration key that caused the error
            config_value: Invalid configuration value
        """
        details = ""
        if config_key:
            details += f"key: {config_key}"
        if config_value:
            if details:
                details += ", "
            details += f"value: {config_value}"

        super().__init__(message, details)
        self.config_key = config_key
        self.config_value = config_value


class ProcessingError(KorekcelError):
    """
    Exception raised for processing errors outside a single submission,
    such as a reference document that cannot be graded against.
    """

    def __init__(self, message: str = "Processing failed", operation: str = "",
                 original_error: str = "") -> None:
        details = ""
        if operation:
            details += f"operation: {operation}"
        if original_error:
            if details:
                details += ", "
            details += f"error: {original_error}"

        super().__init__(message, details)
        self.operation = operation
        self.original_error = original_error


class UnreadableDocumentError(KorekcelError):
    """
    Exception raised when bytes cannot be decoded as a workbook or
    text document container.

    The batch grader turns it into a per-submission failure result.
    """

    def __init__(self, message: str = "Document unreadable", file_name: str = "",
                 expected_format: str = "", original_error: str = "") -> None:
        """
        Initialize unreadable document error.

        Args:
            message: Error message
            file_name: Name of the problematic file
            expected_format: Expected document family or format
            original_error: Message of the underlying decoder error
        """
        details = ""
        if file_name:
            details += f"file: {file_name}"
        if expected_format:
            if details:
                details += ", "
            details += f"expected: {expected_format}"
        if original_error:
            if details:
                details += ", "
            details += f"error: {original_error}"

        super().__init__(message, details)
        self.file_name = file_name
        self.expected_format = expected_format
        self.original_error = original_error


class IdentityError(KorekcelError):
    """
    Exception raised when an identity conflict cannot be resolved
    the way the operator asked, e.g. picking a candidate that does not exist.
    """

    def __init__(self, message: str = "Identity error", file_name: str = "",
                 choice: str = "") -> None:
        details = ""
        if file_name:
            details += f"file: {file_name}"
        if choice:
            if details:
                details += ", "
            details += f"choice: {choice}"

        super().__init__(message, details)
        self.file_name = file_name
        self.choice = choice


def get_error_context(exception: Exception) -> str:
    """
    Get a formatted error context string for logging.

    Args:
        exception: Exception to format

    Returns:
        Formatted error context string
    """
    if isinstance(exception, KorekcelError):
        return str(exception)
    else:
        return f"{type(exception).__name__}: {str(exception)}"


def log_exception(logger, exception: Exception, context: str = "") -> None:
    """
    Log an exception with appropriate level and context.

    Args:
        logger: Logger instance
        exception: Exception to log
        context: Additional context information
    """
    error_message = get_error_context(exception)

    if context:
        full_message = f"{context} - {error_message}"
    else:
        full_message = error_message

    if isinstance(exception, (ValidationError, ConfigurationError, IdentityError,
                              UnreadableDocumentError)):
        logger.warning(full_message)
    else:
        logger.error(full_message)
