"""
Utility functions and helpers for the KoreKcel grader.

This package provides configuration management, input validation
and exception handling.
"""

from .config import Config, Settings
from .validators import InputValidator
from .exceptions import (
    KorekcelError,
    ValidationError,
    ConfigurationError,
    ProcessingError,
    UnreadableDocumentError,
    IdentityError,
)

__all__ = [
    "Config",
    "Settings",
    "InputValidator",
    "KorekcelError",
    "ValidationError",
    "ConfigurationError",
    "ProcessingError",
    "UnreadableDocumentError",
    "IdentityError",
]
