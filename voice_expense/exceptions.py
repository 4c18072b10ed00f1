"""
Exceptions for the voice expense parser.

Transcript problems are never raised; they come back as ``ParseError`` values.
These exceptions cover configuration mistakes and explicit unwrapping.
"""
from typing import Any, Dict, Optional


class ExpenseParserError(Exception):
    """Base exception for all voice expense parser errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ExpenseParserError):
    """Raised when rule files or parser settings are invalid."""
    pass


class TranscriptRejectedError(ExpenseParserError):
    """Raised by ``ParseOutcome.unwrap()`` when parsing produced an error."""

    def __init__(self, error):
        super().__init__(error.message, {'kind': error.kind.value})
        self.error = error
