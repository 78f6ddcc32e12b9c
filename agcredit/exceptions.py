"""
Custom exceptions for the credit statement engine.

Provides a hierarchy of exceptions with error codes for consistent error handling.
Only missing content and invalid options reach callers; malformed input is
degraded to an empty row table by the orchestrator.
"""
from typing import Any, Dict, Optional


class AgCreditError(Exception):
    """
    Base exception for all engine errors.

    Attributes:
        error_code: Unique error code (e.g., ACE-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "ACE-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Input Errors (ACE-1XX)
class MissingContentError(AgCreditError):
    """Statement content was not supplied at all."""
    error_code = "ACE-100"
    http_status = 400

    def __init__(self, statement: str = "statement", **kwargs):
        message = f"No content supplied for {statement}; upload a file before analysis"
        super().__init__(message, details={"statement": statement}, **kwargs)


class MalformedInputError(AgCreditError):
    """Content is neither a JSON row table nor line-splittable text."""
    error_code = "ACE-101"
    http_status = 422

    def __init__(self, content_type: str, **kwargs):
        message = f"Cannot read statement content of type {content_type}"
        super().__init__(message, details={"content_type": content_type}, **kwargs)


# Configuration Errors (ACE-2XX)
class InvalidOptionsError(AgCreditError):
    """Engine options are out of range."""
    error_code = "ACE-200"
    http_status = 400

    def __init__(self, option: str, value: Any, reason: str, **kwargs):
        message = f"Invalid engine option {option}={value!r}: {reason}"
        super().__init__(message, details={"option": option, "value": value}, **kwargs)


# Combination Errors (ACE-3XX)
class CombinedAnalysisError(AgCreditError):
    """One side of a combined income/balance analysis failed."""
    error_code = "ACE-300"
    http_status = 422

    def __init__(self, statement: str, cause: str, **kwargs):
        message = f"Combined analysis failed while extracting {statement}: {cause}"
        super().__init__(message, details={"statement": statement, "cause": cause}, **kwargs)
