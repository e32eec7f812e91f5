"""
CrossDoc Custom Exceptions

This module defines all custom exceptions used throughout the engine.
None of them escape CrossDocEngine.run: they are converted to issues or
logged at the boundary where they are caught.
"""

from typing import Any


class CrossDocError(Exception):
    """Base exception for all CrossDoc errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(CrossDocError):
    """Error in engine configuration."""

    pass


# =============================================================================
# INPUT ERRORS
# =============================================================================


class StructuralError(CrossDocError):
    """A document is fundamentally unusable."""

    def __init__(self, document: str, message: str, paths: list[str] | None = None):
        super().__init__(message, {"document": document, "paths": paths or []})
        self.document = document


class ExtractionError(CrossDocError):
    """Building the comparable fields of a document failed."""

    def __init__(self, document: str, message: str):
        super().__init__(message, {"document": document})
        self.document = document


# =============================================================================
# RULE ERRORS
# =============================================================================


class RuleEvaluationError(CrossDocError):
    """A single rule failed while evaluating a bundle."""

    def __init__(self, rule_name: str, cause: BaseException):
        super().__init__(
            f"Rule '{rule_name}' failed: {type(cause).__name__}: {cause}",
            {"rule": rule_name, "error_type": type(cause).__name__},
        )
        self.rule_name = rule_name
        self.cause = cause


class SimilarityError(CrossDocError):
    """Base error for similarity scoring."""

    pass


class DegenerateTextError(SimilarityError):
    """Text has no comparable content (empty or punctuation only)."""

    def __init__(self, text: str):
        super().__init__("Cannot score degenerate text", {"text": text})
