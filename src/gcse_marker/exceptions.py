"""
Module: exceptions

Purpose:
    Exception hierarchy for the marking pipeline. Only total recognition
    failure and total parse failure reach the caller; everything else is
    recovered inside the component that raised it.

Key Classes:
    - MarkingPipelineError: Base class for all pipeline errors
    - OCRFailure: Every recognition pass and the math fallback failed
    - MarkingParseFailure: Marking model output could not be repaired
    - MathRecognitionError: A math recognizer call failed (recoverable)
    - SchemeValidationError: A record failed schema validation

Used By:
    - ocr.orchestrator, ocr.math_regions
    - results.parser, results.repair
    - core.schemas.validator
    - pipeline
"""

from __future__ import annotations

from typing import List, Optional


class MarkingPipelineError(Exception):
    """Base error for the marking pipeline."""
    pass


class OCRFailure(MarkingPipelineError):
    """All recognition passes failed and the math-only fallback failed too."""
    pass


class MathRecognitionError(MarkingPipelineError):
    """A single math recognizer call failed."""
    pass


class MarkingParseFailure(MarkingPipelineError):
    """
    Marking model output could not be parsed after every repair stage.

    Scoped to one question: the pipeline records it and carries on with
    the remaining questions of the submission.
    """

    def __init__(
        self,
        message: str,
        question_number: Optional[str] = None,
        raw_excerpt: str = "",
    ):
        super().__init__(message)
        self.question_number = question_number
        self.raw_excerpt = raw_excerpt[:500]


class SchemeValidationError(MarkingPipelineError):
    """Raised when a corpus record or model response fails schema validation."""

    def __init__(self, message: str, path: str = "", errors: List[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []
