"""JSON schema validation for model responses and corpus records."""

from .validator import validate_marking_response, validate_exam_paper

__all__ = ["validate_marking_response", "validate_exam_paper"]
