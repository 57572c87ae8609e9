"""
Schema Validation Utilities

Validates JSON records against the bundled schemas.

Two record families cross a trust boundary:
- Marking model responses (untrusted, may be any shape)
- Exam paper corpus records (reference data, must be well formed)

`validate_marking_response()` is lenient by default: it returns the list of
problems so the parser can log them and keep going. `validate_exam_paper()`
fails fast because a broken corpus record would silently poison matching.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List

import jsonschema

from gcse_marker.exceptions import SchemeValidationError

# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


def _collect_errors(data: Any, schema_name: str) -> List[str]:
    validator = jsonschema.Draft7Validator(_load_schema(schema_name))
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        location = ".".join(str(p) for p in error.absolute_path) or "<root>"
        errors.append(f"{location}: {error.message}")
    return errors


def validate_marking_response(data: Any, *, strict: bool = False) -> List[str]:
    """
    Validate a parsed marking model response.

    Args:
        data: Parsed JSON value
        strict: If True, raise on the first problem instead of returning them

    Returns:
        List of problem descriptions (empty when valid)

    Raises:
        SchemeValidationError: In strict mode when the response is invalid
    """
    errors = _collect_errors(data, "marking_response")
    if errors and strict:
        raise SchemeValidationError(
            f"Marking response failed validation: {errors[0]}",
            path=errors[0].split(":", 1)[0],
            errors=errors,
        )
    return errors


def validate_exam_paper(data: dict[str, Any]) -> None:
    """
    Validate an exam paper corpus record.

    Raises:
        SchemeValidationError: If the record is invalid
    """
    if not isinstance(data, dict):
        raise SchemeValidationError(
            f"Exam paper record must be an object, got {type(data).__name__}"
        )

    errors = _collect_errors(data, "exam_paper")
    if errors:
        raise SchemeValidationError(
            f"Exam paper record failed validation: {errors[0]}",
            path=errors[0].split(":", 1)[0],
            errors=errors,
        )

    # Questions must carry a number whichever container shape is used
    questions = data["questions"]
    if isinstance(questions, list):
        for i, question in enumerate(questions):
            if not isinstance(question, dict) or not str(question.get("question_number", "")).strip():
                raise SchemeValidationError(
                    "Question entry is missing question_number",
                    path=f"questions[{i}]",
                )
