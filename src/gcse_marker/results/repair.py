"""
Module: results.repair

Purpose:
    Repairs the malformed JSON that marking models commonly produce.
    Each stage is tried in order and parsing is re-attempted after it;
    valid input is returned by the first stage untouched.

Repair Stages:
    1. Direct parse
    2. Missing closing brace between two annotation objects
    3. Unescaped backslashes (LaTeX such as "\\frac")
    4. Aggressive escape: double every backslash, restore the standard
       escapes, then re-apply the brace fix

Key Functions:
    - repair_json(): Raw JSON text -> parsed value, or MarkingParseFailure
    - fix_missing_braces(): Stage 2 on its own
    - fix_unescaped_backslashes(): Stage 3 on its own

Used By:
    - results.parser
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, List, Optional, Tuple

from gcse_marker.exceptions import MarkingParseFailure

logger = logging.getLogger(__name__)

# "field": "value"\n   ,\n   {   -> the object before the comma was never closed
MISSING_BRACE_PATTERN = re.compile(r'"([^"]+)":\s*"((?:[^"\\]|\\.)*)"\s*\n\s*,\s*\n\s*\{')
COMMA_INDENT_PATTERN = re.compile(r"\n(\s*),\s*\n")
LONE_BACKSLASH_PATTERN = re.compile(r'\\(?![\\"/nrtbfu])')
DEFAULT_INDENT = "    "

# Standard escapes restored after every backslash was doubled
_RESTORED_ESCAPES = (
    ("\\\\n", "\\n"),
    ('\\\\"', '\\"'),
    ("\\\\r", "\\r"),
    ("\\\\t", "\\t"),
    ("\\\\b", "\\b"),
    ("\\\\f", "\\f"),
)


def fix_missing_braces(text: str) -> str:
    """Close an object left open before the next `, {` in an array."""

    def close_object(match: re.Match) -> str:
        indent_match = COMMA_INDENT_PATTERN.search(match.group(0))
        indent = indent_match.group(1) if indent_match else DEFAULT_INDENT
        return f'"{match.group(1)}": "{match.group(2)}"\n{indent}}},\n{indent}{{'

    return MISSING_BRACE_PATTERN.sub(close_object, text)


def fix_unescaped_backslashes(text: str) -> str:
    """Escape backslashes that do not start a valid JSON escape."""
    return LONE_BACKSLASH_PATTERN.sub(r"\\\\", text)


def aggressive_escape(text: str) -> str:
    """Double every backslash, then restore the common escapes."""
    escaped = text.replace("\\", "\\\\")
    for doubled, original in _RESTORED_ESCAPES:
        escaped = escaped.replace(doubled, original)
    return fix_missing_braces(escaped)


def _try_parse(text: str) -> Tuple[Optional[Any], Optional[str]]:
    try:
        return json.loads(text), None
    except json.JSONDecodeError as e:
        return None, str(e)


def repair_json(text: str, question_number: Optional[str] = None) -> Any:
    """
    Parse model JSON, applying repairs until one succeeds.

    Args:
        text: JSON text (already extracted from any code fence)
        question_number: Used to scope the failure

    Returns:
        Parsed JSON value

    Raises:
        MarkingParseFailure: If every repair stage fails

    Example:
        >>> repair_json('{"annotations": []}')
        {'annotations': []}
    """
    stages: List[Tuple[str, Callable[[str], str]]] = [
        ("direct", lambda t: t),
        ("brace fix", fix_missing_braces),
        ("backslash fix", lambda t: fix_unescaped_backslashes(fix_missing_braces(t))),
        ("aggressive escape", aggressive_escape),
    ]

    errors: List[str] = []
    for name, repair in stages:
        value, error = _try_parse(repair(text))
        if error is None:
            if name != "direct":
                logger.info(
                    f"Repaired marking output with {name}",
                    extra={"question_number": question_number},
                )
            return value
        errors.append(f"{name}: {error}")
        logger.debug(f"JSON {name} failed: {error}")

    label = f"Q{question_number}" if question_number else "marking output"
    logger.error(f"Could not repair {label}: {errors[-1]}", extra={"question_number": question_number})
    raise MarkingParseFailure(
        f"Unparseable marking output for {label} ({'; '.join(errors)})",
        question_number=question_number,
        raw_excerpt=text,
    )
