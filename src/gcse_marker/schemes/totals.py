"""
Module: schemes.totals

Purpose:
    Reads a question's printed mark total from raw page text, e.g.
    "(Total for Question 4 is 3 marks)" or "[5 marks]".

Key Functions:
    - estimate_max_marks(): Question-targeted search first, then loose patterns

Dependencies:
    - re (std)

Used By:
    - schemes.generic: Rubric sizing
    - schemes.orchestrator
"""

from __future__ import annotations

import re
from typing import Optional

DEFAULT_MAX_ESTIMATED_MARKS = 50

# Tried in order; the first in-range value wins
LOOSE_TOTAL_PATTERNS = (
    re.compile(r"\(\s*Total\s*for\s*Question\s*\d+\s*is\s*(\d+)\s*marks?\s*\)", re.IGNORECASE),
    re.compile(r"\(\s*Total\s*(\d+)\s*marks?\s*\)", re.IGNORECASE),
    re.compile(r"\[\s*(\d+)\s*marks?\s*\]", re.IGNORECASE),
    re.compile(r"Total\s*:?\s*(\d+)\s*marks?", re.IGNORECASE),
    re.compile(r"\(\s*(\d+)\s*marks?\s*\)", re.IGNORECASE),
)


def _targeted_pattern(question_number: str) -> re.Pattern:
    return re.compile(
        rf"\(\s*Total\s*for\s*Question\s*{re.escape(question_number)}\s*is\s*(\d+)\s*marks?\s*\)",
        re.IGNORECASE,
    )


def _in_range(value: str, upper: int) -> Optional[int]:
    marks = int(value)
    return marks if 0 < marks <= upper else None


def estimate_max_marks(
    page_text: Optional[str],
    question_number: Optional[str] = None,
    upper: int = DEFAULT_MAX_ESTIMATED_MARKS,
) -> int:
    """
    Printed total for a question, or 0 when none can be read.

    Args:
        page_text: Raw text of the page(s) the question is on
        question_number: Base question number used for the targeted search
        upper: Largest plausible total; larger values are ignored

    Returns:
        Total in 1..upper, or 0

    Examples:
        >>> estimate_max_marks("... (Total for Question 4 is 3 marks)", "4")
        3
        >>> estimate_max_marks("blah (Total 4 marks)")
        4
        >>> estimate_max_marks("[120 marks]")
        0
    """
    if not page_text:
        return 0

    if question_number:
        for match in _targeted_pattern(question_number).finditer(page_text):
            marks = _in_range(match.group(1), upper)
            if marks:
                return marks

    for pattern in LOOSE_TOTAL_PATTERNS:
        match = pattern.search(page_text)
        if match:
            marks = _in_range(match.group(1), upper)
            if marks:
                return marks
    return 0
