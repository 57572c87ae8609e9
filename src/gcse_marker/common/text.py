"""
Module: common.text

Purpose:
    Question-number and label normalisation shared by matching, scheme
    orchestration and result parsing.

Key Functions:
    - base_question_number(): "12ii" -> "12"
    - sub_question_part(): "12(ii)" -> "ii"
    - normalize_sub_question_part(): "(I)" -> "i"
    - normalize_label(): "2 (a)" -> "2a"
    - short_subject_name(): "Mathematics" -> "Maths"

Dependencies:
    - re (std)

Used By:
    - matching.question_matcher
    - schemes.grouping, schemes.normalize
    - results.sanitize
"""

from __future__ import annotations

import re
from typing import Optional

LEADING_DIGITS_PATTERN = re.compile(r"^\d+")
LABEL_NOISE_PATTERN = re.compile(r"[\s()\[\]]+")
QUESTION_PREFIX_PATTERN = re.compile(r"^\s*(?:q(?:uestion)?\.?\s*)", re.IGNORECASE)

SHORT_SUBJECT_NAMES = {
    "mathematics": "Maths",
    "further mathematics": "Further Maths",
    "additional mathematics": "Add Maths",
    "statistics": "Stats",
    "combined science": "Comb Sci",
    "computer science": "CS",
    "english language": "Eng Lang",
    "english literature": "Eng Lit",
}


def base_question_number(question_number: Optional[str]) -> str:
    """
    Extract the leading question number.

    Examples:
        >>> base_question_number("12ii")
        '12'
        >>> base_question_number("Q12ii")
        '12'
        >>> base_question_number(None)
        ''
    """
    if not question_number:
        return ""
    text = QUESTION_PREFIX_PATTERN.sub("", str(question_number))
    match = LEADING_DIGITS_PATTERN.match(text)
    return match.group(0) if match else ""


def normalize_sub_question_part(part: Optional[str]) -> str:
    """Strip brackets and spaces from a sub-question part and lowercase it."""
    if not part or not isinstance(part, str):
        return ""
    return LABEL_NOISE_PATTERN.sub("", part.strip()).lower()


def sub_question_part(question_number: Optional[str]) -> str:
    """
    Extract the sub-question part of a label.

    Examples:
        >>> sub_question_part("2a")
        'a'
        >>> sub_question_part("12(ii)")
        'ii'
        >>> sub_question_part("7")
        ''
    """
    if not question_number:
        return ""
    text = QUESTION_PREFIX_PATTERN.sub("", str(question_number)).strip()
    return normalize_sub_question_part(LEADING_DIGITS_PATTERN.sub("", text))


def normalize_label(label: Optional[str]) -> str:
    """Canonical form of a full label: "Q2 (a)" -> "2a"."""
    if not label:
        return ""
    base = base_question_number(label)
    return f"{base}{sub_question_part(label)}"


def is_sub_question(label: Optional[str]) -> bool:
    """True when the label carries a part after the question number."""
    return bool(base_question_number(label)) and bool(sub_question_part(label))


def short_subject_name(qualification: Optional[str]) -> str:
    """Short display name for a qualification/subject, falling back to the input."""
    if not qualification:
        return ""
    key = re.sub(r"\s+", " ", qualification.strip().lower())
    key = re.sub(r"^(gcse|igcse|a-level|as-level)\s+", "", key)
    return SHORT_SUBJECT_NAMES.get(key, qualification.strip())
