"""
Module: grading.boundaries

Purpose:
    Pure helpers for grade resolution: name normalisation, exam code
    splitting, boundary table selection and grade lookup.

Key Functions:
    - normalize_subject_name(): "GCSE Mathematics" -> "mathematics"
    - normalize_tier(): "Higher Tier" -> "higher"
    - paper_code_from_exam_code(): "1MA1/2H" -> "2H"
    - subject_code_from_exam_code(): "1MA1/2H" -> "1MA1"
    - infer_subject_from_exam_code(): "1MA1/2H" -> "MATHEMATICS"
    - select_boundary_type(): Paper-Specific / Overall-Total / error
    - find_grade(): Highest grade whose boundary the score reaches

Used By:
    - grading.resolver
"""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

from gcse_marker.core.models import OVERALL_TOTAL, PAPER_SPECIFIC, TierBoundaries
from gcse_marker.core.models.grades import sorted_grades

QUALIFICATION_WORDS_PATTERN = re.compile(
    r"\b(gcse|a-level|alevel|as-level|a2-level|igcse|international|advanced)\b"
)
WHITESPACE_PATTERN = re.compile(r"\s+")
TIER_SUFFIX = " tier"

# Exam code fragments -> subject, for papers whose record has no subject
SUBJECT_CODE_HINTS = (
    ("MA1", "MATHEMATICS"),
    ("PH0", "PHYSICS"),
    ("CH0", "CHEMISTRY"),
)

SINGLE_PAPER_ONLY_ERROR = (
    "Overall-Total boundaries require combined scores from all papers. "
    "Single paper scores should use Paper-Specific boundaries."
)


def normalize_subject_name(subject: Optional[str]) -> str:
    """
    Lowercase, drop qualification words and collapse whitespace.

    Examples:
        >>> normalize_subject_name("GCSE  Mathematics")
        'mathematics'
    """
    if not subject:
        return ""
    text = QUALIFICATION_WORDS_PATTERN.sub("", subject.lower())
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def normalize_tier(tier: Optional[str]) -> str:
    """
    Lowercase and drop a trailing " tier".

    Examples:
        >>> normalize_tier("Foundation Tier")
        'foundation'
    """
    if not tier:
        return ""
    normalized = tier.lower().strip()
    if normalized.endswith(TIER_SUFFIX):
        return normalized[: -len(TIER_SUFFIX)].strip()
    return normalized


def _split_exam_code(exam_code: Optional[str]) -> Optional[Tuple[str, str]]:
    if not exam_code or "/" not in exam_code:
        return None
    parts = exam_code.split("/")
    return parts[0].strip(), parts[-1].strip()


def paper_code_from_exam_code(exam_code: Optional[str]) -> Optional[str]:
    """Text after the last "/" ("8300/1H" -> "1H"); None without a "/"."""
    parts = _split_exam_code(exam_code)
    return parts[1] if parts else None


def subject_code_from_exam_code(exam_code: Optional[str]) -> Optional[str]:
    """Text before the first "/" ("8300/1H" -> "8300"); None without a "/"."""
    parts = _split_exam_code(exam_code)
    return parts[0] if parts else None


def infer_subject_from_exam_code(exam_code: Optional[str]) -> str:
    for fragment, subject in SUBJECT_CODE_HINTS:
        if fragment in (exam_code or ""):
            return subject
    return ""


def select_boundary_type(
    tier: TierBoundaries,
    total_marks: float,
    single_paper_limit: int = 100,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Decide which boundary table applies.

    Paper-specific wins when declared, or when papers exist and the total
    looks like one paper. Overall-total is used when declared or when the
    total looks combined; a single-paper total then falls back to paper
    tables, or is an error without them.

    Returns:
        (boundary_type, error): error is set when no table can be used
    """
    is_single_paper = total_marks < single_paper_limit

    if tier.boundaries_type == PAPER_SPECIFIC or (tier.has_paper_specific and is_single_paper):
        return PAPER_SPECIFIC, None
    if tier.boundaries_type == OVERALL_TOTAL or (tier.has_overall_total and not is_single_paper):
        if is_single_paper and tier.has_paper_specific:
            return PAPER_SPECIFIC, None
        if is_single_paper:
            return OVERALL_TOTAL, SINGLE_PAPER_ONLY_ERROR
        return OVERALL_TOTAL, None
    return None, "Unknown boundary type"


def find_grade(score: float, boundaries: Dict[str, float]) -> Optional[str]:
    """
    Highest grade whose boundary the score reaches, or None (ungraded).

    Examples:
        >>> find_grade(65, {"9": 70, "8": 60, "7": 50})
        '8'
        >>> find_grade(45, {"9": 70, "8": 60, "7": 50}) is None
        True
    """
    for grade, boundary in sorted_grades(boundaries):
        if score >= boundary:
            return grade
    return None
