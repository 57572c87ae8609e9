"""
Module: ocr.math_scoring

Purpose:
    Pure heuristics that decide how "mathematical" a piece of recognised
    text looks. Kept free of I/O so every regex can be tested against
    literal exam-text fixtures.

Key Functions:
    - score_math_likeness(): Feature-count score in [0, 1]
    - is_plain_prose(): Short phrases made only of common English words
    - is_suspicious(): Structural cues that the primary text is garbled

Dependencies:
    - re (std)

Used By:
    - ocr.math_regions: Block detection
"""

from __future__ import annotations

import re
from typing import Tuple

from gcse_marker.common.thresholds import MATH_SCORING_THRESHOLDS

LETTERS_ONLY_PATTERN = re.compile(r"^[a-zA-Z\s]+$")

COMMON_ENGLISH_WORDS = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "question", "answer", "find", "calculate", "solve", "show", "prove", "given",
})

# Each match of each feature adds one weight step
MATH_FEATURE_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"[=≠≈≤≥]"),  # equality / inequality
    re.compile(r"[+\-×÷*/]"),  # operators
    re.compile(r"\b\d+\b"),  # numbers
    re.compile(r"[()\[\]{}]"),  # brackets
    re.compile(r"\|.*\|"),  # absolute value
    re.compile(r"√|∑|∫|π|θ|λ|α|β|γ|δ|ε|ζ|η|ι|κ|μ|ν|ξ|ο|ρ|σ|τ|υ|φ|χ|ψ|ω"),  # greek / radicals
    re.compile(r"\b\w\^\d"),  # exponents
    re.compile(r"\b\w_\d"),  # subscripts
    re.compile(r"\b(?:sin|cos|tan|log|ln|exp|sqrt|abs|max|min|lim|sum|prod|int)\b"),
    re.compile(r"\b(?:infinity|∞|inf)\b"),
    re.compile(r"\b(?:pi|e|phi|gamma|alpha|beta|theta|lambda|mu|sigma|omega)\b"),
    re.compile(r"\b(?:and|or|not|implies|iff|forall|exists)\b"),
    re.compile(
        r"\b(?:if|then|else|when|where|given|let|assume|suppose|prove|show|find|solve|calculate)\b"
    ),
)

OPERATOR_PATTERN = re.compile(r"[+\-×÷*/=]")
DIGIT_PATTERN = re.compile(r"\d")


def is_plain_prose(text: str) -> bool:
    """
    True for letters-only phrases made entirely of common English words.

    Example:
        >>> is_plain_prose("show the answer")
        True
        >>> is_plain_prose("x and y")
        False
    """
    stripped = text.strip()
    if not LETTERS_ONLY_PATTERN.match(stripped):
        return False
    if len(text) <= MATH_SCORING_THRESHOLDS.common_word_min_length:
        return False
    return all(word in COMMON_ENGLISH_WORDS for word in stripped.lower().split())


def score_math_likeness(text: str) -> float:
    """
    Score how mathematical text looks.

    Every match of every feature pattern adds 0.1; the total is capped
    at 1. Empty text and plain common-English phrases score 0.

    Example:
        >>> score_math_likeness("")
        0.0
        >>> score_math_likeness("x = 2")
        0.2
    """
    t = text or ""
    if not t.strip():
        return 0.0
    if is_plain_prose(t):
        return 0.0

    matches = sum(len(pattern.findall(t)) for pattern in MATH_FEATURE_PATTERNS)
    return round(min(1.0, matches * MATH_SCORING_THRESHOLDS.feature_weight), 4)


def is_suspicious(text: str) -> bool:
    """
    Structural cues that the primary recognizer mangled an expression.

    A lone "|" (half an absolute value or a misread 1/l), or a run of
    operators with no digits at all.
    """
    t = text or ""
    pipes = t.count("|")
    operators = len(OPERATOR_PATTERN.findall(t))
    has_digits = bool(DIGIT_PATTERN.search(t))
    return pipes == 1 or (
        operators > MATH_SCORING_THRESHOLDS.suspicious_operator_count and not has_digits
    )
