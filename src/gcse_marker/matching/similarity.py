"""
Module: matching.similarity

Purpose:
    Fuzzy similarity between a question read from a student's page and a
    reference question. Three components are combined: key-phrase
    overlap, token similarity with edit-distance tolerance, and an
    order-preservation score.

Key Functions:
    - normalize_question_text(): Lowercase, strip diagram notes and punctuation
    - extract_key_phrases(): Instructional phrases and number+unit patterns
    - key_phrase_similarity(): Greedy one-to-one phrase overlap
    - levenshtein(): Edit distance
    - token_alignment(): Exact-then-fuzzy token matching
    - order_score(): Longest consecutive in-order run
    - question_similarity(): Weighted combination with robustness floor

Dependencies:
    - re (std)

Used By:
    - matching.question_matcher
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from gcse_marker.common.thresholds import SIMILARITY_THRESHOLDS

BRACKETED_NOTE_PATTERN = re.compile(r"\[.*?\]")
DIAGRAM_DESCRIPTION_PATTERN = re.compile(r"diagram description.*?\.")
SUPPLEMENTARY_INFO_PATTERN = re.compile(r"supplementary info.*?\.")
PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")
WHITESPACE_PATTERN = re.compile(r"\s+")

INSTRUCTION_PHRASE_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"work out how much"),
    re.compile(r"work out the"),
    re.compile(r"find the"),
    re.compile(r"calculate the"),
    re.compile(r"show that"),
    re.compile(r"prove that"),
    re.compile(r"solve the"),
    re.compile(r"write down"),
    re.compile(r"draw a"),
    re.compile(r"complete the"),
)

NUMBER_UNIT_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"\d+\s*m²"),
    re.compile(r"\d+\s*£"),
    re.compile(r"\d+\s*pounds"),
    re.compile(r"\d+\s*per\s+\w+"),
    re.compile(r"\d+\s*bags"),
    re.compile(r"\d+\s*seeds"),
)


@dataclass(frozen=True)
class SimilarityBreakdown:
    """Component scores behind one similarity value."""
    phrase: float
    word: float
    order: float
    combined: float

    @property
    def score(self) -> float:
        return max(self.combined, self.word, self.order)


def normalize_question_text(text: str) -> str:
    """
    Normalise question text for comparison.

    Example:
        >>> normalize_question_text("Work out the area. [Diagram: triangle]")
        'work out the area'
    """
    t = (text or "").lower()
    t = BRACKETED_NOTE_PATTERN.sub("", t)
    t = DIAGRAM_DESCRIPTION_PATTERN.sub("", t)
    t = SUPPLEMENTARY_INFO_PATTERN.sub("", t)
    t = PUNCTUATION_PATTERN.sub("", t)
    t = WHITESPACE_PATTERN.sub(" ", t)
    return t.strip()


def extract_key_phrases(normalized_text: str) -> List[str]:
    """
    Instructional phrases followed by number+unit phrases, in pattern order.

    Example:
        >>> extract_key_phrases("work out the cost of 3 bags at 2 per bag")
        ['work out the', '3 bags', '2 per bag']
    """
    phrases: List[str] = []
    for pattern in INSTRUCTION_PHRASE_PATTERNS + NUMBER_UNIT_PATTERNS:
        phrases.extend(pattern.findall(normalized_text))
    return [p.lower().strip() for p in phrases]


def key_phrase_similarity(phrases1: Sequence[str], phrases2: Sequence[str]) -> float:
    """
    Greedy one-to-one exact phrase matches over the longer list's length.

    Both empty scores 1.0 (nothing to disagree on); exactly one empty
    scores 0.0.
    """
    if not phrases1 and not phrases2:
        return 1.0
    if not phrases1 or not phrases2:
        return 0.0

    used = set()
    matched = 0
    for phrase in phrases1:
        for i, candidate in enumerate(phrases2):
            if i not in used and phrase == candidate:
                used.add(i)
                matched += 1
                break
    return matched / max(len(phrases1), len(phrases2))


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (single-row dynamic programming)."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    row = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        prev = row[0]
        row[0] = i
        for j in range(1, len(b) + 1):
            temp = row[j]
            cost = 0 if a[i - 1] == b[j - 1] else 1
            row[j] = min(row[j] + 1, row[j - 1] + 1, prev + cost)
            prev = temp
    return row[len(b)]


def token_alignment(words1: Sequence[str], words2: Sequence[str]) -> List[Optional[int]]:
    """
    Match each word of words1 to an unused word of words2.

    An exact match is tried first; otherwise the first unused word within
    edit distance floor(max_len / 5) is taken.

    Returns:
        For each word in words1, the matched index in words2 or None
    """
    divisor = SIMILARITY_THRESHOLDS.fuzzy_length_divisor
    used = set()
    alignment: List[Optional[int]] = []

    for word in words1:
        match: Optional[int] = None
        for j, candidate in enumerate(words2):
            if j not in used and word == candidate:
                match = j
                break
        if match is None:
            for j, candidate in enumerate(words2):
                if j in used:
                    continue
                allowance = max(len(word), len(candidate)) // divisor
                if levenshtein(word, candidate) <= allowance:
                    match = j
                    break
        if match is not None:
            used.add(match)
        alignment.append(match)
    return alignment


def order_score(alignment: Sequence[Optional[int]], total_words: int) -> float:
    """Longest run of consecutive in-order matches divided by total_words."""
    if total_words == 0:
        return 0.0
    longest = 0
    current = 0
    prev: Optional[int] = None
    for j in alignment:
        if j is None:
            current = 0
            prev = None
            continue
        current = current + 1 if prev is not None and j == prev + 1 else 1
        longest = max(longest, current)
        prev = j
    return longest / total_words


def similarity_breakdown(text1: str, text2: str) -> SimilarityBreakdown:
    """Component scores for two raw question texts."""
    norm1 = normalize_question_text(text1)
    norm2 = normalize_question_text(text2)
    if norm1 == norm2:
        return SimilarityBreakdown(1.0, 1.0, 1.0, 1.0)

    phrase = key_phrase_similarity(extract_key_phrases(norm1), extract_key_phrases(norm2))

    words1 = norm1.split(" ") if norm1 else []
    words2 = norm2.split(" ") if norm2 else []
    total_words = max(len(words1), len(words2))
    alignment = token_alignment(words1, words2)
    matched = sum(1 for j in alignment if j is not None)
    word = matched / total_words if total_words else 0.0
    order = order_score(alignment, total_words)

    weights = SIMILARITY_THRESHOLDS
    combined = (
        phrase * weights.phrase_weight
        + word * weights.word_weight
        + order * weights.order_weight
    )
    return SimilarityBreakdown(phrase, word, order, combined)


def question_similarity(text1: str, text2: str) -> float:
    """
    Similarity of two question texts in [0, 1].

    The final score is the maximum of the weighted combination and the
    raw token and order scores, so one degenerate component cannot drag
    a near-identical pair below threshold.

    Example:
        >>> question_similarity("Work out the area of the triangle.",
        ...                     "work out the area of the triangle")
        1.0
    """
    if not text1 or not text2:
        return 0.0
    return similarity_breakdown(text1, text2).score
