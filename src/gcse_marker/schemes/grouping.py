"""
Module: schemes.grouping

Purpose:
    Groups detected questions by base question number and builds the
    text each group is matched with.

Key Functions:
    - contextualise(): Prepend parent text to sub-question text
    - combine_anchor_text(): Dense group query from unique fragments
    - group_questions(): DetectedQuestion list -> QuestionGroup list

Used By:
    - schemes.orchestrator
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from gcse_marker.common.text import base_question_number, is_sub_question
from gcse_marker.core.models import DetectedQuestion

MIN_FRAGMENT_CHARS = 5
UNNUMBERED_GROUP = "General"
PARENT_PREFIX_CHARS = 30


@dataclass(frozen=True)
class QuestionGroup:
    """
    Questions sharing a base number, matched as one unit.

    Attributes:
        base_number: Leading digits ("2"); empty for unnumbered questions
        questions: Members with contextualised text, in input order
        anchor_text: Combined query text for detection
    """

    base_number: str
    questions: Tuple[DetectedQuestion, ...]
    anchor_text: str

    @property
    def key(self) -> str:
        return self.base_number or UNNUMBERED_GROUP

    @property
    def labels(self) -> List[str]:
        return [q.question_number for q in self.questions]

    @property
    def has_sub_questions(self) -> bool:
        return any(is_sub_question(q.question_number) for q in self.questions)

    @property
    def number_hint(self) -> Optional[str]:
        return self.base_number or None

    @property
    def source_pages(self) -> Tuple[int, ...]:
        pages = sorted({p for q in self.questions for p in q.source_pages})
        return tuple(pages)


def contextualise(text: str, parent_text: Optional[str]) -> str:
    """
    Prefix sub-question text with its parent's text.

    Skipped when the parent text is the text itself or its opening is
    already contained in it.
    """
    if not parent_text or parent_text.strip() == text.strip():
        return text
    if parent_text.lower()[:PARENT_PREFIX_CHARS] in text.lower():
        return text
    return f"{parent_text}\n\n{text}"


def combine_anchor_text(fragments: Sequence[str], tail_chars: int = 40) -> str:
    """
    Combine fragments longest first, skipping ones already covered.

    A fragment is appended only when its last `tail_chars` characters do
    not already occur in the combined text (case-insensitive); fragments
    shorter than 5 characters are ignored.

    Example:
        >>> combine_anchor_text(["100 people were asked. Complete the Venn diagram",
        ...                      "100 people were asked."])
        '100 people were asked. Complete the Venn diagram'
    """
    unique: List[str] = []
    for fragment in fragments:
        cleaned = (fragment or "").strip()
        if cleaned and cleaned not in unique:
            unique.append(cleaned)
    if not unique:
        return ""

    ordered = sorted(unique, key=len, reverse=True)
    anchor = ordered[0]
    for fragment in ordered[1:]:
        if len(fragment) < MIN_FRAGMENT_CHARS:
            continue
        tail = fragment[-tail_chars:].lower().strip()
        if tail not in anchor.lower():
            anchor += f"\n\n{fragment}"
    return anchor


def group_questions(
    questions: Sequence[DetectedQuestion],
    tail_chars: int = 40,
) -> List[QuestionGroup]:
    """
    Group questions by base number, preserving first-seen group order.

    The main question's text (or, without one, the first text seen for
    the base number) is the parent context for that group's sub-questions.
    """
    parent_texts: Dict[str, str] = {}
    for question in questions:
        if question.text and not is_sub_question(question.question_number):
            parent_texts.setdefault(base_question_number(question.question_number), question.text)
    for question in questions:
        if question.text:
            parent_texts.setdefault(base_question_number(question.question_number), question.text)

    grouped: Dict[str, List[DetectedQuestion]] = {}
    for question in questions:
        base = base_question_number(question.question_number)
        text = question.text or ""
        if is_sub_question(question.question_number):
            text = contextualise(text, parent_texts.get(base))
        grouped.setdefault(base, []).append(replace(question, text=text))

    return [
        QuestionGroup(
            base_number=base,
            questions=tuple(members),
            anchor_text=combine_anchor_text([q.text for q in members], tail_chars),
        )
        for base, members in grouped.items()
    ]
