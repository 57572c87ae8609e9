"""
Module: schemes

Purpose:
    Marking scheme models. Raw scheme records arrive in several shapes
    (flat mark list, composite "[a] M1" list, per-sub-question mapping).
    The shape is resolved once into a SchemeShape variant and then into
    one canonical NormalizedScheme that every downstream stage uses.

Key Classes:
    - SchemeMark: One mark code with its criterion and guidance
    - FlatScheme / CompositeScheme / PerSubQuestionScheme: SchemeShape variants
    - NormalizedScheme: Canonical scheme for one base question

Key Functions:
    - mark_code_value(): Numeric value of a code ("A2" -> 2, "M0" -> 0)

Dependencies:
    - dataclasses (std)
    - re (std)

Used By:
    - schemes.normalize: Builds shapes and normalized schemes
    - schemes.generic: Builds generic rubrics
    - results.scoring: Mark limits and budgets
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple, Union

MARK_CODE_PATTERN = re.compile(r"^([BMAPC])(\d+)$", re.IGNORECASE)
TRAILING_DIGITS_PATTERN = re.compile(r"(\d+)$")
PART_LABEL_PATTERN = re.compile(r"^\[([^\]]+)\]\s*(.*)$")

SchemeKind = Literal["flat", "composite", "per_sub_question", "generic"]


def mark_code_value(code: str) -> int:
    """
    Numeric value carried by a mark code.

    Examples:
        >>> mark_code_value("A2")
        2
        >>> mark_code_value("M0")
        0
        >>> mark_code_value("[a] B1")
        1
        >>> mark_code_value("oe")
        0
    """
    bare = strip_part_label(code)
    match = TRAILING_DIGITS_PATTERN.search(bare)
    return int(match.group(1)) if match else 0


def strip_part_label(code: str) -> str:
    """Remove a leading "[a]" part label from a composite code."""
    match = PART_LABEL_PATTERN.match(code.strip())
    return match.group(2).strip() if match else code.strip()


@dataclass(frozen=True, slots=True)
class SchemeMark:
    """
    One entry of a marking scheme.

    Attributes:
        mark: Code such as "M1", "A2", "B1", "M0" or a bare number "2"
        answer: Criterion text the mark is awarded for
        comments: Free-form examiner guidance

    Example:
        >>> SchemeMark("M1", "correct method").value
        1
    """

    mark: str
    answer: str = ""
    comments: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.mark, str) or not self.mark.strip():
            raise ValueError(f"Mark code must be a non-empty string: {self.mark!r}")

    @property
    def code(self) -> str:
        """Code without a composite part label."""
        return strip_part_label(self.mark)

    @property
    def value(self) -> int:
        return mark_code_value(self.mark)

    @property
    def is_zero_value(self) -> bool:
        """Negative/ungranted variants such as "M0" or "B0"."""
        return self.code.endswith("0") and self.value == 0

    @property
    def is_numeric(self) -> bool:
        """Bare numeric codes ("2") form a floating pool of marks."""
        return self.code.isdigit()

    def with_label(self, label: str) -> SchemeMark:
        """Copy prefixed with a part label, e.g. "[a] M1"."""
        return SchemeMark(f"[{label}] {self.code}", self.answer, self.comments)

    def to_dict(self) -> dict:
        return {"mark": self.mark, "answer": self.answer, "comments": self.comments}

    @classmethod
    def from_dict(cls, data: dict) -> SchemeMark:
        return cls(
            mark=str(data.get("mark", "")).strip(),
            answer=str(data.get("answer", "") or ""),
            comments=str(data.get("comments", data.get("guidance", "")) or ""),
        )


# ─────────────────────────────────────────────────────────────────────────────
# SchemeShape variants
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FlatScheme:
    """Single mark list for an undivided question."""
    marks: Tuple[SchemeMark, ...]
    kind: Literal["flat"] = "flat"


@dataclass(frozen=True)
class CompositeScheme:
    """Sub-part lists stored under their labels and flattened as "[a] M1"."""
    parts: Dict[str, Tuple[SchemeMark, ...]]
    kind: Literal["composite"] = "composite"


@dataclass(frozen=True)
class PerSubQuestionScheme:
    """Sub-part lists kept separate with optional per-part maxima."""
    parts: Dict[str, Tuple[SchemeMark, ...]]
    max_marks: Dict[str, int] = field(default_factory=dict)
    kind: Literal["per_sub_question"] = "per_sub_question"


SchemeShape = Union[FlatScheme, CompositeScheme, PerSubQuestionScheme]


# ─────────────────────────────────────────────────────────────────────────────
# Canonical scheme
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class NormalizedScheme:
    """
    Canonical marking scheme for one base question.

    Attributes:
        question_number: Base question number ("2")
        marks: Top-level marks (flat and composite shapes, generic rubric)
        sub_question_marks: Per-part marks for per-sub-question shapes
        sub_question_max_marks: Per-part maxima where known
        total_marks: Declared total (0 when unknown)
        kind: Shape the scheme was resolved from
        exam_board / paper_code / exam_series / tier: Source paper identity
        guidance: Examiner instruction attached to the scheme
        alternative: Alternative scheme ("2aalt" records), if any

    Invariants:
        - total_marks >= 0
        - generic schemes have kind == "generic"
    """

    question_number: str
    marks: Tuple[SchemeMark, ...] = ()
    sub_question_marks: Dict[str, Tuple[SchemeMark, ...]] = field(default_factory=dict)
    sub_question_max_marks: Dict[str, int] = field(default_factory=dict)
    total_marks: int = 0
    kind: SchemeKind = "flat"
    exam_board: str = ""
    paper_code: str = ""
    exam_series: str = ""
    tier: str = ""
    guidance: str = ""
    alternative: Optional[NormalizedScheme] = None

    def __post_init__(self) -> None:
        if self.total_marks < 0:
            raise ValueError(f"total_marks cannot be negative: {self.total_marks}")

    @property
    def is_generic(self) -> bool:
        return self.kind == "generic"

    @property
    def is_composite(self) -> bool:
        return self.kind == "composite"

    @property
    def has_sub_questions(self) -> bool:
        return bool(self.sub_question_marks)

    @property
    def key(self) -> Tuple[str, str, str]:
        """Retention key: one scheme per (base question, board, paper code)."""
        return (self.question_number, self.exam_board, self.paper_code)

    def all_marks(self) -> List[SchemeMark]:
        """Top-level marks followed by every sub-question mark."""
        result = list(self.marks)
        for part_marks in self.sub_question_marks.values():
            result.extend(part_marks)
        return result

    def max_for_sub_question(self, label: str) -> Optional[int]:
        """Declared or derived maximum for one sub-question."""
        if label in self.sub_question_max_marks:
            return self.sub_question_max_marks[label]
        marks = self.sub_question_marks.get(label)
        if marks:
            return sum(m.value for m in marks if not m.is_zero_value)
        return None

    def to_dict(self) -> dict:
        data = {
            "questionNumber": self.question_number,
            "marks": [m.to_dict() for m in self.marks],
            "totalMarks": self.total_marks,
            "kind": self.kind,
            "isGeneric": self.is_generic,
            "examBoard": self.exam_board,
            "paperCode": self.paper_code,
            "examSeries": self.exam_series,
            "tier": self.tier,
        }
        if self.sub_question_marks:
            data["subQuestionMarks"] = {
                label: [m.to_dict() for m in marks]
                for label, marks in self.sub_question_marks.items()
            }
        if self.sub_question_max_marks:
            data["subQuestionMaxMarks"] = dict(self.sub_question_max_marks)
        if self.guidance:
            data["guidance"] = self.guidance
        if self.alternative is not None:
            data["alternative"] = self.alternative.to_dict()
        return data

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        source = f"{self.exam_board} {self.paper_code}".strip() or "unmatched"
        return (
            f"NormalizedScheme(Q{self.question_number}, {self.kind}, "
            f"{self.total_marks} marks, {source})"
        )
