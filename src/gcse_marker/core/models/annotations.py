"""
Module: annotations

Purpose:
    Marking output models. Annotation records come from the untrusted
    marking model and are corrected in place by the result parser;
    StudentScore is always recomputed and never taken from the model.

Key Classes:
    - VisualPosition: Percent-based marker placement for drawings
    - Annotation: One mark record (line id, action, codes, position)
    - StudentScore: Awarded/total marks with display text

Dependencies:
    - dataclasses (std)

Used By:
    - results.parser, results.sanitize, results.scoring, results.drawings
    - pipeline: Output contract
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Keys consumed into typed fields; everything else is kept in `extra`
_KNOWN_KEYS = {
    "line_id", "step_id", "lineId", "action", "text", "reasoning",
    "student_text", "bbox", "pageIndex", "subQuestion", "ocr_match_status",
    "visual_position",
}


def _coerce_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class VisualPosition:
    """Marker placement in percent of the page region."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VisualPosition:
        return cls(
            x=_coerce_float(data.get("x")),
            y=_coerce_float(data.get("y")),
            width=_coerce_float(data.get("width")),
            height=_coerce_float(data.get("height")),
        )

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class Annotation:
    """
    One mark record produced by the marking model.

    Attributes:
        line_id: Step/line the mark refers to (aliases normalised on load)
        action: "tick", "cross", "mark", a code such as "M1", or ""
        text: Space-separated mark codes or free text
        reasoning: Model's justification
        student_text: Transcribed student work the mark refers to
        bbox: Optional [x, y, w, h] box
        page_index: Page the mark belongs to
        sub_question: Sub-question label ("a"), if known
        match_status: "MATCHED", "UNMATCHED" or "VISUAL"
        visual_position: Marker placement for drawings
        is_ghost: Line id was synthesised so the mark survives dedup
        extra: Unrecognised keys, preserved for the output
    """

    line_id: str = ""
    action: str = ""
    text: str = ""
    reasoning: str = ""
    student_text: str = ""
    bbox: Optional[list] = None
    page_index: Optional[int] = None
    sub_question: str = ""
    match_status: str = ""
    visual_position: Optional[VisualPosition] = None
    is_ghost: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Annotation:
        """Build from a raw model record without any sanitisation."""
        visual = data.get("visual_position")
        page = data.get("pageIndex")
        raw_id = data.get("line_id") or data.get("step_id") or data.get("lineId") or ""
        return cls(
            line_id=str(raw_id) if raw_id else "",
            action="" if data.get("action") is None else str(data.get("action")),
            text="" if data.get("text") is None else str(data.get("text")),
            reasoning=str(data.get("reasoning") or ""),
            student_text=str(data.get("student_text") or ""),
            bbox=data.get("bbox") if isinstance(data.get("bbox"), list) else None,
            page_index=int(page) if isinstance(page, (int, float)) and not isinstance(page, bool) else None,
            sub_question=str(data.get("subQuestion") or ""),
            match_status=str(data.get("ocr_match_status") or "").upper(),
            visual_position=VisualPosition.from_dict(visual) if isinstance(visual, dict) else None,
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def codes(self) -> list[str]:
        """Whitespace tokens of the text field."""
        return self.text.split() if self.text else []

    def to_dict(self) -> dict:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "line_id": self.line_id,
            "step_id": self.line_id,
            "action": self.action,
            "text": self.text,
            "reasoning": self.reasoning,
        })
        if self.student_text:
            data["student_text"] = self.student_text
        if self.bbox is not None:
            data["bbox"] = self.bbox
        if self.page_index is not None:
            data["pageIndex"] = self.page_index
        if self.sub_question:
            data["subQuestion"] = self.sub_question
        if self.match_status:
            data["ocr_match_status"] = self.match_status
        if self.visual_position is not None:
            data["visual_position"] = self.visual_position.to_dict()
        if self.is_ghost:
            data["isGhost"] = True
        return data


@dataclass(frozen=True, slots=True)
class StudentScore:
    """
    Authoritative score for one question.

    Invariants:
        - 0 <= awarded_marks
        - awarded_marks <= total_marks
    """

    awarded_marks: float
    total_marks: float

    def __post_init__(self) -> None:
        if self.awarded_marks < 0:
            raise ValueError(f"awarded_marks cannot be negative: {self.awarded_marks}")
        if self.awarded_marks > self.total_marks:
            raise ValueError(
                f"awarded_marks exceeds total_marks: {self.awarded_marks} > {self.total_marks}"
            )

    @property
    def score_text(self) -> str:
        def fmt(v: float) -> str:
            return str(int(v)) if float(v).is_integer() else f"{v:g}"
        return f"{fmt(self.awarded_marks)}/{fmt(self.total_marks)}"

    def to_dict(self) -> dict:
        return {
            "awardedMarks": self.awarded_marks,
            "totalMarks": self.total_marks,
            "scoreText": self.score_text,
        }

    def __repr__(self) -> str:
        return f"StudentScore({self.score_text})"
