"""
Module: schemes.normalize

Purpose:
    Resolves raw marking scheme records into a SchemeShape once, then
    into the canonical NormalizedScheme used by every later stage.

Key Functions:
    - parse_marks(): Raw mark list -> SchemeMark tuple
    - resolve_shape(): Raw record -> FlatScheme | CompositeScheme | PerSubQuestionScheme
    - normalize_scheme(): Raw scheme lookup result -> NormalizedScheme

Accepted Raw Shapes:
    - [ {mark, answer, comments}, ... ]                      -> flat
    - {"marks": [...]}                                       -> flat
    - {"marks": ["[a] M1", ...], "isComposite": true}        -> composite
    - {"sub_questions" | "subQuestions" | "parts": ...}      -> per sub-question
    - {"subQuestionMarks": {"a": [...], ...}}                -> per sub-question
    - {"main": ..., "alt": ..., "hasAlternatives": true}     -> main + alternative

Dependencies:
    - core.models.schemes

Used By:
    - schemes.orchestrator
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from gcse_marker.common.text import normalize_sub_question_part
from gcse_marker.core.models import (
    CompositeScheme,
    ExamPaperMatch,
    FlatScheme,
    NormalizedScheme,
    PerSubQuestionScheme,
    SchemeMark,
    SchemeShape,
)
from gcse_marker.core.models.schemes import PART_LABEL_PATTERN

logger = logging.getLogger(__name__)

SUB_QUESTION_CONTAINER_KEYS = ("sub_questions", "subQuestions", "parts")
PART_LABEL_KEYS = ("question_part", "part", "label", "sub_question_number", "number")
PART_MAX_KEYS = ("max_marks", "maxMarks", "total_marks", "totalMarks")


def parse_marks(raw: Any) -> Tuple[SchemeMark, ...]:
    """Parse a raw mark list, skipping entries without a usable code."""
    if not isinstance(raw, list):
        return ()
    marks: List[SchemeMark] = []
    for entry in raw:
        if isinstance(entry, dict):
            code = str(entry.get("mark", "")).strip()
            if not code:
                logger.debug(f"Skipping scheme entry without a mark code: {entry!r}")
                continue
            marks.append(SchemeMark.from_dict(entry))
        elif isinstance(entry, str) and entry.strip():
            marks.append(SchemeMark(entry.strip()))
    return tuple(marks)


def _part_max(data: Any) -> Optional[int]:
    if not isinstance(data, dict):
        return None
    for key in PART_MAX_KEYS:
        if data.get(key) is not None:
            try:
                return int(data[key])
            except (TypeError, ValueError):
                return None
    return None


def _part_marks(data: Any) -> Tuple[SchemeMark, ...]:
    if isinstance(data, list):
        return parse_marks(data)
    if isinstance(data, dict):
        return parse_marks(data.get("marks"))
    return ()


def _part_entries(container: Any) -> List[Tuple[str, Any]]:
    """(label, data) pairs from a dict keyed by label or a list of part records."""
    if isinstance(container, dict):
        return [(str(k), v) for k, v in container.items()]
    entries: List[Tuple[str, Any]] = []
    for entry in container if isinstance(container, list) else ():
        if not isinstance(entry, dict):
            continue
        label = next((str(entry[k]) for k in PART_LABEL_KEYS if entry.get(k)), "")
        entries.append((label, entry))
    return entries


def _split_composite(marks: Tuple[SchemeMark, ...]) -> Dict[str, Tuple[SchemeMark, ...]]:
    """Group "[a] M1" style marks by their label; unlabelled marks go under ""."""
    parts: Dict[str, List[SchemeMark]] = {}
    for mark in marks:
        match = PART_LABEL_PATTERN.match(mark.mark.strip())
        label = match.group(1).strip() if match else ""
        parts.setdefault(label, []).append(SchemeMark(mark.code, mark.answer, mark.comments))
    return {label: tuple(items) for label, items in parts.items()}


def resolve_shape(question_marks: Any) -> SchemeShape:
    """
    Decide the shape of a raw scheme record.

    Raises:
        ValueError: If the record has no recognisable shape
    """
    if isinstance(question_marks, list):
        return FlatScheme(parse_marks(question_marks))

    if not isinstance(question_marks, dict):
        raise ValueError(f"Unrecognised scheme record: {type(question_marks).__name__}")

    for key in SUB_QUESTION_CONTAINER_KEYS:
        container = question_marks.get(key)
        if not container:
            continue
        parts: Dict[str, Tuple[SchemeMark, ...]] = {}
        maxima: Dict[str, int] = {}
        for label, data in _part_entries(container):
            part = normalize_sub_question_part(str(label))
            if not part:
                continue
            parts[part] = _part_marks(data)
            part_max = _part_max(data)
            if part_max is not None:
                maxima[part] = part_max
        if parts:
            return PerSubQuestionScheme(parts, maxima)

    sub_marks = question_marks.get("subQuestionMarks")
    if isinstance(sub_marks, dict) and sub_marks:
        return PerSubQuestionScheme(
            {normalize_sub_question_part(str(k)): parse_marks(v) for k, v in sub_marks.items()}
        )

    marks = parse_marks(question_marks.get("marks"))
    labelled = any(PART_LABEL_PATTERN.match(m.mark.strip()) for m in marks)
    if question_marks.get("isComposite") or labelled:
        return CompositeScheme(_split_composite(marks))
    if "marks" in question_marks:
        return FlatScheme(marks)

    raise ValueError(f"Unrecognised scheme record keys: {sorted(question_marks)}")


def _guidance_text(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(str(v) for v in value if v)
    return str(value or "")


def _from_shape(
    shape: SchemeShape,
    question_number: str,
    total_marks: int,
    identity: Dict[str, str],
    guidance: str,
) -> NormalizedScheme:
    if isinstance(shape, CompositeScheme):
        marks = tuple(
            mark.with_label(label) if label else mark
            for label, part_marks in shape.parts.items()
            for mark in part_marks
        )
        return NormalizedScheme(
            question_number=question_number,
            marks=marks,
            total_marks=total_marks,
            kind="composite",
            guidance=guidance,
            **identity,
        )
    if isinstance(shape, PerSubQuestionScheme):
        return NormalizedScheme(
            question_number=question_number,
            sub_question_marks=dict(shape.parts),
            sub_question_max_marks=dict(shape.max_marks),
            total_marks=total_marks or sum(shape.max_marks.values()),
            kind="per_sub_question",
            guidance=guidance,
            **identity,
        )
    return NormalizedScheme(
        question_number=question_number,
        marks=shape.marks,
        total_marks=total_marks,
        kind="flat",
        guidance=guidance,
        **identity,
    )


def normalize_scheme(
    question_number: str,
    scheme: Dict[str, Any],
    match: Optional[ExamPaperMatch] = None,
) -> NormalizedScheme:
    """
    Canonical scheme for a corpus lookup result.

    Args:
        question_number: Base question number the scheme is stored under
        scheme: {"questionMarks": ..., "generalMarkingGuidance": ...}
        match: Detection match supplying paper identity and the total

    Raises:
        ValueError: If the record has no recognisable shape
    """
    question_marks = scheme.get("questionMarks", scheme)
    identity = {
        "exam_board": match.board if match else "",
        "paper_code": match.paper_code if match else "",
        "exam_series": match.exam_series if match else "",
        "tier": match.tier if match else "",
    }
    total = match.marks if match and match.marks else 0
    guidance = _guidance_text(scheme.get("generalMarkingGuidance"))

    alternative: Optional[NormalizedScheme] = None
    if isinstance(question_marks, dict) and question_marks.get("hasAlternatives"):
        alternative = _from_shape(
            resolve_shape(question_marks["alt"]), question_number, total, identity, guidance
        )
        question_marks = question_marks["main"]

    if isinstance(question_marks, dict) and question_marks.get("guidance"):
        extra = _guidance_text(question_marks["guidance"])
        guidance = f"{guidance}\n{extra}".strip() if guidance else extra

    normalized = _from_shape(resolve_shape(question_marks), question_number, total, identity, guidance)
    if alternative is not None:
        normalized = replace(normalized, alternative=alternative)
    return normalized
