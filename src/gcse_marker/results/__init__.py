"""
Marking output parsing: JSON repair, sanitization and authoritative scoring.

Public entry points:
- ResultParser.parse(raw_text, scheme, sub_question_pages=..., question_number=...)
- repair_json(text) / extract_json_block(text)
- count_awarded_marks(annotations) / resolve_budget(meta, system_max)
"""

from .drawings import fix_oversized_drawings
from .extraction import extract_json_block
from .parser import MarkingResult, ResultParser
from .repair import repair_json
from .sanitize import (
    assign_ghost_ids,
    dedupe_zero_codes,
    merge_redundant,
    reconcile_pages,
    sanitize_annotation,
)
from .scoring import (
    annotation_value,
    count_awarded_marks,
    enforce_mark_limits,
    enforce_strict_budget,
    parse_score,
    resolve_budget,
)

__all__ = [
    "fix_oversized_drawings",
    "extract_json_block",
    "MarkingResult",
    "ResultParser",
    "repair_json",
    "assign_ghost_ids",
    "dedupe_zero_codes",
    "merge_redundant",
    "reconcile_pages",
    "sanitize_annotation",
    "annotation_value",
    "count_awarded_marks",
    "enforce_mark_limits",
    "enforce_strict_budget",
    "parse_score",
    "resolve_budget",
]
