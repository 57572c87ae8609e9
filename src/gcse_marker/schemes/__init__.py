"""
Scheme orchestration: grouping, detection recovery, consensus and merging.

Public entry points:
- SchemeOrchestrator.orchestrate(questions, paper_hint=..., page_text=...)
- normalize_scheme(question_number, scheme, match)
- generate_sequential_rubric(size) / estimate_max_marks(page_text, question_number)
"""

from .generic import GENERIC_EXAMINER_INSTRUCTION, build_generic_scheme, generate_sequential_rubric
from .grouping import QuestionGroup, combine_anchor_text, group_questions
from .normalize import normalize_scheme, parse_marks, resolve_shape
from .orchestrator import SchemeOrchestrator, SchemeOrchestrationResult
from .statistics import DetectionStatistics
from .totals import estimate_max_marks

__all__ = [
    "GENERIC_EXAMINER_INSTRUCTION",
    "build_generic_scheme",
    "generate_sequential_rubric",
    "QuestionGroup",
    "combine_anchor_text",
    "group_questions",
    "normalize_scheme",
    "parse_marks",
    "resolve_shape",
    "SchemeOrchestrator",
    "SchemeOrchestrationResult",
    "DetectionStatistics",
    "estimate_max_marks",
]
