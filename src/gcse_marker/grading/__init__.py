"""
Grade resolution from published boundary tables.

Public entry points:
- GradeResolver.resolve(board, series, subject, exam_code, tier, score, total)
- InMemoryGradeBoundaryStore.from_records(records)
- find_grade(score, boundaries)
"""

from .boundaries import (
    find_grade,
    infer_subject_from_exam_code,
    normalize_subject_name,
    normalize_tier,
    paper_code_from_exam_code,
    select_boundary_type,
    subject_code_from_exam_code,
)
from .resolver import GradeResolver
from .store import InMemoryGradeBoundaryStore

__all__ = [
    "find_grade",
    "infer_subject_from_exam_code",
    "normalize_subject_name",
    "normalize_tier",
    "paper_code_from_exam_code",
    "select_boundary_type",
    "subject_code_from_exam_code",
    "GradeResolver",
    "InMemoryGradeBoundaryStore",
]
