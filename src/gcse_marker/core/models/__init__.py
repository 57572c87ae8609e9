"""
Core data models for the marking pipeline.

Value types are frozen dataclasses; MathBlock and Annotation are the two
deliberately mutable records (filled in by later stages).
"""

from .boxes import BoundingBox
from .fragments import DetectedFragment, Cluster, reading_order_key
from .math_blocks import MathBlock
from .schemes import (
    SchemeMark,
    FlatScheme,
    CompositeScheme,
    PerSubQuestionScheme,
    SchemeShape,
    NormalizedScheme,
    mark_code_value,
)
from .detection import DetectedQuestion, ExamPaperMatch, DetectionResult
from .annotations import Annotation, StudentScore, VisualPosition
from .grades import (
    GradeBoundaryEntry,
    SubjectBoundaries,
    TierBoundaries,
    PaperBoundaries,
    GradeResult,
    PAPER_SPECIFIC,
    OVERALL_TOTAL,
)

__all__ = [
    "BoundingBox",
    "DetectedFragment",
    "Cluster",
    "reading_order_key",
    "MathBlock",
    "SchemeMark",
    "FlatScheme",
    "CompositeScheme",
    "PerSubQuestionScheme",
    "SchemeShape",
    "NormalizedScheme",
    "mark_code_value",
    "DetectedQuestion",
    "ExamPaperMatch",
    "DetectionResult",
    "Annotation",
    "StudentScore",
    "VisualPosition",
    "GradeBoundaryEntry",
    "SubjectBoundaries",
    "TierBoundaries",
    "PaperBoundaries",
    "GradeResult",
    "PAPER_SPECIFIC",
    "OVERALL_TOTAL",
]
