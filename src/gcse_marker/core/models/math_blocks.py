"""
Module: math_blocks

Purpose:
    Provides the MathBlock dataclass - one region of student work that
    may be re-read by the math expression recognizer. Unlike the other
    models it is mutable: the specialised result is written into the
    block once it arrives.

Key Classes:
    - MathBlock: Region, primary text, optional math text and scores

Dependencies:
    - dataclasses (std)
    - core.models.boxes: BoundingBox

Used By:
    - ocr.math_regions: Creates and refines blocks
    - ocr.orchestrator: Degraded whole-image block
    - pipeline: Builds the student work transcript
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .boxes import BoundingBox


@dataclass
class MathBlock:
    """
    Unit of student work passed downstream.

    Attributes:
        bbox: Region in original image pixels
        recognized_text: Text from the primary recognizer
        confidence: Primary confidence (or the fallback source's)
        math_likeness: Heuristic score in [0, 1]
        suspicious: Structural cues suggest the primary text is garbled
        math_expression_text: Specialised recognizer output, if any
        math_confidence: Specialised recognizer confidence, if any
        source_cluster_index: Cluster this block came from (0 for fallback)
        skipped_by_triage: Primary confidence was high enough to skip
            the specialised call
    """

    bbox: BoundingBox
    recognized_text: str
    confidence: Optional[float]
    math_likeness: float
    suspicious: bool = False
    math_expression_text: Optional[str] = None
    math_confidence: Optional[float] = None
    source_cluster_index: int = 0
    skipped_by_triage: bool = False

    @property
    def has_math_result(self) -> bool:
        return bool(self.math_expression_text and self.math_expression_text.strip())

    @property
    def needs_review(self) -> bool:
        """Suspicious primary text that no math recognition replaced."""
        return self.suspicious and not self.has_math_result

    @property
    def best_text(self) -> str:
        """Specialised text when available, otherwise the primary text."""
        if self.has_math_result:
            return self.math_expression_text or ""
        return self.recognized_text

    def to_dict(self) -> dict:
        return {
            "coordinates": self.bbox.to_dict(),
            "recognizedText": self.recognized_text,
            "mathExpressionText": self.math_expression_text,
            "confidence": self.confidence,
            "mathLikenessScore": self.math_likeness,
            "suspicious": self.suspicious,
            "needsReview": self.needs_review,
        }
