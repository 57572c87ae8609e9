"""
Module: collaborators

Purpose:
    Contracts for the external services the marking core depends on.
    Vendor OCR, the math expression service, the marking model and the
    reference-data stores are injected as objects satisfying these
    protocols; the core never constructs them itself.

Key Classes:
    - RawTextDetection: One primary recognizer detection
    - MathRecognition: Math recognizer result
    - TextRecognizer: recognize(image_bytes) -> detections
    - MathRecognizer: recognize(cropped_bytes) -> MathRecognition
    - MarkingModel: generate(question, scheme, student_work) -> raw text
    - QuestionCorpus: papers(), find_marking_scheme(match)
    - GradeBoundaryStore: query_by_board_and_series(board, series)

Dependencies:
    - typing.Protocol (std)

Used By:
    - ocr.orchestrator, ocr.math_regions
    - matching.corpus
    - grading.resolver
    - pipeline
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from gcse_marker.core.models import ExamPaperMatch, GradeBoundaryEntry, NormalizedScheme


@dataclass(frozen=True)
class RawTextDetection:
    """
    One detection from the primary recognizer.

    Attributes:
        text: Recognised text
        vertices: Bounding polygon as (x, y) points in the image it was run on
        confidence: Optional confidence in [0, 1]
    """
    text: str
    vertices: Tuple[Tuple[float, float], ...]
    confidence: Optional[float] = None


@dataclass(frozen=True)
class MathRecognition:
    """Result of a math recognizer call."""
    text: str
    confidence: Optional[float] = None


@runtime_checkable
class TextRecognizer(Protocol):
    """Primary text recognizer. May return partial or empty results."""

    async def recognize(self, image_bytes: bytes) -> List[RawTextDetection]:
        ...


@runtime_checkable
class MathRecognizer(Protocol):
    """Math expression recognizer. Raises MathRecognitionError (or any exception) on error."""

    async def recognize(self, image_bytes: bytes) -> MathRecognition:
        ...


@runtime_checkable
class MarkingModel(Protocol):
    """Marking model. Output is untrusted text that should contain JSON."""

    async def generate(
        self,
        question: str,
        scheme: NormalizedScheme,
        student_work: str,
    ) -> str:
        ...


@runtime_checkable
class GradeBoundaryStore(Protocol):
    """Read-only grade boundary reference data."""

    async def query_by_board_and_series(
        self, board: str, series: str
    ) -> Sequence[GradeBoundaryEntry]:
        ...


@runtime_checkable
class QuestionCorpus(Protocol):
    """Read-only reference papers with flat-key marking schemes."""

    def papers(self) -> Sequence[Any]:
        ...

    def papers_matching_hint(self, paper_hint: Optional[str]) -> Sequence[Any]:
        ...

    def find_marking_scheme(self, match: ExamPaperMatch) -> Optional[Dict[str, Any]]:
        ...
