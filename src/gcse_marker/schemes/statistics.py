"""
Module: schemes.statistics

Purpose:
    Per-run detection statistics: how many questions matched, how well,
    and against which papers. Drives the hint recovery decision.

Key Classes:
    - QuestionDetectionDetail: One question's outcome
    - DetectionStatistics: Counts, similarity bands and paper votes
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gcse_marker.common.thresholds import DETECTION_BANDS
from gcse_marker.core.models import DetectionResult


@dataclass(frozen=True)
class QuestionDetectionDetail:
    question_number: str
    detected: bool
    similarity: float
    has_marking_scheme: bool
    paper_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionNumber": self.question_number,
            "detected": self.detected,
            "similarity": round(self.similarity, 4),
            "hasMarkingScheme": self.has_marking_scheme,
            "matchedPaperTitle": self.paper_title,
        }


@dataclass
class DetectionStatistics:
    """
    Detection outcome counts for one orchestration run.

    Attributes:
        total_questions: Questions submitted (not groups)
        detected / not_detected: Per-question outcome counts
        with_marking_scheme / without_marking_scheme: Among detected
        high / medium / low: Similarity bands (>= 0.9, >= 0.7, >= 0.4)
        hint_used: Paper hint in effect for the final run
        hinted_paper_count: Corpus papers the hint named
        restarted: Run was repeated without the hint
        rescued_questions: Groups re-pointed by consensus
        generic_questions: Groups that received a generic rubric
    """

    total_questions: int = 0
    detected: int = 0
    not_detected: int = 0
    with_marking_scheme: int = 0
    without_marking_scheme: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    details: List[QuestionDetectionDetail] = field(default_factory=list)
    hint_used: Optional[str] = None
    hinted_paper_count: int = 0
    restarted: bool = False
    rescued_questions: List[str] = field(default_factory=list)
    generic_questions: List[str] = field(default_factory=list)

    def record(self, question_number: str, result: DetectionResult) -> None:
        """Count one question's detection outcome."""
        self.total_questions += 1
        match = result.match if result.found else None
        similarity = match.confidence if match else 0.0
        has_scheme = bool(match and match.marking_scheme)

        if result.found:
            self.detected += 1
            if has_scheme:
                self.with_marking_scheme += 1
            else:
                self.without_marking_scheme += 1
            if similarity >= DETECTION_BANDS.high:
                self.high += 1
            elif similarity >= DETECTION_BANDS.medium:
                self.medium += 1
            elif similarity >= DETECTION_BANDS.low:
                self.low += 1
        else:
            self.not_detected += 1

        self.details.append(QuestionDetectionDetail(
            question_number=question_number,
            detected=result.found,
            similarity=similarity,
            has_marking_scheme=has_scheme,
            paper_title=result.paper_title,
        ))

    @property
    def detection_rate(self) -> float:
        return self.detected / self.total_questions if self.total_questions else 0.0

    def paper_votes(self) -> Counter:
        """Detected questions per matched paper title."""
        return Counter(d.paper_title for d in self.details if d.detected and d.paper_title)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalQuestions": self.total_questions,
            "detected": self.detected,
            "notDetected": self.not_detected,
            "withMarkingScheme": self.with_marking_scheme,
            "withoutMarkingScheme": self.without_marking_scheme,
            "bySimilarityRange": {"high": self.high, "medium": self.medium, "low": self.low},
            "questionDetails": [d.to_dict() for d in self.details],
            "hintUsed": self.hint_used,
            "hintedPaperCount": self.hinted_paper_count,
            "restarted": self.restarted,
            "rescuedQuestions": list(self.rescued_questions),
            "genericQuestions": list(self.generic_questions),
        }

    def summary(self) -> str:
        lines = [
            f"Total questions: {self.total_questions}",
            f"Detected: {self.detected}/{self.total_questions}",
            f"Not detected: {self.not_detected}",
            f"Similarity: high={self.high} medium={self.medium} low={self.low}",
        ]
        if self.hint_used:
            lines.append(f"Hint used: \"{self.hint_used}\" ({self.hinted_paper_count} papers)")
        if self.restarted:
            lines.append("Restarted without hint")
        return "\n".join(lines)
