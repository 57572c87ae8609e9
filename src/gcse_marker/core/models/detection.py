"""
Module: detection

Purpose:
    Question detection models: the paper/question a piece of student work
    was matched to, and the outcome of one detection attempt.

Key Classes:
    - ExamPaperMatch: Matched paper identity, question and confidence
    - DetectionResult: found / match / message outcome
    - DetectedQuestion: Question text extracted from a submission

Dependencies:
    - dataclasses (std)

Used By:
    - matching.question_matcher: Produces DetectionResult
    - schemes.orchestrator: Groups, recovers and corrects detections
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class DetectedQuestion:
    """
    One question (or sub-question) found on a submission.

    Attributes:
        question_number: Label as read from the page ("2", "2a", "12(ii)")
        text: Question text read from the page
        source_pages: Page indices the question appears on
    """

    question_number: str
    text: str
    source_pages: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ExamPaperMatch:
    """
    A question matched against a known exam paper.

    Attributes:
        board: Exam board ("Edexcel")
        qualification: Qualification or subject line ("GCSE Mathematics")
        subject: Subject name
        paper_code: Exam code ("1MA1/1H")
        exam_series: Series ("June 2022")
        tier: Tier ("Higher"), may be empty
        question_number: Matched main question number
        sub_question_number: Matched part ("a"), empty for main questions
        marks: Marks of the matched question or part, when known
        confidence: Similarity of the match
        database_question_text: Reference text that was matched
        marking_scheme: Raw scheme record from the corpus, if found
        is_generic: Virtual match for a synthesized rubric
    """

    board: str
    qualification: str
    paper_code: str
    exam_series: str
    question_number: str
    confidence: float
    subject: str = ""
    tier: str = ""
    sub_question_number: str = ""
    marks: Optional[int] = None
    database_question_text: str = ""
    marking_scheme: Optional[dict] = field(default=None, compare=False)
    is_generic: bool = False

    @property
    def paper_title(self) -> str:
        """Identity used for consensus voting."""
        return f"{self.board} {self.paper_code} {self.exam_series}".strip()

    @property
    def forced_hint(self) -> str:
        """Hint string that biases detection toward this paper."""
        return " ".join(
            part for part in (self.board, self.paper_code, self.exam_series, self.tier) if part
        )

    @classmethod
    def generic(cls, question_number: str) -> ExamPaperMatch:
        """Virtual match used when no official scheme exists."""
        return cls(
            board="Unknown",
            qualification="",
            paper_code="Generic Question",
            exam_series="",
            question_number=question_number,
            confidence=0.0,
            is_generic=True,
        )

    def with_scheme(self, scheme: Optional[dict]) -> ExamPaperMatch:
        return replace(self, marking_scheme=scheme)

    def to_dict(self) -> dict:
        return {
            "board": self.board,
            "qualification": self.qualification,
            "subject": self.subject,
            "paperCode": self.paper_code,
            "examSeries": self.exam_series,
            "tier": self.tier,
            "questionNumber": self.question_number,
            "subQuestionNumber": self.sub_question_number or None,
            "marks": self.marks,
            "confidence": round(self.confidence, 4),
            "isGeneric": self.is_generic,
        }


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of one detection attempt.

    Attributes:
        found: True when a match cleared the acceptance threshold
        match: The accepted match (None when not found)
        message: Human-readable reason
        best_score: Highest similarity seen, even when rejected
        rescued: Produced by consensus correction
    """

    found: bool
    match: Optional[ExamPaperMatch] = None
    message: str = ""
    best_score: float = 0.0
    rescued: bool = False

    def __post_init__(self) -> None:
        if self.found and self.match is None:
            raise ValueError("A found detection must carry a match")

    @classmethod
    def not_found(cls, message: str, best_score: float = 0.0) -> DetectionResult:
        return cls(found=False, match=None, message=message, best_score=best_score)

    @property
    def paper_title(self) -> Optional[str]:
        if self.found and self.match is not None:
            return self.match.paper_title
        return None

    def as_rescue(self) -> DetectionResult:
        return replace(self, rescued=True)

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "match": self.match.to_dict() if self.match else None,
            "message": self.message,
            "bestScore": round(self.best_score, 4),
            "rescued": self.rescued,
        }
