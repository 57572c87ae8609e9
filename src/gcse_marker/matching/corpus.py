"""
Module: matching.corpus

Purpose:
    Reference exam papers and their marking schemes. Records are JSON
    documents validated against the bundled exam_paper schema and then
    parsed into frozen records the matcher iterates over.

Key Functions:
    - parse_exam_paper(): Validate and parse one JSON record
    - load_corpus(): Load every *.json record in a directory

Key Classes:
    - CorpusSubQuestion / CorpusQuestion: Reference question text and marks
    - ExamPaperRecord: One paper with its flat-key marking scheme
    - InMemoryQuestionCorpus: Shared read-only corpus

Record Shape:
    {
      "id": "edexcel-1ma1-1h-june-2022",
      "metadata": {"exam_board": "Edexcel", "exam_code": "1MA1/1H",
                   "exam_series": "June 2022", "tier": "Higher",
                   "qualification": "GCSE", "subject": "Mathematics"},
      "questions": [{"question_number": "2", "question_text": "...",
                     "marks": 5, "sub_questions": [
                         {"question_part": "a", "question_text": "...", "marks": 2}]}],
      "marking_scheme": {"questions": {"1": {"marks": [...]}, "2a": {...},
                                       "2aalt": {...}},
                         "generalMarkingGuidance": "..."}
    }

Dependencies:
    - json, pathlib (std)
    - core.schemas.validator: jsonschema validation of records

Used By:
    - matching.question_matcher
    - pipeline
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from gcse_marker.common.text import normalize_sub_question_part
from gcse_marker.core.models import ExamPaperMatch
from gcse_marker.core.schemas import validate_exam_paper
from gcse_marker.exceptions import SchemeValidationError

logger = logging.getLogger(__name__)

FLAT_SUB_KEY_PATTERN = re.compile(r"^(\d+)([a-z]+)$", re.IGNORECASE)
ALT_SUFFIX = "alt"


def _question_text(data: Dict[str, Any]) -> str:
    return str(
        data.get("question_text") or data.get("text") or data.get("question") or ""
    ).strip()


def _marks(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True, slots=True)
class CorpusSubQuestion:
    """Reference sub-question ("a", "ii") of a corpus question."""

    part: str
    text: str
    marks: Optional[int] = None


@dataclass(frozen=True)
class CorpusQuestion:
    """
    Reference question.

    Attributes:
        number: Main question number as stored ("2", or a flat "12i")
        text: Question text (may be empty when only parts carry text)
        marks: Total marks for the question, when known
        sub_questions: Parts in document order
    """

    number: str
    text: str = ""
    marks: Optional[int] = None
    sub_questions: Tuple[CorpusSubQuestion, ...] = ()

    @classmethod
    def from_dict(cls, number: str, data: Dict[str, Any]) -> CorpusQuestion:
        raw_subs = data.get("sub_questions") or data.get("subQuestions") or []
        subs = []
        for sub in raw_subs:
            if not isinstance(sub, dict):
                continue
            part = normalize_sub_question_part(
                str(sub.get("question_part") or sub.get("part") or "")
            )
            if not part:
                logger.warning(
                    f"Sub-question of Q{number} has no question_part; skipping",
                    extra={"question_number": number},
                )
                continue
            subs.append(CorpusSubQuestion(part, _question_text(sub), _marks(sub.get("marks"))))
        return cls(
            number=str(number).strip(),
            text=_question_text(data),
            marks=_marks(data.get("marks")),
            sub_questions=tuple(subs),
        )

    def sub_question(self, part: str) -> Optional[CorpusSubQuestion]:
        wanted = normalize_sub_question_part(part)
        for sub in self.sub_questions:
            if sub.part == wanted:
                return sub
        return None


@dataclass(frozen=True)
class ExamPaperRecord:
    """
    One reference exam paper.

    Attributes:
        id: Record id
        board: Exam board ("Edexcel")
        qualification: Qualification ("GCSE")
        subject: Subject name ("Mathematics")
        exam_code: Paper code ("1MA1/1H")
        exam_series: Series ("June 2022")
        tier: Tier, may be empty
        questions: Reference questions in document order
        scheme_questions: Marking scheme entries by flat key ("1", "2a", "2aalt")
        general_guidance: Paper-wide examiner guidance
    """

    id: str
    board: str
    qualification: str
    subject: str
    exam_code: str
    exam_series: str
    tier: str = ""
    questions: Tuple[CorpusQuestion, ...] = ()
    scheme_questions: Dict[str, Any] = field(default_factory=dict, compare=False)
    general_guidance: str = ""

    @property
    def paper_title(self) -> str:
        return f"{self.board} {self.exam_code} {self.exam_series}".strip()

    def question(self, number: str) -> Optional[CorpusQuestion]:
        for question in self.questions:
            if question.number == number:
                return question
        return None

    def matches_hint(self, paper_hint: Optional[str]) -> bool:
        """
        True when board, code, series (and tier, if set) all occur in the hint.

        Example:
            >>> record.matches_hint("Edexcel 1MA1/1H June 2022 Higher")
            True
        """
        if not paper_hint:
            return False
        hint = paper_hint.lower()
        required = [self.board, self.exam_code, self.exam_series]
        if self.tier:
            required.append(self.tier)
        return all(part.lower() in hint for part in required if part)

    def base_match(self, question_number: str, confidence: float) -> ExamPaperMatch:
        """Match skeleton carrying this paper's identity."""
        return ExamPaperMatch(
            board=self.board,
            qualification=self.qualification or self.subject,
            subject=self.subject,
            paper_code=self.exam_code,
            exam_series=self.exam_series,
            tier=self.tier,
            question_number=question_number,
            confidence=confidence,
        )


def parse_exam_paper(data: Dict[str, Any]) -> ExamPaperRecord:
    """
    Validate and parse one corpus record.

    Questions may be a list of question objects or an object keyed by
    question number.

    Raises:
        SchemeValidationError: If the record fails validation
    """
    validate_exam_paper(data)
    metadata = data["metadata"]

    raw_questions = data["questions"]
    questions: List[CorpusQuestion] = []
    if isinstance(raw_questions, list):
        for entry in raw_questions:
            number = entry.get("question_number") or entry.get("number")
            questions.append(CorpusQuestion.from_dict(str(number), entry))
    else:
        for number, entry in raw_questions.items():
            if isinstance(entry, dict):
                questions.append(CorpusQuestion.from_dict(str(number), entry))
            else:
                questions.append(CorpusQuestion(number=str(number), text=str(entry or "")))

    scheme = data.get("marking_scheme") or {}
    scheme_questions = scheme.get("questions") or {}
    if not isinstance(scheme_questions, dict):
        raise SchemeValidationError(
            "marking_scheme.questions must be an object keyed by question number",
            path="marking_scheme.questions",
        )
    guidance = scheme.get("generalMarkingGuidance") or scheme.get("general_guidance") or ""
    if not isinstance(guidance, str):
        guidance = json.dumps(guidance)

    return ExamPaperRecord(
        id=str(data.get("id") or metadata["exam_code"]),
        board=str(metadata["exam_board"]).strip(),
        qualification=str(metadata.get("qualification") or "").strip(),
        subject=str(metadata.get("subject") or "").strip(),
        exam_code=str(metadata["exam_code"]).strip(),
        exam_series=str(metadata["exam_series"]).strip(),
        tier=str(metadata.get("tier") or "").strip(),
        questions=tuple(questions),
        scheme_questions={str(k).lower(): v for k, v in scheme_questions.items()},
        general_guidance=guidance,
    )


class InMemoryQuestionCorpus:
    """
    Read-only corpus shared across submissions.

    Example:
        >>> corpus = InMemoryQuestionCorpus.from_records([record_dict])
        >>> len(corpus.papers())
        1
    """

    def __init__(self, papers: Iterable[ExamPaperRecord] = ()):
        self._papers: Tuple[ExamPaperRecord, ...] = tuple(papers)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> InMemoryQuestionCorpus:
        return cls(parse_exam_paper(record) for record in records)

    @classmethod
    def from_directory(cls, directory: Path) -> InMemoryQuestionCorpus:
        """
        Load every *.json record in a directory.

        A file that fails to parse or validate is logged and skipped.
        """
        papers: List[ExamPaperRecord] = []
        for path in sorted(Path(directory).glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    papers.append(parse_exam_paper(json.load(f)))
            except (json.JSONDecodeError, SchemeValidationError) as e:
                logger.warning(f"Skipping corpus record {path.name}: {e}", extra={"path": str(path)})
        logger.info(f"Loaded {len(papers)} exam papers from {directory}")
        return cls(papers)

    def papers(self) -> Tuple[ExamPaperRecord, ...]:
        return self._papers

    def papers_matching_hint(self, paper_hint: Optional[str]) -> List[ExamPaperRecord]:
        return [p for p in self._papers if p.matches_hint(paper_hint)]

    def _paper_for(self, match: ExamPaperMatch) -> Optional[ExamPaperRecord]:
        # Paper code must agree exactly: 1MA1/1H and 1MA1/2H are different papers
        for paper in self._papers:
            if (
                paper.exam_code == match.paper_code
                and paper.board.lower() == match.board.lower()
                and paper.exam_series.lower() == match.exam_series.lower()
            ):
                return paper
        return None

    def find_marking_scheme(self, match: ExamPaperMatch) -> Optional[Dict[str, Any]]:
        """
        Scheme entry for a match, by flat key.

        Lookup order for key K ("2" or "2a"):
            1. K and K+"alt" both present -> {"main", "alt", "hasAlternatives"}
            2. K alone, or K+"alt" alone
            3. Main question with no K but with flat sub keys ("2a", "2b")
               -> composite with marks labelled "[a] M1"

        Returns:
            {"questionMarks": ..., "generalMarkingGuidance": ...} or None
        """
        if not match.question_number:
            return None
        paper = self._paper_for(match)
        if paper is None or not paper.scheme_questions:
            return None

        number = str(match.question_number).strip().lstrip("0") or "0"
        key = f"{number}{match.sub_question_number.lower().strip()}" if match.sub_question_number else number
        questions = paper.scheme_questions

        main = questions.get(key)
        alt = questions.get(f"{key}{ALT_SUFFIX}")
        if main is not None and alt is not None:
            question_marks: Any = {"main": main, "alt": alt, "hasAlternatives": True}
        elif main is not None:
            question_marks = main
        elif alt is not None:
            question_marks = alt
        elif not match.sub_question_number:
            question_marks = self._composite_from_parts(number, questions)
            if question_marks is None:
                return None
        else:
            return None

        return {
            "questionMarks": question_marks,
            "generalMarkingGuidance": paper.general_guidance,
        }

    @staticmethod
    def _composite_from_parts(number: str, questions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        part_keys = sorted(
            key for key in questions
            if (m := FLAT_SUB_KEY_PATTERN.match(key)) and m.group(1) == number
            and not key.endswith(ALT_SUFFIX)
        )
        if not part_keys:
            return None

        marks: List[Dict[str, Any]] = []
        answers: List[str] = []
        guidance: List[Any] = []
        for key in part_keys:
            sub = questions[key]
            label = key[len(number):]
            if not isinstance(sub, dict):
                continue
            if sub.get("answer"):
                answers.append(f"({label}) {sub['answer']}")
            for mark in sub.get("marks") or []:
                if isinstance(mark, dict):
                    marks.append({**mark, "mark": f"[{label}] {mark.get('mark', '')}"})
            extra = sub.get("guidance")
            if isinstance(extra, list):
                guidance.extend(extra)
            elif extra:
                guidance.append(extra)
        logger.debug(f"Synthesised composite scheme for Q{number} from parts {part_keys}")
        return {
            "answer": "\n".join(answers),
            "marks": marks,
            "guidance": guidance,
            "isComposite": True,
        }
