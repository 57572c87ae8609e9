"""
Module: matching.question_matcher

Purpose:
    Identifies which exam paper and question a piece of student work
    belongs to by fuzzy-matching its text against every reference
    question in the corpus.

Key Classes:
    - QuestionMatcher: detect(text, question_number_hint, paper_hint)

Matching Rules:
    - Sub-question hint ("2a"): only question 2, then only part "a".
      A part that matches the hint with similarity >= 0.2 is kept with a
      floor score of 0.5.
    - Main question hint ("2"): only question "2", main text only.
    - No hint: every main question of every paper.
    - Acceptance: 0.5 for main questions, 0.4 for sub-questions.
    - Equal scores across papers are tie-broken by whether the opening
      words agree, then by raw similarity.
    - Paper hint: papers whose board, code, series (and tier) occur in
      the hint are searched; if none do, the whole corpus is.

Dependencies:
    - matching.similarity: question_similarity, normalize_question_text
    - collaborators.QuestionCorpus (matching.corpus in-memory implementation)

Used By:
    - schemes.orchestrator
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from gcse_marker.common.text import (
    base_question_number,
    is_sub_question,
    short_subject_name,
    sub_question_part,
)
from gcse_marker.common.thresholds import SIMILARITY_THRESHOLDS
from gcse_marker.collaborators import QuestionCorpus
from gcse_marker.config import MatchingConfig
from gcse_marker.core.models import DetectionResult, ExamPaperMatch

from .corpus import CorpusQuestion, ExamPaperRecord
from .similarity import normalize_question_text, question_similarity

logger = logging.getLogger(__name__)

SUB_QUESTION_FLOOR_SCORE = 0.5
SUB_QUESTION_MIN_SIMILARITY = 0.2


@dataclass
class _PaperCandidate:
    """Best question found inside one paper."""
    question: CorpusQuestion
    sub_part: str
    score: float
    reference_text: str


def _reference_text(question: CorpusQuestion) -> str:
    """Main text, or the joined part texts when only parts carry text."""
    if question.text:
        return question.text
    return " ".join(f"{sub.part}) {sub.text}" for sub in question.sub_questions if sub.text)


def _opening(text: str) -> str:
    t = SIMILARITY_THRESHOLDS
    return normalize_question_text(text[:t.tie_prefix_chars])[:t.tie_compare_chars]


def _openings_agree(query_opening: str, reference_text: str) -> bool:
    """True when either normalised opening starts with the other's first 20 chars."""
    reference_opening = _opening(reference_text)
    if not query_opening or not reference_opening:
        return False
    n = SIMILARITY_THRESHOLDS.tie_match_chars
    return (
        reference_opening.startswith(query_opening[:n])
        or query_opening.startswith(reference_opening[:n])
    )


class QuestionMatcher:
    """
    Fuzzy question matcher over a shared read-only corpus.

    Example:
        >>> matcher = QuestionMatcher(corpus)
        >>> result = matcher.detect("Work out the area of the triangle", "3")
        >>> result.found, result.match.paper_code
        (True, '1MA1/1H')
    """

    def __init__(
        self,
        corpus: QuestionCorpus,
        config: MatchingConfig | None = None,
    ):
        self.corpus = corpus
        self.config = config or MatchingConfig()

    # ─────────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────────

    def candidate_papers(self, paper_hint: Optional[str]) -> Sequence[ExamPaperRecord]:
        """Papers searched for a given paper hint."""
        if paper_hint:
            hinted = self.corpus.papers_matching_hint(paper_hint)
            if hinted:
                return hinted
            logger.debug(f"Paper hint '{paper_hint}' matched no paper; searching whole corpus")
        return self.corpus.papers()

    def hinted_paper_count(self, paper_hint: Optional[str]) -> int:
        """Number of corpus papers the hint names (0 without a hint)."""
        if not paper_hint:
            return 0
        return len(self.corpus.papers_matching_hint(paper_hint))

    def detect(
        self,
        text: str,
        question_number_hint: Optional[str] = None,
        paper_hint: Optional[str] = None,
    ) -> DetectionResult:
        """
        Find the best matching reference question.

        Args:
            text: Question text read from the submission
            question_number_hint: Label read from the page ("2", "2a")
            paper_hint: Free text naming a paper, e.g. "Edexcel 1MA1/1H June 2022"

        Returns:
            DetectionResult; found=False carries the best rejected score
        """
        if not text or not text.strip():
            return DetectionResult.not_found("No question text provided")

        papers = self.candidate_papers(paper_hint)
        if not papers:
            return DetectionResult.not_found("No exam papers available")

        query_opening = _opening(text)
        best: Optional[ExamPaperMatch] = None
        best_score = 0.0
        best_text_similarity = 0.0
        best_opening_agrees = False

        for paper in papers:
            candidate = self._best_in_paper(text, paper, question_number_hint)
            if candidate is None or candidate.score <= 0:
                continue

            threshold = (
                self.config.sub_question_threshold if candidate.sub_part else self.config.threshold
            )
            accepted = candidate.score >= threshold

            if candidate.score > best_score:
                best_score = candidate.score
                if accepted:
                    best = self._build_match(paper, candidate)
                    best_text_similarity = question_similarity(text, candidate.reference_text)
                    best_opening_agrees = _openings_agree(query_opening, candidate.reference_text)
            elif candidate.score == best_score and accepted:
                text_similarity = question_similarity(text, candidate.reference_text)
                opening_agrees = _openings_agree(query_opening, candidate.reference_text)
                if (
                    best is None
                    or (opening_agrees and not best_opening_agrees)
                    or (opening_agrees == best_opening_agrees and text_similarity > best_text_similarity)
                ):
                    best = self._build_match(paper, candidate)
                    best_text_similarity = text_similarity
                    best_opening_agrees = opening_agrees

        if best is None:
            logger.debug(
                f"No match for Q{question_number_hint or '?'} (best rejected score {best_score:.3f})"
            )
            return DetectionResult.not_found(
                f"No matching exam paper found (best score {best_score:.2f})",
                best_score=best_score,
            )

        scheme = self.corpus.find_marking_scheme(best)
        if scheme is not None:
            best = best.with_scheme(scheme)

        message = (
            f"Matched with {best.board} {short_subject_name(best.subject or best.qualification)} - "
            f"{best.paper_code} ({best.exam_series})"
        )
        logger.debug(message, extra={"paper_code": best.paper_code, "question_number": best.question_number})
        return DetectionResult(found=True, match=best, message=message, best_score=best_score)

    # ─────────────────────────────────────────────────────────────────────────
    # Per-paper search
    # ─────────────────────────────────────────────────────────────────────────

    def _best_in_paper(
        self,
        text: str,
        paper: ExamPaperRecord,
        hint: Optional[str],
    ) -> Optional[_PaperCandidate]:
        sub_hint = bool(hint) and is_sub_question(hint)
        base_hint = base_question_number(hint) if hint else ""
        hint_part = sub_question_part(hint) if sub_hint else ""
        best: Optional[_PaperCandidate] = None

        for question in paper.questions:
            if sub_hint:
                # Flat keys ("12i") stored as their own question
                if question.number.lower() == f"{base_hint}{hint_part}":
                    if question.text:
                        score = question_similarity(text, question.text)
                        if best is None or score > best.score:
                            best = _PaperCandidate(question, hint_part, score, question.text)
                    continue
                if base_question_number(question.number) != base_hint:
                    continue
                sub = question.sub_question(hint_part)
                if sub is None or not sub.text:
                    continue
                score = question_similarity(text, sub.text)
                if SUB_QUESTION_MIN_SIMILARITY <= score < SUB_QUESTION_FLOOR_SCORE:
                    # Part label agrees; text format differs
                    logger.debug(
                        f"Part fallback for Q{question.number}{sub.part} "
                        f"(similarity {score:.3f})"
                    )
                    score = SUB_QUESTION_FLOOR_SCORE
                if best is None or score > best.score:
                    best = _PaperCandidate(question, sub.part, score, sub.text)
                continue

            if hint and question.number != hint:
                continue
            reference = _reference_text(question)
            if not reference:
                continue
            score = question_similarity(text, reference)
            if best is None or score > best.score:
                best = _PaperCandidate(question, "", score, reference)

        return best

    @staticmethod
    def _build_match(paper: ExamPaperRecord, candidate: _PaperCandidate) -> ExamPaperMatch:
        question = candidate.question
        number = base_question_number(question.number) or question.number
        marks = question.marks
        if candidate.sub_part:
            sub = question.sub_question(candidate.sub_part)
            if sub is not None and sub.marks is not None:
                marks = sub.marks
        return replace(
            paper.base_match(number, candidate.score),
            sub_question_number=candidate.sub_part,
            marks=marks,
            database_question_text=candidate.reference_text,
        )
