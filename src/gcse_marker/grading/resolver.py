"""
Module: grading.resolver

Purpose:
    Best-effort grade resolution from published boundary tables. A grade
    is a nice-to-have on top of the score, so nothing here raises: every
    failure becomes a GradeResult with grade=None and a reason.

Key Classes:
    - GradeResolver: resolve() and resolve_for_match()

Resolution Steps:
    1. Entry by exact board + series, then subject by normalised name or
       by the subject code before "/" in the exam code
    2. Tier by normalised name ("Higher Tier" == "higher")
    3. Boundary type (grading.boundaries.select_boundary_type)
    4. Grade lookup in the paper table (paper code after the last "/")
       or in the overall table

Dependencies:
    - collaborators.GradeBoundaryStore: Injected reference data

Used By:
    - pipeline: MarkingPipeline
"""

from __future__ import annotations

import logging
from typing import Optional

from gcse_marker.collaborators import GradeBoundaryStore
from gcse_marker.config import GradingConfig
from gcse_marker.core.models import (
    OVERALL_TOTAL,
    PAPER_SPECIFIC,
    ExamPaperMatch,
    GradeBoundaryEntry,
    GradeResult,
    SubjectBoundaries,
    TierBoundaries,
)
from gcse_marker.diagnostics import DiagnosticsCollector

from .boundaries import (
    find_grade,
    infer_subject_from_exam_code,
    normalize_subject_name,
    normalize_tier,
    paper_code_from_exam_code,
    select_boundary_type,
    subject_code_from_exam_code,
)

logger = logging.getLogger(__name__)


def _subject_matches(subject: SubjectBoundaries, name: str, exam_code: str) -> bool:
    if normalize_subject_name(subject.name) == normalize_subject_name(name):
        return True
    code = subject_code_from_exam_code(exam_code)
    return code is not None and code == subject.code


class GradeResolver:
    """
    Resolves a grade for a score on one paper.

    Stateless; the boundary store is shared read-only.

    Example:
        >>> resolver = GradeResolver(InMemoryGradeBoundaryStore.from_records(records))
        >>> result = await resolver.resolve("Edexcel", "June 2022", "Mathematics",
        ...                                 "1MA1/1H", "Higher", 65, 80)
        >>> result.grade
        '8'
    """

    def __init__(
        self,
        store: GradeBoundaryStore,
        config: GradingConfig | None = None,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        self.store = store
        self.config = config or GradingConfig()
        self.diagnostics = diagnostics

    async def resolve(
        self,
        exam_board: str,
        exam_series: str,
        subject: str,
        exam_code: str,
        tier: str,
        student_score: float,
        total_marks: float,
        submission_id: str = "",
    ) -> GradeResult:
        """
        Resolve the grade for a score.

        Args:
            exam_board / exam_series: Select the boundary entry
            subject: Subject name (matched after normalisation)
            exam_code: Full exam code ("1MA1/2H")
            tier: Tier name ("Higher", "Foundation Tier")
            student_score: Awarded marks
            total_marks: Marks available; below the single-paper limit the
                score is treated as one paper

        Returns:
            GradeResult (never raises)
        """
        try:
            result = await self._resolve(
                exam_board, exam_series, subject, exam_code, tier, student_score, total_marks
            )
        except Exception as e:
            # The store is external; any failure degrades to "no grade"
            logger.warning(f"Grade resolution failed: {e}", extra={"paper_code": exam_code})
            result = GradeResult.failure(str(e) or type(e).__name__)

        if result.error:
            logger.info(f"No grade for {exam_board} {exam_code} ({exam_series}): {result.error}")
            if self.diagnostics is not None:
                self.diagnostics.add_grade_miss(result.error, submission_id)
        else:
            logger.info(f"Grade {result.grade} from {result.boundary_type} boundaries for {exam_code}")
        return result

    async def resolve_for_match(
        self,
        match: ExamPaperMatch,
        student_score: float,
        total_marks: float,
        submission_id: str = "",
    ) -> GradeResult:
        """
        Resolve using the paper identity of a detection match.

        The subject comes from the match, else from the exam code, else
        from the qualification line.
        """
        subject = match.subject or infer_subject_from_exam_code(match.paper_code) or match.qualification
        return await self.resolve(
            match.board,
            match.exam_series,
            subject,
            match.paper_code,
            match.tier,
            student_score,
            total_marks,
            submission_id,
        )

    async def _find_entry(
        self,
        exam_board: str,
        exam_series: str,
        subject: str,
        exam_code: str,
    ) -> Optional[GradeBoundaryEntry]:
        entries = await self.store.query_by_board_and_series(exam_board, exam_series)
        for entry in entries:
            if any(_subject_matches(s, subject, exam_code) for s in entry.subjects):
                return entry
        return None

    async def _resolve(
        self,
        exam_board: str,
        exam_series: str,
        subject: str,
        exam_code: str,
        tier: str,
        student_score: float,
        total_marks: float,
    ) -> GradeResult:
        entry = await self._find_entry(exam_board, exam_series, subject, exam_code)
        if entry is None:
            return GradeResult.failure("No matching grade boundary found")

        matching_subject = next(
            (s for s in entry.subjects if _subject_matches(s, subject, exam_code)), None
        )
        if matching_subject is None:
            return GradeResult.failure("Subject not found in grade boundary", matched_boundary=entry)

        wanted_tier = normalize_tier(tier)
        matching_tier = next(
            (t for t in matching_subject.tiers if normalize_tier(t.tier_level) == wanted_tier), None
        )
        if matching_tier is None:
            available = ", ".join(t.tier_level for t in matching_subject.tiers)
            return GradeResult.failure(
                f'Tier not found in grade boundary. Looking for: "{tier}", Available: {available}',
                matched_boundary=entry,
            )

        boundary_type, error = select_boundary_type(
            matching_tier, total_marks, self.config.single_paper_limit
        )
        if error:
            return GradeResult.failure(error, boundary_type, entry)
        if boundary_type == PAPER_SPECIFIC:
            return self._paper_specific(matching_tier, exam_code, student_score, entry)
        return self._overall_total(matching_tier, student_score, entry)

    def _paper_specific(
        self,
        tier: TierBoundaries,
        exam_code: str,
        student_score: float,
        entry: GradeBoundaryEntry,
    ) -> GradeResult:
        if not tier.has_paper_specific:
            return GradeResult.failure("No paper-specific boundaries found", PAPER_SPECIFIC, entry)
        paper_code = paper_code_from_exam_code(exam_code)
        if not paper_code:
            return GradeResult.failure("Could not extract paper code from exam code", PAPER_SPECIFIC, entry)
        paper = tier.paper(paper_code)
        if paper is None:
            return GradeResult.failure(f"Paper code {paper_code} not found in boundaries", PAPER_SPECIFIC, entry)
        return GradeResult(
            grade=find_grade(student_score, paper.boundaries),
            boundary_type=PAPER_SPECIFIC,
            matched_boundary=entry,
            boundaries=dict(paper.boundaries),
        )

    def _overall_total(
        self,
        tier: TierBoundaries,
        student_score: float,
        entry: GradeBoundaryEntry,
    ) -> GradeResult:
        if not tier.has_overall_total:
            return GradeResult.failure("No overall-total boundaries found", OVERALL_TOTAL, entry)
        return GradeResult(
            grade=find_grade(student_score, tier.overall_total_boundaries),
            boundary_type=OVERALL_TOTAL,
            matched_boundary=entry,
            boundaries=dict(tier.overall_total_boundaries),
        )
