"""
Module: pipeline

Purpose:
    End-to-end marking of one submission: recognise every page, refine
    math regions, resolve marking schemes, call the marking model per
    question group, parse and score its output, then resolve a grade.

Key Classes:
    - MarkingPipeline: mark(pages, questions) / mark_upload(data, questions)
    - PageReading: Recognition output for one page
    - MarkingOutcome: Terminal artifact for a submission

Failure Policy:
    - OCRFailure propagates (the submission cannot be read)
    - MarkingParseFailure is per question: recorded, other questions continue
    - Scheme and grade misses are never errors

Dependencies:
    - asyncio (std): PDF rendering off the event loop
    - ocr, schemes, results, grading: The pipeline stages
    - timing, diagnostics, file_locking: Instrumentation and outcome log

Used By:
    - Callers embedding the marking core (HTTP handlers, batch jobs)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from gcse_marker.collaborators import (
    GradeBoundaryStore,
    MarkingModel,
    MathRecognizer,
    QuestionCorpus,
    TextRecognizer,
)
from gcse_marker.common.text import sub_question_part
from gcse_marker.config import PipelineConfig
from gcse_marker.core.models import (
    Annotation,
    DetectedQuestion,
    GradeResult,
    MathBlock,
    StudentScore,
)
from gcse_marker.diagnostics import DiagnosticsCollector
from gcse_marker.exceptions import MarkingParseFailure
from gcse_marker.file_locking import locked_append_jsonl
from gcse_marker.grading import GradeResolver
from gcse_marker.matching import QuestionMatcher
from gcse_marker.ocr import (
    MathRegionDetector,
    RecognitionResult,
    TextRecognitionOrchestrator,
    group_lines,
    load_submission_pages,
    transcript,
)
from gcse_marker.results import MarkingResult, ResultParser
from gcse_marker.schemes import QuestionGroup, SchemeOrchestrationResult, SchemeOrchestrator
from gcse_marker.timing import TimingLog, timed_phase

logger = logging.getLogger(__name__)


@dataclass
class PageReading:
    """
    Recognition output for one page.

    Attributes:
        index: Page index in the submission
        recognition: Clusters and fragments from every pass
        blocks: Student work blocks (refined math regions plus plain-text
            clusters, or the fallback)
        page_text: Line-grouped text of the first successful pass
    """
    index: int
    recognition: RecognitionResult
    blocks: List[MathBlock] = field(default_factory=list)
    page_text: str = ""

    @property
    def work_text(self) -> str:
        return transcript(self.blocks)


@dataclass
class MarkingOutcome:
    """
    Result of marking one submission.

    Attributes:
        question_results: Parsed result per question group
        student_score: Sum over parsed questions
        grade: Grade resolution outcome (grade may be None)
        schemes: Scheme orchestration output
        failed_questions: Group key -> parse failure message
        warnings: Non-fatal problems from every stage
        timing: Phase durations for this run
        diagnostics: Recoverable issues recorded while marking this submission
    """
    question_results: List[MarkingResult] = field(default_factory=list)
    student_score: StudentScore = field(default_factory=lambda: StudentScore(0, 0))
    grade: GradeResult = field(default_factory=GradeResult)
    schemes: SchemeOrchestrationResult = field(default_factory=SchemeOrchestrationResult)
    failed_questions: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    timing: TimingLog = field(default_factory=TimingLog)
    diagnostics: DiagnosticsCollector = field(default_factory=DiagnosticsCollector)

    @property
    def annotations(self) -> List[Annotation]:
        return [a for result in self.question_results for a in result.annotations]

    def to_dict(self) -> dict:
        return {
            "annotations": [a.to_dict() for a in self.annotations],
            "studentScore": self.student_score.to_dict(),
            "grade": self.grade.grade,
            "gradeBoundaryType": self.grade.boundary_type,
        }


def sub_question_page_map(questions: Sequence[DetectedQuestion]) -> Dict[str, List[int]]:
    """Sub-question part -> pages it was detected on."""
    pages: Dict[str, List[int]] = {}
    for question in questions:
        part = sub_question_part(question.question_number)
        if not part or not question.source_pages:
            continue
        known = pages.setdefault(part, [])
        known.extend(p for p in question.source_pages if p not in known)
    return pages


@dataclass
class _Stages:
    """Stage instances for one mark() call, sharing its collector."""
    recognizer: TextRecognitionOrchestrator
    math_detector: MathRegionDetector
    scheme_orchestrator: SchemeOrchestrator
    parser: ResultParser
    grade_resolver: GradeResolver
    diagnostics: DiagnosticsCollector


class MarkingPipeline:
    """
    Marks one submission end to end.

    Collaborators are injected; nothing is shared between submissions
    except the read-only corpus and boundary store. Each mark() call
    builds its stages around its own DiagnosticsCollector.

    Example:
        >>> pipeline = MarkingPipeline(vision, mathpix, model, corpus, boundaries)
        >>> outcome = await pipeline.mark([png_bytes], questions, paper_hint="1MA1/1H")
        >>> outcome.to_dict()["studentScore"]["scoreText"]
        '5/6'
    """

    def __init__(
        self,
        text_recognizer: TextRecognizer,
        math_recognizer: Optional[MathRecognizer],
        marking_model: MarkingModel,
        corpus: QuestionCorpus,
        boundary_store: GradeBoundaryStore,
        config: PipelineConfig | None = None,
    ):
        self.config = config or PipelineConfig()
        self.text_recognizer = text_recognizer
        self.math_recognizer = math_recognizer
        self.marking_model = marking_model
        self.matcher = QuestionMatcher(corpus, self.config.matching)
        self.boundary_store = boundary_store

    def _stages(self, diagnostics: DiagnosticsCollector) -> _Stages:
        return _Stages(
            recognizer=TextRecognitionOrchestrator(
                self.text_recognizer,
                self.math_recognizer,
                self.config.recognition,
                self.config.clustering,
                diagnostics,
            ),
            math_detector=MathRegionDetector(self.math_recognizer, self.config.math, diagnostics),
            scheme_orchestrator=SchemeOrchestrator(self.matcher, self.config.schemes, diagnostics),
            parser=ResultParser(self.config.strict_response_validation, diagnostics),
            grade_resolver=GradeResolver(self.boundary_store, self.config.grading, diagnostics),
            diagnostics=diagnostics,
        )

    async def mark_upload(
        self,
        data: bytes,
        questions: Sequence[DetectedQuestion],
        *,
        paper_hint: Optional[str] = None,
        submission_id: str = "",
        diagnostics: Optional[DiagnosticsCollector] = None,
    ) -> MarkingOutcome:
        """Mark an uploaded image or PDF."""
        pages = await asyncio.to_thread(load_submission_pages, data, self.config.recognition.pdf_dpi)
        return await self.mark(
            pages, questions, paper_hint=paper_hint, submission_id=submission_id, diagnostics=diagnostics
        )

    async def mark(
        self,
        pages: Sequence[bytes],
        questions: Sequence[DetectedQuestion],
        *,
        paper_hint: Optional[str] = None,
        submission_id: str = "",
        diagnostics: Optional[DiagnosticsCollector] = None,
    ) -> MarkingOutcome:
        """
        Mark a submission.

        Args:
            pages: One image per page
            questions: Questions found on the pages (label, text, pages)
            paper_hint: Optional free-text paper identity from the user
            submission_id: Tags diagnostics and timing
            diagnostics: Collector for this run (a new one when omitted)

        Returns:
            MarkingOutcome

        Raises:
            OCRFailure: If a page cannot be read at all
        """
        stages = self._stages(diagnostics or DiagnosticsCollector())
        outcome = MarkingOutcome(diagnostics=stages.diagnostics)
        log = outcome.timing

        with timed_phase(log, "recognition"):
            readings = [await self._read_page(stages, i, page, submission_id) for i, page in enumerate(pages)]
        with timed_phase(log, "math_refinement"):
            for reading, page in zip(readings, pages):
                await self._refine_page(stages, reading, page, outcome, submission_id)
        for reading in readings:
            outcome.warnings.extend(reading.recognition.warnings)

        page_text = "\n".join(r.page_text for r in readings if r.page_text)
        with timed_phase(log, "scheme_orchestration"):
            outcome.schemes = await stages.scheme_orchestrator.orchestrate(
                questions,
                paper_hint=paper_hint,
                page_text=page_text,
                submission_id=submission_id,
            )

        for group in outcome.schemes.groups:
            result = await self._mark_group(stages, group, readings, outcome, submission_id)
            if result is not None:
                outcome.question_results.append(result)
                outcome.warnings.extend(result.warnings)

        outcome.student_score = self._total_score(outcome.question_results)
        with timed_phase(log, "grading"):
            outcome.grade = await self._grade(stages, outcome, submission_id)

        logger.info(
            f"Submission {submission_id or '-'} marked: {outcome.student_score.score_text}, "
            f"grade {outcome.grade.grade}, {len(outcome.failed_questions)} failed questions"
        )
        self._save_reports(outcome, submission_id)
        return outcome

    # ─────────────────────────────────────────────────────────────────────────
    # Recognition
    # ─────────────────────────────────────────────────────────────────────────

    async def _read_page(self, stages: _Stages, index: int, page: bytes, submission_id: str) -> PageReading:
        recognition = await stages.recognizer.recognize(page, submission_id)
        reading = PageReading(index=index, recognition=recognition)
        if recognition.used_fallback:
            reading.blocks = [recognition.fallback_block]
            reading.page_text = recognition.fallback_block.recognized_text
            return reading

        first_pass = recognition.passes_succeeded[0]
        lines = group_lines([f for f in recognition.fragments if f.source_pass == first_pass])
        reading.page_text = "\n".join(" ".join(f.text for f in line) for line in lines)
        return reading

    async def _refine_page(
        self,
        stages: _Stages,
        reading: PageReading,
        page: bytes,
        outcome: MarkingOutcome,
        submission_id: str,
    ) -> None:
        if reading.recognition.used_fallback:
            return
        math_blocks = stages.math_detector.detect(
            reading.recognition.clusters,
            overall_confidence=reading.recognition.overall_confidence,
        )
        report = await stages.math_detector.refine(page, math_blocks, submission_id)
        outcome.warnings.extend(report.warnings)
        reading.blocks = stages.math_detector.work_blocks(
            reading.recognition.clusters,
            math_blocks,
            overall_confidence=reading.recognition.overall_confidence,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Marking
    # ─────────────────────────────────────────────────────────────────────────

    async def _mark_group(
        self,
        stages: _Stages,
        group: QuestionGroup,
        readings: Sequence[PageReading],
        outcome: MarkingOutcome,
        submission_id: str,
    ) -> Optional[MarkingResult]:
        key = group.key
        scheme = outcome.schemes.schemes.get(key)
        pages = set(group.source_pages)
        work = "\n".join(
            r.work_text for r in readings if r.work_text and (not pages or r.index in pages)
        )
        question_text = "\n\n".join(q.text for q in group.questions if q.text) or group.anchor_text

        with timed_phase(outcome.timing, "marking_model", key):
            raw = await self.marking_model.generate(question_text, scheme, work)
        try:
            with timed_phase(outcome.timing, "parse", key):
                return stages.parser.parse(
                    raw,
                    scheme,
                    sub_question_pages=sub_question_page_map(group.questions),
                    question_number=key,
                    submission_id=submission_id,
                )
        except MarkingParseFailure as e:
            logger.warning(f"Q{key}: marking output unusable, question skipped: {e}", extra={"question_number": key})
            outcome.failed_questions[key] = str(e)
            return None

    @staticmethod
    def _total_score(results: Sequence[MarkingResult]) -> StudentScore:
        awarded = sum(r.student_score.awarded_marks for r in results)
        total = sum(r.student_score.total_marks for r in results)
        awarded = min(awarded, total)
        return StudentScore(awarded, total)

    async def _grade(self, stages: _Stages, outcome: MarkingOutcome, submission_id: str) -> GradeResult:
        match = next(
            (
                d.match for d in outcome.schemes.detections.values()
                if d.found and d.match is not None and not d.match.is_generic
            ),
            None,
        )
        if match is None:
            reason = "No matched exam paper to grade against"
            stages.diagnostics.add_grade_miss(reason, submission_id)
            return GradeResult.failure(reason)
        score = outcome.student_score
        return await stages.grade_resolver.resolve_for_match(
            match, score.awarded_marks, score.total_marks, submission_id
        )

    def _save_reports(self, outcome: MarkingOutcome, submission_id: str) -> None:
        if self.config.timing_log_path is not None:
            outcome.timing.save(self.config.timing_log_path, submission_id)
        if self.config.diagnostics_path is not None:
            outcome.diagnostics.save(self.config.diagnostics_path)
        if self.config.outcome_log_path is not None:
            locked_append_jsonl(self.config.outcome_log_path, {
                "submission_id": submission_id,
                "score": outcome.student_score.score_text,
                "grade": outcome.grade.grade,
                "failed_questions": sorted(outcome.failed_questions),
                "total_seconds": round(outcome.timing.total(), 3),
            })
