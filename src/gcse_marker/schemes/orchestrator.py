"""
Module: schemes.orchestrator

Purpose:
    Resolves one marking scheme per detected question group. Groups are
    matched against the corpus, a misleading paper hint is dropped once,
    disagreeing groups are pulled toward a dominant paper, and anything
    still unmatched gets a generic rubric.

Key Classes:
    - SchemeOrchestrator: orchestrate(questions, paper_hint, page_text)
    - SchemeOrchestrationResult: Schemes, detections and statistics

Protocol:
    1. Group by base question number (schemes.grouping)
    2. Detect each group with its anchor text and base number hint
    3. Recovery: with a hint, restart once without it when matches span
       several papers or the detection rate is too low for the number of
       papers the hint names
    4. Consensus: a paper with >= 80% of the votes re-queries the other
       groups with a forced hint; a rescue is adopted only if it lands on
       that paper
    5. Generic fallback for groups with no usable scheme
    6. One NormalizedScheme per (base question, board, paper code)

Dependencies:
    - asyncio (std): Matching runs off the event loop
    - matching.question_matcher: QuestionMatcher

Used By:
    - pipeline: MarkingPipeline
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from gcse_marker.config import SchemeConfig
from gcse_marker.core.models import (
    DetectedQuestion,
    DetectionResult,
    ExamPaperMatch,
    NormalizedScheme,
)
from gcse_marker.diagnostics import DiagnosticsCollector
from gcse_marker.matching import QuestionMatcher

from .generic import build_generic_scheme
from .grouping import QuestionGroup, group_questions
from .normalize import normalize_scheme
from .statistics import DetectionStatistics
from .totals import estimate_max_marks

logger = logging.getLogger(__name__)

GENERIC_QUESTION_NUMBER = "1"


@dataclass
class SchemeOrchestrationResult:
    """
    Output of one orchestration run.

    Attributes:
        schemes: Scheme per base question number
        detections: Final detection per question label
        groups: Question groups in first-seen order
        statistics: Counts for the final run
        restarted: Detection was repeated without the paper hint
    """

    schemes: Dict[str, NormalizedScheme] = field(default_factory=dict)
    detections: Dict[str, DetectionResult] = field(default_factory=dict)
    groups: List[QuestionGroup] = field(default_factory=list)
    statistics: DetectionStatistics = field(default_factory=DetectionStatistics)
    restarted: bool = False

    def scheme_for(self, question_number: str) -> Optional[NormalizedScheme]:
        """Scheme covering a question label ("2a" -> scheme of "2")."""
        for group in self.groups:
            if question_number in group.labels:
                return self.schemes.get(group.key)
        return None

    def to_dict(self) -> dict:
        return {
            "schemes": {k: s.to_dict() for k, s in self.schemes.items()},
            "detections": {k: d.to_dict() for k, d in self.detections.items()},
            "statistics": self.statistics.to_dict(),
            "restarted": self.restarted,
        }


class SchemeOrchestrator:
    """
    Groups, detects, corrects and merges marking schemes.

    Stateless per invocation; the matcher and its corpus are shared
    read-only.

    Example:
        >>> orchestrator = SchemeOrchestrator(QuestionMatcher(corpus))
        >>> result = await orchestrator.orchestrate(questions, paper_hint="Edexcel 1MA1/1H")
        >>> result.schemes["2"].kind
        'composite'
    """

    def __init__(
        self,
        matcher: QuestionMatcher,
        config: SchemeConfig | None = None,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        self.matcher = matcher
        self.config = config or SchemeConfig()
        self.diagnostics = diagnostics

    async def orchestrate(
        self,
        questions: Sequence[DetectedQuestion],
        *,
        paper_hint: Optional[str] = None,
        page_text: Optional[str] = None,
        submission_id: str = "",
    ) -> SchemeOrchestrationResult:
        """
        Resolve schemes for every detected question.

        Args:
            questions: Questions read from the submission
            paper_hint: Optional free-text paper identity from the user
            page_text: Raw page text used to read printed mark totals
            submission_id: Used to tag diagnostics

        Returns:
            SchemeOrchestrationResult
        """
        groups = group_questions(questions, self.config.anchor_tail_chars)
        result = SchemeOrchestrationResult(groups=groups)
        if not groups:
            return result

        hint = paper_hint
        while True:
            group_results = await self._detect_groups(groups, hint)
            stats = self._statistics(groups, group_results, hint)
            reason = None if result.restarted else self._restart_reason(stats, hint)
            if reason is None:
                break
            logger.warning(f"Paper hint adherence failed ({reason}); restarting without hint")
            if self.diagnostics is not None:
                self.diagnostics.add_hint_restart(reason, submission_id)
            result.restarted = True
            hint = None

        group_results, stats = await self._apply_consensus(groups, group_results, stats, submission_id)
        stats.restarted = result.restarted

        for group in groups:
            key = group.key
            detection = group_results[key]
            scheme = self._scheme_for_group(group, detection)
            if scheme is None:
                scheme = self._generic_scheme(group, page_text, submission_id)
                stats.generic_questions.append(key)
                if not detection.found:
                    detection = DetectionResult(
                        found=False,
                        match=ExamPaperMatch.generic(key),
                        message=detection.message or "No matching exam paper found",
                        best_score=detection.best_score,
                    )
                    group_results[key] = detection
            result.schemes[key] = scheme
            for label in group.labels:
                result.detections[label] = detection

        result.statistics = stats
        logger.info(
            f"Schemes resolved for {len(result.schemes)} groups: "
            f"{stats.detected}/{stats.total_questions} questions detected, "
            f"{len(stats.generic_questions)} generic"
        )
        return result

    # ─────────────────────────────────────────────────────────────────────────
    # Detection and recovery
    # ─────────────────────────────────────────────────────────────────────────

    async def _detect(self, text: str, hint: Optional[str], paper_hint: Optional[str]) -> DetectionResult:
        return await asyncio.to_thread(self.matcher.detect, text, hint, paper_hint)

    async def _detect_groups(
        self,
        groups: Sequence[QuestionGroup],
        paper_hint: Optional[str],
    ) -> Dict[str, DetectionResult]:
        results: Dict[str, DetectionResult] = {}
        for group in groups:
            key = group.key
            results[key] = await self._detect(group.anchor_text, group.number_hint, paper_hint)
            logger.debug(f"Group Q{key}: {results[key].message}", extra={"question_number": key})
        return results

    def _statistics(
        self,
        groups: Sequence[QuestionGroup],
        group_results: Dict[str, DetectionResult],
        paper_hint: Optional[str],
    ) -> DetectionStatistics:
        stats = DetectionStatistics(
            hint_used=paper_hint,
            hinted_paper_count=self.matcher.hinted_paper_count(paper_hint),
        )
        for group in groups:
            detection = group_results[group.key]
            for label in group.labels:
                stats.record(label, detection)
        return stats

    def _restart_reason(self, stats: DetectionStatistics, paper_hint: Optional[str]) -> Optional[str]:
        """Why a hinted run should be repeated without the hint, or None."""
        if not paper_hint:
            return None
        distinct_papers = len(stats.paper_votes())
        rate = stats.detection_rate
        if stats.detected > 0 and distinct_papers > 1:
            return f"matches span {distinct_papers} papers"
        if stats.hinted_paper_count == 1 and rate < self.config.single_paper_min_rate:
            return f"low adherence to unique hint (rate {rate:.2f})"
        if stats.hinted_paper_count > 1 and rate < self.config.multi_paper_min_rate:
            return f"poor match density (rate {rate:.2f})"
        return None

    def dominant_paper(self, stats: DetectionStatistics) -> Optional[str]:
        """
        Paper title holding at least consensus_ratio of the votes.

        A single vote only counts as dominant when no other paper was voted for.
        """
        votes = stats.paper_votes()
        total = sum(votes.values())
        for title, count in votes.items():
            if count / total >= self.config.consensus_ratio and (count > 1 or len(votes) == 1):
                return title
        return None

    async def _apply_consensus(
        self,
        groups: Sequence[QuestionGroup],
        group_results: Dict[str, DetectionResult],
        stats: DetectionStatistics,
        submission_id: str,
    ) -> Tuple[Dict[str, DetectionResult], DetectionStatistics]:
        dominant = self.dominant_paper(stats)
        if dominant is None:
            return group_results, stats
        if len(stats.paper_votes()) <= 1 and stats.not_detected == 0:
            return group_results, stats

        dominant_match = next(
            r.match for r in group_results.values()
            if r.found and r.match is not None and r.match.paper_title == dominant
        )
        forced_hint = dominant_match.forced_hint
        logger.info(f"Consensus reached on '{dominant}'; re-querying outliers")

        corrected = dict(group_results)
        rescued: List[str] = []
        for group in groups:
            key = group.key
            current = group_results[key]
            if current.found and current.paper_title == dominant:
                continue
            rescue = await self._detect(group.anchor_text, group.number_hint, forced_hint)
            adopted = rescue.found and rescue.paper_title == dominant
            if adopted:
                corrected[key] = rescue.as_rescue()
                rescued.append(key)
                logger.info(f"Rescued group Q{key} -> {dominant}", extra={"question_number": key})
            else:
                logger.debug(f"Rescue of Q{key} rejected ({rescue.message})")
            if self.diagnostics is not None:
                self.diagnostics.add_consensus_rescue(key, dominant, adopted, submission_id)

        if not rescued:
            return corrected, stats
        # Recount so the statistics describe the corrected detections
        refreshed = self._statistics(groups, corrected, stats.hint_used)
        refreshed.rescued_questions = rescued
        return corrected, refreshed

    # ─────────────────────────────────────────────────────────────────────────
    # Scheme building
    # ─────────────────────────────────────────────────────────────────────────

    def _scheme_for_group(
        self,
        group: QuestionGroup,
        detection: DetectionResult,
    ) -> Optional[NormalizedScheme]:
        if not detection.found or detection.match is None:
            return None
        match = detection.match
        if not match.marking_scheme:
            logger.warning(
                f"Q{group.base_number} matched {match.paper_title} but no scheme entry exists",
                extra={"question_number": group.base_number, "paper_code": match.paper_code},
            )
            return None
        try:
            return normalize_scheme(group.base_number or match.question_number, match.marking_scheme, match)
        except ValueError as e:
            logger.warning(
                f"Q{group.base_number}: unusable scheme record from {match.paper_title}: {e}",
                extra={"question_number": group.base_number, "paper_code": match.paper_code},
            )
            return None

    def _generic_scheme(
        self,
        group: QuestionGroup,
        page_text: Optional[str],
        submission_id: str,
    ) -> NormalizedScheme:
        number = group.base_number or GENERIC_QUESTION_NUMBER
        detected_total = estimate_max_marks(
            page_text or group.anchor_text,
            group.base_number or None,
            upper=self.config.max_estimated_marks,
        )
        scheme = build_generic_scheme(number, detected_total, self.config.default_rubric_size)
        size = detected_total or self.config.default_rubric_size
        logger.info(
            f"Q{number}: generic rubric with {size} slots per mark type",
            extra={"question_number": number},
        )
        if self.diagnostics is not None:
            self.diagnostics.add_generic_fallback(number, size, submission_id)
        return scheme
